import config
import pandas as pd
import pytest
import tablekit as tk
from tablekit.options import pandas_data_loader


def test_connect_from_config():
    """Options can be loaded from a libb Setting"""
    conn = tk.connect('sqlite', config=config)
    try:
        assert conn.dialect == 'sqlite'
        assert conn.name == ':memory:'
        assert tk.query_row(conn, 'select 1 as one').one == 1
    finally:
        conn.close()
    assert conn.closed


def test_connect_failure(tmp_path):
    with pytest.raises(tk.ConnectionFailure):
        tk.connect({'drivername': 'sqlite', 'database': str(tmp_path / 'missing' / 'x.db')})


def test_insert_update_delete(sqlite_conn):
    assert tk.insert(sqlite_conn, 'INSERT INTO test_table (name, value) VALUES (?, ?)', 'Diana', 40) == 1
    assert tk.update(sqlite_conn, 'UPDATE test_table SET value = ? WHERE name = ?', 25, 'Bob') == 1
    assert tk.delete(sqlite_conn, 'DELETE FROM test_table WHERE value > ?', 25) == 2
    assert tk.count(sqlite_conn, 'test_table') == 2


def test_percent_s_placeholders_converted(sqlite_conn):
    row = tk.query_row(sqlite_conn, 'select name from test_table where value = %s', 20)
    assert row.name == 'Bob'


def test_query_cursor(sqlite_conn):
    with tk.query(sqlite_conn, 'select name, value from test_table order by value') as rows:
        assert rows.columns == ['name', 'value']
        assert rows.scan() == ('Alice', 10)
        assert list(rows) == [('Bob', 20), ('Charlie', 30)]
        assert rows.scan() is None


def test_query_row_and_scalar(sqlite_conn):
    row = tk.query_row(sqlite_conn, 'select name, value from test_table where name = ?', 'Alice')
    assert row == {'name': 'Alice', 'value': 10}
    assert tk.query_row(sqlite_conn, 'select name from test_table where name = ?', 'Nobody') is None
    assert sqlite_conn.query_scalar('select max(value) from test_table') == 30


def test_count_with_conditions(sqlite_conn):
    conditions = [tk.Condition('value > ?', 'AND'), tk.Condition('name <> ?')]
    assert tk.count(sqlite_conn, 'test_table', conditions, 15, 'Bob') == 1


def test_select(sqlite_conn):
    rows = tk.select(sqlite_conn, 'test_table', ['name', 'value'],
                     [tk.Condition('value >= ?')], 20)
    assert sorted(r.name for r in rows) == ['Bob', 'Charlie']


def test_select_nothing_matches(sqlite_conn):
    calls = sqlite_conn.calls
    rows = tk.select(sqlite_conn, 'test_table', ['name'], [tk.Condition('value > ?')], 100)
    assert rows == []
    # only the count ran
    assert sqlite_conn.calls == calls + 1


def test_select_with_pandas_loader(sqlite_conn):
    sqlite_conn.options.data_loader = pandas_data_loader
    df = tk.select(sqlite_conn, 'test_table', ['name', 'value'])
    assert isinstance(df, pd.DataFrame)
    assert sorted(df['value']) == [10, 20, 30]

    empty = tk.select(sqlite_conn, 'test_table', ['name', 'value'], [tk.Condition('value < ?')], 0)
    assert empty.empty
    assert list(empty.columns) == ['name', 'value']


def test_select_row(sqlite_conn):
    row = tk.select_row(sqlite_conn, 'test_table', ['name'], [tk.Condition('value = ?')], 30)
    assert row.name == 'Charlie'
    assert tk.select_row(sqlite_conn, 'test_table', ['name'], [tk.Condition('value = ?')], 99) is None


def test_exists_table_and_columns(sqlite_conn):
    assert tk.exists_table(sqlite_conn, 'test_table')
    assert not tk.exists_table(sqlite_conn, 'missing_table')
    assert sqlite_conn.get_columns('test_table') == ['id', 'name', 'value']


def test_execute_error(sqlite_conn):
    with pytest.raises(tk.StatementExecutionError) as exc_info:
        tk.execute(sqlite_conn, 'INSERT INTO missing_table VALUES (1)')
    err = exc_info.value
    assert err.operation == 'SQL Execute'
    assert 'missing_table' in err.statement
    assert 'no such table' in str(err.cause)


def test_query_error(sqlite_conn):
    with pytest.raises(tk.StatementExecutionError) as exc_info:
        tk.query(sqlite_conn, 'select * from missing_table')
    assert exc_info.value.operation == 'SQL Query'


def test_prepare_on_closed_connection(sqlite_file_conn):
    sqlite_file_conn.close()
    with pytest.raises(tk.StatementPreparationError) as exc_info:
        sqlite_file_conn.execute('select 1')
    assert exc_info.value.operation == 'SQL Prepare'


def test_call_statistics(sqlite_conn):
    calls = sqlite_conn.calls
    tk.query_row(sqlite_conn, 'select 1 as one')
    assert sqlite_conn.calls == calls + 1
    assert sqlite_conn.time >= 0


class TestTransaction:

    def test_commit(self, sqlite_conn):
        with sqlite_conn.transaction():
            tk.insert(sqlite_conn, 'INSERT INTO test_table (name, value) VALUES (?, ?)', 'Diana', 40)
            tk.insert(sqlite_conn, 'INSERT INTO test_table (name, value) VALUES (?, ?)', 'Ethan', 50)
        assert tk.count(sqlite_conn, 'test_table') == 5
        assert not sqlite_conn.in_transaction

    def test_rollback_on_error(self, sqlite_conn):
        with pytest.raises(ValueError), sqlite_conn.transaction():
            tk.insert(sqlite_conn, 'INSERT INTO test_table (name, value) VALUES (?, ?)', 'Diana', 40)
            raise ValueError('abort')
        assert tk.count(sqlite_conn, 'test_table') == 3

    def test_autocommit_restored(self, sqlite_file_conn):
        with sqlite_file_conn.transaction():
            pass
        tk.execute(sqlite_file_conn, 'CREATE TABLE kept (id INTEGER)')
        tk.insert(sqlite_file_conn, 'INSERT INTO kept VALUES (?)', 1)

        db_path = sqlite_file_conn.options.database
        sqlite_file_conn.close()
        with tk.connect({'drivername': 'sqlite', 'database': db_path}) as conn:
            assert tk.count(conn, 'kept') == 1

    def test_nested_not_supported(self, sqlite_conn):
        with sqlite_conn.transaction(), pytest.raises(RuntimeError, match='Nested'):
            with sqlite_conn.transaction():
                pass


if __name__ == '__main__':
    __import__('pytest').main([__file__])
