import sqlite3

import pytest
from tablekit.exceptions import ConfigurationError, DatabaseError, DriverError
from tablekit.exceptions import IntrospectionError, StatementError
from tablekit.exceptions import StatementExecutionError, StatementPreparationError
from tablekit.exceptions import is_retryable_error


def test_statement_error_message():
    cause = sqlite3.OperationalError('no such table: t')
    err = StatementExecutionError('SQL Query', 'select * from t', cause)
    assert str(err) == 'Operation: SQL Query\nStatement: select * from t\nError: no such table: t'
    assert err.operation == 'SQL Query'
    assert err.statement == 'select * from t'
    assert err.cause is cause


def test_rewrap_keeps_kind_statement_and_cause():
    cause = RuntimeError('boom')
    err = StatementPreparationError('SQL Prepare', 'select 1', cause)
    wrapped = err.rewrap('Table exists query')
    assert type(wrapped) is StatementPreparationError
    assert wrapped.operation == 'Table exists query'
    assert wrapped.statement == 'select 1'
    assert wrapped.cause is cause


@pytest.mark.parametrize('cls', [StatementPreparationError, StatementExecutionError,
                                 IntrospectionError])
def test_statement_error_hierarchy(cls):
    assert issubclass(cls, StatementError)
    assert issubclass(cls, DatabaseError)


def test_configuration_error_is_database_error():
    assert issubclass(ConfigurationError, DatabaseError)


def test_driver_errors_cover_sqlite():
    assert isinstance(sqlite3.OperationalError('x'), DriverError)


@pytest.mark.parametrize('message', [
    'server closed the connection unexpectedly',
    'Lost connection to MySQL server during query',
    'connection timed out',
    'SSL SYSCALL error: EOF detected',
    'MySQL server has gone away',
    'Too many connections',
])
def test_retryable_errors(message):
    assert is_retryable_error(sqlite3.OperationalError(message))


@pytest.mark.parametrize('message', [
    'syntax error at or near "selec"',
    'duplicate key value violates unique constraint',
    'no such table: missing',
    'permission denied for table users',
])
def test_non_retryable_errors(message):
    assert not is_retryable_error(sqlite3.OperationalError(message))


if __name__ == '__main__':
    __import__('pytest').main([__file__])
