from unittest.mock import MagicMock, patch

import pytest
from tablekit.config import parse_config
from tablekit.exceptions import ConnectionFailure, ValidationError
from tablekit.options import DatabaseOptions
from tablekit.server import Server, ServerRegistry


def _database(name='main', hostname='db1', count=1):
    database = MagicMock()
    database.name = name
    database.closed = False
    database.options = DatabaseOptions(hostname=hostname, username='app',
                                       password='pw', database=name)
    database.strategy.count_databases.return_value = count
    return database


class TestServer:

    def test_primary_in_catalog(self):
        primary = _database()
        server = Server('db1', 3306, primary)
        assert server.database_by_name('main') is primary
        assert server.database_by_name('other') is None

    @pytest.mark.parametrize(('count', 'expected'), [(0, False), (1, True)])
    def test_verify(self, count, expected):
        server = Server('db1', 3306, _database(count=count))
        assert server.verify('reports') is expected

    def test_verify_rejects_duplicates(self):
        server = Server('db1', 3306, _database(count=2))
        with pytest.raises(ValidationError, match='Invalid database count'):
            server.verify('reports')

    def test_no_primary(self):
        server = Server('db1', 3306, None)
        with pytest.raises(ConnectionFailure, match='Primary database not set'):
            server.execute('select 1')

    def test_closed_primary(self):
        primary = _database()
        primary.closed = True
        with pytest.raises(ConnectionFailure):
            Server('db1', 3306, primary).query('select 1')

    @patch('tablekit.server.connect')
    def test_connect_missing_database(self, connect):
        server = Server('db1', 3306, _database(count=0))
        with pytest.raises(ValidationError, match=r'Database \[reports\] not found'):
            server.connect('reports')
        connect.assert_not_called()

    @patch('tablekit.server.connect')
    def test_connect_creates_database(self, connect):
        primary = _database(count=0)
        reports = _database(name='reports')
        connect.return_value = reports
        server = Server('db1', 3306, primary)

        assert server.connect('reports', create=True) is reports
        primary.strategy.create_database.assert_called_once_with(primary, 'reports')

        options = connect.call_args.args[0]
        assert options.database == 'reports'
        assert options.hostname == 'db1'
        assert options.username == 'app'

    @patch('tablekit.server.connect')
    def test_connect_with_credentials(self, connect):
        server = Server('db1', 3306, _database())
        server.connect('reports', username='reader', password='ro')
        options = connect.call_args.args[0]
        assert (options.username, options.password) == ('reader', 'ro')

    @patch('tablekit.server.connect')
    def test_connect_returns_open_database(self, connect):
        connect.return_value = _database(name='reports')
        server = Server('db1', 3306, _database())
        first = server.connect('reports')
        second = server.connect('reports')
        assert first is second
        connect.assert_called_once()

    def test_delegates_to_primary(self):
        primary = _database()
        server = Server('db1', 3306, primary)
        server.count('t')
        server.init_table(object)
        primary.count.assert_called_once_with('t', None)
        primary.init_table.assert_called_once_with(object, None)

    def test_close_closes_catalog(self):
        primary = _database()
        other = _database(name='reports')
        server = Server('db1', 3306, primary)
        server.catalog['reports'] = other
        with server:
            pass
        primary.close.assert_called_once()
        other.close.assert_called_once()
        assert server.catalog == {}


class TestServerRegistry:

    @patch('tablekit.server.connect')
    def test_open_server_registers_by_host(self, connect):
        connect.return_value = _database(hostname='db1')
        registry = ServerRegistry()
        server = registry.open_server({'hostname': 'db1'})

        assert 'db1' in registry
        assert len(registry) == 1
        assert registry.server_by_name('db1') is server
        assert server.port == 0

    @patch('tablekit.server.connect')
    def test_replacing_server_closes_previous(self, connect):
        first_primary = _database()
        connect.side_effect = [first_primary, _database()]
        registry = ServerRegistry()
        registry.open_server({}, name='main')
        registry.open_server({}, name='main')

        first_primary.close.assert_called_once()
        assert len(registry) == 1

    @patch('tablekit.server.connect')
    def test_close_all(self, connect):
        primaries = [_database(hostname='a'), _database(hostname='b')]
        connect.side_effect = primaries
        with ServerRegistry() as registry:
            registry.open_server({})
            registry.open_server({})
            assert len(registry) == 2

        assert len(registry) == 0
        for primary in primaries:
            primary.close.assert_called_once()

    @patch('tablekit.server.connect')
    def test_open_server_from_config(self, connect):
        connect.return_value = _database(hostname='db1.internal', name='inventory')
        config = parse_config("""
<config>
  <server name="db1.internal" port="3306">
    <database name="inventory"><user>app</user><password>pw</password></database>
  </server>
</config>
""")
        registry = ServerRegistry()
        server = registry.open_server_from_config('db1.internal', 'inventory', config)

        options = connect.call_args.args[0]
        assert isinstance(options, DatabaseOptions)
        assert options.port == 3306
        assert registry.server_by_name('db1.internal') is server


if __name__ == '__main__':
    __import__('pytest').main([__file__])
