"""
Servers hosting several databases, and the registry that owns them.

A `Server` is opened through its primary database. Further databases on the
same host are opened with `Server.connect` and kept in the server's catalog
until `Server.close`. A `ServerRegistry` maps server names to open servers
and closes them all together:

    with ServerRegistry() as registry:
        server = registry.open_server_from_config('db1.internal', 'inventory', 'servers.xml')
        reports = server.connect('reports', create=True)
        server.init_table(Account)
"""
import dataclasses
import logging
import pathlib
from typing import Any, Self

from tablekit.config import ServerConfig, load_config
from tablekit.connection import Database, connect
from tablekit.cursor import RowCursor
from tablekit.exceptions import ConnectionFailure, ValidationError
from tablekit.options import DatabaseOptions
from tablekit.schema.models import NameGuide
from tablekit.schema.reconciler import ReconcileReport
from tablekit.sql import Condition

from libb import attrdict

__all__ = ['Server', 'ServerRegistry']

logger = logging.getLogger(__name__)


class Server:
    """A database server reached through its primary database.
    """

    def __init__(self, name: str, port: int, primary: Database | None) -> None:
        self.name = name
        self.port = port
        self.primary = primary
        self.catalog: dict[str, Database] = {}
        if primary is not None:
            self.catalog[primary.name] = primary

    def __repr__(self) -> str:
        return f'Server({self.name}:{self.port})'

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @classmethod
    def open(cls, options: DatabaseOptions | dict[str, Any] | str,
             config: Any | None = None, **kw: Any) -> 'Server':
        """Open a server by connecting to its primary database.
        """
        primary = connect(options, config=config, **kw)
        name = primary.options.hostname or 'localhost'
        logger.info(f'Connected to primary {name}:{primary.options.port}:{primary.name} '
                    f'with user {primary.options.username}')
        return cls(name, primary.options.port, primary)

    def database_by_name(self, name: str) -> Database | None:
        return self.catalog.get(name)

    def _require_primary(self) -> Database:
        if self.primary is None or self.primary.closed:
            raise ConnectionFailure(f'Primary database not set for {self!r}')
        return self.primary

    def verify(self, db_name: str) -> bool:
        """Check that exactly one database called `db_name` exists.

        Raises
            ValidationError: If the catalog reports more than one match
        """
        logger.debug(f'Verifying database {db_name}')
        primary = self._require_primary()
        count = primary.strategy.count_databases(primary, db_name)
        if count > 1:
            raise ValidationError(f'Invalid database count? [{count}]')
        return count == 1

    def connect(self, db_name: str, username: str | None = None,
                password: str | None = None, create: bool = False) -> Database:
        """Open (or return the already open) database `db_name` on this server.

        Credentials default to the primary's. With `create`, a missing
        database is created first; otherwise it raises ValidationError.
        """
        primary = self._require_primary()
        logger.info(f'Connecting to {self.name}:{self.port}:{db_name} '
                    f'with user {username or primary.options.username}')

        database = self.database_by_name(db_name)
        if database is not None and not database.closed:
            return database

        if not self.verify(db_name):
            if not create:
                raise ValidationError(f'Database [{db_name}] not found')
            primary.strategy.create_database(primary, db_name)

        options = dataclasses.replace(
            primary.options,
            database=db_name,
            username=username or primary.options.username,
            password=password or primary.options.password,
            )
        database = connect(options)
        self.catalog[db_name] = database
        return database

    def execute(self, sql: str, *args: Any) -> int:
        return self._require_primary().execute(sql, *args)

    def query(self, sql: str, *args: Any) -> RowCursor:
        return self._require_primary().query(sql, *args)

    def query_row(self, sql: str, *args: Any) -> attrdict | None:
        return self._require_primary().query_row(sql, *args)

    def exists_table(self, table: str) -> bool:
        return self._require_primary().exists_table(table)

    def count(self, table: str, conditions: list[Condition] | None = None, *args: Any) -> int:
        return self._require_primary().count(table, conditions, *args)

    def select(self, table: str, columns: list[str],
               conditions: list[Condition] | None = None, *args: Any) -> Any:
        return self._require_primary().select(table, columns, conditions, *args)

    def select_row(self, table: str, columns: list[str],
                   conditions: list[Condition] | None = None, *args: Any) -> attrdict | None:
        return self._require_primary().select_row(table, columns, conditions, *args)

    def init_table(self, record: Any, guide: NameGuide | None = None) -> ReconcileReport:
        return self._require_primary().init_table(record, guide)

    def close(self) -> None:
        """Close every database opened on this server.
        """
        logger.debug(f'Closing server {self.name}/{self.port}')
        for name, database in self.catalog.items():
            logger.debug(f'Closing database {name}')
            database.close()
        self.catalog.clear()


class ServerRegistry:
    """Open servers by name, with a single `close_all`.
    """

    def __init__(self) -> None:
        self._servers: dict[str, Server] = {}

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close_all()

    def __contains__(self, name: str) -> bool:
        return name in self._servers

    def __len__(self) -> int:
        return len(self._servers)

    def _register(self, name: str, server: Server) -> Server:
        previous = self._servers.get(name)
        if previous is not None and previous is not server:
            logger.warning(f'Replacing open server {name}')
            previous.close()
        self._servers[name] = server
        return server

    def open_server(self, options: DatabaseOptions | dict[str, Any] | str,
                    config: Any | None = None, *, name: str | None = None,
                    **kw: Any) -> Server:
        """Open a server and register it under `name` (its host by default).
        """
        server = Server.open(options, config=config, **kw)
        return self._register(name or server.name, server)

    def open_server_from_config(self, server: str, database: str,
                                source: ServerConfig | str | pathlib.Path) -> Server:
        """Open `server` with its `database` as primary, as listed in an XML
        config file or a parsed `ServerConfig`.
        """
        config = source if isinstance(source, ServerConfig) else load_config(source)
        return self.open_server(config.options_for(server, database), name=server)

    def server_by_name(self, name: str) -> Server | None:
        return self._servers.get(name)

    def close_all(self) -> None:
        """Close every registered server.
        """
        for server in self._servers.values():
            server.close()
        self._servers.clear()
