"""
MySQL-specific strategy implementation.

Connections go through PyMySQL with utf8mb4 charset and a binary collation by
default. Catalog reads use information_schema scoped to the connected
database; column renames use CHANGE COLUMN, which restates the column type.
"""
import logging
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa
from tablekit.strategy.base import DatabaseStrategy, register_strategy

if TYPE_CHECKING:
    from tablekit.connection import Database
    from tablekit.options import DatabaseOptions

logger = logging.getLogger(__name__)

DEFAULT_PORT = 3306


@register_strategy('mysql')
class MySQLStrategy(DatabaseStrategy):
    """MySQL-specific operations.
    """

    database_catalog = 'information_schema.schemata'
    database_name_column = 'schema_name'

    @property
    def dialect_name(self) -> str:
        """Return the dialect identifier for MySQL."""
        return 'mysql'

    def build_connection_url(self, options: 'DatabaseOptions') -> sa.URL:
        """Build the SQLAlchemy connection URL for MySQL."""
        return sa.URL.create(
            drivername='mysql+pymysql',
            username=options.username,
            password=options.password,
            host=options.hostname,
            port=options.port or DEFAULT_PORT,
            database=options.database,
            query={'charset': options.charset} if options.charset else {},
        )

    def get_engine_kwargs(self, options: 'DatabaseOptions') -> dict[str, Any]:
        """Return SQLAlchemy create_engine kwargs for MySQL."""
        connect_args = {}
        if options.collation:
            connect_args['collation'] = options.collation
        if options.timeout:
            connect_args['connect_timeout'] = options.timeout
        return {'connect_args': connect_args} if connect_args else {}

    @classmethod
    def get_required_options(cls) -> list[str]:
        """Return required options for MySQL connections."""
        return ['hostname', 'username', 'database']

    def configure_connection(self, raw_conn: Any) -> None:
        """Configure connection settings for MySQL.
        """
        self.enable_autocommit(raw_conn)

    def enable_autocommit(self, raw_conn: Any) -> None:
        """Enable auto-commit mode for MySQL.
        """
        raw_conn.autocommit(True)

    def disable_autocommit(self, raw_conn: Any) -> None:
        """Disable auto-commit mode for MySQL.
        """
        raw_conn.autocommit(False)

    def columns_query(self, cn: 'Database', table: str) -> tuple[str, tuple]:
        sql = """
SELECT column_name FROM information_schema.columns
WHERE table_schema = %s AND table_name = %s
"""
        return sql, (cn.name, table)

    def exists_table(self, cn: 'Database', table: str) -> bool:
        """Check for the table in the connected schema.
        """
        sql = """
SELECT COUNT(*) FROM information_schema.tables
WHERE table_schema = %s AND table_name = %s
"""
        return cn.query_scalar(sql, cn.name, table) == 1

    def create_database(self, cn: 'Database', name: str) -> None:
        """Create the database with CREATE DATABASE IF NOT EXISTS.
        """
        cn.execute(f'CREATE DATABASE IF NOT EXISTS {self.quote_identifier(name)}')

    def rename_column_sql(self, table: str, old: str, new: str, sql_type: str) -> str:
        """Rename with CHANGE COLUMN, restating the column definition.
        """
        return (f'ALTER TABLE {self.quote_identifier(table)} '
                f'CHANGE COLUMN {self.quote_identifier(old)} {self.quote_identifier(new)} {sql_type}')

    def modify_column_sql(self, table: str, name: str, sql_type: str) -> str:
        return (f'ALTER TABLE {self.quote_identifier(table)} '
                f'MODIFY {self.quote_identifier(name)} {sql_type}')
