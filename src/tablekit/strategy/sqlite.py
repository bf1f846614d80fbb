"""
SQLite-specific strategy implementation.

This module implements the DatabaseStrategy interface with SQLite-specific operations.
It handles SQLite's unique features and limitations such as:
- One database per file, so there is no server catalog to query or create in
- Metadata retrieval using sqlite_master and PRAGMA table functions
- RENAME COLUMN (SQLite 3.25+) for renames
- No way to alter an existing column's type in place
"""
import logging
import pathlib
import sqlite3
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa
from tablekit.strategy.base import DatabaseStrategy, register_strategy

if TYPE_CHECKING:
    from tablekit.connection import Database
    from tablekit.options import DatabaseOptions

logger = logging.getLogger(__name__)

MEMORY = ':memory:'


@register_strategy('sqlite')
class SQLiteStrategy(DatabaseStrategy):
    """SQLite-specific operations.
    """

    @property
    def dialect_name(self) -> str:
        """Return the dialect identifier for SQLite."""
        return 'sqlite'

    def build_connection_url(self, options: 'DatabaseOptions') -> sa.URL:
        """Build the SQLAlchemy connection URL for SQLite."""
        return sa.URL.create(drivername='sqlite', database=options.database)

    def get_engine_kwargs(self, options: 'DatabaseOptions') -> dict[str, Any]:
        """Return SQLAlchemy create_engine kwargs for SQLite."""
        return {
            'connect_args': {
                'detect_types': sqlite3.PARSE_DECLTYPES | sqlite3.PARSE_COLNAMES
            }
        }

    @classmethod
    def get_required_options(cls) -> list[str]:
        """Return required options for SQLite connections."""
        return ['database']

    def configure_connection(self, raw_conn: Any) -> None:
        """Configure connection settings for SQLite.
        """
        raw_conn.execute('PRAGMA foreign_keys = ON')
        self.enable_autocommit(raw_conn)

    def enable_autocommit(self, raw_conn: Any) -> None:
        """Enable auto-commit mode for SQLite.
        """
        raw_conn.isolation_level = None

    def disable_autocommit(self, raw_conn: Any) -> None:
        """Disable auto-commit mode for SQLite.
        """
        raw_conn.isolation_level = 'DEFERRED'

    def columns_query(self, cn: 'Database', table: str) -> tuple[str, tuple]:
        return 'select name from pragma_table_info(?)', (table,)

    def exists_table(self, cn: 'Database', table: str) -> bool:
        sql = "select count(*) from sqlite_master where type = 'table' and name = ?"
        return cn.query_scalar(sql, table) == 1

    def count_databases(self, cn: 'Database', name: str) -> int:
        """A SQLite database exists when its file does.
        """
        if name == MEMORY:
            return 1
        return int(pathlib.Path(name).is_file())

    def create_database(self, cn: 'Database', name: str) -> None:
        """SQLite creates the database file on first connect.
        """
        logger.debug(f'Database {name} will be created on connect')

    def modify_column_sql(self, table: str, name: str, sql_type: str) -> None:
        """SQLite cannot change a column definition in place.
        """
        return None
