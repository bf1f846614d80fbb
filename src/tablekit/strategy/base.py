"""
Base strategy interface for database operations.

Defines the abstract base class that all database-specific strategy implementations
must inherit from. Each concrete strategy knows how to reach its server
(connection URL, engine arguments, autocommit handling), how to read its
catalog (table existence, column names, database existence) and how to spell
the DDL used by the schema reconciler.

Catalog reads go through the `Database` wrapper so they share its logging and
error typing. Identifiers are quoted here; values always travel as parameters.
"""
import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa
from tablekit.exceptions import IntrospectionError, StatementError
from tablekit.sql import Condition
from tablekit.sql import quote_identifier as sql_quote_identifier
from tablekit.sql import standardize_placeholders

if TYPE_CHECKING:
    from tablekit.connection import Database
    from tablekit.options import DatabaseOptions
    from tablekit.schema.models import TargetSchema

logger = logging.getLogger(__name__)

# Registry of dialect name -> strategy class
# Defined here to avoid circular imports (concrete strategies import from base)
_STRATEGY_REGISTRY: dict[str, type['DatabaseStrategy']] = {}


def register_strategy(dialect: str):
    """Decorator to register a strategy class for a dialect.

    Usage:
        @register_strategy('mysql')
        class MySQLStrategy(DatabaseStrategy):
            ...
    """
    def decorator(cls: type['DatabaseStrategy']) -> type['DatabaseStrategy']:
        _STRATEGY_REGISTRY[dialect] = cls
        return cls
    return decorator


class DatabaseStrategy(ABC):
    """Base class for database-specific operations.
    """

    # Catalog table and column consulted by `count_databases`
    database_catalog: str | None = None
    database_name_column: str | None = None

    @property
    @abstractmethod
    def dialect_name(self) -> str:
        """Return the dialect identifier (e.g., 'mysql', 'sqlite')."""

    @abstractmethod
    def build_connection_url(self, options: 'DatabaseOptions') -> sa.URL:
        """Build the database connection URL for this dialect.

        Args:
            options: DatabaseOptions containing connection parameters

        Returns
            SQLAlchemy URL
        """

    @abstractmethod
    def get_engine_kwargs(self, options: 'DatabaseOptions') -> dict[str, Any]:
        """Return SQLAlchemy create_engine kwargs for this dialect.

        Args:
            options: DatabaseOptions containing connection parameters

        Returns
            Dictionary of keyword arguments for create_engine
        """

    @abstractmethod
    def configure_connection(self, raw_conn: Any) -> None:
        """Configure connection settings.

        Args:
            raw_conn: The raw DBAPI connection (not wrapped)
        """

    @abstractmethod
    def enable_autocommit(self, raw_conn: Any) -> None:
        """Enable auto-commit mode on a raw database connection.

        Args:
            raw_conn: The raw DBAPI connection (not wrapped)
        """

    @abstractmethod
    def disable_autocommit(self, raw_conn: Any) -> None:
        """Disable auto-commit mode on a raw database connection.

        Args:
            raw_conn: The raw DBAPI connection (not wrapped)
        """

    @classmethod
    @abstractmethod
    def get_required_options(cls) -> list[str]:
        """Return list of required option field names for this dialect.

        Returns
            List of field names that must have non-None/non-zero values
        """

    @classmethod
    def validate_options(cls, options: 'DatabaseOptions') -> None:
        """Validate options for this dialect.

        Args:
            options: DatabaseOptions to validate

        Raises
            ValueError: If any required field is None or 0
        """
        for field in cls.get_required_options():
            if not getattr(options, field):
                raise ValueError(f'field {field} cannot be None or 0')

    def quote_identifier(self, identifier: str) -> str:
        """Quote a database identifier for this dialect.
        """
        return sql_quote_identifier(identifier, self.dialect_name)

    def standardize_sql(self, sql: str) -> str:
        """Rewrite positional placeholders to the driver's marker.
        """
        return standardize_placeholders(sql, self.dialect_name)

    # Catalog reads

    @abstractmethod
    def columns_query(self, cn: 'Database', table: str) -> tuple[str, tuple]:
        """Return the statement and parameters listing a table's column names.

        Args:
            cn: Database the table lives in
            table: Unquoted table name
        """

    @abstractmethod
    def exists_table(self, cn: 'Database', table: str) -> bool:
        """Check whether a table exists in the connected database.

        Args:
            cn: Database connection object
            table: Unquoted table name
        """

    def list_columns(self, cn: 'Database', table: str) -> list[str]:
        """Read the live column names of a table, unordered.

        Raises
            IntrospectionError: If the catalog query fails or returns rows
            that are not column names
        """
        sql, params = self.columns_query(cn, table)
        try:
            with cn.query(sql, *params) as rows:
                fetched = list(rows)
        except StatementError as err:
            raise IntrospectionError('list columns', err.statement, err.cause) from err

        columns = []
        for row in fetched:
            if not row:
                raise IntrospectionError(
                    'list columns', sql, ValueError(f'Empty catalog row for {table}'))
            name = row[0]
            if isinstance(name, bytes):
                name = name.decode()
            if not isinstance(name, str) or not name:
                raise IntrospectionError(
                    'list columns', sql, ValueError(f'Malformed column name {name!r} for {table}'))
            columns.append(name)
        logger.debug(f'Table {table} has columns {columns}')
        return columns

    def count_databases(self, cn: 'Database', name: str) -> int:
        """Count databases called `name` visible from this connection.
        """
        return cn.count(self.database_catalog,
                        [Condition(f'{self.database_name_column} = %s')], name)

    @abstractmethod
    def create_database(self, cn: 'Database', name: str) -> None:
        """Create a database on the connected server if it is missing.

        Args:
            cn: Connection to an existing database on the server
            name: Name of the database to create
        """

    # DDL used by the schema reconciler

    def validate_schema(self, schema: 'TargetSchema') -> None:
        """Reject declarations this dialect cannot apply.

        Called before any statement is issued.

        Raises
            ConfigurationError: If a field cannot be reconciled on this dialect
        """

    def create_table_sql(self, table: str, columns: list[tuple[str, str]]) -> str:
        """Return CREATE TABLE IF NOT EXISTS for `(name, sql_type)` pairs.
        """
        defs = ', '.join(f'{self.quote_identifier(name)} {sql_type}' for name, sql_type in columns)
        return f'CREATE TABLE IF NOT EXISTS {self.quote_identifier(table)} ({defs})'

    def add_column_sql(self, table: str, name: str, sql_type: str) -> str:
        """Return ALTER TABLE ... ADD COLUMN.
        """
        return (f'ALTER TABLE {self.quote_identifier(table)} '
                f'ADD COLUMN {self.quote_identifier(name)} {sql_type}')

    def rename_column_sql(self, table: str, old: str, new: str, sql_type: str) -> str:
        """Return the statement renaming column `old` to `new`.

        The default spelling cannot restate the column type, so `sql_type`
        is ignored.
        """
        return (f'ALTER TABLE {self.quote_identifier(table)} '
                f'RENAME COLUMN {self.quote_identifier(old)} TO {self.quote_identifier(new)}')

    @abstractmethod
    def modify_column_sql(self, table: str, name: str, sql_type: str) -> str | None:
        """Return the statement re-asserting a column's type, or None if the
        dialect cannot alter a column in place.
        """
