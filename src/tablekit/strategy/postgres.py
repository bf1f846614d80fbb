"""
PostgreSQL-specific strategy implementation.

Catalog reads are scoped to `current_schema()`. PostgreSQL renames with
RENAME COLUMN and changes a column type with ALTER COLUMN ... TYPE, so
`sql_type` of a modify-in-place field must be a bare type expression there.
"""
import logging
import re
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa
from tablekit.exceptions import ConfigurationError
from tablekit.strategy.base import DatabaseStrategy, register_strategy

if TYPE_CHECKING:
    from tablekit.connection import Database
    from tablekit.options import DatabaseOptions
    from tablekit.schema.models import TargetSchema

logger = logging.getLogger(__name__)

# Column clauses ALTER COLUMN ... TYPE does not accept
_CONSTRAINT_CLAUSE = re.compile(
    r'\b(not\s+null|null|default|primary\s+key|unique|check|references|generated|constraint)\b',
    re.IGNORECASE)


@register_strategy('postgresql')
class PostgresStrategy(DatabaseStrategy):
    """PostgreSQL-specific operations.
    """

    database_catalog = 'pg_database'
    database_name_column = 'datname'

    @property
    def dialect_name(self) -> str:
        """Return the dialect identifier for PostgreSQL."""
        return 'postgresql'

    def build_connection_url(self, options: 'DatabaseOptions') -> sa.URL:
        """Build the SQLAlchemy connection URL for PostgreSQL."""
        query = {}
        if options.timeout:
            query['connect_timeout'] = str(options.timeout)

        return sa.URL.create(
            drivername='postgresql+psycopg',
            username=options.username,
            password=options.password,
            host=options.hostname,
            port=options.port,
            database=options.database,
            query=query,
        )

    def get_engine_kwargs(self, options: 'DatabaseOptions') -> dict[str, Any]:
        """Return SQLAlchemy create_engine kwargs for PostgreSQL."""
        return {}

    @classmethod
    def get_required_options(cls) -> list[str]:
        """Return required options for PostgreSQL connections."""
        return ['hostname', 'username', 'password', 'database', 'port']

    def configure_connection(self, raw_conn: Any) -> None:
        """Configure connection settings for PostgreSQL.
        """
        self.enable_autocommit(raw_conn)

    def enable_autocommit(self, raw_conn: Any) -> None:
        """Enable auto-commit mode for PostgreSQL.
        """
        raw_conn.autocommit = True

    def disable_autocommit(self, raw_conn: Any) -> None:
        """Disable auto-commit mode for PostgreSQL.
        """
        raw_conn.autocommit = False

    def columns_query(self, cn: 'Database', table: str) -> tuple[str, tuple]:
        sql = """
select column_name from information_schema.columns
where table_schema = current_schema() and table_name = %s
"""
        return sql, (table,)

    def exists_table(self, cn: 'Database', table: str) -> bool:
        sql = """
select count(*) from information_schema.tables
where table_schema = current_schema() and table_name = %s
"""
        return cn.query_scalar(sql, table) == 1

    def create_database(self, cn: 'Database', name: str) -> None:
        """Create the database unless pg_database already lists it.

        PostgreSQL has no CREATE DATABASE IF NOT EXISTS and refuses to run it
        inside a transaction block.
        """
        if self.count_databases(cn, name):
            logger.debug(f'Database {name} already exists')
            return
        cn.execute(f'create database {self.quote_identifier(name)}')

    def modify_column_sql(self, table: str, name: str, sql_type: str) -> str:
        return (f'ALTER TABLE {self.quote_identifier(table)} '
                f'ALTER COLUMN {self.quote_identifier(name)} TYPE {sql_type}')

    def validate_schema(self, schema: 'TargetSchema') -> None:
        """Modify-in-place fields must declare a bare type.

        Raises
            ConfigurationError: If such a field carries a constraint clause
        """
        for spec in schema.fields:
            if spec.modify_in_place and _CONSTRAINT_CLAUSE.search(spec.sql_type):
                raise ConfigurationError(
                    f'Column {schema.table_name}.{spec.name} is modified in place and needs '
                    f'a bare type on postgresql, got {spec.sql_type!r}')
