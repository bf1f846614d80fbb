"""
Thin database access layer for MySQL, PostgreSQL and SQLite with schema
reconciliation.

All operations can be called either as:
- Module functions: tk.execute(db, sql, *args)
- Database methods: db.execute(sql, *args)
"""
__version__ = '0.1.0'

from typing import Any

from tablekit.config import ServerConfig, load_config, parse_config
from tablekit.connection import Database, connect
from tablekit.cursor import RowCursor, Statement
from tablekit.exceptions import ConfigurationError, ConnectionFailure
from tablekit.exceptions import DatabaseError, IntrospectionError
from tablekit.exceptions import StatementError, StatementExecutionError
from tablekit.exceptions import StatementPreparationError, ValidationError
from tablekit.options import DatabaseOptions, iterdict_data_loader
from tablekit.options import pandas_data_loader
from tablekit.schema import FieldSpec, NameGuide, ReconcileReport
from tablekit.schema import TargetSchema, column, reconcile
from tablekit.server import Server, ServerRegistry
from tablekit.sql import Condition


def execute(db: Database, sql: str, *args: Any) -> int:
    """Execute a statement and return the affected row count.
    """
    return db.execute(sql, *args)


delete = execute
insert = execute
update = execute


def query(db: Database, sql: str, *args: Any) -> RowCursor:
    """Execute a query and return a lazy cursor over its rows.
    """
    return db.query(sql, *args)


def query_row(db: Database, sql: str, *args: Any) -> Any:
    """Execute a query and return its first row or None.
    """
    return db.query_row(sql, *args)


def exists_table(db: Database, table: str) -> bool:
    """Check whether a table exists.
    """
    return db.exists_table(table)


def count(db: Database, table: str, conditions: list[Condition] | None = None,
          *args: Any) -> int:
    """Count rows of a table matching the conditions.
    """
    return db.count(table, conditions, *args)


def select(db: Database, table: str, columns: list[str],
           conditions: list[Condition] | None = None, *args: Any) -> Any:
    """Select columns from a table, skipping the query when nothing matches.
    """
    return db.select(table, columns, conditions, *args)


def select_row(db: Database, table: str, columns: list[str],
               conditions: list[Condition] | None = None, *args: Any) -> Any:
    """Select the first matching row or None.
    """
    return db.select_row(table, columns, conditions, *args)


def init_table(db: Database, record: Any, guide: NameGuide | None = None) -> ReconcileReport:
    """Create or update the table backing a dataclass record.
    """
    return db.init_table(record, guide)


__all__ = [
    'connect',
    'Database',
    'DatabaseOptions',
    'Server',
    'ServerRegistry',
    'ServerConfig',
    'load_config',
    'parse_config',
    'Statement',
    'RowCursor',
    'Condition',
    'execute',
    'delete',
    'insert',
    'update',
    'query',
    'query_row',
    'exists_table',
    'count',
    'select',
    'select_row',
    'init_table',
    'reconcile',
    'column',
    'FieldSpec',
    'TargetSchema',
    'NameGuide',
    'ReconcileReport',
    'iterdict_data_loader',
    'pandas_data_loader',
    'DatabaseError',
    'ConnectionFailure',
    'ConfigurationError',
    'ValidationError',
    'StatementError',
    'StatementPreparationError',
    'StatementExecutionError',
    'IntrospectionError',
]
