"""
Database connection handling with SQLAlchemy.

This module provides:
1. The `connect()` function for opening a database
2. The `Database` class wrapping one SQLAlchemy connection with statement,
   query and table helpers
3. Engine creation and management through a thread-safe registry

SQLAlchemy manages engines and pooling only; statements run on the raw DBAPI
connection through `Statement` / `RowCursor`, so every call gets the same
logging and error typing:

- prepare(sql) - Allocate a statement, `StatementPreparationError` on failure
- execute(sql, *args) - Execute and return affected row count
- query(sql, *args) - Execute and return a lazy `RowCursor`
- count / select / select_row - Statements built from table, columns, conditions
- init_table(record, guide) - Reconcile a table with a record type
"""
import atexit
import logging
import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import fields
from functools import wraps
from typing import TYPE_CHECKING, Any, Self, TypeVar

import sqlalchemy as sa
from sqlalchemy.engine import Engine
from sqlalchemy.pool import NullPool
from tablekit.cursor import RowCursor, Statement
from tablekit.exceptions import ConnectionFailure, DbConnectionError
from tablekit.exceptions import DriverError, StatementError
from tablekit.exceptions import StatementPreparationError, is_retryable_error
from tablekit.options import DatabaseOptions
from tablekit.schema.reconciler import ReconcileReport, init_table
from tablekit.sql import Condition, build_count, build_select
from tablekit.strategy import DatabaseStrategy, get_strategy

from libb import attrdict, load_options

if TYPE_CHECKING:
    from tablekit.schema.models import NameGuide

__all__ = [
    'Database',
    'connect',
    'check_connection',
    'get_engine_for_options',
    'dispose_all_engines',
]

logger = logging.getLogger(__name__)

T = TypeVar('T')
_engine_registry: dict[str, Engine] = {}
_engine_registry_lock = threading.RLock()


def check_connection(func: Callable[..., T] | None = None, *, max_retries: int = 3,
                     retry_delay: float = 1, retry_errors: type | tuple[type, ...] | None = None,
                     retry_backoff: float = 1.5,
                     sleep_func: Callable[[float], None] = time.sleep) -> Callable[..., T]:
    """Connection retry decorator with backoff.

    Retries transient connection errors (see `is_retryable_error`) with
    exponential backoff. Anything else is raised on the first failure.

    Supports both @check_connection and @check_connection() syntax.
    """
    def decorator(f: Callable[..., T]) -> Callable[..., T]:
        @wraps(f)
        def inner(*args: Any, **kwargs: Any) -> T:
            error_types = retry_errors if retry_errors is not None else DbConnectionError

            tries = 0
            delay = retry_delay
            while True:
                try:
                    return f(*args, **kwargs)
                except error_types as err:
                    tries += 1
                    if not is_retryable_error(err):
                        raise
                    if tries >= max_retries:
                        logger.error(f'Maximum retries ({max_retries}) exceeded: {err}')
                        raise
                    logger.warning(f'Connection error (attempt {tries}/{max_retries}): {err}')
                    sleep_func(delay)
                    delay *= retry_backoff

        return inner

    if func is None:
        return decorator
    return decorator(func)


def get_engine_for_options(options: DatabaseOptions,
                           engine_factory: Callable[..., Engine] = sa.create_engine,
                           **kwargs: Any) -> Engine:
    """Get or create a SQLAlchemy engine for the given options.
    """
    key = str(options)

    with _engine_registry_lock:
        if key in _engine_registry:
            logger.debug(f'Using existing engine for {options.drivername}')
            return _engine_registry[key]

        strategy = get_strategy(options.drivername)
        url = strategy.build_connection_url(options)

        engine_kwargs: dict[str, Any] = {'echo': False}
        engine_kwargs.update(strategy.get_engine_kwargs(options))

        if not options.use_pool:
            engine_kwargs['poolclass'] = NullPool
        else:
            engine_kwargs['pool_size'] = options.pool_max_connections
            engine_kwargs['pool_recycle'] = options.pool_max_idle_time
            engine_kwargs['pool_timeout'] = options.pool_wait_timeout
            engine_kwargs['pool_pre_ping'] = True

        engine_kwargs.update(kwargs)

        engine = engine_factory(url, **engine_kwargs)

        _engine_registry[key] = engine
        logger.debug(f'Created new engine for {options.drivername}')

        return engine


def dispose_all_engines() -> None:
    """Dispose all engines in the registry.
    """
    with _engine_registry_lock:
        for engine in list(_engine_registry.values()):
            engine.dispose()
        _engine_registry.clear()
        logger.debug('All database engines disposed')


atexit.register(dispose_all_engines)


class Database:
    """One open database: a SQLAlchemy connection plus query helpers.

    Tracks call counts and execution time, supports the context manager
    protocol, and commits every statement immediately unless inside
    `transaction()`.
    """

    def __init__(self, sa_connection: sa.engine.Connection,
                 options: DatabaseOptions) -> None:
        self.sa_connection = sa_connection
        self.options = options
        self.name = options.database
        self.dialect = options.drivername
        self.dbapi_connection = sa_connection.connection.dbapi_connection
        self.calls = 0
        self.time = 0
        self.in_transaction = False

    def __repr__(self) -> str:
        return f'Database({self.dialect}:{self.name})'

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None,
                 exc_tb: Any | None) -> None:
        self.close()

    @property
    def strategy(self) -> DatabaseStrategy:
        return get_strategy(self.dialect)

    @property
    def closed(self) -> bool:
        return self.sa_connection.closed

    def addcall(self, elapsed: float) -> None:
        """Track execution statistics
        """
        self.time += elapsed
        self.calls += 1

    def close(self) -> None:
        """Close the connection and log its statistics.
        """
        if self.sa_connection.closed:
            return
        self.sa_connection.close()
        logger.debug(f'Closed {self!r}: {self.calls} queries in {self.time:.2f}s '
                     f'(avg: {self.time/max(1,self.calls):.3f}s per query)')

    def prepare(self, sql: str) -> Statement:
        """Prepare a statement for this database.

        Placeholders are converted to the driver's style (`?` or `%s`). The
        caller must close the returned statement.
        """
        processed_sql = self.strategy.standardize_sql(sql)
        try:
            dbapi_cursor = self.dbapi_connection.cursor()
        except DriverError as err:
            raise StatementPreparationError('SQL Prepare', sql, err) from err
        return Statement(self, processed_sql, dbapi_cursor)

    def execute(self, sql: str, *args: Any) -> int:
        """Execute a statement and return the affected row count.
        """
        logger.debug(f'Executing {sql}')
        with self.prepare(sql) as statement:
            return statement.execute(*args)

    def query(self, sql: str, *args: Any) -> RowCursor:
        """Execute a query and return a lazy cursor over its rows.

        Close the cursor (or use it as a context manager) when done.
        """
        logger.debug(f'Querying {sql} with args {args}')
        statement = self.prepare(sql)
        try:
            return statement.query(*args)
        except Exception:
            statement.close()
            raise

    def query_row(self, sql: str, *args: Any) -> attrdict | None:
        """Execute a query and return its first row, or None if it has none.
        """
        with self.query(sql, *args) as cursor:
            return next(cursor.dicts(), None)

    def query_scalar(self, sql: str, *args: Any) -> Any:
        """Execute a query and return the first column of its first row.
        """
        with self.query(sql, *args) as cursor:
            row = cursor.scan()
        return row[0] if row is not None else None

    def exists_table(self, table: str) -> bool:
        """Check whether a table exists in this database.
        """
        try:
            return self.strategy.exists_table(self, table)
        except StatementError as err:
            raise err.rewrap('Table exists query') from err

    def get_columns(self, table: str) -> list[str]:
        """Read a table's column names from the live catalog.
        """
        return self.strategy.list_columns(self, table)

    def count(self, table: str, conditions: list[Condition] | None = None,
              *args: Any) -> int:
        """Count the rows of `table` matching `conditions`.
        """
        return int(self.query_scalar(build_count(table, conditions), *args) or 0)

    def select(self, table: str, columns: list[str],
               conditions: list[Condition] | None = None, *args: Any) -> Any:
        """Select `columns` from `table` and load the rows with the data loader.

        The matching rows are counted first and the query is skipped when
        there are none.
        """
        count = self.count(table, conditions, *args)
        if not count:
            return self.options.data_loader([], columns, table_name=table)
        with self.query(build_select(table, columns, conditions), *args) as cursor:
            return self.options.data_loader(list(cursor), cursor.columns, table_name=table)

    def select_row(self, table: str, columns: list[str],
                   conditions: list[Condition] | None = None, *args: Any) -> attrdict | None:
        """Select the first matching row, or None if nothing matches.
        """
        if not self.count(table, conditions, *args):
            return None
        return self.query_row(build_select(table, columns, conditions), *args)

    def init_table(self, record: Any, guide: 'NameGuide | None' = None) -> ReconcileReport:
        """Create or update the table backing a record type.
        """
        return init_table(self, record, guide)

    @contextmanager
    def transaction(self) -> Iterator[Self]:
        """Run the enclosed statements in one transaction.

        Commits on success and rolls back when the block raises. Nested
        transactions are not supported.

        Examples
            with db.transaction():
                db.execute('delete from ...', args)
                db.execute('update ...', args)
        """
        if self.in_transaction:
            raise RuntimeError('Nested transactions are not supported')

        self.strategy.disable_autocommit(self.dbapi_connection)
        self.in_transaction = True
        logger.debug(f'Started transaction on {self!r}')
        try:
            yield self
        except BaseException:
            self.dbapi_connection.rollback()
            logger.warning('Rolling back the current transaction')
            raise
        else:
            self.dbapi_connection.commit()
            logger.debug(f'Committed transaction on {self!r}')
        finally:
            self.in_transaction = False
            self.strategy.enable_autocommit(self.dbapi_connection)


def _ping(database: Database) -> None:
    """Run a trivial query to prove the connection is live."""
    try:
        database.query_scalar('SELECT 1')
    except StatementError as err:
        raise ConnectionFailure(f'Ping of {database!r} failed: {err.cause}') from err


@check_connection
def _open(options: DatabaseOptions) -> Database:
    engine = get_engine_for_options(options)
    sa_connection = engine.connect()
    database = Database(sa_connection, options)
    try:
        database.strategy.configure_connection(database.dbapi_connection)
        if options.check_connection:
            _ping(database)
    except Exception:
        database.close()
        raise
    return database


@load_options(cls=DatabaseOptions)
def connect(options: DatabaseOptions | dict[str, Any] | str,
            config: Any | None = None, **kw: Any) -> Database:
    """Open a database.

    Args:
        options: Can be:
                - DatabaseOptions object
                - String name of a setting in `config`
                - Dictionary of options
                - Options specified as keyword arguments
        config: Configuration object (for loading from config files)
        **kw: Additional keyword arguments to override options

    Returns
        Database wrapping the new connection

    Raises
        ConnectionFailure: If the connection cannot be opened or pinged
    """
    if isinstance(options, DatabaseOptions):
        for field in fields(options):
            kw.pop(field.name, None)
    else:
        options_func = load_options(cls=DatabaseOptions)(lambda o, c: o)
        options = options_func(options, config, **kw)

    logger.debug(f'Opening database {options.hostname or "local"}/{options.database}')
    try:
        return _open(options)
    except DbConnectionError as err:
        raise ConnectionFailure(f'Could not open {options.drivername} database '
                                f'{options.database}: {err}') from err
