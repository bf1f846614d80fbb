"""
Prepared statements and row cursors over DB-API 2.0 (PEP-249) cursors.

A `Statement` owns one driver cursor for one SQL text. Executing it returns
the affected row count; querying it hands the cursor to a `RowCursor`, a
lazy single-pass row sequence that must be closed (it is a context manager).
Driver failures are re-raised as `StatementExecutionError` carrying the
operation and statement text.
"""
import logging
import time
from collections.abc import Iterator
from functools import wraps
from typing import TYPE_CHECKING, Any

from tablekit.exceptions import DriverError, StatementExecutionError

from libb import attrdict

if TYPE_CHECKING:
    from tablekit.connection import Database

logger = logging.getLogger(__name__)


def dumpsql(operation: str):
    """Decorator for logging SQL, timing it and typing driver failures."""
    def decorator(func):
        @wraps(func)
        def wrapper(self, *args: Any):
            start = time.time()
            logger.debug(f'SQL:\n{self.sql}\nargs: {args}')
            try:
                return func(self, *args)
            except DriverError as err:
                logger.error(f'Error with query:\nSQL:\n{self.sql}\nargs: {args}')
                raise StatementExecutionError(operation, self.sql, err) from err
            finally:
                elapsed = time.time() - start
                self.database.addcall(elapsed)
                logger.debug(f'Query time: {elapsed:.4f}s')
        return wrapper
    return decorator


class Statement:
    """A statement prepared against one database connection.

    Close it when done; `execute` and `query` are usually reached through
    `Database.execute` / `Database.query`, which handle that.
    """

    def __init__(self, database: 'Database', sql: str, dbapi_cursor: Any) -> None:
        self.database = database
        self.sql = sql
        self.dbapi_cursor = dbapi_cursor
        self.closed = False

    def __enter__(self) -> 'Statement':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _run(self, args: tuple) -> None:
        if args:
            self.dbapi_cursor.execute(self.sql, args)
        else:
            self.dbapi_cursor.execute(self.sql)

    @dumpsql('SQL Execute')
    def execute(self, *args: Any) -> int:
        """Execute and return the affected row count."""
        self._run(args)
        return self.dbapi_cursor.rowcount

    @dumpsql('SQL Query')
    def query(self, *args: Any) -> 'RowCursor':
        """Execute and return a cursor over the result rows.

        The returned cursor takes over this statement and closes it.
        """
        self._run(args)
        return RowCursor(self)

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self.dbapi_cursor.close()


class RowCursor:
    """Lazy, single-pass cursor over query results.

    Iterating yields row tuples; `scan` returns the next one or None when the
    cursor is exhausted. `dicts` yields attribute dictionaries instead.
    """

    def __init__(self, statement: Statement) -> None:
        self.statement = statement
        description = statement.dbapi_cursor.description or []
        self.columns = [desc[0] for desc in description]

    def __enter__(self) -> 'RowCursor':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __iter__(self) -> Iterator[tuple]:
        while (row := self.scan()) is not None:
            yield row

    @property
    def closed(self) -> bool:
        return self.statement.closed

    def scan(self) -> tuple | None:
        """Return the next row as a tuple, or None when exhausted."""
        if self.closed:
            return None
        try:
            row = self.statement.dbapi_cursor.fetchone()
        except DriverError as err:
            raise StatementExecutionError('SQL Fetch', self.statement.sql, err) from err
        return tuple(row) if row is not None else None

    def fetchone(self) -> tuple | None:
        return self.scan()

    def fetchall(self) -> list[tuple]:
        """Return all remaining rows."""
        return list(self)

    def dicts(self) -> Iterator[attrdict]:
        """Yield remaining rows as attribute dictionaries keyed by column."""
        for row in self:
            yield attrdict(zip(self.columns, row))

    def close(self) -> None:
        """Release the underlying statement."""
        self.statement.close()
