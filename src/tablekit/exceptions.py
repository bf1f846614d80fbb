"""
Database-specific exception classes.
"""
import re
import sqlite3

import psycopg
import pymysql
from sqlalchemy import exc as sa_exc

RETRYABLE_PATTERNS = [
    # SSL/TLS errors
    r'ssl',
    r'tls',
    # Connection drops
    r'connection.*(closed|reset|refused|lost|terminated|broken)',
    r'server closed',
    r'server has gone away',
    r'lost connection',
    r'broken pipe',
    # Timeouts
    r'timeout',
    r'timed out',
    # Network issues
    r'could not connect',
    r"can't connect",
    r'no route to host',
    r'network.*(unreachable|error)',
    r'host.*(unreachable|down)',
    # Database unavailable
    r'database.*unavailable',
    r'too many connections',
]

_RETRYABLE_REGEX = re.compile('|'.join(RETRYABLE_PATTERNS), re.IGNORECASE)


def is_retryable_error(exc: BaseException) -> bool:
    """Check if an exception represents a transient error worth retrying.

    Returns True for errors that are likely transient (dropped connections,
    timeouts, network trouble, an overloaded server) and False for errors
    that will fail again (syntax, constraints, permissions).

    :param exc: The exception to check.
    :returns: True if the error is likely transient and worth retrying.
    """
    error_msg = str(exc).lower()
    return bool(_RETRYABLE_REGEX.search(error_msg))


class DatabaseError(Exception):
    """Base class for all tablekit errors.
    """


class ConnectionFailure(DatabaseError):
    """Error opening or pinging a database connection.
    """


class ValidationError(DatabaseError):
    """Error in input validation or an unexpected catalog answer.
    """


class ConfigurationError(DatabaseError):
    """Invalid connection configuration or schema declaration.
    """


class StatementError(DatabaseError):
    """Error tied to one SQL statement.

    Carries the operation that failed, the statement text and the
    underlying driver error.
    """

    def __init__(self, operation: str, statement: str, cause: BaseException | None = None) -> None:
        self.operation = operation
        self.statement = statement
        self.cause = cause
        super().__init__(str(self))

    def __str__(self) -> str:
        return f'Operation: {self.operation}\nStatement: {self.statement}\nError: {self.cause}'

    def rewrap(self, operation: str) -> 'StatementError':
        """Return the same kind of error reported under another operation.
        """
        return type(self)(operation, self.statement, self.cause)


class StatementPreparationError(StatementError):
    """The driver could not prepare a statement.
    """


class StatementExecutionError(StatementError):
    """The driver failed while executing a prepared statement.
    """


class IntrospectionError(StatementError):
    """Listing a table's columns failed or returned malformed rows.
    """


DbConnectionError = (
    sa_exc.OperationalError,
    sa_exc.InterfaceError,
    psycopg.OperationalError,
    psycopg.InterfaceError,
    pymysql.OperationalError,
    pymysql.InterfaceError,
    sqlite3.OperationalError,
    sqlite3.InterfaceError,
    )

DriverError = (
    sa_exc.DBAPIError,
    psycopg.Error,
    pymysql.Error,
    sqlite3.Error,
    )
