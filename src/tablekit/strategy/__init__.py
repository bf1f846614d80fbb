"""
Dialect strategies.

One strategy instance per dialect name (`mysql`, `postgresql`, `sqlite`)
supplies connection URLs, autocommit handling, catalog reads and the DDL
spelling used by the schema reconciler. Strategies register themselves with
`register_strategy` when their module is imported below.
"""
from functools import lru_cache

from tablekit.strategy.base import _STRATEGY_REGISTRY
from tablekit.strategy.base import DatabaseStrategy as DatabaseStrategy
from tablekit.strategy.base import register_strategy as register_strategy
from tablekit.strategy.mysql import MySQLStrategy as MySQLStrategy
from tablekit.strategy.postgres import PostgresStrategy as PostgresStrategy
from tablekit.strategy.sqlite import SQLiteStrategy as SQLiteStrategy


def get_strategy_class(dialect: str) -> type[DatabaseStrategy]:
    """Look up the strategy registered for `dialect`.

    Raises
        ValueError: If no strategy is registered under that name
    """
    try:
        return _STRATEGY_REGISTRY[dialect]
    except KeyError:
        available = get_available_dialects()
        raise ValueError(f'Unsupported dialect: {dialect}. Available: {available}') from None


@lru_cache(maxsize=8)
def get_strategy(dialect: str) -> DatabaseStrategy:
    """Shared strategy instance for a dialect name."""
    return get_strategy_class(dialect)()


def get_db_strategy(cn) -> DatabaseStrategy:
    """Strategy for anything carrying a `dialect` name, such as a `Database`."""
    return get_strategy(cn.dialect)


def get_available_dialects() -> list[str]:
    return sorted(_STRATEGY_REGISTRY)


def is_supported_dialect(dialect: str) -> bool:
    return dialect in _STRATEGY_REGISTRY
