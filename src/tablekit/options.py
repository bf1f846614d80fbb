from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import pandas as pd
from tablekit.strategy import get_available_dialects, get_strategy_class
from tablekit.strategy import is_supported_dialect

from libb import ConfigOptions, attrdict, scriptname

__all__ = [
    'DatabaseOptions',
    'iterdict_data_loader',
    'pandas_data_loader',
]


def iterdict_data_loader(rows, columns, **kwargs) -> list[attrdict]:
    """Minimal data loader returning attribute dictionaries.
    """
    return [attrdict(zip(columns, row)) for row in rows]


def pandas_data_loader(rows, columns, **kwargs) -> pd.DataFrame:
    """Pandas DataFrame loader.

    Always returns a DataFrame, with columns preserved for empty results.
    """
    return pd.DataFrame.from_records(list(rows), columns=list(columns))


@dataclass
class DatabaseOptions(ConfigOptions):
    """Options

    supported driver names: `mysql`, `postgresql`, `sqlite`

    `charset` and `collation` only apply to MySQL connections.
    """
    drivername: str = 'mysql'
    hostname: str = None
    username: str = None
    password: str = None
    database: str = None
    port: int = 0
    timeout: int = 0
    appname: str = None
    charset: str = 'utf8mb4'
    collation: str = 'utf8mb4_bin'
    check_connection: bool = True
    data_loader: Callable[..., Any] | None = None
    use_pool: bool = False
    pool_max_connections: int = 5
    pool_max_idle_time: int = 300
    pool_wait_timeout: int = 30

    def __post_init__(self):
        if not is_supported_dialect(self.drivername):
            available = get_available_dialects()
            raise ValueError(f'drivername must be one of: {available}')
        self.appname = self.appname or scriptname() or 'python_console'
        if isinstance(self.password, bytes):
            self.password = self.password.decode()
        strategy_cls = get_strategy_class(self.drivername)
        strategy_cls.validate_options(self)
        if self.data_loader is None:
            self.data_loader = iterdict_data_loader
