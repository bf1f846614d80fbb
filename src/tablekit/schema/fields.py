"""
Build a `TargetSchema` from a dataclass record.

Columns are declared with `column()`, which stores the SQL type, the legacy
name and the modify flag in the dataclass field metadata:

    @dataclass
    class Account:
        id: int = column('INT NOT NULL AUTO_INCREMENT PRIMARY KEY')
        email: str = column('VARCHAR(255) NOT NULL', rename_from='mail')
        score: float = column('DOUBLE NOT NULL DEFAULT 0', modify=True)

Fields declared without `column()` are not table columns and are skipped.
"""
import dataclasses
import logging
from typing import Any

from tablekit.exceptions import ConfigurationError
from tablekit.schema.models import FieldSpec, NameGuide, TargetSchema

__all__ = ['column', 'fields_of', 'record_name', 'schema_from_record']

logger = logging.getLogger(__name__)

SQL_TYPE = 'sql'
RENAME_FROM = 'sql_rename'
MODIFY = 'sql_modify'


def column(sql_type: str, *, rename_from: str | None = None, modify: bool = False,
           **kwargs: Any) -> Any:
    """Declare a dataclass field backed by a table column.

    Remaining keyword arguments go to `dataclasses.field`; `default=None` is
    assumed when neither a default nor a default factory is given.
    """
    metadata = dict(kwargs.pop('metadata', None) or {})
    metadata[SQL_TYPE] = sql_type
    if rename_from:
        metadata[RENAME_FROM] = rename_from
    if modify:
        metadata[MODIFY] = True
    if 'default' not in kwargs and 'default_factory' not in kwargs:
        kwargs['default'] = None
    return dataclasses.field(metadata=metadata, **kwargs)


def _record_type(record: Any) -> type:
    record_type = record if isinstance(record, type) else type(record)
    if not dataclasses.is_dataclass(record_type):
        raise ConfigurationError(f'{record_type.__name__} is not a dataclass')
    return record_type


def record_name(record: Any) -> str:
    """Return the base table name of a record: its class name.
    """
    return _record_type(record).__name__


def fields_of(record: Any) -> list[tuple[str, str, str | None, bool]]:
    """Return `(name, sql_type, legacy_name, modify)` for each column field,
    in declaration order.
    """
    columns = []
    for f in dataclasses.fields(_record_type(record)):
        if SQL_TYPE not in f.metadata:
            logger.debug(f'Skipping {f.name}: not declared as a column')
            continue
        columns.append((f.name, f.metadata[SQL_TYPE], f.metadata.get(RENAME_FROM),
                        bool(f.metadata.get(MODIFY, False))))
    return columns


def schema_from_record(record: Any, guide: NameGuide | None = None) -> TargetSchema:
    """Describe the table backing `record` (a dataclass or an instance).

    The table is named after the record class, passed through `guide` when
    one is given.
    """
    table_name = record_name(record)
    if guide is not None:
        table_name = guide.resolve(table_name)
    specs = [FieldSpec(name, sql_type, legacy, modify)
             for name, sql_type, legacy, modify in fields_of(record)]
    return TargetSchema(table_name, tuple(specs))
