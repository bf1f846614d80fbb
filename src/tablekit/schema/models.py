"""
Declarative table descriptions consumed by the schema reconciler.
"""
from collections import Counter
from dataclasses import dataclass, field

from tablekit.exceptions import ConfigurationError

__all__ = ['FieldSpec', 'TargetSchema', 'NameGuide']


@dataclass(frozen=True)
class FieldSpec:
    """One target column.

    `sql_type` is the verbatim type and constraint expression
    (``VARCHAR(255) NOT NULL``). `legacy_name` names a column this field was
    renamed from. `modify_in_place` re-asserts `sql_type` on an existing
    column every time the table is reconciled.
    """
    name: str
    sql_type: str
    legacy_name: str | None = None
    modify_in_place: bool = False


@dataclass(frozen=True)
class TargetSchema:
    """A table name and its ordered column declarations.

    Field order only affects the column order of a newly created table.
    Identifiers are interpolated into DDL and must come from trusted code,
    never from user input.
    """
    table_name: str
    fields: tuple[FieldSpec, ...] = field(default_factory=tuple)

    def __post_init__(self):
        object.__setattr__(self, 'fields', tuple(self.fields))

    @property
    def names(self) -> list[str]:
        return [f.name for f in self.fields]

    def field(self, name: str) -> FieldSpec:
        for spec in self.fields:
            if spec.name == name:
                return spec
        raise KeyError(name)

    def rename_map(self) -> dict[str, str]:
        """Map each legacy column name to the field that replaces it.
        """
        return {f.legacy_name: f.name for f in self.fields if f.legacy_name}

    def validate(self) -> None:
        """Reject declarations the reconciler cannot apply unambiguously.

        Raises
            ConfigurationError: On an empty table name, no fields, a field
            without name or type, duplicate field names, two fields
            claiming the same legacy name, or a legacy name that is also a
            field name
        """
        if not self.table_name:
            raise ConfigurationError('Table name cannot be empty')
        if not self.fields:
            raise ConfigurationError(f'Table {self.table_name} declares no columns')

        for spec in self.fields:
            if not spec.name or not spec.sql_type:
                raise ConfigurationError(
                    f'Column {spec.name!r} of {self.table_name} needs a name and a SQL type')

        duplicates = [n for n, c in Counter(self.names).items() if c > 1]
        if duplicates:
            raise ConfigurationError(f'Duplicate columns in {self.table_name}: {duplicates}')

        legacy = Counter(f.legacy_name for f in self.fields if f.legacy_name)
        ambiguous = [n for n, c in legacy.items() if c > 1]
        if ambiguous:
            raise ConfigurationError(
                f'Legacy column names claimed by more than one field in {self.table_name}: {ambiguous}')

        # a legacy name must not also be a current column
        shadowed = sorted(set(legacy) & set(self.names))
        if shadowed:
            raise ConfigurationError(
                f'Legacy column names of {self.table_name} are also declared as columns: {shadowed}')


@dataclass
class NameGuide:
    """Naming policy turning a record name into a table name.

    >>> NameGuide(prefix='app', separator='_', pluralize=True).resolve('user')
    'app_users'
    """
    prefix: str = ''
    suffix: str = ''
    separator: str = ''
    override: str | None = None
    pluralize: bool = False

    def resolve(self, base: str) -> str:
        """Apply override, plural, prefix and suffix, in that order.
        """
        name = self.override or base
        if self.pluralize:
            name += 's'
        if self.prefix:
            name = self.prefix + self.separator + name
        if self.suffix:
            name = name + self.separator + self.suffix
        return name
