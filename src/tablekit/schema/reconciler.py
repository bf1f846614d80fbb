"""
Bring a live table's columns in line with a `TargetSchema`.

Steps, each aborting the rest on failure (nothing is rolled back):

1. CREATE TABLE IF NOT EXISTS with every field under its current name
2. read the live column names
3. map legacy names to current names
4. rename live columns found in that map
5. add fields missing from the table; re-assert the type of present fields
   flagged `modify_in_place`

Columns absent from the schema are never dropped. Running the reconciler
again with the same schema only repeats the modify statements.
"""
import logging
from dataclasses import dataclass, field
from typing import Any

from tablekit.exceptions import StatementError
from tablekit.schema.fields import schema_from_record
from tablekit.schema.models import NameGuide, TargetSchema
from tablekit.strategy import get_db_strategy

__all__ = ['ReconcileReport', 'SchemaReconciler', 'reconcile', 'init_table']

logger = logging.getLogger(__name__)


@dataclass
class ReconcileReport:
    """Statements issued while reconciling one table."""
    table: str
    statements: list[str] = field(default_factory=list)
    renamed: dict[str, str] = field(default_factory=dict)
    added: list[str] = field(default_factory=list)
    modified: list[str] = field(default_factory=list)
    unsupported: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        """True when a column was renamed or added."""
        return bool(self.renamed or self.added)


class SchemaReconciler:
    """Reconciles tables on one database connection.

    `cn` needs `dialect`, `execute(sql, *args)` and `query(sql, *args)`, as
    provided by `tablekit.Database`.
    """

    def __init__(self, cn: Any) -> None:
        self.cn = cn
        self.strategy = get_db_strategy(cn)

    def _apply(self, operation: str, sql: str, report: ReconcileReport) -> None:
        try:
            self.cn.execute(sql)
        except StatementError as err:
            logger.error(f'{operation} failed on {report.table}: {err.cause}')
            raise err.rewrap(operation) from err
        report.statements.append(sql)

    def reconcile(self, schema: TargetSchema) -> ReconcileReport:
        """Create or alter `schema.table_name` to match `schema`.

        Raises
            ConfigurationError: If the schema is invalid or the dialect cannot
            apply it; nothing is executed
            IntrospectionError: If the live columns cannot be read
            StatementError: If a CREATE or ALTER statement fails
        """
        schema.validate()
        self.strategy.validate_schema(schema)
        table = schema.table_name
        report = ReconcileReport(table)
        strategy = self.strategy

        columns = [(f.name, f.sql_type) for f in schema.fields]
        self._apply('create table', strategy.create_table_sql(table, columns), report)

        existing = strategy.list_columns(self.cn, table)
        renames = schema.rename_map()

        for old_name in existing:
            new_name = renames.get(old_name)
            if new_name is None:
                continue
            spec = schema.field(new_name)
            logger.info(f'Renaming column {table}.{old_name} to {new_name}')
            sql = strategy.rename_column_sql(table, old_name, new_name, spec.sql_type)
            self._apply('rename column', sql, report)
            report.renamed[old_name] = new_name

        present = set(existing) | set(report.renamed.values())

        for spec in schema.fields:
            if spec.name not in present:
                logger.info(f'Adding column {table}.{spec.name} {spec.sql_type}')
                sql = strategy.add_column_sql(table, spec.name, spec.sql_type)
                self._apply('add column', sql, report)
                report.added.append(spec.name)
            elif spec.modify_in_place:
                sql = strategy.modify_column_sql(table, spec.name, spec.sql_type)
                if sql is None:
                    logger.warning(f'{strategy.dialect_name} cannot modify column '
                                   f'{table}.{spec.name} in place, skipping')
                    report.unsupported.append(spec.name)
                    continue
                logger.info(f'Modifying column {table}.{spec.name} {spec.sql_type}')
                self._apply('modify column', sql, report)
                report.modified.append(spec.name)

        logger.debug(f'Reconciled {table}: {len(report.statements)} statements')
        return report


def reconcile(cn: Any, schema: TargetSchema) -> ReconcileReport:
    """Reconcile one table on `cn`. See `SchemaReconciler.reconcile`.
    """
    return SchemaReconciler(cn).reconcile(schema)


def init_table(cn: Any, record: Any, guide: NameGuide | None = None) -> ReconcileReport:
    """Create or update the table for a dataclass record.

    The table name is the record's class name, resolved through `guide`
    when given.
    """
    schema = schema_from_record(record, guide)
    logger.info(f'Initializing {cn.name}/{schema.table_name}')
    return reconcile(cn, schema)
