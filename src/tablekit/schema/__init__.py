"""
Table declarations and schema reconciliation.
"""
from tablekit.schema.fields import column, fields_of, schema_from_record
from tablekit.schema.models import FieldSpec, NameGuide, TargetSchema
from tablekit.schema.reconciler import ReconcileReport, SchemaReconciler
from tablekit.schema.reconciler import init_table, reconcile

__all__ = [
    'FieldSpec',
    'TargetSchema',
    'NameGuide',
    'column',
    'fields_of',
    'schema_from_record',
    'ReconcileReport',
    'SchemaReconciler',
    'reconcile',
    'init_table',
]
