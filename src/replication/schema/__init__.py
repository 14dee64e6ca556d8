"""
Table-set reconciliation: drop orphans, create missing tables, copy their data.
"""

from .reconciler import (
    ReconcilePlan,
    ReconcileResult,
    SchemaReconciler,
    diff_inventories,
)

__all__ = [
    'SchemaReconciler',
    'ReconcilePlan',
    'ReconcileResult',
    'diff_inventories',
]
