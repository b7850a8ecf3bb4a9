"""
Schema management package for tenantsync.

This package provides:
- Declarative table specifications
- DDL rendering from trusted identifiers
- The idempotent schema reconciler
"""

from .reconciler import SchemaReconciler, TableChanges
from .spec import ColumnSpec, SeedRow, TableSpec, applicant_types_spec

__all__ = [
    "SchemaReconciler",
    "TableChanges",
    "ColumnSpec",
    "SeedRow",
    "TableSpec",
    "applicant_types_spec",
]
