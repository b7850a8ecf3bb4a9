"""
tenantsync: idempotent table provisioning for a master database and its tenants.

tenantsync creates a table when it is missing and upgrades it in place
otherwise (missing columns, hygiene constraints, seed rows), across the
master database and every tenant database listed in it.
"""

__version__ = "0.1.0"
__author__ = "tenantsync Contributors"

from .config import TenantSyncConfig
from .exceptions import TenantSyncError, ConfigurationError, DatabaseError, SchemaError

__all__ = [
    "__version__",
    "TenantSyncConfig",
    "TenantSyncError",
    "ConfigurationError",
    "DatabaseError",
    "SchemaError",
]
