"""
SQLAlchemy models.

- registry: tables of the central tenant registry database
- clinic: entity schema replicated into every clinic database
"""

from .base import RegistryBase, TenantBase
from .registry import PlatformAdmin, TenantRecord

__all__ = [
    "RegistryBase",
    "TenantBase",
    "TenantRecord",
    "PlatformAdmin",
]
