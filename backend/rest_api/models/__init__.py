"""
SQLAlchemy ORM Models Package.

Models are organized into domain-specific modules:
- base: Base class and TimestampMixin
- tenant: Tenant, Site
- batch: Batch, BatchRelation, BatchDispatch
"""

# Base classes
from .base import Base, TimestampMixin

# Core tenant models
from .tenant import Tenant, Site

# Batch traceability
from .batch import Batch, BatchDispatch, BatchRelation

__all__ = [
    "Base",
    "TimestampMixin",
    "Tenant",
    "Site",
    "Batch",
    "BatchRelation",
    "BatchDispatch",
]
