"""
Common utilities shared across routers.
"""

from .tenant import current_tenant_id

__all__ = ["current_tenant_id"]
