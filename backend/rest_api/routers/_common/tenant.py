"""
Tenant scope for API requests.

Authentication and tenant routing live in front of this service; by the time
a request arrives the gateway has resolved the tenant and forwards it in the
X-Tenant-ID header.

Usage:
    from rest_api.routers._common import current_tenant_id

    @router.get("/traceability/forward")
    def trace(tenant_id: int = Depends(current_tenant_id)):
        ...
"""

from fastapi import Header

from shared.utils.exceptions import ValidationError


def current_tenant_id(
    x_tenant_id: str | None = Header(default=None, alias="X-Tenant-ID"),
) -> int:
    """
    FastAPI dependency returning the tenant of the current request.

    Raises:
        ValidationError: If the header is missing or not a positive integer.
    """
    if x_tenant_id is None or not x_tenant_id.strip():
        raise ValidationError("X-Tenant-ID header is required", field="X-Tenant-ID")
    try:
        tenant_id = int(x_tenant_id.strip())
    except ValueError:
        raise ValidationError("X-Tenant-ID must be an integer", field="X-Tenant-ID", value=x_tenant_id)
    if tenant_id < 1:
        raise ValidationError("X-Tenant-ID must be positive", field="X-Tenant-ID", value=tenant_id)
    return tenant_id
