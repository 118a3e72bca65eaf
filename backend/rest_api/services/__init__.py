"""
Services module for business logic.

CLEAN ARCHITECTURE:
- traceability/: Batch lineage tracing and mass balance (read-only)

Usage:
    from rest_api.services.traceability import TraceService

    service = TraceService.for_session(db)
    result = service.trace(tenant_id, "RM-FLOUR-001", "forward")
"""
