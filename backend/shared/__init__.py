"""
Shared module for common utilities used by the REST API and the CLI.

CLEAN ARCHITECTURE STRUCTURE:
- shared.infrastructure: Database and request plumbing
  - db.py: SQLAlchemy engine and sessions, safe_commit()
  - correlation.py: X-Request-ID middleware and logging filter

- shared.config: Configuration
  - settings.py: Environment config (Pydantic)
  - logging.py: Structured logging
  - constants.py: BatchKind, BatchStatus, TraceDirection, Limits

- shared.utils: Utilities
  - exceptions.py: HTTP exceptions with auto-logging
  - validators.py: Batch code and traversal bound validation
  - schemas.py, trace_schemas.py: Pydantic response schemas

IMPORT EXAMPLES:
    from shared.infrastructure.db import get_db
    from shared.config.settings import settings
    from shared.config.constants import TraceDirection
    from shared.utils.exceptions import NotFoundError, ValidationError
"""
