"""
Configuration module: Settings, logging, constants.
"""

from shared.config.settings import settings, get_settings, Settings, DATABASE_URL
from shared.config.logging import get_logger, setup_logging
from shared.config.constants import (
    BatchKind,
    BatchStatus,
    EndpointKind,
    TraceDirection,
    Limits,
)

__all__ = [
    # settings
    "settings",
    "get_settings",
    "Settings",
    "DATABASE_URL",
    # logging
    "get_logger",
    "setup_logging",
    # constants
    "BatchKind",
    "BatchStatus",
    "EndpointKind",
    "TraceDirection",
    "Limits",
]
