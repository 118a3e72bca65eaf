"""
Input validation helpers shared by models, services and routers.

Plain functions raising ValueError; callers on the HTTP path translate that
into shared.utils.exceptions.ValidationError.
"""

from shared.config.constants import Limits


def normalize_batch_code(code: str | None) -> str:
    """
    Canonical form of a batch code used for case-insensitive lookup.

    "  rm-flour-001 " -> "RM-FLOUR-001"

    Args:
        code: Raw batch code as typed or scanned.

    Returns:
        Trimmed, upper-cased code. Empty string for None or blank input.
    """
    if code is None:
        return ""
    return code.strip().upper()


def validate_batch_code(code: str | None) -> str:
    """
    Validate a batch code and return its canonical form.

    Raises:
        ValueError: If the code is blank or longer than the storage limit.
    """
    normalized = normalize_batch_code(code)
    if not normalized:
        raise ValueError("batch_code is required")
    if len(normalized) > Limits.MAX_BATCH_CODE_LENGTH:
        raise ValueError(
            f"batch_code must be at most {Limits.MAX_BATCH_CODE_LENGTH} characters"
        )
    return normalized


def validate_positive_bound(value: int, name: str, ceiling: int) -> int:
    """
    Validate a traversal bound (depth or node count).

    Raises:
        ValueError: If value is not a positive integer or exceeds ceiling.
    """
    # bool is an int subclass; True must not pass as a depth of 1
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer")
    if value < 1:
        raise ValueError(f"{name} must be positive")
    if value > ceiling:
        raise ValueError(f"{name} must be at most {ceiling}")
    return value
