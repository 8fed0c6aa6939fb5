"""
Lightweight domain validation helpers.

Pure checks with no I/O, used by the services before any write so that a
rejected operation leaves no partial state behind.
"""

from __future__ import annotations

from typing import Any

from collateral_kernel.exceptions import InvalidDataError
from collateral_kernel.utils.hashing import normalize_digest

# Ceiling of the signed 64-bit integer columns every amount is stored in.
MAX_STORED_INT = 2**63 - 1


def _require_int(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidDataError(name, value, "must be an integer")
    if value > MAX_STORED_INT:
        raise InvalidDataError(name, value, f"must not exceed {MAX_STORED_INT}")
    return value


def require_positive(value: Any, name: str) -> int:
    """Strictly positive integer."""
    if _require_int(value, name) <= 0:
        raise InvalidDataError(name, value, "must be greater than zero")
    return value


def require_non_negative(value: Any, name: str) -> int:
    """Unsigned integer (0 allowed)."""
    if _require_int(value, name) < 0:
        raise InvalidDataError(name, value, "must not be negative")
    return value


def require_text(value: Any, name: str, max_length: int) -> str:
    """String no longer than ``max_length`` characters."""
    if not isinstance(value, str):
        raise InvalidDataError(name, value, "must be a string")
    if len(value) > max_length:
        raise InvalidDataError(name, value, f"longer than {max_length} characters")
    return value


def require_digest(value: Any, name: str) -> str:
    """32-byte digest, returned as lowercase hex."""
    if not isinstance(value, (bytes, bytearray, str)):
        raise InvalidDataError(name, value, "must be bytes or a hex string")
    try:
        return normalize_digest(value)
    except ValueError as exc:
        raise InvalidDataError(name, value, str(exc)) from exc


def require_running_total(
    current: int,
    increment: int,
    name: str,
    maximum: int = MAX_STORED_INT,
) -> int:
    """``current + increment``, rejected when it would pass ``maximum``."""
    total = current + increment
    if total > maximum:
        raise InvalidDataError(
            name, increment, f"would raise the running total past {maximum}"
        )
    return total
