"""Utility functions for the collateral kernel."""

from collateral_kernel.utils.hashing import (
    canonicalize_json,
    hash_payload,
    normalize_digest,
)

__all__ = [
    "canonicalize_json",
    "hash_payload",
    "normalize_digest",
]
