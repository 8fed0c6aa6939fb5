"""
Deterministic hashing utilities.

Digests handed to the ledger (authenticity hashes, verification hashes)
are 32-byte values.  They are normalized to lowercase hex so that the
same digest always compares and stores identically.
"""

import hashlib
import json
from typing import Any

DIGEST_SIZE = 32


def normalize_digest(digest: bytes | str) -> str:
    """
    Normalize a 32-byte digest to its 64-character lowercase hex form.

    Args:
        digest: Raw bytes or a hex string.

    Returns:
        Lowercase hex string.

    Raises:
        ValueError: If the value is not exactly 32 bytes.
    """
    if isinstance(digest, (bytes, bytearray)):
        raw = bytes(digest)
    else:
        try:
            raw = bytes.fromhex(digest)
        except ValueError as exc:
            raise ValueError(f"digest is not valid hex: {digest!r}") from exc
    if len(raw) != DIGEST_SIZE:
        raise ValueError(f"digest must be {DIGEST_SIZE} bytes, got {len(raw)}")
    return raw.hex()


def canonicalize_json(data: dict | list | Any) -> str:
    """
    Convert data to canonical JSON string.

    Keys are sorted and whitespace is removed so the same data always
    produces the same string.
    """
    return json.dumps(data, sort_keys=True, separators=(",", ":"), default=str)


def hash_payload(payload: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON form of ``payload``."""
    return hashlib.sha256(canonicalize_json(payload).encode("utf-8")).hexdigest()
