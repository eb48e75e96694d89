from __future__ import annotations

import hashlib
from typing import Any, Union

from .canonical_json import canonical_json_bytes

BytesLike = Union[bytes, bytearray, memoryview]


def sha256_bytes(data: BytesLike) -> bytes:
    return hashlib.sha256(bytes(data)).digest()


def sha256_canonical(value: Any) -> bytes:
    """SHA-256 over the canonical JSON encoding of ``value``."""
    return sha256_bytes(canonical_json_bytes(value))
