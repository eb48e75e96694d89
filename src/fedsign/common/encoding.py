from __future__ import annotations

import base64
import binascii
import re

_STANDARD_ALPHABET = re.compile(r"[A-Za-z0-9+/]*={0,2}")
_URLSAFE_ALPHABET = re.compile(r"[A-Za-z0-9\-_]*={0,2}")


def encode_base64(data: bytes, *, urlsafe: bool = False, padded: bool = False) -> str:
    """Base64-encode ``data``.

    Signatures and hashes go on the wire unpadded; stored keys are written
    padded. Both use the standard alphabet unless ``urlsafe`` is set.
    """
    raw = base64.urlsafe_b64encode(data) if urlsafe else base64.b64encode(data)
    text = raw.decode("ascii")
    if not padded:
        text = text.rstrip("=")
    return text


def decode_base64(text: str, *, urlsafe: bool = False) -> bytes:
    """Decode padded or unpadded base64.

    Raises ``ValueError`` on characters outside the alphabet or an impossible
    length; callers translate that into their own error kind.
    """
    if not isinstance(text, str):
        raise ValueError("base64_not_a_string")
    pattern = _URLSAFE_ALPHABET if urlsafe else _STANDARD_ALPHABET
    if not pattern.fullmatch(text):
        raise ValueError("base64_invalid_characters")
    stripped = text.rstrip("=")
    if len(stripped) % 4 == 1:
        raise ValueError("base64_invalid_length")
    padding = "=" * (-len(stripped) % 4)
    if len(text) != len(stripped) and text != stripped + padding:
        raise ValueError("base64_invalid_padding")
    try:
        if urlsafe:
            return base64.urlsafe_b64decode(stripped + padding)
        return base64.b64decode(stripped + padding, validate=True)
    except binascii.Error as exc:
        raise ValueError("base64_invalid") from exc
