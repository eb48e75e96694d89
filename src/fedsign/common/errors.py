from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    # encoding layer
    MALFORMED_OBJECT = "malformed_object"
    UNSUPPORTED_NUMBER = "unsupported_number"
    INVALID_UTF8 = "invalid_utf8"
    # key layer
    INVALID_KEY_MATERIAL = "invalid_key_material"
    UNKNOWN_ALGORITHM = "unknown_algorithm"
    MISSING_VERIFY_KEY = "missing_verify_key"
    # signature layer
    SIGNATURE_NOT_FOUND = "signature_not_found"
    INVALID_SIGNATURE_FORMAT = "invalid_signature_format"
    VERIFICATION_FAILED = "verification_failed"
    CONFLICTING_SIGNATURE = "conflicting_signature"
    # event layer
    UNSUPPORTED_ROOM_VERSION = "unsupported_room_version"


class SigningError(ValueError):
    """Base class for every failure raised by fedsign.

    ``kind`` is stable and machine-readable; ``message`` is a short snake_case
    code and ``details`` carries the context (paths, entity names, key ids).
    Key material and signatures are never placed in ``details``.
    """

    kind: ErrorKind = ErrorKind.MALFORMED_OBJECT

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = dict(details or {})

    def __str__(self) -> str:
        if not self.details:
            return self.message
        extra = ",".join(f"{k}={v}" for k, v in sorted(self.details.items()))
        return f"{self.message} ({extra})"

    def to_obj(self) -> Dict[str, Any]:
        return {"kind": self.kind.value, "message": self.message, "details": dict(self.details)}


class MalformedObject(SigningError):
    kind = ErrorKind.MALFORMED_OBJECT


class UnsupportedNumber(SigningError):
    kind = ErrorKind.UNSUPPORTED_NUMBER


class InvalidUtf8(SigningError):
    kind = ErrorKind.INVALID_UTF8


class InvalidKeyMaterial(SigningError):
    kind = ErrorKind.INVALID_KEY_MATERIAL


class UnknownAlgorithm(SigningError):
    kind = ErrorKind.UNKNOWN_ALGORITHM


class MissingVerifyKey(SigningError):
    kind = ErrorKind.MISSING_VERIFY_KEY


class SignatureNotFound(SigningError):
    kind = ErrorKind.SIGNATURE_NOT_FOUND


class InvalidSignatureFormat(SigningError):
    kind = ErrorKind.INVALID_SIGNATURE_FORMAT


class VerificationFailed(SigningError):
    kind = ErrorKind.VERIFICATION_FAILED


class ConflictingSignature(SigningError):
    kind = ErrorKind.CONFLICTING_SIGNATURE


class UnsupportedRoomVersion(SigningError):
    kind = ErrorKind.UNSUPPORTED_ROOM_VERSION


__all__ = [
    "ConflictingSignature",
    "ErrorKind",
    "InvalidKeyMaterial",
    "InvalidSignatureFormat",
    "InvalidUtf8",
    "MalformedObject",
    "MissingVerifyKey",
    "SignatureNotFound",
    "SigningError",
    "UnknownAlgorithm",
    "UnsupportedNumber",
    "UnsupportedRoomVersion",
    "VerificationFailed",
]
