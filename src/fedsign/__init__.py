from fedsign.common.canonical_json import canonical_json, canonical_json_bytes, parse_json
from fedsign.common.errors import (
    ConflictingSignature,
    ErrorKind,
    InvalidKeyMaterial,
    InvalidSignatureFormat,
    InvalidUtf8,
    MalformedObject,
    MissingVerifyKey,
    SignatureNotFound,
    SigningError,
    UnknownAlgorithm,
    UnsupportedNumber,
    UnsupportedRoomVersion,
    VerificationFailed,
)
from fedsign.events import (
    ContentHash,
    RoomVersion,
    Verified,
    add_content_hash,
    compute_content_hash,
    content_hash,
    event_id,
    hash_and_sign_event,
    redact,
    reference_hash,
    verify_event,
)
from fedsign.keys import Algorithm, InMemoryKeyRing, KeyId, KeyRing, SigningKey, VerifyKey, split_key_id
from fedsign.signatures import (
    SignatureMap,
    sign_detached,
    sign_json,
    signing_bytes,
    verify_json,
    verify_signature,
)

__version__ = "0.1.0"

__all__ = [
    "Algorithm",
    "ConflictingSignature",
    "ContentHash",
    "ErrorKind",
    "InMemoryKeyRing",
    "InvalidKeyMaterial",
    "InvalidSignatureFormat",
    "InvalidUtf8",
    "KeyId",
    "KeyRing",
    "MalformedObject",
    "MissingVerifyKey",
    "RoomVersion",
    "SignatureMap",
    "SignatureNotFound",
    "SigningError",
    "SigningKey",
    "UnknownAlgorithm",
    "UnsupportedNumber",
    "UnsupportedRoomVersion",
    "VerificationFailed",
    "Verified",
    "VerifyKey",
    "add_content_hash",
    "canonical_json",
    "canonical_json_bytes",
    "compute_content_hash",
    "content_hash",
    "event_id",
    "hash_and_sign_event",
    "parse_json",
    "redact",
    "reference_hash",
    "sign_detached",
    "sign_json",
    "signing_bytes",
    "split_key_id",
    "verify_event",
    "verify_json",
    "verify_signature",
]
