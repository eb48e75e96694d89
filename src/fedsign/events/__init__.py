from .event_signing import Verified, hash_and_sign_event, required_signers, verify_event
from .redaction import (
    ContentHash,
    add_content_hash,
    compute_content_hash,
    content_hash,
    event_id,
    redact,
    reference_hash,
)
from .room_versions import ROOM_VERSIONS, RoomVersion, get_room_version

__all__ = [
    "ContentHash",
    "ROOM_VERSIONS",
    "RoomVersion",
    "Verified",
    "add_content_hash",
    "compute_content_hash",
    "content_hash",
    "event_id",
    "get_room_version",
    "hash_and_sign_event",
    "redact",
    "reference_hash",
    "required_signers",
    "verify_event",
]
