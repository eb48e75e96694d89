from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Mapping, Union

from fedsign.common.canonical_json import canonicalize
from fedsign.common.encoding import encode_base64
from fedsign.common.errors import MalformedObject
from fedsign.common.hashing import sha256_canonical
from fedsign.common.schema_validate import validate_json
from fedsign.signatures.signature_map import SIGNATURES_FIELD
from fedsign.signatures.signing import UNSIGNED_FIELD

from .room_versions import RoomVersion, get_room_version

HASHES_FIELD = "hashes"
CONTENT_HASH_ALGORITHM = "sha256"

EXCLUDED_FROM_CONTENT_HASH = frozenset({SIGNATURES_FIELD, UNSIGNED_FIELD, HASHES_FIELD})
EXCLUDED_FROM_REFERENCE_HASH = frozenset({SIGNATURES_FIELD, UNSIGNED_FIELD, "age_ts"})

_PRESERVED_TOP_LEVEL = frozenset(
    {
        "event_id",
        "type",
        "room_id",
        "sender",
        "state_key",
        "content",
        "hashes",
        "signatures",
        "depth",
        "prev_events",
        "auth_events",
        "origin_server_ts",
    }
)
# Dropped by the room version 11 rules.
_LEGACY_TOP_LEVEL = frozenset({"origin", "membership", "prev_state"})

_POWER_LEVEL_KEYS = (
    "ban",
    "events",
    "events_default",
    "kick",
    "redact",
    "state_default",
    "users",
    "users_default",
)


@dataclass(frozen=True)
class ContentHash:
    digest: bytes
    algorithm: str = CONTENT_HASH_ALGORITHM

    def to_base64(self) -> str:
        return encode_base64(self.digest)


def _require_object(obj: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(obj, Mapping):
        raise MalformedObject(f"{what}_must_be_an_object", details={"type": type(obj).__name__})
    return obj


def compute_content_hash(obj: Mapping[str, Any]) -> ContentHash:
    """Hash everything in ``obj`` except signatures, unsigned data and hashes.

    The object is snapshotted before hashing, so the result does not depend
    on any ``hashes`` value already present.
    """
    snapshot = canonicalize(_require_object(obj, "event"), exclude_keys=EXCLUDED_FROM_CONTENT_HASH)
    return ContentHash(digest=sha256_canonical(snapshot))


def content_hash(obj: Mapping[str, Any]) -> str:
    return compute_content_hash(obj).to_base64()


def add_content_hash(obj: Mapping[str, Any]) -> Dict[str, Any]:
    hashed = compute_content_hash(obj)
    out = copy.deepcopy(dict(obj))
    existing = out.get(HASHES_FIELD, {})
    if not isinstance(existing, Mapping):
        raise MalformedObject("hashes_not_an_object")
    out[HASHES_FIELD] = {**existing, hashed.algorithm: hashed.to_base64()}
    return out


def _allowed_content_keys(event_type: str, rv: RoomVersion) -> FrozenSet[str]:
    keys: set = set()
    if event_type == "m.room.member":
        keys.add("membership")
        if rv.keeps_authorising_user:
            keys.add("join_authorised_via_users_server")
    elif event_type == "m.room.create":
        if not rv.updated_redaction_rules:
            keys.add("creator")
    elif event_type == "m.room.join_rules":
        keys.add("join_rule")
        if rv.restricted_join_rule:
            keys.add("allow")
    elif event_type == "m.room.power_levels":
        keys.update(_POWER_LEVEL_KEYS)
        if rv.updated_redaction_rules:
            keys.add("invite")
    elif event_type == "m.room.aliases":
        if rv.keeps_aliases:
            keys.add("aliases")
    elif event_type == "m.room.history_visibility":
        keys.add("history_visibility")
    elif event_type == "m.room.redaction":
        if rv.updated_redaction_rules:
            keys.add("redacts")
    return frozenset(keys)


def _redact_content(event_type: str, content: Mapping[str, Any], rv: RoomVersion) -> Dict[str, Any]:
    if rv.updated_redaction_rules and event_type == "m.room.create":
        return copy.deepcopy(dict(content))

    allowed = _allowed_content_keys(event_type, rv)
    out = {k: copy.deepcopy(v) for k, v in content.items() if k in allowed}

    if rv.updated_redaction_rules and event_type == "m.room.member":
        invite = content.get("third_party_invite")
        if isinstance(invite, Mapping) and "signed" in invite:
            out["third_party_invite"] = {"signed": copy.deepcopy(invite["signed"])}
    return out


def redact(event: Mapping[str, Any], room_version: Union[RoomVersion, str]) -> Dict[str, Any]:
    """Strip ``event`` down to the fields that survive a redaction.

    Returns a new object; ``event`` is left untouched.
    """
    rv = get_room_version(room_version)
    validate_json(_require_object(event, "event"), "event.schema.json")

    preserved = _PRESERVED_TOP_LEVEL
    if not rv.updated_redaction_rules:
        preserved = preserved | _LEGACY_TOP_LEVEL

    event_type = event["type"]
    out: Dict[str, Any] = {}
    for key, value in event.items():
        if key not in preserved:
            continue
        if key == "content":
            out[key] = _redact_content(event_type, value, rv)
        else:
            out[key] = copy.deepcopy(value)
    return out


def reference_hash(event: Mapping[str, Any], room_version: Union[RoomVersion, str]) -> str:
    rv = get_room_version(room_version)
    redacted = redact(event, rv)
    digest = sha256_canonical(canonicalize(redacted, exclude_keys=EXCLUDED_FROM_REFERENCE_HASH))
    return encode_base64(digest, urlsafe=rv.event_id_format == "urlsafe_base64")


def event_id(event: Mapping[str, Any], room_version: Union[RoomVersion, str]) -> str:
    rv = get_room_version(room_version)
    if rv.server_assigned_event_ids:
        value = _require_object(event, "event").get("event_id")
        if not isinstance(value, str):
            raise MalformedObject("missing_event_id", details={"room_version": rv.identifier})
        return value
    return "$" + reference_hash(event, rv)


__all__ = [
    "CONTENT_HASH_ALGORITHM",
    "ContentHash",
    "EXCLUDED_FROM_CONTENT_HASH",
    "HASHES_FIELD",
    "add_content_hash",
    "compute_content_hash",
    "content_hash",
    "event_id",
    "redact",
    "reference_hash",
]
