from __future__ import annotations

import copy
import logging
from enum import Enum
from typing import Any, Dict, List, Mapping, Union

from fedsign.common.errors import MalformedObject
from fedsign.keys.ed25519 import SigningKey
from fedsign.keys.keyring import KeyRing, PublicKeyMap
from fedsign.signatures.signature_map import SIGNATURES_FIELD
from fedsign.signatures.signing import sign_json, verify_json

from .redaction import CONTENT_HASH_ALGORITHM, HASHES_FIELD, add_content_hash, content_hash, redact
from .room_versions import RoomVersion, get_room_version

logger = logging.getLogger(__name__)


class Verified(str, Enum):
    # Signatures and content hash both check out.
    ALL = "all"
    # Signatures check out but the content hash does not: use the redacted form.
    SIGNATURES = "signatures"


def server_name_of(identifier: str, field_name: str) -> str:
    if not isinstance(identifier, str) or ":" not in identifier:
        raise MalformedObject("identifier_has_no_server_name", details={"field": field_name})
    server = identifier.split(":", 1)[1]
    if not server:
        raise MalformedObject("identifier_has_no_server_name", details={"field": field_name})
    return server


def required_signers(event: Mapping[str, Any], room_version: Union[RoomVersion, str]) -> List[str]:
    """Entities whose signatures an event must carry to be accepted."""
    rv = get_room_version(room_version)
    signers = [server_name_of(event.get("sender"), "sender")]

    if rv.server_assigned_event_ids:
        signers.append(server_name_of(event.get("event_id"), "event_id"))

    if rv.restricted_join_rule and event.get("type") == "m.room.member":
        content = event.get("content")
        if isinstance(content, Mapping) and content.get("membership") == "join":
            authorising_user = content.get("join_authorised_via_users_server")
            if authorising_user is not None:
                signers.append(server_name_of(authorising_user, "join_authorised_via_users_server"))

    return list(dict.fromkeys(signers))


def hash_and_sign_event(
    event: Mapping[str, Any],
    signing_key: SigningKey,
    room_version: Union[RoomVersion, str],
) -> Dict[str, Any]:
    """Add the content hash to ``event`` and sign its redacted form.

    The returned event carries the full content, the new ``hashes.sha256``
    and the updated signature map. ``event`` itself is left untouched.
    """
    rv = get_room_version(room_version)
    hashed = add_content_hash(event)
    signed_redacted = sign_json(redact(hashed, rv), signing_key)
    out = copy.deepcopy(hashed)
    out[SIGNATURES_FIELD] = signed_redacted[SIGNATURES_FIELD]
    logger.debug(
        "hashed and signed %s event as %s (room version %s)",
        event.get("type"),
        signing_key.entity,
        rv.identifier,
    )
    return out


def verify_event(
    keys: Union[KeyRing, PublicKeyMap],
    event: Mapping[str, Any],
    room_version: Union[RoomVersion, str],
) -> Verified:
    """Check the signatures and content hash of a federated event.

    Raises when a required signature is missing or invalid. Otherwise returns
    ``Verified.ALL``, or ``Verified.SIGNATURES`` if the content no longer
    matches its hash.
    """
    rv = get_room_version(room_version)
    redacted = redact(event, rv)
    verify_json(keys, redacted, entities=required_signers(event, rv))

    hashes = event.get(HASHES_FIELD)
    stored = hashes.get(CONTENT_HASH_ALGORITHM) if isinstance(hashes, Mapping) else None
    if not isinstance(stored, str):
        raise MalformedObject("missing_content_hash")

    if stored != content_hash(event):
        logger.warning(
            "content hash mismatch for %s event from %s; treating as redacted",
            event.get("type"),
            event.get("sender"),
        )
        return Verified.SIGNATURES
    return Verified.ALL


__all__ = ["Verified", "hash_and_sign_event", "required_signers", "server_name_of", "verify_event"]
