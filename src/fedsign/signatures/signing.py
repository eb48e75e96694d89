from __future__ import annotations

import copy
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from fedsign.common.canonical_json import canonical_json_bytes
from fedsign.common.encoding import decode_base64, encode_base64
from fedsign.common.errors import (
    InvalidSignatureFormat,
    MalformedObject,
    MissingVerifyKey,
    SignatureNotFound,
)
from fedsign.keys.ed25519 import SigningKey, VerifyKey
from fedsign.keys.identity import KeyId, as_key_id
from fedsign.keys.keyring import KeyRing, PublicKeyMap, as_key_ring

from .signature_map import SIGNATURES_FIELD

logger = logging.getLogger(__name__)

UNSIGNED_FIELD = "unsigned"

# Never covered by a signature: prior signatures, and data added in transit.
EXCLUDED_FROM_SIGNING = frozenset({SIGNATURES_FIELD, UNSIGNED_FIELD})

PublicKeyLike = Union[VerifyKey, bytes, bytearray, str]


def _require_object(obj: Any) -> Mapping[str, Any]:
    if not isinstance(obj, Mapping):
        raise MalformedObject("signed_value_must_be_an_object", details={"type": type(obj).__name__})
    return obj


def signing_bytes(obj: Mapping[str, Any]) -> bytes:
    """Canonical bytes a signature over ``obj`` covers."""
    obj = _require_object(obj)
    return canonical_json_bytes({k: v for k, v in obj.items() if k not in EXCLUDED_FROM_SIGNING})


def sign_detached(obj: Mapping[str, Any], signing_key: SigningKey) -> bytes:
    return signing_key.sign(signing_bytes(obj))


def sign_json(obj: Mapping[str, Any], signing_key: SigningKey) -> Dict[str, Any]:
    """Sign ``obj`` and return a copy with the signature attached.

    Signatures already present for other keys are kept. Re-signing an
    existing slot replaces it; for unchanged content that is a no-op since
    Ed25519 signatures are deterministic.
    """
    obj = _require_object(obj)
    signature = sign_detached(obj, signing_key)

    out = copy.deepcopy(dict(obj))
    signatures = out.get(SIGNATURES_FIELD, {})
    if not isinstance(signatures, Mapping):
        raise MalformedObject("signatures_not_an_object")
    slots = signatures.get(signing_key.entity, {})
    if not isinstance(slots, Mapping):
        raise MalformedObject("signature_set_not_an_object", details={"entity": signing_key.entity})

    # Other slots are carried over verbatim, whatever their encoding.
    out[SIGNATURES_FIELD] = {
        **signatures,
        signing_key.entity: {**slots, str(signing_key.key_id): encode_base64(signature)},
    }
    logger.debug("signed object as %s with %s", signing_key.entity, signing_key.key_id)
    return out


def _lookup_signature(obj: Mapping[str, Any], entity: str, key_id: str) -> Optional[str]:
    if SIGNATURES_FIELD not in obj:
        return None
    signatures = obj[SIGNATURES_FIELD]
    if not isinstance(signatures, Mapping):
        raise MalformedObject("signatures_not_an_object")
    slots = signatures.get(entity)
    if slots is None:
        return None
    if not isinstance(slots, Mapping):
        raise MalformedObject("signature_set_not_an_object", details={"entity": entity})
    encoded = slots.get(key_id)
    if encoded is None:
        return None
    if not isinstance(encoded, str):
        raise InvalidSignatureFormat("signature_not_a_string", details={"entity": entity, "key_id": key_id})
    return encoded


def _decode_signature(encoded: str, entity: str, key_id: str) -> bytes:
    try:
        return decode_base64(encoded)
    except ValueError as exc:
        raise InvalidSignatureFormat(
            "signature_not_base64", details={"entity": entity, "key_id": key_id}
        ) from exc


def _as_verify_key(entity: str, key_id: KeyId, public_key: PublicKeyLike) -> VerifyKey:
    if isinstance(public_key, VerifyKey):
        if public_key.entity != entity or public_key.key_id != key_id:
            raise MalformedObject(
                "verify_key_mismatch",
                details={"entity": entity, "key_id": str(key_id), "given": f"{public_key.entity}/{public_key.key_id}"},
            )
        return public_key
    if isinstance(public_key, str):
        return VerifyKey.from_base64(entity, key_id, public_key)
    return VerifyKey(entity=entity, key_id=key_id, public_bytes=bytes(public_key))


def verify_signature(
    obj: Mapping[str, Any],
    entity: str,
    key_id: "KeyId | str",
    public_key: PublicKeyLike,
) -> None:
    """Check the signature ``entity`` made over ``obj`` with ``key_id``.

    Returns normally only when the signature verifies; every other outcome
    raises a ``SigningError`` subclass.
    """
    obj = _require_object(obj)
    kid = as_key_id(key_id)
    verify_key = _as_verify_key(entity, kid, public_key)

    encoded = _lookup_signature(obj, entity, str(kid))
    if encoded is None:
        raise SignatureNotFound("signature_not_found", details={"entity": entity, "key_id": str(kid)})
    signature = _decode_signature(encoded, entity, str(kid))
    verify_key.verify(signing_bytes(obj), signature)
    logger.debug("verified signature of %s with %s", entity, kid)


def verify_json(
    keys: Union[KeyRing, PublicKeyMap],
    obj: Mapping[str, Any],
    *,
    entities: Optional[Iterable[str]] = None,
) -> Tuple[Tuple[str, str], ...]:
    """Verify ``obj`` against every entity in ``keys`` (or just ``entities``).

    Each required entity must have at least one signature made with a key the
    key ring knows, and every such signature must verify. Returns the
    ``(entity, key_id)`` slots that were checked.
    """
    obj = _require_object(obj)
    ring = as_key_ring(keys)
    required = list(ring.entities()) if entities is None else list(dict.fromkeys(entities))
    if not required:
        raise MissingVerifyKey("no_entities_to_verify")
    message = signing_bytes(obj)

    verified: List[Tuple[str, str]] = []
    for entity in required:
        verify_keys = ring.verify_keys_for(entity)
        if not verify_keys:
            raise MissingVerifyKey("no_verify_keys_for_entity", details={"entity": entity})
        checked = 0
        for kid, verify_key in sorted(verify_keys.items()):
            encoded = _lookup_signature(obj, entity, kid)
            if encoded is None:
                continue
            verify_key.verify(message, _decode_signature(encoded, entity, kid))
            verified.append((entity, kid))
            checked += 1
        if checked == 0:
            raise SignatureNotFound("no_signature_for_known_keys", details={"entity": entity})
    logger.debug("verified %d signature(s) from %d entities", len(verified), len(required))
    return tuple(verified)


__all__ = [
    "EXCLUDED_FROM_SIGNING",
    "UNSIGNED_FIELD",
    "sign_detached",
    "sign_json",
    "signing_bytes",
    "verify_json",
    "verify_signature",
]
