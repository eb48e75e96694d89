from __future__ import annotations

import copy
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple

from fedsign.common.encoding import decode_base64, encode_base64
from fedsign.common.errors import ConflictingSignature, InvalidSignatureFormat, MalformedObject
from fedsign.common.schema_validate import validate_json
from fedsign.keys.identity import KeyId

SIGNATURES_FIELD = "signatures"


def _slot_key(key_id: "KeyId | str") -> str:
    return str(key_id)


class SignatureMap:
    """Detached signatures of one object: entity -> key id -> signature bytes.

    Instances are never changed after construction; ``insert`` and ``merge``
    return new maps.
    """

    __slots__ = ("_entries",)

    def __init__(self, entries: Optional[Mapping[str, Mapping[str, bytes]]] = None) -> None:
        self._entries: Dict[str, Dict[str, bytes]] = {}
        for entity, slots in (entries or {}).items():
            if slots:
                self._entries[entity] = {str(k): bytes(v) for k, v in slots.items()}

    @classmethod
    def from_json(cls, obj: Mapping[str, Any]) -> "SignatureMap":
        validate_json(obj, "signatures.schema.json")
        entries: Dict[str, Dict[str, bytes]] = {}
        for entity, slots in obj.items():
            for key_id, encoded in slots.items():
                try:
                    entries.setdefault(entity, {})[key_id] = decode_base64(encoded)
                except ValueError as exc:
                    raise InvalidSignatureFormat(
                        "signature_not_base64", details={"entity": entity, "key_id": key_id}
                    ) from exc
        return cls(entries)

    @classmethod
    def from_object(cls, obj: Mapping[str, Any]) -> "SignatureMap":
        if SIGNATURES_FIELD not in obj:
            return cls()
        raw = obj[SIGNATURES_FIELD]
        if not isinstance(raw, Mapping):
            raise MalformedObject("signatures_not_an_object")
        return cls.from_json(raw)

    def to_json(self) -> Dict[str, Dict[str, str]]:
        return {
            entity: {kid: encode_base64(sig) for kid, sig in sorted(slots.items())}
            for entity, slots in sorted(self._entries.items())
        }

    def attach_to(self, obj: Mapping[str, Any]) -> Dict[str, Any]:
        """Return a copy of ``obj`` whose ``signatures`` field is this map."""
        out = copy.deepcopy(dict(obj))
        out[SIGNATURES_FIELD] = self.to_json()
        return out

    def get(self, entity: str, key_id: "KeyId | str") -> Optional[bytes]:
        return self._entries.get(entity, {}).get(_slot_key(key_id))

    def insert(
        self,
        entity: str,
        key_id: "KeyId | str",
        signature: bytes,
        *,
        overwrite: bool = False,
    ) -> "SignatureMap":
        kid = _slot_key(key_id)
        existing = self.get(entity, kid)
        if existing is not None and existing != signature and not overwrite:
            raise ConflictingSignature("conflicting_signature", details={"entity": entity, "key_id": kid})
        entries = {e: dict(s) for e, s in self._entries.items()}
        entries.setdefault(entity, {})[kid] = bytes(signature)
        return SignatureMap(entries)

    def merge(self, other: "SignatureMap") -> "SignatureMap":
        merged = self
        for entity, kid, sig in other:
            merged = merged.insert(entity, kid, sig)
        return merged

    def entities(self) -> Tuple[str, ...]:
        return tuple(sorted(self._entries))

    def key_ids(self, entity: str) -> Tuple[str, ...]:
        return tuple(sorted(self._entries.get(entity, {})))

    def __iter__(self) -> Iterator[Tuple[str, str, bytes]]:
        for entity in sorted(self._entries):
            for kid in sorted(self._entries[entity]):
                yield entity, kid, self._entries[entity][kid]

    def __len__(self) -> int:
        return sum(len(s) for s in self._entries.values())

    def __contains__(self, slot: object) -> bool:
        if not isinstance(slot, tuple) or len(slot) != 2:
            return False
        entity, kid = slot
        return self.get(entity, kid) is not None  # type: ignore[arg-type]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SignatureMap):
            return NotImplemented
        return self._entries == other._entries

    def __hash__(self) -> int:
        return hash(tuple(self))

    def __repr__(self) -> str:
        slots = ", ".join(f"{e}/{k}" for e, k, _ in self)
        return f"SignatureMap({slots})"


__all__ = ["SIGNATURES_FIELD", "SignatureMap"]
