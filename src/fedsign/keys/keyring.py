from __future__ import annotations

import logging
from typing import Dict, Iterable, Iterator, Mapping, Protocol, Union

from fedsign.common.errors import MalformedObject, UnknownAlgorithm

from .ed25519 import VerifyKey
from .identity import KeyId

logger = logging.getLogger(__name__)

# entity name -> key id -> base64 public key
PublicKeyMap = Mapping[str, Mapping[str, str]]


class KeyRing(Protocol):
    def verify_keys_for(self, entity: str) -> Mapping[str, VerifyKey]: ...

    def entities(self) -> Iterable[str]: ...


class InMemoryKeyRing:
    """Caller-owned set of verify keys, indexed by entity and key id.

    Signing and verification only read from it for the duration of a call.
    """

    def __init__(self, keys: Iterable[VerifyKey] = ()) -> None:
        self._keys: Dict[str, Dict[str, VerifyKey]] = {}
        for key in keys:
            self.add(key)

    @classmethod
    def from_public_key_map(cls, public_keys: PublicKeyMap) -> "InMemoryKeyRing":
        ring = cls()
        for entity, key_set in public_keys.items():
            if not isinstance(key_set, Mapping):
                raise MalformedObject("public_key_set_not_an_object", details={"entity": entity})
            for key_id, encoded in key_set.items():
                try:
                    kid = KeyId.parse(key_id)
                except UnknownAlgorithm:
                    logger.debug("skipping key %s for %s: unknown algorithm", key_id, entity)
                    continue
                ring.add(VerifyKey.from_base64(entity, kid, encoded))
        return ring

    def add(self, key: VerifyKey) -> None:
        slot = self._keys.setdefault(key.entity, {})
        kid = str(key.key_id)
        existing = slot.get(kid)
        if existing is not None and existing.public_bytes != key.public_bytes:
            raise MalformedObject("duplicate_key_id", details={"entity": key.entity, "key_id": kid})
        slot[kid] = key

    def verify_keys_for(self, entity: str) -> Mapping[str, VerifyKey]:
        return dict(self._keys.get(entity, {}))

    def entities(self) -> Iterable[str]:
        return sorted(self._keys)

    def __iter__(self) -> Iterator[VerifyKey]:
        for entity in sorted(self._keys):
            for kid in sorted(self._keys[entity]):
                yield self._keys[entity][kid]

    def __len__(self) -> int:
        return sum(len(v) for v in self._keys.values())


def as_key_ring(keys: Union[KeyRing, PublicKeyMap]) -> KeyRing:
    if isinstance(keys, Mapping):
        return InMemoryKeyRing.from_public_key_map(keys)
    return keys


__all__ = ["InMemoryKeyRing", "KeyRing", "PublicKeyMap", "as_key_ring"]
