from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Tuple

from fedsign.common.errors import MalformedObject, UnknownAlgorithm

KEY_ID_SEPARATOR = ":"


class Algorithm(str, Enum):
    ED25519 = "ed25519"

    @classmethod
    def parse(cls, name: str) -> "Algorithm":
        # Exact, case-sensitive match: "Ed25519" is not the same algorithm id.
        for member in cls:
            if member.value == name:
                return member
        raise UnknownAlgorithm("unknown_algorithm", details={"algorithm": name})


@dataclass(frozen=True)
class KeyId:
    """A composite ``<algorithm>:<identifier>`` key id."""

    algorithm: Algorithm
    identifier: str

    def __post_init__(self) -> None:
        if not isinstance(self.algorithm, Algorithm):
            raise UnknownAlgorithm("unknown_algorithm", details={"algorithm": repr(self.algorithm)})
        if not self.identifier:
            raise MalformedObject("empty_key_identifier")

    @classmethod
    def parse(cls, key_id: str) -> "KeyId":
        if not isinstance(key_id, str) or KEY_ID_SEPARATOR not in key_id:
            raise MalformedObject("key_id_missing_separator", details={"key_id": repr(key_id)})
        algorithm, identifier = key_id.split(KEY_ID_SEPARATOR, 1)
        if not identifier:
            raise MalformedObject("empty_key_identifier", details={"key_id": key_id})
        return cls(algorithm=Algorithm.parse(algorithm), identifier=identifier)

    @classmethod
    def ed25519(cls, identifier: str) -> "KeyId":
        return cls(algorithm=Algorithm.ED25519, identifier=identifier)

    def __str__(self) -> str:
        return f"{self.algorithm.value}{KEY_ID_SEPARATOR}{self.identifier}"


def split_key_id(key_id: str) -> Tuple[Algorithm, str]:
    parsed = KeyId.parse(key_id)
    return parsed.algorithm, parsed.identifier


def as_key_id(key_id: "KeyId | str") -> KeyId:
    if isinstance(key_id, KeyId):
        return key_id
    return KeyId.parse(key_id)


__all__ = ["Algorithm", "KEY_ID_SEPARATOR", "KeyId", "as_key_id", "split_key_id"]
