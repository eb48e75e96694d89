from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple, Union

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey, Ed25519PublicKey

from fedsign.common.encoding import decode_base64, encode_base64
from fedsign.common.errors import (
    InvalidKeyMaterial,
    InvalidSignatureFormat,
    UnknownAlgorithm,
    VerificationFailed,
)

from .identity import Algorithm, KeyId, as_key_id

ED25519_PUBLIC_KEY_LENGTH = 32
ED25519_SEED_LENGTH = 32
ED25519_EXPANDED_KEY_LENGTH = 64
ED25519_SIGNATURE_LENGTH = 64

BytesLike = Union[bytes, bytearray, memoryview]


def _unknown(algorithm: Algorithm) -> UnknownAlgorithm:
    return UnknownAlgorithm("unknown_algorithm", details={"algorithm": str(algorithm)})


def _raw_public_bytes(public_key: Ed25519PublicKey) -> bytes:
    return public_key.public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )


def _load_public_key(algorithm: Algorithm, data: bytes) -> Ed25519PublicKey:
    if algorithm is Algorithm.ED25519:
        if len(data) != ED25519_PUBLIC_KEY_LENGTH:
            raise InvalidKeyMaterial(
                "ed25519_public_key_must_be_32_bytes", details={"length": len(data)}
            )
        try:
            return Ed25519PublicKey.from_public_bytes(data)
        except ValueError as exc:
            raise InvalidKeyMaterial("ed25519_public_key_invalid") from exc
    raise _unknown(algorithm)


@dataclass(frozen=True)
class VerifyKey:
    """Public half of a key, bound to the entity and key id that own it."""

    entity: str
    key_id: KeyId
    public_bytes: bytes = field(repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "key_id", as_key_id(self.key_id))
        object.__setattr__(self, "public_bytes", bytes(self.public_bytes))
        _load_public_key(self.key_id.algorithm, self.public_bytes)

    @property
    def algorithm(self) -> Algorithm:
        return self.key_id.algorithm

    @classmethod
    def from_base64(cls, entity: str, key_id: "KeyId | str", text: str) -> "VerifyKey":
        try:
            data = decode_base64(text)
        except ValueError as exc:
            raise InvalidKeyMaterial("public_key_not_base64", details={"key_id": str(key_id)}) from exc
        return cls(entity=entity, key_id=as_key_id(key_id), public_bytes=data)

    def to_base64(self) -> str:
        return encode_base64(self.public_bytes, padded=True)

    def verify(self, message: BytesLike, signature: BytesLike) -> None:
        """Raise unless ``signature`` is valid for ``message`` under this key."""
        algorithm = self.key_id.algorithm
        if algorithm is Algorithm.ED25519:
            if len(signature) != ED25519_SIGNATURE_LENGTH:
                raise InvalidSignatureFormat(
                    "ed25519_signature_must_be_64_bytes",
                    details={"entity": self.entity, "key_id": str(self.key_id), "length": len(signature)},
                )
            public_key = _load_public_key(algorithm, self.public_bytes)
            try:
                public_key.verify(bytes(signature), bytes(message))
            except InvalidSignature as exc:
                raise VerificationFailed(
                    "signature_mismatch",
                    details={"entity": self.entity, "key_id": str(self.key_id)},
                ) from exc
            return
        raise _unknown(algorithm)


@dataclass(frozen=True, eq=False)
class SigningKey:
    entity: str
    key_id: KeyId
    private_key: Ed25519PrivateKey = field(repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "key_id", as_key_id(self.key_id))
        if self.key_id.algorithm is not Algorithm.ED25519:
            raise _unknown(self.key_id.algorithm)
        if not isinstance(self.private_key, Ed25519PrivateKey):
            raise InvalidKeyMaterial("expected_ed25519_private_key")

    @staticmethod
    def generate(entity: str, identifier: str) -> "SigningKey":
        return SigningKey(
            entity=entity,
            key_id=KeyId.ed25519(identifier),
            private_key=Ed25519PrivateKey.generate(),
        )

    @staticmethod
    def from_bytes(entity: str, key_id: "KeyId | str", data: BytesLike) -> "SigningKey":
        """Load a key from a 32-byte seed or a 64-byte ``seed || public`` key."""
        kid = as_key_id(key_id)
        raw = bytes(data)
        if kid.algorithm is Algorithm.ED25519:
            if len(raw) == ED25519_SEED_LENGTH:
                seed, expected_public = raw, None
            elif len(raw) == ED25519_EXPANDED_KEY_LENGTH:
                seed, expected_public = raw[:ED25519_SEED_LENGTH], raw[ED25519_SEED_LENGTH:]
            else:
                raise InvalidKeyMaterial(
                    "ed25519_private_key_must_be_32_or_64_bytes", details={"length": len(raw)}
                )
            private_key = Ed25519PrivateKey.from_private_bytes(seed)
            if expected_public is not None and _raw_public_bytes(private_key.public_key()) != expected_public:
                raise InvalidKeyMaterial("ed25519_public_half_does_not_match_seed")
            return SigningKey(entity=entity, key_id=kid, private_key=private_key)
        raise _unknown(kid.algorithm)

    @staticmethod
    def from_base64(entity: str, key_id: "KeyId | str", text: str) -> "SigningKey":
        try:
            data = decode_base64(text)
        except ValueError as exc:
            raise InvalidKeyMaterial("private_key_not_base64") from exc
        return SigningKey.from_bytes(entity, key_id, data)

    @staticmethod
    def from_pkcs8(entity: str, key_id: "KeyId | str", der: bytes) -> "SigningKey":
        try:
            private_key = serialization.load_der_private_key(der, password=None)
        except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
            raise InvalidKeyMaterial("pkcs8_document_invalid") from exc
        if not isinstance(private_key, Ed25519PrivateKey):
            raise InvalidKeyMaterial("pkcs8_key_is_not_ed25519")
        return SigningKey(entity=entity, key_id=as_key_id(key_id), private_key=private_key)

    def _identity(self) -> Tuple[str, KeyId, bytes]:
        return (self.entity, self.key_id, self.public_key_bytes())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SigningKey):
            return NotImplemented
        return self._identity() == other._identity()

    def __hash__(self) -> int:
        return hash(self._identity())

    @property
    def algorithm(self) -> Algorithm:
        return self.key_id.algorithm

    def seed_bytes(self) -> bytes:
        return self.private_key.private_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PrivateFormat.Raw,
            encryption_algorithm=serialization.NoEncryption(),
        )

    def seed_base64(self) -> str:
        return encode_base64(self.seed_bytes(), padded=True)

    def to_pkcs8(self) -> bytes:
        return self.private_key.private_bytes(
            encoding=serialization.Encoding.DER,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )

    def public_key_bytes(self) -> bytes:
        return _raw_public_bytes(self.private_key.public_key())

    def verify_key(self) -> VerifyKey:
        return VerifyKey(entity=self.entity, key_id=self.key_id, public_bytes=self.public_key_bytes())

    def sign(self, message: BytesLike) -> bytes:
        return self.private_key.sign(bytes(message))


__all__ = [
    "ED25519_EXPANDED_KEY_LENGTH",
    "ED25519_PUBLIC_KEY_LENGTH",
    "ED25519_SEED_LENGTH",
    "ED25519_SIGNATURE_LENGTH",
    "SigningKey",
    "VerifyKey",
]
