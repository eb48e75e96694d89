from .ed25519 import SigningKey, VerifyKey
from .identity import Algorithm, KeyId, split_key_id
from .keyring import InMemoryKeyRing, KeyRing, PublicKeyMap, as_key_ring

__all__ = [
    "Algorithm",
    "InMemoryKeyRing",
    "KeyId",
    "KeyRing",
    "PublicKeyMap",
    "SigningKey",
    "VerifyKey",
    "as_key_ring",
    "split_key_id",
]
