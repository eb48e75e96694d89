import pytest

from fedsign.common.errors import InvalidKeyMaterial, MalformedObject, UnknownAlgorithm
from fedsign.keys import Algorithm, InMemoryKeyRing, KeyId, SigningKey, VerifyKey, split_key_id


def test_algorithm_parse() -> None:
    assert Algorithm.parse("ed25519") is Algorithm.ED25519
    for name in ("rot13", "Ed25519", "", "curve25519"):
        with pytest.raises(UnknownAlgorithm):
            Algorithm.parse(name)


def test_key_id_parse_and_format() -> None:
    kid = KeyId.parse("ed25519:a_AbC1")
    assert kid.algorithm is Algorithm.ED25519
    assert kid.identifier == "a_AbC1"
    assert str(kid) == "ed25519:a_AbC1"
    assert KeyId.ed25519("a_AbC1") == kid


def test_key_id_unknown_algorithm() -> None:
    with pytest.raises(UnknownAlgorithm):
        KeyId.parse("rot13:abc")


@pytest.mark.parametrize("raw", ["ed25519", "ed25519:", ""])
def test_key_id_malformed(raw: str) -> None:
    with pytest.raises(MalformedObject):
        KeyId.parse(raw)


def test_split_key_id_splits_on_first_separator() -> None:
    assert split_key_id("ed25519:a:b") == (Algorithm.ED25519, "a:b")


def test_verify_key_length_checked() -> None:
    with pytest.raises(InvalidKeyMaterial):
        VerifyKey(entity="x", key_id=KeyId.ed25519("1"), public_bytes=b"\x00" * 31)
    with pytest.raises(InvalidKeyMaterial):
        VerifyKey.from_base64("x", "ed25519:1", "not base64!")


def test_verify_key_base64_is_padded_and_accepts_unpadded(key_a: SigningKey) -> None:
    verify_key = key_a.verify_key()
    encoded = verify_key.to_base64()
    assert len(encoded) == 44 and encoded.endswith("=")
    again = VerifyKey.from_base64(key_a.entity, key_a.key_id, encoded.rstrip("="))
    assert again == verify_key


def test_signing_key_from_seed_and_expanded(key_a: SigningKey) -> None:
    seed = key_a.seed_bytes()
    from_seed = SigningKey.from_bytes("a.example", "ed25519:a_key", seed)
    expanded = SigningKey.from_bytes("a.example", "ed25519:a_key", seed + key_a.public_key_bytes())
    assert from_seed.public_key_bytes() == expanded.public_key_bytes() == key_a.public_key_bytes()


def test_signing_key_rejects_bad_material(key_a: SigningKey, key_b: SigningKey) -> None:
    with pytest.raises(InvalidKeyMaterial):
        SigningKey.from_bytes("a.example", "ed25519:a_key", b"\x01" * 31)
    with pytest.raises(InvalidKeyMaterial):
        SigningKey.from_bytes("a.example", "ed25519:a_key", b"\x01" * 48)
    mismatched = key_a.seed_bytes() + key_b.public_key_bytes()
    with pytest.raises(InvalidKeyMaterial):
        SigningKey.from_bytes("a.example", "ed25519:a_key", mismatched)


def test_signing_key_unknown_algorithm() -> None:
    with pytest.raises(UnknownAlgorithm):
        SigningKey.from_bytes("a.example", "rot13:abc", b"\x01" * 32)


def test_seed_base64_round_trip(key_a: SigningKey) -> None:
    encoded = key_a.seed_base64()
    assert encoded.endswith("=")
    loaded = SigningKey.from_base64(key_a.entity, key_a.key_id, encoded)
    assert loaded.public_key_bytes() == key_a.public_key_bytes()


def test_pkcs8_round_trip(key_a: SigningKey) -> None:
    der = key_a.to_pkcs8()
    loaded = SigningKey.from_pkcs8(key_a.entity, key_a.key_id, der)
    assert loaded.public_key_bytes() == key_a.public_key_bytes()
    with pytest.raises(InvalidKeyMaterial):
        SigningKey.from_pkcs8(key_a.entity, key_a.key_id, b"\x30\x03garbage")


def test_signing_is_deterministic(key_a: SigningKey) -> None:
    assert key_a.sign(b"message") == key_a.sign(b"message")
    assert len(key_a.sign(b"message")) == 64


def test_repr_hides_key_material(key_a: SigningKey) -> None:
    assert key_a.seed_base64() not in repr(key_a)


def test_key_ring_from_public_key_map(key_a: SigningKey, key_b: SigningKey) -> None:
    ring = InMemoryKeyRing.from_public_key_map(
        {
            "a.example": {
                "ed25519:a_key": key_a.verify_key().to_base64(),
                "rot13:ignored": "AAAA",
            },
            "b.example": {"ed25519:b_key": key_b.verify_key().to_base64().rstrip("=")},
        }
    )
    assert list(ring.entities()) == ["a.example", "b.example"]
    assert set(ring.verify_keys_for("a.example")) == {"ed25519:a_key"}
    assert ring.verify_keys_for("c.example") == {}
    assert len(ring) == 2


def test_key_ring_rejects_conflicting_key_ids(key_a: SigningKey, key_b: SigningKey) -> None:
    ring = InMemoryKeyRing([key_a.verify_key()])
    ring.add(key_a.verify_key())
    impostor = VerifyKey(entity=key_a.entity, key_id=key_a.key_id, public_bytes=key_b.public_key_bytes())
    with pytest.raises(MalformedObject):
        ring.add(impostor)


def test_signing_key_equality_follows_key_material(key_a: SigningKey) -> None:
    first = SigningKey.generate("a.example", "1")
    second = SigningKey.generate("a.example", "1")
    assert first != second
    assert len({first, second}) == 2

    reloaded = SigningKey.from_bytes(key_a.entity, key_a.key_id, key_a.seed_bytes())
    assert reloaded == key_a
    assert hash(reloaded) == hash(key_a)
    assert SigningKey.from_bytes("other.example", key_a.key_id, key_a.seed_bytes()) != key_a
