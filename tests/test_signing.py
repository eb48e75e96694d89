import base64
import copy
from concurrent.futures import ThreadPoolExecutor

import pytest

from fedsign.common.encoding import decode_base64, encode_base64
from fedsign.common.errors import (
    InvalidSignatureFormat,
    MalformedObject,
    MissingVerifyKey,
    SignatureNotFound,
    UnknownAlgorithm,
    VerificationFailed,
)
from fedsign.keys import InMemoryKeyRing, SigningKey
from fedsign.signatures import SignatureMap, sign_detached, sign_json, signing_bytes, verify_json, verify_signature


def _public(key: SigningKey) -> str:
    return key.verify_key().to_base64()


def test_matrix_appendix_sign_empty_object(appendix_key: SigningKey) -> None:
    signed = sign_json({}, appendix_key)
    assert signed == {
        "signatures": {
            "domain": {
                "ed25519:1": "K8280/U9SSy9IVtjBuVeLr+HpOB4BQFWbg+UZaADMtTdGYI7Geitb76LTrr5QV/7Xg4ahLwYGYZzuHGZKM5ZAQ"
            }
        }
    }


def test_matrix_appendix_sign_simple_object(appendix_key: SigningKey) -> None:
    signed = sign_json({"one": 1, "two": "Two"}, appendix_key)
    assert signed["signatures"]["domain"]["ed25519:1"] == (
        "KqmLSbO39/Bzb0QIYE82zqLwsA+PDzYIpIRA2sRQ4sL53+sN6/fpNSoqE7BP7vBZhG6kYdD13EIMJpvhJI+6Bw"
    )
    verify_signature(signed, "domain", "ed25519:1", appendix_key.public_key_bytes())


def test_signing_bytes_skip_signatures_and_unsigned() -> None:
    obj = {"b": 1, "signatures": {"x": {}}, "unsigned": {"age": 5}, "a": [1]}
    assert signing_bytes(obj) == b'{"a":[1],"b":1}'
    with pytest.raises(MalformedObject):
        signing_bytes([1, 2])


def test_sign_verify_round_trip(key_a: SigningKey) -> None:
    obj = {"method": "GET", "uri": "/_matrix/federation/v1/version", "origin": "a.example"}
    signed = sign_json(obj, key_a)
    assert "signatures" not in obj
    verify_signature(signed, key_a.entity, key_a.key_id, key_a.verify_key())
    verify_signature(signed, key_a.entity, str(key_a.key_id), _public(key_a))


def test_detached_signature_matches_attached(key_a: SigningKey) -> None:
    obj = {"k": "v"}
    detached = sign_detached(obj, key_a)
    signed = sign_json(obj, key_a)
    assert signed["signatures"][key_a.entity][str(key_a.key_id)] == encode_base64(detached)


def test_tampered_content_fails(key_a: SigningKey) -> None:
    signed = sign_json({"amount": 10, "to": "bob"}, key_a)
    tampered = copy.deepcopy(signed)
    tampered["amount"] = 11
    with pytest.raises(VerificationFailed):
        verify_signature(tampered, key_a.entity, key_a.key_id, key_a.verify_key())


def test_every_flipped_signature_bit_fails(key_a: SigningKey) -> None:
    signed = sign_json({"x": "y"}, key_a)
    kid = str(key_a.key_id)
    raw = decode_base64(signed["signatures"][key_a.entity][kid])
    for bit in (0, 7, 100, 511):
        flipped = bytearray(raw)
        flipped[bit // 8] ^= 1 << (bit % 8)
        tampered = copy.deepcopy(signed)
        tampered["signatures"][key_a.entity][kid] = encode_base64(bytes(flipped))
        with pytest.raises(VerificationFailed):
            verify_signature(tampered, key_a.entity, kid, key_a.verify_key())


def test_unsigned_data_does_not_affect_signature(key_a: SigningKey) -> None:
    signed = sign_json({"x": 1}, key_a)
    signed["unsigned"] = {"age": 1234}
    verify_signature(signed, key_a.entity, key_a.key_id, key_a.verify_key())


def test_missing_signature(key_a: SigningKey, key_b: SigningKey) -> None:
    with pytest.raises(SignatureNotFound):
        verify_signature({"x": 1}, key_a.entity, key_a.key_id, key_a.verify_key())
    signed = sign_json({"x": 1}, key_b)
    with pytest.raises(SignatureNotFound):
        verify_signature(signed, key_a.entity, key_a.key_id, key_a.verify_key())


def test_invalid_signature_format(key_a: SigningKey) -> None:
    kid = str(key_a.key_id)
    for bad in ("***", encode_base64(b"\x00" * 63), encode_base64(b"\x00" * 65)):
        obj = {"x": 1, "signatures": {key_a.entity: {kid: bad}}}
        with pytest.raises(InvalidSignatureFormat):
            verify_signature(obj, key_a.entity, kid, key_a.verify_key())
    with pytest.raises(InvalidSignatureFormat):
        verify_signature({"signatures": {key_a.entity: {kid: 7}}}, key_a.entity, kid, key_a.verify_key())


def test_padded_signature_is_accepted(key_a: SigningKey) -> None:
    signed = sign_json({"x": 1}, key_a)
    kid = str(key_a.key_id)
    raw = decode_base64(signed["signatures"][key_a.entity][kid])
    signed["signatures"][key_a.entity][kid] = base64.b64encode(raw).decode("ascii")
    verify_signature(signed, key_a.entity, kid, key_a.verify_key())


def test_unknown_algorithm_key_id(key_a: SigningKey) -> None:
    signed = sign_json({"x": 1}, key_a)
    with pytest.raises(UnknownAlgorithm):
        verify_signature(signed, key_a.entity, "rot13:abc", key_a.public_key_bytes())


def test_signature_additivity(key_a: SigningKey, key_b: SigningKey) -> None:
    obj = {"content": {"body": "hi"}}
    ab = sign_json(sign_json(obj, key_a), key_b)
    ba = sign_json(sign_json(obj, key_b), key_a)
    assert SignatureMap.from_object(ab) == SignatureMap.from_object(ba)
    assert len(SignatureMap.from_object(ab)) == 2
    for key in (key_a, key_b):
        verify_signature(ab, key.entity, key.key_id, key.verify_key())


def test_resigning_same_slot_is_a_no_op(key_a: SigningKey) -> None:
    once = sign_json({"x": 1}, key_a)
    assert sign_json(once, key_a) == once


def test_verify_json_with_public_key_map(key_a: SigningKey, key_b: SigningKey) -> None:
    signed = sign_json(sign_json({"x": 1}, key_a), key_b)
    keys = {
        key_a.entity: {str(key_a.key_id): _public(key_a)},
        key_b.entity: {str(key_b.key_id): _public(key_b)},
    }
    checked = verify_json(keys, signed)
    assert checked == ((key_a.entity, str(key_a.key_id)), (key_b.entity, str(key_b.key_id)))


def test_verify_json_requires_a_signature_per_entity(key_a: SigningKey, key_b: SigningKey) -> None:
    signed = sign_json({"x": 1}, key_a)
    ring = InMemoryKeyRing([key_a.verify_key(), key_b.verify_key()])
    with pytest.raises(SignatureNotFound):
        verify_json(ring, signed)
    assert verify_json(ring, signed, entities=[key_a.entity]) == ((key_a.entity, str(key_a.key_id)),)


def test_verify_json_never_passes_vacuously(key_a: SigningKey) -> None:
    signed = sign_json({"x": 1}, key_a)
    with pytest.raises(MissingVerifyKey):
        verify_json({}, signed)
    with pytest.raises(MissingVerifyKey):
        verify_json(InMemoryKeyRing(), signed, entities=[key_a.entity])


def test_verify_json_rejects_tampering(key_a: SigningKey) -> None:
    signed = sign_json({"x": 1}, key_a)
    signed["x"] = 2
    with pytest.raises(VerificationFailed):
        verify_json(InMemoryKeyRing([key_a.verify_key()]), signed)


def test_parallel_signing_is_deterministic(key_a: SigningKey) -> None:
    obj = {"n": list(range(50)), "s": "payload"}
    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda _: sign_detached(obj, key_a), range(32)))
    assert len(set(results)) == 1


def test_countersigning_leaves_other_slots_untouched(key_a: SigningKey, key_b: SigningKey) -> None:
    signed = sign_json({"x": 1}, key_a)
    kid_a = str(key_a.key_id)
    padded = base64.b64encode(decode_base64(signed["signatures"][key_a.entity][kid_a])).decode("ascii")
    signed["signatures"][key_a.entity][kid_a] = padded
    signed["signatures"]["c.example"] = {"ed25519:c": "not*base64", "weird": 5}

    countersigned = sign_json(signed, key_b)
    assert countersigned["signatures"][key_a.entity] == {kid_a: padded}
    assert countersigned["signatures"]["c.example"] == {"ed25519:c": "not*base64", "weird": 5}
    verify_signature(countersigned, key_a.entity, key_a.key_id, key_a.verify_key())
    verify_signature(countersigned, key_b.entity, key_b.key_id, key_b.verify_key())
    assert signed["signatures"].keys() == {key_a.entity, "c.example"}


def test_sign_json_rejects_malformed_signature_containers(key_a: SigningKey) -> None:
    with pytest.raises(MalformedObject):
        sign_json({"x": 1, "signatures": ["nope"]}, key_a)
    with pytest.raises(MalformedObject):
        sign_json({"x": 1, "signatures": {key_a.entity: "nope"}}, key_a)


def test_verify_signature_rejects_misrouted_verify_key(key_a: SigningKey, key_b: SigningKey) -> None:
    signed = sign_json({"x": 1}, key_a)
    with pytest.raises(MalformedObject) as exc:
        verify_signature(signed, key_a.entity, key_a.key_id, key_b.verify_key())
    assert exc.value.message == "verify_key_mismatch"
    renamed = SigningKey.from_bytes(key_a.entity, "ed25519:other", key_a.seed_bytes())
    with pytest.raises(MalformedObject):
        verify_signature(signed, key_a.entity, key_a.key_id, renamed.verify_key())
