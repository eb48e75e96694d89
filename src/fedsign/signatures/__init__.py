from .signature_map import SIGNATURES_FIELD, SignatureMap
from .signing import sign_detached, sign_json, signing_bytes, verify_json, verify_signature

__all__ = [
    "SIGNATURES_FIELD",
    "SignatureMap",
    "sign_detached",
    "sign_json",
    "signing_bytes",
    "verify_json",
    "verify_signature",
]
