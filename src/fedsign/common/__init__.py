from .canonical_json import canonical_json, canonical_json_bytes, canonicalize, parse_json
from .encoding import decode_base64, encode_base64
from .errors import ErrorKind, SigningError
from .hashing import sha256_bytes, sha256_canonical
from .schema_validate import validate_json
