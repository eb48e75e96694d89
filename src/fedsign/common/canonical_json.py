from __future__ import annotations

import json
from typing import Any, Collection, Dict, List, Mapping, Union

from .errors import InvalidUtf8, MalformedObject, UnsupportedNumber

JsonValue = Union[None, bool, int, str, List[Any], Dict[str, Any]]

# Integers that every JSON implementation can round-trip through a double.
SAFE_INT_MIN = -(2**53) + 1
SAFE_INT_MAX = 2**53 - 1

CANONICAL_JSON_SEPARATORS = (",", ":")

# Containers (objects and arrays) an encoded value may nest.
MAX_NESTING_DEPTH = 128

# Longest decimal literal that can still lie within the safe range.
_MAX_INT_DIGITS = len(str(SAFE_INT_MAX))


def _child(path: str, key: str) -> str:
    return f"{path}.{key}"


def _check_text(text: str, path: str) -> str:
    try:
        text.encode("utf-8")
    except UnicodeEncodeError as exc:
        raise InvalidUtf8("unpaired_surrogate", details={"path": path}) from exc
    return str(text)


def _check_int(value: int, path: str) -> int:
    if not SAFE_INT_MIN <= value <= SAFE_INT_MAX:
        raise UnsupportedNumber("integer_out_of_range", details={"path": path, "value": str(value)})
    return int(value)


def canonicalize(
    value: Any,
    *,
    exclude_keys: Collection[str] = (),
    _path: str = "$",
    _depth: int = 0,
) -> JsonValue:
    """Validate ``value`` and return it as plain ``dict``/``list``/scalars.

    Containers may nest at most ``MAX_NESTING_DEPTH`` levels deep.
    ``exclude_keys`` removes keys from the top-level object only. The returned
    structure never aliases the input containers.
    """
    if value is None or isinstance(value, bool):
        return value

    if isinstance(value, int):
        return _check_int(value, _path)

    if isinstance(value, float):
        # Covers -0.0, nan and inf as well: no float survives the trip through
        # every implementation byte-identically.
        raise UnsupportedNumber("float_not_allowed", details={"path": _path, "value": repr(value)})

    if isinstance(value, str):
        return _check_text(value, _path)

    if isinstance(value, (Mapping, list, tuple)) and _depth >= MAX_NESTING_DEPTH:
        raise MalformedObject("nesting_too_deep", details={"path": _path, "limit": MAX_NESTING_DEPTH})

    if isinstance(value, Mapping):
        out: Dict[str, JsonValue] = {}
        for k, v in value.items():
            if not isinstance(k, str):
                raise MalformedObject("non_string_key", details={"path": _path, "key": repr(k)})
            if _path == "$" and k in exclude_keys:
                continue
            key = _check_text(k, _path)
            if key in out:
                raise MalformedObject("duplicate_key", details={"path": _path, "key": key})
            out[key] = canonicalize(v, _path=_child(_path, key), _depth=_depth + 1)
        return out

    if isinstance(value, (list, tuple)):
        return [canonicalize(item, _path=f"{_path}[{i}]", _depth=_depth + 1) for i, item in enumerate(value)]

    raise MalformedObject(
        "unsupported_type", details={"path": _path, "type": type(value).__name__}
    )


def canonical_json(value: Any) -> str:
    return json.dumps(
        canonicalize(value),
        sort_keys=True,
        separators=CANONICAL_JSON_SEPARATORS,
        ensure_ascii=False,
        allow_nan=False,
    )


def canonical_json_bytes(value: Any) -> bytes:
    return canonical_json(value).encode("utf-8")


def canonical_equals(a: Any, b: Any) -> bool:
    return canonical_json_bytes(a) == canonical_json_bytes(b)


def _object_without_duplicates(pairs: List[tuple]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for k, v in pairs:
        if k in out:
            raise MalformedObject("duplicate_key", details={"key": k})
        out[k] = v
    return out


def _reject_float(text: str) -> Any:
    raise UnsupportedNumber("float_not_allowed", details={"value": text})


def _reject_constant(text: str) -> Any:
    raise UnsupportedNumber("non_finite_number", details={"value": text})


def _parse_int(text: str) -> int:
    # Checked before int(), which rejects very long literals with a plain ValueError.
    digits = len(text.lstrip("-"))
    if digits > _MAX_INT_DIGITS:
        raise UnsupportedNumber("integer_out_of_range", details={"path": "$", "digits": digits})
    return _check_int(int(text), "$")


def parse_json(data: Union[str, bytes, bytearray]) -> JsonValue:
    """Parse JSON text under the same rules the encoder enforces.

    Duplicate keys, floats, non-finite constants, unsafe integers and
    invalid UTF-8 are rejected rather than silently normalized.
    """
    if isinstance(data, (bytes, bytearray)):
        try:
            text = bytes(data).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise InvalidUtf8("invalid_utf8_bytes", details={"offset": exc.start}) from exc
    else:
        text = data

    try:
        parsed = json.loads(
            text,
            object_pairs_hook=_object_without_duplicates,
            parse_float=_reject_float,
            parse_int=_parse_int,
            parse_constant=_reject_constant,
        )
    except json.JSONDecodeError as exc:
        raise MalformedObject("invalid_json", details={"line": exc.lineno, "col": exc.colno}) from exc
    except RecursionError as exc:
        raise MalformedObject("nesting_too_deep", details={"limit": MAX_NESTING_DEPTH}) from exc

    # \ud800-style escapes decode to lone surrogates; re-walk to catch them.
    return canonicalize(parsed)


__all__ = [
    "CANONICAL_JSON_SEPARATORS",
    "JsonValue",
    "MAX_NESTING_DEPTH",
    "SAFE_INT_MAX",
    "SAFE_INT_MIN",
    "canonical_equals",
    "canonical_json",
    "canonical_json_bytes",
    "canonicalize",
    "parse_json",
]
