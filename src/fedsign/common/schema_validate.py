from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict

import jsonschema

from .errors import MalformedObject

SCHEMA_DIR = Path(__file__).resolve().parents[1] / "schemas"


def schema_path(schema_name: str) -> Path:
    path = SCHEMA_DIR / schema_name
    if not path.is_file():
        raise FileNotFoundError(f"Schema not found: {path}")
    return path


def load_schema(schema_name: str) -> Dict[str, Any]:
    with open(schema_path(schema_name), "r", encoding="utf-8") as f:
        return json.load(f)


@lru_cache(maxsize=None)
def schema_validator(schema_name: str) -> jsonschema.Draft202012Validator:
    # One validator per packaged schema for the life of the process.
    schema = load_schema(schema_name)
    jsonschema.Draft202012Validator.check_schema(schema)
    return jsonschema.Draft202012Validator(schema)


def validate_json(instance: Any, schema_name: str) -> None:
    try:
        schema_validator(schema_name).validate(instance)
    except jsonschema.ValidationError as exc:
        path = "$" + "".join(
            f"[{p}]" if isinstance(p, int) else f".{p}" for p in exc.absolute_path
        )
        raise MalformedObject(
            "schema_violation",
            details={"schema": schema_name, "path": path, "reason": exc.message},
        ) from exc
