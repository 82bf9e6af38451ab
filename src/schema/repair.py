# src/schema/repair.py — v1
"""Best-effort structural repair of decoded payloads.

Never calls an external service. Walks the jsonschema errors of a payload
and fixes the ones with a mechanical remedy: mismatched types are coerced,
missing required fields are filled with schema or type defaults and
disallowed extra properties are dropped. Passes repeat until the payload
validates or no remedy applies.
"""

from __future__ import annotations

import copy
import json
import logging
import re
from typing import Any

from jsonschema.exceptions import ValidationError

from protoscope.schema.validator import iter_schema_errors, validate

logger = logging.getLogger(__name__)

MAX_REPAIR_PASSES = 5

_TYPE_DEFAULTS: dict[str, Any] = {
    "string": "",
    "number": 0.0,
    "integer": 0,
    "boolean": False,
    "array": [],
    "object": {},
    "null": None,
}

_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")
_BARE_KEY_RE = re.compile(r"([{,]\s*)([A-Za-z_][A-Za-z0-9_]*)\s*:")
_URL_RE = re.compile(r"^(https?://|www\.)", re.IGNORECASE)


def repair(payload: Any, schema: dict[str, Any]) -> dict[str, Any] | None:
    """Attempt to repair a payload so that it validates.

    Returns:
        The repaired payload, or None if it still fails validation.
    """
    if not isinstance(payload, dict):
        return None

    repaired = copy.deepcopy(payload)
    for _ in range(MAX_REPAIR_PASSES):
        errors = iter_schema_errors(repaired, schema)
        if not errors:
            return repaired
        # deepest first, so a parent replacement never strands a child fix
        errors.sort(key=lambda e: len(e.absolute_path), reverse=True)
        applied = sum(_apply_fix(repaired, error) for error in errors)
        if not applied:
            break

    result = validate(repaired, schema)
    if result.valid:
        return repaired
    logger.debug("Repair left %d error(s): %s", len(result.errors), result.errors[:3])
    return None


def default_for_type(expected: str | list[str] | None) -> Any:
    """Default value for a schema type (first type when a list is given)."""
    if isinstance(expected, list):
        expected = expected[0] if expected else None
    if expected is None:
        return ""
    return copy.deepcopy(_TYPE_DEFAULTS.get(expected, ""))


def coerce_type(value: Any, expected: str, schema: dict[str, Any] | None = None) -> Any:
    """Coerce a value to a JSON type, falling back to the type default."""
    if expected == "string":
        if value is None:
            return ""
        if isinstance(value, (dict, list)):
            return json.dumps(value)
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)

    if expected in ("number", "integer"):
        try:
            number = float(value)
        except (TypeError, ValueError):
            return _TYPE_DEFAULTS[expected]
        return int(number) if expected == "integer" else number

    if expected == "boolean":
        if isinstance(value, str):
            return value.strip().lower() in ("true", "1", "yes")
        return bool(value)

    if expected == "array":
        if value is None:
            return []
        return [value]

    if expected == "object":
        properties = (schema or {}).get("properties", {})
        if isinstance(value, str) and "url" in properties and _URL_RE.match(value.strip()):
            return {"url": value.strip()}
        return {}

    return _TYPE_DEFAULTS.get(expected)


def fix_json_string(text: str) -> str:
    """Fix common JSON syntax slips: BOM, trailing commas, unquoted keys."""
    text = text.lstrip("\ufeff").strip()
    text = _TRAILING_COMMA_RE.sub(r"\1", text)
    text = _BARE_KEY_RE.sub(r'\1"\2":', text)
    return text


def _apply_fix(root: dict[str, Any], error: ValidationError) -> bool:
    """Apply the remedy for one error in place. True when something changed."""
    path = list(error.absolute_path)
    if error.validator == "type":
        if not path:
            return False
        expected = error.validator_value
        first = expected[0] if isinstance(expected, list) else expected
        return _set_at(root, path, coerce_type(error.instance, first, error.schema))

    if not isinstance(error.instance, dict):
        return False
    target = _get_at(root, path)
    if not isinstance(target, dict):
        return False
    properties: dict[str, Any] = error.schema.get("properties", {})

    if error.validator == "required":
        missing = [name for name in error.validator_value if name not in target]
        for name in missing:
            prop = properties.get(name, {})
            if "default" in prop:
                target[name] = copy.deepcopy(prop["default"])
            else:
                target[name] = default_for_type(prop.get("type"))
        return bool(missing)

    if error.validator == "additionalProperties" and error.validator_value is False:
        extra = [name for name in target if name not in properties]
        for name in extra:
            del target[name]
        return bool(extra)

    return False


def _get_at(root: Any, path: list[str | int]) -> Any:
    node = root
    for part in path:
        try:
            node = node[part]
        except (KeyError, IndexError, TypeError):
            return None
    return node


def _set_at(root: Any, path: list[str | int], value: Any) -> bool:
    parent = _get_at(root, path[:-1])
    key = path[-1]
    if isinstance(parent, dict) and key in parent:
        parent[key] = value
        return True
    if isinstance(parent, list) and isinstance(key, int) and key < len(parent):
        parent[key] = value
        return True
    return False
