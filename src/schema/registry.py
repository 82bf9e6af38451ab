# src/schema/registry.py — v1
"""Per-step schema lookup with base-schema fallback.

Lookup order for a step code: the configured schema directory, then the
schemas bundled with the package, then BASE_SCHEMA. File names are the
step code (``NB1.json``) or its lower-case form (``nb1.json``).
"""

from __future__ import annotations

import copy
import json
import logging
from pathlib import Path
from typing import Any

from jsonschema import Draft202012Validator
from jsonschema.exceptions import SchemaError

logger = logging.getLogger(__name__)

BUNDLED_SCHEMA_DIR = Path(__file__).parent / "schemas"

BASE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["summary", "key_points", "citations"],
    "properties": {
        "summary": {"type": "string"},
        "key_points": {"type": "array", "items": {"type": "string"}},
        "citations": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["source_id"],
                "properties": {
                    "source_id": {"type": "integer"},
                    "quote": {"type": "string"},
                    "page": {"type": ["integer", "string"]},
                    "url": {"type": "string"},
                },
            },
        },
    },
}


class SchemaLoadError(Exception):
    """Raised when a schema file exists but cannot be read, decoded or checked."""


class SchemaRegistry:
    """Load and cache step schemas by step code."""

    def __init__(self, schema_dir: Path | str | None = None, include_bundled: bool = True) -> None:
        self._dirs: list[Path] = []
        if schema_dir:
            self._dirs.append(Path(schema_dir).expanduser())
        if include_bundled:
            self._dirs.append(BUNDLED_SCHEMA_DIR)
        self._cache: dict[str, dict[str, Any] | None] = {}

    def get(self, step_code: str) -> dict[str, Any]:
        """Return the schema for a step, or a copy of BASE_SCHEMA.

        Raises:
            SchemaLoadError: If a matching schema file is unreadable, not JSON
                or not a valid JSON Schema.
        """
        schema = self._lookup(step_code)
        if schema is None:
            logger.debug("No schema for %s, using base schema", step_code)
            return copy.deepcopy(BASE_SCHEMA)
        return schema

    def is_step_specific(self, step_code: str) -> bool:
        return self._lookup(step_code) is not None

    def _lookup(self, step_code: str) -> dict[str, Any] | None:
        if step_code not in self._cache:
            self._cache[step_code] = self._load(step_code)
        return self._cache[step_code]

    def _load(self, step_code: str) -> dict[str, Any] | None:
        for directory in self._dirs:
            for name in dict.fromkeys((f"{step_code}.json", f"{step_code.lower()}.json")):
                path = directory / name
                if not path.is_file():
                    continue
                try:
                    schema = json.loads(path.read_text(encoding="utf-8"))
                except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
                    raise SchemaLoadError(f"Invalid schema file {path}: {e}") from e
                if not isinstance(schema, dict):
                    raise SchemaLoadError(f"Schema file {path} is not a JSON object")
                try:
                    Draft202012Validator.check_schema(schema)
                except SchemaError as e:
                    raise SchemaLoadError(f"Schema file {path} is not a valid JSON Schema: {e.message}") from e
                logger.debug("Loaded schema for %s from %s", step_code, path)
                return schema
        return None
