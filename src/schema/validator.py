# src/schema/validator.py — v1
"""JSON Schema (draft 2020-12) validation of step payloads.

Errors are plain strings prefixed with the offending path
(e.g. ``root.citations[0].source_id: 'one' is not of type 'integer'``)
so they can be fed back to the generator verbatim.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from jsonschema import Draft202012Validator
from jsonschema.exceptions import ValidationError


@dataclass
class ValidationResult:
    """Outcome of a validation pass."""

    valid: bool
    errors: list[str] = field(default_factory=list)


def iter_schema_errors(payload: Any, schema: dict[str, Any]) -> list[ValidationError]:
    """Validation errors for a payload, ordered by path."""
    validator = Draft202012Validator(schema)
    return sorted(validator.iter_errors(payload), key=lambda e: (format_path(e.absolute_path), e.message))


def validate(payload: Any, schema: dict[str, Any]) -> ValidationResult:
    """Validate a decoded payload against a schema."""
    errors = [format_error(e) for e in iter_schema_errors(payload, schema)]
    return ValidationResult(valid=not errors, errors=errors)


def format_error(error: ValidationError) -> str:
    return f"{format_path(error.absolute_path)}: {error.message}"


def format_path(path: Iterable[str | int]) -> str:
    """``root.citations[0].url`` style rendering of a jsonschema path."""
    text = "root"
    for part in path:
        text += f"[{part}]" if isinstance(part, int) else f".{part}"
    return text
