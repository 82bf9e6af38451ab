# tests/unit/schema/test_unit_registry.py — v1
"""Tests for schema/registry.py."""

from __future__ import annotations

import json

import pytest

from protoscope.schema.registry import BASE_SCHEMA, SchemaLoadError, SchemaRegistry


class TestSchemaRegistry:
    def test_bundled_schema(self):
        registry = SchemaRegistry()
        schema = registry.get("NB1")
        assert "mission" in schema["properties"]
        assert registry.is_step_specific("NB1")

    def test_base_fallback(self):
        registry = SchemaRegistry()
        assert registry.get("NB9") == BASE_SCHEMA
        assert not registry.is_step_specific("NB9")

    def test_base_fallback_is_a_copy(self):
        schema = SchemaRegistry().get("NB12")
        schema["required"].append("extra")
        assert "extra" not in BASE_SCHEMA["required"]

    def test_custom_dir_takes_precedence(self, tmp_path):
        (tmp_path / "NB1.json").write_text(json.dumps({"type": "object", "required": ["custom"]}))
        schema = SchemaRegistry(tmp_path).get("NB1")
        assert schema["required"] == ["custom"]

    def test_custom_dir_without_bundled(self, tmp_path):
        registry = SchemaRegistry(tmp_path, include_bundled=False)
        assert registry.get("NB1") == BASE_SCHEMA

    def test_invalid_file(self, tmp_path):
        (tmp_path / "nb5.json").write_text("{not json")
        with pytest.raises(SchemaLoadError):
            SchemaRegistry(tmp_path).get("NB5")

    def test_undecodable_file(self, tmp_path):
        (tmp_path / "NB5.json").write_bytes(b"\xff\xfe\x00garbage")
        with pytest.raises(SchemaLoadError):
            SchemaRegistry(tmp_path).get("NB5")

    def test_invalid_json_schema(self, tmp_path):
        (tmp_path / "NB6.json").write_text(json.dumps({"type": "date"}))
        with pytest.raises(SchemaLoadError, match="not a valid JSON Schema"):
            SchemaRegistry(tmp_path).get("NB6")
