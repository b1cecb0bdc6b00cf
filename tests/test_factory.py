"""Tests for configuration-driven schema creation."""

import json
import logging

import pytest

from dataknobs_view import (
    FieldType,
    Multiplicity,
    Schema,
    SchemaDefinitionError,
    SchemaFactory,
    load_schema,
    schema_factory,
)

USER_YAML = """
name: user
allow_unknown: false
fields:
  - name: name
    type: string
    constraints:
      - {type: min_length, value: 3}
      - {type: only_contains, charsets: [lower, upper]}
  - name: age
    type: int
    constraints:
      - {type: between, min: 18, max: 120}
  - name: tags
    type: string
    array: true
    required: false
  - name: address
    type: object
    required: false
    fields:
      - {name: city, type: string}
"""


class TestSchemaFactory:
    """Test SchemaFactory.create."""

    def test_singleton(self):
        assert isinstance(schema_factory, SchemaFactory)

    def test_create(self, caplog):
        caplog.set_level(logging.INFO, logger="dataknobs_view.factory")
        schema = schema_factory.create(
            name="person",
            fields=[
                {"name": "name", "type": "string", "constraints": [{"type": "min_length", "value": 3}]},
                {"name": "age", "type": "integer", "constraints": [{"type": "gte", "value": 18}]},
            ],
        )
        assert isinstance(schema, Schema)
        assert schema.name == "person"
        assert schema.get_field("age").field_type is FieldType.INT
        assert "Creating schema: person" in caplog.text

        assert schema.validate('{"name": "Alice", "age": 30}').valid
        assert schema.validate('{"name": "Al", "age": 30}').exception.errors == {
            "name": "field 'name': length must be at least 3"
        }

    def test_every_constraint_type(self):
        constraints = [
            {"name": "a", "constraints": [{"type": "max_length", "value": 5}]},
            {"name": "b", "constraints": [{"type": "exact_length", "value": 2}]},
            {"name": "c", "constraints": [{"type": "length_between", "min": 1, "max": 3}]},
            {"name": "d", "constraints": [{"type": "contains_any", "charsets": "digit"}]},
            {"name": "e", "constraints": [{"type": "contains_all", "charsets": ["lower", "digit"]}]},
            {"name": "f", "constraints": [{"type": "not_contains", "charsets": ["special"]}]},
            {"name": "g", "constraints": [{"type": "match", "pattern": "ab*"}]},
            {"name": "h", "constraints": [{"type": "email"}]},
            {"name": "i", "constraints": [{"type": "url"}]},
            {"name": "j", "constraints": [{"type": "decimal", "precision": 5, "scale": 2}]},
            {"name": "k", "constraints": [{"type": "one_of", "values": ["x", "y"]}]},
            {"name": "l", "type": "float64", "constraints": [{"type": "gt", "value": 0}]},
            {"name": "m", "type": "int8", "constraints": [{"type": "lt", "value": 10}]},
            {"name": "n", "type": "uint", "constraints": [{"type": "lte", "value": 10}]},
            {"name": "o", "type": "bool", "constraints": [{"type": "be_true"}]},
            {"name": "p", "type": "bool", "constraints": [{"type": "be_false"}]},
        ]
        schema = schema_factory.create(name="all", fields=constraints)
        assert [f.constraints[0].name for f in schema] == [
            "max_length",
            "exact_length",
            "length_between",
            "contains_any",
            "contains_all",
            "not_contains",
            "match",
            "email",
            "url",
            "decimal(5,2)",
            "one_of",
            "gt",
            "lt",
            "lte",
            "be_true",
            "be_false",
        ]

    def test_nested_and_array_fields(self):
        schema = schema_factory.create(
            name="order",
            fields=[
                {"name": "ids", "type": "uint32", "array": True},
                {"name": "lines", "type": "object", "array": True, "fields": [{"name": "sku"}]},
            ],
        )
        assert schema.get_field("ids").multiplicity is Multiplicity.ARRAY
        assert schema.get_field("lines").multiplicity is Multiplicity.ARRAY_OF_OBJECT
        result = schema.validate('{"ids": [1, 2], "lines": [{"sku": "A1"}]}')
        assert result.value.get_str("lines.0.sku") == "A1"

    def test_unknown_constraint_type(self):
        with pytest.raises(SchemaDefinitionError):
            schema_factory.create(fields=[{"name": "a", "constraints": [{"type": "bogus"}]}])

    def test_missing_constraint_argument(self):
        with pytest.raises(SchemaDefinitionError):
            schema_factory.create(fields=[{"name": "a", "constraints": [{"type": "min_length"}]}])

    def test_unknown_field_type(self):
        with pytest.raises(SchemaDefinitionError):
            schema_factory.create(fields=[{"name": "a", "type": "money"}])

    def test_missing_field_name(self):
        with pytest.raises(SchemaDefinitionError):
            schema_factory.create(fields=[{"type": "string"}])

    def test_unknown_field_keys_warn(self, caplog):
        caplog.set_level(logging.WARNING, logger="dataknobs_view.factory")
        schema_factory.create(fields=[{"name": "a", "default": "x"}])
        assert "Ignoring unknown keys for field 'a'" in caplog.text


class TestLoadSchema:
    """Test loading schemas from files."""

    def test_yaml(self, tmp_path):
        path = tmp_path / "user.yaml"
        path.write_text(USER_YAML)
        schema = load_schema(path)
        assert schema.name == "user"
        result = schema.validate('{"name": "Alice", "age": 30, "tags": ["a"], "address": {"city": "Paris"}}')
        assert result.valid
        assert result.value.get_str("address.city") == "Paris"
        assert "name" in schema.validate('{"name": "Al1ce", "age": 30}').exception.errors

    def test_json(self, tmp_path):
        path = tmp_path / "user.json"
        path.write_text(json.dumps({"name": "user", "fields": [{"name": "id", "type": "int64"}]}))
        schema = load_schema(str(path))
        assert schema.validate('{"id": 9007199254740993}').value.get_int("id") == 9007199254740993

    def test_unsupported_format(self, tmp_path):
        path = tmp_path / "user.txt"
        path.write_text("name: user")
        with pytest.raises(SchemaDefinitionError):
            load_schema(path)
