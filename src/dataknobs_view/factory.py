"""Factory classes for building schemas from configuration."""

import json
import logging
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]
from dataknobs_config import FactoryBase

from .constraints import (
    URL,
    Between,
    BeFalse,
    BeTrue,
    CharSet,
    CharSetAll,
    CharSetAny,
    CharSetNone,
    CharSetOnly,
    Constraint,
    Decimal,
    Email,
    ExactLength,
    Gt,
    Gte,
    LengthBetween,
    Lt,
    Lte,
    Match,
    MaxLength,
    MinLength,
    OneOf,
)
from .exceptions import SchemaDefinitionError
from .fields import FieldType
from .schema import Field, Schema, array_field, array_of_object_field, field, object_field

logger = logging.getLogger(__name__)

_CHARSET_CONSTRAINTS = {
    "only_contains": CharSetOnly,
    "contains_any": CharSetAny,
    "contains_all": CharSetAll,
    "not_contains": CharSetNone,
}

_FIELD_KEYS = frozenset(
    {"name", "type", "array", "required", "qualified_name", "description", "constraints", "fields"}
)


class SchemaFactory(FactoryBase):
    """Factory for creating validation schemas from configuration.

    Configuration Options:
        name (str): Schema name
        allow_unknown (bool): Whether to accept unknown keys (default: False)
        fields (list): List of field definitions

    Field Definition Options:
        name (str): Field name
        type (str): Field type (string, bool, int, int8 ... uint64, float32,
            float64, datetime) or "object" for embedded objects
        array (bool): Whether the field holds a list (default: False)
        required (bool): Whether field is required (default: True)
        qualified_name (str): Persistence key of the field
        description (str): Field description
        constraints (list): List of constraint definitions
        fields (list): Nested field definitions of object fields

    Example Configuration:
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
            fields:
              - {name: city, type: string}
    """

    def create(self, **config) -> Schema:
        """Create a Schema instance from configuration.

        Args:
            **config: Schema configuration

        Returns:
            Schema instance

        Raises:
            SchemaDefinitionError: On unknown types or malformed definitions
        """
        name = config.get("name", "unnamed_schema")
        allow_unknown = config.get("allow_unknown", False)

        logger.info(f"Creating schema: {name}")

        fields = [self._build_field(field_config) for field_config in config.get("fields", [])]
        return Schema(*fields, allow_unknown=allow_unknown, name=name)

    def _build_field(self, field_config: dict[str, Any]) -> Field:
        """Build a field from configuration.

        Args:
            field_config: Field configuration

        Returns:
            Field instance
        """
        field_name = field_config.get("name")
        if not field_name:
            raise SchemaDefinitionError("Field configuration missing 'name'")

        ignored = set(field_config) - _FIELD_KEYS
        if ignored:
            logger.warning(f"Ignoring unknown keys for field '{field_name}': {sorted(ignored)}")

        type_name = str(field_config.get("type", "string")).lower()
        is_array = field_config.get("array", False)
        required = field_config.get("required", True)
        description = field_config.get("description")

        if type_name == "object":
            nested = Schema(
                *(self._build_field(inner) for inner in field_config.get("fields", [])),
                name=field_name,
            )
            if is_array:
                return array_of_object_field(field_name, nested, required=required, description=description)
            return object_field(field_name, nested, required=required, description=description)

        if "fields" in field_config:
            raise SchemaDefinitionError(f"Only object fields can declare nested fields: '{field_name}'", field_name)

        factory = array_field if is_array else field
        return factory(
            field_name,
            FieldType.from_name(type_name),
            *self._build_constraints(field_config.get("constraints", [])),
            required=required,
            qualified_name=field_config.get("qualified_name", ""),
            description=description,
        )

    def _build_constraints(self, constraint_configs: list[dict[str, Any]]) -> list[Constraint]:
        """Build constraint objects from configuration.

        Args:
            constraint_configs: List of constraint configurations

        Returns:
            List of Constraint objects
        """
        constraints: list[Constraint] = []

        for config in constraint_configs:
            constraint_type = config.get("type", "").lower()

            if constraint_type == "min_length":
                constraints.append(MinLength(_arg(config, "value", "min")))

            elif constraint_type == "max_length":
                constraints.append(MaxLength(_arg(config, "value", "max")))

            elif constraint_type == "exact_length":
                constraints.append(ExactLength(_arg(config, "value", "length")))

            elif constraint_type == "length_between":
                constraints.append(LengthBetween(_arg(config, "min"), _arg(config, "max")))

            elif constraint_type in _CHARSET_CONSTRAINTS:
                charsets = config.get("charsets", config.get("value", []))
                if isinstance(charsets, str):
                    charsets = [charsets]
                constraints.append(_CHARSET_CONSTRAINTS[constraint_type](*(_charset(c) for c in charsets)))

            elif constraint_type == "match":
                constraints.append(Match(_arg(config, "pattern", "value")))

            elif constraint_type == "email":
                constraints.append(Email())

            elif constraint_type == "url":
                constraints.append(URL())

            elif constraint_type == "decimal":
                constraints.append(Decimal(_arg(config, "precision"), config.get("scale", 0)))

            elif constraint_type == "one_of":
                constraints.append(OneOf(*config.get("values", [])))

            elif constraint_type == "gt":
                constraints.append(Gt(_arg(config, "value", "min")))

            elif constraint_type == "gte":
                constraints.append(Gte(_arg(config, "value", "min")))

            elif constraint_type == "lt":
                constraints.append(Lt(_arg(config, "value", "max")))

            elif constraint_type == "lte":
                constraints.append(Lte(_arg(config, "value", "max")))

            elif constraint_type == "between":
                constraints.append(Between(_arg(config, "min"), _arg(config, "max")))

            elif constraint_type == "be_true":
                constraints.append(BeTrue())

            elif constraint_type == "be_false":
                constraints.append(BeFalse())

            else:
                raise SchemaDefinitionError(f"Unknown constraint type: {constraint_type}")

        return constraints


def _arg(config: dict[str, Any], *keys: str) -> Any:
    """Return the first of ``keys`` present in a constraint configuration."""
    for key in keys:
        if key in config:
            return config[key]
    raise SchemaDefinitionError(
        f"Constraint '{config.get('type')}' requires one of: {', '.join(keys)}"
    )


def _charset(name: str) -> CharSet:
    try:
        return CharSet[str(name).upper()]
    except KeyError:
        raise SchemaDefinitionError(f"Unknown character set: {name}") from None


def load_schema(path: str | Path) -> Schema:
    """Build a schema from a YAML or JSON configuration file.

    Args:
        path: Path to a .yaml, .yml or .json file

    Returns:
        Schema instance

    Raises:
        SchemaDefinitionError: If the file format is unsupported or the
            definition is invalid
    """
    path = Path(path)
    suffix = path.suffix.lower()
    with open(path) as f:
        if suffix in [".yaml", ".yml"]:
            data = yaml.safe_load(f) or {}
        elif suffix == ".json":
            data = json.load(f)
        else:
            raise SchemaDefinitionError(f"Unsupported file format: {suffix}")
    if not isinstance(data, dict):
        raise SchemaDefinitionError(f"Schema configuration must be a mapping: {path}")
    return schema_factory.create(**data)


# Create singleton instance for registration
schema_factory = SchemaFactory()
