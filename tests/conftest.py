"""Pytest configuration for dataknobs_view tests."""

import sys
from pathlib import Path

import pytest

# Add the package source to path for testing
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))


@pytest.fixture
def person_schema():
    """Schema with a required name and a required, bounded age."""
    from dataknobs_view import Between, FieldType, MinLength, Schema, field

    return Schema(
        field("name", FieldType.STRING, MinLength(3)),
        field("age", FieldType.INT, Between(18, 120)),
        name="person",
    )
