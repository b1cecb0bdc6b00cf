"""Tests for ValueObject path lookups, typed getters and flattening."""

from datetime import datetime, timezone

import pytest

from dataknobs_view import (
    FieldNotFoundError,
    FieldTypeError,
    InvalidPathError,
    ValueObject,
)


@pytest.fixture
def values():
    return ValueObject(
        {
            "user": ValueObject({"email": "a@b.co"}),
            "items": [ValueObject({"id": 7}), ValueObject({"id": 8})],
            "tags": ["x", "y"],
            "count": 3,
            "ratio": 0.5,
            "flag": True,
            "at": datetime(2024, 1, 2, tzinfo=timezone.utc),
        }
    )


class TestLookup:
    """Test dot-notation lookups."""

    def test_nested_object(self, values):
        assert values.get("user.email") == "a@b.co"

    def test_list_index(self, values):
        assert values.get("items.1.id") == 8
        assert values.get("tags.0") == "x"

    def test_absent(self, values):
        assert values.get("user.phone") is None
        assert values.get("missing", "default") == "default"

    def test_traversing_scalar_is_absent(self, values):
        assert values.get("count.value") is None

    @pytest.mark.parametrize("path", ["items.2.id", "items.x.id", "items.-1.id", "tags.first"])
    def test_bad_list_segment(self, values, path):
        with pytest.raises(InvalidPathError):
            values.get(path)

    def test_literal_key_wins(self):
        vo = ValueObject({"a.b": 1, "a": {"b": 2}})
        assert vo.get("a.b") == 1
        assert vo.get("a") == {"b": 2}

    def test_plain_dict_containers(self):
        vo = ValueObject({"accounts": {"email": {"Email": "a@b.co"}}})
        assert vo.get("accounts.email.Email") == "a@b.co"


class TestTypedGetters:
    """Test typed getters and required lookups."""

    def test_matching_types(self, values):
        assert values.get_str("user.email") == "a@b.co"
        assert values.get_int("count") == 3
        assert values.get_float("ratio") == 0.5
        assert values.get_bool("flag") is True
        assert values.get_datetime("at").year == 2024
        assert values.get_str_list("tags") == ["x", "y"]

    def test_absent_is_none(self, values):
        assert values.get_int("nothing") is None

    def test_mismatch(self, values):
        with pytest.raises(FieldTypeError):
            values.get_int("user.email")
        with pytest.raises(FieldTypeError):
            values.get_float("count")

    def test_bool_is_not_int(self, values):
        with pytest.raises(FieldTypeError):
            values.get_int("flag")

    def test_list_element_types(self, values):
        with pytest.raises(FieldTypeError):
            values.get_int_list("tags")
        mixed = ValueObject({"tags": ["a", 1]})
        with pytest.raises(FieldTypeError):
            mixed.get_str_list("tags")

    def test_objects(self, values):
        assert values.get_object("user").get_str("email") == "a@b.co"
        assert [item.get_int("id") for item in values.get_object_list("items")] == [7, 8]
        wrapped = ValueObject({"meta": {"a": 1}}).get_object("meta")
        assert isinstance(wrapped, ValueObject)

    def test_must(self, values):
        assert values.must_int("items.0.id") == 7
        assert values.must("tags") == ["x", "y"]
        with pytest.raises(FieldNotFoundError):
            values.must_str("user.phone")
        with pytest.raises(FieldNotFoundError):
            values.must("nothing")


class TestMutation:
    """Test add and update."""

    def test_add(self):
        vo = ValueObject()
        vo.add("name", "Alice")
        assert vo["name"] == "Alice"
        with pytest.raises(InvalidPathError):
            vo.add("name", "Bob")
        with pytest.raises(InvalidPathError):
            vo.add("a.b", 1)

    def test_update(self):
        vo = ValueObject({"name": "Alice"})
        vo.update("name", "Bob")
        assert vo.get("name") == "Bob"
        with pytest.raises(FieldNotFoundError):
            vo.update("age", 30)


class TestExport:
    """Test mapping protocol, flatten and to_dict."""

    def test_mapping_protocol(self, values):
        assert "user" in values
        assert len(values) == 7
        assert values.fields() == sorted(values)
        assert ValueObject({"a": 1}) == {"a": 1}

    def test_flatten(self):
        vo = ValueObject(
            {
                "accounts": {"email": {"Email": "a@b.co"}},
                "user": ValueObject({"name": "Alice"}),
                "tags": ["x"],
            }
        )
        assert vo.flatten() == {
            "accounts.email.Email": "a@b.co",
            "user.name": "Alice",
            "tags": ["x"],
        }

    def test_to_dict(self, values):
        data = values.to_dict()
        assert type(data["user"]) is dict
        assert data["items"] == [{"id": 7}, {"id": 8}]
