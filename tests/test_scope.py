"""
Tests for scope serialization.
"""

import dataclasses
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from uuid import UUID

import pytest
from pydantic import BaseModel

from flagkeeper.core.features import FeatureScopeable, ScopeSerializationError, serialize_scope
from flagkeeper.core.features.models import FeatureModel


class Team:
    def __init__(self, slug):
        self.slug = slug

    def to_feature_identifier(self, driver: str) -> str:
        return f"team|{driver}|{self.slug}"


@dataclasses.dataclass
class Account:
    id: int
    plan: str


class Plan(str, Enum):
    FREE = "free"
    PRO = "pro"


class Customer(BaseModel):
    id: int
    country: str


def test_none_and_empty_string_are_distinct():
    """Test that the global scope never collides with an empty string."""
    assert serialize_scope(None, "array") == "null"
    assert serialize_scope("", "array") == '""'


def test_primitives_are_json_encoded():
    assert serialize_scope("tim", "array") == '"tim"'
    assert serialize_scope(42, "array") == "42"
    assert serialize_scope(True, "array") == "true"
    assert serialize_scope("42", "array") != serialize_scope(42, "array")


def test_structurally_equal_scopes_share_a_key():
    """Test that key order and container type do not change the key."""
    first = serialize_scope({"b": 1, "a": [1, 2]}, "array")
    second = serialize_scope({"a": (1, 2), "b": 1}, "array")

    assert first == second == '{"a":[1,2],"b":1}'


def test_sets_are_sorted():
    assert serialize_scope({3, 1, 2}, "array") == "[1,2,3]"


def test_scopeable_identifier_is_used_verbatim():
    """Test that scopeable objects choose their key per driver."""
    team = Team("acme")

    assert isinstance(team, FeatureScopeable)
    assert serialize_scope(team, "redis") == "team|redis|acme"
    assert serialize_scope(team, "database") == "team|database|acme"


def test_persisted_entity_uses_table_and_primary_key():
    row = FeatureModel(id=7, name="foo", scope="null", value="true")

    assert serialize_scope(row, "database") == "features:7"


def test_unsaved_entity_is_rejected():
    row = FeatureModel(name="foo", scope="null", value="true")

    with pytest.raises(ScopeSerializationError):
        serialize_scope(row, "database")


def test_rich_values_are_normalized():
    uuid = UUID("12345678-1234-5678-1234-567812345678")

    assert serialize_scope(uuid, "array") == f'"{uuid}"'
    assert serialize_scope(Decimal("1.50"), "array") == '"1.50"'
    assert serialize_scope(date(2024, 1, 2), "array") == '"2024-01-02"'
    assert serialize_scope(
        datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc), "array"
    ) == '"2024-01-02T03:04:05+00:00"'
    assert serialize_scope(Plan.PRO, "array") == '"pro"'


def test_dataclasses_and_models_are_normalized():
    assert serialize_scope(Account(1, "pro"), "array") == '{"id":1,"plan":"pro"}'
    assert serialize_scope(Customer(id=1, country="NL"), "array") == '{"country":"NL","id":1}'


def test_unserializable_scope_raises():
    """Test that arbitrary objects need to_feature_identifier()."""
    with pytest.raises(ScopeSerializationError) as exc_info:
        serialize_scope(object(), "array")

    assert isinstance(exc_info.value, TypeError)
    assert "to_feature_identifier" in str(exc_info.value)


@pytest.mark.parametrize("scope", [{1: "a"}, {True: "a"}, {"outer": {2: "b"}}])
def test_mappings_with_non_string_keys_are_rejected(scope):
    """Test that {1: x} never shares a key with {"1": x}."""
    with pytest.raises(ScopeSerializationError, match="keys must be strings"):
        serialize_scope(scope, "array")

    assert serialize_scope({"1": "a"}, "array") == '{"1":"a"}'
