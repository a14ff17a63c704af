"""Unit tests for the query translator."""

from __future__ import annotations

from typing import Any

import pytest

from redis_schema.adapters.outbound.memory_store import InMemoryKeyValueStore
from redis_schema.application.query_translator import plan, resolve_ids
from redis_schema.domain.entities.schema import TableSchema
from redis_schema.domain.errors import (
    EmptyQueryError,
    InvalidQueryError,
    MultiAttributeQueryError,
    NotIndexedError,
    RequiredValueError,
    ValueTypeError,
)
from redis_schema.domain.services.key_naming import index_key


@pytest.fixture
def indexed_store(memory_store: InMemoryKeyValueStore) -> InMemoryKeyValueStore:
    memory_store._sadd(index_key("user", "firstName", "Ada"), ["u2", "u1"])
    memory_store._sadd(index_key("user", "firstName", "Grace"), ["u3"])
    memory_store._sadd(index_key("user", "active", "true"), ["u1", "u3"])
    return memory_store


@pytest.mark.unit
class TestPlan:
    """Tests for filter validation and planning."""

    def test_primary_key(self, user_schema: TableSchema) -> None:
        lookup = plan(user_schema, {"id": "u1"})

        assert lookup.by_primary_key
        assert lookup.ids == ("u1",)
        assert lookup.index_keys == ()

    def test_primary_key_list_is_deduplicated(self, user_schema: TableSchema) -> None:
        lookup = plan(user_schema, {"id": {"in": ["u2", "u1", "u2"]}})

        assert lookup.ids == ("u2", "u1")

    def test_primary_key_values_must_be_strings(self, user_schema: TableSchema) -> None:
        with pytest.raises(ValueTypeError):
            plan(user_schema, {"id": 5})

    def test_indexed_value(self, user_schema: TableSchema) -> None:
        lookup = plan(user_schema, {"firstName": "Ada"})

        assert not lookup.by_primary_key
        assert lookup.index_keys == (index_key("user", "firstName", "Ada"),)

    def test_values_are_serialized_by_type(self, user_schema: TableSchema) -> None:
        lookup = plan(user_schema, {"active": True})

        assert lookup.index_keys == (index_key("user", "active", "true"),)

    def test_null_values_are_never_indexed(self, user_schema: TableSchema) -> None:
        lookup = plan(user_schema, {"active": {"in": [None, ""]}})

        assert lookup.index_keys == ()

    def test_required_attribute_rejects_empty_value(self, user_schema: TableSchema) -> None:
        with pytest.raises(RequiredValueError):
            plan(user_schema, {"firstName": ""})

    def test_wrong_type(self, user_schema: TableSchema) -> None:
        with pytest.raises(ValueTypeError):
            plan(user_schema, {"active": "yes"})

    @pytest.mark.parametrize(
        "where, error",
        [
            ({}, EmptyQueryError),
            ({"firstName": "Ada", "active": True}, MultiAttributeQueryError),
            ({"lastName": "Lovelace"}, NotIndexedError),
            ({"nickname": "A"}, NotIndexedError),
            ({"pokemons": "p1"}, NotIndexedError),
            ({"firstName": {"like": "Ad%"}}, InvalidQueryError),
            ({"firstName": {"in": "Ada"}}, InvalidQueryError),
            ({"firstName": {"in": ["Ada"], "nin": ["Bo"]}}, InvalidQueryError),
            ({"and": []}, InvalidQueryError),
            ({"and": [{"id": "a"}, {"id": "b"}]}, InvalidQueryError),
            (["id", "u1"], InvalidQueryError),
        ],
    )
    def test_invalid_filters(
        self, user_schema: TableSchema, where: Any, error: type[Exception]
    ) -> None:
        with pytest.raises(error):
            plan(user_schema, where)

    def test_and_wrapper(self, pokemon_schema: TableSchema) -> None:
        lookup = plan(pokemon_schema, {"and": [{"owner": "u1"}]})

        assert lookup.index_keys == (index_key("pokemon", "owner", "u1"),)

    def test_error_codes(self, user_schema: TableSchema) -> None:
        with pytest.raises(EmptyQueryError) as exc_info:
            plan(user_schema, {})
        assert exc_info.value.code == "E_EMPTY_QUERY"

        with pytest.raises(NotIndexedError) as exc_info:
            plan(user_schema, {"lastName": "x"})
        assert exc_info.value.code == "E_NOT_INDEXED"


@pytest.mark.unit
class TestResolveIds:
    """Tests for resolving filters against the store."""

    def test_primary_key_does_not_touch_store(
        self, run, user_schema: TableSchema, memory_store: InMemoryKeyValueStore
    ) -> None:
        run(memory_store.close())

        # A closed store would raise on any command
        assert run(resolve_ids(memory_store, user_schema, {"id": ["b", "a"]})) == ["b", "a"]

    def test_single_value(self, run, user_schema: TableSchema, indexed_store) -> None:
        assert run(resolve_ids(indexed_store, user_schema, {"firstName": "Ada"})) == ["u1", "u2"]

    def test_in_is_a_union(self, run, user_schema: TableSchema, indexed_store) -> None:
        ids = run(resolve_ids(indexed_store, user_schema, {"firstName": {"in": ["Ada", "Grace"]}}))

        assert ids == ["u1", "u2", "u3"]

    def test_bare_list_equals_in(self, run, user_schema: TableSchema, indexed_store) -> None:
        bare = run(resolve_ids(indexed_store, user_schema, {"firstName": ["Grace", "Ada"]}))
        explicit = run(
            resolve_ids(indexed_store, user_schema, {"firstName": {"in": ["Grace", "Ada"]}})
        )

        assert bare == explicit

    def test_unknown_value(self, run, user_schema: TableSchema, indexed_store) -> None:
        assert run(resolve_ids(indexed_store, user_schema, {"firstName": "Nobody"})) == []

    def test_only_null_values(self, run, user_schema: TableSchema, indexed_store) -> None:
        assert run(resolve_ids(indexed_store, user_schema, {"active": None})) == []

    def test_duplicates_in_union(self, run, user_schema: TableSchema, indexed_store) -> None:
        ids = run(resolve_ids(indexed_store, user_schema, {"active": [True, True]}))

        assert ids == ["u1", "u3"]
