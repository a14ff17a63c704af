"""Unit tests for storage key naming."""

from __future__ import annotations

from fnmatch import fnmatchcase

import pytest

from redis_schema.domain.services.key_naming import index_key, record_key
from redis_schema.domain.services.value_codec import serialize_value
from redis_schema.domain.value_objects.attribute_types import AttributeType


@pytest.mark.unit
class TestRecordKey:

    def test_record_key(self) -> None:
        assert record_key("user", "abc123") == "user:abc123"

    def test_wildcard(self) -> None:
        assert record_key("user") == "user:*"


@pytest.mark.unit
class TestIndexKey:

    def test_index_key_hashes_value(self) -> None:
        assert (
            index_key("user", "firstName", "Ada")
            == "user.index:firstName:dc7c59eca3c25d4ac812c9fad50c9cee"
        )

    def test_column_wildcard(self) -> None:
        assert index_key("user", "firstName") == "user.index:firstName:*"

    def test_table_wildcard(self) -> None:
        assert index_key("user") == "user.index:*"

    def test_deterministic(self) -> None:
        assert index_key("user", "active", "true") == index_key("user", "active", "true")
        assert index_key("user", "active", "true") != index_key("user", "active", "false")

    def test_record_wildcard_never_matches_index_keys(self) -> None:
        key = index_key("user", "firstName", "Ada")

        assert not fnmatchcase(key, record_key("user"))
        assert fnmatchcase(key, index_key("user"))
        assert fnmatchcase(key, index_key("user", "firstName"))

    def test_wildcards_do_not_cross_tables(self) -> None:
        assert not fnmatchcase(record_key("users", "1"), record_key("user"))
        assert not fnmatchcase(index_key("users", "name", "x"), index_key("user"))

    @pytest.mark.parametrize(
        ("value", "digest"),
        [
            # md5 of the JSON-encoded ECMAScript rendering, e.g. md5('"0.00001"')
            (0.00001, "96882eca5484ee45b9eafd5746642e00"),
            (1e-7, "d64e526f6e999558ac35b53ff0c6c249"),
            (1.2345678901234568e20, "f232821c0853f82141ca62a9dd0017ef"),
            (1.5e300, "691200f8ab771634f49ca6134ddbd9e7"),
        ],
    )
    def test_number_index_keys_match_existing_deployments(self, value: float, digest: str) -> None:
        token = serialize_value(AttributeType.NUMBER, value)

        assert index_key("user", "score", token) == f"user.index:score:{digest}"
