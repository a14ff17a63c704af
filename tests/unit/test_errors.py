"""Unit tests for the error taxonomy."""

from __future__ import annotations

import pytest

from redis_schema.domain import errors


@pytest.mark.unit
class TestErrors:

    @pytest.mark.parametrize(
        "error_type, code",
        [
            (errors.ImmutableKeyError, "E_IMMUTABLE_KEY"),
            (errors.RequiredValueError, "E_REQUIRED"),
            (errors.ValueTypeError, "E_TYPE"),
            (errors.UnknownAttributeError, "E_UNKNOWN_ATTRIBUTE"),
            (errors.NotIndexedError, "E_NOT_INDEXED"),
            (errors.MultiAttributeQueryError, "E_MULTI_ATTR_QUERY"),
            (errors.InvalidQueryError, "E_INVALID_QUERY"),
            (errors.SchemaError, "E_INVALID_SCHEMA"),
            (errors.DatastoreError, "E_DATASTORE"),
        ],
    )
    def test_codes(self, error_type: type[errors.RecordStoreError], code: str) -> None:
        error = error_type("message")

        assert error.code == code
        assert error.message == "message"
        assert isinstance(error, errors.RecordStoreError)
        assert code in repr(error)

    def test_unique_constraint(self) -> None:
        error = errors.UniqueConstraintError("user", "id", "abc")

        assert error.code == "E_UNIQUE"
        assert (error.table, error.primary_key, error.record_id) == ("user", "id", "abc")
        assert '"id"="abc"' in str(error)

    def test_empty_query_default_message(self) -> None:
        error = errors.EmptyQueryError()

        assert error.code == "E_EMPTY_QUERY"
        assert str(error) == "You must filter by at least one attribute"
