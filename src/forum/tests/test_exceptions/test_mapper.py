from types import SimpleNamespace

import pytest
from sqlalchemy.exc import IntegrityError

from forum.exceptions.base import DuplicateError, NotFoundError, RepositoryError, ValidationError
from forum.exceptions.mapper import (
    ConstraintKind,
    classify_integrity_error,
    extract_columns_from_integrity,
    raise_mapped_integrity_error,
)


def make_integrity_error(orig) -> IntegrityError:
    return IntegrityError("INSERT ...", params={}, orig=orig)


class SqliteError(Exception):
    """Stands in for sqlite3.IntegrityError: message text only, no SQLSTATE."""


class TestClassifyIntegrityError:

    def test_postgres_sqlstate(self):
        orig = SimpleNamespace(sqlstate="23503", constraint_name="fk_messages_conversation_id_conversations")

        kind, constraint = classify_integrity_error(make_integrity_error(orig))

        assert kind is ConstraintKind.FOREIGN_KEY
        assert constraint == "fk_messages_conversation_id_conversations"

    def test_psycopg_pgcode_with_diag(self):
        orig = SimpleNamespace(pgcode="23505", diag=SimpleNamespace(constraint_name="uq_subscriptions_user_id"))

        kind, constraint = classify_integrity_error(make_integrity_error(orig))

        assert kind is ConstraintKind.UNIQUE
        assert constraint == "uq_subscriptions_user_id"

    @pytest.mark.parametrize(
        "message, expected",
        [
            ("UNIQUE constraint failed: users.login", ConstraintKind.UNIQUE),
            ("NOT NULL constraint failed: conversations.name", ConstraintKind.NOT_NULL),
            ("FOREIGN KEY constraint failed", ConstraintKind.FOREIGN_KEY),
            ("CHECK constraint failed: positive_count", ConstraintKind.CHECK),
            ("something odd happened", ConstraintKind.UNKNOWN),
        ],
    )
    def test_sqlite_messages(self, message, expected):
        kind, constraint = classify_integrity_error(make_integrity_error(SqliteError(message)))

        assert kind is expected
        assert constraint is None


class TestExtractColumns:

    def test_sqlite_composite_unique(self):
        exc = make_integrity_error(
            SqliteError("UNIQUE constraint failed: subscriptions.user_id, subscriptions.conversation_id")
        )

        assert extract_columns_from_integrity(exc) == ["user_id", "conversation_id"]

    def test_postgres_key_detail(self):
        exc = make_integrity_error(
            SqliteError('duplicate key value violates unique constraint "x"\nDETAIL:  Key (login)=(bob) already exists.')
        )

        assert extract_columns_from_integrity(exc) == ["login"]

    def test_postgres_not_null(self):
        exc = make_integrity_error(SqliteError('null value in column "description" violates not-null constraint'))

        assert extract_columns_from_integrity(exc) == ["description"]


class TestRaiseMapped:

    def test_unique_becomes_duplicate_error(self):
        exc = make_integrity_error(SqliteError("UNIQUE constraint failed: abuse_reports.user_id, abuse_reports.conversation_id"))

        with pytest.raises(DuplicateError) as exc_info:
            raise_mapped_integrity_error(exc, "AbuseReport")

        assert exc_info.value.fields == ["user_id", "conversation_id"]
        assert "AbuseReport already exists" in str(exc_info.value)
        assert exc_info.value.__cause__ is exc

    def test_not_null_becomes_repository_error(self):
        exc = make_integrity_error(SqliteError("NOT NULL constraint failed: messages.message"))

        with pytest.raises(RepositoryError) as exc_info:
            raise_mapped_integrity_error(exc, "Message")

        assert not isinstance(exc_info.value, DuplicateError)
        assert exc_info.value.fields == ["message"]


class TestErrorPayloads:

    def test_payload_hides_constraint(self):
        err = DuplicateError("Subscription already exists", fields=["user_id"], constraint="uq_x")

        assert err.to_payload() == {"detail": "Subscription already exists", "code": "duplicate", "fields": ["user_id"]}
        assert "constraint: uq_x" in str(err)

    def test_status_codes(self):
        assert NotFoundError().http_status() == 404
        assert ValidationError({"name": ["can't be blank"]}).http_status() == 422
        assert RepositoryError("boom").http_status() == 400
