import pytest

from forum.exceptions.base import ValidationError
from forum.validators.conversation_validators import (
    DESCRIPTION_MAX_LENGTH,
    check_conversation_fields,
    name_taken,
    validate_conversation,
)
from forum.validators.config_validators import (
    ensure_non_negative,
    normalize_base_url,
    normalize_log_format,
    normalize_log_level,
)


class TestCheckConversationFields:
    """Field rules that need no database."""

    def test_valid_fields_have_no_errors(self):
        assert check_conversation_fields("Valid name", "Some description") == {}

    @pytest.mark.parametrize("name", [None, "", "   "])
    def test_blank_name(self, name):
        errors = check_conversation_fields(name, "desc")

        assert "can't be blank" in errors["name"]

    def test_name_length_bounds(self):
        assert check_conversation_fields("abc", "d") == {}
        assert check_conversation_fields("a" * 100, "d") == {}
        assert check_conversation_fields("ab", "d")["name"] == ["is too short (minimum is 3 characters)"]
        assert check_conversation_fields("a" * 101, "d")["name"] == ["is too long (maximum is 100 characters)"]

    def test_personal_skips_length(self):
        assert check_conversation_fields("ab", "d", personal=True) == {}
        assert check_conversation_fields("a" * 150, "d", personal=True) == {}

    def test_description_limits(self):
        """
        Behavior:
                - 10000 characters pass, 10001 fail; blank fails.
        """
        assert check_conversation_fields("Name", "x" * DESCRIPTION_MAX_LENGTH) == {}
        assert check_conversation_fields("Name", "x" * (DESCRIPTION_MAX_LENGTH + 1))["description"] == [
            "is too long (maximum is 10000 characters)"
        ]
        assert check_conversation_fields("Name", "")["description"] == ["can't be blank"]

    @pytest.mark.parametrize("something, expected", [(None, False), ("", False), ("  ", False), ("buy now", True)])
    def test_honeypot(self, something, expected):
        errors = check_conversation_fields("Name", "desc", something=something)

        assert ("something" in errors) is expected


@pytest.mark.asyncio
class TestValidateConversation:

    async def test_name_taken(self, db_session, create_conversation, created_user):
        await create_conversation(created_user, name="Existing")

        assert await name_taken(db_session, "Existing") is True
        assert await name_taken(db_session, "existing") is False
        assert await name_taken(db_session, "Missing") is False

    async def test_name_taken_excludes_record_itself(self, db_session, create_conversation, created_user):
        conv = await create_conversation(created_user, name="Mine")

        assert await name_taken(db_session, "Mine", exclude_id=conv.id) is False

    async def test_uniqueness_only_for_regular_conversations(self, db_session, create_conversation, created_user):
        """
        Behavior:
                - A taken name fails for a regular conversation, passes for personal
                  or spawned ones.
        """
        await create_conversation(created_user, name="Popular")

        with pytest.raises(ValidationError) as exc_info:
            await validate_conversation(db_session, "Popular", "desc")
        assert exc_info.value.errors == {"name": ["has already been taken"]}

        await validate_conversation(db_session, "Popular", "desc", personal=True)
        await validate_conversation(db_session, "Popular", "desc", spawned=True)

    async def test_error_payload(self, db_session):
        with pytest.raises(ValidationError) as exc_info:
            await validate_conversation(db_session, "", "")

        payload = exc_info.value.to_payload()
        assert payload["code"] == "validation_failed"
        assert payload["fields"] == ["description", "name"]
        assert payload["errors"]["name"] == ["can't be blank", "is too short (minimum is 3 characters)"]


class TestConfigValidators:

    def test_log_normalizers(self):
        assert normalize_log_level(" debug") == "DEBUG"
        assert normalize_log_format("JSON") == "json"
        assert normalize_log_level(None) is None

    def test_base_url(self):
        assert normalize_base_url("https://forum.example// ") == "https://forum.example"
        assert normalize_base_url(None) is None

    def test_non_negative(self):
        assert ensure_non_negative(0) == 0
        with pytest.raises(ValueError):
            ensure_non_negative(-1)
