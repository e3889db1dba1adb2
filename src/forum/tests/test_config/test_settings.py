import pytest
from pydantic import ValidationError as PydanticValidationError

from forum.config.settings import Settings


def make_settings(**overrides) -> Settings:
    # ignore any .env file so only the given values count
    return Settings(_env_file=None, **overrides)


class TestSettings:

    def test_defaults(self):
        settings = make_settings()

        assert settings.CONVERSATION_ABUSE_THRESHOLD == 5
        assert settings.MESSAGE_PAGE_SIZE == 100
        assert settings.POPULAR_WINDOW_DAYS == 30
        assert settings.POPULAR_LIMIT == 10

    def test_database_url_assembled_from_parts(self):
        settings = make_settings(POSTGRES_USERNAME="u", POSTGRES_PASSWORD="p", POSTGRES_HOST="db", POSTGRES_DB="forum")

        assert settings.DATABASE_URL == "postgresql+asyncpg://u:p@db:5432/forum"

    def test_database_url_testing_and_override(self):
        testing = make_settings(TESTING=True, TEST_POSTGRES_DB="forum_test")
        override = make_settings(DATABASE_URL_OVERRIDE="sqlite+aiosqlite:///./forum.db")

        assert testing.DATABASE_URL.endswith("/forum_test")
        assert override.DATABASE_URL == "sqlite+aiosqlite:///./forum.db"

    def test_normalizers(self):
        settings = make_settings(LOG_LEVEL="debug", LOG_FORMAT="TEXT", HOST="https://forum.example/")

        assert settings.LOG_LEVEL == "DEBUG"
        assert settings.LOG_FORMAT == "text"
        assert settings.HOST == "https://forum.example"

    def test_negative_threshold_rejected(self):
        with pytest.raises(PydanticValidationError):
            make_settings(CONVERSATION_ABUSE_THRESHOLD=-1)

    def test_environment_variables(self, monkeypatch):
        monkeypatch.setenv("CONVERSATION_ABUSE_THRESHOLD", "2")

        assert make_settings().CONVERSATION_ABUSE_THRESHOLD == 2
