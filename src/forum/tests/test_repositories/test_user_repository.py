import pytest

from forum.exceptions.base import DuplicateError, NotFoundError
from forum.repositories.user_repository import UserRepository


@pytest.mark.asyncio
class TestUserRepositoryCreate:
    """
    Tests for UserRepository.create_user().

    The user model is deliberately small: login (unique), email (unique, lowercased),
    an optional display name and the conversations counter cache.
    """

    async def test_create_user_success(self, user_repository: UserRepository, sample_user_data: dict):
        """
        Behavior:
                - create_user() persists a user and returns it with defaults loaded.

        Importance:
                - Every conversation test builds on users created this way.
        """
        # Act
        user = await user_repository.create_user(**sample_user_data)

        # Assert
        assert user.id is not None
        assert user.login == sample_user_data["login"]
        assert user.email == sample_user_data["email"]
        assert user.conversations_count == 0
        assert user.display_name == "Test User"

    async def test_create_user_normalizes_input(self, user_repository: UserRepository):
        """
        Behavior:
                - Surrounding whitespace is stripped from the login.
                - Email is lowercased.
        """
        user = await user_repository.create_user("  alice  ", "  Alice@Example.COM ")

        assert user.login == "alice"
        assert user.email == "alice@example.com"
        assert user.name is None
        assert user.display_name == "alice"

    async def test_create_user_duplicate_login_or_email_raises(self, user_repository: UserRepository):
        await user_repository.create_user("bob", "bob@example.com")

        with pytest.raises(DuplicateError):
            await user_repository.create_user("bob", "other@example.com")

        with pytest.raises(DuplicateError):
            await user_repository.create_user("bobby", "BOB@example.com")


@pytest.mark.asyncio
class TestUserRepositoryRead:

    async def test_get_by_login_found_and_not_found(self, user_repository: UserRepository, create_user):
        user = await create_user(login="carol")

        assert (await user_repository.get_by_login("carol")).id == user.id
        assert (await user_repository.get_by_login("  carol ")).id == user.id
        assert await user_repository.get_by_login("nobody") is None

    async def test_get_personal_conversation(self, user_repository: UserRepository, create_user, create_conversation):
        """
        Behavior:
                - Returns None until the user owns a personal conversation, then returns it.
                - Regular conversations of the user are ignored.
        """
        # Arrange
        user = await create_user(login="dave")
        await create_conversation(user, name="Not personal")

        # Act & Assert: no personal conversation yet
        assert await user_repository.get_personal_conversation(user.id) is None

        # Arrange: add the personal one
        personal = await create_conversation(user, name="dave", personal=True)

        # Act & Assert
        found = await user_repository.get_personal_conversation(user.id)
        assert found is not None
        assert found.id == personal.id


@pytest.mark.asyncio
class TestUserRepositoryCounter:

    async def test_increment_conversations_count(self, user_repository: UserRepository, create_user, db_session):
        """
        Behavior:
                - Each call adds exactly one and returns the new value.

        Importance:
                - The counter is maintained with an atomic UPDATE, never read-modify-write.
        """
        user = await create_user()

        assert await user_repository.increment_conversations_count(user.id) == 1
        assert await user_repository.increment_conversations_count(user.id) == 2

        await db_session.refresh(user)
        assert user.conversations_count == 2

    async def test_increment_missing_user_raises(self, user_repository: UserRepository):
        with pytest.raises(NotFoundError):
            await user_repository.increment_conversations_count(999_999)
