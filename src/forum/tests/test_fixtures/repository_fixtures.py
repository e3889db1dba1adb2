"""Fixtures for repository and service tests."""

import uuid

import pytest
from faker import Faker
from sqlalchemy.ext.asyncio import AsyncSession

from forum.models.user import User
from forum.models.conversation import Conversation
from forum.models.message import Message
from forum.repositories.base_repository import BaseRepository
from forum.repositories.user_repository import UserRepository
from forum.repositories.conversation_repository import ConversationRepository
from forum.repositories.message_repository import MessageRepository
from forum.repositories.subscription_repository import SubscriptionRepository
from forum.repositories.visit_repository import VisitRepository
from forum.repositories.tag_repository import TagRepository
from forum.services.conversation_service import ConversationService

# NOTE: All fixtures in this file depend on the `db_session` fixture defined in conftest.py
# The `db_session` provides a rollback-only database session for tests.


@pytest.fixture
def fake() -> Faker:
    """
    Faker with a fixed seed so generated names are the same on every run.
    """
    faker = Faker()
    faker.seed_instance(1234)
    return faker


def _unique_suffix() -> str:
    return uuid.uuid4().hex[:8]


# =================================================================================================================
# Repositories / services
# =================================================================================================================

@pytest.fixture
async def base_repo(db_session: AsyncSession) -> BaseRepository[User]:
    """
    Provide a BaseRepository instance configured for the User model.

    Used by the generic CRUD tests (create, update, delete, get_by_id, ...).
    """
    return BaseRepository(User, db_session)


@pytest.fixture
async def user_repository(db_session: AsyncSession) -> UserRepository:
    return UserRepository(db_session)


@pytest.fixture
async def conversation_repository(db_session: AsyncSession) -> ConversationRepository:
    return ConversationRepository(db_session)


@pytest.fixture
async def message_repository(db_session: AsyncSession) -> MessageRepository:
    return MessageRepository(db_session)


@pytest.fixture
async def subscription_repository(db_session: AsyncSession) -> SubscriptionRepository:
    return SubscriptionRepository(db_session)


@pytest.fixture
async def visit_repository(db_session: AsyncSession) -> VisitRepository:
    return VisitRepository(db_session)


@pytest.fixture
async def tag_repository(db_session: AsyncSession) -> TagRepository:
    return TagRepository(db_session)


@pytest.fixture
async def conversation_service(db_session: AsyncSession) -> ConversationService:
    """
    ConversationService with explicit threshold and host, so tests do not depend on
    whatever the environment sets.
    """
    return ConversationService(db_session, abuse_threshold=5, host="http://forum.test")


# =================================================================================================================
# Data factories
# =================================================================================================================

@pytest.fixture
def sample_user_data() -> dict[str, str]:
    """
    Simple, deterministic sample payload used by many tests.
    Kept synchronous because it does not touch the DB.
    """
    return {
        "login": "testuser",
        "email": "testuser@example.com",
        "name": "Test User",
    }


@pytest.fixture
async def create_user(base_repo: BaseRepository[User], fake: Faker):
    """
    A small factory helper that tests can call to create users with optional overrides.

    Usage:
        user = await create_user(login="bob")
    """
    async def _create(**overrides) -> User:
        suffix = _unique_suffix()
        data = {
            "login": f"{fake.user_name()[:20]}_{suffix}",
            "email": f"{suffix}_{fake.email()}",
            "name": fake.name(),
        }
        data.update(overrides)
        return await base_repo.create(**data)

    return _create


@pytest.fixture
async def created_user(create_user, sample_user_data) -> User:
    """Create and return a single persisted user (attached to the test session)."""
    return await create_user(**sample_user_data)


@pytest.fixture
async def multiple_users(create_user) -> list[User]:
    """
    Three persisted users with unique logins and emails, for ordering, follower and
    abuse-threshold tests.
    """
    users = []
    for idx in range(3):
        users.append(await create_user(login=f"user_{idx}_{_unique_suffix()}"))
    return users


@pytest.fixture
async def create_conversation(conversation_repository: ConversationRepository, fake: Faker):
    """
    Factory inserting a conversation row directly through the repository (no service
    side effects: no owner subscription, no tags, no counter update).

    Usage:
        conv = await create_conversation(owner, name="Roadmap", private=True)
    """
    async def _create(owner: User, **overrides) -> Conversation:
        data = {
            "name": f"{fake.catch_phrase()[:80]} {_unique_suffix()}",
            "description": fake.paragraph(nb_sentences=3),
        }
        data.update(overrides)
        return await conversation_repository.create_conversation(owner.id, **data)

    return _create


@pytest.fixture
async def conversation(create_conversation, created_user) -> Conversation:
    """A public, writable conversation owned by `created_user`."""
    return await create_conversation(created_user, name="General discussion")


@pytest.fixture
async def create_message(message_repository: MessageRepository, fake: Faker):
    """
    Factory posting a message.

    Usage:
        msg = await create_message(conversation, user, text="hello")
    """
    async def _create(conversation: Conversation, user: User, **overrides) -> Message:
        data = {"text": fake.sentence(), "system_message": False}
        data.update(overrides)
        return await message_repository.create_message(conversation.id, user.id, **data)

    return _create
