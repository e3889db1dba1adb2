"""Conversation workflows that span several repositories.

The repositories each write one kind of row. This service strings them together for
the operations that have side effects: creating a conversation (owner follows it, owner
tags, counter cache), the personal-conversation factory, abuse reporting and the
"new conversation spawned" notice.

Nothing here commits. The caller owns the session and commits the whole workflow
as one unit of work.
"""

import logging
from typing import Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from forum.config import get_settings
from forum.exceptions.base import InvalidInputError, NotFoundError
from forum.models.abuse_report import AbuseReport
from forum.models.conversation import Conversation
from forum.models.conversation_visit import ConversationVisit
from forum.models.message import Message
from forum.models.subscription import Subscription
from forum.models.user import User
from forum.repositories.conversation_repository import ConversationRepository
from forum.repositories.tag_repository import TagRepository, parse_tag_list
from forum.repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)

PERSONAL_TAG = "personal_convo"

PERSONAL_DESCRIPTION = (
    "This is a personal conversation for {name}. "
    "If you wish to collaborate with {name}, do it here."
)

SPAWN_NOTICE = """
      new convo: <a href="{host}/conversations/{conversation_id}">{name}</a>
      spawned by: {login}

      in response to: <a href="{parent_url}">{parent_url}</a>
    """


class ConversationService:
    """Service class for conversation workflows."""

    def __init__(self, db: AsyncSession, abuse_threshold: int | None = None, host: str | None = None):
        """Initialize the service.

        Args:
            db: Async database session shared by every repository used here.
            abuse_threshold: number of reports a conversation must exceed to be disabled.
                Defaults to CONVERSATION_ABUSE_THRESHOLD from settings.
            host: absolute base URL used in notification links. Defaults to HOST.
        """
        settings = get_settings()
        self.db = db
        self.abuse_threshold = settings.CONVERSATION_ABUSE_THRESHOLD if abuse_threshold is None else abuse_threshold
        self.host = (host if host is not None else settings.HOST).rstrip("/")

        self.conversations = ConversationRepository(db)
        self.users = UserRepository(db)
        self.tags = TagRepository(db)

    # =================================================================================================================
    # Creation
    # =================================================================================================================

    async def create_conversation(
        self,
        owner: User,
        name: str,
        description: str,
        *,
        tags: str | Iterable[str] | None = None,
        private: bool = False,
        read_only: bool = False,
        personal: bool = False,
        parent_message_id: int | None = None,
        something: str | None = None,
    ) -> Conversation:
        """Validate and create a conversation, then run the creation side effects.

        After the insert:
          1. the owner follows the conversation,
          2. `tags` become the conversation's own tag list,
          3. the owner's tags on it are set to that list plus the owner's login,
          4. the owner's conversations counter is incremented.

        Raises:
            ValidationError: If the conversation breaks a validation rule.
            NotFoundError: If the owner does not exist.
        """
        tag_names = parse_tag_list(tags)

        conversation = await self.conversations.create_conversation(
            owner.id,
            name,
            description,
            private=private,
            read_only=read_only,
            personal=personal,
            parent_message_id=parent_message_id,
            something=something,
        )

        await self.conversations.subscriptions.add_subscription(conversation.id, owner.id)

        if tag_names:
            await self.tags.add_tags(conversation.id, tag_names)
        await self.tags.set_tagger_tags(owner.id, conversation.id, tag_names + [owner.login])

        await self.users.increment_conversations_count(owner.id)

        logger.info(
            "conversation.created",
            extra={
                "conversation_id": conversation.id,
                "owner_id": owner.id,
                "personal": personal,
                "spawned": conversation.is_spawned,
            },
        )
        return conversation

    async def add_personal(self, user: User) -> Conversation:
        """Create the user's personal conversation, named after their login."""
        display = user.name or user.login
        conversation = await self.create_conversation(
            user,
            user.login,
            PERSONAL_DESCRIPTION.format(name=display),
            personal=True,
        )
        await self.tags.add_tags(conversation.id, [PERSONAL_TAG])
        return conversation

    # =================================================================================================================
    # Abuse
    # =================================================================================================================

    async def report_abuse(self, conversation: Conversation, user: User) -> AbuseReport:
        """File `user`'s abuse report against the conversation and disable it when due.

        A user files at most one report per conversation; reporting again returns the
        existing report. The conversation is disabled when the owner reports their own
        conversation (other than their personal one), or when the number of reports
        exceeds the configured threshold. A disabled conversation keeps the report that
        disabled it.
        """
        report, created = await self.conversations.abuse_reports.file_report(conversation.id, user.id)

        if conversation.is_disabled_by_abuse_report:
            return report

        owner_self_report = False
        if conversation.is_owned_by(user):
            personal = await self.users.get_personal_conversation(user.id)
            owner_self_report = personal is None or personal.id != conversation.id

        over_limit = await self.conversations.over_abuse_reports_limit(conversation.id, self.abuse_threshold)

        if owner_self_report or over_limit:
            await self.conversations.disable(conversation.id, report.id)
            logger.warning(
                "conversation.abuse_disabled",
                extra={
                    "conversation_id": conversation.id,
                    "abuse_report_id": report.id,
                    "reason": "owner_report" if owner_self_report else "threshold",
                    "threshold": self.abuse_threshold,
                },
            )
        else:
            logger.info(
                "conversation.abuse_reported",
                extra={"conversation_id": conversation.id, "user_id": user.id, "report_created": created},
            )
        return report

    # =================================================================================================================
    # Visits / Subscriptions
    # =================================================================================================================

    async def add_visit(self, conversation: Conversation, user: User) -> ConversationVisit:
        return await self.conversations.visits.add_visit(conversation.id, user.id)

    async def add_subscription(self, conversation: Conversation, user: User) -> Subscription:
        return await self.conversations.subscriptions.add_subscription(conversation.id, user.id)

    async def remove_subscription(self, conversation: Conversation, user: User) -> bool | int:
        return await self.conversations.subscriptions.remove_subscription(conversation.id, user.id)

    async def follow(self, user: User, conversation: Conversation) -> Subscription:
        """User-side spelling of add_subscription."""
        return await self.add_subscription(conversation, user)

    # =================================================================================================================
    # Notifications
    # =================================================================================================================

    async def notify_of_new_spawn(self, conversation: Conversation, user: User) -> Message:
        """Post a system message in the parent conversation announcing a spawned one.

        Returns:
            The created system message (authored by `user`).

        Raises:
            InvalidInputError: If the conversation was not spawned from a message.
            NotFoundError: If the parent message no longer exists.
        """
        if not conversation.is_spawned:
            raise InvalidInputError(
                f"Conversation {conversation.id} was not spawned from a message",
                fields=["parent_message_id"],
            )

        parent = await self.conversations.messages.get_by_id(conversation.parent_message_id)
        if parent is None:
            raise NotFoundError(f"Message with ID {conversation.parent_message_id} not found")

        parent_url = f"{self.host}/conversations/{parent.conversation_id}/messages/{parent.id}"
        text = SPAWN_NOTICE.format(
            host=self.host,
            conversation_id=conversation.id,
            name=conversation.name,
            login=user.login,
            parent_url=parent_url,
        )

        notice = await self.conversations.messages.create_message(
            parent.conversation_id, user.id, text, system_message=True
        )
        logger.info(
            "conversation.spawn_notified",
            extra={
                "conversation_id": conversation.id,
                "parent_conversation_id": parent.conversation_id,
                "message_id": notice.id,
            },
        )
        return notice
