"""
Conversation repository for handling conversation-specific database operations.

This module provides the ConversationRepository class which extends BaseRepository
with the conversation rules that need the database:
  - validated create / update (name uniqueness is a query)
  - follower-based access checks (`followed_by`, `readable_by`, `writable_by`)
  - listing through the composable scopes (published, non-private, personal, ...)
  - abuse counting and disabling
  - visit-based popularity ranking
  - message pagination windows (delegated to MessageRepository)
  - search-index delta bookkeeping

Multi-step workflows (creation side effects, abuse reporting, spawn notices) live in
services.ConversationService.
"""

import re
import logging
from datetime import datetime, timedelta, timezone
from typing import Iterable

from sqlalchemy import select, update, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from forum.models.conversation import Conversation
from forum.models.conversation_visit import ConversationVisit
from forum.models.message import Message
from forum.models.user import User
from forum.exceptions.base import InvalidFieldError
from forum.exceptions.mapper import db_error_handler
from forum.validators.conversation_validators import validate_conversation
from .base_repository import BaseRepository, NotFoundError, RepositoryError
from .abuse_report_repository import AbuseReportRepository
from .message_repository import MessageRepository, DEFAULT_PAGE_SIZE
from .subscription_repository import SubscriptionRepository
from .visit_repository import VisitRepository
from . import scopes

logger = logging.getLogger(__name__)

# leading id of a routing key such as "42-hello-world"
_PARAM_ID_RE = re.compile(r"^\s*(\d+)")

# attributes update_conversation() accepts
UPDATABLE_FIELDS = frozenset({"name", "description", "private", "read_only"})


class ConversationRepository(BaseRepository[Conversation]):
    """
    Repository for Conversation entity operations.
    """

    def __init__(self, db: AsyncSession):
        super().__init__(Conversation, db)
        self.messages = MessageRepository(db)
        self.subscriptions = SubscriptionRepository(db)
        self.abuse_reports = AbuseReportRepository(db)
        self.visits = VisitRepository(db)

    # =================================================================================================================
    # Create / Update Operations
    # =================================================================================================================

    async def create_conversation(
        self,
        owner_id: int,
        name: str,
        description: str,
        *,
        private: bool = False,
        read_only: bool = False,
        personal: bool = False,
        parent_message_id: int | None = None,
        something: str | None = None
    ) -> Conversation:
        """
        Validate and insert a conversation.

        Only the row is written here; following, tagging and the owner's counter are
        handled by ConversationService.create_conversation().

        Args:
            owner_id: ID of the owning user.
            personal: marks the owner's personal conversation (exempt from the length
                and uniqueness rules).
            parent_message_id: message this conversation is spawned from (exempt from
                the uniqueness rule).
            something: honeypot field value from the submitted form; must be blank.

        Raises:
            NotFoundError: If the owner does not exist.
            ValidationError: If any conversation rule fails (all failures reported).
            RepositoryError: For database errors.
        """
        logger.info("conversation.create", extra={"owner_id": owner_id, "personal": personal})

        if not await self._user_exists(owner_id):
            raise NotFoundError(f"User with ID {owner_id} not found")

        await validate_conversation(
            self.db,
            name,
            description,
            personal=personal,
            spawned=parent_message_id is not None,
            something=something,
        )

        return await self.create(
            user_id=owner_id,
            name=name,
            description=description,
            private=private,
            read_only=read_only,
            personal_conversation=personal,
            parent_message_id=parent_message_id,
        )

    async def update_conversation(self, conversation_id: int, something: str | None = None, **changes) -> Conversation:
        """
        Validate and apply changes to name / description / private / read_only.

        The rules run against the merged state, so e.g. renaming to an existing name
        fails while keeping the current name does not.

        Raises:
            NotFoundError: If the conversation does not exist.
            InvalidFieldError: If a field outside the editable set is passed.
            ValidationError: If the merged state breaks a conversation rule.
        """
        unknown = sorted(set(changes) - UPDATABLE_FIELDS)
        if unknown:
            raise InvalidFieldError(f"Cannot update field(s): {', '.join(unknown)}", fields=unknown)

        conversation = await self.get_by_id_or_raise(conversation_id)

        await validate_conversation(
            self.db,
            changes.get("name", conversation.name),
            changes.get("description", conversation.description),
            personal=conversation.is_personal,
            spawned=conversation.is_spawned,
            something=something,
            exclude_id=conversation.id,
        )

        return await self.update(conversation_id, **changes)

    async def _user_exists(self, user_id: int) -> bool:
        try:
            result = await self.db.execute(select(User.id).where(User.id == user_id))
            return result.scalar_one_or_none() is not None
        except Exception as e:
            logger.error(f"Error checking user {user_id}: {e}")
            raise RepositoryError("Failed to check user existence") from e

    # =================================================================================================================
    # Access Checks
    # =================================================================================================================

    async def followed_by(self, conversation: Conversation, user: User | None) -> bool:
        """True when `user` subscribes to the conversation. Anonymous users follow nothing."""
        if user is None:
            return False
        return await self.subscriptions.is_following(conversation.id, user.id)

    async def writable_by(self, conversation: Conversation, user: User | None) -> bool:
        """
        The owner can always write. Anyone can write to a public, writable conversation.
        Followers can write to a private one (even when it is read-only).
        """
        if conversation.is_owned_by(user):
            return True
        if not conversation.read_only and not conversation.is_private:
            return True
        return conversation.is_private and await self.followed_by(conversation, user)

    async def readable_by(self, conversation: Conversation, user: User | None) -> bool:
        if conversation.is_owned_by(user) or not conversation.is_private:
            return True
        return await self.followed_by(conversation, user)

    # =================================================================================================================
    # Read Operations
    # =================================================================================================================

    async def list_conversations(
        self,
        *,
        published_only: bool = True,
        non_private_only: bool = False,
        exclude_personal: bool = False,
        only_personal: bool = False,
        not_owned_by: int | None = None,
        offset: int = 0,
        limit: int = 50
    ) -> list[Conversation]:
        """
        List conversations newest first, narrowed by any combination of scopes.

        Args:
            published_only: skip conversations disabled by an abuse report.
            non_private_only: skip private conversations.
            exclude_personal: skip personal conversations.
            only_personal: only personal conversations.
            not_owned_by: skip conversations owned by this user id.
        """
        query = select(Conversation)
        if published_only:
            query = scopes.published(query)
        if non_private_only:
            query = scopes.non_private(query)
        if exclude_personal:
            query = scopes.not_personal(query)
        if only_personal:
            query = scopes.personal(query)
        if not_owned_by is not None:
            query = scopes.not_owned_by(query, not_owned_by)

        query = query.order_by(Conversation.created_at.desc(), Conversation.id.desc()).offset(offset).limit(limit)
        try:
            result = await self.db.execute(query)
            conversations = list(result.scalars().all())
            logger.debug(f"Listed {len(conversations)} conversations")
            return conversations

        except Exception as e:
            logger.error(f"Error listing conversations: {e}")
            raise RepositoryError("Failed to list conversations") from e

    async def get_by_param(self, param: str) -> Conversation | None:
        """
        Resolve a routing key produced by Conversation.to_param() ("42-hello-world").

        Only the id prefix is used, so a key with an outdated slug still resolves.
        Returns None for keys without an id prefix.
        """
        match = _PARAM_ID_RE.match(param or "")
        if match is None:
            logger.debug("conversation.bad_param", extra={"param": param})
            return None
        return await self.get_by_id(int(match.group(1)))

    async def search(self, term: str, offset: int = 0, limit: int = 20) -> list[Conversation]:
        """
        Published conversations whose name or description contains `term`
        (case-insensitive). Blank terms match nothing.
        """
        term = (term or "").strip()
        if not term:
            return []

        query = scopes.published(select(Conversation)).where(
            or_(
                Conversation.name.icontains(term, autoescape=True),
                Conversation.description.icontains(term, autoescape=True),
            )
        )
        query = query.order_by(Conversation.created_at.desc(), Conversation.id.desc()).offset(offset).limit(limit)
        try:
            result = await self.db.execute(query)
            return list(result.scalars().all())

        except Exception as e:
            logger.error(f"Error searching conversations for {term!r}: {e}")
            raise RepositoryError("Failed to search conversations") from e

    # =================================================================================================================
    # Search Index Deltas
    # =================================================================================================================

    async def pending_index_deltas(self, limit: int = 1000) -> list[Conversation]:
        """Conversations whose indexed fields changed since the last delta pass."""
        try:
            result = await self.db.execute(
                select(Conversation).where(Conversation.delta.is_(True)).order_by(Conversation.id).limit(limit)
            )
            return list(result.scalars().all())

        except Exception as e:
            logger.error(f"Error retrieving pending index deltas: {e}")
            raise RepositoryError("Failed to retrieve index deltas") from e

    async def mark_indexed(self, conversation_ids: Iterable[int]) -> int:
        """
        Clear the delta flag after the indexer picked the rows up.

        Returns:
            Number of rows cleared.
        """
        ids = list(conversation_ids)
        if not ids:
            return 0

        async with db_error_handler(self.db, Conversation.__name__):
            result = await self.db.execute(
                update(Conversation)
                .where(Conversation.id.in_(ids))
                .values(delta=False)
                .execution_options(synchronize_session="evaluate")
            )
        logger.info("search.marked_indexed", extra={"count": result.rowcount})
        return result.rowcount

    # =================================================================================================================
    # Abuse Moderation
    # =================================================================================================================

    async def count_abuse_reports(self, conversation_id: int) -> int:
        return await self.abuse_reports.count_for_conversation(conversation_id)

    async def over_abuse_reports_limit(self, conversation_id: int, threshold: int) -> bool:
        """True once the number of reports is strictly greater than `threshold`."""
        return await self.count_abuse_reports(conversation_id) > threshold

    async def disable(self, conversation_id: int, abuse_report_id: int) -> Conversation:
        """
        Take the conversation down by attaching the abuse report that triggered it.

        Disabling is terminal: a conversation that is already disabled keeps its
        first report.

        Raises:
            NotFoundError: If the conversation does not exist.
        """
        conversation = await self.get_by_id_or_raise(conversation_id)
        if conversation.is_disabled_by_abuse_report:
            logger.debug(
                "conversation.already_disabled",
                extra={"conversation_id": conversation_id, "abuse_report_id": conversation.abuse_report_id},
            )
            return conversation

        conversation = await self.update(conversation_id, abuse_report_id=abuse_report_id)
        logger.warning(
            "conversation.disabled",
            extra={"conversation_id": conversation_id, "abuse_report_id": abuse_report_id},
        )
        return conversation

    # =================================================================================================================
    # Visits / Popularity
    # =================================================================================================================

    async def total_visits(self, conversation_id: int) -> int:
        return await self.visits.total_visits(conversation_id)

    async def most_popular(
        self,
        now: datetime | None = None,
        window_days: int = 30,
        limit: int = 10
    ) -> list[Conversation]:
        """
        Conversations ranked by visits within the trailing window, most visited first.

        The window opens at midnight `window_days` days before `now`, so a whole first day
        counts. A visit row counts when its `updated_at` (time of the latest visit) falls
        inside the window; its whole `visits_count` is added to the conversation's score.
        Ties are broken by id.

        Args:
            now: end of the window (defaults to the current UTC time).
            window_days: window length in days.
            limit: maximum number of conversations returned.
        """
        start_day = (now or datetime.now(timezone.utc)) - timedelta(days=window_days)
        cutoff = start_day.replace(hour=0, minute=0, second=0, microsecond=0)
        score = func.sum(ConversationVisit.visits_count).label("score")

        query = (
            select(Conversation, score)
            .join(ConversationVisit, ConversationVisit.conversation_id == Conversation.id)
            .where(ConversationVisit.updated_at >= cutoff)
            .group_by(Conversation.id)
            .order_by(score.desc(), Conversation.id.asc())
            .limit(limit)
        )
        try:
            result = await self.db.execute(query)
            conversations = [row[0] for row in result.all()]
            logger.debug(
                "conversation.most_popular",
                extra={"window_days": window_days, "count": len(conversations)},
            )
            return conversations

        except Exception as e:
            logger.error(f"Error ranking popular conversations: {e}")
            raise RepositoryError("Failed to rank conversations") from e

    # =================================================================================================================
    # Message Pagination
    # =================================================================================================================

    async def get_messages_before(
        self,
        conversation_id: int,
        message_id: int,
        limit: int = DEFAULT_PAGE_SIZE
    ) -> list[Message]:
        """Up to `limit` published messages older than `message_id`, newest first."""
        return await self.messages.get_before(conversation_id, message_id, limit=limit)

    async def get_messages_after(
        self,
        conversation_id: int,
        message_id: int,
        limit: int = DEFAULT_PAGE_SIZE
    ) -> list[Message]:
        """Up to `limit` published messages newer than `message_id`, newest first."""
        return await self.messages.get_after(conversation_id, message_id, limit=limit)

    async def has_messages_before(self, conversation_id: int, message: Message | None) -> bool:
        if message is None:
            return False
        return await self.messages.exists_before(conversation_id, message.id)

    async def has_messages_after(self, conversation_id: int, message: Message | None) -> bool:
        if message is None:
            return False
        return await self.messages.exists_after(conversation_id, message.id)
