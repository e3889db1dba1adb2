"""
Reusable WHERE fragments for conversation and message queries.

Each scope takes a `Select` and returns it narrowed, so they chain:

    query = not_personal(non_private(published(select(Conversation))))
"""

from sqlalchemy import Select

from forum.models.conversation import Conversation
from forum.models.message import Message


def published(query: Select) -> Select:
    """Conversations not disabled by an abuse report."""
    return query.where(Conversation.abuse_report_id.is_(None))


def non_private(query: Select) -> Select:
    return query.where(Conversation.private.is_(False))


def not_personal(query: Select) -> Select:
    return query.where(Conversation.personal_conversation.is_(False))


def personal(query: Select) -> Select:
    return query.where(Conversation.personal_conversation.is_(True))


def not_owned_by(query: Select, user_id: int) -> Select:
    return query.where(Conversation.user_id != user_id)


def published_messages(query: Select) -> Select:
    """Messages not taken down by an abuse report."""
    return query.where(Message.abuse_report_id.is_(None))
