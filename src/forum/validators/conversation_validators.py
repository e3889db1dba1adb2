"""
Validation rules for conversations.

All rules run and every failure is collected, so the caller gets the complete list
of problems in one ValidationError:

| field       | rule                                                                  |
| ----------- | --------------------------------------------------------------------- |
| name        | required                                                              |
| name        | 3..100 characters, unless personal                                    |
| name        | unique across conversations, unless personal or spawned              |
| description | required, at most 10000 characters                                    |
| something   | honeypot: must be blank (bots fill every field of the form)           |
"""

import logging
from collections import defaultdict

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from forum.exceptions.base import ValidationError
from forum.models.conversation import Conversation

logger = logging.getLogger(__name__)

NAME_MIN_LENGTH = 3
NAME_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 10000

HONEYPOT_FIELD = "something"


def _is_blank(value: str | None) -> bool:
    return value is None or not value.strip()


def check_conversation_fields(
    name: str | None,
    description: str | None,
    *,
    personal: bool = False,
    something: str | None = None,
) -> dict[str, list[str]]:
    """
    Field-level rules that need no database access. Returns field -> messages.
    """
    errors: dict[str, list[str]] = defaultdict(list)

    if _is_blank(name):
        errors["name"].append("can't be blank")
    if not personal and name is not None and not NAME_MIN_LENGTH <= len(name) <= NAME_MAX_LENGTH:
        if len(name) < NAME_MIN_LENGTH:
            errors["name"].append(f"is too short (minimum is {NAME_MIN_LENGTH} characters)")
        else:
            errors["name"].append(f"is too long (maximum is {NAME_MAX_LENGTH} characters)")

    if _is_blank(description):
        errors["description"].append("can't be blank")
    if description is not None and len(description) > DESCRIPTION_MAX_LENGTH:
        errors["description"].append(f"is too long (maximum is {DESCRIPTION_MAX_LENGTH} characters)")

    if not _is_blank(something):
        # generic message, no hint about the trap
        errors[HONEYPOT_FIELD].append("is invalid")

    return dict(errors)


async def name_taken(db: AsyncSession, name: str, exclude_id: int | None = None) -> bool:
    """True when another conversation already uses exactly this name."""
    query = select(Conversation.id).where(Conversation.name == name)
    if exclude_id is not None:
        query = query.where(Conversation.id != exclude_id)
    result = await db.execute(query.limit(1))
    return result.scalar_one_or_none() is not None


async def validate_conversation(
    db: AsyncSession,
    name: str | None,
    description: str | None,
    *,
    personal: bool = False,
    spawned: bool = False,
    something: str | None = None,
    exclude_id: int | None = None,
) -> None:
    """
    Run every conversation rule and raise ValidationError if any fails.

    Args:
        db: session used for the uniqueness lookup.
        personal: personal conversations skip the length and uniqueness rules.
        spawned: spawned conversations skip the uniqueness rule.
        something: value of the honeypot form field.
        exclude_id: id of the conversation being updated (it may keep its own name).
    """
    errors = check_conversation_fields(name, description, personal=personal, something=something)

    if not (personal or spawned) and not _is_blank(name):
        if await name_taken(db, name, exclude_id=exclude_id):
            errors.setdefault("name", []).append("has already been taken")

    if errors:
        logger.info(
            "conversation.validation_failed",
            extra={"invalid_fields": sorted(errors), "honeypot": HONEYPOT_FIELD in errors},
        )
        raise ValidationError(errors)
