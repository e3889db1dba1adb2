"""
Tag repository.

Conversations carry taggings in two contexts:

| context     | tagger_id | meaning                                         |
| ----------- | --------- | ----------------------------------------------- |
| "tags"      | NULL      | the conversation's own tag list                 |
| "tags"      | user id   | tags a user (usually the owner) applied         |
| "bookmarks" | user id   | a user's bookmark labels for the conversation   |
"""

import logging
from typing import Iterable

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from forum.models.tag import Tag, Tagging, TAGS_CONTEXT, BOOKMARKS_CONTEXT, TAG_NAME_MAX_LENGTH
from forum.exceptions.base import ValidationError
from forum.exceptions.mapper import db_error_handler
from .base_repository import BaseRepository, RepositoryError

logger = logging.getLogger(__name__)

TAG_DELIMITER = ","


def parse_tag_list(value: str | Iterable[str] | None) -> list[str]:
    """
    Normalize a tag list given as "a, b, c" or as an iterable of names.

    Names are stripped, blanks dropped and duplicates removed (first occurrence wins).

    Raises:
        ValidationError: If a name is longer than the tags.name column allows.
    """
    if value is None:
        return []
    names = value.split(TAG_DELIMITER) if isinstance(value, str) else value

    seen: list[str] = []
    for name in names:
        name = name.strip()
        if name and name not in seen:
            seen.append(name)
    if any(len(name) > TAG_NAME_MAX_LENGTH for name in seen):
        raise ValidationError({"tags": [f"is too long (maximum is {TAG_NAME_MAX_LENGTH} characters per tag)"]})
    return seen


class TagRepository(BaseRepository[Tag]):

    def __init__(self, db: AsyncSession):
        super().__init__(Tag, db)

    # =================================================================================================================
    # Tags
    # =================================================================================================================

    async def get_or_create_tag(self, name: str) -> Tag:
        tag = await self.find_by_field("name", name)
        if tag is None:
            tag = await self.create(name=name)
        return tag

    # =================================================================================================================
    # Taggings
    # =================================================================================================================

    async def _tag_names(self, conversation_id: int, tagger_id: int | None, context: str) -> list[str]:
        query = (
            select(Tag.name)
            .join(Tagging, Tagging.tag_id == Tag.id)
            .where(Tagging.conversation_id == conversation_id, Tagging.context == context)
            .order_by(Tagging.id)
        )
        if tagger_id is None:
            query = query.where(Tagging.tagger_id.is_(None))
        else:
            query = query.where(Tagging.tagger_id == tagger_id)
        try:
            result = await self.db.execute(query)
            return list(result.scalars().all())

        except Exception as e:
            logger.error(f"Error retrieving tag names for conversation {conversation_id}: {e}")
            raise RepositoryError("Failed to retrieve tags") from e

    async def add_tags(
        self,
        conversation_id: int,
        names: str | Iterable[str],
        context: str = TAGS_CONTEXT,
        tagger_id: int | None = None
    ) -> list[str]:
        """
        Attach tags to the conversation, skipping ones already present.

        Returns:
            The complete tag list for (conversation, tagger, context) afterwards.
        """
        present = set(await self._tag_names(conversation_id, tagger_id, context))
        added = []
        async with db_error_handler(self.db, Tagging.__name__):
            for name in parse_tag_list(names):
                if name in present:
                    continue
                tag = await self.get_or_create_tag(name)
                self.db.add(Tagging(tag_id=tag.id, conversation_id=conversation_id, tagger_id=tagger_id, context=context))
                present.add(name)
                added.append(name)
            await self.db.flush()

        if added:
            logger.info(
                "tags.added",
                extra={"conversation_id": conversation_id, "tagger_id": tagger_id, "context": context, "tags": added},
            )
        return await self._tag_names(conversation_id, tagger_id, context)

    async def tag_list(self, conversation_id: int, context: str = TAGS_CONTEXT) -> list[str]:
        """The conversation's own tags (no tagger) in the order they were added."""
        return await self._tag_names(conversation_id, None, context)

    async def set_tagger_tags(
        self,
        tagger_id: int,
        conversation_id: int,
        names: str | Iterable[str],
        context: str = TAGS_CONTEXT
    ) -> list[str]:
        """
        Replace the tags `tagger_id` applied to the conversation in `context`.
        """
        names = parse_tag_list(names)
        async with db_error_handler(self.db, Tagging.__name__):
            await self.db.execute(
                delete(Tagging).where(
                    Tagging.conversation_id == conversation_id,
                    Tagging.tagger_id == tagger_id,
                    Tagging.context == context,
                )
            )
        return await self.add_tags(conversation_id, names, context=context, tagger_id=tagger_id)

    async def tagger_tags(self, tagger_id: int, conversation_id: int, context: str = TAGS_CONTEXT) -> list[str]:
        return await self._tag_names(conversation_id, tagger_id, context)

    async def bookmark(self, user_id: int, conversation_id: int, names: str | Iterable[str]) -> list[str]:
        """Set the user's bookmark labels for the conversation."""
        return await self.set_tagger_tags(user_id, conversation_id, names, context=BOOKMARKS_CONTEXT)
