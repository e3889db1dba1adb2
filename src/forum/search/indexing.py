"""
Delta flagging for the conversation full-text index.

The search service indexes name and description, with created_at and abuse_report_id
as filterable attributes. It runs incremental ("delta") passes over the rows whose
`delta` flag is set, so every ORM update that touches one of those fields has to set
the flag again. New rows start with delta=True (column default).

Bulk UPDATE statements bypass mapper events; repositories that change indexed fields
go through the unit of work (setattr + flush) for that reason.
"""

import logging

from sqlalchemy import event, inspect

from forum.models.conversation import Conversation

logger = logging.getLogger(__name__)

INDEXED_FIELDS = ("name", "description", "created_at", "abuse_report_id")


def indexed_fields_changed(target: Conversation) -> list[str]:
    state = inspect(target)
    return [
        field for field in INDEXED_FIELDS
        if state.attrs[field].history.has_changes()
    ]


@event.listens_for(Conversation, "before_update")
def flag_conversation_delta(mapper, connection, target: Conversation) -> None:
    changed = indexed_fields_changed(target)
    if changed:
        target.delta = True
        logger.debug(
            "search.delta_flagged",
            extra={"conversation_id": target.id, "changed_fields": changed},
        )


def to_index_document(conversation: Conversation) -> dict:
    """Fields pushed to the search service for one conversation."""
    return {
        "id": conversation.id,
        "name": conversation.name,
        "description": conversation.description,
        "created_at": conversation.created_at,
        "abuse_report_id": conversation.abuse_report_id,
    }
