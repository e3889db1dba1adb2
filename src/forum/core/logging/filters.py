# src/forum/core/logging/filters.py
"""
Logging filters.

RequestIdFilter stamps a correlation id on every LogRecord so all lines logged while
serving one request (or one background job) can be grouped. The id lives in a
`contextvars.ContextVar`, which follows the current asyncio task across awaits.

The caller that starts a unit of work sets it:

    token = set_request_id("req-42")
    try:
        await service.report_abuse(conversation, user)
    finally:
        reset_request_id(token)

or, equivalently, `with request_context("req-42"): ...`.

RedactFilter masks sensitive attributes attached via `extra` before any handler
formats them.
"""

import logging
import contextvars
from contextlib import contextmanager
from logging import LogRecord

# Default None means "no request id set"
_request_id_ctx: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)


def set_request_id(request_id: str | None):
    """
    Set the request id in the current context.

    Returns:
        token: pass it to reset_request_id() to restore the previous value
    """
    return _request_id_ctx.set(request_id)


def reset_request_id(token):
    _request_id_ctx.reset(token)


def get_request_id() -> str | None:
    return _request_id_ctx.get()


@contextmanager
def request_context(request_id: str):
    token = set_request_id(request_id)
    try:
        yield request_id
    finally:
        reset_request_id(token)


class RequestIdFilter(logging.Filter):
    """
    Guarantees every LogRecord has a `request_id` attribute:
      - an explicit `extra={"request_id": ...}` wins,
      - otherwise the contextvar value,
      - otherwise the sentinel "-" (keeps %(request_id)s format strings safe).

    Never drops a record.
    """

    def filter(self, record: LogRecord) -> bool:
        record.request_id = (
            getattr(record, "request_id", None) or get_request_id() or "-"
        )
        return True


class RedactFilter(logging.Filter):
    """Replace the value of sensitive record attributes (e.g. extra={"token": ...})."""

    SENSITIVE = {"password", "secret", "token", "access_token", "refresh_token", "authorization", "email"}
    MASK = "***REDACTED***"

    def filter(self, record: LogRecord) -> bool:
        for key in list(record.__dict__.keys()):
            if key.lower() in self.SENSITIVE:
                record.__dict__[key] = self.MASK
        return True
