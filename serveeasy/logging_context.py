"""Request-scoped logging context for the dispatch API.

Each HTTP request binds a request ID for its own duration. Every record
emitted by the orchestrator, the ticket manager or the store while it is
bound carries that ID, so one availability lookup or booking can be
followed end to end. Outside a request the ID reads as ``-``.

Usage:
    from serveeasy.logging_context import bind_request_id, get_request_logger

    logger = get_request_logger(__name__)
    with bind_request_id("req-abc123"):
        logger.info("Booking")  # -> [req-abc123] Booking
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar, Token

NO_REQUEST = "-"

_request_id: ContextVar[str] = ContextVar("request_id", default=NO_REQUEST)


def set_request_id(request_id: str) -> Token:
    """Bind ``request_id`` in the current context. Pass the token to ``reset_request_id``."""
    return _request_id.set(request_id)


def reset_request_id(token: Token) -> None:
    _request_id.reset(token)


def get_request_id() -> str:
    return _request_id.get()


@contextmanager
def bind_request_id(request_id: str) -> Iterator[str]:
    """Bind a request ID for the body of the ``with`` block, restoring the previous one after."""
    token = set_request_id(request_id)
    try:
        yield request_id
    finally:
        reset_request_id(token)


class RequestIdFilter(logging.Filter):
    """Stamps ``record.request_id`` unless the caller passed one via ``extra``."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = _request_id.get()  # type: ignore[attr-defined]
        return True


def get_request_logger(name: str) -> logging.Logger:
    """Module logger carrying a ``RequestIdFilter``, safe to call repeatedly."""
    logger = logging.getLogger(name)
    if not any(isinstance(f, RequestIdFilter) for f in logger.filters):
        logger.addFilter(RequestIdFilter())
    return logger
