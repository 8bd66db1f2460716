"""Logging helpers for QueryTables.

Every logger lives under the ``querytables`` namespace. While a query is being
resolved, records carry a ``query_id``: a short hash of the raw query text, so
the split, each introspection round trip and the resolved cache channel of one
query can be grouped together even when many queries interleave.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any, Final

from querytables._serialization import encode_json
from querytables.utils.hashing import short_hash_key

if TYPE_CHECKING:
    from collections.abc import Iterator
    from logging import LogRecord

__all__ = (
    "QUERY_ID_LENGTH",
    "QueryIDFilter",
    "StructuredFormatter",
    "get_logger",
    "get_query_id",
    "log_with_context",
    "query_logging_context",
)

ROOT_LOGGER_NAME: Final = "querytables"
QUERY_ID_LENGTH: Final = 12

_query_id_var: ContextVar[str | None] = ContextVar("querytables_query_id", default=None)


def get_query_id() -> str | None:
    """Return the ID of the query being resolved in this context, if any."""
    return _query_id_var.get()


@contextmanager
def query_logging_context(sql: str) -> Iterator[str]:
    """Tag every record logged inside the block with the ID of ``sql``.

    The same query text always gets the same ID. The previous ID is restored on
    exit, also when the block raises.

    Args:
        sql: Raw query text as received, before token replacement.

    Yields:
        The query ID.
    """
    query_id = short_hash_key(sql, length=QUERY_ID_LENGTH)
    token = _query_id_var.set(query_id)
    try:
        yield query_id
    finally:
        _query_id_var.reset(token)


class QueryIDFilter(logging.Filter):
    """Copies the current query ID onto each record as ``record.query_id``."""

    def filter(self, record: LogRecord) -> bool:
        record.query_id = get_query_id()  # type: ignore[attr-defined]
        return True


class StructuredFormatter(logging.Formatter):
    """One JSON object per record with the query ID and any ``log_with_context`` fields."""

    def format(self, record: LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        query_id = getattr(record, "query_id", None)
        if query_id is not None:
            log_entry["query_id"] = query_id
        log_entry.update(getattr(record, "extra_fields", {}))
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        return encode_json(log_entry)


def get_logger(name: str | None = None) -> logging.Logger:
    """Get a logger under the ``querytables`` namespace.

    Args:
        name: Logger name, prefixed with ``querytables.`` unless it already is.

    Returns:
        The logger, with a :class:`QueryIDFilter` attached exactly once.
    """
    if name is None:
        name = ROOT_LOGGER_NAME
    elif not name.startswith(ROOT_LOGGER_NAME):
        name = f"{ROOT_LOGGER_NAME}.{name}"

    logger = logging.getLogger(name)
    if not any(isinstance(f, QueryIDFilter) for f in logger.filters):
        logger.addFilter(QueryIDFilter())
    return logger


def log_with_context(logger: logging.Logger, level: int, message: str, **extra_fields: Any) -> None:
    """Log ``message`` with ``extra_fields`` attached to the record.

    The logger's filters run, so the record also gets the current query ID.
    """
    if not logger.isEnabledFor(level):
        return
    record = logger.makeRecord(logger.name, level, "(unknown file)", 0, message, (), None)
    record.extra_fields = extra_fields  # type: ignore[attr-defined]
    logger.handle(record)
