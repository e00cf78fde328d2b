"""
rankbridge logging - structured logging via structlog.

Manifesto:
    The bridge is an event-driven daemon: friend requests, profile
    responses and bus commands interleave freely. Log lines only make
    sense with the ids attached, so every module logs snake_case event
    names with keyword fields and handlers bind ``global_id`` /
    ``voice_identity`` through :class:`LogContext`.

    Upstream talks in 32-bit account ids while onboarding and the
    lifecycle talk in 64-bit global ids. Any line that carries a
    ``global_id`` also gets the derived ``account_id``, so a friend event
    and the profile response it triggered can be matched by grepping one
    value.

Processor chain::

    merge_contextvars        LogContext / bound ids
    add_log_level
    _derive_account_id       global_id -> account_id
    _service_name(service)   service.name
    TimeStamper (optional)
    JSONRenderer | ConsoleRenderer

Examples:
    >>> from rankbridge.core.logging import configure_logging, get_logger
    >>> configure_logging(level="DEBUG")
    >>> logger = get_logger(__name__)
    >>> logger.info("rank_resolved", account_id=39734272, rank=12)

Tags:
    logging, structlog, observability, json-logging, rankbridge

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from rankbridge.core.protocols import steam64_to_account_id

# stdlib loggers that chatter at INFO on every request
_NOISY_LIBRARIES = ("httpx", "httpcore", "redis")


def _derive_account_id(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    global_id = event_dict.get("global_id")
    if isinstance(global_id, int) and "account_id" not in event_dict:
        event_dict["account_id"] = steam64_to_account_id(global_id)
    return event_dict


def _service_name(service: str) -> Processor:
    def add(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service.name", service)
        return event_dict

    return add


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "rankbridge",
    add_timestamp: bool = True,
) -> None:
    """Configure structlog for the bridge and route stdlib logging to stdout.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: True for JSON, False for console, None for auto (JSON if not tty)
        service: Value of the ``service.name`` field
        add_timestamp: Include ISO timestamp in logs
    """
    numeric_level = getattr(logging, level.upper())
    if json_format is None:
        json_format = not sys.stdout.isatty()

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        _derive_account_id,
        _service_name(service),
    ]
    if add_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso"))

    if json_format:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=numeric_level)
    # Per-request library lines only at DEBUG
    library_level = numeric_level if numeric_level <= logging.DEBUG else max(numeric_level, logging.WARNING)
    for name in _NOISY_LIBRARIES:
        logging.getLogger(name).setLevel(library_level)


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger."""
    return structlog.get_logger(name)


class LogContext:
    """Binds ids for the duration of a block, then restores what was there.

    Each asyncio task runs in its own copy of the context, so binding
    inside a handler does not leak into handlers for other identities.
    Nesting is safe: leaving an inner block restores the outer value of a
    re-bound key instead of dropping it.

    Example:
        async with LogContext(global_id=76561198000000000):
            logger.info("relationship_event")
    """

    def __init__(self, **kwargs: Any):
        self._context = kwargs
        self._tokens: Any = None

    def __enter__(self) -> LogContext:
        self._tokens = structlog.contextvars.bind_contextvars(**self._context)
        return self

    def __exit__(self, *args) -> None:
        structlog.contextvars.reset_contextvars(**self._tokens)

    async def __aenter__(self) -> LogContext:
        return self.__enter__()

    async def __aexit__(self, *args) -> None:
        self.__exit__(*args)


__all__ = [
    "configure_logging",
    "get_logger",
    "LogContext",
]
