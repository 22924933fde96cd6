"""
Structured logging for reconciliation passes.

Every record carries timestamp, level, logger and event_type (the snake_case
event name). Per-pass context (wallet_id, and order_id inside backend
patches) is bound through structlog contextvars by pass_context(), so
collaborators called from a pass (RPC client, backend client, store) log it
without being handed the address.

LOG_LEVEL picks the level (default INFO); LOG_FORMAT=console switches from
JSON lines to the human-readable renderer.
"""

from __future__ import annotations

import logging
import os
import sys
from contextlib import contextmanager
from typing import Any, Iterator, TextIO

import structlog


def _rename_event(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """structlog's positional 'event' becomes event_type."""
    if "event" in event_dict:
        event_dict.setdefault("event_type", event_dict.pop("event"))
    return event_dict


def _drop_none(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Optional fields (order_id, method, ...) are omitted rather than logged as null."""
    return {k: v for k, v in event_dict.items() if v is not None}


def configure_logging(level: str | None = None, fmt: str | None = None, stream: TextIO | None = None) -> None:
    """
    (Re)configure structlog; called once on import with the env defaults.

    Loggers already bound keep the configuration they were created under.
    """
    level_name = (level or os.getenv("LOG_LEVEL") or "INFO").upper()
    fmt = (fmt or os.getenv("LOG_FORMAT") or "json").strip().lower()
    renderer: Any
    if fmt == "console":
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    else:
        renderer = structlog.processors.JSONRenderer()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
            structlog.processors.format_exc_info,
            _drop_none,
            _rename_event,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level_name, logging.INFO)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream or sys.stdout),
        cache_logger_on_first_use=True,
    )


if not structlog.is_configured():
    configure_logging()


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Return a structured logger for the given module name.

        logger = get_logger(__name__)
        logger.info("activity_pass_committed", total=12)
    """
    return structlog.get_logger(name).bind(logger=name)


@contextmanager
def pass_context(address: str, **fields: Any) -> Iterator[None]:
    """
    Bind wallet_id (plus any extra fields) to every log call in this context.

    Tasks created inside the block inherit the binding, so fire-and-forget
    backend patches still log the wallet they belong to.
    """
    with structlog.contextvars.bound_contextvars(wallet_id=address, **fields):
        yield
