"""Structured logging for index operations.

``configure_logging`` routes structlog events through stdlib handlers, one per
``LogOutputConfig``, each with its own level and renderer.

``request_scope`` tags every event emitted while one coordinator operation runs
(index, resolve, deduce, lint) with a shared ``request_id`` and the operation
name, so a slow deduction or a failing file can be traced end to end.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from pathlib import Path
from typing import TYPE_CHECKING, Any
from uuid import uuid4

import structlog

if TYPE_CHECKING:
    from phpintel.config.models import LoggingConfig, LogOutputConfig

_request_id: ContextVar[str | None] = ContextVar("request_id", default=None)

_CONSOLE_DESTINATIONS = ("stderr", "stdout")


def get_request_id() -> str | None:
    return _request_id.get()


def set_request_id(request_id: str | None = None) -> str:
    """Set or generate request correlation ID."""
    rid = request_id or uuid4().hex[:12]
    _request_id.set(rid)
    return rid


def clear_request_id() -> None:
    _request_id.set(None)


@contextmanager
def request_scope(operation: str) -> Iterator[str]:
    """Correlate the events of one operation.

    Nested scopes join the outermost one, so indexing a project reports a
    single request id for every file it touches.
    """
    outer = get_request_id()
    if outer is not None:
        yield outer
        return
    rid = set_request_id()
    try:
        with structlog.contextvars.bound_contextvars(operation=operation):
            yield rid
    finally:
        clear_request_id()


def _add_request_id(
    _logger: structlog.types.WrappedLogger,
    _method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    if rid := get_request_id():
        event_dict["request_id"] = rid
    return event_dict


def configure_logging(config: LoggingConfig | None = None) -> None:
    """Install handlers for every configured output.

    Calling it again replaces the handlers of the previous call.
    """
    from phpintel.config.models import LoggingConfig

    config = config or LoggingConfig()
    levels = logging.getLevelNamesMapping()
    root_level = levels[config.level]

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", key="timestamp"),
        _add_request_id,  # type: ignore[list-item]
    ]
    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(root_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Reconfiguration must take effect on loggers created at import time
        cache_logger_on_first_use=False,
    )

    root_logger = logging.getLogger()
    for existing in list(root_logger.handlers):
        root_logger.removeHandler(existing)
        existing.close()
    root_logger.setLevel(root_level)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    for output in config.outputs:
        handler = _handler(output.destination)
        handler.setLevel(levels[output.level or config.level])
        handler.setFormatter(_formatter(output, shared_processors))
        root_logger.addHandler(handler)


def _console_stream(destination: str) -> Any:
    return getattr(sys, destination) if destination in _CONSOLE_DESTINATIONS else None


def _handler(destination: str) -> logging.Handler:
    stream = _console_stream(destination)
    if stream is not None:
        return logging.StreamHandler(stream)
    path = Path(destination)
    path.parent.mkdir(parents=True, exist_ok=True)
    return logging.FileHandler(path, mode="a")


def _formatter(
    output: LogOutputConfig, shared_processors: list[structlog.types.Processor]
) -> logging.Formatter:
    renderer: structlog.types.Processor
    if output.format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        stream = _console_stream(output.destination)
        renderer = structlog.dev.ConsoleRenderer(
            colors=stream is not None and stream.isatty(),
            pad_event_to=0,
            pad_level=False,
        )
    return structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=shared_processors,
    )
