"""Shared logging formatters and context management."""

import json
import logging
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.text import Text
from rich.theme import Theme


class LogContext:
    """Task-local logging context for structured metadata.

    Backed by a ContextVar so concurrent fixture pipelines on the same event
    loop each see their own context.
    """

    def __init__(self, name: str = "pages_e2e_log_context") -> None:
        self._var: ContextVar[Dict[str, Any]] = ContextVar(name, default={})

    def get_context(self) -> Dict[str, Any]:
        """Get current task context."""
        return dict(self._var.get())

    def clear_context(self) -> None:
        """Clear context for the current task."""
        self._var.set({})

    @contextmanager
    def context(self, **kwargs: Any):
        """Context manager for temporary context variables."""
        token = self._var.set({**self._var.get(), **kwargs})
        try:
            yield
        finally:
            self._var.reset(token)


_RESERVED_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "message",
        "taskName",
    }
)


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def __init__(
        self,
        include_context: bool = True,
        context_getter: Optional[Callable[[], Dict[str, Any]]] = None,
    ) -> None:
        super().__init__()
        self.include_context = include_context
        self._context_getter = context_getter

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info),
            }

        extra_fields = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_ATTRS
        }
        if extra_fields:
            log_entry["fields"] = extra_fields

        if self.include_context and self._context_getter is not None:
            context = self._context_getter()
            if context:
                log_entry["context"] = context

        return json.dumps(log_entry, default=str)


class PagesRichHandler(RichHandler):
    """Rich console handler with event-aware styling."""

    def __init__(self, *args, **kwargs):
        theme = Theme(
            {
                "logging.level.debug": "dim cyan",
                "logging.level.info": "dim blue",
                "logging.level.warning": "yellow",
                "logging.level.error": "red",
                "logging.level.critical": "bold red",
                "pages.event": "bright_green",
                "pages.mutex": "bright_blue",
                "pages.deployment": "bright_cyan",
                "pages.teardown": "bright_magenta",
            }
        )

        console = Console(theme=theme, stderr=True)
        super().__init__(*args, console=console, **kwargs)

    def render_message(self, record: logging.LogRecord, message: str) -> Text:
        """Render message with styling based on its event type."""
        text = Text(message)

        event_type = getattr(record, "event_type", None)
        if event_type:
            style_map = {
                "mutex": "pages.mutex",
                "deployment": "pages.deployment",
                "teardown": "pages.teardown",
                "event": "pages.event",
            }
            if event_type in style_map:
                text.stylize(style_map[event_type])

        return text
