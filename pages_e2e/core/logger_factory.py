"""Logger factory for creating isolated logging environments."""

import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .log_formatters import StructuredFormatter, PagesRichHandler, LogContext


class IsolatedLogManager:
    """Non-singleton log manager for isolated logging environments."""

    def __init__(self, namespace: str = "") -> None:
        """Initialize isolated log manager.

        Args:
            namespace: Namespace prefix for logger names to ensure isolation
        """
        self._namespace = namespace
        self._configured = False
        self._json_handler: Optional[logging.Handler] = None
        self._console_handler: Optional[logging.Handler] = None
        self._extra_handlers: List[logging.Handler] = []
        self._loggers: Dict[str, logging.Logger] = {}
        self._context = LogContext(f"pages_e2e_log_context_{namespace or 'root'}")
        self._lock = threading.RLock()

    def configure(self,
                  level: Union[int, str] = logging.INFO,
                  log_file: Optional[Path] = None,
                  enable_json: bool = True,
                  enable_console: bool = True,
                  console_level: Optional[Union[int, str]] = None) -> None:
        """Configure this logging instance."""
        with self._lock:
            if self._configured:
                self._clear_configuration()

            if enable_json and log_file:
                log_path = Path(log_file)
                log_path.parent.mkdir(parents=True, exist_ok=True)
                self._json_handler = logging.FileHandler(log_path)
                self._json_handler.setFormatter(
                    StructuredFormatter(
                        include_context=True, context_getter=self._context.get_context
                    )
                )
                self._json_handler.setLevel(level)

            if enable_console:
                self._console_handler = PagesRichHandler(
                    show_time=True,
                    show_path=False,
                    markup=False,
                )
                self._console_handler.setLevel(console_level or level)

            for logger in self._loggers.values():
                self._attach_handlers(logger)

            self._configured = True

    def add_handler(self, handler: logging.Handler) -> None:
        """Attach an extra handler to current and future loggers."""
        with self._lock:
            self._extra_handlers.append(handler)
            for logger in self._loggers.values():
                logger.addHandler(handler)

    def create_logger(self, name: str) -> logging.Logger:
        """Create a logger instance with namespace isolation."""
        with self._lock:
            full_name = f"{self._namespace}.{name}" if self._namespace else name

            if full_name in self._loggers:
                return self._loggers[full_name]

            logger = logging.getLogger(full_name)

            # Keep records away from the root logger
            logger.propagate = False
            logger.setLevel(logging.DEBUG)
            self._attach_handlers(logger)

            self._loggers[full_name] = logger
            return logger

    def _attach_handlers(self, logger: logging.Logger) -> None:
        for handler in (self._json_handler, self._console_handler, *self._extra_handlers):
            if handler is not None and handler not in logger.handlers:
                logger.addHandler(handler)

    def get_context(self) -> Dict[str, Any]:
        """Get current logging context for this instance."""
        return self._context.get_context()

    @contextmanager
    def context(self, **kwargs: Any):
        """Context manager for temporary context variables."""
        with self._context.context(**kwargs):
            yield

    def shutdown(self) -> None:
        """Shutdown this logging instance."""
        with self._lock:
            self._clear_configuration()
            self._loggers.clear()
            self._context.clear_context()

    def _clear_configuration(self) -> None:
        """Clear current configuration and handlers."""
        for logger in self._loggers.values():
            for handler in logger.handlers[:]:
                logger.removeHandler(handler)

        for handler in (self._json_handler, self._console_handler, *self._extra_handlers):
            if handler is not None:
                try:
                    handler.close()
                except (OSError, RuntimeError):
                    pass  # Ignore handler close errors

        self._json_handler = None
        self._console_handler = None
        self._extra_handlers = []
        self._configured = False
