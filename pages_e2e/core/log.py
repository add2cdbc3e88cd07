"""Structured logging system with JSON output and rich terminal formatting."""

import logging
from pathlib import Path
from typing import Any, Dict, MutableMapping, Optional, Protocol, Tuple, Union

from .log_formatters import StructuredFormatter
from .logger_factory import IsolatedLogManager


class Logger(Protocol):
    """Protocol for logger instances to enable dependency injection."""

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log debug message."""

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log info message."""

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log warning message."""

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log error message."""

    def exception(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log exception with traceback."""


class LogManager:
    """Central logging configuration and management."""

    def __init__(self) -> None:
        self._manager = IsolatedLogManager("pages_e2e")
        self._configured = False

    def configure(
        self,
        level: Union[int, str] = logging.INFO,
        log_file: Optional[Path] = None,
        enable_json: bool = True,
        enable_console: bool = True,
        console_level: Optional[Union[int, str]] = None,
    ) -> None:
        """Configure logging system. Later calls are ignored until reset."""
        if self._configured:
            return

        self._manager.configure(
            level=level,
            log_file=log_file,
            enable_json=enable_json,
            enable_console=enable_console,
            console_level=console_level,
        )
        self._configured = True

    def add_file_logging(
        self, log_file: Path, level: Union[int, str] = logging.DEBUG
    ) -> None:
        """Add a JSON file handler to an already configured system."""
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(
            StructuredFormatter(
                include_context=True, context_getter=self._manager.get_context
            )
        )
        file_handler.setLevel(level)
        self._manager.add_handler(file_handler)

    def get_logger(self, name: str) -> logging.Logger:
        """Get a logger instance."""
        return self._manager.create_logger(name)

    def get_context(self) -> Dict[str, Any]:
        return self._manager.get_context()

    def context(self, **kwargs: Any) -> Any:
        return self._manager.context(**kwargs)

    def reset_configuration(self) -> None:
        """Reset configuration to allow reconfiguration (test isolation)."""
        self._manager.shutdown()
        self._manager = IsolatedLogManager("pages_e2e")
        self._configured = False


# Global log manager instance
_log_manager = LogManager()


def configure_logging(**kwargs: Any) -> None:
    """Configure the global logging system."""
    _log_manager.configure(**kwargs)


def add_file_logging(log_file: Path, level: Union[int, str] = logging.DEBUG) -> None:
    """Add detailed JSON file logging without touching console logging."""
    _log_manager.add_file_logging(log_file, level)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance."""
    return _log_manager.get_logger(name)


def reset_logging() -> None:
    """Reset logging configuration to allow reconfiguration."""
    _log_manager.reset_configuration()


class FixtureLoggerAdapter(logging.LoggerAdapter):
    """Prefixes every message with the fixture it belongs to."""

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> Tuple[Any, MutableMapping[str, Any]]:
        extra = dict(self.extra or {})
        extra.update(kwargs.get("extra") or {})
        kwargs["extra"] = extra
        return f"[{extra['fixture']}] {msg}", kwargs


def fixture_logger(logger: logging.Logger, fixture: str) -> FixtureLoggerAdapter:
    """Wrap a logger so its records are labelled with ``fixture``."""
    return FixtureLoggerAdapter(logger, {"fixture": fixture})


def log_event(logger: Logger, event_type: str, message: str, **kwargs: Any) -> None:
    """Log a structured event with context."""
    logger.info(message, extra={"event_type": event_type, **kwargs})


def log_deployment_event(
    logger: Logger, event: str, deployment_id: Optional[str] = None, **kwargs: Any
) -> None:
    """Log a deployment-related event."""
    extra: Dict[str, Any] = {"event_type": "deployment", "deployment_event": event}
    if deployment_id is not None:
        extra["deployment_id"] = deployment_id
    extra.update(kwargs)
    logger.info("Deployment %s %s", deployment_id, event, extra=extra)


# Context management shortcuts
def get_log_context() -> Dict[str, Any]:
    """Get current logging context."""
    return _log_manager.get_context()


def log_context(**kwargs: Any) -> Any:
    """Context manager for temporary logging context."""
    return _log_manager.context(**kwargs)
