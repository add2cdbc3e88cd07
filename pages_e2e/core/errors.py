"""Error hierarchy for the pages-e2e framework.

Errors carry structured fields; formatting into human readable text happens
in ``__str__`` so callers can log them directly or inspect the fields.
"""

from typing import Optional, Dict, Any


class PagesE2EError(Exception):
    """Base exception for all pages-e2e framework errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


# Configuration and Setup Errors
class ConfigurationError(PagesE2EError):
    """Error in framework configuration."""


class FixtureError(PagesE2EError):
    """Fixture discovery, parsing or setup failed."""


class GitCommandError(PagesE2EError):
    """A git command exited with a non-zero status."""

    def __init__(self, command: str, returncode: int, stderr: str = "",
                 details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(f"`{command}` exited with status {returncode}", details)
        self.command = command
        self.returncode = returncode
        self.stderr = stderr

    def __str__(self) -> str:
        if self.stderr:
            return f"{self.message}\n{self.stderr.strip()}"
        return self.message


# Remote Call Errors
class RemoteCallError(PagesE2EError):
    """A remote call failed or returned something we could not use.

    ``status`` and ``reason`` are ``None`` when no response was received.
    """

    def __init__(self, message: Optional[str] = None, status: Optional[int] = None,
                 reason: Optional[str] = None, body: str = "",
                 details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message or "", details)
        self.status = status
        self.reason = reason
        self.body = body

    @classmethod
    def from_response(cls, response: Any, message: Optional[str] = None,
                      **kwargs: Any) -> "RemoteCallError":
        """Build an error from an ``HttpResponse`` (or ``None``)."""
        if response is None:
            return cls(message, **kwargs)
        return cls(message, status=response.status, reason=response.reason,
                   body=response.text, **kwargs)

    def __str__(self) -> str:
        if self.status is None and not self.body:
            return self.message
        prefix = f"{self.message}\n\n" if self.message else ""
        status = "" if self.status is None else str(self.status)
        reason = self.reason or ""
        return f"{prefix}{status} {reason}\n{self.body}"


class MutexReleaseError(RemoteCallError):
    """The lock service refused to release a mutex."""


class DeploymentCheckError(RemoteCallError):
    """Too many failed deployment status checks."""

    def __init__(self, message: Optional[str] = None, status: Optional[int] = None,
                 reason: Optional[str] = None, body: str = "",
                 failures: int = 0, threshold: int = 0,
                 details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, status, reason, body, details)
        self.failures = failures
        self.threshold = threshold


# Timeout Errors
class OperationTimeoutError(PagesE2EError):
    """A polled operation did not converge before its deadline."""

    operation = "Operation"

    def __init__(self, timeout: float, elapsed: Optional[float] = None,
                 message: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            message or f"{self.operation} did not complete within the timeout of {timeout:g}s.",
            details,
        )
        self.timeout = timeout
        self.elapsed = elapsed


class MutexTimeoutError(OperationTimeoutError):
    """Mutex could not be acquired in time."""

    operation = "Mutex acquisition"


class DeploymentTimeoutError(OperationTimeoutError):
    """Deployment did not reach a terminal stage in time."""

    operation = "Deployment"


class ProvisioningTimeoutError(OperationTimeoutError):
    """Deployment was not served at the edge in time."""

    operation = "Edge provisioning"


# Deployment Errors
class DeploymentFailedError(PagesE2EError):
    """Deployment reached a non-success terminal status."""

    def __init__(self, deployment_id: str, stage: str, status: str,
                 dashboard_url: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(f"Deployment {deployment_id} has failed.", details)
        self.deployment_id = deployment_id
        self.stage = stage
        self.status = status
        self.dashboard_url = dashboard_url

    def __str__(self) -> str:
        text = f"{self.message}\n\nStage: {self.stage}\nStatus: {self.status}"
        if self.dashboard_url:
            text += f"\n\n{self.dashboard_url}"
        return text


class ConfigurationDriftError(PagesE2EError):
    """Project configuration does not match what was written."""

    def __init__(self, kind: str, expected: Any, actual: Any,
                 details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(f"{kind} not set correctly.", details)
        self.kind = kind
        self.expected = expected
        self.actual = actual

    def __str__(self) -> str:
        return f"{self.message}\nExpected: {self.expected!r}\nActual: {self.actual!r}"


# Teardown Errors
class TeardownError(PagesE2EError):
    """A teardown action failed. Reported, never raised by the service."""

    def __init__(self, name: str, cause: BaseException,
                 details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(f"Failed to teardown {name}: {cause}", details)
        self.name = name
        self.cause = cause
