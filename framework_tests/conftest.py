"""Test configuration and fixtures for framework unit tests."""

import json
import os
import shutil
import tempfile
from collections import deque
from pathlib import Path
from typing import Any, Callable, Dict, Generator, List, Optional, Tuple

import pytest

from pages_e2e.core.enums import Environment, Trigger
from pages_e2e.core.errors import RemoteCallError
from pages_e2e.core.log import reset_logging
from pages_e2e.core.types import PagesE2EConfig, ProjectCredentials, TimeoutConfig
from pages_e2e.remote.http import HttpResponse


def _make_response(
    status: int = 200,
    body: Any = None,
    headers: Optional[Dict[str, str]] = None,
    reason: str = "",
) -> HttpResponse:
    """Build an HttpResponse; dict/list bodies are JSON encoded."""
    text = body if isinstance(body, str) else json.dumps(body if body is not None else {})
    return HttpResponse(
        status=status, reason=reason or _REASONS.get(status, ""), text=text, headers=headers or {}
    )


_REASONS = {200: "OK", 201: "Created", 404: "Not Found", 409: "Conflict", 500: "Internal Server Error"}


class FakeHttp:
    """In-memory stand-in for HttpClient.

    Answers from ``handler(method, url, headers, json_body)`` when given,
    otherwise pops queued responses. Exceptions are raised, not returned.
    """

    def __init__(self, handler: Optional[Callable[..., Any]] = None) -> None:
        self.handler = handler
        self.queue: deque = deque()
        self.requests: List[Tuple[str, str, Dict[str, str], Any]] = []

    def queue_responses(self, *responses: Any) -> None:
        self.queue.extend(responses)

    async def request(
        self,
        method: str,
        url: str,
        *,
        headers: Optional[Dict[str, str]] = None,
        json_body: Any = None,
    ) -> HttpResponse:
        self.requests.append((method, url, dict(headers or {}), json_body))
        if self.handler is not None:
            result = self.handler(method, url, headers or {}, json_body)
        else:
            if not self.queue:
                raise RemoteCallError(f"{method} {url}: no response queued")
            result = self.queue.popleft()
        if isinstance(result, BaseException):
            raise result
        return result

    async def close(self) -> None:
        pass


class SteppingClock:
    """Monotonic clock that advances by ``step`` on every read."""

    def __init__(self, step: float) -> None:
        self.step = step
        self.now = 0.0

    def __call__(self) -> float:
        value = self.now
        self.now += self.step
        return value


def _fast_timeouts(**overrides: Any) -> TimeoutConfig:
    """Real semantics, tiny intervals."""
    values: Dict[str, Any] = {
        "mutex_check_interval": 0.001,
        "deployment_check_interval": 0.001,
        "provisioning_check_interval": 0.001,
    }
    values.update(overrides)
    return TimeoutConfig(**values)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory for tests."""
    temp_path = Path(tempfile.mkdtemp(prefix="pages_e2e_test_"))
    try:
        yield temp_path
    finally:
        if temp_path.exists():
            shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def credentials() -> ProjectCredentials:
    return ProjectCredentials(
        account_id="acct",
        project_name="e2e-project",
        api_token="token",
        git_repo="git@github.com:example/e2e.git",
    )


@pytest.fixture
def test_config(temp_dir: Path, credentials: ProjectCredentials) -> PagesE2EConfig:
    """Configuration pointing every path into a temporary directory."""
    return PagesE2EConfig(
        environment=Environment.PRODUCTION,
        trigger=Trigger.GITHUB,
        projects={Environment.PRODUCTION: {Trigger.GITHUB: credentials}},
        timeouts=_fast_timeouts(),
        fixtures_path=temp_dir / "fixtures",
        features_path=temp_dir / "features",
        global_tests_path=temp_dir / "__tests__",
        workspaces_path=temp_dir / "workspaces",
        results_path=temp_dir / "results",
        log_level="WARNING",
    )


@pytest.fixture
def fake_http() -> FakeHttp:
    return FakeHttp()


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep PAGES_E2E_* and token variables of the host out of tests."""
    for key in list(os.environ):
        if key.startswith("PAGES_E2E_") or key == "CLOUDFLARE_API_TOKEN":
            monkeypatch.delenv(key)


@pytest.fixture(autouse=True)
def cleanup_logging() -> Generator[None, None, None]:
    """Reset the logging system after each test."""
    yield
    reset_logging()


@pytest.fixture
def make_response() -> Callable[..., HttpResponse]:
    """Factory for HttpResponse objects."""
    return _make_response


@pytest.fixture
def fast_timeouts() -> Callable[..., TimeoutConfig]:
    """Factory for TimeoutConfig with tiny polling intervals."""
    return _fast_timeouts


@pytest.fixture
def stepping_clock() -> Callable[[float], SteppingClock]:
    """Factory for clocks advancing a fixed step per read."""
    return SteppingClock
