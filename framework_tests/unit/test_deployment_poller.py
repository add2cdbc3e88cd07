"""Tests for deployment completion polling."""

import asyncio
from typing import Any, List, Union
from unittest.mock import Mock

import pytest

from pages_e2e.core.errors import (
    DeploymentCheckError,
    DeploymentFailedError,
    DeploymentTimeoutError,
    RemoteCallError,
)
from pages_e2e.core.types import Deployment
from pages_e2e.deployment.poller import DeploymentPoller

Step = Union[Deployment, RemoteCallError]


def _deployment(stage: str, status: str) -> Deployment:
    return Deployment(id="dep-1", url="https://dep-1.pages.dev", stage=stage, status=status)


class ScriptedApi:
    """Answers get_deployment from a script; repeats the last step forever."""

    def __init__(self, steps: List[Step]) -> None:
        self.steps = list(steps)
        self.calls = 0
        self.dashboard_url = Mock(return_value="https://dash/acct/pages/view/p/dep-1")

    async def get_deployment(self, deployment_id: str) -> Deployment:
        step = self.steps[min(self.calls, len(self.steps) - 1)]
        self.calls += 1
        if isinstance(step, Exception):
            raise step
        return step


def _error() -> RemoteCallError:
    return RemoteCallError("Could not parse Deployment API response.", 500, "Internal Server Error", "")


class TestDeploymentPoller:
    """Test terminal states, timeout and failure counting."""

    def test_success_after_three_ticks(self, fast_timeouts: Any) -> None:
        api = ScriptedApi([
            _deployment("queued", "active"),
            _deployment("build", "active"),
            _deployment("deploy", "success"),
        ])
        poller = DeploymentPoller(api, fast_timeouts())

        url = asyncio.run(poller.await_completion("dep-1"))

        assert url == "https://dep-1.pages.dev"
        assert api.calls == 3
        assert poller.last_poller.timer.clear_count == 1

    def test_build_success_is_not_terminal(self, fast_timeouts: Any) -> None:
        api = ScriptedApi([_deployment("build", "success"), _deployment("deploy", "success")])
        poller = DeploymentPoller(api, fast_timeouts())

        asyncio.run(poller.await_completion("dep-1"))

        assert api.calls == 2

    @pytest.mark.parametrize("status", ["failure", "canceled", "something-new"])
    def test_failed_status_rejects(self, fast_timeouts: Any, status: str) -> None:
        api = ScriptedApi([_deployment("build", "active"), _deployment("build", status)])
        poller = DeploymentPoller(api, fast_timeouts())

        with pytest.raises(DeploymentFailedError) as exc_info:
            asyncio.run(poller.await_completion("dep-1"))

        error = exc_info.value
        assert (error.deployment_id, error.stage, error.status) == ("dep-1", "build", status)
        assert error.dashboard_url == "https://dash/acct/pages/view/p/dep-1"
        assert api.calls == 2
        assert poller.last_poller.timer.clear_count == 1

    def test_timeout_stops_fetching(self, fast_timeouts: Any, stepping_clock: Any) -> None:
        api = ScriptedApi([_deployment("build", "active")])
        # Each tick advances the clock by 1s; ticks 1-3 fetch, tick 4 times out
        poller = DeploymentPoller(api, fast_timeouts(deployment_timeout=3), clock=stepping_clock(1.0))

        async def scenario() -> None:
            with pytest.raises(DeploymentTimeoutError):
                await poller.await_completion("dep-1")
            calls = api.calls
            await asyncio.sleep(0.02)
            assert api.calls == calls

        asyncio.run(scenario())
        assert api.calls == 3
        assert poller.last_poller.timer.clear_count == 1

    def test_explicit_timeout_overrides_config(self, fast_timeouts: Any, stepping_clock: Any) -> None:
        api = ScriptedApi([_deployment("build", "active")])
        poller = DeploymentPoller(api, fast_timeouts(), clock=stepping_clock(1.0))

        with pytest.raises(DeploymentTimeoutError) as exc_info:
            asyncio.run(poller.await_completion("dep-1", timeout=1))

        assert exc_info.value.timeout == 1
        assert api.calls == 1

    def test_failures_up_to_threshold_are_tolerated(self, fast_timeouts: Any) -> None:
        api = ScriptedApi([_error()] * 5 + [_deployment("deploy", "success")])
        poller = DeploymentPoller(api, fast_timeouts())

        assert asyncio.run(poller.await_completion("dep-1")) == "https://dep-1.pages.dev"
        assert poller.failures == 5

    def test_failure_past_threshold_rejects(self, fast_timeouts: Any) -> None:
        api = ScriptedApi([_error()] * 6 + [_deployment("deploy", "success")])
        poller = DeploymentPoller(api, fast_timeouts())

        with pytest.raises(DeploymentCheckError) as exc_info:
            asyncio.run(poller.await_completion("dep-1"))

        assert exc_info.value.failures == 6
        assert exc_info.value.threshold == 5
        assert exc_info.value.status == 500
        assert api.calls == 6

    def test_failure_counter_never_resets(self, fast_timeouts: Any) -> None:
        active = _deployment("build", "active")
        api = ScriptedApi([
            _error(), _error(), _error(), active,
            _error(), _error(), active,
            _error(),
            _deployment("deploy", "success"),
        ])
        poller = DeploymentPoller(api, fast_timeouts())

        with pytest.raises(DeploymentCheckError) as exc_info:
            asyncio.run(poller.await_completion("dep-1"))

        assert exc_info.value.failures == 6
        assert api.calls == 8
