"""Tests for the teardown registry."""

import asyncio
from typing import List
from unittest.mock import AsyncMock, Mock

from pages_e2e.core.errors import TeardownError
from pages_e2e.deployment.teardown import TeardownService


class TestTeardownService:
    """Test registration, isolation of failures and run-once semantics."""

    def setup_method(self) -> None:
        self.mock_logger = Mock()
        self.service = TeardownService(logger=self.mock_logger)

    def test_register_keeps_order(self) -> None:
        self.service.register("first", Mock())
        self.service.register("second", Mock())

        assert [entry.name for entry in self.service.entries] == ["first", "second"]
        assert len(self.service.pending) == 2

    def test_failure_does_not_stop_others(self) -> None:
        first = Mock()
        second = AsyncMock(side_effect=RuntimeError("branch already gone"))
        third = AsyncMock()
        self.service.register("Delete Git branch", first)
        self.service.register("Delete Deploy Hook", second)
        self.service.register("Release", third)

        report = asyncio.run(self.service.teardown())

        first.assert_called_once()
        second.assert_awaited_once()
        third.assert_awaited_once()
        assert len(report.failures) == 1
        failure = report.failures[0]
        assert isinstance(failure, TeardownError)
        assert failure.name == "Delete Deploy Hook"
        assert "branch already gone" in str(failure)
        assert not report.ok
        self.mock_logger.warning.assert_called_once()

    def test_entries_run_once(self) -> None:
        action = AsyncMock()
        self.service.register("once", action)

        asyncio.run(self.service.teardown())
        second = asyncio.run(self.service.teardown())

        action.assert_awaited_once()
        assert second.outcomes == []
        assert self.service.pending == []

    def test_late_registration_runs_on_next_teardown(self) -> None:
        calls: List[str] = []
        self.service.register("early", lambda: calls.append("early"))
        asyncio.run(self.service.teardown())

        self.service.register("late", lambda: calls.append("late"))
        report = asyncio.run(self.service.teardown())

        assert calls == ["early", "late"]
        assert [o.name for o in report.outcomes] == ["late"]
        assert report.ok

    def test_actions_run_concurrently(self) -> None:
        running: List[int] = []
        peak: List[int] = []

        async def action() -> None:
            running.append(1)
            peak.append(len(running))
            await asyncio.sleep(0.01)
            running.pop()

        for index in range(3):
            self.service.register(f"action {index}", action)

        asyncio.run(self.service.teardown())

        assert max(peak) == 3
