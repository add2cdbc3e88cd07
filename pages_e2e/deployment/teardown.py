"""Registry of cleanup actions for remote side effects of a run."""

import asyncio
import inspect
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional, Union

from ..core.errors import TeardownError
from ..core.log import Logger, get_logger, log_event

TeardownAction = Callable[[], Union[None, Awaitable[Any]]]


@dataclass
class TeardownEntry:
    """A named cleanup action; ``done`` is set once it has been started."""

    name: str
    action: TeardownAction
    done: bool = False


@dataclass
class TeardownOutcome:
    name: str
    error: Optional[TeardownError] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass
class TeardownReport:
    """Result of one ``TeardownService.teardown()`` call."""

    outcomes: List[TeardownOutcome] = field(default_factory=list)

    @property
    def failures(self) -> List[TeardownError]:
        return [o.error for o in self.outcomes if o.error is not None]

    @property
    def ok(self) -> bool:
        return not self.failures


class TeardownService:
    """Append-only registry of cleanup actions.

    Actions may be plain callables or coroutine functions. ``teardown()``
    runs every pending entry concurrently, catches each failure on its own
    and reports it; it never raises. An entry runs at most once no matter
    how often ``teardown()`` is called.
    """

    def __init__(self, logger: Optional[Logger] = None) -> None:
        self._logger = logger or get_logger(__name__)
        self._entries: List[TeardownEntry] = []

    @property
    def entries(self) -> List[TeardownEntry]:
        return list(self._entries)

    @property
    def pending(self) -> List[TeardownEntry]:
        return [entry for entry in self._entries if not entry.done]

    def register(self, name: str, action: TeardownAction) -> TeardownEntry:
        entry = TeardownEntry(name=name, action=action)
        self._entries.append(entry)
        self._logger.debug("Registered teardown: %s", name)
        return entry

    async def teardown(self) -> TeardownReport:
        pending = self.pending
        for entry in pending:
            entry.done = True
        if pending:
            log_event(self._logger, "teardown", f"Tearing down {len(pending)} resource(s)...")
        outcomes = await asyncio.gather(*(self._run(entry) for entry in pending))
        report = TeardownReport(outcomes=list(outcomes))
        if pending:
            log_event(
                self._logger,
                "teardown",
                f"Teardown finished: {len(pending) - len(report.failures)} ok, "
                f"{len(report.failures)} failed.",
            )
        return report

    async def _run(self, entry: TeardownEntry) -> TeardownOutcome:
        try:
            result = entry.action()
            if inspect.isawaitable(result):
                await result
        except Exception as e:  # pylint: disable=broad-except
            error = TeardownError(entry.name, e)
            self._logger.warning("%s", error)
            return TeardownOutcome(name=entry.name, error=error)
        self._logger.debug("Teardown succeeded: %s", entry.name)
        return TeardownOutcome(name=entry.name)
