"""Single-shot completion cells and timer-driven polling on the event loop.

A ``Poller`` owns one ``RecurringTimer`` and one ``Completion``. Every tick
compares elapsed time against the deadline and either rejects the completion
or schedules an async check. The timer is cleared from the completion's
settle listener, so every exit path (resolve, reject, timeout) clears it
exactly once.
"""

import asyncio
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Generic, List, Optional, TypeVar

from .log import Logger, get_logger

T = TypeVar("T")

Clock = Callable[[], float]


class CompletionState(Enum):
    """State of a Completion cell."""

    PENDING = "pending"
    RESOLVED = "resolved"
    REJECTED = "rejected"


class Completion(Generic[T]):
    """Cell holding pending, resolved(value) or rejected(error).

    Exactly one transition out of PENDING is permitted; later calls to
    ``resolve`` or ``reject`` are ignored and return False.
    """

    def __init__(self) -> None:
        self._state = CompletionState.PENDING
        self._value: Optional[T] = None
        self._error: Optional[BaseException] = None
        self._listeners: List[Callable[["Completion[T]"], None]] = []
        self._settled = asyncio.Event()

    @property
    def state(self) -> CompletionState:
        return self._state

    @property
    def pending(self) -> bool:
        return self._state is CompletionState.PENDING

    @property
    def error(self) -> Optional[BaseException]:
        return self._error

    def resolve(self, value: T) -> bool:
        if not self.pending:
            return False
        self._value = value
        self._settle(CompletionState.RESOLVED)
        return True

    def reject(self, error: BaseException) -> bool:
        if not self.pending:
            return False
        self._error = error
        self._settle(CompletionState.REJECTED)
        return True

    def on_settle(self, listener: Callable[["Completion[T]"], None]) -> None:
        """Run ``listener`` once when the cell settles (immediately if it has)."""
        if self.pending:
            self._listeners.append(listener)
        else:
            listener(self)

    def result(self) -> T:
        """Value of a settled cell; raises the rejection error."""
        if self._state is CompletionState.PENDING:
            raise asyncio.InvalidStateError("Completion is still pending")
        if self._state is CompletionState.REJECTED:
            assert self._error is not None
            raise self._error
        return self._value  # type: ignore[return-value]

    async def wait(self) -> T:
        await self._settled.wait()
        return self.result()

    def _settle(self, state: CompletionState) -> None:
        self._state = state
        self._settled.set()
        listeners, self._listeners = self._listeners, []
        for listener in listeners:
            listener(self)


class RecurringTimer:
    """Calls ``callback`` every ``interval`` seconds until cancelled."""

    def __init__(
        self,
        interval: float,
        callback: Callable[[], None],
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        self._interval = interval
        self._callback = callback
        self._loop = loop
        self._handle: Optional[asyncio.TimerHandle] = None
        self._cancelled = False
        self.ticks = 0
        self.clear_count = 0

    @property
    def active(self) -> bool:
        return self._handle is not None and not self._cancelled

    def start(self) -> None:
        if self._handle is not None or self._cancelled:
            raise RuntimeError("Timer already started")
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        self._handle = self._loop.call_later(self._interval, self._fire)

    def cancel(self) -> bool:
        """Clear the timer. Returns False if it was already cleared."""
        if self._cancelled:
            return False
        self._cancelled = True
        self.clear_count += 1
        if self._handle is not None:
            self._handle.cancel()
        return True

    def _fire(self) -> None:
        if self._cancelled:
            return
        self.ticks += 1
        # Rescheduled before the callback so the callback may cancel it
        self._handle = self._loop.call_later(self._interval, self._fire)
        self._callback()


class Poller(Generic[T]):
    """Drives a check on a fixed interval until it settles or times out.

    ``check`` receives the completion and may resolve or reject it; returning
    without doing so keeps the poll going. An exception escaping ``check``
    rejects the completion.
    """

    def __init__(
        self,
        name: str,
        check: Callable[[Completion[T]], Awaitable[Any]],
        *,
        interval: float,
        timeout: float,
        timeout_error: Callable[[float], BaseException],
        clock: Optional[Clock] = None,
        logger: Optional[Logger] = None,
    ) -> None:
        self.name = name
        self._check = check
        self._interval = interval
        self._timeout = timeout
        self._timeout_error = timeout_error
        self._clock = clock or time.monotonic
        self._logger = logger or get_logger(__name__)
        self._inflight: Optional["asyncio.Task[Any]"] = None
        self.timer: Optional[RecurringTimer] = None
        self.checks = 0

    async def run(self) -> T:
        completion: Completion[T] = Completion()
        started = self._clock()
        self.timer = RecurringTimer(
            self._interval, lambda: self._tick(completion, started)
        )
        completion.on_settle(self._stop)
        self.timer.start()
        try:
            return await completion.wait()
        finally:
            # Caller went away (cancelled); nothing may keep polling
            if completion.pending:
                completion.reject(asyncio.CancelledError())

    def _tick(self, completion: Completion[T], started: float) -> None:
        elapsed = self._clock() - started
        if elapsed > self._timeout:
            self._logger.debug("%s exceeded its %.1fs timeout", self.name, self._timeout)
            completion.reject(self._timeout_error(elapsed))
            return

        if self._inflight is not None and not self._inflight.done():
            self._logger.debug("%s: previous check still running, skipping tick", self.name)
            return

        self.checks += 1
        self._inflight = asyncio.ensure_future(self._run_check(completion))

    async def _run_check(self, completion: Completion[T]) -> None:
        try:
            await self._check(completion)
        except asyncio.CancelledError:
            raise
        except Exception as e:  # pylint: disable=broad-except
            completion.reject(e)

    def _stop(self, completion: Completion[T]) -> None:
        assert self.timer is not None
        self.timer.cancel()
        inflight = self._inflight
        if inflight is not None and not inflight.done() and inflight is not _current_task():
            inflight.cancel()


def _current_task() -> Optional["asyncio.Task[Any]"]:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None
