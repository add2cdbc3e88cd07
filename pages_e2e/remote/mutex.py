"""Distributed mutex backed by a remote lock service.

Protocol:
    POST   {service}/api/{key}                    201 created | 409 locked
    POST   {service}/api/{key}  If-Match: <ETag>  forced acquisition of a stale lock
    DELETE {service}/api/{key}  If-Match: <ETag>  release
Both 201 and 409 carry ``{"id": ..., "timestamp": ...}`` and an ETag header.
"""

from datetime import datetime, timezone
from typing import Callable, Optional
from urllib.parse import quote

from pydantic import BaseModel, ValidationError

from ..core.errors import MutexReleaseError, MutexTimeoutError, RemoteCallError
from ..core.log import Logger, get_logger, log_event
from ..core.polling import Completion, Poller
from ..core.types import HostConfig, ProjectCredentials, TimeoutConfig
from .http import HttpClient, HttpResponse


class Mutex(BaseModel):
    """A lock held (or observed) on the lock service."""

    key: str
    lock_token: str
    holder_id: str
    acquired_at: datetime

    def age(self, now: datetime) -> float:
        """Seconds since the lock service recorded this lock."""
        return (now - self.acquired_at).total_seconds()


class _LockBody(BaseModel):
    id: str
    timestamp: datetime


def mutex_key(host: HostConfig, credentials: ProjectCredentials) -> str:
    """Lock key guarding one remote Pages project."""
    return quote(f"{host.api}:{credentials.account_id}:{credentials.project_name}", safe="")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MutexClient:
    """Acquires and releases named locks on the lock service."""

    def __init__(
        self,
        http: HttpClient,
        service_url: str,
        timeouts: Optional[TimeoutConfig] = None,
        logger: Optional[Logger] = None,
        now: Callable[[], datetime] = _utcnow,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self._http = http
        self._service_url = service_url.rstrip("/")
        self._timeouts = timeouts or TimeoutConfig()
        self._logger = logger or get_logger(__name__)
        self._now = now
        self._clock = clock

    def _url(self, key: str) -> str:
        return f"{self._service_url}/api/{key}"

    async def acquire(self, key: str) -> Mutex:
        """Poll until the lock for ``key`` is ours.

        Raises:
            MutexTimeoutError: If the lock was not obtained in time
        """
        poller: Poller[Mutex] = Poller(
            f"Mutex {key}",
            lambda completion: self._attempt(key, completion),
            interval=self._timeouts.mutex_check_interval,
            timeout=self._timeouts.mutex_timeout,
            timeout_error=lambda elapsed: MutexTimeoutError(
                self._timeouts.mutex_timeout, elapsed, details={"key": key}
            ),
            clock=self._clock,
            logger=self._logger,
        )
        mutex = await poller.run()
        log_event(self._logger, "mutex", f"Acquired Mutex `{key}`.", lock_token=mutex.lock_token)
        return mutex

    async def _attempt(self, key: str, completion: Completion[Mutex]) -> None:
        self._logger.debug("Attempting to acquire Mutex `%s`...", key)
        try:
            response = await self._http.request("POST", self._url(key))
        except RemoteCallError as e:
            self._logger.warning("%s", e)
            return

        try:
            if response.status == 201:
                completion.resolve(self._parse(key, response))
            elif response.status == 409:
                await self._contend(key, response, completion)
            else:
                self._logger.warning("%s", RemoteCallError.from_response(response))
        except RemoteCallError as e:
            self._logger.warning("%s", e)

    async def _contend(
        self, key: str, response: HttpResponse, completion: Completion[Mutex]
    ) -> None:
        current = self._parse(key, response)
        self._logger.debug("Mutex already locked by %s.", current.holder_id)
        if current.age(self._now()) >= self._timeouts.mutex_stale_after:
            self._logger.info("Mutex considered stale. Attempting to forcibly acquire...")
            forced = await self._force(key, current)
            if forced is not None:
                completion.resolve(forced)

    async def _force(self, key: str, stale: Mutex) -> Optional[Mutex]:
        try:
            response = await self._http.request(
                "POST", self._url(key), headers={"If-Match": stale.lock_token}
            )
        except RemoteCallError as e:
            self._logger.warning("%s", e)
            return None
        if not response.ok:
            self._logger.debug("Forced acquisition refused: %s", response.status)
            return None
        return self._parse(key, response)

    def _parse(self, key: str, response: HttpResponse) -> Mutex:
        etag = response.header("ETag")
        try:
            body = _LockBody.model_validate_json(response.text)
        except ValidationError as e:
            raise RemoteCallError.from_response(
                response, f"Could not parse lock service response: {e}"
            ) from e
        if not etag:
            raise RemoteCallError.from_response(response, "Lock service response has no ETag.")
        acquired_at = body.timestamp
        if acquired_at.tzinfo is None:
            acquired_at = acquired_at.replace(tzinfo=timezone.utc)
        return Mutex(key=key, lock_token=etag, holder_id=body.id, acquired_at=acquired_at)

    async def release(self, mutex: Mutex) -> None:
        """Release a held lock.

        Raises:
            MutexReleaseError: If the lock service rejected the release
        """
        try:
            response = await self._http.request(
                "DELETE", self._url(mutex.key), headers={"If-Match": mutex.lock_token}
            )
        except RemoteCallError as e:
            raise MutexReleaseError(f"Could not release Mutex. {e.message}") from e
        if not response.ok:
            raise MutexReleaseError.from_response(response, "Could not release Mutex.")
        log_event(self._logger, "mutex", f"Released Mutex `{mutex.key}`.")
