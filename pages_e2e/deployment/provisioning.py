"""Waits until the edge serves a deployment instead of the placeholder page."""

from typing import Optional

from ..core.errors import ProvisioningTimeoutError, RemoteCallError
from ..core.log import Logger, get_logger, log_event
from ..core.polling import Clock, Completion, Poller
from ..core.types import TimeoutConfig
from ..remote.http import HttpClient

PLACEHOLDER_MARKERS = ("Nothing is here yet", "Cloudflare Pages")


def is_placeholder(body: str) -> bool:
    """True when ``body`` is the "not yet provisioned" page."""
    return all(marker in body for marker in PLACEHOLDER_MARKERS)


class ProvisioningPoller:
    """Polls a deployment URL until the placeholder page is gone.

    A fetch error counts as provisioned: the placeholder is the only signal
    of an unprovisioned deployment.
    """

    def __init__(
        self,
        http: HttpClient,
        timeouts: Optional[TimeoutConfig] = None,
        logger: Optional[Logger] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._http = http
        self._timeouts = timeouts or TimeoutConfig()
        self._logger = logger or get_logger(__name__)
        self._clock = clock
        self.last_poller: Optional[Poller[None]] = None

    async def await_provisioned(self, url: str, timeout: Optional[float] = None) -> None:
        timeout = self._timeouts.provisioning_timeout if timeout is None else timeout
        poller: Poller[None] = Poller(
            f"Provisioning {url}",
            lambda completion: self._check(url, completion),
            interval=self._timeouts.provisioning_check_interval,
            timeout=timeout,
            timeout_error=lambda elapsed: ProvisioningTimeoutError(
                timeout, elapsed, details={"url": url}
            ),
            clock=self._clock,
            logger=self._logger,
        )
        self.last_poller = poller
        await poller.run()
        log_event(self._logger, "deployment", f"{url} is provisioned.")

    async def _check(self, url: str, completion: Completion[None]) -> None:
        try:
            response = await self._http.request("GET", url)
        except RemoteCallError as e:
            self._logger.debug("Fetching %s failed, treating as provisioned: %s", url, e.message)
            completion.resolve(None)
            return
        if is_placeholder(response.text):
            self._logger.debug("%s is not provisioned yet.", url)
            return
        completion.resolve(None)
