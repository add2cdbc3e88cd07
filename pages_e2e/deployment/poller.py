"""Polls the control plane until a deployment reaches a terminal stage."""

from typing import Optional

from ..core.enums import StageStatus
from ..core.errors import (
    DeploymentCheckError,
    DeploymentFailedError,
    DeploymentTimeoutError,
    RemoteCallError,
)
from ..core.log import Logger, get_logger, log_deployment_event
from ..core.polling import Clock, Completion, Poller
from ..core.types import TimeoutConfig
from ..remote.pages_api import PagesApiClient

# Statuses a deployment can report while still on its way to success
_IN_PROGRESS = frozenset(
    s.value for s in (StageStatus.IDLE, StageStatus.ACTIVE, StageStatus.SUCCESS)
)


class DeploymentPoller:
    """Waits for a deployment to succeed, fail or time out.

    Failed status checks are counted over the whole poll and never reset;
    once the count exceeds the threshold the poll is abandoned.
    """

    def __init__(
        self,
        api: PagesApiClient,
        timeouts: Optional[TimeoutConfig] = None,
        logger: Optional[Logger] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._api = api
        self._timeouts = timeouts or TimeoutConfig()
        self._logger = logger or get_logger(__name__)
        self._clock = clock
        self.failures = 0
        self.last_poller: Optional[Poller[str]] = None

    async def await_completion(self, deployment_id: str, timeout: Optional[float] = None) -> str:
        """Poll until the deployment succeeds; returns its URL.

        Raises:
            DeploymentTimeoutError: If no terminal stage was reached in time
            DeploymentFailedError: If the deployment failed or was canceled
            DeploymentCheckError: If too many status checks failed
        """
        timeout = self._timeouts.deployment_timeout if timeout is None else timeout
        self.failures = 0
        log_deployment_event(self._logger, "polling", deployment_id)
        poller: Poller[str] = Poller(
            f"Deployment {deployment_id}",
            lambda completion: self._check(deployment_id, completion),
            interval=self._timeouts.deployment_check_interval,
            timeout=timeout,
            timeout_error=lambda elapsed: DeploymentTimeoutError(
                timeout, elapsed, details={"deployment_id": deployment_id}
            ),
            clock=self._clock,
            logger=self._logger,
        )
        self.last_poller = poller
        url = await poller.run()
        log_deployment_event(self._logger, "succeeded", deployment_id, url=url)
        return url

    async def _check(self, deployment_id: str, completion: Completion[str]) -> None:
        try:
            deployment = await self._api.get_deployment(deployment_id)
        except RemoteCallError as e:
            self.failures += 1
            threshold = self._timeouts.deployment_check_failures_threshold
            if self.failures > threshold:
                completion.reject(
                    DeploymentCheckError(
                        f"Deployment status check failed {self.failures} times.",
                        status=e.status,
                        reason=e.reason,
                        body=e.body,
                        failures=self.failures,
                        threshold=threshold,
                        details={"deployment_id": deployment_id},
                    )
                )
            else:
                self._logger.warning(
                    "Deployment status check failed (%d/%d): %s",
                    self.failures, threshold, e,
                )
            return

        if deployment.stage == "deploy" and deployment.status == StageStatus.SUCCESS.value:
            completion.resolve(deployment.url)
        elif deployment.status not in _IN_PROGRESS:
            completion.reject(
                DeploymentFailedError(
                    deployment_id,
                    deployment.stage,
                    deployment.status,
                    self._api.dashboard_url(deployment_id),
                )
            )
        else:
            self._logger.info(
                "Deployment %s: %s %s", deployment_id, deployment.stage, deployment.status
            )
