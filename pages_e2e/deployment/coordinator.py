"""Per-fixture deployment lifecycle.

publish branch -> create hook -> acquire mutex -> reconcile project ->
invoke hook -> release mutex -> await build -> await edge provisioning.

Only the reconcile/invoke window runs under the project mutex; the build
itself is snapshotted at invocation, so other fixtures may reconfigure the
project while this one is still building.
"""

import time
from pathlib import Path
from typing import List, Optional

from ..core.context import ApplicationContext
from ..core.errors import RemoteCallError
from ..core.log import fixture_logger, log_context
from ..core.polling import Clock
from ..core.types import DeployedFixture
from ..remote.mutex import Mutex, MutexClient, mutex_key
from ..remote.pages_api import PagesApiClient
from .configurator import DesiredProjectState, ProjectConfigurator
from .git import GitBranchPublisher
from .poller import DeploymentPoller
from .provisioning import ProvisioningPoller
from .trigger import DeploymentTrigger


def current_timestamp() -> int:
    """Milliseconds since the epoch, used to make branch names unique."""
    return int(time.time() * 1000)


class DeploymentCoordinator:
    """Deploys one fixture and returns its live URL."""

    def __init__(
        self,
        context: ApplicationContext,
        fixture: str,
        directory: Path,
        desired_state: DesiredProjectState,
        *,
        features: Optional[List[str]] = None,
        timestamp: Optional[int] = None,
        api: Optional[PagesApiClient] = None,
        mutex_client: Optional[MutexClient] = None,
        publisher: Optional[GitBranchPublisher] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        config = context.config
        self.fixture = fixture
        self._directory = directory
        self._desired_state = desired_state
        self._features = list(features or [])
        self._timestamp = current_timestamp() if timestamp is None else timestamp
        self._check_provisioning = config.check_provisioning
        self._host = config.host()
        self._credentials = config.credentials()
        self._logger = fixture_logger(context.logger, fixture)

        self._api = api or PagesApiClient(context.http, self._host, self._credentials, self._logger)
        self._mutexes = mutex_client or MutexClient(
            context.http,
            config.lock_service_url,
            config.timeouts,
            logger=self._logger,
            clock=clock,
        )
        self._publisher = publisher or GitBranchPublisher(config.git, context.teardown, self._logger)
        self._trigger = DeploymentTrigger(self._api, context.teardown, self._logger)
        self._configurator = ProjectConfigurator(self._logger)
        self._deployment_poller = DeploymentPoller(self._api, config.timeouts, self._logger, clock)
        self._provisioning_poller = ProvisioningPoller(context.http, config.timeouts, self._logger, clock)

    async def deploy(self) -> DeployedFixture:
        """Run the full lifecycle.

        Raises:
            PagesE2EError: Whatever step failed first; side effects created
                up to that point are already registered for teardown
        """
        with log_context(fixture=self.fixture):
            branch = await self._publisher.publish(
                self._directory, self._credentials.git_repo, self.fixture, self._timestamp
            )
            hook_id = await self._trigger.create_hook(branch)

            mutex = await self._mutexes.acquire(mutex_key(self._host, self._credentials))
            try:
                await self._configurator.reconcile(self._api, self._desired_state)
                deployment_id = await self._trigger.invoke(hook_id)
            finally:
                await self._release(mutex)

            url = await self._deployment_poller.await_completion(deployment_id)
            if self._check_provisioning:
                await self._provisioning_poller.await_provisioned(url)

            self._logger.info("Deployed to %s", url)
            return DeployedFixture(
                fixture=self.fixture,
                url=url,
                deployment_id=deployment_id,
                directory=self._directory,
                features=self._features,
            )

    async def _release(self, mutex: Mutex) -> None:
        try:
            await self._mutexes.release(mutex)
        except RemoteCallError as e:
            self._logger.warning("%s", e)
