"""Deploy-hook based deployment trigger."""

from typing import Optional

from ..core.log import Logger, get_logger, log_deployment_event
from ..remote.pages_api import PagesApiClient
from .teardown import TeardownService


class DeploymentTrigger:
    """Creates a deploy hook for a branch and fires it.

    The hook is registered for deletion as soon as it exists, so it is
    cleaned up even if invocation never happens.
    """

    def __init__(
        self,
        api: PagesApiClient,
        teardown: TeardownService,
        logger: Optional[Logger] = None,
    ) -> None:
        self._api = api
        self._teardown = teardown
        self._logger = logger or get_logger(__name__)

    async def create_hook(self, branch: str) -> str:
        self._logger.debug("Creating Deploy Hook for branch `%s`...", branch)
        hook_id = await self._api.create_deploy_hook(name=branch, branch=branch)
        self._teardown.register(
            "Delete Deploy Hook", lambda: self._api.delete_deploy_hook(hook_id)
        )
        self._logger.debug("Created Deploy Hook %s.", hook_id)
        return hook_id

    async def invoke(self, hook_id: str) -> str:
        deployment_id = await self._api.invoke_deploy_hook(hook_id)
        log_deployment_event(self._logger, "created", deployment_id, hook_id=hook_id)
        return deployment_id

    async def trigger(self, branch: str) -> str:
        """Create a hook for ``branch`` and fire it; returns the deployment id."""
        hook_id = await self.create_hook(branch)
        return await self.invoke(hook_id)
