"""End-to-end run: deploy every fixture, test the live ones, tear down."""

import asyncio
from pathlib import Path
from typing import Callable, List, Optional

from ..core.context import ApplicationContext
from ..core.log import fixture_logger
from ..core.types import DeployedFixture
from ..deployment.configurator import DesiredProjectState
from ..deployment.coordinator import DeploymentCoordinator, current_timestamp
from ..fixtures.loader import prepare_workspace, resolve_features
from .suite import PytestSuiteRunner, SuiteRunner

CoordinatorFactory = Callable[..., DeploymentCoordinator]


class E2EPipeline:
    """Deploys fixtures concurrently, runs the suite and always tears down."""

    def __init__(
        self,
        context: ApplicationContext,
        suite_runner: Optional[SuiteRunner] = None,
        coordinator_factory: CoordinatorFactory = DeploymentCoordinator,
    ) -> None:
        self._context = context
        self._suite_runner = suite_runner or PytestSuiteRunner(context.config, context.logger)
        self._coordinator_factory = coordinator_factory
        self.deployed: List[DeployedFixture] = []
        self.failed: List[str] = []

    async def run(self, fixtures: List[str]) -> bool:
        """Returns True when every fixture deployed and every test passed."""
        logger = self._context.logger
        timestamp = current_timestamp()
        logger.info("Starting at %d with fixtures: %s", timestamp, ", ".join(fixtures))
        try:
            results = await asyncio.gather(
                *(self._deploy_fixture(fixture, timestamp) for fixture in fixtures),
                return_exceptions=True,
            )
            for fixture, result in zip(fixtures, results):
                if isinstance(result, BaseException):
                    logger.error("[%s] Deployment failed: %s", fixture, result)
                    self.failed.append(fixture)
                else:
                    self.deployed.append(result)

            tests_passed = True
            if self.deployed:
                tests_passed = await self._suite_runner.run(self.deployed)
            else:
                logger.warning("No fixture deployed; skipping tests.")
        finally:
            await self._context.teardown.teardown()

        return not self.failed and tests_passed

    async def _deploy_fixture(self, fixture: str, timestamp: int) -> DeployedFixture:
        config = self._context.config
        logger = fixture_logger(self._context.logger, fixture)
        directory, fixture_config = await prepare_workspace(
            config.fixtures_path, config.workspaces_path, fixture, timestamp, logger
        )
        features = await resolve_features(
            fixture_config.features, config.features_path, directory, logger
        )
        desired_state: DesiredProjectState = fixture_config.desired_state(config.environment)
        coordinator = self._coordinator_factory(
            self._context,
            fixture,
            Path(directory),
            desired_state,
            features=features,
            timestamp=timestamp,
        )
        return await coordinator.deploy()

