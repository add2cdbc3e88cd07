"""Runs the test suite against deployed fixtures."""

import asyncio
import os
import sys
from pathlib import Path
from typing import Dict, List, Optional, Protocol

from ..core.log import Logger, fixture_logger, get_logger
from ..core.types import DeployedFixture, PagesE2EConfig

# pytest's exit status when nothing was collected
NO_TESTS_COLLECTED = 5


class SuiteRunner(Protocol):
    """Anything that can test a set of live deployments."""

    async def run(self, deployed: List[DeployedFixture]) -> bool:
        """Return True when every fixture's tests passed."""


class PytestSuiteRunner:
    """Runs pytest once per deployed fixture in a subprocess.

    Each run collects the global tests, the tests of the fixture's features
    and the fixture's own tests, with ``DEPLOYMENT_URL`` pointing at the
    deployment. JUnit XML lands in ``results_path/<fixture>.xml``.
    """

    def __init__(
        self,
        config: PagesE2EConfig,
        logger: Optional[Logger] = None,
        extra_args: Optional[List[str]] = None,
    ) -> None:
        self._config = config
        self._logger = logger or get_logger(__name__)
        self._extra_args = list(extra_args or [])

    def collect_paths(self, deployed: DeployedFixture) -> List[Path]:
        candidates = [
            self._config.global_tests_path,
            *(self._config.features_path / feature for feature in deployed.features),
            self._config.fixtures_path / deployed.fixture,
        ]
        return [path for path in candidates if path.exists()]

    def build_command(self, deployed: DeployedFixture) -> List[str]:
        junit = self._config.results_path / f"{deployed.fixture}.xml"
        return [
            sys.executable,
            "-m",
            "pytest",
            *(str(path) for path in self.collect_paths(deployed)),
            f"--junitxml={junit}",
            *self._extra_args,
        ]

    def build_env(self, deployed: DeployedFixture) -> Dict[str, str]:
        return {
            **os.environ,
            "DEPLOYMENT_URL": deployed.url,
            "PAGES_E2E_FIXTURE": deployed.fixture,
            "PAGES_E2E_ENVIRONMENT": self._config.environment.value,
            "WORKSPACE_DIR": str(deployed.directory),
        }

    async def run(self, deployed: List[DeployedFixture]) -> bool:
        self._config.results_path.mkdir(parents=True, exist_ok=True)
        results = await asyncio.gather(*(self._run_fixture(d) for d in deployed))
        return all(results)

    async def _run_fixture(self, deployed: DeployedFixture) -> bool:
        logger = fixture_logger(self._logger, deployed.fixture)
        command = self.build_command(deployed)
        logger.info("Running tests against %s", deployed.url)
        logger.debug("%s", " ".join(command))
        returncode = await self._execute(command, self.build_env(deployed))
        if returncode == NO_TESTS_COLLECTED:
            logger.warning("No tests collected.")
            return True
        if returncode != 0:
            logger.error("Tests failed (exit status %d).", returncode)
            return False
        logger.info("Tests passed.")
        return True

    async def _execute(self, command: List[str], env: Dict[str, str]) -> int:
        process = await asyncio.create_subprocess_exec(*command, env=env)
        return await process.wait()
