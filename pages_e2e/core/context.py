"""Application context for explicit dependency management.

The ApplicationContext is the single immutable container for everything a
run needs: the configuration, a logger, the shared HTTP client and the
teardown registry. It is built once at process start and passed to every
component; nothing reads configuration from ambient state.

Usage:
    config = ConfigManager().load_config(config_file)
    async with HttpClient(timeout=config.timeouts.http_request_timeout) as http:
        app_context = ApplicationContext.create(config, http=http)
        await E2EPipeline(app_context).run(fixtures)

    # For testing
    test_context = ApplicationContext.for_testing(http=fake_http)
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

from .types import PagesE2EConfig
from .log import Logger

if TYPE_CHECKING:
    from ..remote.http import HttpClient
    from ..deployment.teardown import TeardownService


@dataclass(frozen=True)
class ApplicationContext:
    """Immutable application-wide context containing all dependencies.

    Attributes:
        config: Framework configuration
        logger: Logging instance
        http: HTTP client shared by all remote calls
        teardown: Registry of cleanup actions for the whole run
    """

    config: PagesE2EConfig
    logger: Logger
    http: "HttpClient"
    teardown: "TeardownService"

    @classmethod
    def create(
        cls,
        config: PagesE2EConfig,
        *,
        http: "HttpClient",
        logger: Optional[Logger] = None,
        teardown: Optional["TeardownService"] = None,
    ) -> "ApplicationContext":
        """Create application context with default implementations.

        Args:
            config: Framework configuration (required)
            http: HTTP client; its lifetime is owned by the caller
            logger: Optional custom logger
            teardown: Optional custom teardown registry
        """
        # Imported here to avoid circular dependencies at module level
        from .log import configure_logging, get_logger
        from ..deployment.teardown import TeardownService

        if logger is None:
            configure_logging(
                level=config.log_level,
                log_file=config.log_file,
                enable_console=True,
                enable_json=config.log_file is not None,
            )
            logger = get_logger("pages_e2e")

        if teardown is None:
            teardown = TeardownService(logger=logger)

        return cls(config=config, logger=logger, http=http, teardown=teardown)

    @classmethod
    def for_testing(
        cls,
        config: Optional[PagesE2EConfig] = None,
        **overrides: Any,
    ) -> "ApplicationContext":
        """Create application context for tests.

        Example:
            >>> ctx = ApplicationContext.for_testing(http=Mock(), logger=Mock())
        """
        from .types import ProjectCredentials, TimeoutConfig
        from .enums import Environment, Trigger

        if config is None:
            config = PagesE2EConfig(
                environment=Environment.PRODUCTION,
                trigger=Trigger.GITHUB,
                projects={
                    Environment.PRODUCTION: {
                        Trigger.GITHUB: ProjectCredentials(
                            account_id="test-account",
                            project_name="test-project",
                            api_token="test-token",
                            git_repo="git@example.com:test/repo.git",
                        )
                    }
                },
                timeouts=TimeoutConfig(
                    mutex_check_interval=0.001,
                    deployment_check_interval=0.001,
                    provisioning_check_interval=0.001,
                ),
                log_level="WARNING",
            )

        overrides.setdefault("http", None)
        return cls.create(config, **overrides)

