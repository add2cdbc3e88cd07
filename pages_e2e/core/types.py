"""Core type definitions for the pages-e2e framework."""

from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from .enums import Environment, Trigger


class TimeoutConfig(BaseModel):
    """Centralized timeouts and polling intervals, in seconds."""

    # Distributed mutex
    mutex_timeout: float = 600.0
    mutex_stale_after: float = 60.0
    mutex_check_interval: float = 5.0

    # Pages builds are allowed 20 minutes, plus a 3 minute buffer for queueing
    deployment_timeout: float = 1380.0
    deployment_check_interval: float = 5.0
    # Not-OK API responses tolerated while polling for deployment completion
    deployment_check_failures_threshold: int = 5

    # Edge propagation after the build has completed
    provisioning_timeout: float = 30.0
    provisioning_check_interval: float = 5.0

    http_request_timeout: float = 30.0


class HostConfig(BaseModel):
    """API and dashboard roots for one environment."""

    api: str
    dash: str


class ProjectCredentials(BaseModel):
    """Pages project a fixture is deployed through."""

    account_id: str
    project_name: str
    api_token: Optional[str] = None
    git_repo: Optional[str] = None


class GitConfig(BaseModel):
    """Identity used for fixture commits."""

    username: str = "Pages e2e Tests Bot"
    email: str = "cloudflare-pages-team@cloudflare.com"


def _default_hosts() -> Dict[Environment, HostConfig]:
    return {
        Environment.PRODUCTION: HostConfig(
            api="https://api.cloudflare.com", dash="https://dash.cloudflare.com"
        ),
        Environment.STAGING: HostConfig(
            api="https://api.staging.cloudflare.com",
            dash="https://dash.staging.cloudflare.com",
        ),
    }


class PagesE2EConfig(BaseModel):
    """Main framework configuration."""

    environment: Environment = Environment.PRODUCTION
    trigger: Trigger = Trigger.GITHUB
    timeouts: TimeoutConfig = Field(default_factory=TimeoutConfig)
    git: GitConfig = Field(default_factory=GitConfig)
    hosts: Dict[Environment, HostConfig] = Field(default_factory=_default_hosts)
    projects: Dict[Environment, Dict[Trigger, ProjectCredentials]] = Field(
        default_factory=dict
    )
    # Shared token for projects that do not declare their own
    api_token: Optional[str] = None
    lock_service_url: str = "https://mutex.uno"

    fixtures_path: Path = Path("fixtures")
    features_path: Path = Path("features")
    global_tests_path: Path = Path("__tests__")
    workspaces_path: Path = Path("test-workspaces")
    results_path: Path = Path("test-results")

    fixtures_include: List[str] = Field(default_factory=lambda: ["*"])
    fixtures_exclude: List[str] = Field(default_factory=list)
    check_provisioning: bool = True

    log_level: str = "INFO"
    log_file: Optional[Path] = None

    @field_validator("fixtures_include", "fixtures_exclude", mode="before")
    @classmethod
    def split_fixture_list(cls, value: Any) -> Any:
        """Accept ``"basic, kv"`` as well as a list."""
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @model_validator(mode="after")
    def validate_config(self) -> "PagesE2EConfig":
        """Validate configuration - pure checks, no I/O."""
        from .errors import ConfigurationError

        if self.environment == Environment.LOCAL:
            raise ConfigurationError("Local deployments are not supported")
        if self.trigger == Trigger.DIRECT_UPLOAD:
            raise ConfigurationError("Direct Upload deployments are not supported")
        if self.timeouts.deployment_check_failures_threshold < 0:  # pylint: disable=no-member
            raise ConfigurationError("Failure threshold must not be negative")
        for name in ("mutex_check_interval", "deployment_check_interval",
                     "provisioning_check_interval"):
            if getattr(self.timeouts, name) <= 0:
                raise ConfigurationError(f"{name} must be positive")
        return self

    def host(self) -> HostConfig:
        """Hosts of the selected environment."""
        from .errors import ConfigurationError

        try:
            return self.hosts[self.environment]
        except KeyError:
            raise ConfigurationError(
                f"No hosts configured for environment {self.environment.value}"
            ) from None

    def credentials(self) -> ProjectCredentials:
        """Project credentials for the selected environment and trigger."""
        from .errors import ConfigurationError

        project = self.projects.get(self.environment, {}).get(self.trigger)
        if project is None:
            raise ConfigurationError(
                f"No Pages project configured for {self.environment.value}/{self.trigger.value}"
            )
        if project.api_token is None:
            if self.api_token is None:
                raise ConfigurationError(
                    f"No API token for Pages project {project.project_name}"
                )
            project = project.model_copy(update={"api_token": self.api_token})
        if project.git_repo is None:
            raise ConfigurationError(
                f"Pages project {project.project_name} has no git repository"
            )
        return project


class Deployment(BaseModel):
    """Snapshot of a deployment as reported by the control plane."""

    id: str
    url: str
    stage: str
    status: str


class DeployedFixture(BaseModel):
    """A fixture whose deployment is live and ready for testing."""

    fixture: str
    url: str
    deployment_id: str
    directory: Path
    features: List[str] = Field(default_factory=list)
