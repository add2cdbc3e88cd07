"""Schema of a fixture's ``main.fixture`` file.

Keys are camelCase on disk; the models accept either spelling. Unknown
keys (``$schema``, ``localSetup``) are dropped.
"""

from typing import Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from ..core.enums import BindingKind, Environment
from ..core.errors import ConfigurationError
from ..deployment.configurator import DesiredProjectState

DATE_PATTERN = r"^\d{4}-[01]\d-[0123]\d$"
UUID4_PATTERN = r"(?i)^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$"
HEX32_PATTERN = r"(?i)^[0-9a-f]{32}$"

R = TypeVar("R", bound=BaseModel)


class _FixtureModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class D1Database(_FixtureModel):
    id: str = Field(pattern=UUID4_PATTERN, description="The ID of the D1 database.")


class Namespace(_FixtureModel):
    """A Durable Object or KV namespace."""

    id: str = Field(pattern=HEX32_PATTERN)


class NamedResource(_FixtureModel):
    """An R2 bucket, Queue or Analytics Engine dataset."""

    name: str = Field(min_length=1)


class Service(_FixtureModel):
    name: str = Field(min_length=1)
    environment: str = Field(min_length=1)


class PerEnvironment(_FixtureModel, Generic[R]):
    """One binding target for each deployable environment."""

    production: R
    staging: R

    def select(self, environment: Environment) -> R:
        if environment == Environment.PRODUCTION:
            return self.production
        if environment == Environment.STAGING:
            return self.staging
        raise ConfigurationError(f"Bindings are not defined for environment {environment.value}")


class BuildConfig(_FixtureModel):
    build_command: str = Field("", alias="buildCommand")
    build_output_directory: str = Field("", alias="buildOutputDirectory")
    root_directory: str = Field("", alias="rootDirectory")


class DeploymentConfig(_FixtureModel):
    environment_variables: Dict[str, str] = Field(default_factory=dict, alias="environmentVariables")
    compatibility_date: str = Field("2023-03-26", alias="compatibilityDate", pattern=DATE_PATTERN)
    compatibility_flags: List[str] = Field(default_factory=list, alias="compatibilityFlags")
    d1_databases: Dict[str, PerEnvironment[D1Database]] = Field(
        default_factory=dict, alias="d1Databases"
    )
    durable_object_namespaces: Dict[str, PerEnvironment[Namespace]] = Field(
        default_factory=dict, alias="durableObjectNamespaces"
    )
    kv_namespaces: Dict[str, PerEnvironment[Namespace]] = Field(
        default_factory=dict, alias="kvNamespaces"
    )
    r2_buckets: Dict[str, PerEnvironment[NamedResource]] = Field(
        default_factory=dict, alias="r2Buckets"
    )
    services: Dict[str, PerEnvironment[Service]] = Field(default_factory=dict)
    queue_producers: Dict[str, PerEnvironment[NamedResource]] = Field(
        default_factory=dict, alias="queueProducers"
    )
    analytics_engine_datasets: Dict[str, PerEnvironment[NamedResource]] = Field(
        default_factory=dict, alias="analyticsEngineDatasets"
    )

    def bindings(self, environment: Environment) -> Dict[BindingKind, Dict[str, Dict[str, str]]]:
        """Remote descriptors of every binding, resolved for ``environment``."""

        def pick(entries: Dict[str, PerEnvironment[R]]) -> Dict[str, R]:
            return {name: entry.select(environment) for name, entry in entries.items()}

        return {
            BindingKind.ENV_VARS: {
                name: {"type": "plain_text", "value": value}
                for name, value in self.environment_variables.items()
            },
            BindingKind.D1_DATABASES: {
                name: {"id": db.id} for name, db in pick(self.d1_databases).items()
            },
            BindingKind.DURABLE_OBJECT_NAMESPACES: {
                name: {"namespace_id": ns.id}
                for name, ns in pick(self.durable_object_namespaces).items()
            },
            BindingKind.KV_NAMESPACES: {
                name: {"namespace_id": ns.id} for name, ns in pick(self.kv_namespaces).items()
            },
            BindingKind.R2_BUCKETS: {
                name: {"name": bucket.name} for name, bucket in pick(self.r2_buckets).items()
            },
            BindingKind.SERVICES: {
                name: {"service": svc.name, "environment": svc.environment}
                for name, svc in pick(self.services).items()
            },
            BindingKind.QUEUE_PRODUCERS: {
                name: {"name": queue.name} for name, queue in pick(self.queue_producers).items()
            },
            BindingKind.ANALYTICS_ENGINE_DATASETS: {
                name: {"dataset": ds.name}
                for name, ds in pick(self.analytics_engine_datasets).items()
            },
        }


class FixtureConfig(_FixtureModel):
    """A project fixture."""

    features: List[str] = Field(default_factory=list)
    setup: Optional[str] = None
    build_config: BuildConfig = Field(alias="buildConfig")
    deployment_config: DeploymentConfig = Field(
        default_factory=DeploymentConfig, alias="deploymentConfig"
    )

    def desired_state(self, environment: Environment) -> DesiredProjectState:
        """Project configuration this fixture needs in ``environment``."""
        return DesiredProjectState(
            build_command=self.build_config.build_command,
            destination_dir=self.build_config.build_output_directory,
            root_dir=self.build_config.root_directory,
            compatibility_date=self.deployment_config.compatibility_date,
            compatibility_flags=list(self.deployment_config.compatibility_flags),
            bindings=self.deployment_config.bindings(environment),
        )
