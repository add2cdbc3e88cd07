"""Core enumerations for the pages-e2e framework.

Separated from types.py to break circular dependencies. This module contains
only enum definitions with no dependencies on other core modules.
"""

from enum import Enum


class Environment(Enum):
    """Pages platform environment the fixtures are deployed to."""

    PRODUCTION = "production"
    STAGING = "staging"
    LOCAL = "local"


class Trigger(Enum):
    """Mechanism used to start a deployment."""

    GITHUB = "github"
    GITLAB = "gitlab"
    DIRECT_UPLOAD = "direct_upload"


class StageStatus(Enum):
    """Status of the latest stage of a deployment."""

    IDLE = "idle"
    ACTIVE = "active"
    SUCCESS = "success"
    FAILURE = "failure"
    CANCELED = "canceled"


class BindingKind(Enum):
    """Kinds of bindings held in a project's preview deployment config."""

    ENV_VARS = "env_vars"
    D1_DATABASES = "d1_databases"
    DURABLE_OBJECT_NAMESPACES = "durable_object_namespaces"
    KV_NAMESPACES = "kv_namespaces"
    R2_BUCKETS = "r2_buckets"
    SERVICES = "services"
    QUEUE_PRODUCERS = "queue_producers"
    ANALYTICS_ENGINE_DATASETS = "analytics_engine_datasets"

    @property
    def label(self) -> str:
        return _BINDING_LABELS[self]


_BINDING_LABELS = {
    BindingKind.ENV_VARS: "Environment variables",
    BindingKind.D1_DATABASES: "D1 database bindings",
    BindingKind.DURABLE_OBJECT_NAMESPACES: "Durable Object namespace bindings",
    BindingKind.KV_NAMESPACES: "KV namespace bindings",
    BindingKind.R2_BUCKETS: "R2 bucket bindings",
    BindingKind.SERVICES: "Service bindings",
    BindingKind.QUEUE_PRODUCERS: "Queue Producer bindings",
    BindingKind.ANALYTICS_ENGINE_DATASETS: "Analytics Engine dataset bindings",
}
