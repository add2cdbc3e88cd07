"""Deployment lifecycle: publish, trigger, configure, poll and tear down."""

from .configurator import (
    BindingDiff,
    DesiredProjectState,
    ProjectConfigurator,
    build_update_payload,
    diff_bindings,
    verify_project,
)
from .coordinator import DeploymentCoordinator
from .git import GitBranchPublisher
from .poller import DeploymentPoller
from .provisioning import ProvisioningPoller
from .teardown import TeardownReport, TeardownService
from .trigger import DeploymentTrigger

__all__ = [
    "BindingDiff",
    "DesiredProjectState",
    "ProjectConfigurator",
    "build_update_payload",
    "diff_bindings",
    "verify_project",
    "DeploymentCoordinator",
    "GitBranchPublisher",
    "DeploymentPoller",
    "ProvisioningPoller",
    "TeardownReport",
    "TeardownService",
    "DeploymentTrigger",
]
