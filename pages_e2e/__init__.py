"""
pages-e2e: end-to-end tests for Pages deployments

Publishes fixture projects to git branches, deploys them through deploy
hooks against a shared Pages project, waits for them to be live at the edge
and runs the test suite against the resulting URLs.
"""

__version__ = "0.1.0"

from .core.enums import BindingKind, Environment, StageStatus, Trigger
from .core.types import PagesE2EConfig, TimeoutConfig

__all__ = [
    "__version__",
    "BindingKind",
    "Environment",
    "StageStatus",
    "Trigger",
    "PagesE2EConfig",
    "TimeoutConfig",
]
