"""Fixture projects: schema, discovery and workspace setup."""

from .loader import discover_fixtures, load_fixture_config, prepare_workspace, resolve_features
from .schema import FixtureConfig

__all__ = [
    "FixtureConfig",
    "discover_fixtures",
    "load_fixture_config",
    "prepare_workspace",
    "resolve_features",
]
