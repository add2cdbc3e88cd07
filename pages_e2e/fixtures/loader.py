"""Fixture discovery and workspace preparation."""

import asyncio
import os
import re
import shutil
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import yaml
from pydantic import ValidationError

from ..core.errors import FixtureError
from ..core.log import Logger, get_logger
from .schema import FixtureConfig

FIXTURE_FILE = "main.fixture"

_SETUP_TARGET = re.compile(r"^setup\s*:", re.MULTILINE)


def discover_fixtures(path: Path, include: Sequence[str], exclude: Sequence[str] = ()) -> List[str]:
    """Names of the fixtures under ``path`` selected by include/exclude.

    ``"*"`` in ``include`` selects every fixture. Every other name given
    must exist.

    Raises:
        FixtureError: If the fixtures directory or a named fixture is missing
    """
    if not path.is_dir():
        raise FixtureError(f"Fixtures directory {path} does not exist")
    available = sorted(entry.name for entry in path.iterdir() if entry.is_dir())
    unknown = [name for name in [*include, *exclude] if name != "*" and name not in available]
    if unknown:
        raise FixtureError(
            f"Unknown fixture(s): {', '.join(unknown)}", details={"available": available}
        )
    if "*" in include:
        return [name for name in available if name not in exclude]
    return [name for name in available if name in include and name not in exclude]


def load_fixture_config(path: Path) -> FixtureConfig:
    """Parse ``main.fixture`` from a fixture directory (or the file itself).

    The file may be JSON or YAML.
    """
    file_path = path / FIXTURE_FILE if path.is_dir() else path
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise FixtureError(f"Could not read {file_path}: {e}") from e
    except yaml.YAMLError as e:
        raise FixtureError(f"Could not parse {file_path}: {e}") from e
    if not isinstance(data, dict):
        raise FixtureError(f"{file_path} must contain a mapping")
    try:
        return FixtureConfig.model_validate(data)
    except ValidationError as e:
        raise FixtureError(f"Invalid fixture config {file_path}:\n{e}") from e


async def run_shell(
    command: str, cwd: Path, env: Optional[Dict[str, str]] = None
) -> str:
    """Run a shell command; returns stdout.

    Raises:
        FixtureError: If the command exits with a non-zero status
    """
    process = await asyncio.create_subprocess_shell(
        command,
        cwd=str(cwd),
        env={**os.environ, **(env or {})},
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout, stderr = await process.communicate()
    if process.returncode != 0:
        raise FixtureError(
            f"`{command}` exited with status {process.returncode} in {cwd}",
            details={"stderr": stderr.decode(errors="replace")},
        )
    return stdout.decode(errors="replace")


async def prepare_workspace(
    fixtures_path: Path,
    workspaces_path: Path,
    fixture: str,
    timestamp: int,
    logger: Optional[Logger] = None,
) -> Tuple[Path, FixtureConfig]:
    """Copy a fixture into a fresh workspace and run its setup command."""
    logger = logger or get_logger(__name__)
    source = fixtures_path / fixture
    directory = workspaces_path / f"{fixture}-{timestamp}"

    logger.info("Copying fixture from %s to %s...", source, directory)
    workspaces_path.mkdir(parents=True, exist_ok=True)
    try:
        shutil.copytree(
            source, directory, ignore=shutil.ignore_patterns(".git", "node_modules")
        )
    except OSError as e:
        raise FixtureError(f"Could not copy fixture {fixture}: {e}") from e

    config = load_fixture_config(directory)
    if config.setup:
        logger.info("Running setup command `%s`...", config.setup)
        output = await run_shell(config.setup, directory)
        if output.strip():
            logger.debug("%s", output.strip())
    else:
        logger.debug("No setup command found. Continuing...")
    return directory, config


async def resolve_features(
    features: Sequence[str],
    features_path: Path,
    workspace: Path,
    logger: Optional[Logger] = None,
) -> List[str]:
    """Run each feature's ``make setup`` against ``workspace``.

    Features without a Makefile ``setup`` target need no setup.
    """
    logger = logger or get_logger(__name__)
    for feature in features:
        feature_dir = features_path / feature
        if not feature_dir.is_dir():
            raise FixtureError(f"Unknown feature {feature}", details={"path": str(feature_dir)})
        makefile = feature_dir / "Makefile"
        if makefile.is_file() and _SETUP_TARGET.search(makefile.read_text(encoding="utf-8")):
            logger.info("Setting up feature %s...", feature)
            await run_shell("make setup", feature_dir, env={"WORKSPACE_DIR": str(workspace.resolve())})
        else:
            logger.debug("Feature %s has no setup command.", feature)
    return list(features)
