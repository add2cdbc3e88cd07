"""Publishes a fixture workspace to its own orphan branch."""

import asyncio
from pathlib import Path
from typing import Awaitable, Callable, List, Optional

from ..core.errors import GitCommandError
from ..core.log import Logger, get_logger
from ..core.types import GitConfig
from .teardown import TeardownService

GitRunner = Callable[[List[str], Path], Awaitable[str]]


async def run_git(args: List[str], cwd: Path) -> str:
    """Run ``git *args`` in ``cwd`` and return its stdout.

    Raises:
        GitCommandError: If git exits with a non-zero status
    """
    process = await asyncio.create_subprocess_exec(
        "git",
        *args,
        cwd=str(cwd),
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout, stderr = await process.communicate()
    if process.returncode != 0:
        raise GitCommandError(
            " ".join(["git", *args]),
            process.returncode,
            stderr.decode(errors="replace"),
        )
    return stdout.decode(errors="replace")


def branch_name(fixture: str, timestamp: int) -> str:
    return f"{fixture}-{timestamp}"


class GitBranchPublisher:
    """Commits a directory onto a fresh branch and force-pushes it.

    The branch is registered for deletion right after the push.
    """

    def __init__(
        self,
        git: GitConfig,
        teardown: TeardownService,
        logger: Optional[Logger] = None,
        runner: GitRunner = run_git,
    ) -> None:
        self._git = git
        self._teardown = teardown
        self._logger = logger or get_logger(__name__)
        self._run = runner

    async def publish(
        self, directory: Path, remote: str, fixture: str, timestamp: int
    ) -> str:
        """Push ``directory`` to ``remote``; returns the branch name."""
        branch = branch_name(fixture, timestamp)
        author = f"{self._git.username} <{self._git.email}>"
        self._logger.info(
            "Creating Git repo in %s, pushing orphan branch %s to %s...",
            directory, branch, remote,
        )
        commands = [
            ["init", "."],
            ["remote", "add", "origin", remote],
            ["checkout", "--orphan", branch],
            ["add", "."],
            [
                "-c", f"user.name={self._git.username}",
                "-c", f"user.email={self._git.email}",
                "commit", "-m", f"{fixture} @ {timestamp}",
                f"--author={author}",
            ],
            ["push", "-f", "origin", branch],
        ]
        for args in commands:
            output = await self._run(args, directory)
            if output.strip():
                self._logger.debug("%s", output.strip())

        self._teardown.register(
            "Delete Git branch", lambda: self._run(["push", "origin", "--delete", branch], directory)
        )
        return branch
