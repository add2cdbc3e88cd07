"""Deploy fixtures and run the e2e suite against them."""

import asyncio
from typing import List, Optional

import typer
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from rich.console import Console

from ...core.config import load_config
from ...core.context import ApplicationContext
from ...core.enums import Environment, Trigger
from ...core.errors import PagesE2EError
from ...core.log import add_file_logging, configure_logging, get_logger
from ...core.types import PagesE2EConfig
from ...fixtures.loader import discover_fixtures
from ...remote.http import HttpClient
from ...runner.pipeline import E2EPipeline
from ...runner.suite import PytestSuiteRunner

_HELP = {
    "environment": "Pages environment to deploy to",
    "trigger": "How deployments are started",
    "fixtures": "Fixture to run (repeatable, `*` for all)",
    "exclude": "Fixture to skip (repeatable)",
    "no_provisioning_check": "Do not wait for deployments to be live at the edge",
    "pytest_args": "Additional arguments to pass to pytest",
}


class RunOptions(BaseModel):
    """Pydantic model for run command options."""

    environment: Optional[Environment] = Field(None, description=_HELP["environment"])
    trigger: Optional[Trigger] = Field(None, description=_HELP["trigger"])
    fixtures: List[str] = Field(default_factory=list, description=_HELP["fixtures"])
    exclude: List[str] = Field(default_factory=list, description=_HELP["exclude"])
    no_provisioning_check: bool = Field(False, description=_HELP["no_provisioning_check"])
    pytest_args: List[str] = Field(default_factory=list, description=_HELP["pytest_args"])
    log_level: Optional[str] = Field(None, description="Framework logging level")

    model_config = ConfigDict(extra="forbid")

    def config_overrides(self) -> dict:
        """Overrides for ``load_config``; ``None`` keeps the loaded value."""
        return {
            "environment": self.environment,
            "trigger": self.trigger,
            "fixtures_include": self.fixtures or None,
            "fixtures_exclude": self.exclude or None,
            "check_provisioning": False if self.no_provisioning_check else None,
            "log_level": self.log_level,
        }


console = Console()
logger = get_logger(__name__)


def run(
    ctx: typer.Context,
    environment: Optional[Environment] = typer.Option(
        None, "--environment", "-e", case_sensitive=False, help=_HELP["environment"]
    ),
    trigger: Optional[Trigger] = typer.Option(
        None, "--trigger", "-t", case_sensitive=False, help=_HELP["trigger"]
    ),
    fixtures: Optional[List[str]] = typer.Option(
        None, "--fixture", "-f", help=_HELP["fixtures"]
    ),
    exclude: Optional[List[str]] = typer.Option(
        None, "--exclude", "-x", help=_HELP["exclude"]
    ),
    no_provisioning_check: bool = typer.Option(
        False, "--no-provisioning-check", help=_HELP["no_provisioning_check"]
    ),
    pytest_args: Optional[List[str]] = typer.Option(
        None, "--pytest-arg", help=_HELP["pytest_args"]
    ),
) -> None:
    """Deploy fixtures to Pages and run the e2e suite against them."""
    cli_options = ctx.obj.get("cli_options") if ctx.obj else None
    config_file = getattr(cli_options, "config_file", None)
    log_level = getattr(cli_options, "explicit_log_level", None)

    try:
        options = RunOptions(
            environment=environment,
            trigger=trigger,
            fixtures=fixtures or [],
            exclude=exclude or [],
            no_provisioning_check=no_provisioning_check,
            pytest_args=pytest_args or [],
            log_level=log_level,
        )
        config = load_config(config_file, **options.config_overrides())
        # Resolve credentials now rather than once per fixture mid-run
        config.host()
        config.credentials()
        # No-op when --verbose or --log-level already configured logging
        configure_logging(level=config.log_level, enable_console=True, enable_json=False)
        if config.log_file is not None:
            add_file_logging(config.log_file)

        selected = discover_fixtures(
            config.fixtures_path, config.fixtures_include, config.fixtures_exclude
        )
        if not selected:
            console.print("[yellow]No fixtures selected.[/yellow]")
            raise typer.Exit(1)
        console.print(
            f"[cyan]Running {len(selected)} fixture(s) on "
            f"{config.environment.value}/{config.trigger.value}:[/cyan] {', '.join(selected)}"
        )

        succeeded = asyncio.run(_execute_run(config, selected, options.pytest_args))
    except PagesE2EError as e:
        # Expected framework errors - clean message, no stack trace
        logger.error("Run failed: %s", e)
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    except ValidationError as e:
        console.print(f"[red]Invalid configuration:[/red]\n{e}")
        raise typer.Exit(1)

    if not succeeded:
        console.print("[red]Some fixtures failed.[/red]")
        raise typer.Exit(1)
    console.print("[green]All fixtures passed.[/green]")


async def _execute_run(
    config: PagesE2EConfig, fixtures: List[str], pytest_args: List[str]
) -> bool:
    async with HttpClient(timeout=config.timeouts.http_request_timeout) as http:
        app_context = ApplicationContext.create(config, http=http)
        suite_runner = PytestSuiteRunner(config, app_context.logger, extra_args=pytest_args)
        return await E2EPipeline(app_context, suite_runner=suite_runner).run(fixtures)
