"""Main CLI entry point for pages-e2e."""

import sys
from pathlib import Path
from typing import Optional

import typer
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from rich.console import Console
from rich.table import Table

from ..core.errors import PagesE2EError
from ..core.log import configure_logging, get_logger
from .commands.run import run as run_command


class GlobalCliOptions(BaseModel):
    """Global CLI options that can be used across all commands."""

    verbose: int = Field(0, description="Increase verbosity level")
    config_file: Optional[Path] = Field(None, description="Configuration file path")
    explicit_log_level: Optional[str] = Field(
        None, description="Logging level from --verbose or --log-level, if given"
    )

    model_config = ConfigDict(use_enum_values=True)


app = typer.Typer(
    name="pages-e2e",
    help="End-to-end tests for Pages deployments",
    no_args_is_help=True,
    rich_markup_mode="markdown",
)
app.command("run")(run_command)
console = Console()
logger = get_logger(__name__)


@app.callback()
def main(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0, "--verbose", "-v", count=True, help="Increase verbosity level"
    ),
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Framework logging level (DEBUG, INFO, WARNING, ERROR) - explicit level",
    ),
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Configuration file path"
    ),
) -> None:
    """pages-e2e: deploy fixtures to Pages and test them live."""
    if verbose > 0 and log_level is not None:
        console.print("[red]Error: Cannot specify both --verbose and --log-level[/red]")
        raise typer.Exit(1)

    if log_level is not None:
        explicit_log_level: Optional[str] = log_level.upper()
    elif verbose > 0:
        explicit_log_level = "DEBUG" if verbose >= 2 else "INFO"
    else:
        explicit_log_level = None

    cli_options = GlobalCliOptions(
        verbose=verbose,
        config_file=config_file,
        explicit_log_level=explicit_log_level,
    )

    ctx.ensure_object(dict)
    ctx.obj["cli_options"] = cli_options

    # Otherwise the configured log_level applies once a command loads it
    if cli_options.explicit_log_level is not None:
        configure_logging(
            level=cli_options.explicit_log_level, enable_console=True, enable_json=False
        )


@app.command()
def version() -> None:
    """Show version information."""
    from .. import __version__

    table = Table(title="pages-e2e Version Information")
    table.add_column("Component", style="cyan")
    table.add_column("Version", style="green")
    table.add_row("pages-e2e", __version__)
    try:
        import pytest

        table.add_row("pytest", pytest.__version__)
    except ImportError:
        table.add_row("pytest", "[red]Not installed[/red]")
    try:
        import aiohttp

        table.add_row("aiohttp", aiohttp.__version__)
    except ImportError:
        table.add_row("aiohttp", "[red]Not installed[/red]")
    console.print(table)


@app.command()
def config(ctx: typer.Context) -> None:
    """Show current configuration."""
    from ..core.config import load_config

    cli_options = ctx.obj.get("cli_options") if ctx.obj else None
    try:
        current_config = load_config(getattr(cli_options, "config_file", None))
    except (PagesE2EError, ValidationError) as e:
        console.print(f"[red]Error getting configuration: {e}[/red]")
        raise typer.Exit(1)

    timeouts = current_config.timeouts
    table = Table(title="pages-e2e Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Environment", current_config.environment.value)
    table.add_row("Trigger", current_config.trigger.value)
    table.add_row("API Host", current_config.host().api)
    table.add_row("Lock Service", current_config.lock_service_url)
    table.add_row("API Token", "set" if current_config.api_token else "not set")
    table.add_row("Fixtures Path", str(current_config.fixtures_path))
    table.add_row("Fixtures", ", ".join(current_config.fixtures_include))
    if current_config.fixtures_exclude:
        table.add_row("Excluded Fixtures", ", ".join(current_config.fixtures_exclude))
    table.add_row("Check Provisioning", str(current_config.check_provisioning))
    table.add_row("Mutex Timeout", f"{timeouts.mutex_timeout:g}s")
    table.add_row("Deployment Timeout", f"{timeouts.deployment_timeout:g}s")
    table.add_row("Provisioning Timeout", f"{timeouts.provisioning_timeout:g}s")
    table.add_row(
        "Status Check Failure Threshold", str(timeouts.deployment_check_failures_threshold)
    )
    table.add_row("Log Level", current_config.log_level)
    console.print(table)


def cli_main() -> None:
    """Entry point for the CLI."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(130)
    except (RuntimeError, OSError, ValueError) as e:
        logger.error("Unexpected error: %s", e)
        console.print(f"[red]Unexpected error: {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    cli_main()
