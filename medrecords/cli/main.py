#!/usr/bin/env python3
"""
Main CLI application entry point.

Running ``medrecords`` with no sub-command starts the interactive session.
"""

import json
import logging
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich import box
from rich.table import Table

from medrecords import __version__
from medrecords.cli.config import PROJECT_CONFIG_NAME, AppConfig, load_config_with_precedence
from medrecords.cli.context import CommandContext, get_context, reset_context
from medrecords.core.demo_data import write_demo_data
from medrecords.core.stores import initialise_data_files
from medrecords.tui.engine import FlowEngine
from medrecords.tui.graph import build_default_graph
from medrecords.tui.logging_config import setup_logging
from medrecords.tui.renderer import Renderer

logger = logging.getLogger(__name__)

# Global configuration singleton
_config: Optional[AppConfig] = None

CONFIG_ERRORS = (OSError, json.JSONDecodeError, ValidationError)


def get_config() -> AppConfig:
    """
    Get or create global config instance.

    Returns:
        AppConfig: Global configuration instance
    """
    global _config
    if _config is None:
        _config = load_config_with_precedence()
    return _config


def set_config(config: AppConfig) -> None:
    """
    Set global config instance.

    Useful for testing and command-line overrides.
    """
    global _config
    _config = config


def load_config_or_exit(config_file: Optional[Path] = None, **overrides) -> AppConfig:
    """Load configuration, reporting a broken config and exiting with status 1."""
    try:
        return load_config_with_precedence(config_file=config_file, **overrides)
    except CONFIG_ERRORS as e:
        typer.secho(f"Error loading configuration: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)


app = typer.Typer(
    name="medrecords",
    help="Patient Health System: view and search medical records from the terminal",
    add_completion=False
)


@app.callback(invoke_without_command=True)
def global_options(
    ctx: typer.Context,
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Log every navigation step"
    ),
    data_dir: Optional[Path] = typer.Option(
        None,
        "--data-dir",
        help="Override the data directory"
    ),
    config_file: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Use specific config file"
    ),
):
    """
    Global options applied to all commands.

    These options override configuration from files and environment variables.
    """
    overrides = {}
    if verbose:
        overrides["verbose"] = verbose
    if data_dir is not None:
        overrides["data_dir"] = data_dir

    set_config(load_config_or_exit(config_file, **overrides))
    reset_context()

    if ctx.invoked_subcommand is None:
        start_session(get_context())


def start_session(context: CommandContext) -> None:
    """Prepare data files and logging, then hand the terminal to the flow engine."""
    config = context.config

    try:
        created = initialise_data_files([config.users_file, config.patients_file])
    except OSError as e:
        context.print_error(f"Could not create data files: {e}")
        raise typer.Exit(1)

    log_file = setup_logging(config.log_dir, verbose=config.verbose)
    for path in created:
        logger.info(f"Initialised {path}")

    graph = build_default_graph()
    for problem in graph.validate():
        logger.error(f"Dangling navigation reference: {problem}")

    renderer = Renderer(context.console)
    renderer.banner(config.app_title, f"v{__version__}  |  data: {config.data_dir}  |  log: {log_file}")

    engine = FlowEngine(
        graph,
        context.users,
        context.patients,
        renderer=renderer,
        title=config.app_title,
        log_dir=config.log_dir,
    )
    try:
        engine.run()
    except (EOFError, KeyboardInterrupt):
        logger.info("Session ended")
        context.print("\nGoodbye!")


def launch() -> None:
    """Start an interactive session from project and environment configuration."""
    if _config is None:
        set_config(load_config_or_exit())
    start_session(get_context())


@app.command("run")
def run_command():
    """Start the interactive patient records session."""
    start_session(get_context())


@app.command("init-data")
def init_data_command():
    """Create empty data files if they are missing (never overwrites)."""
    context = get_context()
    try:
        created = initialise_data_files([context.users_file, context.patients_file])
    except OSError as e:
        context.print_error(f"Could not create data files: {e}")
        raise typer.Exit(1)

    if not created:
        context.print("[dim]Data files already exist, nothing to do.[/dim]")
    for path in created:
        context.print_success(f"Created [cyan]{path}[/cyan]")


@app.command("demo-data")
def demo_data_command(
    count: Optional[int] = typer.Option(
        None,
        "--count",
        "-n",
        min=0,
        max=500,
        help="Number of random patients (default: from config)"
    ),
    seed: Optional[int] = typer.Option(
        None,
        "--seed",
        help="Random seed for reproducible data"
    ),
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Overwrite existing data without asking"
    ),
):
    """Replace the data files with demo users and patient records."""
    context = get_context()
    count = context.config.demo_patients if count is None else count

    existing = [p for p in (context.users_file, context.patients_file) if p.exists()]
    if existing and not context.confirm_action("Existing data files will be replaced. Continue?", assume_yes=yes):
        context.print_warning("Aborted, no files changed.")
        raise typer.Exit(1)

    try:
        summary = write_demo_data(context.users_file, context.patients_file, count=count, seed=seed)
    except OSError as e:
        context.print_error(str(e))
        raise typer.Exit(1)

    context.print_success(f"Created {summary.users_file} with {summary.users} users")
    context.print_success(f"Created {summary.patients_file} with {summary.patients} patient records")

    table = Table(title="Demo accounts", box=box.ROUNDED, header_style="bold cyan")
    table.add_column("Role", style="bold")
    table.add_column("Email", style="green")
    table.add_column("Password", style="yellow")
    table.add_row("admin", "admin@email.com", "admin123")
    table.add_row("professional", "pro@email.com", "pro123")
    table.add_row("patient", "patient@email.com", "patient123")
    context.print(table)
    context.print(f"[dim]{count} random patients assigned to professional ID 22333[/dim]")


@app.command("config-show")
def show_config_command():
    """Display the effective configuration."""
    context = get_context()

    table = Table(
        title="Current Configuration",
        box=box.ROUNDED,
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("Setting", style="bold", no_wrap=True)
    table.add_column("Value", style="green")
    table.add_column("Status", style="blue")

    for field_name in AppConfig.model_fields:
        value = getattr(context.config, field_name)
        status = ""
        if isinstance(value, Path):
            status = "exists" if value.exists() else "missing"
        table.add_row(field_name, str(value), status)

    context.print(table)


@app.command("config-init")
def init_config_command(
    path: Path = typer.Option(
        Path(PROJECT_CONFIG_NAME),
        "--path",
        "-p",
        help="Where to write the config file"
    ),
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Overwrite an existing config file"
    ),
):
    """Write the current configuration to a JSON file."""
    context = get_context()
    if path.exists() and not force:
        context.print_error(f"{path} already exists (use --force to overwrite)")
        raise typer.Exit(1)

    context.config.save(path)
    context.print_success(f"Configuration written to [cyan]{path}[/cyan]")


def main():
    """Main entry point for the CLI application."""
    app()


if __name__ == "__main__":
    main()
