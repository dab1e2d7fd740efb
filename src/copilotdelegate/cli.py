"""CLI entrypoint for copilot-delegate.

Inside a GitHub Actions job the inputs arrive as INPUT_* environment
variables and context as GITHUB_*; every option below can override them
for local runs.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__, actions
from .config import Config, ConfigError
from .injection import detect_prompt_injection
from .log_utils import create_run_logger, setup_logging
from .orchestrator import DelegateOrchestrator
from .validation import ValidationError, load_file

app = typer.Typer(
    name="copilot-delegate",
    help="Delegate repository changes to GitHub Copilot and open a pull request.",
    add_completion=False,
)

console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"copilot-delegate version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Delegate repository changes to GitHub Copilot."""
    pass


@app.command()
def run(
    token: Optional[str] = typer.Option(
        None,
        "--token",
        help="GitHub token (default: INPUT_PRIVATE_TOKEN).",
        show_default=False,
    ),
    filename: Optional[str] = typer.Option(
        None,
        "--filename",
        "-f",
        help="Instruction file relative to the workspace (default: INPUT_FILENAME).",
    ),
    branch: Optional[str] = typer.Option(
        None,
        "--branch",
        "-b",
        help="Base branch for the pull request (default: INPUT_BRANCH or 'main').",
    ),
    workspace: Optional[Path] = typer.Option(
        None,
        "--workspace",
        "-w",
        help="Repository checkout to work in (default: GITHUB_WORKSPACE or CWD).",
    ),
    repository: Optional[str] = typer.Option(
        None,
        "--repository",
        "-r",
        help="Repository as owner/repo (default: GITHUB_REPOSITORY).",
    ),
    mock: bool = typer.Option(
        False,
        "--mock",
        "-m",
        help="Run without starting Copilot (mock assistant).",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        help="Enable verbose output.",
    ),
) -> None:
    """Run the delegate pipeline: Copilot, branch, commit, pull request.

    Examples:
        # Inside a workflow step (inputs come from the environment):
        copilot-delegate run

        # Locally, against a checkout:
        copilot-delegate run --token "$GH_TOKEN" --repository me/repo --filename TODO.md
    """
    try:
        config = Config.from_env(workspace.resolve() if workspace else None)
    except ConfigError as exc:
        console.print(f"[red]Configuration error:[/red] {escape(str(exc))}")
        actions.set_failed(f"Action failed: {exc}")
        raise typer.Exit(1)

    if token:
        config.token = token
    if filename is not None:
        config.filename = filename.strip()
    if branch:
        config.base_branch = branch
    if repository:
        config.repository = repository
    if mock:
        config.mock_mode = True

    setup_logging(verbose, secrets=[config.token] if config.token else None, console=console, level=config.log_level)
    if config.token and actions.in_workflow():
        actions.add_mask(config.token)

    run_logger = create_run_logger(secrets=[config.token] if config.token else None)
    result = DelegateOrchestrator(config, logger=run_logger).run()

    table = Table(title="Delegate run", show_header=False)
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    table.add_row("Status", "[green]success[/green]" if result.success else "[red]failed[/red]")
    table.add_row("Stage", result.stage.value)
    table.add_row("Branch", result.branch or "-")
    table.add_row("Pull request", f"#{result.pr_number}" if result.pr_number else "-")
    if result.error:
        table.add_row("Error", result.error)
    console.print(table)

    if not result.success:
        raise typer.Exit(1)


@app.command()
def check(
    filename: str = typer.Argument(..., help="Instruction file relative to the workspace."),
    workspace: Optional[Path] = typer.Option(
        None,
        "--workspace",
        "-w",
        help="Directory the file must live under (default: CWD).",
    ),
) -> None:
    """Validate an instruction file without running Copilot."""
    try:
        validated = load_file(filename, base_dir=(workspace or Path.cwd()).resolve())
    except ValidationError as exc:
        console.print(f"[red]Error:[/red] {escape(str(exc))}")
        raise typer.Exit(1)

    injection = detect_prompt_injection(validated.content)

    table = Table(title=f"Instruction file: {validated.sanitized_name}", show_header=False)
    table.add_column("Check", style="cyan")
    table.add_column("Result")
    table.add_row("Path", str(validated.path))
    table.add_row("Size", f"{validated.size_bytes} bytes")
    table.add_row(
        "Prompt injection",
        "[green]clean[/green]" if injection.is_valid else f"[red]{injection.reason}[/red]",
    )
    console.print(table)

    if not injection.is_valid:
        raise typer.Exit(1)
