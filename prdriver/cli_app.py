"""Typer-based CLI for prdriver."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated, Optional

import httpx
import typer

from .cli import load_task, run_make_pr
from .config import Settings, load_settings
from .formatting import FormatMode
from .log import get_logger, setup_logging
from .prompts import DEFAULT_BRANCH_PREFIX, DEFAULT_PR_TITLE, DEFAULT_REPO
from .status import StatusFieldMissingError
from .waiter import CompletionTimeoutError, ErrorBudgetExceededError, WaitOptions

logger = get_logger(__name__)

USAGE = "Usage: prdriver [OPTIONS] WORKSPACE_DIR"

app = typer.Typer(
    name="prdriver",
    help="Drive a remote coding agent through a branch/commit/pull-request task.",
    add_completion=False,
)


def get_settings(
    model: Optional[str] = None,
    base_url: Optional[str] = None,
    api_key: Optional[str] = None,
    verbose: bool = False,
) -> Settings:
    """Load settings with CLI overrides."""
    settings = load_settings()
    if model:
        settings.model = model
    if base_url:
        settings.base_url = base_url
    if api_key:
        settings.api_key = api_key
    if verbose:
        settings.debug = True
    return settings


@app.command()
def make_pr(
    workspace: Annotated[
        Optional[str], typer.Argument(help="Workspace directory on the agent server")
    ] = None,
    repo: Annotated[str, typer.Option(help="Remote the workspace is cloned from")] = DEFAULT_REPO,
    branch_prefix: Annotated[str, typer.Option(help="Branch name prefix; a random suffix is added")] = DEFAULT_BRANCH_PREFIX,
    title: Annotated[str, typer.Option(help="Pull request title")] = DEFAULT_PR_TITLE,
    task_file: Annotated[Optional[Path], typer.Option(help="Send this file's text as the task instead")] = None,
    transcript: Annotated[bool, typer.Option("--transcript", help="Print full event text")] = False,
    timeout: Annotated[float, typer.Option(help="Seconds to wait for the agent")] = 600.0,
    poll_interval: Annotated[float, typer.Option(help="Seconds between status checks")] = 2.0,
    max_errors: Annotated[int, typer.Option(help="Consecutive failed status checks before aborting")] = 5,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable verbose logging")] = False,
    model: Annotated[Optional[str], typer.Option(help="Override LLM model")] = None,
    base_url: Annotated[Optional[str], typer.Option(help="Override agent server URL")] = None,
    api_key: Annotated[Optional[str], typer.Option(help="Override agent server API key")] = None,
) -> None:
    """
    Ask the agent to branch, edit, commit, push and open a pull request.

    Agent activity is printed as it arrives; the command returns once the
    agent stops running.
    """
    if not workspace:
        typer.echo(USAGE, err=True)
        typer.echo("Error: missing WORKSPACE_DIR argument.", err=True)
        raise typer.Exit(1)

    settings = get_settings(model, base_url, api_key, verbose)
    setup_logging(settings.debug)

    if task_file is not None and not task_file.is_file():
        typer.echo(f"Error: Task file not found: {task_file}", err=True)
        raise typer.Exit(1)

    task = load_task(task_file, repo, branch_prefix, title)
    mode = FormatMode.TRANSCRIPT if transcript else FormatMode.PREVIEW
    wait_options = WaitOptions(
        timeout=timeout,
        max_consecutive_errors=max_errors,
        poll_interval=poll_interval,
    )

    try:
        asyncio.run(run_make_pr(workspace, settings, task, mode, wait_options))
    except (
        CompletionTimeoutError,
        ErrorBudgetExceededError,
        StatusFieldMissingError,
        httpx.HTTPError,
        ValueError,
    ) as exc:
        logger.error("Run failed: %s", exc)
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(1)


def main() -> None:
    """Entry point for the CLI application."""
    app()


if __name__ == "__main__":
    main()
