"""prdriver command implementations."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path

import httpx
from rich.console import Console

from .config import Settings
from .events import AgentEvent
from .formatting import FormatMode, format_event, format_status
from .log import get_logger
from .prompts import build_task_message, unique_branch_name
from .remote import ConversationStats, RemoteConversation, build_agent_payload, build_client
from .status import ExecutionStatus, status_source_for
from .waiter import WaitOptions, wait_for_completion

logger = get_logger(__name__)


# ============================================================================
# Helper Functions
# ============================================================================


def load_task(task_file: Path | None, repo: str, branch_prefix: str, title: str) -> str:
    """Return the task text: a user-supplied file, or the built-in PR task."""
    if task_file is not None:
        return task_file.read_text(encoding="utf-8").strip()
    return build_task_message(repo=repo, branch=unique_branch_name(branch_prefix), title=title)


def make_event_printer(console: Console, mode: FormatMode):
    """Callback that prints each renderable event on its own line."""

    def _print_event(event: AgentEvent) -> None:
        formatted = format_event(event, mode)
        if formatted:
            # Event text contains literal [TAGS]; don't let rich treat them as markup
            console.print(formatted, markup=False, emoji=False, highlight=False, soft_wrap=True)

    return _print_event


def print_summary(console: Console, stats: ConversationStats) -> None:
    console.print("\n[SUMMARY]", markup=False)
    console.print(f"  Total events: {stats.total_events}", highlight=False)
    console.print(f"  Messages: {stats.message_events}", highlight=False)
    console.print(f"  Actions: {stats.action_events}", highlight=False)
    console.print(f"  Observations: {stats.observation_events}", highlight=False)


# ============================================================================
# Command Implementations
# ============================================================================


async def run_make_pr(
    workspace_dir: str,
    settings: Settings,
    task: str,
    mode: FormatMode = FormatMode.PREVIEW,
    wait_options: WaitOptions | None = None,
    console: Console | None = None,
) -> str:
    """Run the PR task on the agent server and wait for it to stop.

    Returns the terminal agent status.
    """
    console = console or Console()
    wait_options = wait_options or WaitOptions()

    def _on_status_change(status: str) -> None:
        console.print(f"\n[STATUS] {format_status(status)}\n", markup=False, highlight=False)

    if wait_options.on_status_change is None:
        wait_options = replace(wait_options, on_status_change=_on_status_change)

    client = build_client(settings)
    try:
        conversation = await RemoteConversation.start(
            client,
            agent=build_agent_payload(settings.model, settings.llm_api_key),
            working_dir=workspace_dir,
            initial_message=task,
            callback=make_event_printer(console, mode),
        )
    except BaseException:
        await client.aclose()
        raise

    try:
        console.print(f"Conversation ID: {conversation.id}", highlight=False)
        await conversation.start_event_stream()

        source = status_source_for(conversation.state, settings.status_api)
        status = await wait_for_completion(source, wait_options)

        try:
            stats = await conversation.conversation_stats()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Conversation stats unavailable: %s", exc)
        else:
            print_summary(console, stats)

        if status == ExecutionStatus.FINISHED:
            console.print("\n[COMPLETE] Task finished.", markup=False)
        else:
            console.print(f"\n[COMPLETE] Agent stopped: {format_status(status)}", markup=False)
        return status
    finally:
        await conversation.close()
