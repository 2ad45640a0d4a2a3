"""Render agent events and statuses as console text."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from .events import (
    ActionEvent,
    AgentErrorEvent,
    AgentEvent,
    MessageEvent,
    Observation,
    ObservationEvent,
    PauseEvent,
    SystemPromptEvent,
    parse_event,
)


class FormatMode(str, Enum):
    PREVIEW = "preview"
    TRANSCRIPT = "transcript"


@dataclass(frozen=True)
class _Layout:
    message_budget: Optional[int]
    command_budget: Optional[int]
    thought_budget: Optional[int]
    observation_budget: Optional[int]
    fragment_sep: str
    line_sep: str


_LAYOUTS: Dict[FormatMode, _Layout] = {
    FormatMode.PREVIEW: _Layout(
        message_budget=200,
        command_budget=100,
        thought_budget=150,
        observation_budget=150,
        fragment_sep=" ",
        line_sep=" | ",
    ),
    FormatMode.TRANSCRIPT: _Layout(
        message_budget=None,
        command_budget=None,
        thought_budget=None,
        observation_budget=None,
        fragment_sep="\n",
        line_sep="\n",
    ),
}

STATUS_LABELS: Dict[str, str] = {
    "idle": "Idle - Waiting for input",
    "running": "Running - Agent is working...",
    "paused": "Paused - Execution paused",
    "waiting_for_confirmation": "Awaiting Confirmation",
    "finished": "Finished - Task completed",
    "error": "Error - Task failed",
    "stuck": "Stuck - Agent needs help",
}


def truncate(text: str, budget: Optional[int]) -> str:
    """Cut ``text`` to ``budget`` characters and mark the cut with ``...``."""
    if budget is None or len(text) <= budget:
        return text
    return f"{text[:budget]}..."


def _format_message(event: MessageEvent, layout: _Layout) -> str | None:
    msg = event.llm_message
    if msg is None:
        return None
    role = (msg.role or "").upper() or "MESSAGE"
    fragments = [block.text or ("[image]" if block.image_url else "") for block in msg.content]
    content = layout.fragment_sep.join(f for f in fragments if f)
    if not content:
        return None
    return f"[{role}] {truncate(content, layout.message_budget)}"


def _format_action(event: ActionEvent, layout: _Layout) -> str | None:
    action = event.action
    if action is None:
        return None
    action_type = action.type or action.kind or "action"

    lines: List[str] = []
    if action.thought:
        lines.append(f"[THOUGHT] {truncate(action.thought, layout.thought_budget)}")
    if action.command:
        lines.append(f"[ACTION:{action_type}] $ {truncate(action.command, layout.command_budget)}")
    elif action.path:
        lines.append(f"[ACTION:{action_type}] {action.path}")
    elif not lines:
        lines.append(f"[ACTION:{action_type}]")
    return layout.line_sep.join(lines)


def _format_observation(event: ObservationEvent, layout: _Layout) -> str:
    tool_name = event.tool_name or "tool"
    obs = event.observation
    text = obs.output if isinstance(obs, Observation) else obs
    if text:
        return f"[RESULT:{tool_name}] {truncate(text, layout.observation_budget)}"
    return f"[RESULT:{tool_name}] (completed)"


def _format_error(event: AgentErrorEvent) -> str:
    detail = event.observation
    err_msg = (detail.error or detail.message) if detail else None
    return f"[ERROR] {err_msg or 'Unknown error'}"


def format_event(
    event: AgentEvent | Mapping[str, Any],
    mode: FormatMode = FormatMode.PREVIEW,
) -> str | None:
    """Return one display string for ``event``, or None to suppress it.

    Raw mappings are parsed first. State updates and unrecognized kinds are
    treated as noise and never rendered.
    """
    if isinstance(event, Mapping):
        event = parse_event(event)
    layout = _LAYOUTS[FormatMode(mode)]

    if isinstance(event, MessageEvent):
        return _format_message(event, layout)
    if isinstance(event, ActionEvent):
        return _format_action(event, layout)
    if isinstance(event, ObservationEvent):
        return _format_observation(event, layout)
    if isinstance(event, AgentErrorEvent):
        return _format_error(event)
    if isinstance(event, PauseEvent):
        return "[PAUSED] Agent execution paused"
    if isinstance(event, SystemPromptEvent):
        return "[SYSTEM] System prompt initialized"
    return None


def format_status(status: str) -> str:
    """Human label for a status; unknown values pass through unchanged."""
    return STATUS_LABELS.get(status, status)
