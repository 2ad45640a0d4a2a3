"""Event types received from the agent server."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Tuple


@dataclass(frozen=True)
class ContentBlock:
    """One fragment of an LLM message."""
    text: str | None = None
    image_url: str | None = None


@dataclass(frozen=True)
class LLMMessage:
    role: str | None = None
    content: Tuple[ContentBlock, ...] = ()


@dataclass(frozen=True)
class Action:
    type: str | None = None
    kind: str | None = None
    command: str | None = None
    path: str | None = None
    thought: str | None = None


@dataclass(frozen=True)
class Observation:
    """Structured tool output."""
    output: str | None = None


@dataclass(frozen=True)
class ErrorDetail:
    error: str | None = None
    message: str | None = None


@dataclass(frozen=True)
class MessageEvent:
    """Agent or user message."""
    id: str | None = None
    llm_message: LLMMessage | None = None


@dataclass(frozen=True)
class ActionEvent:
    """Agent is calling a tool."""
    id: str | None = None
    action: Action | None = None


@dataclass(frozen=True)
class ObservationEvent:
    """Tool execution completed."""
    id: str | None = None
    tool_name: str | None = None
    observation: str | Observation | None = None


@dataclass(frozen=True)
class AgentErrorEvent:
    """The agent reported an error."""
    id: str | None = None
    observation: ErrorDetail | None = None


@dataclass(frozen=True)
class PauseEvent:
    id: str | None = None


@dataclass(frozen=True)
class SystemPromptEvent:
    id: str | None = None


@dataclass(frozen=True)
class ConversationStateUpdateEvent:
    """A partial or full snapshot of remote conversation state."""
    id: str | None = None
    key: str | None = None
    value: Any = None


@dataclass(frozen=True)
class UnknownEvent:
    """Any kind this client does not recognize."""
    id: str | None = None
    kind: str | None = None
    raw: Dict[str, Any] = field(default_factory=dict)


# Type alias for any event
AgentEvent = (
    MessageEvent
    | ActionEvent
    | ObservationEvent
    | AgentErrorEvent
    | PauseEvent
    | SystemPromptEvent
    | ConversationStateUpdateEvent
    | UnknownEvent
)


# ============================================================================
# Parsing
# ============================================================================


def _str(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _text(value: Any) -> str | None:
    """Accept a plain string or a list of text blocks."""
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        parts = [item.get("text") for item in value if isinstance(item, Mapping)]
        joined = " ".join(p for p in parts if isinstance(p, str) and p)
        return joined or None
    return None


def _content_block(raw: Any) -> ContentBlock:
    if isinstance(raw, str):
        return ContentBlock(text=raw)
    if not isinstance(raw, Mapping):
        return ContentBlock()
    image_url = _str(raw.get("image_url"))
    if image_url is None:
        urls = raw.get("image_urls")
        if isinstance(urls, list) and urls:
            image_url = _str(urls[0])
    return ContentBlock(text=_str(raw.get("text")), image_url=image_url)


def _llm_message(raw: Any) -> LLMMessage | None:
    if not isinstance(raw, Mapping):
        return None
    content = raw.get("content")
    if isinstance(content, str):
        blocks: Tuple[ContentBlock, ...] = (ContentBlock(text=content),)
    elif isinstance(content, list):
        blocks = tuple(_content_block(item) for item in content)
    else:
        blocks = ()
    return LLMMessage(role=_str(raw.get("role")), content=blocks)


def _action(raw: Any) -> Action | None:
    if not isinstance(raw, Mapping):
        return None
    return Action(
        type=_str(raw.get("type")),
        kind=_str(raw.get("kind")),
        command=_str(raw.get("command")),
        path=_str(raw.get("path")),
        thought=_text(raw.get("thought")),
    )


def _observation(raw: Any) -> str | Observation | None:
    if isinstance(raw, str):
        return raw
    if isinstance(raw, Mapping):
        return Observation(output=_str(raw.get("output")))
    return None


def _error_detail(raw: Mapping[str, Any]) -> ErrorDetail:
    nested = raw.get("observation")
    source = nested if isinstance(nested, Mapping) else raw
    return ErrorDetail(error=_str(source.get("error")), message=_str(source.get("message")))


def parse_event(raw: Any) -> AgentEvent:
    """Build a typed event from decoded JSON. Never raises."""
    if not isinstance(raw, Mapping):
        return UnknownEvent()

    kind = raw.get("kind")
    event_id = _str(raw.get("id"))

    if kind == "MessageEvent":
        return MessageEvent(id=event_id, llm_message=_llm_message(raw.get("llm_message")))
    if kind == "ActionEvent":
        action = _action(raw.get("action"))
        # Newer servers put the thought on the event rather than the action
        event_thought = _text(raw.get("thought"))
        if action is not None and action.thought is None and event_thought:
            action = Action(
                type=action.type,
                kind=action.kind,
                command=action.command,
                path=action.path,
                thought=event_thought,
            )
        return ActionEvent(id=event_id, action=action)
    if kind == "ObservationEvent":
        return ObservationEvent(
            id=event_id,
            tool_name=_str(raw.get("tool_name")),
            observation=_observation(raw.get("observation")),
        )
    if kind == "AgentErrorEvent":
        return AgentErrorEvent(id=event_id, observation=_error_detail(raw))
    if kind == "PauseEvent":
        return PauseEvent(id=event_id)
    if kind == "SystemPromptEvent":
        return SystemPromptEvent(id=event_id)
    if kind == "ConversationStateUpdateEvent":
        return ConversationStateUpdateEvent(id=event_id, key=_str(raw.get("key")), value=raw.get("value"))

    return UnknownEvent(id=event_id, kind=_str(kind), raw=dict(raw))
