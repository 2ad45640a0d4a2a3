"""Tests for parsing raw agent server events."""

from prdriver.events import (
    ActionEvent,
    AgentErrorEvent,
    ConversationStateUpdateEvent,
    MessageEvent,
    Observation,
    ObservationEvent,
    PauseEvent,
    SystemPromptEvent,
    UnknownEvent,
    parse_event,
)


def test_parse_message_event():
    event = parse_event(
        {
            "id": "e1",
            "kind": "MessageEvent",
            "llm_message": {
                "role": "assistant",
                "content": [{"type": "text", "text": "hi"}, {"type": "image", "image_urls": ["u"]}],
            },
        }
    )
    assert isinstance(event, MessageEvent)
    assert event.id == "e1"
    assert event.llm_message.role == "assistant"
    assert event.llm_message.content[0].text == "hi"
    assert event.llm_message.content[1].image_url == "u"


def test_parse_action_event_with_event_level_thought():
    """Thought blocks on the event are folded into the action."""
    event = parse_event(
        {
            "kind": "ActionEvent",
            "thought": [{"type": "text", "text": "first"}, {"type": "text", "text": "second"}],
            "action": {"kind": "ExecuteBashAction", "command": "ls"},
        }
    )
    assert isinstance(event, ActionEvent)
    assert event.action.thought == "first second"
    assert event.action.command == "ls"


def test_parse_action_keeps_own_thought():
    event = parse_event(
        {"kind": "ActionEvent", "thought": "outer", "action": {"thought": "inner"}}
    )
    assert event.action.thought == "inner"


def test_parse_observation_variants():
    as_text = parse_event({"kind": "ObservationEvent", "observation": "plain"})
    as_obj = parse_event({"kind": "ObservationEvent", "tool_name": "t", "observation": {"output": "x"}})
    missing = parse_event({"kind": "ObservationEvent"})
    assert isinstance(as_text, ObservationEvent)
    assert as_text.observation == "plain"
    assert as_obj.observation == Observation(output="x")
    assert missing.observation is None


def test_parse_agent_error_nested_and_flat():
    nested = parse_event({"kind": "AgentErrorEvent", "observation": {"error": "nested"}})
    flat = parse_event({"kind": "AgentErrorEvent", "error": "flat"})
    assert isinstance(nested, AgentErrorEvent)
    assert nested.observation.error == "nested"
    assert flat.observation.error == "flat"


def test_parse_fixed_and_state_events():
    assert isinstance(parse_event({"kind": "PauseEvent"}), PauseEvent)
    assert isinstance(parse_event({"kind": "SystemPromptEvent"}), SystemPromptEvent)
    update = parse_event({"kind": "ConversationStateUpdateEvent", "key": "k", "value": {"a": 1}})
    assert isinstance(update, ConversationStateUpdateEvent)
    assert update.key == "k"
    assert update.value == {"a": 1}


def test_parse_unknown_and_garbage():
    unknown = parse_event({"kind": "Brand New", "id": "z"})
    assert isinstance(unknown, UnknownEvent)
    assert unknown.kind == "Brand New"
    assert unknown.raw["id"] == "z"
    assert isinstance(parse_event(None), UnknownEvent)
    assert isinstance(parse_event(["not", "a", "dict"]), UnknownEvent)


def test_wrong_field_types_become_none():
    event = parse_event({"kind": "ActionEvent", "action": {"command": 42, "path": ["x"]}})
    assert event.action.command is None
    assert event.action.path is None
