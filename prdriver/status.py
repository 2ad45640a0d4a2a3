"""Agent status values and the adapters that read them from the server.

The agent server has shipped the execution status under more than one field
name. Each adapter below describes one known API shape; which one is used is
a configuration choice (``Settings.status_api``), so a future rename only
needs a new adapter entry here.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, Dict, Protocol, Sequence, Type

from .log import get_logger

logger = get_logger(__name__)


class ExecutionStatus(str, Enum):
    """Statuses known to this client. The server may send others."""

    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    WAITING_FOR_CONFIRMATION = "waiting_for_confirmation"
    FINISHED = "finished"
    ERROR = "error"
    STUCK = "stuck"


class StatusFieldMissingError(LookupError):
    """None of the expected status fields were present in conversation info."""

    def __init__(self, fields: Sequence[str], payload: Any):
        self.fields = tuple(fields)
        self.payload = payload
        super().__init__(
            f"{'/'.join(self.fields)} missing in conversation info: {json.dumps(payload, default=str)}"
        )


class StatusSource(Protocol):
    async def get_agent_status(self) -> str: ...


class ConversationInfoProvider(Protocol):
    async def get_conversation_info(self, refresh: bool = False) -> Dict[str, Any]: ...


class ConversationInfoStatusSource:
    """Read the status from conversation info, trying ``status_fields`` in order."""

    status_fields: Sequence[str] = ()

    def __init__(self, state: ConversationInfoProvider):
        self.state = state

    async def get_agent_status(self) -> str:
        info = await self.state.get_conversation_info(refresh=True)
        for name in self.status_fields:
            value = info.get(name)
            if value is not None:
                return str(value)
        raise StatusFieldMissingError(self.status_fields, info)


class ExecutionStatusSource(ConversationInfoStatusSource):
    """Current API: ``execution_status``."""

    status_fields = ("execution_status",)


class AgentStatusSource(ConversationInfoStatusSource):
    """Legacy API: ``agent_status``."""

    status_fields = ("agent_status",)


class CompatStatusSource(ConversationInfoStatusSource):
    """Servers in the middle of the rename: prefer the new field."""

    status_fields = ("execution_status", "agent_status")


STATUS_SOURCES: Dict[str, Type[ConversationInfoStatusSource]] = {
    "current": ExecutionStatusSource,
    "legacy": AgentStatusSource,
    "compat": CompatStatusSource,
}


def status_source_for(state: ConversationInfoProvider, api: str = "compat") -> ConversationInfoStatusSource:
    """Pick the status adapter for the configured API shape."""
    try:
        source_cls = STATUS_SOURCES[api]
    except KeyError:
        raise ValueError(
            f"Unknown status API {api!r}; expected one of: {', '.join(sorted(STATUS_SOURCES))}"
        ) from None
    logger.debug("Reading agent status via %s", source_cls.__name__)
    return source_cls(state)
