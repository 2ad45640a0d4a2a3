"""Thin async client for an agent server conversation."""

from __future__ import annotations

import asyncio
import json
from collections import Counter
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Set

import httpx

from .config import Settings
from .events import (
    ActionEvent,
    AgentEvent,
    ConversationStateUpdateEvent,
    MessageEvent,
    ObservationEvent,
    parse_event,
)
from .log import get_logger

logger = get_logger(__name__)

FULL_STATE_KEY = "__full_state__"
EVENTS_PAGE_LIMIT = 100

EventCallback = Callable[[AgentEvent], None]


def build_client(settings: Settings) -> httpx.AsyncClient:
    """Create an HTTP client bound to the agent server."""
    headers = {"X-Session-API-Key": settings.api_key} if settings.api_key else {}
    return httpx.AsyncClient(
        base_url=settings.base_url.rstrip("/"),
        headers=headers,
        timeout=settings.request_timeout,
    )


def build_agent_payload(model: str, llm_api_key: str, tools: List[str] | None = None) -> Dict[str, Any]:
    """Agent payload for a coding agent with terminal and editor tools."""
    tool_names = tools or ["terminal", "file_editor", "task_tracker"]
    return {
        "kind": "Agent",
        "llm": {"model": model, "api_key": llm_api_key},
        "tools": [{"name": name} for name in tool_names],
    }


def _unwrap(data: Any) -> Dict[str, Any]:
    # Some server versions wrap conversation info as {"full_state": {...}}
    if isinstance(data, dict) and isinstance(data.get("full_state"), dict):
        return data["full_state"]
    if not isinstance(data, dict):
        raise ValueError(f"Unexpected conversation info payload: {json.dumps(data, default=str)}")
    return data


@dataclass
class ConversationStats:
    total_events: int = 0
    message_events: int = 0
    action_events: int = 0
    observation_events: int = 0


class RemoteState:
    """Cached view of remote conversation info.

    Reads and updates are serialized through one lock so a REST refresh and a
    pushed state update never interleave.
    """

    def __init__(self, client: httpx.AsyncClient, conversation_id: str):
        self.client = client
        self.conversation_id = conversation_id
        self.cached_state: Optional[Dict[str, Any]] = None
        self._lock = asyncio.Lock()

    async def get_conversation_info(self, refresh: bool = False) -> Dict[str, Any]:
        async with self._lock:
            if self.cached_state is not None and not refresh:
                return self.cached_state
            response = await self.client.get(f"/api/conversations/{self.conversation_id}")
            response.raise_for_status()
            # A refresh replaces the cache so keys the server dropped do not linger
            self.cached_state = dict(_unwrap(response.json()))
            return self.cached_state

    async def update_from_event(self, event: ConversationStateUpdateEvent) -> None:
        async with self._lock:
            if self.cached_state is None:
                self.cached_state = {}
            if event.key == FULL_STATE_KEY:
                if isinstance(event.value, dict):
                    self.cached_state.update(event.value)
            elif event.key:
                self.cached_state[event.key] = event.value


class RemoteConversation:
    """A started conversation plus a background event pump."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        conversation_id: str,
        callback: Optional[EventCallback] = None,
        event_poll_interval: float = 1.0,
    ):
        self.client = client
        self.id = conversation_id
        self.callback = callback
        self.event_poll_interval = event_poll_interval
        self.state = RemoteState(client, conversation_id)
        self._seen_ids: Set[str | int] = set()
        self._kinds: Counter[str] = Counter()
        self._page_id: Optional[str] = None
        self._pump: Optional[asyncio.Task[None]] = None
        self._fetch_lock = asyncio.Lock()
        self._closed = False

    @classmethod
    async def start(
        cls,
        client: httpx.AsyncClient,
        agent: Dict[str, Any],
        working_dir: str,
        initial_message: str,
        callback: Optional[EventCallback] = None,
    ) -> "RemoteConversation":
        """Create the conversation; the server starts running it immediately."""
        payload = {
            "agent": agent,
            "workspace": {"working_dir": working_dir},
            "initial_message": {
                "role": "user",
                "content": [{"type": "text", "text": initial_message}],
                "run": True,
            },
        }
        response = await client.post("/api/conversations", json=payload)
        response.raise_for_status()
        info = _unwrap(response.json())
        conversation_id = info.get("id")
        if not conversation_id:
            raise ValueError(f"Conversation id missing in response: {json.dumps(info, default=str)}")
        conversation = cls(client, str(conversation_id), callback)
        conversation.state.cached_state = dict(info)
        logger.info("Started conversation %s", conversation_id)
        return conversation

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    async def start_event_stream(self) -> None:
        if self._pump is None:
            self._pump = asyncio.create_task(self._run_pump())

    async def _run_pump(self) -> None:
        while True:
            try:
                await self.fetch_new_events()
            except (httpx.HTTPError, ValueError) as exc:
                logger.warning("Event fetch failed: %s", exc)
            except Exception:
                logger.exception("Event fetch failed")
            await asyncio.sleep(self.event_poll_interval)

    async def fetch_new_events(self) -> int:
        """Fetch unseen events and dispatch them. Returns how many were new."""
        async with self._fetch_lock:
            dispatched = 0
            while True:
                params: Dict[str, Any] = {"limit": EVENTS_PAGE_LIMIT}
                if self._page_id:
                    params["page_id"] = self._page_id
                response = await self.client.get(
                    f"/api/conversations/{self.id}/events/search", params=params
                )
                response.raise_for_status()
                data = response.json()
                if not isinstance(data, dict):
                    raise ValueError(f"Unexpected events payload: {json.dumps(data, default=str)}")
                for raw in data.get("items") or []:
                    if await self._dispatch(raw):
                        dispatched += 1
                next_page = data.get("next_page_id")
                if not next_page:
                    break
                self._page_id = next_page
            return dispatched

    async def _dispatch(self, raw: Any) -> bool:
        event_id = raw.get("id") if isinstance(raw, dict) else None
        if not isinstance(event_id, (str, int)):
            # No usable id: the serialized payload stands in for one
            event_id = json.dumps(raw, sort_keys=True, default=str)
        if event_id in self._seen_ids:
            return False
        self._seen_ids.add(event_id)

        event = parse_event(raw)
        self._kinds[type(event).__name__] += 1
        if isinstance(event, ConversationStateUpdateEvent):
            await self.state.update_from_event(event)

        if self.callback is not None:
            try:
                self.callback(event)
            except Exception:
                logger.exception("Event callback failed for %s", type(event).__name__)
        return True

    async def conversation_stats(self) -> ConversationStats:
        """Drain outstanding events, then report what was received."""
        await self.fetch_new_events()
        return ConversationStats(
            total_events=sum(self._kinds.values()),
            message_events=self._kinds[MessageEvent.__name__],
            action_events=self._kinds[ActionEvent.__name__],
            observation_events=self._kinds[ObservationEvent.__name__],
        )

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._pump is not None:
            self._pump.cancel()
            try:
                await self._pump
            except asyncio.CancelledError:
                pass
            except Exception:
                logger.exception("Event pump for %s ended with an error", self.id)
            self._pump = None
        await self.client.aclose()
        logger.debug("Closed conversation %s", self.id)
