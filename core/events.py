import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Union

logger = logging.getLogger(__name__)

# Broadcast on every attempt state transition
ATTESTATION_STATE = "attestation.state"

Listener = Callable[[Dict[str, Any]], Union[None, Awaitable[None]]]


class EventBus:
    """Minimal async event bus for in-process notifications."""

    def __init__(self):
        self._subscribers: Dict[str, List[Listener]] = {}
        self._lock = asyncio.Lock()

    async def subscribe(self, event_name: str, callback: Listener) -> None:
        async with self._lock:
            self._subscribers.setdefault(event_name, []).append(callback)

    async def unsubscribe(self, event_name: str, callback: Listener) -> None:
        async with self._lock:
            if event_name in self._subscribers:
                self._subscribers[event_name] = [cb for cb in self._subscribers[event_name] if cb != callback]

    async def broadcast(self, event_name: str, payload: Dict[str, Any]) -> None:
        async with self._lock:
            callbacks = list(self._subscribers.get(event_name, []))
        for cb in callbacks:
            try:
                result = cb(payload)
                if asyncio.iscoroutine(result):
                    await result
            except Exception:
                # one broken listener must not starve the others
                logger.exception(f"[EVENTS] Listener failed for {event_name}")
