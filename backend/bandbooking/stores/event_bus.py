from __future__ import annotations

import asyncio
import json
import logging
from collections import defaultdict
from typing import Any, DefaultDict, Optional


logger = logging.getLogger(__name__)


class EventBus:
    """Simple in-memory event bus for streaming user-facing notices."""

    def __init__(self) -> None:
        self._queues: DefaultDict[str, asyncio.Queue[dict[str, Any]]] = defaultdict(asyncio.Queue)

    async def publish(self, channel: str, event: dict[str, Any]) -> None:
        await self._queues[channel].put(event)
        logger.info(
            "notice_event",
            extra={
                "channel": channel,
                "event": event,
                "event_json": json.dumps(event, default=str),
            },
        )

    async def next_event(self, channel: str, timeout: float) -> Optional[dict[str, Any]]:
        try:
            return await asyncio.wait_for(self._queues[channel].get(), timeout)
        except asyncio.TimeoutError:
            return None

    def drain(self, channel: str) -> list[dict[str, Any]]:
        queue = self._queues[channel]
        events: list[dict[str, Any]] = []
        while not queue.empty():
            events.append(queue.get_nowait())
        return events


event_bus = EventBus()


def get_event_bus() -> EventBus:
    return event_bus
