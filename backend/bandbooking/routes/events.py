from __future__ import annotations

import json
from typing import Any, AsyncGenerator, Dict

from fastapi import APIRouter, Depends
from sse_starlette.sse import EventSourceResponse

from bandbooking.stores.event_bus import EventBus, get_event_bus

HEARTBEAT_SECONDS = 15.0

router = APIRouter(prefix="/events", tags=["events"])


async def _notice_stream(bus: EventBus, session_id: str) -> AsyncGenerator[Dict[str, str], None]:
    yield {"event": "status", "data": json.dumps({"status": "listening", "session_id": session_id})}
    while True:
        event = await bus.next_event(session_id, timeout=HEARTBEAT_SECONDS)
        if event is None:
            yield {"event": "heartbeat", "data": json.dumps({"session_id": session_id})}
            continue
        yield {"event": str(event.get("type", "notice")), "data": json.dumps(event, default=str)}


@router.get("/{session_id}")
async def listen(session_id: str, bus: EventBus = Depends(get_event_bus)) -> EventSourceResponse:
    return EventSourceResponse(_notice_stream(bus, session_id))


@router.get("/{session_id}/pending")
async def pending_notices(session_id: str, bus: EventBus = Depends(get_event_bus)) -> Dict[str, Any]:
    """Polling alternative for clients that cannot hold an event stream open."""
    return {"session_id": session_id, "events": bus.drain(session_id)}
