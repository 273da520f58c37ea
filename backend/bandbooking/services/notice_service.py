from __future__ import annotations

import asyncio
import logging
from typing import Dict, Optional
from uuid import uuid4

from bandbooking.stores.event_bus import EventBus, event_bus
from bandbooking.utils.config import get_settings

logger = logging.getLogger(__name__)


class NoticeService:
    """Delivers transient success notices and blocking failure alerts."""

    def __init__(self, bus: EventBus | None = None, dismiss_after: Optional[float] = None) -> None:
        self.bus = bus or event_bus
        self.dismiss_after = get_settings().success_notice_seconds if dismiss_after is None else dismiss_after
        self._active: Dict[str, asyncio.Task[None]] = {}

    @property
    def active_notices(self) -> list[str]:
        return list(self._active)

    async def success(self, channel: str, message: str) -> str:
        notice_id = uuid4().hex
        await self.bus.publish(
            channel,
            {"type": "notice", "level": "success", "id": notice_id, "message": message},
        )
        self._active[notice_id] = asyncio.create_task(self._dismiss_later(channel, notice_id))
        return notice_id

    async def alert(self, channel: str, message: str) -> None:
        await self.bus.publish(
            channel,
            {"type": "alert", "level": "error", "message": message, "requires_ack": True},
        )

    async def _dismiss_later(self, channel: str, notice_id: str) -> None:
        try:
            await asyncio.sleep(self.dismiss_after)
            await self.bus.publish(channel, {"type": "notice.dismissed", "id": notice_id})
            logger.info("Notice dismissed", extra={"channel": channel, "notice_id": notice_id})
        finally:
            self._active.pop(notice_id, None)


_notice_service: NoticeService | None = None


def get_notice_service() -> NoticeService:
    global _notice_service
    if not _notice_service:
        _notice_service = NoticeService()
    return _notice_service
