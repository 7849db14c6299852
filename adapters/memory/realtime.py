"""
In-process real-time hub.

Records every push per channel key and forwards it to any subscriber
queues for that key, the way a socket server forwards to connected rooms.
Subscribers that fall behind lose messages instead of blocking the pusher.
"""

import asyncio
from collections import defaultdict
from typing import Any

import structlog
from pydantic import BaseModel

logger = structlog.get_logger(__name__)


class RealtimeMessage(BaseModel):
    channel_key: str
    event: str
    payload: dict[str, Any]


class RealtimeHub:
    """Implements RealtimeChannel in memory."""

    def __init__(self, queue_size: int = 100) -> None:
        self.queue_size = queue_size
        self.history: list[RealtimeMessage] = []
        self._subscribers: dict[str, list[asyncio.Queue[RealtimeMessage]]] = defaultdict(list)
        self.logger = logger.bind(component="realtime_hub")

    def subscribe(self, channel_key: str) -> asyncio.Queue[RealtimeMessage]:
        queue: asyncio.Queue[RealtimeMessage] = asyncio.Queue(maxsize=self.queue_size)
        self._subscribers[channel_key].append(queue)
        return queue

    def unsubscribe(self, channel_key: str, queue: asyncio.Queue[RealtimeMessage]) -> None:
        if queue in self._subscribers.get(channel_key, []):
            self._subscribers[channel_key].remove(queue)

    async def push(self, channel_key: str, event: str, payload: dict[str, Any]) -> None:
        message = RealtimeMessage(channel_key=channel_key, event=event, payload=dict(payload))
        self.history.append(message)
        for queue in self._subscribers.get(channel_key, []):
            try:
                queue.put_nowait(message)
            except asyncio.QueueFull:
                self.logger.warning("realtime_subscriber_lagging", channel_key=channel_key)

    def messages_for(self, channel_key: str) -> list[RealtimeMessage]:
        return [m for m in self.history if m.channel_key == channel_key]
