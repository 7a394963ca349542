"""Room event fan-out over Redis pub/sub."""

import asyncio
import json
import logging
from typing import Awaitable, Callable, Optional

import redis.asyncio as redis

from royale.db.redis import get_redis

logger = logging.getLogger(__name__)


def room_channel(room_code: str) -> str:
    return f"room:{room_code}"


class RedisEventPublisher:
    """
    Publishes ``{"event", "payload"}`` JSON messages on ``room:<code>``.

    ``publish`` never blocks the caller: each message is sent from its own
    task and failures are only logged.
    """

    def __init__(self, client_factory: Callable[[], Awaitable[redis.Redis]] = get_redis):
        self.client_factory = client_factory
        self._pending: set[asyncio.Task] = set()

    def publish(self, room_code: str, event_name: str, payload: dict) -> None:
        message = json.dumps({"event": event_name, "payload": payload}, default=str)
        try:
            task = asyncio.get_running_loop().create_task(self._send(room_channel(room_code), message))
        except RuntimeError:
            logger.warning(f"No running event loop; dropped {event_name} for room {room_code}")
            return
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _send(self, channel: str, message: str) -> None:
        try:
            client = await self.client_factory()
            await client.publish(channel, message)
        except (redis.RedisError, OSError) as e:
            logger.error(f"Failed to publish to {channel}: {e}")

    async def flush(self) -> None:
        """Wait for messages already handed to ``publish``."""
        if self._pending:
            await asyncio.gather(*list(self._pending))

    @property
    def pending_count(self) -> int:
        return len(self._pending)


# Singleton instance
_publisher: Optional[RedisEventPublisher] = None


def get_event_publisher() -> RedisEventPublisher:
    """Get singleton event publisher."""
    global _publisher
    if _publisher is None:
        _publisher = RedisEventPublisher()
    return _publisher
