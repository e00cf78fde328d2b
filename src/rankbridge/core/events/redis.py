"""
Redis Pub/Sub exchange bus implementation.

Manifesto:
    The bridge and the voice-platform service are separate processes.
    Redis Pub/Sub gives them a shared channel with fire-and-forget
    delivery, minimal latency and no schema overhead beyond the text
    command grammar.

Messages are raw UTF-8 text on a single channel (``exchange`` by
default). Redis echoes a client's own publishes back to its
subscription, which is harmless because reply verbs never match
request verbs. Each received message is dispatched on its own task,
so a handler waiting on upstream never holds up the next command.

Tags:
    rankbridge, events, redis, pub-sub, multi-process, async

Doc-Types:
    api-reference
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass
from typing import Any

import redis.asyncio as aioredis

from rankbridge.core.events import MessageHandler
from rankbridge.core.logging import get_logger

__all__ = ["RedisMessageBus"]

logger = get_logger(__name__)


@dataclass
class Subscription:
    """Internal subscription record."""

    id: str
    handler: MessageHandler


class RedisMessageBus:
    """Redis Pub/Sub backend shared with the voice-platform service.

    Example::

        bus = RedisMessageBus("redis://localhost:6379/0")
        await bus.connect()
        await bus.subscribe(handler)
        await bus.publish("update_rank abc 12")
    """

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379/0",
        *,
        channel: str = "exchange",
    ) -> None:
        self._redis_url = redis_url
        self._channel = channel
        self._subscriptions: dict[str, Subscription] = {}
        self._redis: Any = None
        self._pubsub: Any = None
        self._listener_task: asyncio.Task | None = None
        self._dispatch_tasks: set[asyncio.Task] = set()
        self._closed = False

    async def connect(self) -> None:
        """Connect to Redis and start listening on the channel."""
        self._redis = aioredis.from_url(self._redis_url, decode_responses=True)
        self._pubsub = self._redis.pubsub()
        await self._pubsub.subscribe(self._channel)
        self._listener_task = asyncio.create_task(self._listen())
        logger.info("bus_connected", backend="redis", channel=self._channel)

    async def _listen(self) -> None:
        """Background task to receive and dispatch messages."""
        try:
            async for message in self._pubsub.listen():
                if self._closed:
                    break
                if message["type"] != "message":
                    continue

                data = message["data"]
                if isinstance(data, bytes):
                    data = data.decode("utf-8", errors="replace")
                # Later messages never wait on handlers for earlier ones
                task = asyncio.create_task(self._dispatch(data))
                self._dispatch_tasks.add(task)
                task.add_done_callback(self._dispatch_tasks.discard)

        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.error("bus_listener_error", error=str(e))

    async def _dispatch(self, message: str) -> None:
        """Dispatch a message to every handler."""
        handlers = [(sub.id, sub.handler) for sub in self._subscriptions.values()]
        if not handlers:
            return

        async def safe_call(sub_id: str, handler: MessageHandler) -> None:
            try:
                await handler(message)
            except Exception as e:
                logger.warning(
                    "bus_handler_error",
                    subscription_id=sub_id,
                    message=message,
                    error=str(e),
                )

        await asyncio.gather(
            *[safe_call(sub_id, handler) for sub_id, handler in handlers],
            return_exceptions=True,
        )

    async def publish(self, message: str) -> None:
        """Publish a message to the channel."""
        if self._redis is None:
            raise RuntimeError("RedisMessageBus not connected. Call connect() first.")
        await self._redis.publish(self._channel, message)

    async def subscribe(self, handler: MessageHandler) -> str:
        sub_id = f"redis_sub_{uuid.uuid4().hex[:12]}"
        self._subscriptions[sub_id] = Subscription(id=sub_id, handler=handler)
        return sub_id

    async def unsubscribe(self, subscription_id: str) -> None:
        self._subscriptions.pop(subscription_id, None)

    async def close(self) -> None:
        """Close Redis connections and stop listener."""
        self._closed = True

        if self._listener_task:
            self._listener_task.cancel()
            try:
                await self._listener_task
            except asyncio.CancelledError:
                pass

        pending = list(self._dispatch_tasks)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._dispatch_tasks.clear()

        if self._pubsub:
            await self._pubsub.unsubscribe()
            await self._pubsub.aclose()

        if self._redis:
            await self._redis.aclose()

        self._subscriptions.clear()

    @property
    def subscription_count(self) -> int:
        return len(self._subscriptions)
