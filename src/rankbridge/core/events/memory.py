"""
In-memory exchange bus implementation.

Manifesto:
    Tests and single-process setups need a zero-dependency bus that
    delivers messages immediately without external infrastructure.

Messages are delivered to every subscriber, the publisher's own
handlers included, mirroring what a shared broker channel does.

Tags:
    rankbridge, events, in-memory, asyncio, testing

Doc-Types:
    api-reference
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass

from rankbridge.core.events import MessageHandler
from rankbridge.core.logging import get_logger

__all__ = ["InMemoryMessageBus"]

logger = get_logger(__name__)


@dataclass
class Subscription:
    """Internal subscription record."""

    id: str
    handler: MessageHandler


class InMemoryMessageBus:
    """In-process bus for tests and single-node deployments.

    Example::

        bus = InMemoryMessageBus()

        async def show(message: str):
            print(message)

        await bus.subscribe(show)
        await bus.publish("request_update abc")
        # Output: request_update abc
    """

    def __init__(self) -> None:
        self._subscriptions: dict[str, Subscription] = {}
        self._history: list[str] = []
        self._lock = asyncio.Lock()
        self._closed = False

    async def publish(self, message: str) -> None:
        """Deliver a message to all subscribers.

        Handlers are called concurrently using asyncio.gather.
        Exceptions in handlers are logged but don't stop delivery.
        """
        if self._closed:
            return

        async with self._lock:
            self._history.append(message)
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

    async def subscribe(self, handler: MessageHandler) -> str:
        sub_id = f"sub_{uuid.uuid4().hex[:12]}"

        async with self._lock:
            self._subscriptions[sub_id] = Subscription(id=sub_id, handler=handler)

        return sub_id

    async def unsubscribe(self, subscription_id: str) -> None:
        async with self._lock:
            self._subscriptions.pop(subscription_id, None)

    async def close(self) -> None:
        """Mark bus as closed and clear subscriptions."""
        self._closed = True
        async with self._lock:
            self._subscriptions.clear()

    @property
    def subscription_count(self) -> int:
        """Number of active subscriptions."""
        return len(self._subscriptions)

    @property
    def history(self) -> list[str]:
        """Every message published so far, oldest first."""
        return list(self._history)
