"""Exchange bus for cross-process communication.

Why This Package Exists
-----------------------
The bridge and the voice-platform companion service run as separate
processes. They talk over one shared publish/subscribe channel carrying
plain space-delimited text commands (``request_update <uid>``,
``update_rank <uid> <rank>``, ...). Every subscriber, including the
publisher itself, sees every message; the command verbs are partitioned
into request and reply verbs so a relay never reacts to its own output.

The ``MessageBus`` protocol with pluggable backends (in-memory, Redis)
keeps the relay independent of the transport. In-memory works for tests
and single-process setups; Redis Pub/Sub connects real processes.

Usage::

    from rankbridge.core.events import get_message_bus

    bus = get_message_bus()

    async def handler(message: str) -> None:
        print("got", message)

    sub_id = await bus.subscribe(handler)
    await bus.publish("request_update abcDEF123=")

Modules
-------
memory      InMemoryMessageBus -- direct delivery, single process
redis       RedisMessageBus -- Redis Pub/Sub, multi process
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from rankbridge.core.settings import BridgeSettings

__all__ = [
    "MessageBus",
    "MessageHandler",
    "get_message_bus",
    "set_message_bus",
    "build_message_bus",
]


MessageHandler = Callable[[str], Awaitable[None]]


@runtime_checkable
class MessageBus(Protocol):
    """Protocol for exchange bus implementations.

    Delivery is at-least-once from the bridge's point of view and no
    ordering across publishers is relied upon.
    """

    async def publish(self, message: str) -> None:
        """Publish a text message to every subscriber (fire-and-forget)."""
        ...

    async def subscribe(self, handler: MessageHandler) -> str:
        """Register an async handler for every message on the channel.

        Returns:
            Subscription ID for later unsubscription
        """
        ...

    async def unsubscribe(self, subscription_id: str) -> None:
        """Remove a subscription."""
        ...

    async def close(self) -> None:
        """Clean up resources (connections, listener tasks)."""
        ...


# ── Default Message Bus Singleton ────────────────────────────────────────

_message_bus: MessageBus | None = None


def get_message_bus() -> MessageBus:
    """Get the global bus instance, creating an in-memory one if unset."""
    global _message_bus
    if _message_bus is None:
        from rankbridge.core.events.memory import InMemoryMessageBus
        _message_bus = InMemoryMessageBus()
    return _message_bus


def set_message_bus(bus: MessageBus | None) -> None:
    """Set (or clear, with ``None``) the global bus instance."""
    global _message_bus
    _message_bus = bus


def build_message_bus(settings: BridgeSettings) -> MessageBus:
    """Create the backend selected by ``settings.bus_backend``.

    A Redis bus still needs ``await bus.connect()`` before use.
    """
    if settings.bus_backend == "redis":
        from rankbridge.core.events.redis import RedisMessageBus
        return RedisMessageBus(settings.redis_url, channel=settings.exchange_channel)

    from rankbridge.core.events.memory import InMemoryMessageBus
    return InMemoryMessageBus()
