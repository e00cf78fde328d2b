"""Service wiring.

:class:`RankBridge` assembles the correlator, the lifecycle manager and
the relay around one logged-in platform client, one identity store and
one exchange bus::

    bridge = RankBridge.from_settings(platform, store, bus, get_settings())
    await bridge.start()
    ...
    await bridge.stop()

Login, server directory and sentry files belong to whoever builds the
platform client.
"""

from __future__ import annotations

from rankbridge.bridge.correlator import DEFAULT_TIMEOUT_SECONDS, RankRequestCorrelator
from rankbridge.bridge.lifecycle import FriendshipLifecycleManager
from rankbridge.bridge.relay import ExchangeRelay
from rankbridge.bridge.resolver import DEFAULT_COMMUNITY_URL, profile_url_for
from rankbridge.core.events import MessageBus
from rankbridge.core.logging import get_logger
from rankbridge.core.protocols import IdentityStore, PlatformClient
from rankbridge.core.settings import BridgeSettings

logger = get_logger(__name__)


class RankBridge:
    def __init__(
        self,
        platform: PlatformClient,
        store: IdentityStore,
        bus: MessageBus,
        *,
        rank_timeout: float = DEFAULT_TIMEOUT_SECONDS,
        community_base_url: str = DEFAULT_COMMUNITY_URL,
    ) -> None:
        self.platform = platform
        self.store = store
        self.bus = bus
        self.correlator = RankRequestCorrelator(platform, timeout=rank_timeout)
        self.relay = ExchangeRelay(bus, store, self.correlator)
        self.lifecycle = FriendshipLifecycleManager(platform, store, self.correlator, self.relay)
        self._community_base_url = community_base_url
        self._started = False

    @classmethod
    def from_settings(
        cls,
        platform: PlatformClient,
        store: IdentityStore,
        bus: MessageBus,
        settings: BridgeSettings,
    ) -> RankBridge:
        return cls(
            platform,
            store,
            bus,
            rank_timeout=settings.rank_timeout_seconds,
            community_base_url=settings.community_base_url,
        )

    @property
    def started(self) -> bool:
        return self._started

    @property
    def bot_profile_url(self) -> str | None:
        """Profile users must send a friend request to, once logged in."""
        own_id = self.platform.own_global_id
        if own_id is None:
            return None
        return profile_url_for(own_id, self._community_base_url)

    async def start(self) -> None:
        if self._started:
            return
        self.platform.on_profiles(self.correlator.handle_profiles)
        self.platform.on_relationship(self.lifecycle.handle_event)
        await self.relay.start()
        self._started = True
        logger.info("bridge_started", bot_profile_url=self.bot_profile_url)

    async def stop(self) -> None:
        if not self._started:
            return
        await self.relay.stop()
        await self.correlator.close()
        self._started = False
        logger.info("bridge_stopped")


__all__ = ["RankBridge"]
