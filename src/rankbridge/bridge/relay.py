"""Bus-facing command handler.

:class:`ExchangeRelay` subscribes to the exchange bus, answers rank
queries from the voice-platform service and publishes rank updates on
behalf of the friendship lifecycle.

Handled verbs (case-insensitive)::

    request_update <uid>        -> update_rank <uid> <rank|null>
    update_tick_get_rank <uid>  -> update_tick_update_rank <uid> <rank|null>

Everything else, including the relay's own replies echoed back by the
bus, is ignored.
"""

from __future__ import annotations

from rankbridge.bridge.correlator import RankRequestCorrelator
from rankbridge.bridge.wire import REPLY_VERBS, UPDATE_RANK, parse_command, rank_reply
from rankbridge.core.errors import BusError, UpstreamError
from rankbridge.core.events import MessageBus
from rankbridge.core.logging import LogContext, get_logger
from rankbridge.core.protocols import IdentityStore

logger = get_logger(__name__)


class ExchangeRelay:
    """Translates inbound bus commands into rank lookups and replies."""

    def __init__(
        self,
        bus: MessageBus,
        store: IdentityStore,
        correlator: RankRequestCorrelator,
    ) -> None:
        self._bus = bus
        self._store = store
        self._correlator = correlator
        self._subscription_id: str | None = None

    @property
    def running(self) -> bool:
        return self._subscription_id is not None

    async def start(self) -> None:
        if self._subscription_id is None:
            self._subscription_id = await self._bus.subscribe(self.handle_message)
            logger.info("relay_started", subscription_id=self._subscription_id)

    async def stop(self) -> None:
        if self._subscription_id is not None:
            await self._bus.unsubscribe(self._subscription_id)
            logger.info("relay_stopped", subscription_id=self._subscription_id)
            self._subscription_id = None

    async def handle_message(self, message: str) -> None:
        """Handle one bus message.

        Raises:
            PersistenceError: The voice identity lookup failed.
        """
        command = parse_command(message)
        if command is None or not command.is_request:
            return

        voice_identity = command.voice_identity
        if voice_identity is None:
            logger.debug("exchange_command_missing_identity", verb=command.verb)
            return

        async with LogContext(voice_identity=voice_identity):
            global_id = await self._store.global_id_of(voice_identity)
            if global_id is None:
                logger.debug("voice_identity_unmapped", verb=command.verb)
                return

            try:
                rank = await self._correlator.request_rank(global_id)
            except UpstreamError as e:
                logger.warning("rank_lookup_failed", verb=command.verb, global_id=global_id, **e.to_dict())
                return

            try:
                await self._publish(REPLY_VERBS[command.verb], voice_identity, rank)
            except BusError as e:
                logger.warning("rank_reply_failed", verb=command.verb, **e.to_dict())

    async def publish_rank(self, voice_identity: str, rank: int | None) -> None:
        """Push an unsolicited ``update_rank`` to the voice service.

        Raises:
            BusError: The bus rejected the message.
        """
        await self._publish(UPDATE_RANK, voice_identity, rank)

    async def _publish(self, verb: str, voice_identity: str, rank: int | None) -> None:
        message = rank_reply(verb, voice_identity, rank)
        try:
            await self._bus.publish(message)
        except Exception as e:
            raise BusError(f"could not publish {verb}", cause=e).with_context(
                voice_identity=voice_identity, verb=verb
            ) from e
        logger.debug("exchange_published", message=message)


__all__ = ["ExchangeRelay"]
