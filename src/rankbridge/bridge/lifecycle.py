"""
Friend relationship lifecycle.

Manifesto:
    Only users who registered through onboarding may keep the bot as a
    friend, and a friend is what makes rank synchronisation possible.
    The accept / reject / remove decision is a small table, so it is
    written as one: :func:`transition` is a pure function of the observed
    relationship status and the stored registration, and
    :class:`FriendshipLifecycleManager` only executes what it returns.

Architecture:
    ::

        RelationshipEvent(G, status)
                │
                ▼
        registration = store lookup (REQUEST_RECIPIENT / NONE only)
                │
                ▼
        transition(status, registration) ──▶ Transition(next_state, actions)
                │
                ▼
        committed actions, in order        MARK_ACTIVE / DELETE_IDENTITY
                                           ADD_CONNECTION / REMOVE_CONNECTION
                │
                ▼
        SYNC_RANK (best effort)            voice id -> request_rank -> update_rank

    Decision table:

        ====================  ============  ===================================  =========
        status                registration  actions                              state
        ====================  ============  ===================================  =========
        REQUEST_RECIPIENT     INACTIVE      MARK_ACTIVE, ADD, SYNC_RANK          ACTIVE
        REQUEST_RECIPIENT     ACTIVE        ADD, SYNC_RANK                       ACTIVE
        REQUEST_RECIPIENT     UNREGISTERED  REMOVE                               REMOVED
        NONE                  registered    DELETE_IDENTITY, REMOVE              REMOVED
        NONE                  UNREGISTERED  -                                    REMOVED
        ACTIVE / OTHER        any           -                                    unchanged
        ====================  ============  ===================================  =========

Guardrails:
    ❌ DON'T: Roll back an accept/remove because rank sync failed
    ✅ DO: Log and isolate rank sync failures

    ❌ DON'T: Remove a friend that is already active on a repeated request
    ✅ DO: Re-accept; accepting upstream is idempotent

Tags:
    state-machine, friends, lifecycle, steam, rankbridge

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from rankbridge.bridge.correlator import RankRequestCorrelator
from rankbridge.bridge.relay import ExchangeRelay
from rankbridge.core.errors import RankBridgeError
from rankbridge.core.logging import LogContext, get_logger
from rankbridge.core.protocols import (
    IdentityStore,
    PlatformClient,
    RelationshipEvent,
    RelationshipStatus,
)

logger = get_logger(__name__)


class FriendshipState(str, Enum):
    UNKNOWN = "unknown"
    PENDING_INCOMING = "pending_incoming"
    ACTIVE = "active"
    REMOVED = "removed"


class Registration(str, Enum):
    """Registration of a global id as read from the identity store."""

    UNREGISTERED = "unregistered"
    INACTIVE = "inactive"
    ACTIVE = "active"


class Action(str, Enum):
    MARK_ACTIVE = "mark_active"
    DELETE_IDENTITY = "delete_identity"
    ADD_CONNECTION = "add_connection"
    REMOVE_CONNECTION = "remove_connection"
    SYNC_RANK = "sync_rank"


@dataclass(frozen=True)
class Transition:
    """Outcome of one relationship event. ``next_state=None`` keeps the state."""

    next_state: FriendshipState | None
    actions: tuple[Action, ...] = ()


NO_OP = Transition(next_state=None)

_TABLE: dict[tuple[RelationshipStatus, Registration], Transition] = {
    (RelationshipStatus.REQUEST_RECIPIENT, Registration.INACTIVE): Transition(
        FriendshipState.ACTIVE,
        (Action.MARK_ACTIVE, Action.ADD_CONNECTION, Action.SYNC_RANK),
    ),
    (RelationshipStatus.REQUEST_RECIPIENT, Registration.ACTIVE): Transition(
        FriendshipState.ACTIVE,
        (Action.ADD_CONNECTION, Action.SYNC_RANK),
    ),
    (RelationshipStatus.REQUEST_RECIPIENT, Registration.UNREGISTERED): Transition(
        FriendshipState.REMOVED,
        (Action.REMOVE_CONNECTION,),
    ),
    (RelationshipStatus.NONE, Registration.INACTIVE): Transition(
        FriendshipState.REMOVED,
        (Action.DELETE_IDENTITY, Action.REMOVE_CONNECTION),
    ),
    (RelationshipStatus.NONE, Registration.ACTIVE): Transition(
        FriendshipState.REMOVED,
        (Action.DELETE_IDENTITY, Action.REMOVE_CONNECTION),
    ),
    (RelationshipStatus.NONE, Registration.UNREGISTERED): Transition(FriendshipState.REMOVED),
}

# Statuses that need the registration looked up before deciding
DECIDING_STATUSES = frozenset({RelationshipStatus.REQUEST_RECIPIENT, RelationshipStatus.NONE})


def transition(status: RelationshipStatus, registration: Registration) -> Transition:
    """Pure accept / reject / remove decision."""
    return _TABLE.get((status, registration), NO_OP)


class FriendshipLifecycleManager:
    """Executes :func:`transition` for incoming relationship events."""

    def __init__(
        self,
        platform: PlatformClient,
        store: IdentityStore,
        correlator: RankRequestCorrelator,
        relay: ExchangeRelay,
    ) -> None:
        self._platform = platform
        self._store = store
        self._correlator = correlator
        self._relay = relay
        self._states: dict[int, FriendshipState] = {}

    def state_of(self, global_id: int) -> FriendshipState:
        """Pending or active users only; everyone else is UNKNOWN."""
        return self._states.get(global_id, FriendshipState.UNKNOWN)

    @property
    def tracked_count(self) -> int:
        return len(self._states)

    async def registration_of(self, global_id: int) -> Registration:
        if not await self._store.is_registered(global_id):
            return Registration.UNREGISTERED
        if await self._store.is_registered(global_id, inactive_only=True):
            return Registration.INACTIVE
        return Registration.ACTIVE

    async def handle_event(self, event: RelationshipEvent) -> Transition:
        """Apply one relationship event and return the transition taken.

        Raises:
            PersistenceError: Reading the registration or committing the
                decision failed.
        """
        if event.global_id is None or event.status is None:
            return NO_OP

        global_id = event.global_id
        status = RelationshipStatus(event.status)

        async with LogContext(global_id=global_id):
            logger.debug("relationship_event", status=status.name)

            if status not in DECIDING_STATUSES:
                return NO_OP

            if status is RelationshipStatus.REQUEST_RECIPIENT:
                self._states[global_id] = FriendshipState.PENDING_INCOMING

            registration = await self.registration_of(global_id)
            outcome = transition(status, registration)

            for action in outcome.actions:
                if action is not Action.SYNC_RANK:
                    await self._commit(action, global_id)

            # REMOVED is not tracked: state_of reports it as UNKNOWN
            if outcome.next_state is FriendshipState.REMOVED:
                self._states.pop(global_id, None)
            elif outcome.next_state is not None:
                self._states[global_id] = outcome.next_state

            logger.info(
                "relationship_decided",
                status=status.name,
                registration=registration.value,
                actions=[a.value for a in outcome.actions],
                state=(outcome.next_state or self.state_of(global_id)).value,
            )

            if Action.SYNC_RANK in outcome.actions:
                await self.sync_rank(global_id)

        return outcome

    async def _commit(self, action: Action, global_id: int) -> None:
        if action is Action.MARK_ACTIVE:
            await self._store.mark_active(global_id)
        elif action is Action.DELETE_IDENTITY:
            await self._store.delete_identity(global_id)
        elif action is Action.ADD_CONNECTION:
            await self._platform.add_connection(global_id)
        elif action is Action.REMOVE_CONNECTION:
            await self._platform.remove_connection(global_id)

    async def sync_rank(self, global_id: int) -> bool:
        """Publish the current rank of ``global_id``. Never raises.

        Returns:
            True if an ``update_rank`` was published.
        """
        try:
            voice_identity = await self._store.voice_identity_of(global_id)
            if voice_identity is None:
                logger.warning("rank_sync_skipped", reason="no voice identity")
                return False

            rank = await self._correlator.request_rank(global_id)
            await self._relay.publish_rank(voice_identity, rank)
        except Exception as e:
            details = e.to_dict() if isinstance(e, RankBridgeError) else {"error": str(e)}
            logger.warning("rank_sync_failed", **details)
            return False

        logger.info("rank_synced", voice_identity=voice_identity, rank=rank)
        return True


__all__ = [
    "Action",
    "FriendshipLifecycleManager",
    "FriendshipState",
    "NO_OP",
    "Registration",
    "Transition",
    "transition",
]
