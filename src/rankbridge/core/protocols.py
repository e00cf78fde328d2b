"""
Canonical protocol definitions for rankbridge.

The bridge core never talks to Steam, the game coordinator or the
database directly; it talks to the two structural contracts defined
here. Anything matching the shape works: the production Steam adapter,
the SQLite store, or the fakes in the test suite.

Architecture:
    ::

        protocols.py
        ├── ProfileRecord       : one account profile from the coordinator
        ├── RelationshipStatus  : friend edge state (Steam numbering)
        ├── RelationshipEvent   : (global_id, status) notification
        ├── PlatformClient      : upstream capability set
        └── IdentityStore       : persistence collaborator

Guardrails:
    ❌ DON'T: Add implementation logic to protocol classes
    ✅ DO: Keep protocols pure contracts: implementations live elsewhere

Tags:
    protocol, steam, persistence, contracts, rankbridge

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from enum import IntEnum
from typing import Protocol, runtime_checkable

# Steam ids carry the 32-bit account id in their low word
_ACCOUNT_ID_MASK = 0xFFFFFFFF


def steam64_to_account_id(global_id: int) -> int:
    """Reference GlobalId -> AccountId transform for Steam."""
    return int(global_id) & _ACCOUNT_ID_MASK


class RelationshipStatus(IntEnum):
    """Friend relationship as observed from upstream events.

    Values follow Steam's ``EFriendRelationship`` numbering. Any value
    without a member here (blocked, ignored, request initiator, ...)
    collapses to ``OTHER``.
    """

    OTHER = -1
    NONE = 0
    REQUEST_RECIPIENT = 2
    ACTIVE = 3

    @classmethod
    def _missing_(cls, value: object) -> RelationshipStatus:
        return cls.OTHER


@dataclass(frozen=True)
class ProfileRecord:
    """One account profile carried by a profile-response event."""

    account_id: int
    rank: int | None = None


@dataclass(frozen=True)
class RelationshipEvent:
    """Upstream notification of a friend edge change."""

    global_id: int | None
    status: RelationshipStatus | None


ProfilesHandler = Callable[[Sequence[ProfileRecord]], None]
RelationshipHandler = Callable[[RelationshipEvent], Awaitable[None]]


@runtime_checkable
class PlatformClient(Protocol):
    """Upstream platform capabilities consumed by the bridge.

    Session bootstrap, login and the coordinator wire protocol are the
    adapter's business; by the time the bridge holds a client it is
    logged in and the coordinator is ready.
    """

    @property
    def own_global_id(self) -> int | None:
        """Global id of the bot account, once logged in."""
        ...

    def to_account_id(self, global_id: int) -> int:
        """Derive the coordinator account id for a global id."""
        ...

    async def request_profile(self, account_id: int) -> None:
        """Ask the coordinator for a player profile (fire-and-forget)."""
        ...

    async def add_connection(self, global_id: int) -> None:
        """Accept / add a friend."""
        ...

    async def remove_connection(self, global_id: int) -> None:
        """Decline / remove a friend."""
        ...

    def on_profiles(self, handler: ProfilesHandler) -> None:
        """Register the callback for profile-response events."""
        ...

    def on_relationship(self, handler: RelationshipHandler) -> None:
        """Register the callback for relationship-change events.

        Adapters forward both Steam ``friend`` and ``relationships``
        notifications here.
        """
        ...


@runtime_checkable
class IdentityStore(Protocol):
    """Persistence collaborator mapping global ids to voice identities."""

    async def is_registered(self, global_id: int, *, inactive_only: bool = False) -> bool:
        ...

    async def mark_active(self, global_id: int) -> None:
        ...

    async def delete_identity(self, global_id: int) -> None:
        ...

    async def voice_identity_of(self, global_id: int) -> str | None:
        ...

    async def global_id_of(self, voice_identity: str) -> int | None:
        ...

    async def register(self, global_id: int, voice_identity: str) -> None:
        ...


__all__ = [
    "steam64_to_account_id",
    "RelationshipStatus",
    "ProfileRecord",
    "RelationshipEvent",
    "ProfilesHandler",
    "RelationshipHandler",
    "PlatformClient",
    "IdentityStore",
]
