"""Exchange wire grammar.

Space-delimited text, one command per bus message::

    request_update <voiceIdentity>
    update_rank <voiceIdentity> <rankId|null>
    update_tick_get_rank <voiceIdentity>
    update_tick_update_rank <voiceIdentity> <rankId|null>

Request verbs and reply verbs never overlap; that partition is what lets
a relay share a channel with its own output.
"""

from __future__ import annotations

from dataclasses import dataclass

REQUEST_UPDATE = "request_update"
UPDATE_RANK = "update_rank"
UPDATE_TICK_GET_RANK = "update_tick_get_rank"
UPDATE_TICK_UPDATE_RANK = "update_tick_update_rank"

# request verb -> reply verb
REPLY_VERBS: dict[str, str] = {
    REQUEST_UPDATE: UPDATE_RANK,
    UPDATE_TICK_GET_RANK: UPDATE_TICK_UPDATE_RANK,
}

NULL = "null"


@dataclass(frozen=True)
class ExchangeCommand:
    """One parsed bus message."""

    verb: str
    args: tuple[str, ...] = ()

    @property
    def voice_identity(self) -> str | None:
        return self.args[0] if self.args else None

    @property
    def is_request(self) -> bool:
        return self.verb in REPLY_VERBS

    def render(self) -> str:
        return " ".join((self.verb, *self.args))


def parse_command(message: str) -> ExchangeCommand | None:
    """Parse a bus message. Verbs are case-insensitive; blank -> None."""
    parts = message.split()
    if not parts:
        return None
    return ExchangeCommand(verb=parts[0].lower(), args=tuple(parts[1:]))


def format_rank(rank: int | None) -> str:
    return NULL if rank is None else str(rank)


def parse_rank(token: str) -> int | None:
    """Inverse of :func:`format_rank`, for consumers of reply messages."""
    if token.lower() == NULL:
        return None
    return int(token)


def rank_reply(verb: str, voice_identity: str, rank: int | None) -> str:
    """Build ``<verb> <voiceIdentity> <rank|null>``."""
    return ExchangeCommand(verb, (voice_identity, format_rank(rank))).render()


__all__ = [
    "REQUEST_UPDATE",
    "UPDATE_RANK",
    "UPDATE_TICK_GET_RANK",
    "UPDATE_TICK_UPDATE_RANK",
    "REPLY_VERBS",
    "NULL",
    "ExchangeCommand",
    "parse_command",
    "format_rank",
    "parse_rank",
    "rank_reply",
]
