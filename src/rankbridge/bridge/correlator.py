"""Coalesced rank lookups against the game coordinator.

The coordinator answers profile requests asynchronously through a
profile-response event that carries no request id, only the account id.
:class:`RankRequestCorrelator` turns that into an awaitable call:

- the first ``request_rank`` for an account creates a pending entry,
  arms a timeout and sends exactly one upstream request;
- further calls for the same account while it is in flight join the
  entry's waiter list and send nothing;
- the matching response (or the timeout) resolves every waiter in the
  order it joined and deletes the entry.

Architecture:
    ::

        request_rank(G) ──▶ to_account_id(G) = A
                               │
               ┌───────────────┴───────────────┐
               │ A pending?                    │
               no                             yes
               │                               │
        create entry, arm timer          append waiter
        request_profile(A)                     │
               └───────────────┬───────────────┘
                               ▼
                      await own future
                               ▲
        handle_profiles([A, rank]) ── resolve waiters FIFO, drop entry
        timer fires              ── fail waiters, drop entry

The pending map is the only shared mutable state and is touched only
from the event loop thread, by this class.

Tags:
    correlator, coalescing, asyncio, futures, timeout, rankbridge
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from rankbridge.core.errors import (
    ConfigError,
    RankBridgeError,
    UpstreamRequestError,
    UpstreamTimeoutError,
)
from rankbridge.core.logging import get_logger
from rankbridge.core.protocols import PlatformClient, ProfileRecord

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0


@dataclass
class _PendingRequest:
    account_id: int
    waiters: list[asyncio.Future] = field(default_factory=list)
    timer: asyncio.TimerHandle | None = None


class RankRequestCorrelator:
    """Maps an identity to its rank through one coalesced upstream request.

    Args:
        platform: Upstream client used for ``to_account_id`` and
            ``request_profile``.
        timeout: Seconds a pending lookup may wait for its response.
    """

    def __init__(self, platform: PlatformClient, *, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> None:
        if timeout <= 0:
            raise ConfigError(f"rank lookup timeout must be positive, got {timeout!r}")
        self._platform = platform
        self._timeout = timeout
        self._pending: dict[int, _PendingRequest] = {}

    @property
    def timeout(self) -> float:
        return self._timeout

    @property
    def pending_accounts(self) -> frozenset[int]:
        """Account ids with a lookup in flight."""
        return frozenset(self._pending)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def request_rank(self, global_id: int) -> int | None:
        """Return the rank of ``global_id`` (None when unranked).

        Raises:
            UpstreamTimeoutError: No response within the timeout.
            UpstreamRequestError: The upstream request could not be sent.
        """
        account_id = self._platform.to_account_id(global_id)
        loop = asyncio.get_running_loop()
        waiter: asyncio.Future = loop.create_future()

        entry = self._pending.get(account_id)
        if entry is not None:
            entry.waiters.append(waiter)
            logger.debug(
                "rank_request_coalesced",
                global_id=global_id,
                account_id=account_id,
                waiters=len(entry.waiters),
            )
            return await waiter

        entry = _PendingRequest(account_id=account_id, waiters=[waiter])
        entry.timer = loop.call_later(self._timeout, self._expire, entry)
        self._pending[account_id] = entry
        logger.debug("rank_request_issued", global_id=global_id, account_id=account_id)

        try:
            await self._platform.request_profile(account_id)
        except asyncio.CancelledError:
            waiter.cancel()
            raise
        except Exception as e:
            logger.warning("rank_request_failed", account_id=account_id, error=str(e))
            self._fail(
                entry,
                lambda: UpstreamRequestError(
                    f"profile request for account {account_id} failed", cause=e
                ).with_context(account_id=account_id),
            )

        return await waiter

    def handle_profiles(self, records: Sequence[ProfileRecord]) -> None:
        """Resolve pending lookups from a profile-response event."""
        for record in records:
            entry = self._pending.pop(record.account_id, None)
            if entry is None:
                logger.debug("profile_unsolicited", account_id=record.account_id)
                continue

            if entry.timer is not None:
                entry.timer.cancel()

            resolved = 0
            for waiter in entry.waiters:
                if not waiter.done():
                    waiter.set_result(record.rank)
                    resolved += 1

            logger.debug(
                "rank_resolved",
                account_id=record.account_id,
                rank=record.rank,
                waiters=resolved,
            )

    def _expire(self, entry: _PendingRequest) -> None:
        logger.warning(
            "rank_request_timeout",
            account_id=entry.account_id,
            timeout=self._timeout,
            waiters=len(entry.waiters),
        )
        self._fail(
            entry,
            lambda: UpstreamTimeoutError(
                f"no profile response for account {entry.account_id} within {self._timeout}s",
                timeout=self._timeout,
            ).with_context(account_id=entry.account_id),
        )

    def _fail(self, entry: _PendingRequest, make_error: Callable[[], RankBridgeError]) -> None:
        # A newer entry for the same account must survive a stale failure
        if self._pending.get(entry.account_id) is entry:
            del self._pending[entry.account_id]
        if entry.timer is not None:
            entry.timer.cancel()
        for waiter in entry.waiters:
            if not waiter.done():
                waiter.set_exception(make_error())

    async def close(self) -> None:
        """Cancel every outstanding lookup."""
        entries = list(self._pending.values())
        self._pending.clear()
        for entry in entries:
            if entry.timer is not None:
                entry.timer.cancel()
            for waiter in entry.waiters:
                waiter.cancel()
        if entries:
            logger.info("correlator_closed", cancelled=len(entries))


__all__ = ["RankRequestCorrelator", "DEFAULT_TIMEOUT_SECONDS"]
