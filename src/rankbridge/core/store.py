"""SQLite identity store.

Implements the :class:`~rankbridge.core.protocols.IdentityStore` protocol
over a single ``identities`` table. ``sqlite3`` is blocking, so every call
runs in a worker thread via :func:`asyncio.to_thread`; a lock serialises
access to the shared connection.

Usage::

    from rankbridge.core.store import SqliteIdentityStore

    store = SqliteIdentityStore(":memory:")
    await store.register(76561198000000000, "abcDEF123=")
    await store.is_registered(76561198000000000, inactive_only=True)  # True
"""

from __future__ import annotations

import asyncio
import sqlite3
import threading
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, TypeVar

from rankbridge.core.errors import PersistenceError
from rankbridge.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

SCHEMA = """
CREATE TABLE IF NOT EXISTS identities (
    global_id       INTEGER PRIMARY KEY,
    voice_identity  TEXT NOT NULL UNIQUE,
    active          INTEGER NOT NULL DEFAULT 0,
    created_at      TEXT NOT NULL
)
"""


class SqliteIdentityStore:
    """Global id <-> voice identity mappings with an active flag."""

    def __init__(self, path: str | Path = ":memory:") -> None:
        if str(path) != ":memory:":
            Path(path).parent.mkdir(parents=True, exist_ok=True)
        self._path = str(path)
        self._conn = sqlite3.connect(self._path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        self._conn.execute(SCHEMA)
        self._conn.commit()

    # -- internals ---------------------------------------------------------

    async def _run(self, op: str, fn: Callable[[sqlite3.Connection], T]) -> T:
        def call() -> T:
            with self._lock:
                try:
                    result = fn(self._conn)
                    self._conn.commit()
                    return result
                except sqlite3.Error as e:
                    self._conn.rollback()
                    raise PersistenceError(f"{op} failed: {e}", cause=e) from e

        return await asyncio.to_thread(call)

    @staticmethod
    def _scalar(conn: sqlite3.Connection, sql: str, params: tuple) -> Any:
        row = conn.execute(sql, params).fetchone()
        return None if row is None else row[0]

    # -- IdentityStore protocol --------------------------------------------

    async def is_registered(self, global_id: int, *, inactive_only: bool = False) -> bool:
        sql = "SELECT 1 FROM identities WHERE global_id = ?"
        if inactive_only:
            sql += " AND active = 0"
        found = await self._run("is_registered", lambda c: self._scalar(c, sql, (global_id,)))
        return found is not None

    async def mark_active(self, global_id: int) -> None:
        await self._run(
            "mark_active",
            lambda c: c.execute("UPDATE identities SET active = 1 WHERE global_id = ?", (global_id,)),
        )
        logger.debug("identity_marked_active", global_id=global_id)

    async def delete_identity(self, global_id: int) -> None:
        await self._run(
            "delete_identity",
            lambda c: c.execute("DELETE FROM identities WHERE global_id = ?", (global_id,)),
        )
        logger.debug("identity_deleted", global_id=global_id)

    async def voice_identity_of(self, global_id: int) -> str | None:
        return await self._run(
            "voice_identity_of",
            lambda c: self._scalar(
                c, "SELECT voice_identity FROM identities WHERE global_id = ?", (global_id,)
            ),
        )

    async def global_id_of(self, voice_identity: str) -> int | None:
        return await self._run(
            "global_id_of",
            lambda c: self._scalar(
                c, "SELECT global_id FROM identities WHERE voice_identity = ?", (voice_identity,)
            ),
        )

    async def register(self, global_id: int, voice_identity: str) -> None:
        """Create or re-point a mapping.

        New registrations start inactive. Re-registering the same pair keeps
        the active flag; pointing the global id at another voice identity
        resets it until the next accepted friend request.
        """
        now = datetime.now(UTC).isoformat()
        await self._run(
            "register",
            lambda c: c.execute(
                """
                INSERT INTO identities (global_id, voice_identity, active, created_at)
                VALUES (?, ?, 0, ?)
                ON CONFLICT(global_id) DO UPDATE
                SET voice_identity = excluded.voice_identity,
                    active = CASE
                        WHEN identities.voice_identity = excluded.voice_identity
                        THEN identities.active
                        ELSE 0
                    END
                """,
                (global_id, voice_identity, now),
            ),
        )
        logger.info("identity_registered", global_id=global_id, voice_identity=voice_identity)

    # -- convenience -------------------------------------------------------

    async def is_active(self, global_id: int) -> bool:
        value = await self._run(
            "is_active",
            lambda c: self._scalar(c, "SELECT active FROM identities WHERE global_id = ?", (global_id,)),
        )
        return bool(value)

    def close(self) -> None:
        self._conn.close()

    def __repr__(self) -> str:
        return f"SqliteIdentityStore({self._path!r})"


__all__ = ["SqliteIdentityStore", "SCHEMA"]
