"""Identity store backed by SQLite.

Two independent keyspaces live here: ``groups`` maps a chat id to its
broadcast secret, and ``users`` maps a Telegram user id to a cached
profile picture reachable through an unguessable handle.  Every method is
a point lookup or write on a primary key; there are no multi-row
transactions.
"""

import logging
import sqlite3
import threading
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from .errors import StorageError

logger = logging.getLogger(__name__)


def new_handle() -> str:
    """Return a fresh random handle for a cached picture."""
    return str(uuid.uuid4())


@dataclass(frozen=True)
class UserProfile:
    user_id: int
    handle: str
    picture: bytes = b""


class IdentityStore:
    """Subscriptions and profile pictures in a single SQLite file.

    A new connection is opened per call, so the store can be read from the
    HTTP thread pool while the dispatcher writes.  Writes go through a
    lock to keep them serialized.
    """

    def __init__(self, db_path: str = "locbot.db"):
        self.db_path = db_path
        self._write_lock = threading.Lock()
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def _connect(self):
        try:
            with sqlite3.connect(self.db_path) as conn:
                yield conn
        except sqlite3.Error as exc:
            logger.error("Storage failure on %s: %s", self.db_path, exc)
            raise StorageError(str(exc)) from exc

    # ── schema ─────────────────────────────────────────────────────

    def init_db(self) -> None:
        """Create the ``users`` and ``groups`` tables and enable WAL mode."""
        with self._connect() as conn:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS users (
                    id      INTEGER NOT NULL PRIMARY KEY,
                    uuid    TEXT    NOT NULL UNIQUE,
                    picture BLOB
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS groups (
                    id     INTEGER NOT NULL PRIMARY KEY,
                    secret TEXT    NOT NULL
                )
                """
            )
            conn.commit()

    def close(self) -> None:
        """Checkpoint the WAL so the database file is self-contained."""
        with self._write_lock, self._connect() as conn:
            conn.execute("PRAGMA wal_checkpoint(TRUNCATE)")

    # ── profiles ───────────────────────────────────────────────────

    def upsert_profile(self, user_id: int, picture: bytes) -> UserProfile:
        """Store *picture* for *user_id* and return the profile.

        A new record gets a fresh handle; an existing record keeps its
        handle and only the picture is replaced, so URLs already handed out
        stay valid.
        """
        with self._write_lock, self._connect() as conn:
            conn.execute(
                """
                INSERT INTO users (id, uuid, picture) VALUES (?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET picture = excluded.picture
                """,
                (user_id, new_handle(), picture),
            )
            conn.commit()
            row = conn.execute(
                "SELECT id, uuid, picture FROM users WHERE id = ?", (user_id,)
            ).fetchone()
        return _profile_from_row(row)

    def get_profile_by_id(self, user_id: int) -> UserProfile | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT id, uuid, picture FROM users WHERE id = ?", (user_id,)
            ).fetchone()
        return _profile_from_row(row) if row else None

    def get_profile_by_handle(self, handle: str) -> UserProfile | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT id, uuid, picture FROM users WHERE uuid = ?", (handle,)
            ).fetchone()
        return _profile_from_row(row) if row else None

    def delete_profile(self, user_id: int) -> None:
        with self._write_lock, self._connect() as conn:
            conn.execute("DELETE FROM users WHERE id = ?", (user_id,))
            conn.commit()

    # ── subscriptions ──────────────────────────────────────────────

    def upsert_subscription(self, group_id: int, secret: str) -> None:
        """Set the one secret for *group_id*, replacing any previous one."""
        with self._write_lock, self._connect() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO groups (id, secret) VALUES (?, ?)",
                (group_id, secret),
            )
            conn.commit()

    def get_secret(self, group_id: int) -> str | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT secret FROM groups WHERE id = ?", (group_id,)
            ).fetchone()
        return row[0] if row else None

    def delete_subscription(self, group_id: int) -> None:
        with self._write_lock, self._connect() as conn:
            conn.execute("DELETE FROM groups WHERE id = ?", (group_id,))
            conn.commit()


def _profile_from_row(row) -> UserProfile:
    user_id, handle, picture = row
    return UserProfile(user_id=user_id, handle=handle, picture=bytes(picture or b""))
