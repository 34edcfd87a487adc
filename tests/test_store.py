"""Tests for locbot.store: IdentityStore subscriptions and profiles."""

import sqlite3

import pytest

from locbot.errors import StorageError
from locbot.store import IdentityStore, UserProfile, new_handle


@pytest.fixture
def fresh(tmp_path):
    s = IdentityStore(db_path=str(tmp_path / "test.db"))
    s.init_db()
    return s


# ── schema ─────────────────────────────────────────────────────────────


class TestInitDb:
    def test_init_creates_tables(self, fresh):
        with sqlite3.connect(fresh.db_path) as conn:
            rows = conn.execute(
                "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name"
            ).fetchall()
        assert {"groups", "users"} <= {r[0] for r in rows}

    def test_init_creates_parent_dir(self, tmp_path):
        nested = tmp_path / "deep" / "nested"
        s = IdentityStore(db_path=str(nested / "test.db"))
        s.init_db()
        assert nested.exists()

    def test_init_sets_wal_mode(self, fresh):
        with sqlite3.connect(fresh.db_path) as conn:
            mode = conn.execute("PRAGMA journal_mode").fetchone()[0]
        assert mode == "wal"

    def test_init_is_idempotent_on_migrated_db(self, store):
        store.init_db()
        store.upsert_subscription(1, "abc")
        assert store.get_secret(1) == "abc"

    def test_migrated_columns_match_init_db(self, store, fresh):
        def columns(db_path, table):
            with sqlite3.connect(db_path) as conn:
                return [row[1] for row in conn.execute(f"PRAGMA table_info({table})")]

        for table in ("users", "groups"):
            assert columns(store.db_path, table) == columns(fresh.db_path, table)


# ── subscriptions ──────────────────────────────────────────────────────


class TestSubscriptions:
    def test_upsert_then_get(self, store):
        store.upsert_subscription(-1001, "secret-a")
        assert store.get_secret(-1001) == "secret-a"

    def test_upsert_replaces_previous_secret(self, store):
        store.upsert_subscription(-1001, "secret-a")
        store.upsert_subscription(-1001, "secret-b")
        assert store.get_secret(-1001) == "secret-b"
        with sqlite3.connect(store.db_path) as conn:
            count = conn.execute("SELECT COUNT(*) FROM groups WHERE id = -1001").fetchone()[0]
        assert count == 1

    def test_get_missing_returns_none(self, store):
        assert store.get_secret(12345) is None

    def test_delete_then_get(self, store):
        store.upsert_subscription(7, "x")
        store.delete_subscription(7)
        assert store.get_secret(7) is None

    def test_delete_twice_is_noop(self, store):
        store.upsert_subscription(7, "x")
        store.delete_subscription(7)
        store.delete_subscription(7)
        assert store.get_secret(7) is None

    def test_groups_are_independent(self, store):
        store.upsert_subscription(1, "one")
        store.upsert_subscription(2, "two")
        store.delete_subscription(1)
        assert store.get_secret(2) == "two"


# ── profiles ───────────────────────────────────────────────────────────


class TestProfiles:
    def test_upsert_creates_profile(self, store):
        profile = store.upsert_profile(42, b"\xff\xd8jpeg")
        assert isinstance(profile, UserProfile)
        assert profile.user_id == 42
        assert profile.picture == b"\xff\xd8jpeg"
        assert profile.handle
        assert profile.handle != "42"

    def test_get_by_id_and_handle(self, store):
        created = store.upsert_profile(42, b"pic")
        assert store.get_profile_by_id(42) == created
        assert store.get_profile_by_handle(created.handle) == created

    def test_upsert_keeps_handle_and_replaces_picture(self, store):
        first = store.upsert_profile(42, b"old")
        second = store.upsert_profile(42, b"new")
        assert second.handle == first.handle
        assert store.get_profile_by_handle(first.handle).picture == b"new"

    def test_empty_picture_is_allowed(self, store):
        profile = store.upsert_profile(42, b"")
        assert store.get_profile_by_id(42).picture == b""
        assert profile.picture == b""

    def test_unknown_handle_returns_none(self, store):
        store.upsert_profile(42, b"pic")
        assert store.get_profile_by_handle(new_handle()) is None
        assert store.get_profile_by_handle("42") is None

    def test_missing_id_returns_none(self, store):
        assert store.get_profile_by_id(999) is None

    def test_handles_are_unique(self, store):
        handles = {store.upsert_profile(uid, b"").handle for uid in range(1, 101)}
        assert len(handles) == 100

    def test_delete_is_idempotent(self, store):
        profile = store.upsert_profile(42, b"pic")
        store.delete_profile(42)
        store.delete_profile(42)
        assert store.get_profile_by_id(42) is None
        assert store.get_profile_by_handle(profile.handle) is None

    def test_recreated_profile_gets_new_handle(self, store):
        first = store.upsert_profile(42, b"pic")
        store.delete_profile(42)
        second = store.upsert_profile(42, b"pic")
        assert second.handle != first.handle


# ── failures ───────────────────────────────────────────────────────────


class TestStorageErrors:
    def test_unopenable_db_raises_storage_error(self, tmp_path):
        # a directory cannot be opened as a database file
        s = IdentityStore(db_path=str(tmp_path))
        with pytest.raises(StorageError):
            s.get_secret(1)
        with pytest.raises(StorageError):
            s.upsert_subscription(1, "x")

    def test_missing_tables_raise_storage_error(self, tmp_path):
        s = IdentityStore(db_path=str(tmp_path / "empty.db"))
        with pytest.raises(StorageError):
            s.get_profile_by_id(1)

    def test_close_checkpoints(self, fresh):
        fresh.upsert_subscription(1, "x")
        fresh.close()
        assert fresh.get_secret(1) == "x"
