"""Tests for the SQLite history store."""

import sqlite3

import pytest

from reviewstream.errors import StoreError
from reviewstream.store import HistoryStore, make_repo_key


def _count(store: HistoryStore) -> int:
    return store._conn.execute("SELECT COUNT(*) FROM history").fetchone()[0]


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------


class TestRules:
    def test_missing_rules_are_empty(self, store):
        assert store.get_rules("alice", "widgets") == []

    def test_save_and_load_keeps_order(self, store):
        store.save_rules("alice", "widgets", ["no console logging", "prefer const"])
        assert store.get_rules("alice", "widgets") == ["no console logging", "prefer const"]

    def test_save_replaces_whole_list(self, store):
        store.save_rules("alice", "widgets", ["a", "b", "c"])
        store.save_rules("alice", "widgets", ["d"])
        assert store.get_rules("alice", "widgets") == ["d"]

    def test_rules_are_scoped_by_user_and_repo(self, store):
        store.save_rules("alice", "widgets", ["a"])
        assert store.get_rules("bob", "widgets") == []
        assert store.get_rules("alice", "gadgets") == []


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------


class TestHistory:
    def test_repo_key(self):
        assert make_repo_key("acme", "widgets", "main") == "acme/widgets@main"

    def test_last_review_missing(self, store):
        assert store.get_last_review("alice", "acme", "widgets", "main") is None

    def test_save_and_get_last_review(self, store):
        store.save_review("alice", "acme", "widgets", "main", "abc123", "{}")
        record = store.get_last_review("alice", "acme", "widgets", "main")
        assert record.commit_hash == "abc123"
        assert record.review == "{}"
        assert record.repo_key == "acme/widgets@main"
        assert record.timestamp

    def test_save_replaces_row_for_same_branch(self, store):
        store.save_review("alice", "acme", "widgets", "main", "abc123", "first")
        store.save_review("alice", "acme", "widgets", "main", "def456", "second")
        assert _count(store) == 1
        assert store.get_last_review("alice", "acme", "widgets", "main").commit_hash == "def456"

    def test_branches_are_separate_rows(self, store):
        store.save_review("alice", "acme", "widgets", "main", "abc123", "main review")
        store.save_review("alice", "acme", "widgets", "dev", "fff000", "dev review")
        assert _count(store) == 2

    def test_list_newest_first_with_limit(self, store):
        store.save_review("alice", "acme", "widgets", "main", "aaa", "r1", "2026-01-01T00:00:00+00:00")
        store.save_review("alice", "acme", "widgets", "dev", "bbb", "r2", "2026-02-01T00:00:00+00:00")
        store.save_review("alice", "acme", "widgets", "feat", "ccc", "r3", "2026-03-01T00:00:00+00:00")

        records = store.list_reviews("alice", "widgets", limit=2)
        assert [r.commit_hash for r in records] == ["ccc", "bbb"]

    def test_list_filters_by_branch(self, store):
        store.save_review("alice", "acme", "widgets", "main", "aaa", "r1")
        store.save_review("alice", "acme", "widgets", "dev", "bbb", "r2")
        records = store.list_reviews("alice", "widgets", branch="dev")
        assert [r.commit_hash for r in records] == ["bbb"]

    def test_list_matches_repo_name_exactly(self, store):
        store.save_review("alice", "acme", "app", "main", "aaa", "app review")
        store.save_review("alice", "acme", "webapp", "main", "bbb", "webapp review")
        records = store.list_reviews("alice", "app")
        assert [r.commit_hash for r in records] == ["aaa"]

    def test_delete_existing(self, store):
        store.save_review("alice", "acme", "widgets", "main", "abc123", "r")
        assert store.delete_review("alice", "widgets", "abc123") is True
        assert _count(store) == 0

    def test_delete_missing_leaves_rows(self, store):
        store.save_review("alice", "acme", "widgets", "main", "abc123", "r")
        assert store.delete_review("alice", "widgets", "nope") is False
        assert store.delete_review("bob", "widgets", "abc123") is False
        assert _count(store) == 1

    def test_delete_removes_at_most_one_row(self, store):
        store.save_review("alice", "acme", "widgets", "main", "abc123", "r1")
        store.save_review("alice", "acme", "widgets", "dev", "abc123", "r2")
        assert store.delete_review("alice", "widgets", "abc123") is True
        assert _count(store) == 1

    def test_display_date(self, store):
        record = store.save_review(
            "alice", "acme", "widgets", "main", "abc123", "r", "2026-10-19T09:30:00+00:00"
        )
        assert record.display_date == "2026-10-19 09:30:00"


class TestStoreErrors:
    def test_sqlite_errors_are_wrapped(self, tmp_path):
        history = HistoryStore(tmp_path / "history.db")
        history.close()
        with pytest.raises(StoreError):
            history.get_rules("alice", "widgets")

    def test_unopenable_path_raises_store_error(self, tmp_path):
        with pytest.raises(StoreError):
            HistoryStore(tmp_path / "missing-dir" / "history.db")

    def test_store_error_keeps_cause(self, tmp_path):
        history = HistoryStore(tmp_path / "history.db")
        history.close()
        with pytest.raises(StoreError) as exc_info:
            history.list_reviews("alice", "widgets")
        assert isinstance(exc_info.value.__cause__, sqlite3.Error)
