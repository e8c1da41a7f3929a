"""SQLite store for custom review rules and per-branch review history.

Schema:
  rules   : one row per (user_id, repo_name), rules kept as a JSON array.
  history : one row per (user_id, repo_key) where repo_key is
             ``owner/repo@branch``; written with INSERT OR REPLACE so a new
             review of the same branch supersedes the old one. The key parts
             are also stored as columns so listing and deletion can match a
             repository exactly.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from reviewstream.errors import StoreError
from reviewstream.store.models import ReviewRecord

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS rules (
    user_id    TEXT NOT NULL,
    repo_name  TEXT NOT NULL,
    rules      TEXT NOT NULL DEFAULT '[]',
    PRIMARY KEY (user_id, repo_name)
);
CREATE TABLE IF NOT EXISTS history (
    user_id        TEXT NOT NULL,
    repo_key       TEXT NOT NULL,
    owner          TEXT NOT NULL,
    repo_name      TEXT NOT NULL,
    branch         TEXT NOT NULL,
    commit_hash    TEXT NOT NULL,
    review_result  TEXT,
    timestamp      TEXT NOT NULL,
    PRIMARY KEY (user_id, repo_key)
);
CREATE INDEX IF NOT EXISTS idx_history_repo ON history (user_id, repo_name);
"""


def make_repo_key(owner: str, repo: str, branch: str) -> str:
    """Build the composite history key ``owner/repo@branch``."""
    return f"{owner}/{repo}@{branch}"


class HistoryStore:
    """Stores rule lists and last-reviewed commits in a local SQLite file.

    Every public method wraps ``sqlite3.Error`` in :class:`StoreError` so
    callers deal with a single failure type.
    """

    def __init__(self, db_path: str | Path = "review_history.db"):
        self.db_path = str(db_path)
        try:
            self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._conn.executescript(_SCHEMA)
            self._conn.commit()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to open history store at {self.db_path}: {e}") from e
        logger.info(f"History store ready at {self.db_path}")

    # ------------------------------------------------------------------
    # Rules
    def get_rules(self, user_id: str, repo_name: str) -> list[str]:
        """Return the stored rule list, or an empty list if none is stored."""
        try:
            row = self._conn.execute(
                "SELECT rules FROM rules WHERE user_id = ? AND repo_name = ?",
                (user_id, repo_name),
            ).fetchone()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to load rules: {e}") from e
        if row is None or not row["rules"]:
            return []
        return list(json.loads(row["rules"]))

    def save_rules(self, user_id: str, repo_name: str, rules: list[str]) -> None:
        """Replace the full rule list for (user_id, repo_name)."""
        try:
            with self._conn:
                self._conn.execute(
                    "INSERT OR REPLACE INTO rules (user_id, repo_name, rules) VALUES (?, ?, ?)",
                    (user_id, repo_name, json.dumps(list(rules))),
                )
        except sqlite3.Error as e:
            raise StoreError(f"Failed to save rules: {e}") from e

    # ------------------------------------------------------------------
    # History
    def get_last_review(
        self, user_id: str, owner: str, repo: str, branch: str
    ) -> Optional[ReviewRecord]:
        """Return the last review of the branch, or None."""
        try:
            row = self._conn.execute(
                "SELECT * FROM history WHERE user_id = ? AND repo_key = ?",
                (user_id, make_repo_key(owner, repo, branch)),
            ).fetchone()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to load review history: {e}") from e
        return self._row_to_record(row) if row else None

    def save_review(
        self,
        user_id: str,
        owner: str,
        repo: str,
        branch: str,
        commit_hash: str,
        review: str,
        timestamp: Optional[str] = None,
    ) -> ReviewRecord:
        """Insert or replace the review record for the branch."""
        record = ReviewRecord(
            user_id=user_id,
            owner=owner,
            repo_name=repo,
            branch=branch,
            commit_hash=commit_hash,
            review=review,
            timestamp=timestamp or datetime.now(timezone.utc).isoformat(),
        )
        try:
            with self._conn:
                self._conn.execute(
                    """
                    INSERT OR REPLACE INTO history
                      (user_id, repo_key, owner, repo_name, branch,
                       commit_hash, review_result, timestamp)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        record.user_id,
                        record.repo_key,
                        record.owner,
                        record.repo_name,
                        record.branch,
                        record.commit_hash,
                        record.review,
                        record.timestamp,
                    ),
                )
        except sqlite3.Error as e:
            raise StoreError(f"Failed to save review: {e}") from e
        return record

    def list_reviews(
        self,
        user_id: str,
        repo_name: str,
        limit: int = 10,
        branch: Optional[str] = None,
    ) -> list[ReviewRecord]:
        """Return reviews of a repository, newest first.

        Matches the repository short name exactly; ``branch`` narrows the
        result to one branch.
        """
        query = "SELECT * FROM history WHERE user_id = ? AND repo_name = ?"
        params: list = [user_id, repo_name]
        if branch is not None:
            query += " AND branch = ?"
            params.append(branch)
        query += " ORDER BY timestamp DESC LIMIT ?"
        params.append(limit)

        try:
            rows = self._conn.execute(query, params).fetchall()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to fetch review history: {e}") from e
        return [self._row_to_record(r) for r in rows]

    def delete_review(self, user_id: str, repo_name: str, commit_hash: str) -> bool:
        """Delete at most one review matching (user, repo, commit).

        Returns:
            True if a row was removed, False if nothing matched.
        """
        try:
            with self._conn:
                cur = self._conn.execute(
                    """
                    DELETE FROM history WHERE rowid = (
                        SELECT rowid FROM history
                        WHERE user_id = ? AND repo_name = ? AND commit_hash = ?
                        ORDER BY timestamp DESC LIMIT 1
                    )
                    """,
                    (user_id, repo_name, commit_hash),
                )
        except sqlite3.Error as e:
            raise StoreError(f"Failed to delete review history: {e}") from e
        return cur.rowcount > 0

    def close(self) -> None:
        self._conn.close()

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> ReviewRecord:
        return ReviewRecord(
            user_id=row["user_id"],
            owner=row["owner"],
            repo_name=row["repo_name"],
            branch=row["branch"],
            commit_hash=row["commit_hash"],
            review=row["review_result"] or "",
            timestamp=row["timestamp"],
        )
