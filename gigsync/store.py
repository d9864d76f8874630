"""SQLite-backed store of job records and the notification audit log.

Every public method opens its own connection through ``_connect`` and
releases it on every exit path. Nothing here retries; sqlite3 errors
propagate to the caller.
"""
from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

from gigsync.errors import InvalidTransition
from gigsync.log import get_logger
from gigsync.models import (
    STATUS_ORDER,
    BoardColumn,
    JobRecord,
    ProcessingStatus,
)

log = get_logger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS jobs (
    id               TEXT PRIMARY KEY,
    title            TEXT NOT NULL,
    description      TEXT,
    budget           REAL DEFAULT 0,
    currency         TEXT DEFAULT 'THB',
    category         TEXT DEFAULT 'Other',
    tag_id           TEXT,
    created_at       TEXT,
    inserted_at      TEXT,
    url              TEXT,
    raw_data         TEXT,
    status           TEXT NOT NULL DEFAULT 'pending',
    board_column     TEXT NOT NULL DEFAULT 'inbox',
    notes            TEXT DEFAULT '',
    priority         INTEGER DEFAULT 0,
    analysis         TEXT,
    processed_at     TEXT,
    github_synced    INTEGER NOT NULL DEFAULT 0,
    github_item_id   TEXT,
    github_synced_at TEXT,
    github_issue_node_id TEXT,
    github_issue_number  INTEGER,
    updated_at       TEXT
);
CREATE INDEX IF NOT EXISTS idx_jobs_board_column ON jobs(board_column);
CREATE INDEX IF NOT EXISTS idx_jobs_status ON jobs(status);
CREATE INDEX IF NOT EXISTS idx_jobs_category ON jobs(category);

CREATE TABLE IF NOT EXISTS notifications (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    job_id        TEXT NOT NULL REFERENCES jobs(id),
    channel       TEXT NOT NULL,
    status        TEXT NOT NULL,
    sent_at       TEXT,
    error_message TEXT
);
"""

_UPSERT = """
INSERT INTO jobs (
    id, title, description, budget, currency, category, tag_id,
    created_at, inserted_at, url, raw_data,
    status, board_column, notes, priority, updated_at
) VALUES (
    :id, :title, :description, :budget, :currency, :category, :tag_id,
    :created_at, :inserted_at, :url, :raw_data,
    'pending', 'inbox', :notes, :priority, :now
)
ON CONFLICT(id) DO UPDATE SET
    title = excluded.title,
    description = excluded.description,
    budget = excluded.budget,
    currency = excluded.currency,
    category = excluded.category,
    tag_id = excluded.tag_id,
    created_at = excluded.created_at,
    inserted_at = excluded.inserted_at,
    url = excluded.url,
    raw_data = excluded.raw_data,
    status = :status,
    board_column = :board_column,
    notes = :notes,
    priority = :priority,
    updated_at = :now
"""

# Columns added after the first release; init_db adds them to older databases.
_LATE_COLUMNS = {
    "github_issue_node_id": "TEXT",
    "github_issue_number": "INTEGER",
}

_ORDERINGS = {
    "created": "created_at DESC",
    "priority": "priority DESC, created_at DESC",
}


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _order(order_by: str) -> str:
    try:
        return _ORDERINGS[order_by]
    except KeyError:
        raise ValueError(f"order_by must be one of {sorted(_ORDERINGS)}") from None


class JobStore:
    def __init__(self, db_path: Path | str) -> None:
        self.db_path = Path(db_path)

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except BaseException:
            conn.rollback()
            raise
        finally:
            conn.close()

    def init_db(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            conn.executescript(SCHEMA)
            present = {r["name"] for r in conn.execute("PRAGMA table_info(jobs)")}
            for name, decl in _LATE_COLUMNS.items():
                if name not in present:
                    conn.execute(f"ALTER TABLE jobs ADD COLUMN {name} {decl}")
                    log.info("Added column jobs.%s", name)
        log.debug("Database ready at %s", self.db_path)

    def _fetch(self, sql: str, params: tuple = ()) -> list[JobRecord]:
        with self._connect() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [JobRecord.from_row(dict(r)) for r in rows]

    # --- writes -----------------------------------------------------------

    def upsert_job(self, record: JobRecord) -> None:
        """Insert or replace by id.

        A first insert always lands as pending/inbox. On replace, status,
        column, notes and priority come from ``record`` as given, so callers
        merge existing user-owned values first. Sync columns are never
        touched here.
        """
        params = {
            "id": record.id,
            "title": record.title,
            "description": record.description,
            "budget": record.budget,
            "currency": record.currency,
            "category": record.category,
            "tag_id": record.tag_id,
            "created_at": record.created_at,
            "inserted_at": record.inserted_at,
            "url": record.url,
            "raw_data": record.raw_data,
            "status": ProcessingStatus(record.status).value,
            "board_column": BoardColumn(record.board_column).value,
            "notes": record.notes,
            "priority": record.priority,
            "now": _now(),
        }
        with self._connect() as conn:
            conn.execute(_UPSERT, params)
        log.debug("Saved job %s: %s (budget %s)", record.id, record.title, record.budget)

    def mark_synced(self, job_id: str, item_id: str) -> bool:
        """Record the project item for a job. Returns False if nothing matched.

        Calling again with the same item id keeps the original timestamp; a
        different item id never replaces one already recorded.
        """
        if not item_id:
            raise ValueError("item_id is required to mark a job as synced")
        with self._connect() as conn:
            cur = conn.execute(
                """
                UPDATE jobs
                SET github_synced = 1,
                    github_item_id = :item_id,
                    github_synced_at = CASE
                        WHEN github_item_id = :item_id AND github_synced_at IS NOT NULL
                        THEN github_synced_at ELSE :now END
                WHERE id = :id
                  AND (github_item_id IS NULL OR github_item_id = :item_id)
                """,
                {"id": job_id, "item_id": item_id, "now": _now()},
            )
            changed = cur.rowcount > 0
        if not changed:
            log.warning("mark_synced matched nothing for %s (item %s)", job_id, item_id)
        return changed

    def record_issue(self, job_id: str, node_id: str, number: int | None = None) -> bool:
        """Remember the repo issue created for a job.

        Kept even when the board attach failed, so the next cycle attaches
        this issue instead of opening another. The first issue recorded wins.
        """
        if not node_id:
            raise ValueError("node_id is required to record an issue")
        with self._connect() as conn:
            cur = conn.execute(
                """
                UPDATE jobs
                SET github_issue_node_id = :node_id, github_issue_number = :number
                WHERE id = :id
                  AND (github_issue_node_id IS NULL OR github_issue_node_id = :node_id)
                """,
                {"id": job_id, "node_id": node_id, "number": number},
            )
            changed = cur.rowcount > 0
        if not changed:
            log.warning("record_issue matched nothing for %s (issue %s)", job_id, node_id)
        return changed

    def set_status(self, job_id: str, status: ProcessingStatus | str) -> bool:
        new = ProcessingStatus(status)
        with self._connect() as conn:
            row = conn.execute("SELECT status FROM jobs WHERE id = ?", (job_id,)).fetchone()
            if row is None:
                return False
            _check_transition(ProcessingStatus(row["status"]), new)
            conn.execute(
                "UPDATE jobs SET status = ?, processed_at = ? WHERE id = ?",
                (new.value, _now(), job_id),
            )
        return True

    def save_analysis(self, job_id: str, analysis: str) -> bool:
        with self._connect() as conn:
            row = conn.execute("SELECT status FROM jobs WHERE id = ?", (job_id,)).fetchone()
            if row is None:
                return False
            _check_transition(ProcessingStatus(row["status"]), ProcessingStatus.ANALYZED)
            conn.execute(
                "UPDATE jobs SET analysis = ?, status = ?, processed_at = ? WHERE id = ?",
                (analysis, ProcessingStatus.ANALYZED.value, _now(), job_id),
            )
        return True

    def move_job(self, job_id: str, column: BoardColumn | str) -> bool:
        try:
            target = BoardColumn(column)
        except ValueError:
            raise InvalidTransition(f"Invalid board column: {column!r}") from None
        with self._connect() as conn:
            cur = conn.execute(
                "UPDATE jobs SET board_column = ? WHERE id = ?", (target.value, job_id)
            )
            return cur.rowcount > 0

    def update_notes(self, job_id: str, notes: str) -> bool:
        with self._connect() as conn:
            cur = conn.execute("UPDATE jobs SET notes = ? WHERE id = ?", (notes, job_id))
            return cur.rowcount > 0

    def update_priority(self, job_id: str, priority: int) -> bool:
        if isinstance(priority, bool) or not isinstance(priority, int):
            raise TypeError("priority must be an integer")
        with self._connect() as conn:
            cur = conn.execute("UPDATE jobs SET priority = ? WHERE id = ?", (priority, job_id))
            return cur.rowcount > 0

    def log_notification(
        self, job_id: str, channel: str, status: str, error: str | None = None
    ) -> None:
        sent_at = _now() if status == "sent" else None
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO notifications (job_id, channel, status, sent_at, error_message)"
                " VALUES (?, ?, ?, ?, ?)",
                (job_id, channel, status, sent_at, error),
            )

    # --- reads ------------------------------------------------------------

    def get_job(self, job_id: str) -> JobRecord | None:
        jobs = self._fetch("SELECT * FROM jobs WHERE id = ?", (job_id,))
        return jobs[0] if jobs else None

    def is_synced(self, job_id: str) -> bool:
        """True only when the flag is set and an item id is recorded."""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT github_synced, github_item_id FROM jobs WHERE id = ?", (job_id,)
            ).fetchone()
        return bool(row and row["github_synced"] and row["github_item_id"])

    def list_by_column(self, column: BoardColumn | str, order_by: str = "priority") -> list[JobRecord]:
        return self._fetch(
            f"SELECT * FROM jobs WHERE board_column = ? ORDER BY {_order(order_by)}",
            (BoardColumn(column).value,),
        )

    def list_by_category(self, category: str, order_by: str = "created") -> list[JobRecord]:
        return self._fetch(
            f"SELECT * FROM jobs WHERE category = ? ORDER BY {_order(order_by)}", (category,)
        )

    def list_by_status(
        self, status: ProcessingStatus | str, order_by: str = "created"
    ) -> list[JobRecord]:
        return self._fetch(
            f"SELECT * FROM jobs WHERE status = ? ORDER BY {_order(order_by)}",
            (ProcessingStatus(status).value,),
        )

    def pending_for_analysis(self, min_budget: float) -> list[JobRecord]:
        return self._fetch(
            "SELECT * FROM jobs WHERE status = ? AND budget > ? ORDER BY created_at DESC",
            (ProcessingStatus.PENDING.value, min_budget),
        )

    def analyzed_jobs(self) -> list[JobRecord]:
        return self._fetch(
            "SELECT * FROM jobs WHERE status = ? ORDER BY processed_at DESC",
            (ProcessingStatus.ANALYZED.value,),
        )

    def board(self, min_budget: float = 0) -> dict[BoardColumn, list[JobRecord]]:
        grouped: dict[BoardColumn, list[JobRecord]] = {c: [] for c in BoardColumn}
        for job in self._fetch(
            "SELECT * FROM jobs WHERE budget >= ? ORDER BY priority DESC, created_at DESC",
            (min_budget,),
        ):
            grouped[job.board_column].append(job)
        return grouped

    def stats(self) -> dict[str, dict[str, int] | int]:
        with self._connect() as conn:
            by_column = {
                r[0]: r[1]
                for r in conn.execute("SELECT board_column, COUNT(*) FROM jobs GROUP BY board_column")
            }
            by_status = {
                r[0]: r[1] for r in conn.execute("SELECT status, COUNT(*) FROM jobs GROUP BY status")
            }
            total, synced = conn.execute(
                "SELECT COUNT(*), COALESCE(SUM(github_synced), 0) FROM jobs"
            ).fetchone()
        return {"total": total, "synced": synced, "by_column": by_column, "by_status": by_status}

    def notifications_for(self, job_id: str) -> list[dict]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM notifications WHERE job_id = ? ORDER BY id", (job_id,)
            ).fetchall()
        return [dict(r) for r in rows]


def _check_transition(current: ProcessingStatus, new: ProcessingStatus) -> None:
    if new is ProcessingStatus.ERROR or current is new:
        return
    if current is ProcessingStatus.ERROR or STATUS_ORDER[new] < STATUS_ORDER[current]:
        raise InvalidTransition(f"Cannot move status {current.value} -> {new.value}")
