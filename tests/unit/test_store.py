"""Unit tests for the SQLite job store."""

import sqlite3

import pytest

from gigsync.errors import InvalidTransition
from gigsync.models import BoardColumn, JobRecord, ProcessingStatus
from gigsync.store import SCHEMA, JobStore


def _record(job_id="j1", **kw):
    kw.setdefault("title", f"Job {job_id}")
    kw.setdefault("budget", 8000)
    return JobRecord(id=job_id, **kw)


@pytest.mark.unit
def test_upsert_same_id_keeps_one_row_with_latest_title(store):
    store.upsert_job(_record(title="First"))
    store.upsert_job(_record(title="Second"))

    assert store.stats()["total"] == 1
    assert store.get_job("j1").title == "Second"


@pytest.mark.unit
def test_first_insert_is_pending_inbox(store):
    store.upsert_job(_record(status=ProcessingStatus.ANALYZED, board_column=BoardColumn.PROPOSED))

    job = store.get_job("j1")
    assert job.status is ProcessingStatus.PENDING
    assert job.board_column is BoardColumn.INBOX


@pytest.mark.unit
def test_replace_uses_caller_values(store):
    store.upsert_job(_record())
    store.upsert_job(_record(board_column=BoardColumn.INTERESTED, notes="call them", priority=3))

    job = store.get_job("j1")
    assert job.board_column is BoardColumn.INTERESTED
    assert job.notes == "call them"
    assert job.priority == 3


@pytest.mark.unit
def test_not_synced_after_upsert_alone(store):
    store.upsert_job(_record())
    assert store.is_synced("j1") is False
    assert store.is_synced("missing") is False


@pytest.mark.unit
def test_synced_after_mark_synced(store):
    store.upsert_job(_record())
    assert store.mark_synced("j1", "PVTI_1") is True

    assert store.is_synced("j1") is True
    job = store.get_job("j1")
    assert job.github_item_id == "PVTI_1"
    assert job.github_synced_at


@pytest.mark.unit
def test_mark_synced_requires_item_id(store):
    store.upsert_job(_record())
    with pytest.raises(ValueError):
        store.mark_synced("j1", "")
    assert store.is_synced("j1") is False


@pytest.mark.unit
def test_mark_synced_twice_is_idempotent(store):
    store.upsert_job(_record())
    store.mark_synced("j1", "PVTI_1")
    first = store.get_job("j1").github_synced_at

    assert store.mark_synced("j1", "PVTI_1") is True
    assert store.get_job("j1").github_synced_at == first


@pytest.mark.unit
def test_mark_synced_never_replaces_existing_item(store):
    store.upsert_job(_record())
    store.mark_synced("j1", "PVTI_1")

    assert store.mark_synced("j1", "PVTI_2") is False
    assert store.get_job("j1").github_item_id == "PVTI_1"


@pytest.mark.unit
def test_flag_without_item_id_is_not_synced(store):
    store.upsert_job(_record())
    with sqlite3.connect(store.db_path) as conn:
        conn.execute("UPDATE jobs SET github_synced = 1 WHERE id = 'j1'")

    assert store.is_synced("j1") is False


@pytest.mark.unit
def test_upsert_leaves_sync_columns_alone(store):
    store.upsert_job(_record())
    store.mark_synced("j1", "PVTI_1")
    store.upsert_job(_record(title="Edited upstream"))

    assert store.is_synced("j1") is True


@pytest.mark.unit
def test_record_issue_keeps_first_and_survives_upsert(store):
    store.upsert_job(_record())
    assert store.record_issue("j1", "I_42", 42) is True
    assert store.record_issue("j1", "I_43", 43) is False
    store.upsert_job(_record(title="Edited upstream"))

    job = store.get_job("j1")
    assert (job.github_issue_node_id, job.github_issue_number) == ("I_42", 42)
    assert store.is_synced("j1") is False
    with pytest.raises(ValueError):
        store.record_issue("j1", "")


@pytest.mark.unit
def test_init_db_adds_issue_columns_to_older_table(tmp_path):
    path = tmp_path / "old.db"
    before = SCHEMA.replace("    github_issue_node_id TEXT,\n    github_issue_number  INTEGER,\n", "")
    assert "github_issue" not in before
    with sqlite3.connect(path) as conn:
        conn.executescript(before)
        conn.execute("INSERT INTO jobs (id, title) VALUES ('j1', 'Old')")
    conn.close()

    old = JobStore(path)
    old.init_db()
    assert old.record_issue("j1", "I_1", 1) is True
    assert old.get_job("j1").github_issue_node_id == "I_1"


@pytest.mark.unit
def test_status_moves_forward_only(store):
    store.upsert_job(_record())
    assert store.save_analysis("j1", "looks fine") is True
    assert store.set_status("j1", ProcessingStatus.NOTIFIED) is True

    with pytest.raises(InvalidTransition):
        store.set_status("j1", ProcessingStatus.PENDING)
    with pytest.raises(InvalidTransition):
        store.save_analysis("j1", "again")


@pytest.mark.unit
def test_error_reachable_from_any_status_and_terminal(store):
    store.upsert_job(_record())
    store.set_status("j1", "error")

    assert store.get_job("j1").status is ProcessingStatus.ERROR
    with pytest.raises(InvalidTransition):
        store.set_status("j1", ProcessingStatus.ANALYZED)


@pytest.mark.unit
def test_set_status_unknown_job(store):
    assert store.set_status("nope", ProcessingStatus.ANALYZED) is False


@pytest.mark.unit
def test_move_job_validates_column(store):
    store.upsert_job(_record())
    assert store.move_job("j1", "archived") is True
    assert store.get_job("j1").board_column is BoardColumn.ARCHIVED

    with pytest.raises(InvalidTransition):
        store.move_job("j1", "jobs")


@pytest.mark.unit
def test_update_priority_rejects_non_int(store):
    store.upsert_job(_record())
    with pytest.raises(TypeError):
        store.update_priority("j1", "high")
    assert store.update_priority("j1", 5) is True
    assert store.update_notes("j1", "n") is True


@pytest.mark.unit
def test_queries_filter_and_order(store):
    store.upsert_job(_record("a", category="Web Development", created_at="2026-10-01"))
    store.upsert_job(_record("b", category="Web Development", created_at="2026-10-03"))
    store.upsert_job(_record("c", category="IoT Work", created_at="2026-10-02"))
    store.update_priority("a", 9)

    assert [j.id for j in store.list_by_category("Web Development")] == ["b", "a"]
    assert [j.id for j in store.list_by_column("inbox")] == ["a", "b", "c"]
    assert [j.id for j in store.list_by_status("pending", order_by="created")] == ["b", "c", "a"]

    with pytest.raises(ValueError):
        store.list_by_status("pending", order_by="title")


@pytest.mark.unit
def test_pending_for_analysis_gates_on_budget(store):
    store.upsert_job(_record("low", budget=10000))
    store.upsert_job(_record("high", budget=10001))

    assert [j.id for j in store.pending_for_analysis(10000)] == ["high"]


@pytest.mark.unit
def test_board_groups_by_column(store):
    store.upsert_job(_record("a"))
    store.upsert_job(_record("b"))
    store.move_job("b", BoardColumn.PROPOSED)

    board = store.board()
    assert [j.id for j in board[BoardColumn.INBOX]] == ["a"]
    assert [j.id for j in board[BoardColumn.PROPOSED]] == ["b"]
    assert board[BoardColumn.ARCHIVED] == []


@pytest.mark.unit
def test_notification_log(store):
    store.upsert_job(_record())
    store.log_notification("j1", "telegram", "sent")
    store.log_notification("j1", "telegram", "failed", "timeout")

    rows = store.notifications_for("j1")
    assert [(r["status"], r["error_message"]) for r in rows] == [("sent", None), ("failed", "timeout")]
    assert rows[0]["sent_at"] and rows[1]["sent_at"] is None
