"""Data models for listings, job records and sync results."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ProcessingStatus(str, Enum):
    PENDING = "pending"
    ANALYZED = "analyzed"
    NOTIFIED = "notified"
    ERROR = "error"


# Forward-only order; ERROR is reachable from any state.
STATUS_ORDER: dict[ProcessingStatus, int] = {
    ProcessingStatus.PENDING: 0,
    ProcessingStatus.ANALYZED: 1,
    ProcessingStatus.NOTIFIED: 2,
}


class BoardColumn(str, Enum):
    INBOX = "inbox"
    INTERESTED = "interested"
    PROPOSED = "proposed"
    ARCHIVED = "archived"


class SizeBucket(str, Enum):
    XS = "XS"
    S = "S"
    M = "M"
    L = "L"
    XL = "XL"


@dataclass
class Listing:
    """A job posting as returned by the source board."""

    id: str
    title: str
    description: str = ""
    category: str = ""
    tag_id: str = ""
    budget: Any = None
    budget_min: Any = None
    price: Any = None
    budget_text: str | None = None
    created_at: str | None = None
    inserted_at: str | None = None
    deadline_at: str | None = None
    expired_at: str | None = None
    raw: dict = field(default_factory=dict)

    @classmethod
    def from_api(cls, hit: dict, category: str = "", tag_id: str = "") -> "Listing":
        return cls(
            id=str(hit.get("id", "")),
            title=hit.get("title") or hit.get("name") or "",
            description=hit.get("description") or "",
            category=category or hit.get("category", ""),
            tag_id=tag_id or hit.get("tag_id", ""),
            budget=hit.get("budget"),
            budget_min=hit.get("budget_min"),
            price=hit.get("price"),
            budget_text=hit.get("budget_text"),
            created_at=hit.get("created_at"),
            inserted_at=hit.get("inserted_at"),
            deadline_at=hit.get("deadline_at"),
            expired_at=hit.get("expired_at"),
            raw=dict(hit),
        )


@dataclass
class FetchResult:
    listings: list[Listing] = field(default_factory=list)
    pagination: dict = field(default_factory=dict)
    success: bool = True
    error: str | None = None
    failed_categories: list[str] = field(default_factory=list)


@dataclass
class JobRecord:
    """Durable, locally owned representation of a classified listing."""

    id: str
    title: str
    description: str = ""
    budget: float = 0
    currency: str = "THB"
    category: str = "Other"
    tag_id: str = ""
    created_at: str | None = None
    inserted_at: str | None = None
    url: str = ""
    raw_data: str = "{}"
    status: ProcessingStatus = ProcessingStatus.PENDING
    board_column: BoardColumn = BoardColumn.INBOX
    notes: str = ""
    priority: int = 0
    analysis: str | None = None
    github_synced: bool = False
    github_item_id: str | None = None
    github_synced_at: str | None = None
    github_issue_node_id: str | None = None
    github_issue_number: int | None = None

    @classmethod
    def from_row(cls, row: dict) -> "JobRecord":
        return cls(
            id=row["id"],
            title=row["title"],
            description=row.get("description") or "",
            budget=row.get("budget") or 0,
            currency=row.get("currency") or "THB",
            category=row.get("category") or "Other",
            tag_id=row.get("tag_id") or "",
            created_at=row.get("created_at"),
            inserted_at=row.get("inserted_at"),
            url=row.get("url") or "",
            raw_data=row.get("raw_data") or "{}",
            status=ProcessingStatus(row.get("status") or "pending"),
            board_column=BoardColumn(row.get("board_column") or "inbox"),
            notes=row.get("notes") or "",
            priority=row.get("priority") or 0,
            analysis=row.get("analysis"),
            github_synced=bool(row.get("github_synced")),
            github_item_id=row.get("github_item_id"),
            github_synced_at=row.get("github_synced_at"),
            github_issue_node_id=row.get("github_issue_node_id"),
            github_issue_number=row.get("github_issue_number"),
        )


@dataclass
class CreateResult:
    success: bool
    item_id: str | None = None
    kind: str | None = None  # "draft" or "issue"
    issue_node_id: str | None = None
    issue_number: int | None = None
    issue_url: str | None = None
    error: str | None = None


@dataclass
class CycleReport:
    fetched: int = 0
    eligible: int = 0
    persisted: int = 0
    synced: int = 0
    skipped: int = 0
    errors: int = 0
    jobs: list[JobRecord] = field(default_factory=list)
    failed_categories: list[str] = field(default_factory=list)
    skipped_running: bool = False
    sync_error: str | None = None

    def counts(self) -> dict[str, int]:
        return {
            "fetched": self.fetched,
            "eligible": self.eligible,
            "persisted": self.persisted,
            "synced": self.synced,
            "skipped": self.skipped,
            "errors": self.errors,
        }
