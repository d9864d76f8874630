"""
Ingestion cycle.

Runs: fetch (every enabled category) → classify/filter by budget → cap →
persist → sync to the project board. One cycle at a time per pipeline.
"""
from __future__ import annotations

import json
import math
import sqlite3
import threading
import time
from typing import Callable

from gigsync.analyzer import Analyzer, analyze_pending
from gigsync.categories import Category, resolve_enabled
from gigsync.classifier import derive_budget
from gigsync.config import Settings, get_db_path, get_env, load_settings
from gigsync.errors import ProjectInitError, ProjectSyncError
from gigsync.log import get_logger
from gigsync.models import CycleReport, JobRecord, Listing
from gigsync.notify import NotificationService
from gigsync.projects import ProjectBoardClient
from gigsync.sources import FastworkSource, ListingSource, MockSource, job_url
from gigsync.store import JobStore

log = get_logger(__name__)


def filter_by_budget(
    listings: list[Listing], min_budget: float
) -> list[tuple[Listing, float]]:
    """Pair each listing with its budget and drop those under ``min_budget``.

    A minimum of 0 disables filtering entirely, unspecified budgets included.
    """
    pairs = [(listing, derive_budget(listing)) for listing in listings]
    if min_budget == 0:
        return pairs
    return [(listing, budget) for listing, budget in pairs if budget >= min_budget]


class IngestionPipeline:
    def __init__(
        self,
        source: ListingSource,
        store: JobStore,
        board: ProjectBoardClient | None = None,
        settings: Settings | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.source = source
        self.store = store
        self.board = board
        self.settings = settings or Settings()
        self._sleep = sleep
        self._running = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._running.locked()

    def run_cycle(
        self, limit: int | None = None, categories: list[str] | None = None
    ) -> CycleReport:
        """Run one cycle, or skip immediately if another is in progress."""
        if not self._running.acquire(blocking=False):
            log.warning("Previous cycle still running — skipping this one")
            return CycleReport(skipped_running=True)
        try:
            return self._run(limit or self.settings.default_limit, categories)
        finally:
            self._running.release()

    def _run(self, limit: int, category_keys: list[str] | None) -> CycleReport:
        started = time.monotonic()
        report = CycleReport()
        cats = resolve_enabled(category_keys or list(self.settings.categories))

        # 1. Fetch, over-asking per category to survive budget filtering
        fetched = self.source.fetch_all_categories(
            cats, page_size=self._page_size(limit, cats)
        )
        report.fetched = len(fetched.listings)
        report.failed_categories = list(fetched.failed_categories)

        # 2. Classify, de-duplicate within the cycle, filter by budget
        seen: set[str] = set()
        unique: list[Listing] = []
        for listing in fetched.listings:
            if listing.id and listing.id not in seen:
                seen.add(listing.id)
                unique.append(listing)
        eligible = filter_by_budget(unique, self.settings.min_budget)
        report.eligible = len(eligible)
        log.info(
            "Budget filter: %d/%d listings at or above %s %s",
            len(eligible), len(unique), self.settings.min_budget, self.settings.currency,
        )

        # 3. Cap, keeping the source's newest-first order
        capped = eligible[:limit]
        if len(eligible) < limit:
            log.info("Only %d eligible listings for a limit of %d", len(eligible), limit)

        # 4. Persist
        persisted: list[JobRecord] = []
        for listing, budget in capped:
            record = self._to_record(listing, budget)
            report.jobs.append(record)
            try:
                self._persist(record)
                persisted.append(record)
            except sqlite3.Error as exc:
                report.errors += 1
                log.error("Failed to save job %s (%s): %s", record.id, record.title, exc)
        report.persisted = len(persisted)

        # 5. Sync
        if self.board is not None and self.settings.sync_enabled:
            self._sync(persisted, report)

        log.info(
            "Cycle complete in %.1fs — %s",
            time.monotonic() - started,
            ", ".join(f"{k}={v}" for k, v in report.counts().items()),
        )
        return report

    def _page_size(self, limit: int, cats: list[Category]) -> int:
        per_category = math.ceil(limit / max(len(cats), 1)) + self.settings.category_buffer
        return max(per_category, self.settings.page_size)

    def _to_record(self, listing: Listing, budget: float) -> JobRecord:
        return JobRecord(
            id=listing.id,
            title=listing.title,
            description=listing.description,
            budget=budget,
            currency=self.settings.currency,
            category=listing.category or "Other",
            tag_id=listing.tag_id,
            created_at=listing.created_at,
            inserted_at=listing.inserted_at,
            url=job_url(listing.id),
            raw_data=json.dumps(listing.raw, ensure_ascii=False, default=str),
        )

    def _persist(self, record: JobRecord) -> None:
        existing = self.store.get_job(record.id)
        if existing is not None:
            # User-owned and lifecycle fields survive re-ingestion
            record.status = existing.status
            record.board_column = existing.board_column
            record.notes = existing.notes
            record.priority = existing.priority
            record.analysis = existing.analysis
            record.github_synced = existing.github_synced
            record.github_item_id = existing.github_item_id
            record.github_synced_at = existing.github_synced_at
            record.github_issue_node_id = existing.github_issue_node_id
            record.github_issue_number = existing.github_issue_number
        self.store.upsert_job(record)

    def _sync(self, jobs: list[JobRecord], report: CycleReport) -> None:
        try:
            self.board.initialize()
        except ProjectInitError as exc:
            report.sync_error = str(exc)
            log.error("Project board unavailable, skipping sync: %s", exc)
            return

        calls = 0
        for job in jobs:
            try:
                if self.store.is_synced(job.id):
                    report.skipped += 1
                    log.debug("Job %s already on the board, skipping", job.id)
                    continue
                if calls:
                    self._sleep(self.settings.sync_delay)
                calls += 1
                result = self.board.create_item(job)
                if result.issue_node_id and result.issue_node_id != job.github_issue_node_id:
                    self.store.record_issue(job.id, result.issue_node_id, result.issue_number)
                    job.github_issue_node_id = result.issue_node_id
                    job.github_issue_number = result.issue_number
                if not result.success:
                    report.errors += 1
                    continue
                self.store.mark_synced(job.id, result.item_id)
                job.github_synced = True
                job.github_item_id = result.item_id
                report.synced += 1
            except (ProjectSyncError, sqlite3.Error) as exc:
                report.errors += 1
                log.error("Sync failed for job %s (%s): %s", job.id, job.title, exc)


def build_pipeline(
    settings: Settings | None = None, *, mock: bool = False, sync: bool = True
) -> IngestionPipeline:
    """Wire a pipeline from settings and the environment."""
    settings = settings or load_settings()
    store = JobStore(get_db_path())
    store.init_db()

    source: ListingSource
    if mock:
        source = MockSource()
        log.info("Using MockSource")
    else:
        source = FastworkSource(settings.source_base_url, timeout=settings.source_timeout)

    board = None
    token = get_env("GITHUB_TOKEN")
    if sync and settings.sync_enabled:
        if token and settings.github_project_url:
            board = ProjectBoardClient(
                token,
                settings.github_project_url,
                issues_repo=settings.github_issues_repo,
                timeout=settings.github_timeout,
            )
            log.info("Project sync enabled → %s", settings.github_project_url)
        else:
            log.warning("GITHUB_TOKEN or project URL missing — project sync disabled")

    return IngestionPipeline(source, store, board, settings)


def run_pipeline(
    pipeline: IngestionPipeline,
    analyzer: Analyzer | None = None,
    notifier: NotificationService | None = None,
    limit: int | None = None,
    categories: list[str] | None = None,
) -> dict:
    """One cycle, then optional analysis of pending jobs and notification of analyzed ones."""
    report = pipeline.run_cycle(limit=limit, categories=categories)
    summary: dict = {"cycle": report}
    if report.skipped_running:
        return summary

    if analyzer is not None:
        summary["analysis"] = analyze_pending(
            pipeline.store, analyzer, pipeline.settings.analysis_threshold
        )
    if notifier is not None:
        summary["notifications"] = notifier.notify(pipeline.store.analyzed_jobs())
    return summary
