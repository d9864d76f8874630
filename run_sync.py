#!/usr/bin/env python3
"""Run one ingestion cycle: fetch, classify, store and sync to the project board."""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent))

from gigsync.analyzer import OpenAIAnalyzer
from gigsync.config import get_env, load_settings
from gigsync.errors import ConfigError, ProjectInitError, ProjectSyncError
from gigsync.log import get_logger
from gigsync.notify import NotificationService, TelegramChannel
from gigsync.pipeline import build_pipeline, run_pipeline

log = get_logger(__name__)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description=__doc__)
    p.add_argument("--limit", type=int, default=None, help="max jobs to keep this cycle")
    p.add_argument("--category", action="append", dest="categories",
                   help="category key, repeatable (default: all enabled)")
    p.add_argument("--mock", action="store_true", help="use built-in sample listings")
    p.add_argument("--no-sync", action="store_true", help="skip the project board")
    p.add_argument("--analyze", action="store_true", help="analyze and notify after the cycle")
    p.add_argument("--clear-board", action="store_true", help="delete every project item and exit")
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    try:
        settings = load_settings()
        pipeline = build_pipeline(settings, mock=args.mock, sync=not args.no_sync)
    except (ConfigError, ProjectInitError) as exc:
        log.error("Setup failed: %s", exc)
        return 2

    if args.clear_board:
        if pipeline.board is None:
            log.error("Project board is not configured")
            return 2
        try:
            deleted, total = pipeline.board.clear_board()
        except ProjectSyncError as exc:
            log.error("Cannot clear board: %s", exc)
            return 1
        return 0 if deleted == total else 1

    analyzer = notifier = None
    if args.analyze:
        if get_env("OPENAI_API_KEY"):
            analyzer = OpenAIAnalyzer(get_env("OPENAI_API_KEY"))
        else:
            log.warning("OPENAI_API_KEY not set — skipping analysis")
        channels = []
        if get_env("TELEGRAM_BOT_TOKEN") and get_env("TELEGRAM_CHAT_ID"):
            channels.append(TelegramChannel(get_env("TELEGRAM_BOT_TOKEN"), get_env("TELEGRAM_CHAT_ID")))
        if channels:
            notifier = NotificationService(pipeline.store, channels)

    try:
        summary = run_pipeline(
            pipeline, analyzer=analyzer, notifier=notifier,
            limit=args.limit, categories=args.categories,
        )
    except ConfigError as exc:
        log.error("%s", exc)
        return 2
    report = summary["cycle"]
    if report.skipped_running:
        return 0

    log.info("Cycle counts:")
    for name, value in report.counts().items():
        log.info("  %-9s %d", name, value)
    if report.failed_categories:
        log.info("  failed categories: %s", ", ".join(report.failed_categories))
    if report.sync_error:
        log.info("  sync error: %s", report.sync_error)
    for i, job in enumerate(report.jobs, 1):
        log.info("  %d. %s — %s (%s)", i, job.title, f"{job.budget:,.0f} {job.currency}", job.category)
    if "analysis" in summary:
        log.info("Analysis: %s", summary["analysis"])
    return 0


if __name__ == "__main__":
    sys.exit(main())
