"""Render job records as project item titles, bodies and field values."""
from __future__ import annotations

import json
from datetime import date, datetime, timedelta

from gigsync.classifier import derive_tags, size_bucket
from gigsync.models import JobRecord

DEFAULT_DURATION_DAYS = 30


def format_budget(budget: float, currency: str = "THB") -> str:
    if not budget:
        return "Not specified"
    return f"{budget:,.0f} {currency}"


def parse_date(value: str | None) -> date | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00")).date()
    except ValueError:
        return None


def _raw(job: JobRecord) -> dict:
    try:
        data = json.loads(job.raw_data or "{}")
    except (TypeError, ValueError):
        return {}
    return data if isinstance(data, dict) else {}


def start_date(job: JobRecord) -> date | None:
    return parse_date(job.inserted_at)


def end_date(job: JobRecord) -> date | None:
    """Explicit deadline or expiry from the listing, else insertion + 30 days."""
    raw = _raw(job)
    for key in ("deadline_at", "expired_at"):
        d = parse_date(raw.get(key))
        if d:
            return d
    start = start_date(job)
    return start + timedelta(days=DEFAULT_DURATION_DAYS) if start else None


def format_title(job: JobRecord) -> str:
    prefix = f"[{format_budget(job.budget, job.currency)}] " if job.budget else ""
    return f"{prefix}{job.title}"


def format_body(job: JobRecord) -> str:
    start = start_date(job)
    end = end_date(job)
    tags = derive_tags(job)
    lines = [
        "## Job Details",
        f"**Title:** {job.title}",
        f"**Budget:** {format_budget(job.budget, job.currency)}",
        f"**Size:** {size_bucket(job.budget).value}",
        f"**Category:** {job.category or 'Other'}",
        f"**Start Date:** {start.isoformat() if start else 'Not specified'}",
        f"**End Date:** {end.isoformat() if end else 'Not specified'}",
        f"**Listing:** [View Job]({job.url})",
        "",
        "## Description",
        job.description or "No description provided",
        "",
        "## Additional Information",
        f"- **Job ID:** {job.id}",
        f"- **Created:** {job.created_at or 'Unknown'}",
        f"- **Inserted:** {job.inserted_at or 'Unknown'}",
        "",
    ]
    if tags:
        lines.append("**Tags:** " + ", ".join(f"`{t}`" for t in tags))
    return "\n".join(lines)
