"""Budget extraction, size buckets and tag derivation for listings."""
from __future__ import annotations

import re

from gigsync.config import HIGH_VALUE_THRESHOLD
from gigsync.models import JobRecord, Listing, SizeBucket

# Thousands-grouped (or plain) amount followed by a Latin or Thai currency marker.
_BUDGET_RE = re.compile(
    r"(?<![\d.,])(\d{1,3}(?:,\d{3})+|\d+)\s*(?:บาท|THB|baht)",
    re.IGNORECASE,
)

# (upper bound exclusive, bucket)
_SIZE_BOUNDS: list[tuple[float, SizeBucket]] = [
    (5000, SizeBucket.XS),
    (15000, SizeBucket.S),
    (30000, SizeBucket.M),
    (60000, SizeBucket.L),
]

_CONTENT_TAGS: list[tuple[str, tuple[str, ...]]] = [
    ("urgent", ("urgent", "ด่วน")),
    ("remote", ("remote", "wfh", "work from home")),
    ("full-time", ("full time", "full-time")),
    ("part-time", ("part time", "part-time")),
]


def _as_number(value) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value if value > 0 else None


def extract_text_budget(*texts: str | None) -> int:
    """First currency-marked amount found in the given texts, else 0."""
    for text in texts:
        if not text:
            continue
        m = _BUDGET_RE.search(text)
        if m:
            return int(m.group(1).replace(",", ""))
    return 0


def derive_budget(listing: Listing) -> float:
    """Budget from explicit numeric fields, falling back to free text.

    Precedence: ``budget``, ``budget_min``, ``price``, then the first amount
    marked THB/baht/บาท in the budget text, description or title. Returns 0
    when nothing matches; 0 means "unspecified".
    """
    for value in (listing.budget, listing.budget_min, listing.price):
        number = _as_number(value)
        if number is not None:
            return number
    return extract_text_budget(listing.budget_text, listing.description, listing.title)


def size_bucket(budget: float | None) -> SizeBucket:
    if not budget or budget < 0:
        return SizeBucket.XS
    for upper, bucket in _SIZE_BOUNDS:
        if budget < upper:
            return bucket
    return SizeBucket.XL


def is_high_value(budget: float | None) -> bool:
    """Jobs strictly above the threshold get a full issue and an analysis."""
    return (budget or 0) > HIGH_VALUE_THRESHOLD


def budget_tier(budget: float | None) -> str:
    if not budget or budget <= 0:
        return "no-budget"
    if budget >= 50000:
        return "high-budget"
    if budget >= 20000:
        return "medium-budget"
    return "low-budget"


def slugify(text: str) -> str:
    slug = re.sub(r"\s+", "-", (text or "").lower())
    return re.sub(r"[^a-z0-9-]", "", slug)


def derive_tags(job: Listing | JobRecord, budget: float | None = None) -> list[str]:
    """Tier tag, category slug, then content tags; order is stable, no duplicates."""
    if budget is None:
        budget = job.budget if isinstance(job, JobRecord) else derive_budget(job)

    tags = [budget_tier(budget)]
    cat = slugify(job.category)
    if cat:
        tags.append(cat)

    content = f"{job.title or ''} {job.description or ''}".lower()
    for tag, needles in _CONTENT_TAGS:
        if any(n in content for n in needles):
            tags.append(tag)
    return list(dict.fromkeys(tags))
