"""Static listing source for dry runs and tests."""
from __future__ import annotations

from datetime import datetime, timezone

from gigsync.categories import JOB_CATEGORIES
from gigsync.log import get_logger
from gigsync.models import FetchResult, Listing
from gigsync.sources.base import ListingSource

log = get_logger(__name__)


def _sample_listings() -> list[dict]:
    today = datetime.now(timezone.utc).strftime("%Y-%m-%dT00:00:00Z")
    app, web = JOB_CATEGORIES["APPLICATION_DEVELOPMENT"], JOB_CATEGORIES["WEB_DEVELOPMENT"]
    return [
        {
            "id": "mock-1",
            "title": "Flutter app for clinic bookings",
            "description": "Need iOS/Android app, remote OK. Budget 25,000 THB",
            "tag_id": app.id,
            "inserted_at": today,
        },
        {
            "id": "mock-2",
            "title": "ด่วน แก้ไขเว็บไซต์ WordPress",
            "description": "งบ 8,000 บาท",
            "tag_id": web.id,
            "inserted_at": today,
        },
        {
            "id": "mock-3",
            "title": "Landing page",
            "budget": 3000,
            "tag_id": web.id,
            "inserted_at": today,
        },
    ]


class MockSource(ListingSource):
    def __init__(self, hits: list[dict] | None = None, failing: set[str] | None = None) -> None:
        self.hits = hits if hits is not None else _sample_listings()
        self.failing = failing or set()
        self.calls: list[str] = []

    def fetch_jobs(
        self,
        category_id: str,
        page: int = 1,
        page_size: int = 20,
        order_by: str = "inserted_at",
        order_direction: str = "desc",
    ) -> FetchResult:
        self.calls.append(category_id)
        if category_id in self.failing:
            return FetchResult(success=False, error=f"simulated failure for {category_id}")
        hits = [h for h in self.hits if h.get("tag_id") == category_id][:page_size]
        log.debug("MockSource returning %d listings for %s", len(hits), category_id)
        return FetchResult(listings=[Listing.from_api(h) for h in hits], success=True)
