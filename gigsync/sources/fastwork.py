"""Fastwork job board: public listing API, no key required.

GET {base}/jobs?page=..&page_size=..&order_by[]=..&order_directions[]=..
    &filters[0][field]=tag_id&filters[0][value]=<category id>
Response: {"data": [...], "meta": {...}}
"""
from __future__ import annotations

import time

import requests

from gigsync.categories import category_name
from gigsync.log import get_logger
from gigsync.models import FetchResult, Listing
from gigsync.sources.base import ListingSource

log = get_logger(__name__)

API_URL = "https://jobboard-api.fastwork.co/api"
JOB_URL = "https://jobboard.fastwork.co/jobs/{job_id}"

HEADERS = {
    "Accept": "application/json",
    "User-Agent": "gigsync/0.3",
}


def job_url(job_id: str) -> str:
    return JOB_URL.format(job_id=job_id)


def build_params(
    category_ids: list[str],
    page: int,
    page_size: int,
    order_by: str,
    order_direction: str,
) -> list[tuple[str, str | int]]:
    params: list[tuple[str, str | int]] = [
        ("page", page),
        ("page_size", page_size),
        ("order_by[]", order_by),
        ("order_directions[]", order_direction),
    ]
    for i, cid in enumerate(category_ids):
        params.append((f"filters[{i}][field]", "tag_id"))
        params.append((f"filters[{i}][value]", cid))
    return params


class FastworkSource(ListingSource):
    def __init__(self, base_url: str = API_URL, timeout: float = 10.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def fetch_jobs(
        self,
        category_id: str,
        page: int = 1,
        page_size: int = 20,
        order_by: str = "inserted_at",
        order_direction: str = "desc",
    ) -> FetchResult:
        params = build_params([category_id], page, page_size, order_by, order_direction)
        url = f"{self.base_url}/jobs"
        started = time.monotonic()
        log.debug("GET %s category=%s page=%d size=%d", url, category_name(category_id), page, page_size)

        try:
            r = requests.get(url, params=params, headers=HEADERS, timeout=self.timeout)
            r.raise_for_status()
            data = r.json()
        except (requests.RequestException, ValueError) as exc:
            log.warning("Fastwork fetch failed for %s: %s", category_name(category_id), exc)
            return FetchResult(success=False, error=str(exc))

        elapsed = time.monotonic() - started
        hits = data.get("data") if isinstance(data, dict) else None
        if not isinstance(hits, list):
            log.warning("Fastwork response missing 'data' (%.2fs)", elapsed)
            return FetchResult(success=False, error="response missing data")

        listings = [Listing.from_api(h, tag_id=category_id) for h in hits if isinstance(h, dict)]
        log.debug("Fastwork returned %d listings in %.2fs", len(listings), elapsed)
        return FetchResult(listings=listings, pagination=data.get("meta") or {}, success=True)

    def fetch_job_details(self, job_id: str) -> FetchResult:
        """Single listing by id; ``listings`` holds at most one entry."""
        url = f"{self.base_url}/jobs/{job_id}"
        try:
            r = requests.get(url, headers=HEADERS, timeout=self.timeout)
            r.raise_for_status()
            hit = r.json().get("data")
        except (requests.RequestException, ValueError, AttributeError) as exc:
            log.warning("Fastwork detail fetch failed for %s: %s", job_id, exc)
            return FetchResult(success=False, error=str(exc))
        if not isinstance(hit, dict):
            return FetchResult(success=False, error="job not found")
        return FetchResult(listings=[Listing.from_api(hit)], success=True)
