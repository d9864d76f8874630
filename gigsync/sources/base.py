from abc import ABC, abstractmethod

from gigsync.categories import Category
from gigsync.log import get_logger
from gigsync.models import FetchResult, Listing

log = get_logger(__name__)


class ListingSource(ABC):
    @abstractmethod
    def fetch_jobs(
        self,
        category_id: str,
        page: int = 1,
        page_size: int = 20,
        order_by: str = "inserted_at",
        order_direction: str = "desc",
    ) -> FetchResult:
        """One page of one category. Never raises; failures set success=False."""

    def fetch_all_categories(self, categories: list[Category], **options) -> FetchResult:
        """Fetch each category in turn and concatenate the results.

        Listings are tagged with the category they came from. A failed
        category is recorded in ``failed_categories`` and the rest still run.
        """
        listings: list[Listing] = []
        pagination: dict[str, dict] = {}
        failed: list[str] = []

        for cat in categories:
            result = self.fetch_jobs(cat.id, **options)
            if not result.success:
                log.error("Failed to fetch category %s: %s", cat.name_en, result.error)
                failed.append(cat.name_en)
                continue
            for listing in result.listings:
                listing.category = cat.name_en
                listing.tag_id = cat.id
            listings.extend(result.listings)
            pagination[cat.name_en] = result.pagination
            log.info("[%s] fetched %d listings", cat.name_en, len(result.listings))

        log.info(
            "Fetched %d listings from %d/%d categories",
            len(listings), len(categories) - len(failed), len(categories),
        )
        return FetchResult(
            listings=listings,
            pagination=pagination,
            success=True,
            error="; ".join(f"{name} failed" for name in failed) or None,
            failed_categories=failed,
        )
