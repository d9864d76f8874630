"""Source board category partitions."""
from __future__ import annotations

from dataclasses import dataclass

from gigsync.errors import ConfigError


@dataclass(frozen=True)
class Category:
    key: str
    id: str
    name: str
    name_en: str


JOB_CATEGORIES: dict[str, Category] = {
    c.key: c
    for c in (
        Category(
            "APPLICATION_DEVELOPMENT",
            "c82d3ff0-c1c1-4b39-b9e3-124e513eb66c",
            "พัฒนาแอปพลิเคชัน",
            "Application Development",
        ),
        Category(
            "WEB_DEVELOPMENT",
            "4c7ee9da-5509-4ff1-b7c2-df81fb2ef06c",
            "พัฒนาเว็บไซต์",
            "Web Development",
        ),
        Category(
            "IT_SOLUTIONS",
            "2a0001e2-d5d9-4fb8-92da-f4a805c47044",
            "ไอทีโซลูชั่น",
            "IT Solutions",
        ),
        Category(
            "IOT_WORK",
            "9f240bc1-fde2-4217-a5f5-f6fc02ba3f54",
            "งาน IoT",
            "IoT Work",
        ),
    )
}

UNKNOWN_CATEGORY = "Unknown Category"

_BY_ID: dict[str, Category] = {c.id: c for c in JOB_CATEGORIES.values()}


def get_category(key: str) -> Category:
    try:
        return JOB_CATEGORIES[key.upper()]
    except KeyError:
        raise ConfigError(f"Unknown category key: {key!r}") from None


def category_name(tag_id: str) -> str:
    """English label for a category id, or ``UNKNOWN_CATEGORY``."""
    cat = _BY_ID.get(tag_id)
    return cat.name_en if cat else UNKNOWN_CATEGORY


def resolve_enabled(keys: list[str] | tuple[str, ...]) -> list[Category]:
    return [get_category(k) for k in keys]
