from .base import ListingSource
from .fastwork import FastworkSource, job_url
from .mock import MockSource

__all__ = ["ListingSource", "FastworkSource", "MockSource", "job_url"]
