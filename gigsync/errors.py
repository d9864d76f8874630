"""Exception types shared across the package."""
from __future__ import annotations

from typing import Any


class GigsyncError(Exception):
    pass


class ConfigError(GigsyncError):
    pass


class SourceError(GigsyncError):
    """Raised inside the source client; converted to a failed FetchResult."""


class ProjectSyncError(GigsyncError):
    """A GraphQL or REST call against the project tracker failed."""

    def __init__(self, message: str, status: int | None = None, errors: Any = None) -> None:
        super().__init__(message)
        self.status = status
        self.errors = errors


class ProjectInitError(ProjectSyncError):
    """Board identity or field schema could not be resolved."""


class InvalidTransition(GigsyncError):
    pass
