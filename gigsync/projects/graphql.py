"""Thin GitHub GraphQL transport."""
from __future__ import annotations

from typing import Any

import requests

from gigsync.errors import ProjectSyncError
from gigsync.log import get_logger

log = get_logger(__name__)

GRAPHQL_URL = "https://api.github.com/graphql"


class GraphQLClient:
    def __init__(self, token: str, url: str = GRAPHQL_URL, timeout: float = 15.0) -> None:
        self.token = token
        self.url = url
        self.timeout = timeout

    def execute(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        """Run a query or mutation and return its ``data`` object.

        Raises ProjectSyncError on transport failure, non-2xx status or a
        GraphQL ``errors`` payload, and on a body that is not a JSON object.
        """
        headers = {
            "Authorization": f"Bearer {self.token}",
            "Content-Type": "application/json",
            "Accept": "application/vnd.github+json",
        }
        try:
            r = requests.post(
                self.url,
                json={"query": query, "variables": variables or {}},
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise ProjectSyncError(f"GraphQL request failed: {exc}") from exc

        if not r.ok:
            raise ProjectSyncError(f"HTTP {r.status_code}: {r.text[:300]}", status=r.status_code)
        try:
            body = r.json()
        except ValueError as exc:
            raise ProjectSyncError(f"Invalid JSON from GraphQL API: {exc}", status=r.status_code) from exc

        if not isinstance(body, dict):
            raise ProjectSyncError("Unexpected GraphQL response shape", status=r.status_code)
        if body.get("errors"):
            log.debug("GraphQL errors for %s...: %s", query.strip()[:60], body["errors"])
            raise ProjectSyncError(
                f"GraphQL errors: {body['errors']}", status=r.status_code, errors=body["errors"]
            )
        data = body.get("data")
        return data if isinstance(data, dict) else {}
