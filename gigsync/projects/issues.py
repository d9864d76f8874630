"""GitHub Issues REST client used to promote high-value jobs."""
from __future__ import annotations

import requests

from gigsync.errors import ProjectSyncError
from gigsync.log import get_logger

log = get_logger(__name__)

API_URL = "https://api.github.com"


class IssueTrackerClient:
    def __init__(self, token: str, repo: str, timeout: float = 15.0) -> None:
        if "/" not in (repo or ""):
            raise ValueError(f"Issues repo must look like 'owner/name', got {repo!r}")
        self.token = token
        self.repo = repo
        self.timeout = timeout

    def create_issue(self, title: str, body: str, labels: list[str]) -> dict:
        """Create an issue; returns the API payload (id, number, node_id, html_url)."""
        url = f"{API_URL}/repos/{self.repo}/issues"
        headers = {
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/vnd.github+json",
        }
        payload = {"title": title, "body": body, "labels": [l for l in labels if l]}
        try:
            r = requests.post(url, json=payload, headers=headers, timeout=self.timeout)
        except requests.RequestException as exc:
            raise ProjectSyncError(f"Issue create failed: {exc}") from exc
        if not r.ok:
            raise ProjectSyncError(
                f"Failed to create issue: HTTP {r.status_code}: {r.text[:300]}", status=r.status_code
            )
        try:
            issue = r.json()
        except ValueError as exc:
            raise ProjectSyncError(f"Invalid JSON from issues API: {exc}", status=r.status_code) from exc
        if not isinstance(issue, dict) or not issue.get("node_id"):
            raise ProjectSyncError("Issue response missing node_id", status=r.status_code)
        log.info("Created issue #%s in %s", issue.get("number"), self.repo)
        return issue
