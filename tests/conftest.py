import os

os.environ.setdefault("GIGSYNC_NO_LOG_FILE", "1")

import pytest
import requests

from gigsync.categories import JOB_CATEGORIES
from gigsync.config import Settings
from gigsync.models import CreateResult
from gigsync.store import JobStore


class FakeResponse:
    def __init__(self, payload=None, status_code=200, text=""):
        self._payload = payload
        self.status_code = status_code
        self.text = text or str(payload)

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload

    def raise_for_status(self):
        if not self.ok:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)


class FakeBoard:
    """Stands in for ProjectBoardClient in pipeline tests."""

    def __init__(self, fail_init=False, fail_ids=()):
        self.fail_init = fail_init
        self.fail_ids = set(fail_ids)
        self.created = []
        self.init_calls = 0

    def initialize(self):
        from gigsync.errors import ProjectInitError

        self.init_calls += 1
        if self.fail_init:
            raise ProjectInitError("Project not found")

    def create_item(self, job):
        self.created.append(job.id)
        if job.id in self.fail_ids:
            return CreateResult(success=False, error="boom")
        kind = "issue" if job.budget > 10000 else "draft"
        return CreateResult(success=True, item_id=f"PVTI_{job.id}", kind=kind)


def hit(job_id, category_key="APPLICATION_DEVELOPMENT", **fields):
    data = {
        "id": job_id,
        "title": f"Job {job_id}",
        "description": "",
        "tag_id": JOB_CATEGORIES[category_key].id,
        "inserted_at": "2026-10-01T08:00:00Z",
    }
    data.update(fields)
    return data


@pytest.fixture
def store(tmp_path):
    s = JobStore(tmp_path / "jobs.db")
    s.init_db()
    return s


@pytest.fixture
def settings():
    return Settings(min_budget=5000, sync_delay=0.5, default_limit=10)
