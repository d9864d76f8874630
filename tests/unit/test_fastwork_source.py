"""Unit tests for the Fastwork listing client."""

import pytest
import requests

from gigsync.categories import JOB_CATEGORIES
from gigsync.sources import FastworkSource, MockSource, job_url
from gigsync.sources.fastwork import build_params
from tests.conftest import FakeResponse, hit

APP = JOB_CATEGORIES["APPLICATION_DEVELOPMENT"]
WEB = JOB_CATEGORIES["WEB_DEVELOPMENT"]


@pytest.mark.unit
def test_build_params_repeats_filter_triple():
    params = build_params(["a", "b"], 2, 40, "inserted_at", "desc")
    assert params == [
        ("page", 2),
        ("page_size", 40),
        ("order_by[]", "inserted_at"),
        ("order_directions[]", "desc"),
        ("filters[0][field]", "tag_id"),
        ("filters[0][value]", "a"),
        ("filters[1][field]", "tag_id"),
        ("filters[1][value]", "b"),
    ]


@pytest.mark.unit
def test_fetch_jobs_parses_listings(monkeypatch):
    captured = {}

    def fake_get(url, params=None, headers=None, timeout=None):
        captured.update(url=url, params=params, timeout=timeout)
        return FakeResponse({"data": [hit("x1", name="ignored", budget=9000)], "meta": {"total": 1}})

    monkeypatch.setattr("gigsync.sources.fastwork.requests.get", fake_get)
    result = FastworkSource("https://api.test/api/", timeout=3).fetch_jobs(APP.id, page_size=25)

    assert result.success is True
    assert result.pagination == {"total": 1}
    assert captured["url"] == "https://api.test/api/jobs"
    assert ("page_size", 25) in captured["params"]
    assert ("filters[0][value]", APP.id) in captured["params"]
    assert captured["timeout"] == 3

    listing = result.listings[0]
    assert (listing.id, listing.title, listing.budget) == ("x1", "Job x1", 9000)
    assert listing.tag_id == APP.id
    assert listing.raw["name"] == "ignored"


@pytest.mark.unit
def test_title_falls_back_to_name(monkeypatch):
    monkeypatch.setattr(
        "gigsync.sources.fastwork.requests.get",
        lambda *a, **kw: FakeResponse({"data": [{"id": 5, "name": "Named"}]}),
    )
    listing = FastworkSource().fetch_jobs(APP.id).listings[0]
    assert listing.id == "5"
    assert listing.title == "Named"


@pytest.mark.unit
def test_http_error_becomes_failed_result(monkeypatch):
    monkeypatch.setattr(
        "gigsync.sources.fastwork.requests.get",
        lambda *a, **kw: FakeResponse({"error": "down"}, status_code=503),
    )
    result = FastworkSource().fetch_jobs(APP.id)
    assert result.success is False
    assert result.listings == []
    assert "503" in result.error


@pytest.mark.unit
def test_transport_error_becomes_failed_result(monkeypatch):
    def boom(*a, **kw):
        raise requests.ConnectionError("no route")

    monkeypatch.setattr("gigsync.sources.fastwork.requests.get", boom)
    result = FastworkSource().fetch_jobs(APP.id)
    assert (result.success, result.listings) == (False, [])
    assert "no route" in result.error


@pytest.mark.unit
@pytest.mark.parametrize("payload", [{"meta": {}}, [], ValueError("bad json")])
def test_malformed_response_is_empty(monkeypatch, payload):
    monkeypatch.setattr(
        "gigsync.sources.fastwork.requests.get", lambda *a, **kw: FakeResponse(payload)
    )
    result = FastworkSource().fetch_jobs(APP.id)
    assert result.success is False
    assert result.listings == []


@pytest.mark.unit
def test_fetch_job_details(monkeypatch):
    monkeypatch.setattr(
        "gigsync.sources.fastwork.requests.get",
        lambda *a, **kw: FakeResponse({"data": hit("d1")}),
    )
    result = FastworkSource().fetch_job_details("d1")
    assert result.success is True
    assert result.listings[0].id == "d1"


@pytest.mark.unit
def test_fetch_job_details_not_found(monkeypatch):
    monkeypatch.setattr(
        "gigsync.sources.fastwork.requests.get", lambda *a, **kw: FakeResponse({"data": None})
    )
    result = FastworkSource().fetch_job_details("d1")
    assert (result.success, result.error) == (False, "job not found")


@pytest.mark.unit
def test_job_url():
    assert job_url("abc") == "https://jobboard.fastwork.co/jobs/abc"


@pytest.mark.unit
def test_fetch_all_categories_tags_and_survives_failure():
    source = MockSource(
        hits=[hit("a1", "APPLICATION_DEVELOPMENT"), hit("w1", "WEB_DEVELOPMENT")],
        failing={APP.id},
    )
    result = source.fetch_all_categories([APP, WEB], page_size=20)

    assert result.success is True
    assert result.failed_categories == ["Application Development"]
    assert [(l.id, l.category, l.tag_id) for l in result.listings] == [
        ("w1", "Web Development", WEB.id)
    ]
    assert source.calls == [APP.id, WEB.id]
