"""Analysis gating, notification audit and the combined run helper."""

import pytest

from gigsync.analyzer import Analyzer, analyze_pending, build_prompt
from gigsync.models import JobRecord, ProcessingStatus
from gigsync.notify import NotificationChannel, NotificationService, format_message
from gigsync.pipeline import IngestionPipeline, run_pipeline
from gigsync.sources import MockSource
from tests.conftest import FakeBoard, hit


class StubAnalyzer(Analyzer):
    def __init__(self, fail_ids=()):
        self.fail_ids = set(fail_ids)
        self.seen = []

    def analyze(self, job):
        self.seen.append(job.id)
        if job.id in self.fail_ids:
            raise RuntimeError("model unavailable")
        return f"analysis of {job.title}"


class RecordingChannel(NotificationChannel):
    def __init__(self, name, fail=False):
        self.name = name
        self.fail = fail
        self.sent = []

    def send(self, job):
        if self.fail:
            raise ConnectionError("unreachable")
        self.sent.append(job.id)


def _seed(store, *budgets):
    for i, budget in enumerate(budgets):
        store.upsert_job(JobRecord(id=f"j{i}", title=f"Job {i}", budget=budget))


@pytest.mark.integration
def test_only_pending_jobs_above_threshold_are_analyzed(store):
    _seed(store, 9000, 10000, 12000, 40000)
    store.set_status("j3", ProcessingStatus.ERROR)
    analyzer = StubAnalyzer()

    counts = analyze_pending(store, analyzer, 10000)

    assert analyzer.seen == ["j2"]
    assert counts == {"analyzed": 1, "failed": 0}
    job = store.get_job("j2")
    assert job.status is ProcessingStatus.ANALYZED
    assert job.analysis == "analysis of Job 2"


@pytest.mark.integration
def test_analysis_failure_marks_error(store):
    _seed(store, 20000)
    counts = analyze_pending(store, StubAnalyzer(fail_ids={"j0"}), 10000)

    assert counts == {"analyzed": 0, "failed": 1}
    assert store.get_job("j0").status is ProcessingStatus.ERROR


@pytest.mark.integration
def test_notify_logs_each_channel_and_marks_notified(store):
    _seed(store, 20000)
    store.save_analysis("j0", "worth it")
    ok, broken = RecordingChannel("telegram"), RecordingChannel("chat", fail=True)

    outcomes = NotificationService(store, [ok, broken]).notify(store.analyzed_jobs())

    assert outcomes[0].success is True
    assert outcomes[0].channels == {"telegram": "sent", "chat": "unreachable"}
    assert store.get_job("j0").status is ProcessingStatus.NOTIFIED
    rows = store.notifications_for("j0")
    assert [(r["channel"], r["status"]) for r in rows] == [("telegram", "sent"), ("chat", "failed")]


@pytest.mark.integration
def test_notify_all_channels_failing_keeps_analyzed(store):
    _seed(store, 20000)
    store.save_analysis("j0", "worth it")

    outcomes = NotificationService(store, [RecordingChannel("chat", fail=True)]).notify(
        store.analyzed_jobs()
    )
    assert outcomes[0].success is False
    assert store.get_job("j0").status is ProcessingStatus.ANALYZED


@pytest.mark.integration
def test_notify_skips_jobs_not_analyzed(store):
    _seed(store, 20000)
    channel = RecordingChannel("telegram")
    outcomes = NotificationService(store, [channel]).notify([store.get_job("j0")])

    assert outcomes[0].error == "not analyzed"
    assert channel.sent == []


@pytest.mark.integration
def test_run_pipeline_end_to_end(store, settings):
    hits = [hit("small", budget=6000), hit("big", budget=30000, title="ERP")]
    pipeline = IngestionPipeline(MockSource(hits=hits), store, FakeBoard(), settings, sleep=lambda s: None)
    channel = RecordingChannel("telegram")

    summary = run_pipeline(pipeline, StubAnalyzer(), NotificationService(store, [channel]))

    assert summary["cycle"].synced == 2
    assert summary["analysis"] == {"analyzed": 1, "failed": 0}
    assert channel.sent == ["big"]
    assert store.get_job("big").status is ProcessingStatus.NOTIFIED
    assert store.get_job("small").status is ProcessingStatus.PENDING


@pytest.mark.integration
def test_prompt_and_message_text():
    job = JobRecord(id="x", title="ERP", budget=30000, category="IT Solutions",
                    url="https://jobboard.fastwork.co/jobs/x", analysis="solid")
    assert "30,000 THB" in build_prompt(job)
    msg = format_message(job)
    assert "ERP" in msg and "solid" in msg and job.url in msg


@pytest.mark.integration
def test_message_escapes_listing_text():
    job = JobRecord(id="x", title="แอป <iOS> & Android", budget=12000,
                    category="R&D", analysis="use <b> tags?")
    msg = format_message(job)
    assert "แอป &lt;iOS&gt; &amp; Android" in msg
    assert "Category: R&amp;D" in msg
    assert "use &lt;b&gt; tags?" in msg
    assert msg.startswith("<b>New job:")
