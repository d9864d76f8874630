"""Job analysis via an LLM. The returned text is stored as-is."""
from __future__ import annotations

import os
from abc import ABC, abstractmethod

from gigsync.errors import InvalidTransition
from gigsync.log import get_logger
from gigsync.models import JobRecord, ProcessingStatus
from gigsync.projects.formatting import format_budget
from gigsync.store import JobStore

log = get_logger(__name__)


class Analyzer(ABC):
    @abstractmethod
    def analyze(self, job: JobRecord) -> str:
        """Return analysis text for ``job``; raise on failure."""


def build_prompt(job: JobRecord) -> str:
    return f"""Analyze this freelance job posting and give a concise summary for a freelancer.

Title: {job.title}
Budget: {format_budget(job.budget, job.currency)}
Category: {job.category}
Description: {job.description[:3000]}

Cover: what the job entails, key skills needed, scope and complexity, any red flags,
and an overall recommendation (Good opportunity / Proceed with caution / Avoid).
Keep it under 200 words."""


class OpenAIAnalyzer(Analyzer):
    def __init__(self, api_key: str, model: str | None = None, base_url: str | None = None) -> None:
        self.api_key = api_key
        self.model = model or os.environ.get("OPENAI_MODEL", "gpt-4o-mini").strip()
        self.base_url = base_url

    def analyze(self, job: JobRecord) -> str:
        from openai import OpenAI

        client = OpenAI(api_key=self.api_key, base_url=self.base_url)
        r = client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": build_prompt(job)}],
            max_tokens=500,
        )
        text = (r.choices[0].message.content or "").strip()
        if not text:
            raise ValueError("empty analysis returned")
        return text


def analyze_pending(store: JobStore, analyzer: Analyzer, threshold: float) -> dict[str, int]:
    """Analyze pending jobs with budget above ``threshold``; failures mark the job as error."""
    jobs = store.pending_for_analysis(threshold)
    log.info("Found %d pending jobs to analyze", len(jobs))
    done = failed = 0
    for job in jobs:
        try:
            text = analyzer.analyze(job)
        except Exception as exc:
            failed += 1
            log.error("Analysis failed for job %s: %s", job.id, exc)
            store.set_status(job.id, ProcessingStatus.ERROR)
            continue
        try:
            store.save_analysis(job.id, text)
            done += 1
        except InvalidTransition as exc:
            failed += 1
            log.warning("Analysis for %s not saved: %s", job.id, exc)
    return {"analyzed": done, "failed": failed}
