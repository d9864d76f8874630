"""Announce analyzed jobs on outbound channels and keep an audit trail."""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from html import escape

import requests

from gigsync.log import get_logger
from gigsync.models import JobRecord, ProcessingStatus
from gigsync.projects.formatting import format_budget
from gigsync.store import JobStore

log = get_logger(__name__)


class NotificationChannel(ABC):
    name: str = "channel"

    @abstractmethod
    def send(self, job: JobRecord) -> None:
        """Deliver one job; raise on failure."""


def format_message(job: JobRecord) -> str:
    """Telegram HTML message; listing text is escaped."""
    return (
        f"<b>New job: {escape(job.title)}</b>\n"
        f"Budget: {format_budget(job.budget, job.currency)}\n"
        f"Category: {escape(job.category)}\n\n"
        f"{escape(job.analysis or 'Analysis pending...')}\n\n"
        f"<a href='{escape(job.url)}'>View listing</a>"
    )


class TelegramChannel(NotificationChannel):
    name = "telegram"

    def __init__(self, bot_token: str, chat_id: str, timeout: float = 10.0) -> None:
        self.bot_token = bot_token
        self.chat_id = chat_id
        self.timeout = timeout

    def send(self, job: JobRecord) -> None:
        url = f"https://api.telegram.org/bot{self.bot_token}/sendMessage"
        payload = {
            "chat_id": self.chat_id,
            "text": format_message(job),
            "parse_mode": "HTML",
            "disable_web_page_preview": False,
        }
        r = requests.post(url, json=payload, timeout=self.timeout)
        r.raise_for_status()


@dataclass
class NotifyOutcome:
    job_id: str
    success: bool
    channels: dict[str, str] = field(default_factory=dict)  # name -> "sent" or error text
    error: str | None = None


class NotificationService:
    def __init__(self, store: JobStore, channels: list[NotificationChannel]) -> None:
        self.store = store
        self.channels = channels

    def notify(self, jobs: list[JobRecord]) -> list[NotifyOutcome]:
        outcomes: list[NotifyOutcome] = []
        for job in jobs:
            if job.status is not ProcessingStatus.ANALYZED:
                log.warning("Job %s is %s, not analyzed — not sending", job.id, job.status.value)
                outcomes.append(NotifyOutcome(job_id=job.id, success=False, error="not analyzed"))
                continue
            outcome = NotifyOutcome(job_id=job.id, success=False)
            for channel in self.channels:
                try:
                    channel.send(job)
                except Exception as exc:
                    log.warning("%s notification failed for %s: %s", channel.name, job.id, exc)
                    outcome.channels[channel.name] = str(exc)
                    self.store.log_notification(job.id, channel.name, "failed", str(exc))
                    continue
                outcome.channels[channel.name] = "sent"
                outcome.success = True
                self.store.log_notification(job.id, channel.name, "sent")
            if outcome.success:
                self.store.set_status(job.id, ProcessingStatus.NOTIFIED)
            outcomes.append(outcome)
        log.info("Notified %d/%d jobs", sum(o.success for o in outcomes), len(outcomes))
        return outcomes
