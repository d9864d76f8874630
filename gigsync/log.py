"""Logging setup shared by every gigsync module (stdlib only).

Console output follows LOG_LEVEL; a daily file under logs/ always gets
DEBUG unless GIGSYNC_NO_LOG_FILE is set.
"""
from __future__ import annotations

import logging
import os
import sys
from datetime import datetime
from pathlib import Path

LOG_DIR = Path(__file__).resolve().parent.parent / "logs"
_FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s  %(message)s"
_DATE_FMT = "%Y-%m-%d %H:%M:%S"

# HTTP client internals are noisy at DEBUG
_NOISY = ("urllib3", "openai", "httpx", "httpcore")

_configured = False


def get_logger(name: str) -> logging.Logger:
    global _configured
    if not _configured:
        configure()
        _configured = True
    return logging.getLogger(name)


def configure(level_name: str | None = None, log_file: bool | None = None) -> None:
    level_name = (level_name or os.environ.get("LOG_LEVEL", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)
    if log_file is None:
        log_file = not os.environ.get("GIGSYNC_NO_LOG_FILE")

    root = logging.getLogger()
    root.setLevel(logging.DEBUG if log_file else level)
    for name in _NOISY:
        logging.getLogger(name).setLevel(logging.WARNING)

    if root.handlers:
        return

    formatter = logging.Formatter(_FORMAT, datefmt=_DATE_FMT)
    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    console.setFormatter(formatter)
    root.addHandler(console)

    if not log_file:
        return
    try:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        path = LOG_DIR / f"gigsync_{datetime.now():%Y-%m-%d}.log"
        fh = logging.FileHandler(path, encoding="utf-8")
    except OSError:
        return
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(formatter)
    root.addHandler(fh)
