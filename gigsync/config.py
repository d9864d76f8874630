"""Load settings from config/settings.yaml and the environment."""
from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from gigsync.categories import JOB_CATEGORIES, resolve_enabled
from gigsync.errors import ConfigError
from gigsync.log import get_logger

log = get_logger(__name__)

load_dotenv()

ROOT_DIR: Path = Path(__file__).resolve().parent.parent
CONFIG_DIR: Path = ROOT_DIR / "config"
SETTINGS_PATH: Path = CONFIG_DIR / "settings.yaml"
DATA_DIR: Path = ROOT_DIR / "data"
DB_PATH: Path = DATA_DIR / "jobs.db"

# Jobs above this budget are promoted to full issues and are eligible for analysis.
HIGH_VALUE_THRESHOLD = 10000


@dataclass(frozen=True)
class Settings:
    min_budget: int = 5000
    currency: str = "THB"
    default_limit: int = 30
    page_size: int = 20
    category_buffer: int = 10
    categories: tuple[str, ...] = tuple(JOB_CATEGORIES)
    source_base_url: str = "https://jobboard-api.fastwork.co/api"
    source_timeout: float = 10.0
    sync_enabled: bool = True
    sync_delay: float = 1.0
    github_project_url: str = ""
    github_issues_repo: str = ""
    github_timeout: float = 15.0
    analysis_threshold: int = HIGH_VALUE_THRESHOLD


def get_env(key: str, default: str = "") -> str:
    return os.environ.get(key, default).strip()


def ensure_dirs() -> None:
    DATA_DIR.mkdir(parents=True, exist_ok=True)


def get_db_path() -> Path:
    override = get_env("GIGSYNC_DB_PATH")
    return Path(override) if override else DB_PATH


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        log.debug("No settings file at %s — using defaults", path)
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")
    return data


def _flatten(data: dict[str, Any]) -> dict[str, Any]:
    """Map the nested YAML sections onto flat Settings field names."""
    budget = data.get("budget") or {}
    fetching = data.get("fetching") or {}
    source = data.get("source") or {}
    github = data.get("github") or {}
    analysis = data.get("analysis") or {}

    flat: dict[str, Any] = {
        "min_budget": budget.get("minimum"),
        "currency": budget.get("currency"),
        "default_limit": fetching.get("default_limit"),
        "page_size": fetching.get("page_size"),
        "category_buffer": fetching.get("buffer"),
        "categories": (data.get("categories") or {}).get("enabled"),
        "source_base_url": source.get("base_url"),
        "source_timeout": source.get("timeout"),
        "sync_enabled": github.get("enabled"),
        "sync_delay": github.get("delay"),
        "github_project_url": github.get("project_url"),
        "github_issues_repo": github.get("issues_repo"),
        "github_timeout": github.get("timeout"),
        "analysis_threshold": analysis.get("min_budget"),
    }
    return {k: v for k, v in flat.items() if v is not None}


def load_settings(path: Path | None = None) -> Settings:
    if path is None:
        env_path = get_env("GIGSYNC_SETTINGS")
        path = Path(env_path) if env_path else SETTINGS_PATH
    data = _read_yaml(path)
    values = _flatten(data)

    known = {f.name for f in fields(Settings)}

    if "categories" in values:
        values["categories"] = tuple(str(k).upper() for k in values["categories"])
        resolve_enabled(values["categories"])

    # Environment wins over the file for deployment-specific values
    if get_env("GITHUB_PROJECT_URL"):
        values["github_project_url"] = get_env("GITHUB_PROJECT_URL")
    if get_env("GITHUB_ISSUES_REPO"):
        values["github_issues_repo"] = get_env("GITHUB_ISSUES_REPO")
    if get_env("MIN_BUDGET"):
        try:
            values["min_budget"] = int(get_env("MIN_BUDGET"))
        except ValueError as exc:
            raise ConfigError(f"MIN_BUDGET must be an integer: {exc}") from exc

    try:
        settings = Settings(**{k: v for k, v in values.items() if k in known})
    except TypeError as exc:
        raise ConfigError(str(exc)) from exc

    if settings.min_budget < 0:
        raise ConfigError("budget.minimum must be >= 0")
    return settings
