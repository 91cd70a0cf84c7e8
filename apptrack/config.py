"""Load tracker settings from YAML and environment."""
from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from apptrack.log import get_logger

log = get_logger(__name__)

load_dotenv()

ROOT_DIR: Path = Path(__file__).resolve().parent.parent
CONFIG_DIR: Path = ROOT_DIR / "config"
SETTINGS_PATH: Path = CONFIG_DIR / "settings.yaml"
DATA_DIR: Path = ROOT_DIR / "data"

# env var -> (settings field, parser)
_ENV_OVERRIDES: dict[str, tuple[str, type]] = {
    "APPTRACK_CACHE_TTL": ("cache_ttl_seconds", float),
    "APPTRACK_RATE_LIMIT": ("rate_limit_max_requests", int),
    "APPTRACK_RATE_WINDOW": ("rate_limit_window_seconds", float),
    "APPTRACK_PAGE_SIZE": ("items_per_page", int),
    "APPTRACK_CACHE_DIR": ("cache_dir", str),
}


@dataclass
class Settings:
    cache_ttl_seconds: float = 300.0
    rate_limit_max_requests: int = 10
    rate_limit_window_seconds: float = 1.0
    items_per_page: int = 20
    cache_dir: str = str(DATA_DIR / "cache")
    store_root: str = "applications"


def get_env(key: str, default: str = "") -> str:
    return os.environ.get(key, default).strip()


def load_settings(path: Path | None = None) -> Settings:
    """Read settings.yaml (if present), then apply environment overrides."""
    path = path or SETTINGS_PATH
    data: dict[str, Any] = {}
    if path.exists():
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

    known = {f.name for f in fields(Settings)}
    unknown = sorted(set(data) - known)
    if unknown:
        log.warning("Ignoring unknown settings keys: %s", ", ".join(unknown))
    values = {k: v for k, v in data.items() if k in known}

    for env_key, (name, parse) in _ENV_OVERRIDES.items():
        raw = get_env(env_key)
        if not raw:
            continue
        try:
            values[name] = parse(raw)
        except ValueError:
            log.warning("Ignoring %s=%r: not a valid %s", env_key, raw, parse.__name__)

    return Settings(**values)


def build_cache(settings: Settings):
    """File-backed cache configured from settings."""
    from apptrack.cache import ApplicationCache, FileStorage

    return ApplicationCache(FileStorage(Path(settings.cache_dir)), ttl_seconds=settings.cache_ttl_seconds)


def build_limiter(settings: Settings):
    from apptrack.rate_limit import RateLimiter

    return RateLimiter(
        max_requests=settings.rate_limit_max_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )
