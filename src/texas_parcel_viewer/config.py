from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Tuple


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    v = str(raw).strip().lower()
    if v in {"1", "true", "t", "yes", "y", "on"}:
        return True
    if v in {"0", "false", "f", "no", "n", "off"}:
        return False
    return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not str(raw).strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(name: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    raw = os.getenv(name)
    if raw is None:
        return default
    return tuple(p.strip() for p in raw.split(",") if p.strip())


@dataclass(frozen=True)
class ViewerSettings:
    """Runtime settings for the viewer, the CLI and the detail API.

    Everything is read from the environment once; tests call
    `reset_settings_cache()` after changing env vars.
    """

    api_base: str
    tile_base: str
    db_path: str
    state_path: str
    vector_dataset: str
    http_timeout: float
    status_reset_delay: float
    cors_origins: Tuple[str, ...]
    log_json: bool
    remember_entry: bool

    @classmethod
    def from_env(cls) -> "ViewerSettings":
        return cls(
            api_base=os.getenv("TPV_API_BASE", "http://localhost:3000").rstrip("/"),
            tile_base=os.getenv("TPV_TILE_BASE", "").rstrip("/"),
            db_path=os.getenv("TPV_DB_PATH", "./parcels.sqlite"),
            state_path=os.getenv("TPV_STATE_PATH", "./viewer_state.sqlite"),
            vector_dataset=os.getenv("TPV_VECTOR_DATASET", "Texas_Counties_Baselayer"),
            http_timeout=_env_float("TPV_HTTP_TIMEOUT", 10.0),
            status_reset_delay=_env_float("TPV_STATUS_RESET_DELAY", 1.4),
            cors_origins=_env_list("TPV_CORS_ORIGINS", ("*",)),
            log_json=os.getenv("TPV_LOG_FORMAT", "text").strip().lower() == "json",
            remember_entry=_env_bool("TPV_REMEMBER_ENTRY", True),
        )


@lru_cache(maxsize=1)
def get_settings() -> ViewerSettings:
    return ViewerSettings.from_env()


def reset_settings_cache() -> None:
    """Test helper to force env re-read."""

    get_settings.cache_clear()
