"""Central configuration for the event chain engine.

All tunable parameters live here (content and save locations, proximity
radius, world-event backend, log level). Every value has a sensible default
and can be overridden through environment variables.
"""
from __future__ import annotations
import os
from pathlib import Path

_ROOT = Path(__file__).resolve().parent


def _get_int_env(name: str, default: int, minval: int | None = None) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        v = int(raw)
        if minval is not None and v < minval:
            return default
        return v
    except ValueError:
        return default


def _get_float_env(name: str, default: float, minval: float | None = None) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        v = float(raw)
        if minval is not None and v < minval:
            return default
        return v
    except ValueError:
        return default


def _get_bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    val = raw.strip().lower()
    return val in {"1", "true", "yes", "on"}


# ---------------- Content ----------------
DEFAULT_CHAINS_DIR: Path = _ROOT / "game" / "chains"


def get_chains_dir() -> Path:
    """Directory scanned for chain documents. Var: EC_CHAINS_DIR."""
    raw = os.getenv("EC_CHAINS_DIR")
    return Path(raw) if raw else DEFAULT_CHAINS_DIR


# ---------------- Saves ----------------
DEFAULT_SAVES_DIR: Path = Path("data/saves")

# Storage key under which the whole progress map is written
DEFAULT_STORAGE_KEY: str = "event_chains"


def get_saves_dir() -> Path:
    """Directory used by the file storage backend. Var: EC_SAVES_DIR."""
    raw = os.getenv("EC_SAVES_DIR")
    return Path(raw) if raw else DEFAULT_SAVES_DIR


def get_storage_key() -> str:
    """Key of the serialized progress map. Var: EC_STORAGE_KEY."""
    return os.getenv("EC_STORAGE_KEY", DEFAULT_STORAGE_KEY).strip() or DEFAULT_STORAGE_KEY


# ---------------- Triggers ----------------
# Tile-distance radius used when a trigger or objective declares none
DEFAULT_PROXIMITY_RADIUS: float = _get_float_env("EC_DEFAULT_RADIUS", 1.5, minval=0.0)


# ---------------- World events backend ----------------

def get_events_url() -> str:
    """Endpoint of the shared world-event backend. Var: EC_EVENTS_URL (empty = disabled)."""
    return os.getenv("EC_EVENTS_URL", "").strip()


def get_events_timeout() -> float:
    """HTTP timeout in seconds for world-event publishing. Var: EC_EVENTS_TIMEOUT (default 5.0)."""
    return _get_float_env("EC_EVENTS_TIMEOUT", 5.0, minval=0.5)


def get_events_enabled() -> bool:
    """Publish world events to the backend (default: on when a URL is set). Var: EC_EVENTS_ENABLED."""
    return _get_bool_env("EC_EVENTS_ENABLED", bool(get_events_url()))


# ---------------- Logging ----------------

def get_log_level() -> str:
    """Root log level for the developer console. Var: EC_LOG_LEVEL (default INFO)."""
    return os.getenv("EC_LOG_LEVEL", "INFO").strip().upper() or "INFO"


__all__ = [
    # Content
    "DEFAULT_CHAINS_DIR", "get_chains_dir",
    # Saves
    "DEFAULT_SAVES_DIR", "DEFAULT_STORAGE_KEY", "get_saves_dir", "get_storage_key",
    # Triggers
    "DEFAULT_PROXIMITY_RADIUS",
    # World events
    "get_events_url", "get_events_timeout", "get_events_enabled",
    # Logging
    "get_log_level",
]
