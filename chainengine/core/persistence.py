"""Save/Load support for chain progress.

Handles serialization of the whole progress map to a single JSON record with
versioning support, and the key/value storage backends it is written to.

Persisted layout: one flat object keyed by chain id, each value a
ChainProgress with snake_case fields, plus a reserved ``_save_metadata``
entry holding the format version.
"""
from __future__ import annotations
import json
import time
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional

from config import get_saves_dir

if TYPE_CHECKING:
    from ..chain.model import ChainProgress

# Save format version - increment when making breaking changes
SAVE_VERSION = 1
METADATA_KEY = "_save_metadata"


class SaveError(Exception):
    """Exception raised for save/load operations."""
    pass


# ---------------- Storage backends ----------------

class MemoryStorage:
    """Durable storage stand-in keeping values in a dict."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.values: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self.values.get(key)

    def set_item(self, key: str, value: str) -> None:
        self.values[key] = value

    def remove_item(self, key: str) -> None:
        self.values.pop(key, None)


class FileStorage:
    """Key/value storage writing one JSON file per key in a directory."""

    def __init__(self, directory: Optional[Path] = None):
        self.directory = Path(directory) if directory is not None else get_saves_dir()

    def _path(self, key: str) -> Path:
        safe_key = "".join(c if c.isalnum() or c in "-_" else "_" for c in key)
        return self.directory / f"{safe_key}.json"

    def get_item(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise SaveError(f"Failed to read '{key}': {e}")

    def set_item(self, key: str, value: str) -> None:
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            path = self._path(key)
            # write then rename so a crash never leaves a truncated save
            tmp_path = path.with_suffix(".tmp")
            tmp_path.write_text(value, encoding="utf-8")
            tmp_path.replace(path)
        except OSError as e:
            raise SaveError(f"Failed to write '{key}': {e}")

    def remove_item(self, key: str) -> None:
        path = self._path(key)
        if path.exists():
            path.unlink()


# ---------------- Migrations ----------------

_LEGACY_PROGRESS_KEYS = {
    "chainId": "chain_id",
    "currentStageId": "current_stage_id",
    "startedDay": "started_day",
    "stageEnteredDay": "stage_entered_day",
    "choicesMade": "choices_made",
}


def _migrate_v0_to_v1(data: Dict[str, Any]) -> Dict[str, Any]:
    """Version 0 saves used camelCase progress fields and no metadata entry."""
    migrated = {}
    for chain_id, entry in data.items():
        if not isinstance(entry, dict):
            migrated[chain_id] = entry
            continue
        migrated[chain_id] = {_LEGACY_PROGRESS_KEYS.get(k, k): v for k, v in entry.items()}
    return migrated


# from_version -> function producing the next version's layout
MIGRATIONS: Dict[int, Callable[[Dict[str, Any]], Dict[str, Any]]] = {
    0: _migrate_v0_to_v1,
}


def migrate(data: Dict[str, Any], from_version: int) -> Dict[str, Any]:
    """Apply migration steps until the data reaches SAVE_VERSION.

    Raises:
        SaveError: If a step is missing or the version is newer than supported
    """
    if from_version > SAVE_VERSION:
        raise SaveError(f"Save version {from_version} is newer than supported version {SAVE_VERSION}")

    version = from_version
    while version < SAVE_VERSION:
        step = MIGRATIONS.get(version)
        if step is None:
            raise SaveError(f"No migration from save version {version}")
        data = step(data)
        version += 1
    return data


# ---------------- Serialization ----------------

def serialize_progress(progress: Dict[str, ChainProgress]) -> str:
    """Convert the progress map to its JSON record."""
    data: Dict[str, Any] = {chain_id: p.to_dict() for chain_id, p in progress.items()}
    data[METADATA_KEY] = {
        "version": SAVE_VERSION,
        "timestamp": time.time(),
        "date_saved": datetime.now().isoformat(),
    }
    return json.dumps(data, ensure_ascii=False)


def deserialize_progress(raw: str) -> Dict[str, Dict[str, Any]]:
    """Convert a JSON record back to raw progress entries keyed by chain id.

    Entries are returned as dictionaries (migrated to the current layout) so
    the caller can decide which of them still match a loaded definition.

    Raises:
        SaveError: If the record is not valid JSON or cannot be migrated
    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise SaveError(f"Invalid progress record: {e}")

    if not isinstance(data, dict):
        raise SaveError("Progress record must be a JSON object")

    metadata = data.pop(METADATA_KEY, {})
    save_version = metadata.get("version", 0) if isinstance(metadata, dict) else 0
    if not isinstance(save_version, int) or isinstance(save_version, bool):
        raise SaveError(f"Invalid save version: {save_version!r}")
    return migrate(data, save_version)


def save_progress(storage, key: str, progress: Dict[str, ChainProgress]) -> None:
    """Write the whole progress map to storage.

    Raises:
        SaveError: If serialization or the storage write fails
    """
    try:
        record = serialize_progress(progress)
        storage.set_item(key, record)
    except SaveError:
        raise
    except Exception as e:
        raise SaveError(f"Failed to save progress: {e}")


def load_progress(storage, key: str) -> Dict[str, Dict[str, Any]]:
    """Read raw progress entries from storage (empty dict if nothing saved).

    Raises:
        SaveError: If the storage read fails or the record is unusable
    """
    try:
        raw = storage.get_item(key)
    except SaveError:
        raise
    except Exception as e:
        raise SaveError(f"Failed to load progress: {e}")

    if not raw:
        return {}
    return deserialize_progress(raw)
