from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Optional, Protocol


@dataclass(frozen=True)
class CacheEntry:
    value: dict[str, Any]
    stored_at: datetime  # UTC


class ResultStore(Protocol):
    def get(self, key: str) -> Optional[CacheEntry]: ...

    def put(self, key: str, value: dict[str, Any], timestamp: datetime) -> None: ...

    def keys(self) -> list[str]: ...


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def is_fresh(entry: CacheEntry, *, now: datetime, max_age: timedelta) -> bool:
    return (now - entry.stored_at) < max_age


def age_hours(entry: CacheEntry, *, now: datetime) -> float:
    return round((now - entry.stored_at).total_seconds() / 3600, 1)


class MemoryStore:
    def __init__(self) -> None:
        self._entries: dict[str, CacheEntry] = {}

    def get(self, key: str) -> Optional[CacheEntry]:
        return self._entries.get(key)

    def put(self, key: str, value: dict[str, Any], timestamp: datetime) -> None:
        # Round-trip through JSON so callers can't mutate the stored payload.
        self._entries[key] = CacheEntry(value=json.loads(json.dumps(value)), stored_at=_as_utc(timestamp))

    def keys(self) -> list[str]:
        return sorted(self._entries)


class JsonFileStore:
    """One pretty-printed `{key}.json` per event code in `cache_dir`."""

    def __init__(self, cache_dir: Path) -> None:
        self.cache_dir = cache_dir

    def get(self, key: str) -> Optional[CacheEntry]:
        path = self._path(key)
        if not path.exists():
            return None
        data = json.loads(path.read_text(encoding="utf-8"))
        stored_raw = data.pop("_stored_at", None)
        if stored_raw:
            stored_at = _as_utc(datetime.fromisoformat(stored_raw))
        else:
            stored_at = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
        return CacheEntry(value=data, stored_at=stored_at)

    def put(self, key: str, value: dict[str, Any], timestamp: datetime) -> None:
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        payload = dict(value)
        payload["_stored_at"] = _as_utc(timestamp).isoformat()
        path = self._path(key)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(json.dumps(payload, ensure_ascii=False, indent=2) + "\n", encoding="utf-8")
        tmp.replace(path)

    def keys(self) -> list[str]:
        if not self.cache_dir.exists():
            return []
        return sorted(p.stem for p in self.cache_dir.glob("*.json"))

    def _path(self, key: str) -> Path:
        return self.cache_dir / f"{key}.json"


def _as_utc(ts: datetime) -> datetime:
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)
