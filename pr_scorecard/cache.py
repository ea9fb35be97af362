"""
Cache stores for PR Scorecard.

Used both as a response cache for fetched pages and as a checkpoint store for
resumable collection. Entries expire after a TTL and are then reported absent.
"""

import gzip
import hashlib
import json
import os
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable

from pr_scorecard.config import get_cache_dir, get_cache_ttl

CACHE_FILE_SUFFIX = ".json.gz"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def is_entry_valid(entry: dict[str, Any], now: datetime | None = None) -> bool:
    """
    Check if a cache entry is still within its TTL.

    Args:
        entry: Cache entry dict with ``cache_metadata``.
        now: Current time (default: now in UTC).

    Returns:
        True if the entry has not expired, False otherwise.
    """
    metadata = entry.get("cache_metadata")
    if not metadata or "fetched_at" not in metadata:
        return False

    try:
        fetched_at = datetime.fromisoformat(metadata["fetched_at"])
        if fetched_at.tzinfo is None:
            fetched_at = fetched_at.replace(tzinfo=timezone.utc)
        ttl_seconds = metadata.get("ttl_seconds")
        if ttl_seconds is None:
            return True
        current = now or _utcnow()
        return current - fetched_at < timedelta(seconds=ttl_seconds)
    except (ValueError, TypeError):
        return False


def _make_entry(value: Any, ttl_seconds: int | None, now: datetime) -> dict[str, Any]:
    return {
        "value": value,
        "cache_metadata": {
            "fetched_at": now.isoformat(),
            "ttl_seconds": ttl_seconds,
        },
    }


class CacheStore:
    """Key/value store with optional per-entry TTL."""

    def get(self, key: str) -> Any | None:
        raise NotImplementedError

    def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        raise NotImplementedError


class MemoryCache(CacheStore):
    """In-process cache, mainly for tests and single runs."""

    def __init__(
        self,
        default_ttl: int | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.default_ttl = get_cache_ttl() if default_ttl is None else default_ttl
        self._clock = clock
        self._entries: dict[str, dict[str, Any]] = {}

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if not is_entry_valid(entry, self._clock()):
            del self._entries[key]
            return None
        return entry["value"]

    def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        self._entries[key] = _make_entry(
            value,
            self.default_ttl if ttl_seconds is None else ttl_seconds,
            self._clock(),
        )

    def __len__(self) -> int:
        return len(self._entries)


def _entry_path(cache_dir: Path, key: str) -> Path:
    digest = hashlib.sha1(key.encode("utf-8")).hexdigest()
    return cache_dir / f"{digest}{CACHE_FILE_SUFFIX}"


def _read_entry(path: Path) -> dict[str, Any] | None:
    try:
        with gzip.open(path, "rt", encoding="utf-8") as f:
            entry = json.load(f)
    except (ValueError, OSError, EOFError):
        # Corrupted or concurrently removed entry
        return None
    return entry if isinstance(entry, dict) else None


class FileCache(CacheStore):
    """
    Gzip-compressed JSON cache persisted under the cache directory.

    Each key lives in its own ``<sha1>.json.gz`` file holding the key, the
    value and its metadata. Files are written to a temporary name and then
    renamed into place.
    Values must be JSON serializable.
    """

    def __init__(
        self,
        cache_dir: Path | str | None = None,
        default_ttl: int | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.cache_dir = Path(cache_dir).expanduser() if cache_dir else get_cache_dir()
        self.default_ttl = get_cache_ttl() if default_ttl is None else default_ttl
        self._clock = clock

    def get(self, key: str) -> Any | None:
        path = _entry_path(self.cache_dir, key)
        if not path.exists():
            return None
        entry = _read_entry(path)
        if entry is None or entry.get("key") != key:
            return None
        if not is_entry_valid(entry, self._clock()):
            path.unlink(missing_ok=True)
            return None
        return entry["value"]

    def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        entry = _make_entry(
            value,
            self.default_ttl if ttl_seconds is None else ttl_seconds,
            self._clock(),
        )
        entry["key"] = key
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        path = _entry_path(self.cache_dir, key)
        tmp_path = path.with_name(f"{path.name}.{os.getpid()}.tmp")
        with gzip.open(tmp_path, "wt", encoding="utf-8") as f:
            json.dump(entry, f, ensure_ascii=False, sort_keys=True)
        os.replace(tmp_path, path)

    def __len__(self) -> int:
        if not self.cache_dir.exists():
            return 0
        return sum(1 for _ in self.cache_dir.glob(f"*{CACHE_FILE_SUFFIX}"))


def _cache_files(cache_dir: Path | str | None) -> tuple[Path, list[Path]]:
    directory = Path(cache_dir).expanduser() if cache_dir else get_cache_dir()
    if not directory.exists():
        return directory, []
    return directory, sorted(directory.glob(f"*{CACHE_FILE_SUFFIX}"))


def clear_cache(cache_dir: Path | str | None = None) -> int:
    """
    Remove every cached entry.

    Returns:
        Number of cache files cleared.
    """
    _, files = _cache_files(cache_dir)
    for cache_file in files:
        cache_file.unlink(missing_ok=True)
    return len(files)


def get_cache_stats(cache_dir: Path | str | None = None) -> dict[str, Any]:
    """
    Get cache statistics.

    Returns:
        Dictionary with the cache location and entry counts.
    """
    directory, files = _cache_files(cache_dir)
    now = _utcnow()
    valid = 0
    for cache_file in files:
        entry = _read_entry(cache_file)
        if entry is not None and is_entry_valid(entry, now):
            valid += 1
    return {
        "cache_dir": str(directory),
        "exists": bool(files),
        "total_entries": len(files),
        "valid_entries": valid,
        "expired_entries": len(files) - valid,
    }
