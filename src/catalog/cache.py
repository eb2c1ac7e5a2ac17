"""Disk cache for catalog and bundle documents with a wall-clock TTL."""

import hashlib
import json
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Optional

import structlog

logger = structlog.get_logger().bind(source="catalog_cache")

Clock = Callable[[], datetime]

BUNDLES_CACHE_KEY = "bundles-cache"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class CachedPayload:
    fetched_at: datetime
    source: str
    payload: Any


class CatalogCache:
    """One JSON file per key holding ``{fetched_at, source, payload}``.

    Freshness is judged purely by age: fresh while ``now - fetched_at < ttl``.
    """

    def __init__(self, cache_dir: str | Path, ttl_days: float = 7, clock: Optional[Clock] = None):
        self.cache_dir = Path(cache_dir).expanduser()
        self.ttl = timedelta(days=ttl_days)
        self.clock = clock or utc_now

    @staticmethod
    def key_for_url(url: str) -> str:
        return "registry_" + hashlib.sha256(url.encode()).hexdigest()[:16]

    def path_for(self, key: str) -> Path:
        return self.cache_dir / f"{key}.json"

    def read(self, key: str) -> Optional[CachedPayload]:
        """Cached entry regardless of age, or None if missing/unreadable."""
        path = self.path_for(key)
        if not path.is_file():
            return None
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
            fetched_at = datetime.fromisoformat(raw["fetched_at"])
        except (OSError, json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            logger.warning("cache_unreadable", path=str(path), error=str(e))
            return None
        if fetched_at.tzinfo is None:
            fetched_at = fetched_at.replace(tzinfo=timezone.utc)
        return CachedPayload(fetched_at=fetched_at, source=raw.get("source", ""), payload=raw.get("payload"))

    def is_fresh(self, entry: CachedPayload) -> bool:
        return self.clock() - entry.fetched_at < self.ttl

    def get_fresh(self, key: str) -> Optional[CachedPayload]:
        entry = self.read(key)
        if entry is not None and self.is_fresh(entry):
            return entry
        return None

    def write(self, key: str, source: str, payload: Any) -> None:
        """Overwrite the entry for ``key``. Write failures are logged, not raised."""
        path = self.path_for(key)
        record = {"fetched_at": self.clock().isoformat(), "source": source, "payload": payload}
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp = path.with_suffix(".tmp")
            tmp.write_text(json.dumps(record, indent=2, default=str), encoding="utf-8")
            tmp.replace(path)
        except OSError as e:
            logger.error("cache_write_failed", path=str(path), error=str(e))

    def clear(self) -> int:
        """Delete every cache file. Returns the number removed."""
        if not self.cache_dir.is_dir():
            return 0
        removed = 0
        for path in self.cache_dir.glob("*.json"):
            path.unlink(missing_ok=True)
            removed += 1
        return removed
