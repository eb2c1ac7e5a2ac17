"""Observability: in-process counters and timers for detection, catalog and sync runs."""

import time
from contextlib import contextmanager
from typing import Any, Optional

import structlog

logger = structlog.get_logger().bind(source="observability")

# Counter name prefixes reported as separate groups in the run summary
GROUPS = ("catalog", "detection", "skills", "materialize")


class Metrics:
    """Dict-based counters and duration lists, keyed by event name."""

    def __init__(self):
        self._counters: dict[str, int] = {}
        self._timers: dict[str, list[float]] = {}

    def counter(self, name: str, value: int = 1):
        self._counters[name] = self._counters.get(name, 0) + value

    def get(self, name: str) -> int:
        return self._counters.get(name, 0)

    @contextmanager
    def timer(self, name: str):
        """Record the wall time of the enclosed block, also when it raises."""
        start = time.monotonic()
        try:
            yield
        finally:
            self._timers.setdefault(name, []).append(time.monotonic() - start)

    def durations(self, name: str) -> list[float]:
        return list(self._timers.get(name, []))

    def cache_hit_ratio(self) -> Optional[float]:
        """Share of catalog loads served from the disk cache, None before any load."""
        hits, misses = self.get("catalog_cache_hit"), self.get("catalog_cache_miss")
        if hits + misses == 0:
            return None
        return hits / (hits + misses)

    def summary(self) -> dict[str, Any]:
        grouped: dict[str, dict[str, int]] = {}
        for name, value in sorted(self._counters.items()):
            group = next((g for g in GROUPS if name.startswith(f"{g}_")), "other")
            grouped.setdefault(group, {})[name] = value

        timers = {
            name: {
                "count": len(durations),
                "total": round(sum(durations), 4),
                "max": round(max(durations), 4),
            }
            for name, durations in self._timers.items()
            if durations
        }

        return {"counters": grouped, "timers": timers, "cache_hit_ratio": self.cache_hit_ratio()}

    def reset(self):
        self._counters.clear()
        self._timers.clear()


# Module-level singleton
metrics = Metrics()


def log_run_summary(operation: str = "run", reset: bool = False, **fields):
    """Log the metrics collected so far for ``operation``; optionally start afresh."""
    logger.info("run_summary", operation=operation, **fields, **metrics.summary())
    if reset:
        metrics.reset()
