"""
Metrics collection for the order pipeline.

In-process counters for the read path (orders created, cache hits and
misses) and for the consumer (per-message outcomes, commit and fetch
failures). Exposed through the health endpoint.
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Any, Dict

logger = logging.getLogger(__name__)


class OrderMetrics:
    """
    Thread-safe in-process counters.

    A single instance is shared by the orchestrator and the consumer; tests
    build their own instance and inspect it.
    """

    COUNTERS = (
        "orders_created",
        "cache_hits",
        "cache_misses",
        "messages_persisted",
        "messages_skipped_decode",
        "messages_skipped_validation",
        "messages_exhausted",
        "commit_failures",
        "fetch_errors",
    )

    def __init__(self):
        self._lock = threading.Lock()
        self._counters: Dict[str, int] = {name: 0 for name in self.COUNTERS}
        self.started_at = datetime.now(timezone.utc)

    def increment(self, name: str, amount: int = 1) -> None:
        """
        Increment a counter.

        Args:
            name: Counter name, one of ``COUNTERS``
            amount: Increment
        """
        if name not in self._counters:
            raise KeyError(f"Unknown metric: {name}")

        with self._lock:
            self._counters[name] += amount

        logger.debug(f"Metric {name} incremented by {amount}")

    def get(self, name: str) -> int:
        with self._lock:
            return self._counters[name]

    def reset(self) -> None:
        with self._lock:
            for name in self._counters:
                self._counters[name] = 0

    @property
    def cache_hit_rate(self) -> float:
        with self._lock:
            lookups = self._counters["cache_hits"] + self._counters["cache_misses"]
            if not lookups:
                return 0.0
            return round(self._counters["cache_hits"] / lookups * 100, 2)

    def snapshot(self) -> Dict[str, Any]:
        """
        Get a copy of every counter plus derived values.

        Returns:
            Dict with counters, cache hit rate and uptime
        """
        hit_rate = self.cache_hit_rate
        with self._lock:
            counters = dict(self._counters)

        uptime = (datetime.now(timezone.utc) - self.started_at).total_seconds()
        return {
            **counters,
            "cache_hit_rate": hit_rate,
            "started_at": self.started_at.isoformat(),
            "uptime_seconds": round(uptime, 2),
        }
