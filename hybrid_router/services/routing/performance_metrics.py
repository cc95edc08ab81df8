"""Live per-model performance metrics"""

import threading
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from typing import Dict, Iterable, Optional, Any


@dataclass(frozen=True)
class MetricsSnapshot:
    """Immutable copy of one model's counters"""
    request_count: int = 0
    success_count: int = 0
    failure_count: int = 0
    average_latency_ms: float = 0.0
    total_cost: float = 0.0
    last_error: Optional[str] = None
    last_error_time: Optional[datetime] = None
    last_used: Optional[datetime] = None

    @property
    def success_rate(self) -> float:
        return self.success_count / self.request_count if self.request_count else 0.0

    @property
    def error_rate(self) -> float:
        return self.failure_count / self.request_count if self.request_count else 0.0

    @property
    def average_cost_per_request(self) -> float:
        return self.total_cost / self.request_count if self.request_count else 0.0

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data.update({
            "success_rate": self.success_rate,
            "error_rate": self.error_rate,
            "average_cost_per_request": self.average_cost_per_request,
        })
        return data


class _ModelCounters:
    __slots__ = (
        "lock", "request_count", "success_count", "failure_count",
        "average_latency_ms", "total_cost", "last_error", "last_error_time", "last_used",
    )

    def __init__(self):
        self.lock = threading.Lock()
        self.request_count = 0
        self.success_count = 0
        self.failure_count = 0
        self.average_latency_ms = 0.0
        self.total_cost = 0.0
        self.last_error: Optional[str] = None
        self.last_error_time: Optional[datetime] = None
        self.last_used: Optional[datetime] = None


class PerformanceMetricsStore:
    """Keyed store of rolling counters, one entry per provider:model key

    Writes for a key are serialized by that key's lock, so concurrent
    completions never lose increments. Snapshots are taken under the same
    lock but may be stale by the time they are used for scoring.
    """

    def __init__(self, keys: Iterable[str] = ()):
        self._counters: Dict[str, _ModelCounters] = {}
        self._registry_lock = threading.Lock()
        for key in keys:
            self._counters[key] = _ModelCounters()

    def _counters_for(self, key: str) -> _ModelCounters:
        counters = self._counters.get(key)
        if counters is None:
            with self._registry_lock:
                counters = self._counters.setdefault(key, _ModelCounters())
        return counters

    def record_outcome(
        self,
        key: str,
        success: bool,
        latency_ms: float,
        cost: float = 0.0,
        error: Optional[str] = None
    ) -> MetricsSnapshot:
        """Record one call outcome

        Args:
            key: provider:model key
            success: Whether the call succeeded
            latency_ms: Observed latency
            cost: Cost incurred by the call
            error: Failure message, kept as last_error

        Returns:
            Snapshot taken right after the update
        """
        counters = self._counters_for(key)
        now = datetime.now(timezone.utc)
        with counters.lock:
            counters.request_count += 1
            if success:
                counters.success_count += 1
            else:
                counters.failure_count += 1
                counters.last_error = error
                counters.last_error_time = now

            n = counters.request_count
            counters.average_latency_ms = (counters.average_latency_ms * (n - 1) + latency_ms) / n
            counters.total_cost += max(cost, 0.0)
            counters.last_used = now
            return self._snapshot(counters)

    def get_snapshot(self, key: str) -> MetricsSnapshot:
        counters = self._counters.get(key)
        if counters is None:
            return MetricsSnapshot()
        with counters.lock:
            return self._snapshot(counters)

    def snapshot_all(self) -> Dict[str, MetricsSnapshot]:
        return {key: self.get_snapshot(key) for key in list(self._counters)}

    def provider_error_rate(self, keys: Iterable[str]) -> Optional[float]:
        """Aggregate error rate over a provider's models

        Args:
            keys: Keys of the provider's models

        Returns:
            failures / requests, or None when none of the keys saw traffic
        """
        requests = failures = 0
        for key in keys:
            snapshot = self.get_snapshot(key)
            requests += snapshot.request_count
            failures += snapshot.failure_count
        if requests == 0:
            return None
        return failures / requests

    @staticmethod
    def _snapshot(counters: _ModelCounters) -> MetricsSnapshot:
        return MetricsSnapshot(
            request_count=counters.request_count,
            success_count=counters.success_count,
            failure_count=counters.failure_count,
            average_latency_ms=counters.average_latency_ms,
            total_cost=counters.total_cost,
            last_error=counters.last_error,
            last_error_time=counters.last_error_time,
            last_used=counters.last_used,
        )
