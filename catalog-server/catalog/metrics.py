"""
In-process request metrics.

Tracks:
- Latency percentiles (p50, p95, p99) per endpoint
- Cart cache hit rate
- Request and error counts per endpoint
"""

import statistics
import threading
from collections import defaultdict, deque
from datetime import datetime, timezone
from typing import Dict, Optional


class MetricsCollector:
    """
    Sliding-window metrics owned by one app instance.

    For production, this would feed Prometheus/StatsD; here it backs /metrics.
    """

    def __init__(self, window_size: int = 1000):
        """
        Args:
            window_size: Number of recent latency samples kept per endpoint
        """
        self.window_size = window_size
        self._lock = threading.Lock()

        self.latencies: Dict[str, deque] = defaultdict(lambda: deque(maxlen=window_size))
        self.cache_hits = 0
        self.cache_misses = 0
        self.request_counts: Dict[str, int] = defaultdict(int)
        self.error_counts: Dict[str, int] = defaultdict(int)

        self.start_time = datetime.now(timezone.utc)

    def record_request(self, endpoint: str, latency_ms: float, is_error: bool = False):
        """Record one finished request."""
        with self._lock:
            self.latencies[endpoint].append(latency_ms)
            self.request_counts[endpoint] += 1
            if is_error:
                self.error_counts[endpoint] += 1

    def record_cache_hit(self):
        with self._lock:
            self.cache_hits += 1

    def record_cache_miss(self):
        with self._lock:
            self.cache_misses += 1

    def get_percentile(self, endpoint: str, percentile: float) -> Optional[float]:
        """
        Latency percentile for an endpoint, or None with fewer than 10 samples.

        Args:
            endpoint: Endpoint name
            percentile: Percentile (0-100)
        """
        samples = self.latencies.get(endpoint)
        if not samples or len(samples) < 10:
            return None
        values = sorted(samples)
        index = min(int(len(values) * (percentile / 100.0)), len(values) - 1)
        return values[index]

    def get_cache_hit_rate(self) -> float:
        """Cache hit rate as a percentage."""
        total = self.cache_hits + self.cache_misses
        if total == 0:
            return 0.0
        return (self.cache_hits / total) * 100.0

    def get_error_rate(self, endpoint: str) -> float:
        total_requests = self.request_counts.get(endpoint, 0)
        if total_requests == 0:
            return 0.0
        return (self.error_counts.get(endpoint, 0) / total_requests) * 100.0

    def get_summary(self) -> Dict:
        uptime_seconds = (datetime.now(timezone.utc) - self.start_time).total_seconds()
        with self._lock:
            summary = {
                "uptime_seconds": uptime_seconds,
                "cache": {
                    "hit_rate_pct": round(self.get_cache_hit_rate(), 2),
                    "total_hits": self.cache_hits,
                    "total_misses": self.cache_misses,
                },
                "endpoints": {},
            }

            for endpoint in list(self.request_counts.keys()):
                endpoint_metrics = {
                    "total_requests": self.request_counts[endpoint],
                    "total_errors": self.error_counts.get(endpoint, 0),
                    "error_rate_pct": round(self.get_error_rate(endpoint), 2),
                }
                for pct in (50, 95, 99):
                    value = self.get_percentile(endpoint, pct)
                    if value is not None:
                        endpoint_metrics[f"latency_p{pct}_ms"] = round(value, 2)
                if self.latencies[endpoint]:
                    endpoint_metrics["latency_avg_ms"] = round(statistics.mean(self.latencies[endpoint]), 2)
                summary["endpoints"][endpoint] = endpoint_metrics

        return summary

    def reset(self):
        """Reset all metrics (useful for testing)."""
        with self._lock:
            self.latencies.clear()
            self.cache_hits = 0
            self.cache_misses = 0
            self.request_counts.clear()
            self.error_counts.clear()
