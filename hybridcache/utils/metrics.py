"""
Metrics collector menggunakan Prometheus.
File ini mengumpulkan data performa cache client seperti
latency per operation, hit/miss, dan lock contention.
"""

from prometheus_client import Counter, Histogram, Gauge, generate_latest
import time


class MetricsCollector:
    """
    Class untuk mengumpulkan metrics cache client.
    Menggunakan Prometheus format untuk monitoring.
    """

    def __init__(self):
        # Counter: jumlah operation per outcome (hit, miss, stored, not_stored, ...)
        self.operation_count = Counter(
            'memcache_operations_total',
            'Total number of cache operations',
            ['operation', 'outcome']
        )

        # Histogram: distribusi round trip ke transport
        self.operation_latency = Histogram(
            'memcache_operation_latency_seconds',
            'Cache transport round trip latency in seconds',
            ['operation']
        )

        self.cache_hit_rate = Gauge(
            'memcache_hit_rate',
            'Cache hit rate percentage'
        )

        # Lock metrics
        self.locks_acquired = Counter(
            'memcache_locks_acquired_total',
            'Total number of distributed locks acquired'
        )
        self.lock_contention = Counter(
            'memcache_lock_contention_total',
            'Total number of lock attempts that found the lock held'
        )

        self.hits = 0
        self.misses = 0

    def record_operation(self, operation: str, outcome: str):
        """
        Record outcome dari satu operation.

        Args:
            operation: Nama operation (get, set, add, cas, ...)
            outcome: Hasil operation (hit, miss, stored, not_stored, ...)
        """
        self.operation_count.labels(operation=operation, outcome=outcome).inc()

        if outcome == 'hit':
            self.hits += 1
        elif outcome == 'miss':
            self.misses += 1
        else:
            return
        self.cache_hit_rate.set(self.get_hit_rate() * 100)

    def record_latency(self, operation: str, duration: float):
        """Record durasi round trip ke transport"""
        self.operation_latency.labels(operation=operation).observe(duration)

    def record_lock(self, acquired: bool):
        """Update lock counters"""
        if acquired:
            self.locks_acquired.inc()
        else:
            self.lock_contention.inc()

    def get_hit_rate(self) -> float:
        """Calculate cache hit rate (0.0 - 1.0)"""
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total

    def get_metrics(self) -> bytes:
        """
        Export metrics dalam Prometheus format.
        Returns: Metrics data dalam bytes
        """
        return generate_latest()


# Context manager untuk measure transport round trip
class measure_time:
    """
    Context manager untuk mengukur execution time.

    Contoh penggunaan:
        with measure_time() as timer:
            # your code here
            pass
        print(f"Execution time: {timer.elapsed}s")
    """

    def __init__(self):
        self.start_time = None
        self.elapsed = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.elapsed = time.perf_counter() - self.start_time
        return False


# Singleton instance
metrics = MetricsCollector()
