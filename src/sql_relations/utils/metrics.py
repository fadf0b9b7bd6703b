"""
Metrics Collection Module for SQL Relations
Provides thread-safe counters, gauges and timers for classification runs
"""
from __future__ import annotations

import threading
import time
from collections import defaultdict
from contextlib import contextmanager
from typing import Any, Dict, Generator, List, Optional
import json
import statistics


class MetricsCollector:
    """Thread-safe metrics collector"""

    _instance: Optional["MetricsCollector"] = None
    _lock = threading.Lock()

    def __new__(cls) -> "MetricsCollector":
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return
        self._counters: Dict[str, float] = defaultdict(float)
        self._gauges: Dict[str, float] = {}
        self._timers: Dict[str, List[float]] = defaultdict(list)
        self._data_lock = threading.Lock()
        self._enabled = True
        self._initialized = True

    def enable(self) -> None:
        """Enable metrics collection"""
        self._enabled = True

    def disable(self) -> None:
        """Disable metrics collection"""
        self._enabled = False

    def counter(self, name: str, value: float = 1.0, labels: Optional[Dict[str, str]] = None) -> None:
        """Increment a counter"""
        if not self._enabled:
            return

        key = self._make_key(name, labels)
        with self._data_lock:
            self._counters[key] += value

    def gauge(self, name: str, value: float, labels: Optional[Dict[str, str]] = None) -> None:
        """Set a gauge value"""
        if not self._enabled:
            return

        key = self._make_key(name, labels)
        with self._data_lock:
            self._gauges[key] = value

    def timer(self, name: str, duration: float, labels: Optional[Dict[str, str]] = None) -> None:
        """Record a timer value"""
        if not self._enabled:
            return

        key = self._make_key(name, labels)
        with self._data_lock:
            self._timers[key].append(duration)

    @contextmanager
    def time_operation(self, name: str, labels: Optional[Dict[str, str]] = None) -> Generator[None, None, None]:
        """Context manager for timing operations"""
        start = time.time()
        try:
            yield
        finally:
            duration = time.time() - start
            self.timer(name, duration, labels)

    def _make_key(self, name: str, labels: Optional[Dict[str, str]] = None) -> str:
        """Create a unique key for metric with labels"""
        if not labels:
            return name
        label_str = ",".join(f"{k}={v}" for k, v in sorted(labels.items()))
        return f"{name}{{{label_str}}}"

    def get_counter(self, name: str, labels: Optional[Dict[str, str]] = None) -> float:
        """Get the current value of a counter"""
        with self._data_lock:
            return self._counters.get(self._make_key(name, labels), 0.0)

    def get_metrics(self) -> Dict[str, Any]:
        """Get all collected metrics"""
        with self._data_lock:
            metrics = {
                "counters": dict(self._counters),
                "gauges": dict(self._gauges),
                "timers": {},
            }

            for key, values in self._timers.items():
                if values:
                    metrics["timers"][key] = {
                        "count": len(values),
                        "sum": sum(values),
                        "min": min(values),
                        "max": max(values),
                        "mean": statistics.mean(values),
                        "median": statistics.median(values),
                    }

            return metrics

    def reset(self) -> None:
        """Reset all metrics"""
        with self._data_lock:
            self._counters.clear()
            self._gauges.clear()
            self._timers.clear()

    def export_json(self) -> str:
        """Export metrics as JSON string"""
        return json.dumps(self.get_metrics(), indent=2, default=str)


def get_metrics_collector() -> MetricsCollector:
    """Get the global metrics collector instance"""
    return MetricsCollector()


def counter(name: str, value: float = 1.0, labels: Optional[Dict[str, str]] = None) -> None:
    """Increment a counter"""
    get_metrics_collector().counter(name, value, labels)


def gauge(name: str, value: float, labels: Optional[Dict[str, str]] = None) -> None:
    """Set a gauge value"""
    get_metrics_collector().gauge(name, value, labels)


def timer(name: str, duration: float, labels: Optional[Dict[str, str]] = None) -> None:
    """Record a timer value"""
    get_metrics_collector().timer(name, duration, labels)


@contextmanager
def time_operation(name: str, labels: Optional[Dict[str, str]] = None) -> Generator[None, None, None]:
    """Context manager for timing operations"""
    with get_metrics_collector().time_operation(name, labels):
        yield


class ClassifierMetrics:
    """Classification specific metrics helper"""

    @staticmethod
    def record_run(duration: float, success: bool, tables: int, foreign_keys: int) -> None:
        """Record a full classification run"""
        labels = {"success": str(success).lower()}
        timer("classification_run_duration", duration, labels)
        counter("classification_runs_total", 1.0, labels)
        gauge("classification_tables", float(tables))
        gauge("classification_foreign_keys", float(foreign_keys))

    @staticmethod
    def record_tag(tag: str) -> None:
        """Record one foreign key classification"""
        counter("foreign_key_classifications_total", 1.0, {"tag": tag})

    @staticmethod
    def record_triangle(mandatory: bool) -> None:
        """Record a detected triangular same-as"""
        counter("triangular_same_as_total", 1.0, {"mandatory": str(mandatory).lower()})

    @staticmethod
    def record_error(error_type: str, category: str) -> None:
        """Record error metrics"""
        counter("errors_total", 1.0, {"error_type": error_type, "category": category})

    @staticmethod
    def set_cache_stats(hits: int, misses: int, cache_type: str) -> None:
        """Set cache statistics"""
        counter("cache_hits_total", float(hits), {"cache_type": cache_type})
        counter("cache_misses_total", float(misses), {"cache_type": cache_type})
