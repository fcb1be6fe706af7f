"""
System Monitors - validator and oracle metrics
"""

import logging
import time
from collections import defaultdict, deque
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

RECENT_WINDOW = 300


class SystemMonitor:
    """In-memory metrics for verification runs"""

    def __init__(self, max_history: int = 1000, *,
                 clock: Optional[Callable[[], float]] = None):
        self.max_history = max_history
        self.metrics_history = deque(maxlen=max_history)
        self.counters: Dict[str, int] = defaultdict(int)
        self._clock = clock or time.time
        self.start_time = self._clock()

    def record_metric(self, metric_name: str, value: float,
                      tags: Optional[Dict[str, str]] = None):
        """Record a metric sample"""
        self.metrics_history.append({
            "name": metric_name,
            "value": value,
            "tags": tags or {},
            "timestamp": self._clock(),
        })

    def increment(self, counter_name: str, amount: int = 1):
        self.counters[counter_name] += amount

    def record_validator(self, category: str, succeeded: bool, response_time: float):
        """Record the outcome of one validator call"""
        self.record_metric("validator_latency", response_time, {"category": category})
        self.increment("validators_succeeded" if succeeded else "validators_failed")

    def get_metrics(self) -> Dict[str, Any]:
        """Counters plus a summary of the last five minutes"""
        current_time = self._clock()
        recent_cutoff = current_time - RECENT_WINDOW
        recent_metrics = [m for m in self.metrics_history if m["timestamp"] > recent_cutoff]

        metric_groups = defaultdict(list)
        for metric in recent_metrics:
            metric_groups[metric["name"]].append(metric["value"])

        metrics_summary = {}
        for name, values in metric_groups.items():
            metrics_summary[name] = {
                "count": len(values),
                "average": sum(values) / len(values),
                "min": min(values),
                "max": max(values),
                "latest": values[-1],
            }

        return {
            "uptime": current_time - self.start_time,
            "total_metrics": len(self.metrics_history),
            "recent_metrics": len(recent_metrics),
            "counters": dict(self.counters),
            "metrics_summary": metrics_summary,
        }

    def cleanup(self):
        """Cleanup monitor resources"""
        self.metrics_history.clear()
        self.counters.clear()
