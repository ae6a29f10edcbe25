"""
Performance Instrumentation for the MiFi Monitor
================================================

Records timing for every device request and every fetch cycle so slow
or flaky devices can be spotted from the summary.

"""

import logging
import threading
import time
from typing import Any, Dict, List, Optional

from .models import TimingMetrics

logger = logging.getLogger("mifi-monitor")


class PerformanceInstrumentation:
    """
    Performance instrumentation for the MiFi client.

    Tracks timing metrics for:
    - Individual device requests (homepage/status, plain and authenticated)
    - Complete fetch cycles including normalization
    """

    def __init__(self, max_records: int = 1000) -> None:
        self.max_records = max_records
        self.timing_metrics: List[TimingMetrics] = []
        self.session_start_time = time.time()
        self.request_metrics: Dict[str, List[float]] = {}
        self._lock = threading.Lock()

    def start_timer(self, operation: str) -> float:
        """Start timing an operation."""
        return time.time()

    def record_timing(
        self,
        operation: str,
        start_time: float,
        success: bool = True,
        error_type: Optional[str] = None,
        http_status: Optional[int] = None,
        response_size: int = 0,
    ) -> TimingMetrics:
        """Record timing metrics for an operation."""
        end_time = time.time()
        duration = end_time - start_time

        metric = TimingMetrics(
            operation=operation,
            start_time=start_time,
            end_time=end_time,
            duration=duration,
            success=success,
            error_type=error_type,
            http_status=http_status,
            response_size=response_size,
        )

        with self._lock:
            self.timing_metrics.append(metric)
            durations = self.request_metrics.setdefault(operation, [])
            durations.append(duration)

            # The poller runs forever; keep memory bounded
            if len(self.timing_metrics) > self.max_records:
                del self.timing_metrics[0]
            if len(durations) > self.max_records:
                del durations[0]

        logger.debug(f"📊 {operation}: {duration * 1000:.1f}ms (success: {success})")
        return metric

    def get_performance_summary(self) -> Dict[str, Any]:
        """
        Summarize everything recorded so far.

        Returns:
            Dict with session totals, a per-operation breakdown, response time
            percentiles over successful operations and a list of insights
        """
        with self._lock:
            metrics = list(self.timing_metrics)
            durations_by_operation = {op: list(d) for op, d in self.request_metrics.items() if d}

        if not metrics:
            return {"error": "No timing metrics recorded"}

        operation_stats = {
            operation: self._operation_stats(durations, [m for m in metrics if m.operation == operation])
            for operation, durations in durations_by_operation.items()
        }
        failed = sum(1 for m in metrics if not m.success)

        return {
            "session_metrics": {
                "total_session_time": time.time() - self.session_start_time,
                "total_operations": len(metrics),
                "successful_operations": len(metrics) - failed,
                "failed_operations": failed,
            },
            "operation_breakdown": operation_stats,
            "response_time_percentiles": self._percentiles([m.duration for m in metrics if m.success]),
            "performance_insights": self._generate_performance_insights(metrics, operation_stats),
        }

    @staticmethod
    def _operation_stats(durations: List[float], records: List[TimingMetrics]) -> Dict[str, Any]:
        successes = sum(1 for m in records if m.success)
        return {
            "count": len(durations),
            "total_time": sum(durations),
            "avg_time": sum(durations) / len(durations),
            "min_time": min(durations),
            "max_time": max(durations),
            "success_rate": successes / len(records) if records else 0.0,
        }

    @staticmethod
    def _percentiles(durations: List[float]) -> Dict[str, float]:
        if not durations:
            return {"p50": 0.0, "p90": 0.0, "p95": 0.0, "p99": 0.0}
        ordered = sorted(durations)
        last = len(ordered) - 1
        return {name: ordered[min(int(len(ordered) * q), last)] for name, q in
                (("p50", 0.5), ("p90", 0.9), ("p95", 0.95), ("p99", 0.99))}

    def _generate_performance_insights(
        self, metrics: List[TimingMetrics], operation_stats: Dict[str, Any]
    ) -> List[str]:
        """Generate performance insights based on metrics."""
        insights = []

        cycle_stats = operation_stats.get("fetch_metrics")
        if cycle_stats:
            avg_cycle = cycle_stats["avg_time"]
            if avg_cycle > 1.0:
                insights.append(f"Fetch cycles average {avg_cycle:.2f}s - longer than the 1s polling interval")
            elif avg_cycle < 0.2:
                insights.append(f"Fast device responses: {avg_cycle * 1000:.0f}ms per cycle")

        auth_ops = [op for op in operation_stats if op.endswith("_authenticated")]
        if auth_ops:
            auth_count = sum(operation_stats[op]["count"] for op in auth_ops)
            insights.append(f"{auth_count} authenticated retries after Digest challenges")

        total_ops = len(metrics)
        failed_ops = len([m for m in metrics if not m.success])
        if total_ops > 0:
            error_rate = failed_ops / total_ops
            if error_rate > 0.1:
                insights.append(f"High error rate: {error_rate * 100:.1f}% - check Wi-Fi link to the device")
            elif error_rate == 0:
                insights.append("Perfect reliability: 0% error rate")

        return insights


__all__ = ["PerformanceInstrumentation"]
