"""
Prometheus export of run metrics.

Batch runs are short-lived, so instead of an HTTP endpoint the counters are
kept on a process-level CollectorRegistry and written in the node-exporter
textfile format on request.

Usage:
    from kern.metrics.prometheus import record_run, write_textfile

    record_run(result.metrics)
    write_textfile("/var/lib/node_exporter/kern.prom")
"""

import logging
import threading
from typing import Any, Dict, Optional

from prometheus_client import CollectorRegistry, Counter, Histogram, write_to_textfile

logger = logging.getLogger(__name__)

REGISTRY: Optional[CollectorRegistry] = None
STEPS_TOTAL: Optional[Counter] = None
VIOLATIONS_TOTAL: Optional[Counter] = None
RUN_DURATION: Optional[Histogram] = None

_metrics_initialized = False
_metrics_lock = threading.Lock()


def init_metrics() -> CollectorRegistry:
    """
    Initialize collectors (idempotent).

    Thread-safe via module-level lock.

    Returns:
        The registry holding kern collectors
    """
    global REGISTRY, STEPS_TOTAL, VIOLATIONS_TOTAL, RUN_DURATION
    global _metrics_initialized

    with _metrics_lock:
        if _metrics_initialized:
            return REGISTRY

        REGISTRY = CollectorRegistry()

        STEPS_TOTAL = Counter(
            "kern_steps_total",
            "Total number of primitive invocations",
            labelnames=["primitive"],
            registry=REGISTRY,
        )

        VIOLATIONS_TOTAL = Counter(
            "kern_violations_total",
            "Total number of invariant violations recorded",
            labelnames=["violation_type"],
            registry=REGISTRY,
        )

        RUN_DURATION = Histogram(
            "kern_run_duration_seconds",
            "Duration of engine runs in seconds",
            buckets=(0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 10.0),
            registry=REGISTRY,
        )

        _metrics_initialized = True
        logger.debug("Prometheus collectors initialized")
        return REGISTRY


def record_run(metrics: Dict[str, Any]) -> None:
    """
    Add one run's snapshot to the collectors.

    Args:
        metrics: Snapshot document from MetricsAggregator.snapshot()
    """
    init_metrics()
    snap = metrics.get("snapshot", {})

    for primitive, count in snap.get("primitives", {}).items():
        STEPS_TOTAL.labels(primitive=primitive).inc(count)

    by_type = snap.get("invariants", {}).get("violationsByType", {})
    for label, count in by_type.items():
        VIOLATIONS_TOTAL.labels(violation_type=label).inc(count)

    duration_ms = snap.get("timing", {}).get("durationMs")
    if duration_ms is not None:
        RUN_DURATION.observe(duration_ms / 1000.0)


def write_textfile(path: str) -> None:
    """Write all collectors in textfile-collector format (atomic rename)."""
    registry = init_metrics()
    write_to_textfile(path, registry)
    logger.info("Prometheus metrics written to %s", path)
