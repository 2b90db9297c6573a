"""
Run metrics.

- aggregator: per-run counters and the snapshot document
- prometheus: process-level collectors and textfile export
"""

from .aggregator import ENGINE_VERSION, OUTCOME_SUCCESS, OUTCOME_VIOLATION, MetricsAggregator

__all__ = [
    "ENGINE_VERSION",
    "OUTCOME_SUCCESS",
    "OUTCOME_VIOLATION",
    "MetricsAggregator",
]
