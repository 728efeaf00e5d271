"""
Monitoring for retentiond.

Exposes Prometheus metrics describing cleanup runs.
"""

from .retention_metrics import RetentionMetricsCollector

__all__ = [
    'RetentionMetricsCollector',
]
