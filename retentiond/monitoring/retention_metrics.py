"""
Prometheus metrics for retention cleanup runs.

Counts objects per pipeline and outcome, delete and scan failures, and run
duration so scheduled cleanups can be alerted on.
"""

import logging
import time
from typing import Optional

from prometheus_client import Counter, Gauge, Histogram, CollectorRegistry, generate_latest

from retentiond.storage.retention_models import CleanupReport


class RetentionMetricsCollector:
    """
    Metrics collector for the retention engine.

    Uses its own registry by default so several instances (e.g. in tests)
    never collide on metric names.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        """
        Initialize the metrics collector.

        Args:
            registry: Optional Prometheus registry. If None, a fresh one is created.
        """
        self.registry = registry or CollectorRegistry()
        self.logger = logging.getLogger(f"{self.__class__.__module__}.{self.__class__.__name__}")
        self._initialize_metrics()

    def _initialize_metrics(self) -> None:
        self.objects_total = Counter(
            'retention_objects_total',
            'Objects processed by cleanup pipelines',
            ['pipeline', 'outcome', 'dry_run'],
            registry=self.registry
        )

        self.delete_errors_total = Counter(
            'retention_delete_errors_total',
            'Objects that could not be deleted',
            ['pipeline'],
            registry=self.registry
        )

        self.scan_failures_total = Counter(
            'retention_scan_failures_total',
            'Pipelines aborted by a failed listing',
            ['pipeline'],
            registry=self.registry
        )

        self.run_duration = Histogram(
            'retention_run_duration_seconds',
            'Duration of a full cleanup run',
            ['dry_run'],
            registry=self.registry
        )

        self.last_run_timestamp = Gauge(
            'retention_last_run_timestamp_seconds',
            'Unix time the last cleanup run finished',
            ['dry_run'],
            registry=self.registry
        )

    def record_run(self, report: CleanupReport) -> None:
        """Record every pipeline in a finished run."""
        dry_run = str(report.dry_run).lower()

        for pipeline in report.pipelines:
            for outcome, count in (
                ('deleted', pipeline.deleted),
                ('kept', pipeline.kept),
                ('skipped', pipeline.skipped),
                ('errors', pipeline.errors),
            ):
                if count:
                    self.objects_total.labels(
                        pipeline=pipeline.name, outcome=outcome, dry_run=dry_run
                    ).inc(count)

            if pipeline.failed:
                self.scan_failures_total.labels(pipeline=pipeline.name).inc()
            elif pipeline.errors:
                self.delete_errors_total.labels(pipeline=pipeline.name).inc(pipeline.errors)

        self.run_duration.labels(dry_run=dry_run).observe(report.duration_seconds)
        self.last_run_timestamp.labels(dry_run=dry_run).set(time.time())
        self.logger.debug(f"Recorded metrics for {len(report.pipelines)} pipelines")

    def generate_latest(self) -> bytes:
        """Render the registry in Prometheus text format."""
        return generate_latest(self.registry)
