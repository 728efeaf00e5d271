"""
Unit tests for retention metrics.
"""

from prometheus_client import CollectorRegistry

from retentiond.monitoring import RetentionMetricsCollector
from retentiond.storage.retention_models import CleanupReport, PipelineReport
from tests.utils.blob_fakes import utc


def make_report(dry_run=False):
    return CleanupReport(
        dry_run=dry_run,
        started_at=utc(2025, 1, 1),
        duration_seconds=1.5,
        categories=(
            PipelineReport('chat-transcript/production', scanned=6, deleted=3, kept=2, skipped=1),
            PipelineReport('audit-event/preview', scanned=4, deleted=2, errors=2),
            PipelineReport('audit-event/production', scanned=3, errors=3, error_message='listing failed'),
        ),
        sweeps=(PipelineReport('empty-placeholders', scanned=9, kept=9),),
    )


class TestRetentionMetricsCollector:
    """Test cases for RetentionMetricsCollector."""

    def test_uses_own_registry(self):
        first = RetentionMetricsCollector()
        second = RetentionMetricsCollector()
        assert first.registry is not second.registry

    def test_accepts_registry(self):
        registry = CollectorRegistry()
        assert RetentionMetricsCollector(registry).registry is registry

    def test_records_outcomes(self):
        metrics = RetentionMetricsCollector()
        metrics.record_run(make_report())

        def objects(pipeline, outcome):
            return metrics.registry.get_sample_value(
                'retention_objects_total',
                {'pipeline': pipeline, 'outcome': outcome, 'dry_run': 'false'},
            )

        assert objects('chat-transcript/production', 'deleted') == 3.0
        assert objects('chat-transcript/production', 'kept') == 2.0
        assert objects('chat-transcript/production', 'skipped') == 1.0
        assert objects('chat-transcript/production', 'errors') is None
        assert objects('empty-placeholders', 'kept') == 9.0

    def test_separates_delete_errors_from_scan_failures(self):
        metrics = RetentionMetricsCollector()
        metrics.record_run(make_report())
        registry = metrics.registry

        assert registry.get_sample_value(
            'retention_delete_errors_total', {'pipeline': 'audit-event/preview'}) == 2.0
        assert registry.get_sample_value(
            'retention_scan_failures_total', {'pipeline': 'audit-event/production'}) == 1.0
        assert registry.get_sample_value(
            'retention_delete_errors_total', {'pipeline': 'audit-event/production'}) is None

    def test_run_duration_and_timestamp(self):
        metrics = RetentionMetricsCollector()
        metrics.record_run(make_report(dry_run=True))
        registry = metrics.registry

        assert registry.get_sample_value('retention_run_duration_seconds_count', {'dry_run': 'true'}) == 1.0
        assert registry.get_sample_value('retention_run_duration_seconds_sum', {'dry_run': 'true'}) == 1.5
        assert registry.get_sample_value('retention_last_run_timestamp_seconds', {'dry_run': 'true'}) > 0

    def test_generate_latest(self):
        metrics = RetentionMetricsCollector()
        metrics.record_run(make_report())
        output = metrics.generate_latest().decode('utf-8')

        assert 'retention_objects_total' in output
        assert 'chat-transcript/production' in output
