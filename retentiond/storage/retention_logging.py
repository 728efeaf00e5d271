"""
Logging and reporting for the retention system.

This module handles per-pipeline logging, run summaries and the optional
JSON-lines audit trail of cleanup runs.
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, Optional

import structlog

from retentiond.storage.retention_models import CleanupReport, PipelineReport

logger = structlog.get_logger(__name__)


class RetentionLogger:
    """Handles logging and reporting for retention operations."""

    def __init__(self, logs_dir: Optional[str] = None):
        self.logs_dir = Path(logs_dir) if logs_dir else None
        if self.logs_dir is not None:
            self.logs_dir.mkdir(parents=True, exist_ok=True)

    def log_pipeline(self, report: PipelineReport, dry_run: bool):
        """Log the outcome of a single pipeline."""
        if report.failed:
            logger.error("Cleanup pipeline failed",
                         pipeline=report.name,
                         errors=report.errors,
                         error=report.error_message)
        elif report.errors:
            logger.warning("Cleanup pipeline completed with delete errors",
                           pipeline=report.name,
                           deleted=report.deleted,
                           errors=report.errors,
                           dry_run=dry_run)
        else:
            logger.info("Cleanup pipeline completed",
                        pipeline=report.name,
                        deleted=report.deleted,
                        kept=report.kept,
                        skipped=report.skipped,
                        dry_run=dry_run)

        if report.accounted != report.scanned and not (report.failed and report.scanned == 0):
            logger.error("Cleanup accounting mismatch",
                         pipeline=report.name,
                         scanned=report.scanned,
                         accounted=report.accounted)

    def log_run(self, report: CleanupReport):
        """Log the consolidated run and append it to the audit trail."""
        totals = report.totals
        logger.info("Cleanup run completed",
                    dry_run=report.dry_run,
                    duration=self._format_duration(report.duration_seconds),
                    **totals.to_dict())

        if self.logs_dir is not None:
            self._store_run_log(self._create_log_entry(report))

    def _create_log_entry(self, report: CleanupReport) -> Dict[str, Any]:
        entry = report.to_dict()
        entry['loggedAt'] = datetime.now().isoformat()
        entry['failedPipelines'] = [r.name for r in report.pipelines if r.failed]
        return entry

    def _format_duration(self, duration_seconds: float) -> str:
        """Format duration in a human-readable format."""
        if duration_seconds < 60:
            return f"{duration_seconds:.2f}s"
        elif duration_seconds < 3600:
            return f"{duration_seconds / 60:.1f}m"
        return f"{duration_seconds / 3600:.1f}h"

    def _store_run_log(self, log_entry: Dict[str, Any]):
        """Append a run entry to today's JSON-lines file."""
        log_date = datetime.now().strftime("%Y-%m-%d")
        log_file = self.logs_dir / f"cleanup_operations_{log_date}.jsonl"
        try:
            with open(log_file, 'a') as f:
                f.write(json.dumps(log_entry) + '\n')
        except OSError as e:
            logger.error("Failed to store cleanup log", path=str(log_file), error=str(e))
