"""
Main retention manager - orchestrates the retention system.

This is the main entry point that coordinates all retention operations: one
pipeline per policy row, plus the empty-placeholder and orphan-session sweeps,
all run concurrently and folded into a single report.
"""

import asyncio
import time
from datetime import datetime, timezone
from functools import partial
from typing import Any, Awaitable, Dict, Optional

import structlog

from retentiond.monitoring.retention_metrics import RetentionMetricsCollector
from retentiond.storage.interfaces import BlobStore
from retentiond.storage.retention_cleanup import RetentionCleanup
from retentiond.storage.retention_config import RetentionConfigManager, session_prefix
from retentiond.storage.retention_logging import RetentionLogger
from retentiond.storage.retention_models import (
    CleanupReport, Environment, PipelineReport, PipelineState, RetentionPolicy
)
from retentiond.storage.retention_rules import (
    classify_expiry, classify_placeholder, classify_session_name
)

logger = structlog.get_logger(__name__)

EMPTY_PLACEHOLDERS = 'empty-placeholders'
ORPHAN_SESSIONS = 'orphan-sessions'


class RetentionManager:
    """
    Main retention manager that orchestrates all retention operations.

    Pipelines never share counters: each returns an immutable PipelineReport
    and the manager folds them into one CleanupReport.
    """

    def __init__(
        self,
        config_manager: RetentionConfigManager,
        store: BlobStore,
        retention_logger: Optional[RetentionLogger] = None,
        metrics: Optional[RetentionMetricsCollector] = None,
    ):
        self.config_manager = config_manager
        self.store = store
        self.logger = retention_logger or RetentionLogger()
        self.metrics = metrics
        self.cleanup = RetentionCleanup(store, batch_size=config_manager.batch_size)

        self.policies = config_manager.get_retention_policies()
        self.protected_prefixes = config_manager.protected_prefixes

        logger.info("Retention manager initialized",
                    policies=len(self.policies),
                    protected_prefixes=len(self.protected_prefixes),
                    batch_size=config_manager.batch_size)

    async def run_cleanup(self, dry_run: bool = False, now: Optional[datetime] = None) -> CleanupReport:
        """
        Run every cleanup pipeline concurrently.

        Args:
            dry_run: If True, classify everything but never call delete.
            now: Reference instant for age checks (defaults to current UTC time).

        Returns:
            Consolidated report for the run.
        """
        now = now or datetime.now(timezone.utc)
        started = time.monotonic()

        if dry_run:
            logger.info("DRY RUN mode - no files will be deleted")

        category_jobs = [self._run_policy(policy, now, dry_run) for policy in self.policies]
        sweep_jobs = [
            self._run_empty_placeholder_sweep(dry_run),
            self._run_orphan_session_sweep(dry_run),
        ]

        results = await asyncio.gather(*category_jobs, *sweep_jobs)
        categories = tuple(results[:len(category_jobs)])
        sweeps = tuple(results[len(category_jobs):])

        for pipeline in categories + sweeps:
            self.logger.log_pipeline(pipeline, dry_run)

        report = CleanupReport(
            dry_run=dry_run,
            started_at=now,
            duration_seconds=time.monotonic() - started,
            categories=categories,
            sweeps=sweeps,
            development=tuple(p.name for p in self.policies if p.environment is Environment.DEVELOPMENT),
        )

        self.logger.log_run(report)
        if self.metrics is not None:
            self.metrics.record_run(report)
        return report

    async def _guard(self, name: str, job: Awaitable[PipelineReport]) -> PipelineReport:
        """Keep an unexpected pipeline failure inside its own pipeline."""
        try:
            return await job
        except Exception as e:
            logger.exception("Cleanup pipeline crashed", pipeline=name)
            return PipelineReport(name=name, errors=1, state=PipelineState.DONE, error_message=str(e))

    def _run_policy(self, policy: RetentionPolicy, now: datetime, dry_run: bool) -> Awaitable[PipelineReport]:
        classify = partial(
            classify_expiry,
            policy=policy,
            now=now,
            protected_prefixes=self.protected_prefixes,
        )
        return self._guard(
            policy.name,
            self.cleanup.run_pipeline(policy.name, [policy.prefix], classify, dry_run)
        )

    def _run_empty_placeholder_sweep(self, dry_run: bool) -> Awaitable[PipelineReport]:
        classify = partial(classify_placeholder, protected_prefixes=self.protected_prefixes)
        return self._guard(
            EMPTY_PLACEHOLDERS,
            self.cleanup.run_pipeline(
                EMPTY_PLACEHOLDERS, [self.config_manager.root_prefix], classify, dry_run
            )
        )

    def _run_orphan_session_sweep(self, dry_run: bool) -> Awaitable[PipelineReport]:
        classify = partial(
            classify_session_name,
            valid_prefixes=self.config_manager.valid_session_prefixes,
            protected_prefixes=self.protected_prefixes,
        )
        prefixes = [session_prefix(self.config_manager.root_prefix, env) for env in Environment]
        return self._guard(
            ORPHAN_SESSIONS,
            self.cleanup.run_pipeline(ORPHAN_SESSIONS, prefixes, classify, dry_run)
        )

    def get_retention_status(self) -> Dict[str, Any]:
        """Get current retention system configuration."""
        status = self.config_manager.describe()
        status['sweeps'] = [EMPTY_PLACEHOLDERS, ORPHAN_SESSIONS]
        return status


def create_retention_manager(
    config_path: Optional[str],
    store: BlobStore,
    root_prefix: str,
    logs_dir: Optional[str] = None,
    metrics: Optional[RetentionMetricsCollector] = None,
) -> RetentionManager:
    """Create a new RetentionManager instance."""
    config_manager = RetentionConfigManager(config_path, root_prefix=root_prefix)
    return RetentionManager(config_manager, store, RetentionLogger(logs_dir), metrics)
