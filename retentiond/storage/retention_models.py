"""
Data models for the retention system.

This module contains all the data classes and enums used by the retention system.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional, Dict, Any, List, Tuple, Union


class Category(Enum):
    """Object categories stored under the blob root."""
    CHAT_TRANSCRIPT = "chat-transcript"
    FIT_ASSESSMENT = "fit-assessment"
    RESUME_GENERATION = "resume-generation"
    AUDIT_EVENT = "audit-event"
    USAGE_SESSION = "usage-session"
    OTHER = "other"


class Environment(Enum):
    """Deployment environments that write objects."""
    PRODUCTION = "production"
    PREVIEW = "preview"
    DEVELOPMENT = "development"


class Decision(Enum):
    """Outcome of classifying a single object."""
    KEEP = "keep"
    DELETE = "delete"
    SKIP = "skip"


class Reason(Enum):
    """Why an object received its decision."""
    PROTECTED = "protected"
    TOO_YOUNG = "too-young"
    TIMESTAMP_UNRESOLVABLE = "timestamp-unresolvable"
    ORPHANED_NAME = "orphaned-name"
    EXPIRED = "expired"
    UNCONDITIONAL = "unconditional"
    EMPTY_PLACEHOLDER = "empty-placeholder"
    RECOGNIZED_NAME = "recognized-name"
    NON_EMPTY = "non-empty"


class PipelineState(Enum):
    """Lifecycle of one scan/classify/delete pipeline."""
    PENDING = "pending"
    SCANNING = "scanning"
    CLASSIFYING = "classifying"
    DELETING = "deleting"
    DRY_RUN_SKIP = "dry-run-skip"
    DONE = "done"


@dataclass(frozen=True)
class StoredObject:
    """One entry in the object store."""
    key: str
    size_bytes: int
    access_url: str
    store_uploaded_at: Optional[Union[datetime, str]] = None

    @property
    def filename(self) -> str:
        return self.key.rsplit('/', 1)[-1]


@dataclass(frozen=True)
class ListPage:
    """A single page returned by a store listing."""
    objects: List[StoredObject]
    next_cursor: Optional[str] = None


@dataclass(frozen=True)
class RetentionPolicy:
    """Retention rule for one (category, environment) prefix.

    A ``retention_window`` of ``None`` deletes everything under the prefix.
    An ``environment`` of ``None`` means the policy covers the category's whole
    prefix regardless of environment.
    """
    category: Category
    environment: Optional[Environment]
    prefix: str
    retention_window: Optional[timedelta]
    description: str = ""

    @property
    def name(self) -> str:
        if self.environment is None:
            return self.category.value
        return f"{self.category.value}/{self.environment.value}"

    @property
    def deletes_unconditionally(self) -> bool:
        return self.retention_window is None


@dataclass(frozen=True)
class Classification:
    """Decision for a single object plus the reason behind it."""
    decision: Decision
    reason: Reason

    @classmethod
    def keep(cls, reason: Reason) -> "Classification":
        return cls(Decision.KEEP, reason)

    @classmethod
    def delete(cls, reason: Reason) -> "Classification":
        return cls(Decision.DELETE, reason)

    @classmethod
    def skip(cls, reason: Reason) -> "Classification":
        return cls(Decision.SKIP, reason)


@dataclass(frozen=True)
class PipelineReport:
    """Immutable counts produced by one pipeline run."""
    name: str
    scanned: int = 0
    deleted: int = 0
    kept: int = 0
    skipped: int = 0
    errors: int = 0
    state: PipelineState = PipelineState.DONE
    error_message: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error_message is not None

    @property
    def accounted(self) -> int:
        return self.deleted + self.kept + self.skipped + self.errors

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            'deleted': self.deleted,
            'kept': self.kept,
            'skipped': self.skipped,
            'errors': self.errors,
        }
        if self.error_message:
            data['error'] = self.error_message
        return data


@dataclass(frozen=True)
class Totals:
    """Counts summed across pipelines."""
    deleted: int = 0
    kept: int = 0
    skipped: int = 0
    errors: int = 0

    def add(self, report: PipelineReport) -> "Totals":
        return Totals(
            deleted=self.deleted + report.deleted,
            kept=self.kept + report.kept,
            skipped=self.skipped + report.skipped,
            errors=self.errors + report.errors,
        )

    def to_dict(self) -> Dict[str, int]:
        return {
            'deleted': self.deleted,
            'kept': self.kept,
            'skipped': self.skipped,
            'errors': self.errors,
        }


@dataclass(frozen=True)
class CleanupReport:
    """Consolidated output of one cleanup run."""
    dry_run: bool
    started_at: datetime
    duration_seconds: float
    categories: Tuple[PipelineReport, ...] = ()
    sweeps: Tuple[PipelineReport, ...] = ()
    development: Tuple[str, ...] = field(default=())

    @property
    def pipelines(self) -> Tuple[PipelineReport, ...]:
        return self.categories + self.sweeps

    @property
    def totals(self) -> Totals:
        """Sum of all pipelines.

        Sweeps overlap the category prefixes, so only their deletions and
        errors are counted; kept and skipped come from categories alone.
        """
        totals = Totals()
        for report in self.categories:
            totals = totals.add(report)
        for report in self.sweeps:
            totals = Totals(
                deleted=totals.deleted + report.deleted,
                kept=totals.kept,
                skipped=totals.skipped,
                errors=totals.errors + report.errors,
            )
        return totals

    @property
    def development_totals(self) -> Totals:
        totals = Totals()
        for report in self.categories:
            if report.name in self.development:
                totals = totals.add(report)
        return totals

    def get(self, name: str) -> Optional[PipelineReport]:
        for report in self.pipelines:
            if report.name == name:
                return report
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': True,
            'dryRun': self.dry_run,
            'startedAt': self.started_at.isoformat(),
            'durationSeconds': round(self.duration_seconds, 3),
            'categories': {r.name: r.to_dict() for r in self.categories},
            'development': self.development_totals.to_dict(),
            'sweeps': {r.name: r.to_dict() for r in self.sweeps},
            'totals': self.totals.to_dict(),
        }
