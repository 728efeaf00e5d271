"""
Classification rules for the retention system.

Every rule evaluates the protection guard first. Protection dominates age,
size and naming: a protected object is always kept.
"""

from datetime import datetime
from typing import Iterable

import structlog

from retentiond.storage.retention_models import (
    Classification, Reason, RetentionPolicy, StoredObject
)
from retentiond.storage.retention_timestamps import resolve_timestamp

logger = structlog.get_logger(__name__)


def is_protected(key: str, protected_prefixes: Iterable[str]) -> bool:
    """Return True if the key falls under any protected prefix."""
    return any(key.startswith(prefix) for prefix in protected_prefixes)


def classify_expiry(
    obj: StoredObject,
    policy: RetentionPolicy,
    now: datetime,
    protected_prefixes: Iterable[str],
) -> Classification:
    """
    Apply a retention policy to one object.

    Order matters: protection, then timestamp resolution, then the
    unconditional window, then age against the window.
    """
    if is_protected(obj.key, protected_prefixes):
        return Classification.keep(Reason.PROTECTED)

    created_at = resolve_timestamp(obj.key, obj.store_uploaded_at)
    if created_at is None:
        logger.warning("Could not determine timestamp", key=obj.key, policy=policy.name)
        return Classification.skip(Reason.TIMESTAMP_UNRESOLVABLE)

    if policy.retention_window is None:
        return Classification.delete(Reason.UNCONDITIONAL)

    if now - created_at > policy.retention_window:
        return Classification.delete(Reason.EXPIRED)
    return Classification.keep(Reason.TOO_YOUNG)


def classify_session_name(
    obj: StoredObject,
    valid_prefixes: Iterable[str],
    protected_prefixes: Iterable[str],
) -> Classification:
    """Flag usage sessions whose filename matches no known writer."""
    if is_protected(obj.key, protected_prefixes):
        return Classification.keep(Reason.PROTECTED)

    filename = obj.filename
    if any(filename.startswith(prefix) for prefix in valid_prefixes):
        return Classification.keep(Reason.RECOGNIZED_NAME)
    return Classification.delete(Reason.ORPHANED_NAME)


def classify_placeholder(obj: StoredObject, protected_prefixes: Iterable[str]) -> Classification:
    """Zero-byte objects are leftovers of failed writes."""
    if is_protected(obj.key, protected_prefixes):
        return Classification.keep(Reason.PROTECTED)
    if obj.size_bytes == 0:
        return Classification.delete(Reason.EMPTY_PLACEHOLDER)
    return Classification.keep(Reason.NON_EMPTY)
