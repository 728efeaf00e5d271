"""
Unit tests for object classification rules.
"""

from datetime import timedelta

import pytest

from retentiond.storage.retention_config import (
    DEFAULT_VALID_SESSION_PREFIXES, build_policy
)
from retentiond.storage.retention_models import (
    Category, Decision, Environment, Reason
)
from retentiond.storage.retention_rules import (
    classify_expiry, classify_placeholder, classify_session_name, is_protected
)
from tests.utils.blob_fakes import ROOT, make_object, stamped_object, utc

PROTECTED = (f"{ROOT}content/", f"{ROOT}resume/", f"{ROOT}admin-cache/")
NOW = utc(2025, 1, 1)


@pytest.fixture
def production_chats():
    return build_policy(ROOT, Category.CHAT_TRANSCRIPT, Environment.PRODUCTION, 180)


@pytest.fixture
def development_chats():
    return build_policy(ROOT, Category.CHAT_TRANSCRIPT, Environment.DEVELOPMENT, None)


class TestIsProtected:
    """Protected prefix matching."""

    def test_matches_prefix(self):
        assert is_protected(f"{ROOT}content/about.md", PROTECTED)

    def test_other_folders_not_protected(self):
        assert not is_protected(f"{ROOT}chats/production/a.json", PROTECTED)

    def test_sibling_name_not_protected(self):
        # "resume-generations/" shares a stem with "resume/" but is not under it
        assert not is_protected(f"{ROOT}resume-generations/x.json", PROTECTED)


class TestClassifyExpiry:
    """Age-based classification."""

    def test_expired_object_deleted(self, production_chats):
        obj = stamped_object(production_chats.prefix, NOW - timedelta(days=200))
        result = classify_expiry(obj, production_chats, NOW, PROTECTED)
        assert result.decision is Decision.DELETE
        assert result.reason is Reason.EXPIRED

    def test_young_object_kept(self, production_chats):
        obj = stamped_object(production_chats.prefix, NOW - timedelta(days=10))
        result = classify_expiry(obj, production_chats, NOW, PROTECTED)
        assert result.decision is Decision.KEEP
        assert result.reason is Reason.TOO_YOUNG

    def test_exactly_at_window_is_kept(self, production_chats):
        obj = stamped_object(production_chats.prefix, NOW - timedelta(days=180))
        result = classify_expiry(obj, production_chats, NOW, PROTECTED)
        assert result.decision is Decision.KEEP

    def test_just_past_window_is_deleted(self, production_chats):
        obj = stamped_object(production_chats.prefix, NOW - timedelta(days=180, seconds=1))
        result = classify_expiry(obj, production_chats, NOW, PROTECTED)
        assert result.decision is Decision.DELETE

    def test_filename_timestamp_beats_store_time(self, production_chats):
        # Re-uploaded recently, but the key says it is old
        key = f"{production_chats.prefix}2024-01-01T00-00-00Z-ab12.json"
        obj = make_object(key, uploaded_at=NOW - timedelta(days=1))
        result = classify_expiry(obj, production_chats, NOW, PROTECTED)
        assert result.decision is Decision.DELETE

    def test_store_time_used_when_key_has_none(self, production_chats):
        obj = make_object(f"{production_chats.prefix}legacy.json", uploaded_at=NOW - timedelta(days=400))
        result = classify_expiry(obj, production_chats, NOW, PROTECTED)
        assert result.decision is Decision.DELETE

    def test_unresolvable_timestamp_skipped(self, production_chats):
        obj = make_object(f"{production_chats.prefix}legacy.json")
        result = classify_expiry(obj, production_chats, NOW, PROTECTED)
        assert result.decision is Decision.SKIP
        assert result.reason is Reason.TIMESTAMP_UNRESOLVABLE

    def test_null_window_deletes_regardless_of_age(self, development_chats):
        obj = stamped_object(development_chats.prefix, NOW - timedelta(minutes=5))
        result = classify_expiry(obj, development_chats, NOW, PROTECTED)
        assert result.decision is Decision.DELETE
        assert result.reason is Reason.UNCONDITIONAL

    def test_null_window_still_skips_unresolvable(self, development_chats):
        obj = make_object(f"{development_chats.prefix}notes.json")
        result = classify_expiry(obj, development_chats, NOW, PROTECTED)
        assert result.decision is Decision.SKIP

    @pytest.mark.parametrize('now,decision', [
        (utc(2024, 7, 1), Decision.DELETE),
        (utc(2024, 6, 1), Decision.KEEP),
    ])
    def test_window_measured_from_filename(self, production_chats, now, decision):
        obj = make_object(f"{production_chats.prefix}2024-01-01T00-00-00Z-ab12.json")
        assert classify_expiry(obj, production_chats, now, PROTECTED).decision is decision

    def test_protection_dominates_age(self):
        policy = build_policy(ROOT, Category.CHAT_TRANSCRIPT, None, None)
        obj = stamped_object(f"{ROOT}content/", NOW - timedelta(days=5000))
        result = classify_expiry(obj, policy, NOW, PROTECTED)
        assert result.decision is Decision.KEEP
        assert result.reason is Reason.PROTECTED


class TestClassifySessionName:
    """Orphaned usage session detection."""

    SESSIONS = f"{ROOT}usage/production/sessions/"

    @pytest.mark.parametrize('filename', [
        'chat-3f2a.json',
        'fit-assessment-77.json',
        'resume-generator-1.json',
        'anonymous.json',
    ])
    def test_recognized_names_kept(self, filename):
        obj = make_object(f"{self.SESSIONS}{filename}")
        result = classify_session_name(obj, DEFAULT_VALID_SESSION_PREFIXES, PROTECTED)
        assert result.decision is Decision.KEEP
        assert result.reason is Reason.RECOGNIZED_NAME

    @pytest.mark.parametrize('filename', [
        'weird-prefix-123.json',
        'e2e-test-session.json',
        'tmp-1234.json',
        'Chat-uppercase.json',
    ])
    def test_orphaned_names_deleted(self, filename):
        obj = make_object(f"{self.SESSIONS}{filename}")
        result = classify_session_name(obj, DEFAULT_VALID_SESSION_PREFIXES, PROTECTED)
        assert result.decision is Decision.DELETE
        assert result.reason is Reason.ORPHANED_NAME

    def test_matches_filename_not_full_key(self):
        obj = make_object(f"{ROOT}usage/production/sessions/chat-folder/orphan.json")
        result = classify_session_name(obj, DEFAULT_VALID_SESSION_PREFIXES, PROTECTED)
        assert result.decision is Decision.DELETE

    def test_protected_session_kept(self):
        protected = PROTECTED + (f"{ROOT}usage/production/sessions/pinned/",)
        obj = make_object(f"{ROOT}usage/production/sessions/pinned/orphan.json")
        result = classify_session_name(obj, DEFAULT_VALID_SESSION_PREFIXES, protected)
        assert result.reason is Reason.PROTECTED


class TestClassifyPlaceholder:
    """Zero-byte placeholder detection."""

    def test_zero_bytes_deleted(self):
        obj = make_object(f"{ROOT}chats/production/stub.json", size_bytes=0)
        result = classify_placeholder(obj, PROTECTED)
        assert result.decision is Decision.DELETE
        assert result.reason is Reason.EMPTY_PLACEHOLDER

    def test_non_empty_kept(self):
        obj = make_object(f"{ROOT}chats/production/real.json", size_bytes=1)
        result = classify_placeholder(obj, PROTECTED)
        assert result.decision is Decision.KEEP
        assert result.reason is Reason.NON_EMPTY

    def test_empty_protected_object_kept(self):
        obj = make_object(f"{ROOT}admin-cache/.keep", size_bytes=0)
        result = classify_placeholder(obj, PROTECTED)
        assert result.decision is Decision.KEEP
        assert result.reason is Reason.PROTECTED
