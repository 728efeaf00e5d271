"""
Configuration management for the retention system.

This module holds the retention policy table, the protected prefix set and the
session filename allow-list as data, and handles loading optional YAML
overrides and validating the resulting table.
"""

from datetime import timedelta
from pathlib import Path
from typing import Dict, Any, List, Optional, Tuple

import structlog
import yaml

from retentiond.storage.retention_models import Category, Environment, RetentionPolicy

logger = structlog.get_logger(__name__)

DEFAULT_ROOT_PREFIX = 'damilola.tech/'

DEFAULT_BATCH_SIZE = 10

# Folder under the root prefix for each category
CATEGORY_FOLDERS: Dict[Category, str] = {
    Category.CHAT_TRANSCRIPT: 'chats',
    Category.FIT_ASSESSMENT: 'fit-assessments',
    Category.RESUME_GENERATION: 'resume-generations',
    Category.AUDIT_EVENT: 'audit',
    Category.USAGE_SESSION: 'usage',
}

# Relative to the root prefix; NEVER deleted regardless of age or size
DEFAULT_PROTECTED_FOLDERS: Tuple[str, ...] = (
    'content/',
    'resume/',
    'admin-cache/',
)

DEFAULT_VALID_SESSION_PREFIXES: Tuple[str, ...] = (
    'chat-',
    'fit-assessment-',
    'resume-generator-',
    'anonymous.json',
)

# (category, environment or None, retention days or None, description)
DEFAULT_POLICY_ROWS: Tuple[Tuple[Category, Optional[Environment], Optional[int], str], ...] = (
    (Category.CHAT_TRANSCRIPT, Environment.PRODUCTION, 180, 'Production chat transcripts'),
    (Category.CHAT_TRANSCRIPT, Environment.PREVIEW, 14, 'Preview chats (E2E test noise)'),
    (Category.CHAT_TRANSCRIPT, Environment.DEVELOPMENT, None, 'Development chats'),
    (Category.FIT_ASSESSMENT, Environment.PRODUCTION, 180, 'Production fit assessments'),
    (Category.FIT_ASSESSMENT, Environment.PREVIEW, 180, 'Preview fit assessments'),
    (Category.FIT_ASSESSMENT, Environment.DEVELOPMENT, None, 'Development fit assessments'),
    (Category.RESUME_GENERATION, None, 365, 'Resume generations, all environments'),
    (Category.AUDIT_EVENT, Environment.PRODUCTION, 365, 'Production audit events'),
    (Category.AUDIT_EVENT, Environment.PREVIEW, 14, 'Preview audit events (E2E test noise)'),
    (Category.AUDIT_EVENT, Environment.DEVELOPMENT, None, 'Development audit events'),
    (Category.USAGE_SESSION, Environment.DEVELOPMENT, None, 'Development usage sessions'),
)

# Pairs deliberately left without an age-based policy
DEFAULT_UNMANAGED: Tuple[Tuple[Category, Optional[Environment]], ...] = (
    (Category.USAGE_SESSION, Environment.PRODUCTION),
    (Category.USAGE_SESSION, Environment.PREVIEW),
    (Category.OTHER, None),
)


class RetentionError(Exception):
    """Base exception for the retention engine."""
    pass


class RetentionConfigError(RetentionError):
    """Raised when the engine is misconfigured; aborts a run before any scan."""
    pass


def category_prefix(root_prefix: str, category: Category) -> str:
    """Key prefix holding every object of a category."""
    folder = CATEGORY_FOLDERS.get(category)
    if folder is None:
        raise RetentionConfigError(f"Category {category.value} has no storage folder")
    return f"{root_prefix}{folder}/"


def policy_prefix(root_prefix: str, category: Category, environment: Optional[Environment]) -> str:
    """Key prefix scanned for a (category, environment) policy."""
    base = category_prefix(root_prefix, category)
    if environment is None:
        return base
    return f"{base}{environment.value}/"


def session_prefix(root_prefix: str, environment: Environment) -> str:
    """Key prefix holding usage sessions for one environment."""
    return f"{policy_prefix(root_prefix, Category.USAGE_SESSION, environment)}sessions/"


def build_policy(
    root_prefix: str,
    category: Category,
    environment: Optional[Environment],
    retention_days: Optional[int],
    description: str = "",
) -> RetentionPolicy:
    """Create a RetentionPolicy row with its scan prefix filled in."""
    window = None if retention_days is None else timedelta(days=retention_days)
    return RetentionPolicy(
        category=category,
        environment=environment,
        prefix=policy_prefix(root_prefix, category, environment),
        retention_window=window,
        description=description or f'Retention policy for {category.value}',
    )


def default_policies(root_prefix: str = DEFAULT_ROOT_PREFIX) -> Tuple[RetentionPolicy, ...]:
    return tuple(
        build_policy(root_prefix, category, environment, days, description)
        for category, environment, days, description in DEFAULT_POLICY_ROWS
    )


def validate_policy_table(
    policies: Tuple[RetentionPolicy, ...],
    unmanaged: Tuple[Tuple[Category, Optional[Environment]], ...] = DEFAULT_UNMANAGED,
) -> List[Tuple[Category, Environment]]:
    """
    Check the policy table covers every (category, environment) pair.

    A pair is covered by an exact row, by an environment-independent row for
    its category, or by an explicit unmanaged declaration.

    Returns:
        The pairs left uncovered, so callers can flag them.

    Raises:
        RetentionConfigError: If two rows target the same pair.
    """
    seen = set()
    for policy in policies:
        pair = (policy.category, policy.environment)
        if pair in seen:
            raise RetentionConfigError(f"Duplicate retention policy for {policy.name}")
        seen.add(pair)

    declared = seen | set(unmanaged)
    uncovered = []
    for category in Category:
        if (category, None) in declared:
            continue
        for environment in Environment:
            if (category, environment) not in declared:
                uncovered.append((category, environment))
    return uncovered


class RetentionConfigManager:
    """Manages retention system configuration."""

    def __init__(self, config_path: Optional[str] = None, root_prefix: str = DEFAULT_ROOT_PREFIX):
        self.config_path = Path(config_path) if config_path else None
        self.root_prefix = root_prefix

        self.policies: Tuple[RetentionPolicy, ...] = default_policies(root_prefix)
        self.protected_prefixes: Tuple[str, ...] = tuple(
            f"{root_prefix}{folder}" for folder in DEFAULT_PROTECTED_FOLDERS
        )
        self.valid_session_prefixes: Tuple[str, ...] = DEFAULT_VALID_SESSION_PREFIXES
        self.unmanaged = DEFAULT_UNMANAGED
        self.batch_size = DEFAULT_BATCH_SIZE

        self._load_config()

        for category, environment in validate_policy_table(self.policies, self.unmanaged):
            logger.warning("No retention policy for category/environment",
                           category=category.value,
                           environment=environment.value)

    def _load_config(self):
        """Apply YAML overrides, if a config file exists."""
        if self.config_path is None or not self.config_path.exists():
            logger.info("Using built-in retention policies",
                        config_path=str(self.config_path) if self.config_path else None)
            return

        try:
            with open(self.config_path, 'r') as f:
                config_data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise RetentionConfigError(f"Failed to load retention config {self.config_path}: {e}") from e

        if not isinstance(config_data, dict):
            raise RetentionConfigError(f"Retention config {self.config_path} must be a mapping")

        self._parse_config(config_data)
        logger.info("Loaded retention config",
                    config_path=str(self.config_path),
                    policies=len(self.policies))

    def _parse_config(self, config_data: Dict[str, Any]):
        """Parse configuration data over the defaults."""
        if 'retention_policies' in config_data:
            self.policies = tuple(
                self._parse_policy(row) for row in config_data['retention_policies'] or []
            )

        if 'unmanaged' in config_data:
            self.unmanaged = tuple(
                (self._parse_category(row.get('category')), self._parse_environment(row.get('environment')))
                for row in config_data['unmanaged'] or []
            )

        if 'protected_prefixes' in config_data:
            self.protected_prefixes = tuple(
                self._absolute(prefix) for prefix in config_data['protected_prefixes'] or []
            )

        if 'valid_session_prefixes' in config_data:
            self.valid_session_prefixes = tuple(config_data['valid_session_prefixes'] or [])

        cleanup = config_data.get('cleanup') or {}
        batch_size = cleanup.get('batch_size', self.batch_size)
        if not isinstance(batch_size, int) or batch_size < 1:
            raise RetentionConfigError(f"cleanup.batch_size must be a positive integer, got {batch_size!r}")
        self.batch_size = batch_size

    def _parse_policy(self, row: Dict[str, Any]) -> RetentionPolicy:
        if not isinstance(row, dict) or 'category' not in row:
            raise RetentionConfigError(f"Invalid retention policy entry: {row!r}")
        if 'retention_days' not in row:
            # An omitted window must not silently become "delete everything"
            raise RetentionConfigError(
                f"Retention policy for {row['category']} must set retention_days (null deletes all)"
            )

        days = row['retention_days']
        if days is not None and (not isinstance(days, int) or days < 0):
            raise RetentionConfigError(f"retention_days must be a non-negative integer or null, got {days!r}")

        return build_policy(
            self.root_prefix,
            self._parse_category(row['category']),
            self._parse_environment(row.get('environment')),
            days,
            row.get('description', ''),
        )

    def _absolute(self, prefix: str) -> str:
        if prefix.startswith(self.root_prefix):
            return prefix
        return f"{self.root_prefix}{prefix}"

    @staticmethod
    def _parse_category(value: Any) -> Category:
        try:
            return Category(value)
        except ValueError as e:
            raise RetentionConfigError(f"Unknown category: {value!r}") from e

    @staticmethod
    def _parse_environment(value: Any) -> Optional[Environment]:
        if value is None:
            return None
        try:
            return Environment(value)
        except ValueError as e:
            raise RetentionConfigError(f"Unknown environment: {value!r}") from e

    def get_policy(self, name: str) -> Optional[RetentionPolicy]:
        """Get retention policy by its ``category/environment`` name."""
        for policy in self.policies:
            if policy.name == name:
                return policy
        return None

    def get_retention_policies(self) -> Tuple[RetentionPolicy, ...]:
        """Get all retention policies."""
        return self.policies

    def describe(self) -> Dict[str, Any]:
        """Configuration as plain data, for status output."""
        rows = []
        for policy in self.policies:
            window = policy.retention_window
            rows.append({
                'name': policy.name,
                'prefix': policy.prefix,
                'retention_days': None if window is None else window.days,
                'description': policy.description,
            })
        return {
            'policies': rows,
            'protected_prefixes': list(self.protected_prefixes),
            'valid_session_prefixes': list(self.valid_session_prefixes),
            'batch_size': self.batch_size,
        }
