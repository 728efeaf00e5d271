"""
Runtime settings loader.
"""

import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

from retentiond.storage.retention_config import DEFAULT_ROOT_PREFIX, RetentionConfigError


class RetentionSettings(BaseModel):
    """Secrets and endpoints for a cleanup run."""
    cron_secret: Optional[str] = None
    blob_token: Optional[str] = None
    blob_api_url: str = "https://blob.vercel-storage.com"
    root_prefix: str = DEFAULT_ROOT_PREFIX
    config_path: str = "configs/retention.yaml"
    logs_dir: Optional[str] = None
    list_page_size: int = 1000
    max_retries: int = 3

    def require_cron_secret(self) -> str:
        if not self.cron_secret:
            raise RetentionConfigError("CRON_SECRET not configured")
        return self.cron_secret

    def require_blob_token(self) -> str:
        if not self.blob_token:
            raise RetentionConfigError("BLOB_READ_WRITE_TOKEN not configured")
        return self.blob_token


def load_settings() -> RetentionSettings:
    """Load settings from .env file or environment variables."""

    # Load .env file if it exists
    load_dotenv()

    return RetentionSettings(
        cron_secret=os.getenv("CRON_SECRET") or None,
        blob_token=os.getenv("BLOB_READ_WRITE_TOKEN") or None,
        blob_api_url=os.getenv("BLOB_API_URL", "https://blob.vercel-storage.com"),
        root_prefix=os.getenv("RETENTION_ROOT_PREFIX", DEFAULT_ROOT_PREFIX),
        config_path=os.getenv("RETENTION_CONFIG_PATH", "configs/retention.yaml"),
        logs_dir=os.getenv("RETENTION_LOGS_DIR") or None,
        list_page_size=int(os.getenv("BLOB_LIST_PAGE_SIZE", "1000")),
        max_retries=int(os.getenv("BLOB_MAX_RETRIES", "3")),
    )
