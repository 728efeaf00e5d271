"""
Vercel Blob REST connector.

This module provides a BlobStore implementation that lists objects page by
page and deletes them by URL over the Vercel Blob HTTP API.
"""

from typing import Any, Dict, Optional

import httpx
import structlog
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

from retentiond.storage.interfaces import BlobDeleteError, BlobListError, BlobStore
from retentiond.storage.retention_models import ListPage, StoredObject
from retentiond.storage.retention_timestamps import parse_iso_timestamp

logger = structlog.get_logger(__name__)

API_VERSION = "7"


def _is_transient(error: BaseException) -> bool:
    if isinstance(error, httpx.TransportError):
        return True
    if isinstance(error, httpx.HTTPStatusError):
        status = error.response.status_code
        return status == 429 or status >= 500
    return False


def parse_blob(data: Dict[str, Any]) -> StoredObject:
    """Convert one listing entry into a StoredObject."""
    uploaded_raw = data.get('uploadedAt')
    uploaded_at: Optional[Any] = None
    if isinstance(uploaded_raw, str):
        # Unparseable values stay raw
        uploaded_at = parse_iso_timestamp(uploaded_raw) or uploaded_raw

    return StoredObject(
        key=data['pathname'],
        size_bytes=int(data.get('size') or 0),
        access_url=data['url'],
        store_uploaded_at=uploaded_at,
    )


class VercelBlobStore(BlobStore):
    """BlobStore backed by the Vercel Blob API."""

    def __init__(
        self,
        token: str,
        api_url: str = "https://blob.vercel-storage.com",
        page_size: int = 1000,
        max_retries: int = 3,
        retry_wait_seconds: float = 1.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the blob store connector.

        Args:
            token: Read/write token for the blob store
            api_url: Base URL of the blob API
            page_size: Objects requested per listing page
            max_retries: Attempts per listing page before giving up
            retry_wait_seconds: Base delay for exponential backoff between attempts
            transport: Optional httpx transport (used by tests)
        """
        if not token:
            raise ValueError("Blob store token is required")

        self.api_url = api_url.rstrip('/')
        self.page_size = page_size
        self.max_retries = max(1, max_retries)
        self.retry_wait_seconds = retry_wait_seconds
        self.client = httpx.AsyncClient(
            base_url=self.api_url,
            timeout=30.0,
            transport=transport,
            headers={
                "authorization": f"Bearer {token}",
                "x-api-version": API_VERSION,
            },
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self) -> None:
        await self.client.aclose()

    async def _get_page(self, params: Dict[str, Any]) -> Dict[str, Any]:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=self.retry_wait_seconds, max=10 * self.retry_wait_seconds),
            retry=retry_if_exception(_is_transient),
            reraise=True,
        ):
            with attempt:
                response = await self.client.get("/", params=params)
                response.raise_for_status()
                return response.json()

    async def list(self, prefix: str, cursor: Optional[str] = None) -> ListPage:
        params: Dict[str, Any] = {'prefix': prefix, 'limit': self.page_size}
        if cursor:
            params['cursor'] = cursor

        try:
            data = await self._get_page(params)
        except (httpx.HTTPError, ValueError) as e:
            raise BlobListError(f"Failed to list {prefix}: {e}") from e

        try:
            objects = [parse_blob(item) for item in data.get('blobs', [])]
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise BlobListError(f"Malformed listing for {prefix}: {e}") from e

        next_cursor = data.get('cursor') if data.get('hasMore') else None
        logger.debug("Listed blob page", prefix=prefix, count=len(objects), has_more=bool(next_cursor))
        return ListPage(objects=objects, next_cursor=next_cursor or None)

    async def delete(self, access_url: str) -> None:
        try:
            response = await self.client.post("/delete", json={'urls': [access_url]})
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise BlobDeleteError(f"Failed to delete {access_url}: {e}") from e


def create_blob_store(
    token: str,
    api_url: str = "https://blob.vercel-storage.com",
    page_size: int = 1000,
    max_retries: int = 3,
) -> VercelBlobStore:
    """Create a new VercelBlobStore instance."""
    return VercelBlobStore(token, api_url=api_url, page_size=page_size, max_retries=max_retries)
