"""
Object store interfaces for the retention engine.

This module provides the abstract interface the cleanup engine scans and
deletes through, plus the errors a store implementation raises.
"""

from abc import ABC, abstractmethod
from typing import Optional

from retentiond.storage.retention_models import ListPage


class BlobStoreError(Exception):
    """Base exception for object store operations."""
    pass


class BlobListError(BlobStoreError):
    """Raised when a listing page cannot be fetched."""
    pass


class BlobDeleteError(BlobStoreError):
    """Raised when a single object cannot be deleted (including already gone)."""
    pass


class BlobStore(ABC):
    """Abstract interface for hierarchical blob stores."""

    @abstractmethod
    async def list(self, prefix: str, cursor: Optional[str] = None) -> ListPage:
        """
        Fetch one page of objects under ``prefix``.

        Args:
            prefix: Key prefix to scope the listing
            cursor: Opaque cursor returned by the previous page, if any

        Returns:
            ListPage: objects on this page and the cursor for the next one

        Raises:
            BlobListError: If the page request fails
        """
        pass

    @abstractmethod
    async def delete(self, access_url: str) -> None:
        """
        Delete a single object by its access URL.

        Raises:
            BlobDeleteError: If the object could not be deleted
        """
        pass

    async def close(self) -> None:
        """Release any underlying connections."""
        return None
