"""
Core cleanup logic for the retention system.

This module scans store prefixes to completion, classifies what it finds and
deletes expired objects in bounded concurrent batches.
"""

import asyncio
from typing import Callable, List, Sequence, Tuple

import structlog

from retentiond.storage.interfaces import BlobStore
from retentiond.storage.retention_config import DEFAULT_BATCH_SIZE
from retentiond.storage.retention_models import (
    Classification, Decision, PipelineReport, PipelineState, StoredObject
)

logger = structlog.get_logger(__name__)

Classifier = Callable[[StoredObject], Classification]


class PrefixScanError(Exception):
    """A listing page failed part way through a scan."""

    def __init__(self, prefix: str, objects_seen: int, cause: Exception):
        super().__init__(f"Listing {prefix} failed after {objects_seen} objects: {cause}")
        self.prefix = prefix
        self.objects_seen = objects_seen
        self.cause = cause


class RetentionCleanup:
    """Runs scan, classify and delete pipelines against a blob store."""

    def __init__(self, store: BlobStore, batch_size: int = DEFAULT_BATCH_SIZE):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.store = store
        self.batch_size = batch_size

    async def scan_prefix(self, prefix: str) -> List[StoredObject]:
        """
        Collect every object under a prefix, following cursors until exhausted.

        Raises:
            PrefixScanError: If any page request fails.
        """
        objects: List[StoredObject] = []
        cursor = None
        pages = 0

        while True:
            try:
                page = await self.store.list(prefix, cursor)
            except Exception as e:
                raise PrefixScanError(prefix, len(objects), e) from e

            pages += 1
            objects.extend(page.objects)
            cursor = page.next_cursor
            if not cursor:
                break

        logger.debug("Scanned prefix", prefix=prefix, pages=pages, objects=len(objects))
        return objects

    async def delete_batched(self, access_urls: Sequence[str]) -> Tuple[int, int]:
        """
        Delete objects in sequential batches of concurrent calls.

        Every call in a batch settles before the next batch starts, and one
        failure never cancels its siblings.

        Returns:
            (deleted_count, error_count)
        """
        deleted = 0
        errors = 0

        for start in range(0, len(access_urls), self.batch_size):
            batch = access_urls[start:start + self.batch_size]
            results = await asyncio.gather(
                *(self.store.delete(url) for url in batch),
                return_exceptions=True
            )

            for url, result in zip(batch, results):
                if isinstance(result, BaseException):
                    errors += 1
                    logger.error("Failed to delete blob", url=url, error=str(result))
                else:
                    deleted += 1

        return deleted, errors

    async def run_pipeline(
        self,
        name: str,
        prefixes: Sequence[str],
        classify: Classifier,
        dry_run: bool = False,
    ) -> PipelineReport:
        """
        Scan, classify and (unless dry run) delete for one pipeline.

        A failed scan ends the pipeline with every object seen counted as an
        error (at least one). Nothing is deleted for a pipeline whose scan
        failed.
        """
        state = PipelineState.SCANNING
        logger.debug("Pipeline state", pipeline=name, state=state.value)

        objects: List[StoredObject] = []
        try:
            for prefix in prefixes:
                objects.extend(await self.scan_prefix(prefix))
        except PrefixScanError as e:
            scanned = len(objects) + e.objects_seen
            logger.error("Scan failed", pipeline=name, prefix=e.prefix, error=str(e.cause))
            return PipelineReport(
                name=name,
                scanned=scanned,
                errors=max(scanned, 1),
                state=PipelineState.DONE,
                error_message=str(e),
            )

        state = PipelineState.CLASSIFYING
        logger.debug("Pipeline state", pipeline=name, state=state.value, objects=len(objects))

        to_delete: List[str] = []
        kept = 0
        skipped = 0
        for obj in objects:
            result = classify(obj)
            if result.decision is Decision.DELETE:
                to_delete.append(obj.access_url)
            elif result.decision is Decision.KEEP:
                kept += 1
            else:
                skipped += 1

        if dry_run:
            state = PipelineState.DRY_RUN_SKIP
            logger.info("DRY RUN: would delete", pipeline=name, count=len(to_delete))
            deleted, errors = len(to_delete), 0
        else:
            state = PipelineState.DELETING
            logger.debug("Pipeline state", pipeline=name, state=state.value, count=len(to_delete))
            deleted, errors = await self.delete_batched(to_delete)

        return PipelineReport(
            name=name,
            scanned=len(objects),
            deleted=deleted,
            kept=kept,
            skipped=skipped,
            errors=errors,
            state=PipelineState.DONE,
        )
