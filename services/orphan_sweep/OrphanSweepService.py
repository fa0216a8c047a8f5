"""Orphaned-blob sweep.

An upload whose metadata write fails leaves its blob behind. This sweep lists
the blobs below an organization's upload prefix, subtracts every blob still
referenced by a document record, and deletes the rest once they are older
than a grace period (younger blobs may belong to an upload still in flight).
"""

import asyncio
from datetime import datetime, timedelta, timezone

from shared.clients.blob.BlobClientInterface import BlobClientInterface
from shared.errors.exceptions import ConsistencyError, RemoteIOError
from shared.helper.HelperConfig import HelperConfig
from shared.models.sop import SweepReport
from shared.models.store import BlobHandle
from services.sop_library.SOPRepository import SOPRepository

REQUEST_CONCURRENCY = 5  # max parallel blob requests


class OrphanSweepService:
    def __init__(self, helper_config: HelperConfig, repository: SOPRepository, blob_client: BlobClientInterface) -> None:
        self.logging = helper_config.get_logger()
        self._repository = repository
        self._blob = blob_client
        self._path_prefix = helper_config.get_string_val("UPLOAD_PATH_PREFIX", default="pdfs").strip("/")

    async def _get_referenced_paths(self, organization_id: str) -> set[str]:
        """
        Collects the blob paths referenced by the organization's document records.

        Raises:
            RemoteIOError: If the document records cannot be read.
            ConsistencyError: If a record's url cannot be resolved to a blob path.
        """
        referenced: set[str] = set()
        for document in await self._repository.do_fetch_documents(organization_id):
            if not document.pdf_url:
                continue
            try:
                _, path = self._blob.parse_blob_url(document.pdf_url)
            except ValueError as e:
                # its blob cannot be told apart from an orphan
                raise ConsistencyError(f"Document {document.id} has an unresolvable url '{document.pdf_url}', refusing to sweep.", cause=e)
            referenced.add(path)
        return referenced

    async def _with_creation_time(self, handles: list[BlobHandle]) -> list[BlobHandle]:
        """
        Fills in the creation time of handles listed without one.

        Raises:
            RemoteIOError: If a metadata request fails.
        """
        semaphore = asyncio.Semaphore(REQUEST_CONCURRENCY)

        async def _resolve(handle: BlobHandle) -> BlobHandle:
            if handle.created_at is not None:
                return handle
            async with semaphore:
                return await self._blob.do_fetch_metadata(handle.path, handle.bucket)

        return list(await asyncio.gather(*[_resolve(handle) for handle in handles]))

    async def do_sweep(self, organization_id: str, dry_run: bool = True, min_age_minutes: int = 60) -> SweepReport:
        """
        Finds and (unless dry_run) deletes orphaned blobs of one organization.

        Args:
            organization_id (str): The organization to sweep.
            dry_run (bool): Only report, delete nothing.
            min_age_minutes (int): Blobs younger than this are never swept.

        Returns:
            SweepReport: What was found and deleted.

        Raises:
            RemoteIOError: If listing blobs or reading document records fails.
            ConsistencyError: If a document record references an unresolvable url.
        """
        prefix = f"{self._path_prefix}/{organization_id}/"
        handles, referenced = await asyncio.gather(
            self._blob.do_list(prefix),
            self._get_referenced_paths(organization_id),
        )

        report = SweepReport(organization_id=organization_id, dry_run=dry_run, scanned=len(handles))
        unreferenced = []
        for handle in handles:
            if handle.path in referenced:
                report.referenced += 1
            else:
                unreferenced.append(handle)

        cutoff = datetime.now(timezone.utc) - timedelta(minutes=min_age_minutes)
        for handle in await self._with_creation_time(unreferenced):
            # an unknown age is treated as too young
            if handle.created_at is None or handle.created_at > cutoff:
                continue
            report.orphaned.append(handle.path)

        self.logging.info(
            "Scanned %d blob(s): %d referenced, %d orphaned.", report.scanned, report.referenced, len(report.orphaned),
            extra={"organization": organization_id},
        )
        if dry_run or not report.orphaned:
            return report

        semaphore = asyncio.Semaphore(REQUEST_CONCURRENCY)

        async def _delete(path: str) -> None:
            async with semaphore:
                await self._blob.do_delete(path)

        results = await asyncio.gather(*[_delete(path) for path in report.orphaned], return_exceptions=True)
        for path, result in zip(report.orphaned, results):
            if isinstance(result, RemoteIOError):
                self.logging.error("Deleting orphan %s failed: %s", path, result.message, extra={"organization": organization_id})
                report.failed.append(path)
            elif isinstance(result, BaseException):
                raise result
            else:
                report.deleted.append(path)

        self.logging.info("Deleted %d orphan(s), %d failed.", len(report.deleted), len(report.failed), extra={"organization": organization_id})
        return report
