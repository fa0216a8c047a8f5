"""SOP library view-model.

Holds the in-memory snapshot of one organization's categories, folders and
document records. The snapshot is replaced wholesale on every successful load;
the only incremental change is the local removal after a delete.
"""

import asyncio

from shared.clients.blob.BlobClientInterface import BlobClientInterface
from shared.errors.exceptions import DeleteFailedError, LoadFailedError, RecordInvalidError, RemoteIOError, SOPLibraryError
from shared.helper.HelperConfig import HelperConfig
from shared.models.sop import DocumentGroup, Folder, GroupingMode, LibrarySnapshot, SOPCategory, SOPDocument
from services.sop_library.SOPRepository import SOPRepository
from services.sop_library.grouping import group_documents


class SOPLibraryViewModel:
    """Loads, caches and mutates the SOP library of one organization."""

    def __init__(
        self,
        helper_config: HelperConfig,
        repository: SOPRepository,
        blob_client: BlobClientInterface,
        organization_id: str | None,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._repository = repository
        self._blob = blob_client
        self._organization_id = organization_id
        self._load_lock = asyncio.Lock()

        # snapshot
        self._categories: dict[str, SOPCategory] = {}
        self._folders: dict[str, Folder] = {}
        self._documents: dict[str, SOPDocument] = {}

        # state
        self.is_loading = False
        self.is_loaded = False
        self.is_stale = False
        self.error: SOPLibraryError | None = None
        self.selected_category: str | None = None

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_organization_id(self) -> str | None:
        return self._organization_id

    def get_categories(self) -> list[SOPCategory]:
        return list(self._categories.values())

    def get_category(self, category_id: str) -> SOPCategory | None:
        return self._categories.get(category_id)

    def get_folders(self) -> list[Folder]:
        return list(self._folders.values())

    def get_documents(self) -> list[SOPDocument]:
        return list(self._documents.values())

    def get_document(self, document_id: str) -> SOPDocument | None:
        return self._documents.get(document_id)

    def get_documents_for_category(self, category_id: str | None) -> list[SOPDocument]:
        return [doc for doc in self._documents.values() if doc.category_id == category_id]

    def get_documents_for_folder(self, folder_id: str | None) -> list[SOPDocument]:
        return [doc for doc in self._documents.values() if doc.folder_id == folder_id]

    def get_snapshot(self) -> LibrarySnapshot:
        return LibrarySnapshot(
            organization_id=self._organization_id,
            is_loaded=self.is_loaded,
            is_loading=self.is_loading,
            error=self.error.message if self.error else None,
            categories=self.get_categories(),
            folders=self.get_folders(),
            documents=self.get_documents(),
        )

    def group_documents(self, mode: GroupingMode = GroupingMode.CATEGORY) -> list[DocumentGroup]:
        """
        Groups the current snapshot by category (or folder) and subcategory, labelled
        with the category (folder) names. Pure with respect to the snapshot.
        """
        if mode == GroupingMode.FOLDER:
            labels = {folder.id: folder.name for folder in self._folders.values()}
        else:
            labels = {category.id: category.name_of_category for category in self._categories.values()}
        return group_documents(self.get_documents(), mode=mode, labels=labels)

    ##########################################
    ################ SETTER ##################
    ##########################################

    def select_category(self, category_id: str | None) -> None:
        self.selected_category = category_id

    ##########################################
    ################ LOADING #################
    ##########################################

    async def do_load(self) -> bool:
        """
        Loads categories, folders and documents of the organization.

        Without an organization id this is a no-op: the library stays "not loaded"
        and no error is recorded.

        Returns:
            bool: True if a snapshot was loaded, False if there was no organization to load.

        Raises:
            LoadFailedError: If any query fails. The previous snapshot is kept.
        """
        if not self._organization_id:
            self.logging.debug("No organization id available, SOP library not loaded.")
            return False

        async with self._load_lock:
            self.is_loading = True
            try:
                results = await asyncio.gather(
                    self._repository.do_fetch_categories(self._organization_id),
                    self._repository.do_fetch_folders(self._organization_id),
                    self._repository.do_fetch_documents(self._organization_id),
                    return_exceptions=True,
                )
                failures = [result for result in results if isinstance(result, BaseException)]
                for failure in failures:
                    if not isinstance(failure, Exception):
                        raise failure
                if failures:
                    cause = failures[0]
                    message = cause.message if isinstance(cause, SOPLibraryError) else str(cause)
                    self.error = LoadFailedError(
                        f"Loading the SOP library failed: {message}",
                        status_code=getattr(cause, "status_code", None),
                        cause=cause,
                    )
                    self.logging.error(
                        "Loading the SOP library failed, keeping %d cached document(s): %s", len(self._documents), message,
                        extra={"organization": self._organization_id},
                    )
                    raise self.error

                categories, folders, documents = results
                self._categories = {category.id: category for category in categories}
                self._folders = {folder.id: folder for folder in folders}
                self._documents = {document.id: document for document in documents}
                self.is_loaded = True
                self.is_stale = False
                self.error = None
                self.logging.info(
                    "Loaded %d categories, %d folders, %d documents.", len(self._categories), len(self._folders), len(self._documents),
                    extra={"organization": self._organization_id},
                )
                return True
            finally:
                self.is_loading = False

    async def do_refresh(self) -> bool:
        """
        Re-runs the load and replaces the whole snapshot. See do_load().
        """
        return await self.do_load()

    ##########################################
    ################ DELETE ##################
    ##########################################

    async def do_delete_document(self, document_id: str) -> None:
        """
        Deletes a document: first its file, then its metadata record, then the local entry.

        The metadata record is only removed once the file is gone. A file that no
        longer exists counts as deleted.

        Raises:
            RecordInvalidError: If the id is not in the loaded library or the record has no file URL.
            DeleteFailedError: If deleting the file or the record fails.
        """
        document = self._documents.get(document_id)
        if document is None:
            raise RecordInvalidError(document_id, "not part of the loaded library")
        if not document.pdf_url:
            raise RecordInvalidError(document_id, "no file reference")

        try:
            await self._blob.do_delete_by_url(document.pdf_url)
        except RemoteIOError as e:
            if e.status_code != 404:
                self.logging.error("Deleting file of %s failed, record kept: %s", document_id, e.message, extra={"organization": self._organization_id})
                raise DeleteFailedError(f"Deleting the file of '{document.pdf_name}' failed: {e.message}", status_code=e.status_code, cause=e)
            self.logging.warning("File of %s was already gone, removing the record.", document_id, extra={"organization": self._organization_id})

        try:
            await self._repository.do_delete_document(document)
        except RemoteIOError as e:
            self.logging.error("Deleting record %s failed after its file was removed: %s", document_id, e.message, extra={"organization": self._organization_id})
            raise DeleteFailedError(f"Deleting the record of '{document.pdf_name}' failed: {e.message}", status_code=e.status_code, cause=e)

        self._documents.pop(document_id, None)
        self.logging.info("Deleted document %s (%s).", document_id, document.pdf_name, extra={"organization": self._organization_id})
