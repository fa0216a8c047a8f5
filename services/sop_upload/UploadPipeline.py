"""Upload pipeline: candidate file in, persisted document record out.

Steps run strictly in sequence (blob upload, URL lookup, metadata write).
There is no rollback: a blob whose metadata write fails stays behind until the
orphan sweep removes it.
"""

import re
import time
import uuid
from typing import Any, Callable

from shared.clients.blob.BlobClientInterface import BlobClientInterface
from shared.errors.exceptions import (
    InvalidFileTypeError,
    MissingInformationError,
    NotReadyError,
    RemoteIOError,
    UploadFailedError,
)
from shared.helper.HelperConfig import HelperConfig
from shared.models.sop import UploadCandidate
from services.sop_library.SOPRepository import SOPRepository

PDF_MIME_TYPE = "application/pdf"
ALLOWED_MIME_TYPES = [PDF_MIME_TYPE]

# advisory milestones, not byte-accurate
PROGRESS_STARTED = 10
PROGRESS_UPLOADED = 50
PROGRESS_URL_RESOLVED = 80
PROGRESS_DONE = 100

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class UploadPipeline:
    """Uploads SOP files for one organization on behalf of one user."""

    def __init__(
        self,
        helper_config: HelperConfig,
        repository: SOPRepository,
        blob_client: BlobClientInterface,
        organization_id: str | None,
        user_id: str | None = None,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._repository = repository
        self._blob = blob_client
        self._organization_id = organization_id
        self._user_id = user_id
        self._path_prefix = helper_config.get_string_val("UPLOAD_PATH_PREFIX", default="pdfs").strip("/")

        # state
        self.selected_file: UploadCandidate | None = None
        self.is_uploading = False
        self.progress = 0
        self.error: Exception | None = None

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def is_accepted_type(self, content_type: str | None) -> bool:
        if not content_type:
            return False
        return content_type.split(";")[0].strip().lower() in ALLOWED_MIME_TYPES

    ##########################################
    ################ GETTER ##################
    ##########################################

    def build_storage_path(self, filename: str, organization_id: str | None = None) -> str:
        """
        Returns the blob path for one upload: {prefix}/{org}/{epoch_ms}_{random}_{filename}.

        The random part keeps two uploads of the same file name within the same
        millisecond apart.
        """
        organization_id = organization_id or self._organization_id
        safe_name = _UNSAFE_FILENAME_CHARS.sub("_", filename.rsplit("/", 1)[-1]).strip("_") or "document.pdf"
        return f"{self._path_prefix}/{organization_id}/{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}_{safe_name}"

    def suggest_title(self, filename: str) -> str:
        """Derives a display title from a file name ("lab_protocol.pdf" -> "lab protocol")."""
        stem = filename.rsplit("/", 1)[-1]
        if stem.lower().endswith(".pdf"):
            stem = stem[:-4]
        return re.sub(r"[_\s]+", " ", stem).strip()

    ##########################################
    ################ SETTER ##################
    ##########################################

    def select_file(self, candidate: UploadCandidate) -> UploadCandidate:
        """
        Validates and remembers the file picked for upload.

        Raises:
            InvalidFileTypeError: If the file is not a PDF. The selection is cleared.
        """
        if not self.is_accepted_type(candidate.content_type):
            self.selected_file = None
            self.error = InvalidFileTypeError(candidate.content_type, ALLOWED_MIME_TYPES)
            raise self.error
        self.selected_file = candidate
        self.error = None
        return candidate

    def clear_selection(self) -> None:
        self.selected_file = None
        self.progress = 0
        self.error = None

    def _report(self, progress: int, on_progress: Callable[[int], Any] | None) -> None:
        self.progress = progress
        if on_progress is not None:
            on_progress(progress)

    ##########################################
    ################ UPLOAD ##################
    ##########################################

    async def do_upload(
        self,
        title: str,
        category_name: str,
        subcategory: str | None = None,
        folder_id: str | None = None,
        category_id: str | None = None,
        staff_title: str | None = None,
        file: UploadCandidate | None = None,
        on_progress: Callable[[int], Any] | None = None,
    ) -> str:
        """
        Uploads a file and records its metadata.

        Args:
            title (str): Display title, stored as pdfName.
            category_name (str): Name of the category the document belongs to.
            subcategory (str | None): Subcategory or description.
            folder_id (str | None): Optional folder tag.
            category_id (str | None): Optional category tag.
            staff_title (str | None): Staff role the SOP applies to.
            file (UploadCandidate | None): The file; defaults to the selected one.
            on_progress (Callable[[int], Any] | None): Receives 10, 50, 80 and 100.

        Returns:
            str: The id of the new document record.

        Raises:
            InvalidFileTypeError: If the file is not a PDF.
            MissingInformationError: If the file, title or category name is missing.
            NotReadyError: If no organization id is available.
            UploadFailedError: If the blob upload, URL lookup or metadata write fails.
        """
        if file is not None:
            self.select_file(file)
        candidate = self.selected_file

        missing = []
        if candidate is None:
            missing.append("file")
        if not (title or "").strip():
            missing.append("title")
        if not (category_name or "").strip():
            missing.append("category name")
        if missing:
            self.error = MissingInformationError(missing)
            raise self.error

        if not self._organization_id:
            self.error = NotReadyError()
            raise self.error

        organization_id = self._organization_id
        self.is_uploading = True
        self.error = None
        try:
            self._report(PROGRESS_STARTED, on_progress)
            path = self.build_storage_path(candidate.filename, organization_id)
            handle = await self._blob.do_upload(path, candidate.content, PDF_MIME_TYPE)
            self._report(PROGRESS_UPLOADED, on_progress)

            url = await self._blob.do_get_url(handle)
            self._report(PROGRESS_URL_RESOLVED, on_progress)

            fields = {
                "nameOfCategory": category_name.strip(),
                "staffTitle": staff_title,
                "subcategory": subcategory,
                "pdfName": title.strip(),
                "pdfURL": url,
                "storagePath": handle.path,
                "originalFileName": candidate.filename,
                "categoryId": category_id,
                "folderId": folder_id,
                "uploadedBy": self._user_id,
            }
            document_id = await self._repository.do_create_document(
                organization_id, {key: val for key, val in fields.items() if val is not None}
            )
            self._report(PROGRESS_DONE, on_progress)
        except RemoteIOError as e:
            self.error = UploadFailedError(f"Uploading '{candidate.filename}' failed: {e.message}", status_code=e.status_code, cause=e)
            self.logging.error("Upload of %s failed at %d%%: %s", candidate.filename, self.progress, e.message, extra={"organization": organization_id})
            raise self.error
        except Exception as e:
            self.error = UploadFailedError(f"Uploading '{candidate.filename}' failed: {e}", cause=e)
            self.logging.exception("Upload of %s failed at %d%%", candidate.filename, self.progress, extra={"organization": organization_id})
            raise self.error
        finally:
            self.is_uploading = False

        self.selected_file = None
        self.logging.info("Uploaded '%s' as document %s to %s.", title.strip(), document_id, handle.path, extra={"organization": organization_id})
        return document_id
