"""SOP library models: categories, folders and uploaded document records."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel

UNCATEGORIZED = "Uncategorized"


class SOPCategory(BaseModel):
    """
    A thematic group of SOP documents. Created by admins, read-only to the library.
    """
    id: str
    name_of_category: str
    organization_id: str
    staff_title: str | None = None
    created_by: str | None = None
    created_at: datetime | None = None


class Folder(BaseModel):
    """
    A flat grouping of SOP documents, independent of categories.
    """
    id: str
    name: str
    organization_id: str
    created_by: str | None = None
    created_at: datetime | None = None


class SOPDocument(BaseModel):
    """
    The metadata record of one uploaded SOP file.

    category_id and folder_id are two independent, optional classification tags.
    source_collection is the collection the record was read from, so that a
    delete removes the record where it actually lives.
    """
    id: str
    name_of_category: str | None = None
    staff_title: str | None = None
    subcategory: str | None = None
    pdf_name: str
    pdf_url: str | None = None
    category_id: str | None = None
    folder_id: str | None = None
    organization_id: str
    uploaded_by: str | None = None
    uploaded_at: datetime | None = None
    source_collection: str | None = None


class GroupingMode(str, Enum):
    CATEGORY = "category"
    FOLDER = "folder"


class DocumentSubgroup(BaseModel):
    subcategory: str
    documents: list[SOPDocument] = []


class DocumentGroup(BaseModel):
    """
    All documents sharing one category id (or folder id), split by subcategory.
    An empty key collects documents without that tag.
    """
    key: str
    label: str | None = None
    subgroups: list[DocumentSubgroup] = []


class LibrarySnapshot(BaseModel):
    """
    Read-only view of a loaded library, as handed to the presentation layer.
    """
    organization_id: str | None = None
    is_loaded: bool = False
    is_loading: bool = False
    error: str | None = None
    categories: list[SOPCategory] = []
    folders: list[Folder] = []
    documents: list[SOPDocument] = []


class UploadCandidate(BaseModel):
    """
    A file the user picked for upload.
    """
    filename: str
    content_type: str | None = None
    content: bytes


class SweepReport(BaseModel):
    """
    Outcome of one orphaned-blob sweep for one organization.

    Attributes:
        scanned (int): Blobs found below the organization's upload prefix.
        referenced (int): Blobs still referenced by a document record.
        orphaned (list[str]): Paths of unreferenced blobs old enough to be swept.
        deleted (list[str]): Paths actually deleted (empty on a dry run).
        failed (list[str]): Paths whose delete failed.
    """
    organization_id: str
    dry_run: bool = True
    scanned: int = 0
    referenced: int = 0
    orphaned: list[str] = []
    deleted: list[str] = []
    failed: list[str] = []
