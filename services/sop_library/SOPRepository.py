"""SOP repository.

One typed accessor per logical collection (categories, folders, documents) on
top of the document store. Older data was written under differently-cased
collection names and scoping fields, so every logical collection is backed by
an ordered list of candidate sources. Reads query all of them, merge the
results in priority order and de-duplicate by record id. Writes always go to
the first (primary) source.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any

from pytz.tzinfo import BaseTzInfo

from shared.clients.store.StoreClientInterface import StoreClientInterface
from shared.clients.store.firestore.values import parse_timestamp
from shared.helper.HelperConfig import HelperConfig
from shared.models.sop import Folder, SOPCategory, SOPDocument
from shared.models.store import CollectionSource, StoreRecord

DEFAULT_CATEGORY_SOURCES = ["sopCategories:organizationId"]
DEFAULT_FOLDER_SOURCES = ["sopFolders:organizationId", "SOPFolders:organizationId", "sopFolders:OrganizationId"]
DEFAULT_DOCUMENT_SOURCES = ["pdfCategories:organizationId", "PDFCategories:organizationId", "pdfCategories:OrganizationId"]

# every spelling of the scoping field seen in stored records
SCOPE_FIELD_VARIANTS = ("organizationId", "OrganizationId", "organizationID", "orgId")


def normalize_timestamp(value: Any, tz: BaseTzInfo) -> datetime | None:
    """Convert any stored timestamp representation into a local, timezone-aware datetime.

    Accepts datetimes (naive ones are taken as UTC), RFC 3339 strings, epoch
    seconds or milliseconds, and serialised {"seconds", "nanoseconds"} maps.
    Anything else yields None.

    Args:
        value (Any): The raw field value.
        tz (BaseTzInfo): The local timezone.

    Returns:
        datetime | None: The normalised value.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        parsed = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    elif isinstance(value, str):
        try:
            parsed = parse_timestamp(value)
        except ValueError:
            return None
    elif isinstance(value, (int, float)):
        # epoch milliseconds are far beyond any plausible epoch seconds
        seconds = value / 1000 if value > 1e11 else value
        try:
            parsed = datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (ValueError, OverflowError, OSError):
            return None
    elif isinstance(value, dict):
        seconds = value.get("seconds", value.get("_seconds"))
        if seconds is None:
            return None
        nanos = value.get("nanoseconds", value.get("_nanoseconds", 0)) or 0
        try:
            parsed = datetime.fromtimestamp(int(seconds) + int(nanos) / 1e9, tz=timezone.utc)
        except (ValueError, TypeError, OverflowError, OSError):
            return None
    else:
        return None
    return parsed.astimezone(tz)


def pick_text(fields: dict[str, Any], *keys: str) -> str | None:
    """Return the first non-empty value among keys as a string.

    Legacy records hold numbers or booleans where text is expected (a pdfName
    of 2019, say); those are converted rather than rejected.
    """
    for key in keys:
        value = fields.get(key)
        if value is None or value == "":
            continue
        return value if isinstance(value, str) else str(value)
    return None


class SOPRepository:
    """Typed access to categories, folders and document records of one document store."""

    def __init__(
        self,
        helper_config: HelperConfig,
        store_client: StoreClientInterface,
        category_sources: list[str] | None = None,
        folder_sources: list[str] | None = None,
        document_sources: list[str] | None = None,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._store = store_client
        self._tz = helper_config.get_timezone()
        self._category_sources = self._parse_sources(category_sources or helper_config.get_list_val("LIBRARY_CATEGORY_SOURCES", default=DEFAULT_CATEGORY_SOURCES))
        self._folder_sources = self._parse_sources(folder_sources or helper_config.get_list_val("LIBRARY_FOLDER_SOURCES", default=DEFAULT_FOLDER_SOURCES))
        self._document_sources = self._parse_sources(document_sources or helper_config.get_list_val("LIBRARY_DOCUMENT_SOURCES", default=DEFAULT_DOCUMENT_SOURCES))

    ##########################################
    ################ GETTER ##################
    ##########################################

    def _parse_sources(self, raw_sources: list[str]) -> list[CollectionSource]:
        sources = [CollectionSource.parse(raw) for raw in raw_sources]
        if not sources:
            raise ValueError("At least one collection source is required.")
        return sources

    def get_primary_category_source(self) -> CollectionSource:
        return self._category_sources[0]

    def get_primary_folder_source(self) -> CollectionSource:
        return self._folder_sources[0]

    def get_primary_document_source(self) -> CollectionSource:
        return self._document_sources[0]

    def get_timezone(self) -> BaseTzInfo:
        return self._tz

    ##########################################
    ################ READS ###################
    ##########################################

    async def do_fetch_categories(self, organization_id: str) -> list[SOPCategory]:
        """
        Fetches all SOP categories of an organization.

        Raises:
            RemoteIOError: If any candidate source cannot be queried.
        """
        records = await self._fetch_merged(self._category_sources, organization_id)
        return [self._parse_category(record, organization_id) for record in records]

    async def do_fetch_folders(self, organization_id: str) -> list[Folder]:
        """
        Fetches all folders of an organization.

        Raises:
            RemoteIOError: If any candidate source cannot be queried.
        """
        records = await self._fetch_merged(self._folder_sources, organization_id)
        return [self._parse_folder(record, organization_id) for record in records]

    async def do_fetch_documents(self, organization_id: str) -> list[SOPDocument]:
        """
        Fetches all document records of an organization across every candidate source.

        Raises:
            RemoteIOError: If any candidate source cannot be queried.
        """
        records = await self._fetch_merged(self._document_sources, organization_id)
        return [self._parse_document(record, organization_id) for record in records]

    async def _fetch_merged(self, sources: list[CollectionSource], organization_id: str) -> list[StoreRecord]:
        """
        Queries every source, then merges the results in source priority order.

        A record id seen in more than one source is kept once, from the source
        listed first. Records whose scoping value differs from the requested
        organization are dropped, whatever field name they use.

        Raises:
            RemoteIOError: If any source fails. Partial results are discarded.
        """
        results = await asyncio.gather(
            *[self._store.do_query(source.collection, [(source.scope_field, organization_id)]) for source in sources]
        )

        merged: dict[str, StoreRecord] = {}
        for source, records in zip(sources, results):
            for record in records:
                if self._get_scope_value(record, source) != organization_id:
                    self.logging.warning(
                        "Dropping %s/%s: scoped to another organization.", record.collection, record.id,
                        extra={"organization": organization_id},
                    )
                    continue
                if record.id in merged:
                    self.logging.debug(
                        "Record %s found in %s and %s, keeping %s.", record.id, merged[record.id].collection, record.collection, merged[record.id].collection,
                        extra={"organization": organization_id},
                    )
                    continue
                merged[record.id] = record
            if records and source is not sources[0]:
                self.logging.info("Read %d record(s) from legacy source %s.", len(records), source, extra={"organization": organization_id})
        return list(merged.values())

    def _get_scope_value(self, record: StoreRecord, source: CollectionSource) -> Any:
        fields = record.fields
        if fields.get(source.scope_field) is not None:
            return fields[source.scope_field]
        for variant in SCOPE_FIELD_VARIANTS:
            if fields.get(variant) is not None:
                return fields[variant]
        return None

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def _parse_category(self, record: StoreRecord, organization_id: str) -> SOPCategory:
        fields = record.fields
        return SOPCategory(
            id=record.id,
            name_of_category=pick_text(fields, "nameOfCategory", "name") or "",
            organization_id=organization_id,
            staff_title=pick_text(fields, "staffTitle", "SOPForStaffTittle"),
            created_by=pick_text(fields, "createdBy"),
            created_at=normalize_timestamp(fields.get("createdAt"), self._tz),
        )

    def _parse_folder(self, record: StoreRecord, organization_id: str) -> Folder:
        fields = record.fields
        return Folder(
            id=record.id,
            name=pick_text(fields, "name", "folderName") or "",
            organization_id=organization_id,
            created_by=pick_text(fields, "createdBy"),
            created_at=normalize_timestamp(fields.get("createdAt"), self._tz),
        )

    def _parse_document(self, record: StoreRecord, organization_id: str) -> SOPDocument:
        fields = record.fields
        return SOPDocument(
            id=record.id,
            name_of_category=pick_text(fields, "nameOfCategory"),
            staff_title=pick_text(fields, "staffTitle", "SOPForStaffTittle"),
            subcategory=pick_text(fields, "subcategory"),
            pdf_name=pick_text(fields, "pdfName", "fileName") or "Untitled SOP",
            pdf_url=pick_text(fields, "pdfURL", "fileUrl"),
            category_id=pick_text(fields, "categoryId", "quizCategoryID"),
            folder_id=pick_text(fields, "folderId"),
            organization_id=organization_id,
            uploaded_by=pick_text(fields, "uploadedBy"),
            uploaded_at=normalize_timestamp(fields.get("uploadedAt") or fields.get("createdAt"), self._tz),
            source_collection=record.collection,
        )

    ##########################################
    ################ WRITES ##################
    ##########################################

    async def do_create_document(self, organization_id: str, fields: dict[str, Any]) -> str:
        """
        Writes a new document record to the primary source with a server-assigned uploadedAt.

        Raises:
            RemoteIOError: If the write fails.
        """
        source = self.get_primary_document_source()
        return await self._store.do_create(
            source.collection,
            {**fields, source.scope_field: organization_id},
            server_timestamp_fields=["uploadedAt"],
        )

    async def do_create_folder(self, organization_id: str, fields: dict[str, Any], document_id: str | None = None, must_not_exist: bool = False) -> str:
        """
        Writes a new folder record to the primary source with a server-assigned createdAt.

        Raises:
            ConflictError: If must_not_exist is set and document_id is taken.
            RemoteIOError: If the write fails.
        """
        source = self.get_primary_folder_source()
        return await self._store.do_create(
            source.collection,
            {**fields, source.scope_field: organization_id},
            server_timestamp_fields=["createdAt"],
            document_id=document_id,
            must_not_exist=must_not_exist,
        )

    async def do_delete_document(self, document: SOPDocument) -> None:
        """
        Deletes a document record from the collection it was read from.

        Raises:
            RemoteIOError: If the delete fails.
        """
        collection = document.source_collection or self.get_primary_document_source().collection
        await self._store.do_delete(collection, document.id)
