import logging
import os
from datetime import datetime, timezone

import pytest

os.environ.setdefault("LOG_TO_FILE", "false")

from shared.errors.exceptions import ConflictError, RemoteIOError  # noqa: E402
from shared.helper.HelperConfig import HelperConfig  # noqa: E402
from shared.models.store import BlobHandle, StoreRecord  # noqa: E402

BUCKET = "demo-project.appspot.com"


class FakeStoreClient:
    """In-memory document store with the StoreClientInterface request methods."""

    def __init__(self):
        self.collections: dict[str, dict[str, dict]] = {}
        self.calls: list[tuple] = []
        self.fail_collections: set[str] = set()
        self.fail_writes = False
        self._next_id = 0

    def add(self, collection: str, document_id: str, **fields) -> None:
        self.collections.setdefault(collection, {})[document_id] = fields

    def get_fields(self, collection: str, document_id: str) -> dict | None:
        return self.collections.get(collection, {}).get(document_id)

    async def do_query(self, collection, filters):
        self.calls.append(("query", collection, tuple(filters)))
        if collection in self.fail_collections:
            raise RemoteIOError(f"query on {collection} failed", status_code=503)
        return [
            StoreRecord(collection=collection, id=document_id, fields=dict(fields))
            for document_id, fields in self.collections.get(collection, {}).items()
            if all(fields.get(field) == value for field, value in filters)
        ]

    async def do_get(self, collection, document_id):
        self.calls.append(("get", collection, document_id))
        fields = self.get_fields(collection, document_id)
        return StoreRecord(collection=collection, id=document_id, fields=dict(fields)) if fields is not None else None

    async def do_create(self, collection, fields, server_timestamp_fields=None, document_id=None, must_not_exist=False):
        self.calls.append(("create", collection, document_id))
        if self.fail_writes:
            raise RemoteIOError(f"write to {collection} failed", status_code=500)
        if document_id is None:
            self._next_id += 1
            document_id = f"doc{self._next_id}"
        elif must_not_exist and self.get_fields(collection, document_id) is not None:
            raise ConflictError(f"{collection}/{document_id} already exists", status_code=409)
        stored = dict(fields)
        for field in server_timestamp_fields or []:
            stored[field] = datetime.now(timezone.utc)
        self.add(collection, document_id, **stored)
        return document_id

    async def do_delete(self, collection, document_id):
        self.calls.append(("delete", collection, document_id))
        if self.fail_writes:
            raise RemoteIOError(f"delete in {collection} failed", status_code=500)
        self.collections.get(collection, {}).pop(document_id, None)


class FakeBlobClient:
    """In-memory blob store with the BlobClientInterface request methods. URLs are gs:// urls."""

    def __init__(self):
        self.objects: dict[str, bytes] = {}
        self.created: dict[str, datetime] = {}
        self.calls: list[tuple] = []
        self.fail_upload = False
        self.fail_delete_status: int | None = None

    def get_bucket(self) -> str:
        return BUCKET

    def url_for(self, path: str) -> str:
        return f"gs://{BUCKET}/{path}"

    def add(self, path: str, content: bytes = b"%PDF-1.4", created_at: datetime | None = None) -> None:
        self.objects[path] = content
        if created_at is not None:
            self.created[path] = created_at

    def parse_blob_url(self, url):
        if not url.startswith("gs://"):
            raise ValueError("not a gs url")
        bucket, _, path = url[len("gs://"):].partition("/")
        return bucket, path

    async def do_upload(self, path, content, content_type):
        self.calls.append(("upload", path, content_type))
        if self.fail_upload:
            raise RemoteIOError("upload failed", status_code=503)
        self.add(path, content, datetime.now(timezone.utc))
        return BlobHandle(bucket=BUCKET, path=path, download_token="token", content_type=content_type, size=len(content))

    async def do_get_url(self, handle):
        self.calls.append(("get_url", handle.path))
        return self.url_for(handle.path)

    async def do_download(self, url):
        self.calls.append(("download", url))
        return self.objects[self.parse_blob_url(url)[1]]

    async def do_fetch_metadata(self, path, bucket=None):
        self.calls.append(("metadata", path))
        return BlobHandle(bucket=bucket or BUCKET, path=path, created_at=self.created.get(path))

    async def do_delete(self, path, bucket=None):
        self.calls.append(("delete", path))
        if self.fail_delete_status is not None:
            raise RemoteIOError(f"delete of {path} failed", status_code=self.fail_delete_status)
        if path not in self.objects:
            raise RemoteIOError(f"{path} not found", status_code=404)
        self.objects.pop(path)
        self.created.pop(path, None)

    async def do_delete_by_url(self, url):
        try:
            _, path = self.parse_blob_url(url)
        except ValueError as e:
            raise RemoteIOError(f"Cannot resolve blob url '{url}': {e}", cause=e)
        await self.do_delete(path)

    async def do_list(self, prefix):
        self.calls.append(("list", prefix))
        # list results carry no creation time, like the real listing
        return [BlobHandle(bucket=BUCKET, path=path) for path in sorted(self.objects) if path.startswith(prefix)]


@pytest.fixture
def helper_config(monkeypatch, tmp_path) -> HelperConfig:
    monkeypatch.setenv("STORE_FIRESTORE_PROJECT_ID", "demo-project")
    monkeypatch.setenv("BLOB_FIREBASE_BUCKET", BUCKET)
    monkeypatch.setenv("IDENTITY_FIREBASE_API_KEY", "web-api-key")
    monkeypatch.setenv("API_SERVER_API_KEY", "server-key")
    monkeypatch.setenv("TIMEZONE", "UTC")
    monkeypatch.setenv("ROOT_DIR", str(tmp_path))
    for key in ("LIBRARY_CATEGORY_SOURCES", "LIBRARY_FOLDER_SOURCES", "LIBRARY_DOCUMENT_SOURCES", "UPLOAD_PATH_PREFIX",
                "FOLDERS_NAME_CASE_SENSITIVE", "FOLDERS_NAME_TRIM", "FOLDERS_CONDITIONAL_CREATE"):
        monkeypatch.delenv(key, raising=False)
    return HelperConfig(logger=logging.getLogger("sop_library.tests"))


@pytest.fixture
def store() -> FakeStoreClient:
    return FakeStoreClient()


@pytest.fixture
def blob() -> FakeBlobClient:
    return FakeBlobClient()


@pytest.fixture
def repository(helper_config, store):
    from services.sop_library.SOPRepository import SOPRepository
    return SOPRepository(helper_config=helper_config, store_client=store)
