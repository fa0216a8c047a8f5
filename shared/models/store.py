"""Backend-independent models exchanged with the document store, blob store and identity provider."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel


class StoreRecord(BaseModel):
    """
    One document as returned by a document store query, before any domain parsing.

    Attributes:
        collection (str): The collection the record was read from.
        id (str): The document id, unique within its collection.
        fields (dict[str, Any]): Decoded field values. Timestamps are timezone-aware datetimes.
    """
    collection: str
    id: str
    fields: dict[str, Any] = {}


class CollectionSource(BaseModel):
    """
    A candidate place where one logical collection may live.

    Historical data was written under differently-cased collection names and
    scoping field names; each variant is one source.
    """
    collection: str
    scope_field: str = "organizationId"

    @classmethod
    def parse(cls, raw: str) -> "CollectionSource":
        """Parse "collection:scopeField" (scope field optional).

        Raises:
            ValueError: If the collection part is empty.
        """
        collection, _, scope_field = raw.partition(":")
        if not collection.strip():
            raise ValueError(f"Invalid collection source '{raw}'. Expected 'collection:scopeField'.")
        return cls(collection=collection.strip(), scope_field=scope_field.strip() or "organizationId")

    def __str__(self) -> str:
        return f"{self.collection}:{self.scope_field}"


class BlobHandle(BaseModel):
    """
    Reference to one object in the blob store.
    """
    bucket: str
    path: str
    download_token: str | None = None
    content_type: str | None = None
    size: int | None = None
    created_at: datetime | None = None


class AuthSession(BaseModel):
    """
    A signed-in identity as issued by the identity provider.
    """
    user_id: str
    id_token: str
    refresh_token: str | None = None
    email: str | None = None
    expires_in: int | None = None
