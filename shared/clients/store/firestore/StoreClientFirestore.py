import secrets
import string
from typing import Any
from urllib.parse import quote

import httpx

from shared.clients.store.StoreClientInterface import StoreClientInterface
from shared.clients.store.firestore.values import decode_fields, encode_fields, encode_value
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig
from shared.models.store import StoreRecord

_AUTO_ID_ALPHABET = string.ascii_letters + string.digits
_AUTO_ID_LENGTH = 20


class StoreClientFirestore(StoreClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default="https://firestore.googleapis.com", val_type="string")
        self._project_id = self.get_config_val("PROJECT_ID", default=None, val_type="string")
        self._database = self.get_config_val("DATABASE", default="(default)", val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")
        self._access_token = self.get_config_val("ACCESS_TOKEN", default="", val_type="string")
        self._healthcheck_collection = self.get_config_val("HEALTHCHECK_COLLECTION", default="users", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Firestore"

    def generate_document_id(self) -> str:
        return "".join(secrets.choice(_AUTO_ID_ALPHABET) for _ in range(_AUTO_ID_LENGTH))

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="PROJECT_ID", val_type="string", default=None),
            EnvConfig(env_key="DATABASE", val_type="string", default="(default)"),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
            EnvConfig(env_key="ACCESS_TOKEN", val_type="string", default=""),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        token = self._auth_token or self._access_token
        if token:
            return {"Authorization": f"Bearer {token}"}
        return {}

    def _get_auth_params(self) -> dict:
        if self._api_key:
            return {"key": self._api_key}
        return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_database_path(self) -> str:
        return f"projects/{self._project_id}/databases/{self._database}"

    def _get_documents_root(self) -> str:
        return f"/v1/{self._get_database_path()}/documents"

    def _get_endpoint_healthcheck(self) -> str:
        return f"{self._get_documents_root()}/{quote(self._healthcheck_collection, safe='')}?pageSize=1"

    def _get_endpoint_query(self) -> str:
        return f"{self._get_documents_root()}:runQuery"

    def _get_endpoint_commit(self) -> str:
        return f"{self._get_documents_root()}:commit"

    def _get_endpoint_document(self, collection: str, document_id: str) -> str:
        return f"{self._get_documents_root()}/{quote(collection, safe='')}/{quote(document_id, safe='')}"

    def _get_document_name(self, collection: str, document_id: str) -> str:
        return f"{self._get_database_path()}/documents/{collection}/{document_id}"

    ##########################################
    ########### PAYLOAD BUILDER ##############
    ##########################################

    def _get_query_payload(self, collection: str, filters: list[tuple[str, Any]]) -> dict:
        field_filters = [
            {
                "fieldFilter": {
                    "field": {"fieldPath": field},
                    "op": "EQUAL",
                    "value": encode_value(value),
                }
            }
            for field, value in filters
        ]
        structured_query: dict = {"from": [{"collectionId": collection}]}
        if len(field_filters) == 1:
            structured_query["where"] = field_filters[0]
        elif field_filters:
            structured_query["where"] = {"compositeFilter": {"op": "AND", "filters": field_filters}}
        return {"structuredQuery": structured_query}

    def _get_create_payload(self, collection: str, document_id: str, fields: dict[str, Any], server_timestamp_fields: list[str], must_not_exist: bool) -> dict:
        # server timestamp fields are filled by the transform, never sent as values
        plain_fields = {key: val for key, val in fields.items() if key not in server_timestamp_fields}
        write: dict = {
            "update": {
                "name": self._get_document_name(collection, document_id),
                "fields": encode_fields(plain_fields),
            },
        }
        if server_timestamp_fields:
            write["updateTransforms"] = [
                {"fieldPath": field, "setToServerValue": "REQUEST_TIME"}
                for field in server_timestamp_fields
            ]
        if must_not_exist:
            write["currentDocument"] = {"exists": False}
        return {"writes": [write]}

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def _parse_query_response(self, response: Any) -> list[StoreRecord]:
        # runQuery streams a JSON array; entries without "document" only carry readTime
        records = []
        for item in response or []:
            document = item.get("document") if isinstance(item, dict) else None
            if document:
                records.append(self._parse_document(document))
        return records

    def _parse_document(self, response: dict) -> StoreRecord:
        name = response.get("name", "")
        # ".../documents/<collection>/<id>", subcollections keep their full relative path
        relative = name.split("/documents/", 1)[-1]
        collection, _, document_id = relative.rpartition("/")
        return StoreRecord(
            collection=collection,
            id=document_id,
            fields=decode_fields(response.get("fields", {})),
        )

    def _is_precondition_failure(self, response: httpx.Response) -> bool:
        if response.status_code == 409:
            return True
        try:
            body = response.json()
        except ValueError:
            return False
        error = body.get("error", {}) if isinstance(body, dict) else {}
        return error.get("status") in ("ALREADY_EXISTS", "FAILED_PRECONDITION")
