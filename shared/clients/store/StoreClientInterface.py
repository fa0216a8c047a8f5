from abc import abstractmethod
from typing import Any

import httpx

from shared.clients.ClientInterface import ClientInterface
from shared.errors.exceptions import ConflictError, RemoteIOError
from shared.helper.HelperConfig import HelperConfig
from shared.models.store import StoreRecord


class StoreClientInterface(ClientInterface):
    """
    Narrow document store adapter: equality queries, get, create with server
    timestamps and delete. Nothing else of the backend is exposed.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "store"

    @abstractmethod
    def generate_document_id(self) -> str:
        """
        Returns a new random document id in the format the backend uses for auto ids.
        """
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_query(self) -> str:
        """
        Returns the endpoint path for structured queries (e.g. "/v1/.../documents:runQuery").
        """
        pass

    @abstractmethod
    def _get_endpoint_commit(self) -> str:
        """
        Returns the endpoint path for atomic write batches (e.g. "/v1/.../documents:commit").
        """
        pass

    @abstractmethod
    def _get_endpoint_document(self, collection: str, document_id: str) -> str:
        """
        Returns the endpoint path of a single document (e.g. "/v1/.../documents/{collection}/{id}").
        """
        pass

    ##########################################
    ########### PAYLOAD BUILDER ##############
    ##########################################

    @abstractmethod
    def _get_query_payload(self, collection: str, filters: list[tuple[str, Any]]) -> dict:
        """
        Builds the backend-specific body of an equality query.

        Args:
            collection (str): The collection to query.
            filters (list[tuple[str, Any]]): (field, value) pairs, all of which must match.

        Returns:
            dict: The request body.
        """
        pass

    @abstractmethod
    def _get_create_payload(self, collection: str, document_id: str, fields: dict[str, Any], server_timestamp_fields: list[str], must_not_exist: bool) -> dict:
        """
        Builds the backend-specific body that creates one document.

        Args:
            collection (str): Target collection.
            document_id (str): Id of the new document.
            fields (dict[str, Any]): Plain field values.
            server_timestamp_fields (list[str]): Fields the server fills with its commit time.
            must_not_exist (bool): Reject the write if the document already exists.

        Returns:
            dict: The request body.
        """
        pass

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    @abstractmethod
    def _parse_query_response(self, response: Any) -> list[StoreRecord]:
        """
        Parses the raw query response into records.
        """
        pass

    @abstractmethod
    def _parse_document(self, response: dict) -> StoreRecord:
        """
        Parses one raw document into a record.
        """
        pass

    @abstractmethod
    def _is_precondition_failure(self, response: httpx.Response) -> bool:
        """
        Returns True if the response reports a failed write precondition.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_query(self, collection: str, filters: list[tuple[str, Any]]) -> list[StoreRecord]:
        """
        Returns all documents of a collection whose fields equal the given values.

        Raises:
            RemoteIOError: If the query fails.
        """
        resp = await self.do_request(method="POST", json=self._get_query_payload(collection, filters), endpoint=self._get_endpoint_query())
        records = self._parse_query_response(resp.json())
        self.logging.debug("Queried %s from %s with %s: %d record(s)", collection, self._get_engine_name(), filters, len(records))
        return records

    async def do_get(self, collection: str, document_id: str) -> StoreRecord | None:
        """
        Fetches one document, or None if it does not exist.

        Raises:
            RemoteIOError: If the request fails for any other reason.
        """
        resp = await self.do_request(method="GET", endpoint=self._get_endpoint_document(collection, document_id), raise_on_error=False)
        if resp.status_code == 404:
            return None
        if resp.status_code >= 300:
            raise RemoteIOError(f"Fetching {collection}/{document_id} failed with status {resp.status_code}: {self._extract_error_message(resp)}", status_code=resp.status_code)
        return self._parse_document(resp.json())

    async def do_create(
        self,
        collection: str,
        fields: dict[str, Any],
        server_timestamp_fields: list[str] | None = None,
        document_id: str | None = None,
        must_not_exist: bool = False,
    ) -> str:
        """
        Creates one document and returns its id.

        Args:
            collection (str): Target collection.
            fields (dict[str, Any]): Field values to store.
            server_timestamp_fields (list[str] | None): Fields set to the server's commit time.
            document_id (str | None): Explicit id; a random one is generated if None.
            must_not_exist (bool): Fail with ConflictError if the id is already taken.

        Raises:
            ConflictError: If must_not_exist is set and the document exists.
            RemoteIOError: If the write fails for any other reason.
        """
        document_id = document_id or self.generate_document_id()
        payload = self._get_create_payload(collection, document_id, fields, server_timestamp_fields or [], must_not_exist)
        resp = await self.do_request(method="POST", json=payload, endpoint=self._get_endpoint_commit(), raise_on_error=False)
        if resp.status_code >= 300:
            message = f"Creating {collection}/{document_id} failed with status {resp.status_code}: {self._extract_error_message(resp)}"
            if must_not_exist and self._is_precondition_failure(resp):
                raise ConflictError(message, status_code=resp.status_code)
            self.logging.error(message)
            raise RemoteIOError(message, status_code=resp.status_code)
        self.logging.debug("Created %s/%s in %s", collection, document_id, self._get_engine_name())
        return document_id

    async def do_delete(self, collection: str, document_id: str) -> None:
        """
        Deletes one document.

        Raises:
            RemoteIOError: If the delete fails.
        """
        await self.do_request(method="DELETE", endpoint=self._get_endpoint_document(collection, document_id))
        self.logging.debug("Deleted %s/%s from %s", collection, document_id, self._get_engine_name())
