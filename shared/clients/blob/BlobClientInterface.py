from abc import abstractmethod
from typing import Any, Callable, TypeVar

import httpx

from shared.clients.ClientInterface import ClientInterface
from shared.errors.exceptions import RemoteIOError
from shared.helper.HelperConfig import HelperConfig
from shared.models.store import BlobHandle

T = TypeVar("T")


class BlobClientInterface(ClientInterface):
    """
    Narrow blob store adapter: upload by path, resolve a public URL, download,
    delete by URL and list by prefix.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "blob"

    @abstractmethod
    def get_bucket(self) -> str:
        """
        Returns the configured bucket name.
        """
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_upload(self, path: str) -> str:
        """
        Returns the endpoint that receives the raw bytes of a new object at path.
        """
        pass

    @abstractmethod
    def _get_endpoint_object(self, path: str, bucket: str | None = None) -> str:
        """
        Returns the metadata/delete endpoint of one object.
        """
        pass

    @abstractmethod
    def _get_endpoint_list(self) -> str:
        """
        Returns the endpoint that lists objects.
        """
        pass

    @abstractmethod
    def _get_list_params(self, prefix: str, page_token: str | None) -> dict:
        """
        Returns the query parameters of one list page.
        """
        pass

    @abstractmethod
    def _get_download_url(self, handle: BlobHandle) -> str:
        """
        Builds the public download URL of an object whose download token is known.
        """
        pass

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    @abstractmethod
    def _parse_object(self, response: dict) -> BlobHandle:
        """
        Parses object metadata into a handle.
        """
        pass

    @abstractmethod
    def _parse_list_response(self, response: dict) -> tuple[list[BlobHandle], str | None]:
        """
        Parses one list page into handles and the token of the next page (None on the last page).
        """
        pass

    @abstractmethod
    def parse_blob_url(self, url: str) -> tuple[str, str]:
        """
        Resolves a download URL, a gs:// URL or a bare object path into (bucket, path).

        Raises:
            ValueError: If the URL cannot be resolved to an object path.
        """
        pass

    def _decode(self, resp: httpx.Response, parser: Callable[[Any], T]) -> T:
        """
        Runs parser over the JSON body of a successful response.

        Raises:
            RemoteIOError: If the body is not JSON or lacks the fields the parser needs.
        """
        try:
            return parser(resp.json())
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise RemoteIOError(f"Malformed response from {resp.request.url}: {e}", cause=e)

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_upload(self, path: str, content: bytes, content_type: str) -> BlobHandle:
        """
        Uploads bytes to path, replacing any object already there.

        Raises:
            RemoteIOError: If the upload fails.
        """
        resp = await self.do_request(
            method="POST",
            content=content,
            endpoint=self._get_endpoint_upload(path),
            additional_headers={"Content-Type": content_type},
        )
        handle = self._decode(resp, self._parse_object)
        self.logging.debug("Uploaded %d bytes to %s/%s", len(content), handle.bucket, handle.path)
        return handle

    async def do_fetch_metadata(self, path: str, bucket: str | None = None) -> BlobHandle:
        """
        Fetches the metadata of one object.

        Raises:
            RemoteIOError: If the object does not exist or the request fails.
        """
        resp = await self.do_request(method="GET", endpoint=self._get_endpoint_object(path, bucket))
        return self._decode(resp, self._parse_object)

    async def do_get_url(self, handle: BlobHandle) -> str:
        """
        Returns the publicly resolvable URL of an uploaded object. Handles without a
        download token are refreshed from the object metadata first.

        Raises:
            RemoteIOError: If the metadata request fails or the object has no download token.
        """
        if not handle.download_token:
            handle = await self.do_fetch_metadata(handle.path, handle.bucket)
        if not handle.download_token:
            raise RemoteIOError(f"Object {handle.bucket}/{handle.path} has no download token.")
        return self._get_download_url(handle)

    async def do_download(self, url: str) -> bytes:
        """
        Downloads the bytes behind a URL returned by do_get_url().

        Raises:
            RemoteIOError: If the download fails.
        """
        resp = await self.do_request(method="GET", endpoint=url)
        return resp.content

    async def do_delete(self, path: str, bucket: str | None = None) -> None:
        """
        Deletes one object by path.

        Raises:
            RemoteIOError: If the delete fails.
        """
        await self.do_request(method="DELETE", endpoint=self._get_endpoint_object(path, bucket))
        self.logging.debug("Deleted blob %s/%s", bucket or self.get_bucket(), path)

    async def do_delete_by_url(self, url: str) -> None:
        """
        Deletes the object a stored URL points to.

        Raises:
            RemoteIOError: If the URL cannot be resolved or the delete fails.
        """
        try:
            bucket, path = self.parse_blob_url(url)
        except ValueError as e:
            raise RemoteIOError(f"Cannot resolve blob url '{url}': {e}", cause=e)
        await self.do_delete(path, bucket)

    async def do_list(self, prefix: str) -> list[BlobHandle]:
        """
        Lists every object below prefix, following pagination.

        Raises:
            RemoteIOError: If a list request fails.
        """
        handles: list[BlobHandle] = []
        page_token: str | None = None
        page = 1
        while True:
            resp = await self.do_request(method="GET", endpoint=self._get_endpoint_list(), params=self._get_list_params(prefix, page_token))
            page_handles, page_token = self._decode(resp, self._parse_list_response)
            handles.extend(page_handles)
            self.logging.debug("Listed blob page %d below '%s', total objects so far: %d", page, prefix, len(handles))
            if not page_token:
                break
            page += 1
        return handles
