from urllib.parse import quote, unquote, urlparse

from shared.clients.blob.BlobClientInterface import BlobClientInterface
from shared.clients.store.firestore.values import parse_timestamp
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig
from shared.models.store import BlobHandle


class BlobClientFirebase(BlobClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default="https://firebasestorage.googleapis.com", val_type="string")
        self._bucket = self.get_config_val("BUCKET", default=None, val_type="string")
        self._access_token = self.get_config_val("ACCESS_TOKEN", default="", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Firebase"

    def get_bucket(self) -> str:
        return self._bucket

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BUCKET", val_type="string", default=None),
            EnvConfig(env_key="ACCESS_TOKEN", val_type="string", default=""),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        # signed-in users authenticate with their Firebase id token, services with an OAuth token
        if self._auth_token:
            return {"Authorization": f"Firebase {self._auth_token}"}
        if self._access_token:
            return {"Authorization": f"Bearer {self._access_token}"}
        return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return f"/v0/b/{self._bucket}/o?maxResults=1"

    def _get_endpoint_upload(self, path: str) -> str:
        return f"/v0/b/{self._bucket}/o?uploadType=media&name={quote(path, safe='')}"

    def _get_endpoint_object(self, path: str, bucket: str | None = None) -> str:
        return f"/v0/b/{bucket or self._bucket}/o/{quote(path, safe='')}"

    def _get_endpoint_list(self) -> str:
        return f"/v0/b/{self._bucket}/o"

    def _get_list_params(self, prefix: str, page_token: str | None) -> dict:
        params = {"prefix": prefix, "maxResults": 1000}
        if page_token:
            params["pageToken"] = page_token
        return params

    def _get_download_url(self, handle: BlobHandle) -> str:
        return (
            f"{self._base_url.rstrip('/')}/v0/b/{handle.bucket}/o/{quote(handle.path, safe='')}"
            f"?alt=media&token={handle.download_token}"
        )

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def _parse_object(self, response: dict) -> BlobHandle:
        # several tokens may exist, any of them grants access
        tokens = response.get("downloadTokens") or ""
        size = response.get("size")
        return BlobHandle(
            bucket=response.get("bucket") or self._bucket,
            path=response.get("name"),
            download_token=tokens.split(",")[0].strip() or None,
            content_type=response.get("contentType"),
            size=int(size) if size is not None else None,
            created_at=parse_timestamp(response["timeCreated"]) if response.get("timeCreated") else None,
        )

    def _parse_list_response(self, response: dict) -> tuple[list[BlobHandle], str | None]:
        # list items usually only carry bucket and name
        handles = [self._parse_object(item) for item in response.get("items", []) if item.get("name")]
        return handles, response.get("nextPageToken")

    def parse_blob_url(self, url: str) -> tuple[str, str]:
        url = url.strip()
        if not url:
            raise ValueError("empty url")

        parsed = urlparse(url)
        if parsed.scheme == "gs":
            path = parsed.path.lstrip("/")
            if not parsed.netloc or not path:
                raise ValueError("gs:// url without bucket or path")
            return parsed.netloc, path

        if parsed.scheme in ("http", "https"):
            # https://firebasestorage.googleapis.com/v0/b/<bucket>/o/<encoded path>?alt=media&token=...
            segments = parsed.path.split("/")
            if "b" in segments and "o" in segments:
                bucket_idx = segments.index("b") + 1
                object_idx = segments.index("o") + 1
                if bucket_idx < len(segments) and object_idx < len(segments) and segments[object_idx]:
                    return segments[bucket_idx], unquote("/".join(segments[object_idx:]))
            # https://storage.googleapis.com/<bucket>/<path>
            if parsed.netloc == "storage.googleapis.com":
                bucket, _, path = parsed.path.lstrip("/").partition("/")
                if bucket and path:
                    return bucket, unquote(path)
            raise ValueError("not a storage object url")

        # bare object path
        return self._bucket, url.lstrip("/")
