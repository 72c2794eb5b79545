"""Cloud Storage backed secret store."""

import logging
from urllib.parse import quote

from ..utils.errors import TransportError
from .base import SecretStore
from .google import GOOGLE_CLOUD_API, GoogleApiSession

logger = logging.getLogger(__name__)

SECRETS_OBJECT = "secrets.yaml"


class CloudStorageStore(SecretStore):
    """Keeps each key's blob as one object in a `<project>-<key>-secrets` bucket."""

    def __init__(
        self,
        api: GoogleApiSession,
        project_id: str,
        object_name: str = SECRETS_OBJECT,
        base_url: str = GOOGLE_CLOUD_API,
    ):
        self.api = api
        self.project_id = project_id
        self.object_name = object_name
        self.base_url = base_url.rstrip("/")

    def bucket_name(self, key: str) -> str:
        return f"{self.project_id}-{key}-secrets"

    def _object_url(self, key: str) -> str:
        return (
            f"{self.base_url}/storage/v1/b/{self.bucket_name(key)}"
            f"/o/{quote(self.object_name, safe='')}"
        )

    def exists(self, key: str) -> bool:
        logger.info(f"[secret-mgmt] Checking if secrets file for key '{key}' is present in GS bucket...")
        response = self.api.request("GET", self._object_url(key), allow_not_found=True)
        if response is None:
            logger.info(f"[secret-mgmt] Encrypted secrets for key '{key}' is missing in GS bucket...")
            return False
        return True

    def download(self, key: str) -> bytes:
        logger.info(f"[secret-mgmt] Retrieving encrypted secrets for key '{key}' from GS bucket...")
        response = self.api.request("GET", self._object_url(key), params={"alt": "media"})
        if not response.content:
            raise TransportError(f"Secrets file for key '{key}' is empty", response=response.text)
        return response.content

    def upload(self, key: str, data: bytes) -> None:
        logger.info(f"[secret-mgmt] Uploading encrypted secrets for key '{key}' into GS bucket...")
        self.api.request_json(
            "POST",
            f"{self.base_url}/upload/storage/v1/b/{self.bucket_name(key)}/o",
            params={"uploadType": "media", "name": self.object_name},
            headers={"Content-Type": "application/octet-stream"},
            data=data,
        )
