"""Cloud KMS client."""

import base64
import binascii
import json
import logging
from typing import Any, Dict, List, Optional

from ..models import EncryptedBlob, KeyVersion, KeyVersionState
from ..utils.errors import TransportError
from .base import KeyManagementClient, get_crypto_key_version
from .google import GOOGLE_KMS_API, GoogleApiSession

logger = logging.getLogger(__name__)


class CloudKMSClient(KeyManagementClient):
    """KeyManagementClient backed by the Cloud KMS v1 REST API."""

    def __init__(
        self,
        api: GoogleApiSession,
        project_id: str,
        location: str = "global",
        keyring: str = "keyring",
        base_url: str = GOOGLE_KMS_API,
    ):
        self.api = api
        self.project_id = project_id
        self.location = location
        self.keyring = keyring
        self.base_url = base_url.rstrip("/")

    def key_path(self, key: str) -> str:
        return (
            f"projects/{self.project_id}/locations/{self.location}"
            f"/keyRings/{self.keyring}/cryptoKeys/{key}"
        )

    def _url(self, path: str) -> str:
        return f"{self.base_url}/v1/{path}"

    def _field(self, document: Dict[str, Any], *names: str) -> Any:
        """Walk nested fields of a response, failing with the raw document."""
        value: Any = document
        for name in names:
            if not isinstance(value, dict) or name not in value:
                raise TransportError(
                    f"Response is missing field '{'.'.join(names)}'",
                    response=json.dumps(document),
                )
            value = value[name]
        return value

    def _to_version(self, document: Dict[str, Any], primary_id: Optional[str]) -> KeyVersion:
        name = self._field(document, "name")
        version_id = get_crypto_key_version(name)
        return KeyVersion(
            id=version_id,
            state=KeyVersionState.parse(document.get("state")),
            is_primary=version_id == primary_id,
            name=name,
        )

    def get_primary_version(self, key: str) -> str:
        logger.info(f"[secret-mgmt] Retrieving primary key version for key '{key}'...")
        document = self.api.request_json("GET", self._url(self.key_path(key)))
        return get_crypto_key_version(self._field(document, "primary", "name"))

    def encrypt(self, key: str, plaintext: bytes) -> EncryptedBlob:
        version = self.get_primary_version(key)
        logger.info(f"[secret-mgmt] Encrypting secrets with key '{key}' version {version}...")

        document = self.api.request_json(
            "POST",
            self._url(f"{self.key_path(key)}/cryptoKeyVersions/{version}:encrypt"),
            json={"plaintext": base64.b64encode(plaintext).decode("ascii")},
        )
        return EncryptedBlob(
            ciphertext=self._field(document, "ciphertext"),
            key_version_name=self._field(document, "name"),
        )

    def decrypt(self, key: str, ciphertext: str) -> bytes:
        document = self.api.request_json(
            "POST",
            self._url(f"{self.key_path(key)}:decrypt"),
            json={"ciphertext": ciphertext},
        )
        plaintext = self._field(document, "plaintext")
        try:
            return base64.b64decode(plaintext, validate=True)
        except (binascii.Error, TypeError) as e:
            raise TransportError(
                f"Unable to decode plaintext for key '{key}'", response=json.dumps(document)
            ) from e

    def create_version(self, key: str) -> str:
        logger.info(f"[secret-mgmt] Creating new primary version for key '{key}'...")
        document = self.api.request_json(
            "POST", self._url(f"{self.key_path(key)}/cryptoKeyVersions"), json={}
        )
        version_id = get_crypto_key_version(self._field(document, "name"))

        crypto_key = self.api.request_json(
            "POST",
            self._url(f"{self.key_path(key)}:updatePrimaryVersion"),
            json={"cryptoKeyVersionId": version_id},
        )
        primary_id = get_crypto_key_version(self._field(crypto_key, "primary", "name"))
        if primary_id != version_id:
            raise TransportError(
                f"Version {version_id} of key '{key}' did not become primary",
                response=json.dumps(crypto_key),
            )

        return version_id

    def list_versions(self, key: str) -> List[KeyVersion]:
        primary_id = self.get_primary_version(key)
        logger.info(f"[secret-mgmt] Retrieving versions for key '{key}'...")

        versions = []
        params: Dict[str, Any] = {"pageSize": 1000}
        while True:
            document = self.api.request_json(
                "GET", self._url(f"{self.key_path(key)}/cryptoKeyVersions"), params=params
            )
            for item in document.get("cryptoKeyVersions", []):
                versions.append(self._to_version(item, primary_id))

            page_token = document.get("nextPageToken")
            if not page_token:
                break
            params = {"pageSize": 1000, "pageToken": page_token}

        return versions

    def disable_version(self, key: str, version_id: str) -> KeyVersion:
        logger.info(f"[secret-mgmt] Disabling version {version_id} for key '{key}'...")
        document = self.api.request_json(
            "PATCH",
            self._url(f"{self.key_path(key)}/cryptoKeyVersions/{version_id}"),
            params={"updateMask": "state"},
            json={"state": KeyVersionState.DISABLED.value},
        )
        return self._to_version(document, primary_id=None)
