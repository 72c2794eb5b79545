"""Interfaces for the key-management and storage services."""

import re
from abc import ABC, abstractmethod
from typing import List

from ..models import EncryptedBlob, KeyVersion
from ..utils.errors import TransportError

_VERSION_ID_RE = re.compile(r"/([0-9]+)$")


def get_crypto_key_version(path: str) -> str:
    """
    Extract the key version number from a KMS resource path.

    `projects/p/locations/global/keyRings/keyring/cryptoKeys/default/cryptoKeyVersions/1` -> `1`
    """
    match = _VERSION_ID_RE.search(path or "")
    if not match:
        raise TransportError(f"Unable to extract key version from '{path}'", response=path)
    return match.group(1)


class KeyManagementClient(ABC):
    """Port for a key-management service holding the encryption keys."""

    @abstractmethod
    def get_primary_version(self, key: str) -> str:
        """Return the id of the key's primary version."""
        ...

    @abstractmethod
    def encrypt(self, key: str, plaintext: bytes) -> EncryptedBlob:
        """Encrypt plaintext with the key's primary version."""
        ...

    @abstractmethod
    def decrypt(self, key: str, ciphertext: str) -> bytes:
        """Decrypt base64 ciphertext produced by any enabled version of the key."""
        ...

    @abstractmethod
    def create_version(self, key: str) -> str:
        """Create a new version, make it primary and return its id."""
        ...

    @abstractmethod
    def list_versions(self, key: str) -> List[KeyVersion]:
        """List every version of the key."""
        ...

    @abstractmethod
    def disable_version(self, key: str, version_id: str) -> KeyVersion:
        """Disable a version and return it as reported by the service."""
        ...


class SecretStore(ABC):
    """Port for the object storage holding one encrypted blob per key."""

    @abstractmethod
    def exists(self, key: str) -> bool:
        """Whether a blob is stored for the key. A missing object is not an error."""
        ...

    @abstractmethod
    def download(self, key: str) -> bytes:
        """Return the stored blob for the key."""
        ...

    @abstractmethod
    def upload(self, key: str, data: bytes) -> None:
        """Store the blob for the key, replacing any previous one."""
        ...
