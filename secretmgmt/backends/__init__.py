"""Key-management and storage backends for secret-mgmt."""

from .base import KeyManagementClient, SecretStore, get_crypto_key_version
from .google import GoogleApiSession
from .kms import CloudKMSClient
from .storage import CloudStorageStore

__all__ = [
    "KeyManagementClient",
    "SecretStore",
    "get_crypto_key_version",
    "GoogleApiSession",
    "CloudKMSClient",
    "CloudStorageStore",
]
