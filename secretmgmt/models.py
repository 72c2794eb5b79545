"""Data types shared by the secret lifecycle components."""

import base64
import binascii
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Set

from .utils.errors import TransportError

SECRET_PREFIX = "secret_"
KEY_PREFIX = "key_"
VALID_PREFIXES = (SECRET_PREFIX, KEY_PREFIX)

# Key group name -> secret names protected by that key
EncryptionKeyGroups = Dict[str, Set[str]]
SecretValueMap = Dict[str, str]


@dataclass
class ModuleManifest:
    """Secrets declared by one module."""

    name: str
    secrets: List[str] = field(default_factory=list)
    encryption_key: Optional[str] = None
    source: Optional[str] = None

    @property
    def resolved_key(self) -> str:
        """Encryption key for this module, defaulting to the module name."""
        return self.encryption_key or self.name

    @property
    def identity(self) -> str:
        """Manifest path when loaded from disk, else the module name."""
        return self.source or self.name


class KeyVersionState(Enum):
    """Key version states reported by Cloud KMS."""

    ENABLED = "ENABLED"
    DISABLED = "DISABLED"
    DESTROYED = "DESTROYED"
    DESTROY_SCHEDULED = "DESTROY_SCHEDULED"
    PENDING_GENERATION = "PENDING_GENERATION"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, value: Optional[str]) -> "KeyVersionState":
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


@dataclass
class KeyVersion:
    """One version of a KMS encryption key."""

    id: str
    state: KeyVersionState
    is_primary: bool = False
    name: Optional[str] = None

    @property
    def enabled(self) -> bool:
        return self.state == KeyVersionState.ENABLED


@dataclass
class EncryptedBlob:
    """
    Ciphertext of a SecretValueMap together with the key version that produced it.

    The stored object is the base64 encoding of the JSON document
    ``{"name": <key version resource>, "ciphertext": <base64 ciphertext>}``,
    which is the body returned by the KMS encrypt call.
    """

    ciphertext: str
    key_version_name: str

    def to_bytes(self) -> bytes:
        document = json.dumps({"name": self.key_version_name, "ciphertext": self.ciphertext})
        return base64.b64encode(document.encode("utf-8"))

    @classmethod
    def from_bytes(cls, data: bytes, key: str) -> "EncryptedBlob":
        raw = data.decode("utf-8", errors="replace")
        try:
            document = json.loads(base64.b64decode(data, validate=False))
        except (binascii.Error, ValueError) as e:
            raise TransportError(
                f"Unable to parse secrets file data for key '{key}': {e}", response=raw
            ) from e

        if not isinstance(document, dict) or not document.get("ciphertext"):
            raise TransportError(
                f"Unable to extract ciphertext from secrets file for key '{key}'", response=raw
            )

        return cls(ciphertext=document["ciphertext"], key_version_name=document.get("name", ""))


def serialize_values(values: SecretValueMap) -> bytes:
    """Encode a SecretValueMap as the plaintext sent to KMS."""
    return json.dumps(values, sort_keys=True).encode("utf-8")


def deserialize_values(plaintext: bytes, key: str) -> SecretValueMap:
    """Decode the plaintext returned by KMS back into a SecretValueMap."""
    try:
        values = json.loads(plaintext)
    except ValueError as e:
        raise TransportError(
            f"Unable to parse secrets data for key '{key}': {e}",
            response=plaintext.decode("utf-8", errors="replace"),
        ) from e

    if not isinstance(values, dict):
        raise TransportError(
            f"Decrypted secrets for key '{key}' are not a mapping",
            response=plaintext.decode("utf-8", errors="replace"),
        )

    return {str(name): _value_text(value) for name, value in values.items()}


def _value_text(value: Any) -> str:
    # Values written by other tools keep their JSON form, e.g. true -> "true"
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return json.dumps(value, sort_keys=True)
