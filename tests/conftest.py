"""Pytest configuration and shared fixtures."""

import os
import shutil
import tempfile
from typing import Dict, List

import pytest
import yaml
from cryptography.fernet import Fernet, InvalidToken, MultiFernet

from secretmgmt.backends.base import KeyManagementClient, SecretStore
from secretmgmt.models import EncryptedBlob, KeyVersion, KeyVersionState
from secretmgmt.utils.errors import TransportError


class FakeKMS(KeyManagementClient):
    """In-memory key-management service with one Fernet key per version."""

    def __init__(self):
        self.keys: Dict[str, Dict] = {}
        self.calls: List[tuple] = []
        self.refuse_disable = False

    def _key(self, key: str) -> Dict:
        if key not in self.keys:
            self.keys[key] = {
                "primary": "1",
                "versions": {"1": {"state": KeyVersionState.ENABLED, "fernet": Fernet(Fernet.generate_key())}},
            }
        return self.keys[key]

    def version_name(self, key: str, version_id: str) -> str:
        return f"projects/test/locations/global/keyRings/keyring/cryptoKeys/{key}/cryptoKeyVersions/{version_id}"

    def get_primary_version(self, key):
        self.calls.append(("get_primary_version", key))
        return self._key(key)["primary"]

    def encrypt(self, key, plaintext):
        self.calls.append(("encrypt", key))
        data = self._key(key)
        version_id = data["primary"]
        token = data["versions"][version_id]["fernet"].encrypt(plaintext)
        return EncryptedBlob(ciphertext=token.decode("ascii"), key_version_name=self.version_name(key, version_id))

    def decrypt(self, key, ciphertext):
        self.calls.append(("decrypt", key))
        enabled = [v["fernet"] for v in self._key(key)["versions"].values() if v["state"] == KeyVersionState.ENABLED]
        if not enabled:
            raise TransportError(f"No enabled versions for key '{key}'")
        try:
            return MultiFernet(enabled).decrypt(ciphertext.encode("ascii"))
        except InvalidToken as e:
            raise TransportError(f"Unable to decrypt secrets for key '{key}'") from e

    def create_version(self, key):
        self.calls.append(("create_version", key))
        data = self._key(key)
        version_id = str(max(int(v) for v in data["versions"]) + 1)
        data["versions"][version_id] = {"state": KeyVersionState.ENABLED, "fernet": Fernet(Fernet.generate_key())}
        data["primary"] = version_id
        return version_id

    def list_versions(self, key):
        self.calls.append(("list_versions", key))
        data = self._key(key)
        return [
            KeyVersion(
                id=version_id,
                state=version["state"],
                is_primary=version_id == data["primary"],
                name=self.version_name(key, version_id),
            )
            for version_id, version in data["versions"].items()
        ]

    def disable_version(self, key, version_id):
        self.calls.append(("disable_version", key, version_id))
        data = self._key(key)
        if not self.refuse_disable:
            data["versions"][version_id]["state"] = KeyVersionState.DISABLED
        return KeyVersion(
            id=version_id,
            state=data["versions"][version_id]["state"],
            name=self.version_name(key, version_id),
        )

    def enabled_primaries(self, key) -> List[KeyVersion]:
        return [v for v in self.list_versions(key) if v.state == KeyVersionState.ENABLED and v.is_primary]


class FakeStore(SecretStore):
    """In-memory object storage."""

    def __init__(self):
        self.blobs: Dict[str, bytes] = {}
        self.calls: List[tuple] = []

    def exists(self, key):
        self.calls.append(("exists", key))
        return key in self.blobs

    def download(self, key):
        self.calls.append(("download", key))
        return self.blobs[key]

    def upload(self, key, data):
        self.calls.append(("upload", key))
        self.blobs[key] = data


@pytest.fixture
def temp_directory():
    """Create a temporary directory for testing."""
    temp_dir = tempfile.mkdtemp()
    yield temp_dir
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture(autouse=True)
def isolate_filesystem(temp_directory, monkeypatch):
    """Isolate filesystem operations to temporary directory."""
    monkeypatch.chdir(temp_directory)
    for name in list(os.environ):
        if name.startswith("TF_VAR_") or name == "GOOGLE_OAUTH_ACCESS_TOKEN":
            monkeypatch.delenv(name)
    return temp_directory


@pytest.fixture
def fake_kms():
    return FakeKMS()


@pytest.fixture
def fake_store():
    return FakeStore()


@pytest.fixture
def write_module(temp_directory):
    """Write a module manifest under modules/<name>/secrets.yaml."""

    def _write(name, secrets, encryption_key=None, base="modules"):
        module_dir = os.path.join(temp_directory, base, name)
        os.makedirs(module_dir, exist_ok=True)
        manifest = {"secrets": list(secrets)}
        if encryption_key:
            manifest["encryption_key"] = encryption_key
        path = os.path.join(module_dir, "secrets.yaml")
        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(manifest, f)
        return path

    return _write


@pytest.fixture
def write_keys_config(temp_directory):
    """Write modules/gcp-secret-mgmt/config.yaml."""

    def _write(keys):
        config_dir = os.path.join(temp_directory, "modules", "gcp-secret-mgmt")
        os.makedirs(config_dir, exist_ok=True)
        path = os.path.join(config_dir, "config.yaml")
        with open(path, "w", encoding="utf-8") as f:
            yaml.dump({"encryption_keys": list(keys)}, f)
        return path

    return _write
