"""Fetch-or-provision lifecycle of encrypted secret groups."""

import logging
from typing import Iterable, Optional

from ..backends.base import KeyManagementClient, SecretStore
from ..models import EncryptedBlob, EncryptionKeyGroups, SecretValueMap, deserialize_values, serialize_values
from .context import ResolutionContext
from .generator import SecretGenerator

logger = logging.getLogger(__name__)


class SecretManager:
    """
    Resolves the secret values of every encryption key group.

    A group whose blob exists in the store is decrypted and its values win
    over anything the caller supplied. Otherwise missing values are generated,
    and the whole group is encrypted with the key's primary version and
    uploaded. Groups are processed sequentially and any failure aborts the run.
    """

    def __init__(
        self,
        kms: KeyManagementClient,
        store: SecretStore,
        context: ResolutionContext,
        generator: Optional[SecretGenerator] = None,
    ):
        """
        Initialize secret manager.

        Args:
            kms: Key-management client
            store: Storage for encrypted blobs
            context: Value sink for the current run
            generator: Value generator for unset secrets
        """
        self.kms = kms
        self.store = store
        self.context = context
        self.generator = generator or SecretGenerator()

    def fetch(self, key: str) -> Optional[SecretValueMap]:
        """
        Download and decrypt the secrets stored for a key.

        Args:
            key: Encryption key name

        Returns:
            Optional[SecretValueMap]: Decrypted values, or None if nothing is stored
        """
        if not self.store.exists(key):
            return None

        blob = EncryptedBlob.from_bytes(self.store.download(key), key)
        logger.info(
            f"[secret-mgmt] Decrypting secrets for key '{key}' with KMS key version "
            f"{blob.key_version_name.rsplit('/', 1)[-1] or 'unknown'}..."
        )
        plaintext = self.kms.decrypt(key, blob.ciphertext)
        return deserialize_values(plaintext, key)

    def push(self, key: str, values: SecretValueMap) -> EncryptedBlob:
        """
        Encrypt secrets with the key's primary version and upload them.

        Args:
            key: Encryption key name
            values: Secret values protected by the key

        Returns:
            EncryptedBlob: The uploaded blob
        """
        blob = self.kms.encrypt(key, serialize_values(values))
        self.store.upload(key, blob.to_bytes())
        return blob

    def resolve_group(
        self, key: str, secret_names: Iterable[str], force_rotate_values: bool = False
    ) -> SecretValueMap:
        """
        Resolve one encryption key group into the context.

        Args:
            key: Encryption key name
            secret_names: Secrets protected by the key
            force_rotate_values: Skip the store and re-upload caller/generated values

        Returns:
            SecretValueMap: Values now held by the context for this group
        """
        secret_names = list(secret_names)
        if not force_rotate_values:
            stored = self.fetch(key)
            if stored is not None:
                self.context.update(stored)
                missing = sorted(set(secret_names) - set(stored))
                if missing:
                    logger.warning(
                        f"[secret-mgmt] Stored secrets for key '{key}' lack {', '.join(missing)}; "
                        "rerun with --rotate-secrets to add them"
                    )
                return stored

        logger.info(f"[secret-mgmt] Populating secrets for key '{key}'...")
        values = self.generator.populate(secret_names, self.context.snapshot(secret_names))
        self.context.update(values)
        self.push(key, values)
        return values

    def resolve(self, groups: EncryptionKeyGroups, force_rotate_values: bool = False) -> ResolutionContext:
        """
        Resolve every non-empty encryption key group.

        Args:
            groups: Encryption key -> secret names
            force_rotate_values: Regenerate-or-reuse caller values and re-upload every group

        Returns:
            ResolutionContext: The context holding all resolved values
        """
        for key, secret_names in groups.items():
            if not secret_names:
                logger.debug(f"Skipping key '{key}' without secrets")
                continue
            self.resolve_group(key, secret_names, force_rotate_values)

        return self.context
