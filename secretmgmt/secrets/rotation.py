"""KMS key version rotation for secret-mgmt."""

import logging
from typing import Dict, Iterable

from ..backends.base import KeyManagementClient
from ..models import KeyVersionState
from ..utils.errors import RotationConsistencyError

logger = logging.getLogger(__name__)


class KeyRotationManager:
    """
    Rotates KMS encryption keys.

    A new primary version is created before any other version is disabled,
    so the key always keeps at least one enabled version. Versions are never
    destroyed.
    """

    def __init__(self, kms: KeyManagementClient):
        self.kms = kms

    def disable_non_primary_versions(self, key: str, primary_version_id: str) -> int:
        """
        Disable every enabled version of a key except the primary.

        Args:
            key: Encryption key name
            primary_version_id: Version to keep enabled

        Returns:
            int: Number of versions disabled

        Raises:
            RotationConsistencyError: If a version is not DISABLED after the call
        """
        disabled = 0

        for version in self.kms.list_versions(key):
            if version.state != KeyVersionState.ENABLED or version.id == primary_version_id:
                continue

            result = self.kms.disable_version(key, version.id)
            if result.state != KeyVersionState.DISABLED:
                raise RotationConsistencyError(key, version.id, result.state.value)
            disabled += 1

        return disabled

    def rotate(self, key: str) -> str:
        """
        Create a new primary version for a key and disable the others.

        Args:
            key: Encryption key name

        Returns:
            str: Id of the new primary version
        """
        new_version_id = self.kms.create_version(key)
        disabled = self.disable_non_primary_versions(key, new_version_id)
        logger.info(
            f"[secret-mgmt] Key '{key}' rotated to version {new_version_id}, "
            f"{disabled} previous version(s) disabled"
        )
        return new_version_id

    def rotate_all(self, keys: Iterable[str]) -> Dict[str, str]:
        """Rotate several keys in order, stopping at the first failure."""
        return {key: self.rotate(key) for key in keys}
