"""Collection and validation of module secret manifests."""

import logging
from typing import Dict, Iterable, Optional

from ..config.manager import ConfigManager
from ..models import VALID_PREFIXES, EncryptionKeyGroups, ModuleManifest
from ..utils.errors import DuplicateSecretError, InvalidPrefixError, UnknownEncryptionKeyError
from .context import ResolutionContext

logger = logging.getLogger(__name__)


class ManifestCollector:
    """
    Groups secrets declared by modules under their KMS encryption keys.

    Secret names are global: a name may only be declared by one module and
    must start with 'secret_' or 'key_'. Every encryption key used by a
    module has to appear in the configured key list.
    """

    def __init__(
        self,
        encryption_keys: Iterable[str],
        context: Optional[ResolutionContext] = None,
        keys_config_path: Optional[str] = None,
    ):
        """
        Initialize collector.

        Args:
            encryption_keys: Configured encryption key names
            context: Value sink receiving placeholders for collected secrets
            keys_config_path: Location of the key configuration, for error reports
        """
        self.encryption_keys = list(encryption_keys)
        self.context = context if context is not None else ResolutionContext()
        self.keys_config_path = keys_config_path

    def collect(self, modules: Iterable[ModuleManifest]) -> EncryptionKeyGroups:
        """
        Collect secrets from module manifests.

        Args:
            modules: Module manifests

        Returns:
            EncryptionKeyGroups: Encryption key -> secret names

        Raises:
            InvalidPrefixError: If a secret name has no valid prefix
            DuplicateSecretError: If two modules declare the same secret
            UnknownEncryptionKeyError: If a key is missing from the configuration
        """
        groups: EncryptionKeyGroups = {}
        owners: Dict[str, ModuleManifest] = {}

        for module in modules:
            key = module.resolved_key
            group = groups.setdefault(key, set())

            for secret_name in module.secrets:
                if not secret_name.startswith(VALID_PREFIXES):
                    raise InvalidPrefixError(secret_name, module.name)

                owner = owners.get(secret_name)
                if owner is not None and owner.identity != module.identity:
                    raise DuplicateSecretError(
                        secret_name,
                        module.name,
                        owner.name,
                        module_source=module.source,
                        owner_source=owner.source,
                    )

                owners[secret_name] = module
                group.add(secret_name)

        leftover_keys = [key for key in groups if key not in self.encryption_keys]
        if leftover_keys:
            raise UnknownEncryptionKeyError(leftover_keys, self.keys_config_path)

        # Placeholders only once every module passed validation
        for secret_name in owners:
            self.context.register(secret_name)

        logger.info(f"[secret-mgmt] Collected {len(owners)} secrets under {len(groups)} encryption keys")
        return groups

    def collect_from_directory(self, config_manager: ConfigManager) -> EncryptionKeyGroups:
        """
        Discover module manifests with a ConfigManager and collect them.

        Args:
            config_manager: ConfigManager pointing at the modules directory

        Returns:
            EncryptionKeyGroups: Encryption key -> secret names
        """
        modules = config_manager.load_manifests()
        logger.debug(f"Found {len(modules)} module manifests")
        return self.collect(modules)
