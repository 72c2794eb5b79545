"""Configuration management for secret-mgmt."""

import glob
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import yaml

from ..models import ModuleManifest
from ..utils.errors import ConfigurationError, ValidationError, create_error_suggestions, format_validation_errors
from .validator import ConfigValidator

SECRETS_FILE = "secrets.yaml"
DEFAULT_MODULES_DIR = "modules"
DEFAULT_KEYS_CONFIG = os.path.join("gcp-secret-mgmt", "config.yaml")
DEFAULT_KEYRING = "keyring"
DEFAULT_LOCATION = "global"


@dataclass
class Settings:
    """Runtime settings shared by the secret lifecycle components."""

    project_id: Optional[str] = None
    modules_dir: str = DEFAULT_MODULES_DIR
    keys_config: Optional[str] = None
    keyring: str = DEFAULT_KEYRING
    location: str = DEFAULT_LOCATION
    timeout: int = 30
    access_token: Optional[str] = None

    def __post_init__(self):
        if not self.keys_config:
            self.keys_config = os.path.join(self.modules_dir, DEFAULT_KEYS_CONFIG)

    @classmethod
    def from_environ(cls, environ: Optional[Dict[str, str]] = None, **overrides) -> "Settings":
        """
        Build settings from environment variables, letting explicit values win.

        Args:
            environ: Environment mapping (defaults to os.environ)
            **overrides: Explicit settings, ignored when None

        Returns:
            Settings: Resolved settings
        """
        environ = os.environ if environ is None else environ
        values: Dict[str, Any] = {
            "project_id": environ.get("TF_VAR_project_id") or None,
            "access_token": environ.get("GOOGLE_OAUTH_ACCESS_TOKEN") or None,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    def require_project(self) -> str:
        """Return the project id or fail when it is not configured."""
        if not self.project_id:
            raise ConfigurationError(
                "GCP project id is not set",
                suggestions=create_error_suggestions("missing_project"),
            )
        return self.project_id


class ConfigManager:
    """Loads module manifests and the encryption key configuration."""

    def __init__(self, settings: Settings):
        """
        Initialize configuration manager.

        Args:
            settings: Runtime settings
        """
        self.settings = settings
        self.validator = ConfigValidator()

    def _load_yaml(self, path: str) -> Any:
        try:
            with open(path, encoding="utf-8") as f:
                return yaml.safe_load(f)
        except FileNotFoundError:
            raise ConfigurationError(f"Configuration file not found: {path}")
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Error parsing YAML file {path}", details=str(e))

    def load_encryption_keys(self) -> List[str]:
        """
        Load the ordered list of valid encryption keys.

        Returns:
            List[str]: Encryption key names in configured order

        Raises:
            ConfigurationError: If the file is missing, unparsable or invalid
        """
        path = self.settings.keys_config
        config = self._load_yaml(path) or {}

        errors = self.validator.validate_keys_config(config)
        if errors:
            raise ConfigurationError(
                f"Invalid encryption key configuration {path}",
                details=format_validation_errors(errors),
            )

        return list(config["encryption_keys"])

    def find_manifests(self) -> List[str]:
        """Find every module manifest below the modules directory, sorted by path."""
        pattern = os.path.join(self.settings.modules_dir, "**", SECRETS_FILE)
        return sorted(glob.glob(pattern, recursive=True))

    def load_manifest(self, path: str) -> ModuleManifest:
        """
        Load one module manifest.

        The module name is the name of the directory holding the manifest.

        Args:
            path: Path to a `secrets.yaml` file

        Returns:
            ModuleManifest: Parsed manifest

        Raises:
            ValidationError: If the manifest does not match the schema
        """
        module_name = os.path.basename(os.path.dirname(os.path.abspath(path)))
        manifest = self._load_yaml(path)
        if manifest is None:
            manifest = {}

        errors = self.validator.validate_manifest(manifest)
        if errors:
            raise ValidationError(
                f"Invalid secrets manifest for module '{module_name}' ({path})",
                details=format_validation_errors(errors),
            )

        return ModuleManifest(
            name=module_name,
            secrets=list(manifest["secrets"]),
            encryption_key=manifest.get("encryption_key"),
            source=path,
        )

    def load_manifests(self) -> List[ModuleManifest]:
        """Load all module manifests."""
        return [self.load_manifest(path) for path in self.find_manifests()]
