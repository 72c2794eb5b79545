"""Configuration validation for secret-mgmt."""

from typing import Any, Dict, List

import jsonschema

from .schemas import KEYS_CONFIG_SCHEMA, MANIFEST_SCHEMA


class ConfigValidator:
    """Validates module manifests and the encryption key configuration."""

    def validate_manifest(self, manifest: Dict[str, Any]) -> List[str]:
        """
        Validate a module `secrets.yaml` manifest.

        Args:
            manifest: Parsed manifest

        Returns:
            List[str]: List of validation errors (empty if valid)
        """
        return self._validate(manifest, MANIFEST_SCHEMA)

    def validate_keys_config(self, config: Dict[str, Any]) -> List[str]:
        """
        Validate the encryption key configuration.

        Args:
            config: Parsed configuration

        Returns:
            List[str]: List of validation errors (empty if valid)
        """
        return self._validate(config, KEYS_CONFIG_SCHEMA)

    def _validate(self, document: Any, schema: Dict[str, Any]) -> List[str]:
        errors = []

        try:
            validator = jsonschema.Draft7Validator(schema)
            for error in sorted(validator.iter_errors(document), key=lambda e: [str(p) for p in e.path]):
                location = "/".join(str(p) for p in error.path)
                if location:
                    errors.append(f"{location}: {error.message}")
                else:
                    errors.append(error.message)
        except jsonschema.SchemaError as e:
            errors.append(f"Schema error: {e.message}")

        return errors
