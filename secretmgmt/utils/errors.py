"""Error handling utilities for secret-mgmt."""

import sys
import traceback
from typing import Iterable, List, Optional, Tuple

import click


class SecretMgmtError(Exception):
    """Base exception for secret-mgmt errors."""

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        suggestions: Optional[list] = None,
    ):
        self.message = message
        self.details = details
        self.suggestions = suggestions or []
        super().__init__(message)


class ConfigurationError(SecretMgmtError):
    """Raised when configuration is invalid or missing."""

    pass


class ValidationError(SecretMgmtError):
    """Raised when module manifests fail validation."""

    pass


class InvalidPrefixError(ValidationError):
    """Raised when a secret name lacks the 'secret_' or 'key_' prefix."""

    def __init__(self, secret_name: str, module_name: str):
        self.secret_name = secret_name
        self.module_name = module_name
        super().__init__(
            f"Can not use secret with name '{secret_name}' for module '{module_name}'",
            details="Secret name must start with 'secret_' or 'key_'",
            suggestions=create_error_suggestions("invalid_prefix"),
        )


class DuplicateSecretError(ValidationError):
    """Raised when two modules declare the same secret name."""

    def __init__(
        self,
        secret_name: str,
        module_name: str,
        owner_module: str,
        module_source: Optional[str] = None,
        owner_source: Optional[str] = None,
    ):
        self.secret_name = secret_name
        self.module_name = module_name
        self.owner_module = owner_module
        self.module_source = module_source
        self.owner_source = owner_source
        module_label = f"'{module_name}'" + (f" ({module_source})" if module_source else "")
        owner_label = f"'{owner_module}'" + (f" ({owner_source})" if owner_source else "")
        super().__init__(
            f"Can not use secret with name '{secret_name}' for module {module_label}",
            details=f"Secret '{secret_name}' is already in use by module {owner_label}",
            suggestions=create_error_suggestions("duplicate_secret"),
        )


class UnknownEncryptionKeyError(ValidationError):
    """Raised when key groups reference keys missing from the key configuration."""

    def __init__(self, keys: Iterable[str], config_path: Optional[str] = None):
        self.keys = list(keys)
        self.config_path = config_path
        joined = ", ".join(self.keys)
        super().__init__(
            f'Secret keys: "{joined}" not present in encryption key configuration',
            details=config_path,
            suggestions=create_error_suggestions("unknown_encryption_key"),
        )


class TransportError(SecretMgmtError):
    """Raised when the key-management or storage service returns an unusable response."""

    def __init__(self, message: str, response: Optional[str] = None):
        self.response = response
        super().__init__(message, details=response)


class RotationConsistencyError(SecretMgmtError):
    """Raised when a key version could not be disabled during rotation."""

    def __init__(self, key: str, version_id: str, state: Optional[str] = None):
        self.key = key
        self.version_id = version_id
        self.state = state
        super().__init__(
            f"Unable to disable version {version_id} for key '{key}'",
            details=f"Version state after disable call: {state}",
            suggestions=create_error_suggestions("rotation_inconsistent"),
        )


class ErrorHandler:
    """Prints errors to stderr in the format the provisioning wrapper shows to operators."""

    def __init__(self, verbose: bool = False):
        self.verbose = verbose

    def handle_error(self, error: Exception, context: Optional[str] = None) -> None:
        """
        Print an error with its context, details and suggestions.

        Transport errors print the raw service response instead of details.

        Args:
            error: Exception to report
            context: Operation that was running, e.g. "Secret resolution"
        """
        if isinstance(error, SecretMgmtError):
            message, suggestions = error.message, error.suggestions
        else:
            message, suggestions = self._describe_generic_error(error)

        click.echo(f"ERROR: {message}", err=True)
        if context:
            click.echo(f"Context: {context}", err=True)

        if isinstance(error, TransportError):
            if error.response:
                click.echo("\nResponse from API was:", err=True)
                click.echo(error.response, err=True)
        elif isinstance(error, SecretMgmtError) and error.details:
            click.echo(f"Details: {error.details}", err=True)

        if suggestions:
            click.echo("\nSuggestions:", err=True)
            for suggestion in suggestions:
                click.echo(f"  • {suggestion}", err=True)

        if self.verbose:
            click.echo("\nFull traceback:", err=True)
            traceback.print_exc()

    @staticmethod
    def _describe_generic_error(error: Exception) -> Tuple[str, List[str]]:
        if isinstance(error, FileNotFoundError):
            return f"File not found: {error}", [
                "Run the command from the directory containing 'modules/'",
                "Pass --modules-dir or --keys-config to point at another location",
            ]
        if isinstance(error, PermissionError):
            return f"Permission denied: {error}", ["Check read access to the module manifests"]
        return f"{type(error).__name__}: {error}", []

    def exit_with_error(self, error: Exception, context: Optional[str] = None, exit_code: int = 1) -> None:
        """Report an error and exit with the given code."""
        self.handle_error(error, context)
        sys.exit(exit_code)


def create_error_suggestions(error_type: str) -> List[str]:
    """Return operator hints for a kind of failure, or an empty list."""
    suggestions = {
        "invalid_prefix": [
            "Rename the secret to start with 'secret_' (random token) or 'key_' (AES key)",
        ],
        "duplicate_secret": [
            "Secret names are global, prefix them with the module name",
            "Share the secret through a common encryption key instead of redeclaring it",
        ],
        "unknown_encryption_key": [
            "Add the key to 'encryption_keys' in the encryption key configuration",
            "Check the 'encryption_key' attribute of the module manifests",
        ],
        "rotation_inconsistent": [
            "Inspect the key versions in the KMS console",
            "The new primary version was kept, rerun the rotation to retry disabling",
        ],
        "missing_project": [
            "Pass --project-id or export TF_VAR_project_id",
        ],
    }

    return suggestions.get(error_type, [])


def format_validation_errors(errors: List[str]) -> str:
    """
    Format validation errors for display.

    Args:
        errors: List of validation error messages

    Returns:
        str: Formatted error message
    """
    if not errors:
        return "No validation errors"
    if len(errors) == 1:
        return f"Validation error: {errors[0]}"
    return "Validation errors:\n" + "\n".join(f"  {i}. {error}" for i, error in enumerate(errors, 1))
