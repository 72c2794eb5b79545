"""Resolution context shared by the secret lifecycle stages of one run."""

import os
from typing import Dict, Iterable, List, Mapping, MutableMapping, Optional

ENV_PREFIX = "TF_VAR_"

# Terraform's GCS backend reads its customer-supplied key from this variable
# instead of from a TF_VAR_ input.
TFSTATE_KEY_SECRET = "key_tfstate_encryption_key"
TFSTATE_KEY_VARIABLE = "GOOGLE_ENCRYPTION_KEY"


class ResolutionContext:
    """
    Holds the secret name -> value sink for a single run.

    The collector seeds empty placeholders, the provisioner fills gaps and
    the fetch path overwrites with decrypted values.
    """

    def __init__(
        self,
        values: Optional[Mapping[str, str]] = None,
        keyring: str = "keyring",
        encryption_keys: Optional[Iterable[str]] = None,
    ):
        self.values: Dict[str, str] = dict(values or {})
        self.keyring = keyring
        self.encryption_keys: List[str] = list(encryption_keys or [])

    @classmethod
    def from_environ(cls, environ: Optional[Mapping[str, str]] = None, **kwargs) -> "ResolutionContext":
        """
        Seed a context with caller-supplied values from `TF_VAR_*` variables.

        Args:
            environ: Environment mapping (defaults to os.environ)
            **kwargs: Passed through to the constructor

        Returns:
            ResolutionContext: New context
        """
        environ = os.environ if environ is None else environ
        values = {
            name[len(ENV_PREFIX):]: value
            for name, value in environ.items()
            if name.startswith(ENV_PREFIX) and name[len(ENV_PREFIX):].startswith(("secret_", "key_"))
        }
        return cls(values=values, **kwargs)

    def register(self, name: str) -> None:
        """Add an unset placeholder for a secret unless a value is already known."""
        self.values.setdefault(name, "")

    def get(self, name: str) -> Optional[str]:
        return self.values.get(name)

    def has_value(self, name: str) -> bool:
        return bool(self.values.get(name))

    def set(self, name: str, value: str) -> None:
        self.values[name] = value

    def update(self, values: Mapping[str, str]) -> None:
        self.values.update(values)

    def snapshot(self, names: Iterable[str]) -> Dict[str, Optional[str]]:
        """Current values for the given names, None where unknown."""
        return {name: self.values.get(name) for name in names}

    def encryption_keys_variable(self) -> str:
        """Render the configured keys the way Terraform list variables expect them."""
        quoted = ", ".join(f'"{key}"' for key in self.encryption_keys)
        return f"[ {quoted} ]"

    def export_variables(self) -> Dict[str, str]:
        """
        Build the environment variables consumed by the provisioning tool.

        Returns:
            Dict[str, str]: Variable name -> value
        """
        variables = {f"{ENV_PREFIX}{name}": value for name, value in sorted(self.values.items())}
        variables[f"{ENV_PREFIX}keyring_name"] = self.keyring
        variables[f"{ENV_PREFIX}encryption_keys"] = self.encryption_keys_variable()

        # TODO: drop once the Terraform GCS backend accepts the key as a TF_VAR input
        if TFSTATE_KEY_SECRET in self.values:
            variables[TFSTATE_KEY_VARIABLE] = self.values[TFSTATE_KEY_SECRET]

        return variables

    def apply_to_environ(self, environ: Optional[MutableMapping[str, str]] = None) -> None:
        """Write the exported variables into an environment mapping."""
        environ = os.environ if environ is None else environ
        environ.update(self.export_variables())
