"""Secret value provisioning for secret-mgmt."""

import base64
import logging
import secrets
from typing import Iterable, Mapping, Optional

from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ..models import KEY_PREFIX, SECRET_PREFIX, SecretValueMap
from ..utils.errors import ValidationError

logger = logging.getLogger(__name__)

AES_KEY_BITS = 256
TOKEN_BYTES = 16  # 32 hex characters


class SecretGenerator:
    """Generates values for secrets that have none, based on the name prefix."""

    def __init__(self, key_bits: int = AES_KEY_BITS, token_bytes: int = TOKEN_BYTES):
        """
        Initialize secret generator.

        Args:
            key_bits: AES key size for `key_*` secrets
            token_bytes: Random bytes for `secret_*` tokens
        """
        self.key_bits = key_bits
        self.token_bytes = token_bytes

    def generate_key(self) -> str:
        """
        Generate AES key material.

        Returns:
            str: Base64 encoded key
        """
        key = AESGCM.generate_key(bit_length=self.key_bits)
        return base64.b64encode(key).decode("ascii")

    def generate_token(self) -> str:
        """
        Generate an opaque random token.

        Returns:
            str: Lowercase hex token
        """
        return secrets.token_hex(self.token_bytes)

    def generate(self, name: str) -> str:
        """Generate a value for a secret according to its prefix."""
        if name.startswith(KEY_PREFIX):
            return self.generate_key()
        if name.startswith(SECRET_PREFIX):
            return self.generate_token()
        raise ValidationError(
            f"Can not generate a value for secret '{name}'",
            details="Secret name must start with 'secret_' or 'key_'",
        )

    def populate(
        self, names: Iterable[str], existing: Mapping[str, Optional[str]]
    ) -> SecretValueMap:
        """
        Fill in values for the given secrets.

        Non-empty existing values are kept; every other secret gets a freshly
        generated value. Nothing is written back to `existing`.

        Args:
            names: Secret names to populate
            existing: Known values, None or "" meaning unset

        Returns:
            SecretValueMap: Value for every requested name
        """
        populated = {}
        generated = 0

        for name in sorted(names):
            value = existing.get(name)
            if not value:
                value = self.generate(name)
                generated += 1
            populated[name] = value

        logger.debug(f"Generated {generated} of {len(populated)} secret values")
        return populated
