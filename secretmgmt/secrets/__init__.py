"""Secret lifecycle management for deployment pipelines."""

from .collector import ManifestCollector
from .context import ResolutionContext
from .generator import SecretGenerator
from .manager import SecretManager
from .rotation import KeyRotationManager

__all__ = [
    "ManifestCollector",
    "ResolutionContext",
    "SecretGenerator",
    "SecretManager",
    "KeyRotationManager",
]
