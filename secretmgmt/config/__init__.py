"""Configuration management for secret-mgmt."""

from .manager import ConfigManager, Settings
from .schemas import KEYS_CONFIG_SCHEMA, MANIFEST_SCHEMA

__all__ = ["ConfigManager", "Settings", "KEYS_CONFIG_SCHEMA", "MANIFEST_SCHEMA"]
