"""Utilities for secret-mgmt."""

from .logging import setup_logging

__all__ = ["setup_logging"]
