"""secret-mgmt: KMS-encrypted deployment secrets for infrastructure pipelines."""

__version__ = "0.1.0"
__author__ = "secret-mgmt maintainers"
