"""Configuration file schemas for secret-mgmt."""

MANIFEST_SCHEMA = {
    "type": "object",
    "properties": {
        "secrets": {
            "type": "array",
            "items": {"type": "string", "minLength": 1},
            "description": "Secret names managed for this module",
        },
        "encryption_key": {
            "type": "string",
            "minLength": 1,
            "description": "KMS key protecting the secrets (defaults to the module name)",
        },
    },
    "required": ["secrets"],
}

KEYS_CONFIG_SCHEMA = {
    "type": "object",
    "properties": {
        "encryption_keys": {
            "type": "array",
            "items": {"type": "string", "minLength": 1},
            "uniqueItems": True,
            "description": "Ordered allow-list of KMS encryption keys",
        },
    },
    "required": ["encryption_keys"],
}
