"""
Constants used throughout the Vault operator.

This module defines all constant values used by the operator including:
- Custom resource coordinates
- Resource labels and annotation suffixes
- Kubernetes Secret types
- Default configuration values
"""

import logging
import os

# Custom resource coordinates for the Vault CRD
VAULT_GROUP = "koudingspawn.de"
VAULT_VERSION = "v1"
VAULT_PLURAL = "vaults"
VAULT_KIND = "Vault"
RESOURCE_TYPE = "vault"

# Label constants for resource identification and management
OPERATOR_LABEL_KEY = "app.kubernetes.io/managed-by"
OPERATOR_LABEL_VALUE = "vault-operator"

# Annotation suffixes, prefixed with the configured annotation domain
LAST_UPDATE_ANNOTATION = "/last-update"
HASH_ANNOTATION = "/hash"
DEFAULT_ANNOTATION_DOMAIN = "vault.koudingspawn.de"

# Kubernetes Secret types
SECRET_TYPE_OPAQUE = "Opaque"
SECRET_TYPE_TLS = "kubernetes.io/tls"
SECRET_TYPE_DOCKERCONFIGJSON = "kubernetes.io/dockerconfigjson"

# Vault API
VAULT_TOKEN_HEADER = "X-Vault-Token"
DEFAULT_VAULT_URL = "http://localhost:8200/v1/"
KV2_DATA_SEGMENT = "data"

# Timeout constants (in seconds)
DEFAULT_VAULT_TIMEOUT = 10.0
DEFAULT_REFRESH_INTERVAL = 60
DEFAULT_REFRESH_INITIAL_DELAY = 10

# Retry configuration
DEFAULT_WRITE_CONFLICT_RETRIES = 3
DEFAULT_CIRCUIT_BREAKER_FAIL_MAX = 5
DEFAULT_CIRCUIT_BREAKER_TIMEOUT = 30

# Delay before kopf retries an event whose backend read failed
BACKEND_RETRY_DELAY = int(os.getenv("VAULT_BACKEND_RETRY_DELAY_SECONDS", "60"))

# Level used for "handler invoked" log lines
HANDLER_ENTRY_LOG_LEVEL = getattr(
    logging, os.getenv("HANDLER_ENTRY_LOG_LEVEL", "INFO").upper(), logging.INFO
)

# Error message templates
ERROR_SECRET_NOT_ACCESSIBLE = "Secret at path '{}' is not accessible: {}"
ERROR_UNRECOGNIZED_ENGINE = "Engine type '{}' is not supported. Supported types: {}"
ERROR_WRITE_CONFLICT = "Secret '{}' in namespace '{}' kept changing after {} attempts"
