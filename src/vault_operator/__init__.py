"""
Vault Operator - A Kubernetes operator that materializes Vault secrets.

This operator keeps Kubernetes Secrets in sync with secrets stored in Vault:
- One Vault custom resource per Secret, named after it
- Key/value (v1 and v2), certificate and registry credential engines
- Change detection through a content fingerprint stored on the Secret
"""

__version__ = "0.1.0"
