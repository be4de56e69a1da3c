"""
Handlers package - kopf event handlers for Vault resources.

- vault.py: create/update/resume/delete of Vault custom resources
"""
