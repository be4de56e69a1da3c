"""
Tests package - Test suite for the Vault operator.

Contains:
- unit/: Unit tests for individual components, run against an in-memory
  Kubernetes API and a mocked Vault HTTP transport
"""
