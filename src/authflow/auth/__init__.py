"""Credential handling for authflow.

This package owns everything the pipeline needs to recover from an
expired session:

- :class:`CredentialStore` -- abstract key-value store of the session's
  tokens, with :class:`MemoryCredentialStore` and
  :class:`FileCredentialStore` implementations.
- :class:`TokenService` -- source of fresh tokens, with the HTTP-backed
  :class:`HTTPTokenService`.
- :class:`RetryOrchestrator` -- picks and runs the refresh sequence for an
  endpoint's auth mode after a ``401``.
"""

from authflow.auth.credential_store import (
    CredentialStore,
    FileCredentialStore,
    MemoryCredentialStore,
)
from authflow.auth.orchestrator import RetryOrchestrator
from authflow.auth.tokens import HTTPTokenService, TokenService

__all__ = [
    "CredentialStore",
    "FileCredentialStore",
    "HTTPTokenService",
    "MemoryCredentialStore",
    "RetryOrchestrator",
    "TokenService",
]
