"""
SecretKeeper Password Vault
Copyright (c) 2025

LEGAL NOTICE AND THREAT MODEL:
This tool is for personal use only. Passwords are encrypted individually with
AES-256-GCM under a key derived from the master password; neither the master
password nor the key is ever written to disk. Once the vault is unlocked the
running process is trusted: memory inspection and local code execution are
outside the threat model.
"""

from .config import APP_VERSION as __version__
from .crypto import CryptoManager
from .errors import (
    AuthenticationFailureError,
    DecryptionError,
    EntropyUnavailableError,
    EntryNotFoundError,
    InvalidCredentialError,
    MalformedInputError,
    SessionNotReadyError,
    StorageError,
    VaultError,
)
from .models import Category, CredentialRecord, filter_entries
from .session import SessionState, VaultSession
from .storage import StorageBackend, VaultStorage

__all__ = [
    "CryptoManager",
    "VaultSession",
    "SessionState",
    "VaultStorage",
    "StorageBackend",
    "CredentialRecord",
    "Category",
    "filter_entries",
    "VaultError",
    "EntropyUnavailableError",
    "InvalidCredentialError",
    "DecryptionError",
    "AuthenticationFailureError",
    "MalformedInputError",
    "SessionNotReadyError",
    "StorageError",
    "EntryNotFoundError",
]
