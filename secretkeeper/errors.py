"""
Exception hierarchy for the vault.

Callers are expected to map InvalidCredentialError and DecryptionError to a
corrective prompt, and EntropyUnavailableError or an unexpected StorageError
to a fatal abort.
"""


class VaultError(Exception):
    """Base class for every error raised by the vault."""


class EntropyUnavailableError(VaultError):
    """The operating system could not supply secure random bytes."""


class InvalidCredentialError(VaultError):
    """The master password did not match the stored verification hash."""


class DecryptionError(VaultError):
    """A stored ciphertext could not be decrypted."""


class AuthenticationFailureError(DecryptionError):
    """The authentication tag did not verify (tampered data or wrong key)."""


class MalformedInputError(DecryptionError):
    """The encoded ciphertext is not valid base64 or is shorter than one frame."""


class SessionNotReadyError(VaultError):
    """The operation is not allowed in the session's current state."""


class StorageError(VaultError):
    """The storage backend failed."""


class EntryNotFoundError(StorageError):
    """No entry exists with the requested id."""
