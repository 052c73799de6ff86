"""
Vault session: owns the master password lifecycle and the in-memory key.

LEGAL NOTICE:
This module handles decrypted secrets. It must only be used for legitimate
personal password management on devices you own or administer.
"""

import enum
import threading
import logging
from dataclasses import replace
from typing import List, Optional

from .crypto import CryptoManager
from .errors import InvalidCredentialError, MalformedInputError, SessionNotReadyError
from .models import Category, CredentialRecord, filter_entries
from .storage import StorageBackend

logger = logging.getLogger(__name__)


class SessionState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    LOCKED = "locked"
    UNLOCKED = "unlocked"


class VaultSession:
    """
    Holds the session key for an unlocked vault and routes every record's
    password field through the cipher on its way to and from storage.

    Transitions:
        UNINITIALIZED --set_master_password--> UNLOCKED
        LOCKED        --unlock------------------> UNLOCKED
        UNLOCKED      --end_session-------------> LOCKED

    All transitions and record operations hold one re-entrant lock, so a
    record operation always sees a single consistent key.
    """

    def __init__(self, storage: StorageBackend, crypto: Optional[CryptoManager] = None):
        self.storage = storage
        self.crypto = crypto or CryptoManager()
        self._lock = threading.RLock()
        self._key: Optional[bytearray] = None
        if storage.load_master_credentials() is None:
            self._state = SessionState.UNINITIALIZED
        else:
            self._state = SessionState.LOCKED

    def __enter__(self) -> 'VaultSession':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.end_session()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_initialized(self) -> bool:
        return self._state is not SessionState.UNINITIALIZED

    def is_unlocked(self) -> bool:
        """Check if the session key is held."""
        return self._state is SessionState.UNLOCKED

    @property
    def session_key(self) -> Optional[bytes]:
        """A copy of the held key, or None while locked."""
        with self._lock:
            return bytes(self._key) if self._key is not None else None

    def _hold_key(self, key: bytes) -> None:
        self._discard_key()
        self._key = bytearray(key)
        self._state = SessionState.UNLOCKED

    def _discard_key(self) -> None:
        if self._key is not None:
            self.crypto.clear_bytes(self._key)
        self._key = None

    def _require_unlocked(self) -> bytes:
        if self._state is not SessionState.UNLOCKED or self._key is None:
            raise SessionNotReadyError(f"vault is {self._state.value}")
        return bytes(self._key)

    # Master password lifecycle

    def set_master_password(self, master_password: str) -> None:
        """
        Create the vault's master credentials and unlock it.

        Args:
            master_password: The new master password

        Raises:
            SessionNotReadyError: If a master password is already set
            ValueError: If the password is empty
        """
        if not master_password:
            raise ValueError("Master password cannot be empty")
        with self._lock:
            if self._state is not SessionState.UNINITIALIZED:
                raise SessionNotReadyError("master password is already set")
            # Another session may have set it since this one was created
            if self.storage.load_master_credentials() is not None:
                self._state = SessionState.LOCKED
                raise SessionNotReadyError("master password is already set")
            salt = self.crypto.generate_salt()
            key, verification_hash = self.crypto.derive_credentials(master_password, salt)
            # A storage failure propagates here and leaves the vault uninitialized
            self.storage.store_master_credentials(
                self.crypto.encode_for_storage(verification_hash),
                self.crypto.encode_for_storage(salt),
            )
            self._hold_key(key)
        logger.info("Master password set; vault unlocked")

    def unlock(self, master_password: str) -> None:
        """
        Unlock the vault with the master password.

        Raises:
            SessionNotReadyError: If no master password has been set
            InvalidCredentialError: If the password does not match
        """
        with self._lock:
            stored = self.storage.load_master_credentials()
            if stored is None:
                raise SessionNotReadyError("no master password has been set")
            stored_hash, stored_salt = stored
            salt = self.crypto.decode_from_storage(stored_salt)
            expected = self.crypto.decode_from_storage(stored_hash)

            key, verification_hash = self.crypto.derive_credentials(master_password, salt)
            if not self.crypto.secure_compare(verification_hash, expected):
                logger.warning("Unlock rejected: master password mismatch")
                raise InvalidCredentialError("incorrect master password")
            self._hold_key(key)
        logger.info("Vault unlocked")

    def end_session(self) -> None:
        """Discard the session key. Safe to call when already locked."""
        with self._lock:
            was_unlocked = self._state is SessionState.UNLOCKED
            self._discard_key()
            if self._state is SessionState.UNLOCKED:
                self._state = SessionState.LOCKED
        if was_unlocked:
            logger.info("Vault locked")

    lock = end_session

    # Password field

    def put_password(self, plaintext: str) -> str:
        """Encrypt a password for storage."""
        with self._lock:
            key = self._require_unlocked()
            return self.crypto.encrypt(plaintext.encode('utf-8'), key)

    def get_password(self, encoded: str) -> str:
        """
        Decrypt a stored password.

        Raises:
            AuthenticationFailureError: If the record was tampered with or the key is wrong
            MalformedInputError: If the stored value is not a valid ciphertext frame
        """
        with self._lock:
            key = self._require_unlocked()
            plaintext = self.crypto.decrypt(encoded, key)
        try:
            return plaintext.decode('utf-8')
        except UnicodeDecodeError as e:
            raise MalformedInputError("decrypted password is not valid UTF-8") from e

    # Entries

    @staticmethod
    def _validate(entry: CredentialRecord) -> None:
        if not entry.title or not entry.password:
            raise ValueError("Title and password cannot be empty")

    def add_entry(self, entry: CredentialRecord) -> CredentialRecord:
        """Encrypt the entry's password and store it. Returns the stored entry."""
        with self._lock:
            self._require_unlocked()
            self._validate(entry)
            sealed = replace(entry, password=self.put_password(entry.password))
            stored = self.storage.add_entry(sealed)
        return replace(stored, password=entry.password)

    def update_entry(self, entry: CredentialRecord) -> CredentialRecord:
        """Re-encrypt and store an existing entry."""
        with self._lock:
            self._require_unlocked()
            self._validate(entry)
            sealed = replace(entry, password=self.put_password(entry.password))
            stored = self.storage.update_entry(sealed)
        return replace(stored, password=entry.password)

    def delete_entry(self, entry_id: int) -> bool:
        with self._lock:
            self._require_unlocked()
            return self.storage.delete_entry(entry_id)

    def list_entries(self, search: str = "") -> List[CredentialRecord]:
        """Entries ordered by title, without their passwords."""
        with self._lock:
            self._require_unlocked()
            entries = self.storage.get_entries()
        return [replace(e, password=None) for e in filter_entries(entries, search)]

    def get_entry(self, entry_id: int) -> CredentialRecord:
        """Fetch one entry with its password decrypted."""
        with self._lock:
            self._require_unlocked()
            entry = self.storage.get_entry(entry_id)
            return replace(entry, password=self.get_password(entry.password))

    def reveal_password(self, entry_id: int) -> str:
        with self._lock:
            self._require_unlocked()
            return self.get_password(self.storage.load_record_password(entry_id))

    def set_entry_password(self, entry_id: int, plaintext: str) -> None:
        """Replace only the password of an existing entry."""
        with self._lock:
            self._require_unlocked()
            if not plaintext:
                raise ValueError("Password cannot be empty")
            self.storage.store_record_password(entry_id, self.put_password(plaintext))

    def categories(self) -> List[Category]:
        with self._lock:
            self._require_unlocked()
            return self.storage.get_categories()

    def add_category(self, name: str) -> Category:
        if not name:
            raise ValueError("Category name cannot be empty")
        with self._lock:
            self._require_unlocked()
            return self.storage.add_category(name)
