"""
Cryptographic operations for the password vault.

LEGAL NOTICE:
This module handles encryption/decryption of sensitive data. It must only be used
for legitimate personal password management on devices you own or administer.
"""

import os
import base64
import binascii
import hmac
import logging
from typing import Tuple

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from cryptography.exceptions import InvalidTag

from . import config
from .errors import (
    AuthenticationFailureError,
    EntropyUnavailableError,
    MalformedInputError,
)

logger = logging.getLogger(__name__)


class CryptoManager:
    """Handles all cryptographic operations for the password vault."""

    # Constants
    SALT_SIZE = config.SALT_SIZE    # 256 bits
    KEY_SIZE = config.KEY_SIZE      # 256 bits for AES-256
    NONCE_SIZE = config.NONCE_SIZE  # 96 bits for GCM
    TAG_SIZE = config.TAG_SIZE      # 128 bits

    # KDF parameters
    PBKDF2_ITERATIONS = config.PBKDF2_ITERATIONS

    def __init__(self, domain_separation: bool = config.VERIFICATION_DOMAIN_SEPARATION):
        """
        Initialize the crypto manager.

        Args:
            domain_separation: Derive the verification hash from the key with
                HKDF instead of reusing the raw PBKDF2 output.
        """
        self.domain_separation = domain_separation

    def _random_bytes(self, size: int) -> bytes:
        try:
            return os.urandom(size)
        except (OSError, NotImplementedError) as e:
            logger.critical("Secure random source unavailable: %s", e)
            raise EntropyUnavailableError("secure random source unavailable") from e

    def generate_salt(self) -> bytes:
        """Generate a cryptographically secure random salt."""
        return self._random_bytes(self.SALT_SIZE)

    def derive_key(self, password: str, salt: bytes) -> bytes:
        """
        Derive an encryption key from a password using PBKDF2-HMAC-SHA256.

        Args:
            password: The master password
            salt: Random salt for key derivation

        Returns:
            32-byte encryption key
        """
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=self.KEY_SIZE,
            salt=salt,
            iterations=self.PBKDF2_ITERATIONS,
        )
        return kdf.derive(password.encode('utf-8'))

    def verification_hash_from_key(self, key: bytes) -> bytes:
        """Turn derived key material into the value stored for verification."""
        if not self.domain_separation:
            return bytes(key)
        hkdf = HKDF(
            algorithm=hashes.SHA256(),
            length=self.KEY_SIZE,
            salt=None,  # PBKDF2 already consumed the vault salt
            info=config.VERIFICATION_HKDF_INFO,
        )
        return hkdf.derive(bytes(key))

    def derive_verification_hash(self, password: str, salt: bytes) -> bytes:
        """
        Derive the master password verification hash.

        Uses the same PBKDF2 pass as derive_key, so the iteration cost is the
        same for verification and for key derivation.
        """
        return self.verification_hash_from_key(self.derive_key(password, salt))

    def derive_credentials(self, password: str, salt: bytes) -> Tuple[bytes, bytes]:
        """
        Derive both the encryption key and the verification hash in one pass.

        Returns:
            Tuple of (key, verification_hash)
        """
        key = self.derive_key(password, salt)
        return key, self.verification_hash_from_key(key)

    def _check_key(self, key: bytes) -> None:
        if len(key) != self.KEY_SIZE:
            raise ValueError(f"Key must be {self.KEY_SIZE} bytes, got {len(key)}")

    def encrypt(self, plaintext: bytes, key: bytes) -> str:
        """
        Encrypt data using AES-256-GCM.

        A fresh random nonce is drawn on every call, so encrypting the same
        plaintext twice never produces the same output.

        Args:
            plaintext: Data to encrypt
            key: 32-byte encryption key

        Returns:
            base64 text of nonce || ciphertext || tag
        """
        self._check_key(key)
        nonce = self._random_bytes(self.NONCE_SIZE)
        sealed = AESGCM(bytes(key)).encrypt(nonce, bytes(plaintext), None)
        return self.encode_for_storage(nonce + sealed)

    def decrypt(self, encoded: str, key: bytes) -> bytes:
        """
        Decrypt data produced by encrypt().

        Args:
            encoded: base64 text of nonce || ciphertext || tag
            key: 32-byte encryption key

        Returns:
            Decrypted plaintext

        Raises:
            MalformedInputError: If the input is not base64 or is too short
            AuthenticationFailureError: If authentication fails
        """
        self._check_key(key)
        data = self.decode_from_storage(encoded)
        if len(data) < config.MIN_CIPHERTEXT_SIZE:
            raise MalformedInputError(
                f"ciphertext too short: {len(data)} bytes "
                f"(minimum {config.MIN_CIPHERTEXT_SIZE})"
            )
        nonce, sealed = data[:self.NONCE_SIZE], data[self.NONCE_SIZE:]
        try:
            return AESGCM(bytes(key)).decrypt(nonce, sealed, None)
        except InvalidTag as e:
            raise AuthenticationFailureError("ciphertext failed authentication") from e

    @staticmethod
    def encode_for_storage(data: bytes) -> str:
        """Encode binary data as base64 text for a TEXT column."""
        return base64.b64encode(data).decode('ascii')

    @staticmethod
    def decode_from_storage(data: str) -> bytes:
        """Decode base64 text produced by encode_for_storage."""
        try:
            if isinstance(data, str):
                data = data.encode('ascii')
            return base64.b64decode(data, validate=True)
        except (binascii.Error, UnicodeEncodeError, TypeError) as e:
            raise MalformedInputError("value is not valid base64") from e

    def secure_compare(self, a: bytes, b: bytes) -> bool:
        """Constant-time comparison to prevent timing attacks."""
        return hmac.compare_digest(a, b)

    def clear_bytes(self, data: bytearray) -> None:
        """Overwrite a mutable buffer holding key material."""
        if isinstance(data, bytearray):
            for i in range(len(data)):
                data[i] = 0
