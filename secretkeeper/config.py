"""
Configuration constants for the SecretKeeper vault.
"""

# Application Metadata
APP_VERSION = "1.0.0"  # Use: Current version of the package. Type: str. Range: Semantic versioning string (e.g., "1.0.0")
APP_NAME = "SecretKeeper"  # Use: Name shown by the console front end. Type: str. Range: Any valid string.
APP_DESCRIPTION = "Local password vault with per-record AES-256-GCM encryption"  # Use: Description for the command-line help. Type: str. Range: Any valid string.

# Security Settings
SALT_SIZE = 32  # Use: Size of the random salt in bytes, generated once per vault. Type: int. Range: 32 bytes (256 bits).
KEY_SIZE = 32  # Use: Size of the derived session key in bytes. Corresponds to AES-256. Type: int. Range: 32 bytes.
NONCE_SIZE = 12  # Use: Size of the per-encryption nonce in bytes for AES-GCM. Type: int. Range: 12 bytes (96 bits), the recommended size for GCM.
TAG_SIZE = 16  # Use: Size of the authentication tag in bytes for AES-GCM. Type: int. Range: 16 bytes (128 bits).
MIN_CIPHERTEXT_SIZE = NONCE_SIZE + TAG_SIZE  # Use: Smallest decoded ciphertext frame accepted by decrypt (empty plaintext). Type: int. Range: Derived value.
PBKDF2_ITERATIONS = 100000  # Use: Number of PBKDF2-HMAC-SHA256 iterations for key and verification hash derivation. Type: int. Range: Fixed; changing it makes existing vaults unreadable.
VERIFICATION_DOMAIN_SEPARATION = True  # Use: Derive the stored verification hash from the key via HKDF instead of storing the PBKDF2 output itself. Type: bool. Range: True (default) or False for vaults created by the legacy program.
VERIFICATION_HKDF_INFO = b"secretkeeper/verification-hash"  # Use: HKDF context label separating the verification hash from the encryption key. Type: bytes. Range: Any constant byte string.
MASTER_ROW_ID = 1  # Use: Primary key of the single row holding the master verification hash and salt. Type: int. Range: 1.

# Entry Settings
SEARCH_FIELDS = ("title", "username", "url", "category")  # Use: Plaintext entry fields matched by the case-insensitive search. Type: tuple[str]. Range: Names of CredentialRecord fields.
TABLE_PASSWORD_HIDDEN_TEXT = "••••••••"  # Use: Placeholder printed in entry listings instead of the password. Type: str. Range: Any string.
MAX_UNLOCK_ATTEMPTS = 3  # Use: Number of master password prompts before the console front end gives up. Type: int. Range: Positive integer (e.g., 1-5).

# File and Directory Names
CONFIG_DIR_NAME = ".secretkeeper"  # Use: Name of the hidden directory within the user's home directory where the vault database lives. Type: str. Range: Any valid directory name.
DEFAULT_VAULT_FILE = "vault.db"  # Use: Default filename for the SQLite vault database. Type: str. Range: Any valid filename.
HOME_ENV_VAR = "SECRETKEEPER_HOME"  # Use: Environment variable overriding the data directory. Type: str. Range: Any valid environment variable name.

# Logging
LOG_FORMAT = '%(asctime)s - %(levelname)s - %(name)s - %(message)s'  # Use: Format string for the console front end's log output. Type: str. Range: Any logging format string.
