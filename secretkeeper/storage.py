"""
Storage management for the password vault.

LEGAL NOTICE:
This module handles secure storage of passwords. Password fields arrive here
already encrypted and are never transmitted. Use only on devices you own or
administer.
"""

import os
import sqlite3
import datetime
import threading
import logging
from contextlib import contextmanager
from typing import Iterator, List, Optional, Protocol, Tuple

from .errors import EntryNotFoundError, StorageError
from .models import Category, CredentialRecord
from .utils import set_owner_only_permissions
from . import config

logger = logging.getLogger(__name__)


class StorageBackend(Protocol):
    """What the vault session needs from a store of opaque encrypted blobs."""

    def store_master_credentials(self, password_hash: str, salt: str) -> None: ...

    def load_master_credentials(self) -> Optional[Tuple[str, str]]: ...

    def store_record_password(self, record_id: int, encoded_ciphertext: str) -> None: ...

    def load_record_password(self, record_id: int) -> str: ...

    def add_entry(self, entry: CredentialRecord) -> CredentialRecord: ...

    def update_entry(self, entry: CredentialRecord) -> CredentialRecord: ...

    def get_entry(self, record_id: int) -> CredentialRecord: ...

    def get_entries(self) -> List[CredentialRecord]: ...

    def delete_entry(self, record_id: int) -> bool: ...

    def get_categories(self) -> List[Category]: ...

    def add_category(self, name: str) -> Category: ...


_SCHEMA = (
    """CREATE TABLE IF NOT EXISTS master_password (
        id INTEGER PRIMARY KEY,
        password_hash TEXT NOT NULL,
        salt TEXT NOT NULL
    )""",
    """CREATE TABLE IF NOT EXISTS categories (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT UNIQUE NOT NULL
    )""",
    """CREATE TABLE IF NOT EXISTS password_entries (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        title TEXT NOT NULL,
        username TEXT,
        password TEXT NOT NULL,
        url TEXT,
        notes TEXT,
        category TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )""",
)

_ENTRY_COLUMNS = "id, title, username, password, url, notes, category, created_at, updated_at"


def _row_to_entry(row: sqlite3.Row) -> CredentialRecord:
    return CredentialRecord(
        id=row["id"],
        title=row["title"],
        username=row["username"] or "",
        password=row["password"],
        url=row["url"] or "",
        notes=row["notes"] or "",
        category=row["category"] or "",
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class VaultStorage:
    """
    SQLite store for the master verification row, entries and categories.

    The password column holds encoded ciphertext only; this class never sees
    a key or a plaintext password.
    """

    def __init__(self, filepath: str):
        """
        Initialize storage manager.
        Args:
            filepath: Path to the SQLite database, or ":memory:"
        """
        self.filepath = filepath
        self._lock = threading.Lock()
        self._conn: Optional[sqlite3.Connection] = None

    def open(self) -> 'VaultStorage':
        """Open the database, creating the file and tables on first use."""
        in_memory = self.filepath == ":memory:"
        is_new = in_memory or not os.path.exists(self.filepath)
        try:
            conn = sqlite3.connect(self.filepath, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            with conn:
                for statement in _SCHEMA:
                    conn.execute(statement)
        except sqlite3.Error as e:
            logger.error("Failed to open vault database %s: %s", self.filepath, e)
            raise StorageError(f"cannot open vault database {self.filepath}: {e}") from e

        if is_new and not in_memory:
            try:
                hardened = set_owner_only_permissions(self.filepath)
            except OSError as e:
                conn.close()
                logger.error("Failed to restrict permissions on vault %s: %s", self.filepath, e)
                raise StorageError(f"cannot restrict permissions on {self.filepath}: {e}") from e
            if not hardened:
                logger.warning("Failed to set secure file permissions for vault: %s", self.filepath)
            logger.info("Created vault database %s", self.filepath)
        self._conn = conn
        return self

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def __enter__(self) -> 'VaultStorage':
        if self._conn is None:
            self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Serialize access and turn driver errors into StorageError."""
        with self._lock:
            if self._conn is None:
                raise StorageError("vault database is not open")
            try:
                with self._conn:
                    yield self._conn
            except sqlite3.Error as e:
                logger.error("Vault database error: %s", e)
                raise StorageError(str(e)) from e

    @staticmethod
    def _now() -> str:
        return datetime.datetime.now().isoformat()

    # Master credentials

    def store_master_credentials(self, password_hash: str, salt: str) -> None:
        with self._transaction() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO master_password (id, password_hash, salt) VALUES (?, ?, ?)",
                (config.MASTER_ROW_ID, password_hash, salt),
            )

    def load_master_credentials(self) -> Optional[Tuple[str, str]]:
        """Return (hash, salt) as stored text, or None for a new vault."""
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT password_hash, salt FROM master_password WHERE id = ?",
                (config.MASTER_ROW_ID,),
            ).fetchone()
        if row is None:
            return None
        return row["password_hash"], row["salt"]

    def has_master_credentials(self) -> bool:
        return self.load_master_credentials() is not None

    # Record password field

    def store_record_password(self, record_id: int, encoded_ciphertext: str) -> None:
        with self._transaction() as conn:
            cursor = conn.execute(
                "UPDATE password_entries SET password = ?, updated_at = ? WHERE id = ?",
                (encoded_ciphertext, self._now(), record_id),
            )
            if cursor.rowcount == 0:
                raise EntryNotFoundError(f"no entry with id {record_id}")

    def load_record_password(self, record_id: int) -> str:
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT password FROM password_entries WHERE id = ?", (record_id,)
            ).fetchone()
        if row is None:
            raise EntryNotFoundError(f"no entry with id {record_id}")
        return row["password"]

    # Entries

    def add_entry(self, entry: CredentialRecord) -> CredentialRecord:
        """Insert an entry whose password field is already encoded ciphertext."""
        now = self._now()
        with self._transaction() as conn:
            cursor = conn.execute(
                "INSERT INTO password_entries "
                "(title, username, password, url, notes, category, created_at, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (entry.title, entry.username, entry.password, entry.url,
                 entry.notes, entry.category, now, now),
            )
            record_id = cursor.lastrowid
        logger.debug("Added entry id=%s", record_id)
        return self.get_entry(record_id)

    def update_entry(self, entry: CredentialRecord) -> CredentialRecord:
        with self._transaction() as conn:
            cursor = conn.execute(
                "UPDATE password_entries "
                "SET title = ?, username = ?, password = ?, url = ?, notes = ?, category = ?, updated_at = ? "
                "WHERE id = ?",
                (entry.title, entry.username, entry.password, entry.url,
                 entry.notes, entry.category, self._now(), entry.id),
            )
            if cursor.rowcount == 0:
                raise EntryNotFoundError(f"no entry with id {entry.id}")
        logger.debug("Updated entry id=%s", entry.id)
        return self.get_entry(entry.id)

    def get_entry(self, record_id: int) -> CredentialRecord:
        with self._transaction() as conn:
            row = conn.execute(
                f"SELECT {_ENTRY_COLUMNS} FROM password_entries WHERE id = ?", (record_id,)
            ).fetchone()
        if row is None:
            raise EntryNotFoundError(f"no entry with id {record_id}")
        return _row_to_entry(row)

    def get_entries(self) -> List[CredentialRecord]:
        """All entries ordered by title, password fields still encoded."""
        with self._transaction() as conn:
            rows = conn.execute(
                f"SELECT {_ENTRY_COLUMNS} FROM password_entries ORDER BY title"
            ).fetchall()
        return [_row_to_entry(row) for row in rows]

    def delete_entry(self, record_id: int) -> bool:
        with self._transaction() as conn:
            cursor = conn.execute("DELETE FROM password_entries WHERE id = ?", (record_id,))
        deleted = cursor.rowcount > 0
        if deleted:
            logger.debug("Deleted entry id=%s", record_id)
        return deleted

    # Categories

    def get_categories(self) -> List[Category]:
        with self._transaction() as conn:
            rows = conn.execute("SELECT id, name FROM categories ORDER BY name").fetchall()
        return [Category(id=row["id"], name=row["name"]) for row in rows]

    def add_category(self, name: str) -> Category:
        with self._transaction() as conn:
            cursor = conn.execute("INSERT INTO categories (name) VALUES (?)", (name,))
        return Category(id=cursor.lastrowid, name=name)
