"""
Shared pytest fixtures for the SecretKeeper test suite.

Every vault lives under pytest's tmp_path, and SECRETKEEPER_HOME is pointed
there too so no test touches the real ~/.secretkeeper directory.
"""

import os
from typing import Dict, List, Optional, Tuple

import pytest

from secretkeeper.crypto import CryptoManager
from secretkeeper.errors import EntryNotFoundError, StorageError
from secretkeeper.models import Category, CredentialRecord
from secretkeeper.session import VaultSession
from secretkeeper.storage import VaultStorage

MASTER_PASSWORD = "Tr0ub4dor&3"


class MemoryStorage:
    """In-memory storage backend that can be told to fail on writes."""

    def __init__(self):
        self.master: Optional[Tuple[str, str]] = None
        self.entries: Dict[int, CredentialRecord] = {}
        self.category_names: List[str] = []
        self.fail_writes = False
        self._next_id = 1

    def _check(self):
        if self.fail_writes:
            raise StorageError("disk full")

    def store_master_credentials(self, password_hash, salt):
        self._check()
        self.master = (password_hash, salt)

    def load_master_credentials(self):
        return self.master

    def store_record_password(self, record_id, encoded_ciphertext):
        self._check()
        if record_id not in self.entries:
            raise EntryNotFoundError(f"no entry with id {record_id}")
        self.entries[record_id].password = encoded_ciphertext

    def load_record_password(self, record_id):
        if record_id not in self.entries:
            raise EntryNotFoundError(f"no entry with id {record_id}")
        return self.entries[record_id].password

    def add_entry(self, entry):
        self._check()
        stored = CredentialRecord.from_dict({**entry.to_dict(), "id": self._next_id})
        self.entries[self._next_id] = stored
        self._next_id += 1
        return CredentialRecord.from_dict(stored.to_dict())

    def update_entry(self, entry):
        self._check()
        if entry.id not in self.entries:
            raise EntryNotFoundError(f"no entry with id {entry.id}")
        self.entries[entry.id] = CredentialRecord.from_dict(entry.to_dict())
        return CredentialRecord.from_dict(entry.to_dict())

    def get_entry(self, record_id):
        if record_id not in self.entries:
            raise EntryNotFoundError(f"no entry with id {record_id}")
        return CredentialRecord.from_dict(self.entries[record_id].to_dict())

    def get_entries(self):
        return sorted(
            (CredentialRecord.from_dict(e.to_dict()) for e in self.entries.values()),
            key=lambda e: e.title,
        )

    def delete_entry(self, record_id):
        return self.entries.pop(record_id, None) is not None

    def get_categories(self):
        return [Category(id=i, name=n) for i, n in enumerate(sorted(self.category_names), 1)]

    def add_category(self, name):
        self._check()
        self.category_names.append(name)
        return Category(id=len(self.category_names), name=name)


@pytest.fixture(autouse=True)
def _isolate_home(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRETKEEPER_HOME", str(tmp_path / "home"))


@pytest.fixture
def crypto():
    return CryptoManager()


@pytest.fixture
def key():
    return os.urandom(32)


@pytest.fixture
def vault_path(tmp_path):
    return str(tmp_path / "vault.db")


@pytest.fixture
def storage(vault_path):
    store = VaultStorage(vault_path).open()
    yield store
    store.close()


@pytest.fixture
def memory_storage():
    return MemoryStorage()


@pytest.fixture
def session(storage):
    return VaultSession(storage)


@pytest.fixture
def unlocked_session(session):
    session.set_master_password(MASTER_PASSWORD)
    yield session
    session.end_session()
