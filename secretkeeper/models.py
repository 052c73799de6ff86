"""
Data classes exchanged between the vault session, storage and front end.
"""

from dataclasses import dataclass, asdict, field
from typing import Any, Dict, Iterable, List, Optional

from . import config


@dataclass
class CredentialRecord:
    """Represents a single password entry."""
    title: str
    password: Optional[str] = None
    username: str = ""
    url: str = ""
    notes: str = ""
    category: str = ""
    id: Optional[int] = None
    created_at: str = ""
    updated_at: str = ""

    def __repr__(self) -> str:
        return (
            f"CredentialRecord(id={self.id!r}, title={self.title!r}, "
            f"username={self.username!r}, category={self.category!r})"
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CredentialRecord':
        """Create from dictionary."""
        known = {f for f in cls.__dataclass_fields__}
        return cls(**{k: v for k, v in data.items() if k in known})

    def matches(self, text: str) -> bool:
        """Case-insensitive substring match over the searchable plaintext fields."""
        needle = text.lower()
        return any(needle in (getattr(self, name) or "").lower() for name in config.SEARCH_FIELDS)


@dataclass
class Category:
    """A named grouping for entries."""
    name: str
    id: Optional[int] = None


def filter_entries(entries: Iterable[CredentialRecord], text: str) -> List[CredentialRecord]:
    """Return the entries matching the search text; empty text returns all."""
    if not text:
        return list(entries)
    return [e for e in entries if e.matches(text)]
