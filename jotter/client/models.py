"""Notes as the sync client sees them.

A note either lives on the server (``DurableNote``) or only on this device
(``DraftNote``). The two are distinct types; code that behaves differently for
each branches on the type, never on which attributes happen to be present.
"""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

EDITABLE_FIELDS = ("title", "content")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SyncStatus(str, Enum):
    SYNCED = "synced"
    PENDING = "pending"
    SYNCING = "syncing"


class DurableNote(BaseModel):
    """A note persisted by the API."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    kind: Literal["note"] = "note"
    id: str
    title: str
    content: str = ""
    user_id: Optional[str] = None
    is_public: bool = False
    public_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "DurableNote":
        return cls.model_validate({**payload, "kind": "note"})


class DraftNote(BaseModel):
    """A note kept in the local draft store until the user signs in."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    kind: Literal["draft"] = "draft"
    id: str
    title: str
    content: str = ""
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def to_record(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "DraftNote":
        return cls.model_validate({**record, "kind": "draft"})


NoteOrDraft = Annotated[Union[DurableNote, DraftNote], Field(discriminator="kind")]


class Identity(BaseModel):
    """The signed-in user, or absent when browsing anonymously."""

    model_config = ConfigDict(frozen=True)

    id: str
    display_name: str = ""
    avatar_url: Optional[str] = None


class ShareResult(BaseModel):
    note: DurableNote
    public_url: str
    public_id: str


class PendingChangeSet:
    """Unflushed edits for one note, merged field by field (last write wins)."""

    def __init__(self, note_id: str):
        self.note_id = note_id
        self._changes: Dict[str, str] = {}

    def merge(self, changes: Dict[str, str]) -> None:
        unknown = set(changes) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValueError(f"Cannot edit fields: {', '.join(sorted(unknown))}")
        self._changes.update(changes)

    def snapshot(self) -> Dict[str, str]:
        return dict(self._changes)

    def discard(self, flushed: Dict[str, str]) -> None:
        """Forget fields that were flushed, unless they changed again meanwhile."""
        for field, value in flushed.items():
            if self._changes.get(field) == value:
                del self._changes[field]

    def __bool__(self) -> bool:
        return bool(self._changes)

    def __len__(self) -> int:
        return len(self._changes)

    def __repr__(self) -> str:
        return f"PendingChangeSet(note_id={self.note_id!r}, changes={self._changes!r})"
