"""Local persistence for notes created before signing in."""
from __future__ import annotations

import json
import logging
import os
import secrets
import string
import time
from pathlib import Path
from typing import Dict, List, Optional, Protocol

from pydantic import ValidationError

from .models import DraftNote, utcnow

logger = logging.getLogger(__name__)

DRAFT_NOTES_KEY = "notes_app_drafts"
DEFAULT_TITLE = "Untitled Note"

_BASE36 = string.digits + string.ascii_lowercase


class KeyValueStorage(Protocol):
    def get_item(self, key: str) -> Optional[str]:
        ...

    def set_item(self, key: str, value: str) -> None:
        ...

    def remove_item(self, key: str) -> None:
        ...


class MemoryStorage:
    """Storage that lives as long as the process."""

    def __init__(self) -> None:
        self._items: Dict[str, str] = {}

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class FileStorage:
    """String values kept in a single JSON document on disk."""

    def __init__(self, path: str | os.PathLike) -> None:
        self.path = Path(path).expanduser()

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            items = json.loads(self.path.read_text(encoding="utf-8"))
        except ValueError:
            # Rewritten from scratch on the next write
            logger.exception("Unreadable storage file %s", self.path)
            return {}
        if not isinstance(items, dict):
            logger.error("Unexpected storage document in %s", self.path)
            return {}
        return items

    def _write(self, items: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(items), encoding="utf-8")
        os.replace(tmp_path, self.path)

    def get_item(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set_item(self, key: str, value: str) -> None:
        items = self._read()
        items[key] = value
        self._write(items)

    def remove_item(self, key: str) -> None:
        items = self._read()
        if items.pop(key, None) is not None:
            self._write(items)


class DraftStore:
    """All drafts, newest first, serialised as one array under a fixed key."""

    def __init__(self, storage: KeyValueStorage, key: str = DRAFT_NOTES_KEY) -> None:
        self.storage = storage
        self.key = key
        self._last_id_ms = 0

    def get_drafts(self) -> List[DraftNote]:
        try:
            stored = self.storage.get_item(self.key)
            if not stored:
                return []
            return [DraftNote.from_record(record) for record in json.loads(stored)]
        except (OSError, ValueError, TypeError, ValidationError):
            # json.JSONDecodeError is a ValueError
            logger.exception("Error loading draft notes")
            return []

    def _store(self, drafts: List[DraftNote]) -> None:
        self.storage.set_item(self.key, json.dumps([draft.to_record() for draft in drafts]))

    def save_draft(self, draft: DraftNote) -> None:
        """Replace the draft with the same id, or add it at the front."""
        drafts = self.get_drafts()
        for index, existing in enumerate(drafts):
            if existing.id == draft.id:
                drafts[index] = draft
                break
        else:
            drafts.insert(0, draft)
        self._store(drafts)

    def delete_draft(self, draft_id: str) -> None:
        self._store([draft for draft in self.get_drafts() if draft.id != draft_id])

    def replace_all(self, drafts: List[DraftNote]) -> None:
        if drafts:
            self._store(drafts)
        else:
            self.clear_all()

    def clear_all(self) -> None:
        self.storage.remove_item(self.key)

    def generate_id(self) -> str:
        """``draft-<ms>-<9 base-36 chars>``; the ms part never repeats in a store."""
        now_ms = int(time.time() * 1000)
        self._last_id_ms = max(now_ms, self._last_id_ms + 1)
        suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
        return f"draft-{self._last_id_ms}-{suffix}"

    def new_draft(self, title: str = DEFAULT_TITLE, content: str = "") -> DraftNote:
        now = utcnow()
        draft = DraftNote(id=self.generate_id(), title=title, content=content, created_at=now, updated_at=now)
        self.save_draft(draft)
        return draft
