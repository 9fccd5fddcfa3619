"""Offline-first sync client for the Jotter API."""
from .api import NotesClient
from .config import ClientSettings
from .drafts import DraftStore, FileStorage, MemoryStorage
from .engine import MigrationResult, SyncEngine
from .errors import ApiError, NotFoundError, RemoteStoreError, UnauthenticatedError
from .models import DraftNote, DurableNote, Identity, NoteOrDraft, PendingChangeSet, ShareResult, SyncStatus

__all__ = [
    "NotesClient", "ClientSettings",
    "DraftStore", "FileStorage", "MemoryStorage",
    "MigrationResult", "SyncEngine",
    "ApiError", "NotFoundError", "RemoteStoreError", "UnauthenticatedError",
    "DraftNote", "DurableNote", "Identity", "NoteOrDraft", "PendingChangeSet", "ShareResult", "SyncStatus",
]
