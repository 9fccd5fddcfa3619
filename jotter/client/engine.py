"""Offline-first synchronisation of notes.

The engine owns the in-memory note list and decides, per note, where edits
go: server notes are written through the API, drafts go to the local draft
store. Edits are buffered per note and written after ``flush_delay`` seconds
of quiet, on an explicit ``flush_now()``, by the periodic safety-net tick, or
when the selection moves to another note.

Guarantees:

* at most one flush is in flight per note; later flushes wait for it
* a flush only clears the fields it actually sent, so an edit made while a
  request is in flight stays pending and is written by the next flush
* a failed write leaves the edits pending and the status back at ``SYNCED``;
  nothing is retried except by the tick or the next edit
* signing in migrates drafts to the server; drafts whose upload failed are
  kept locally
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol, Set

from .api import NotesClient
from .config import ClientSettings
from .drafts import DEFAULT_TITLE, DraftStore, FileStorage
from .errors import ApiError, is_transient
from .models import (
    DraftNote,
    DurableNote,
    Identity,
    NoteOrDraft,
    PendingChangeSet,
    ShareResult,
    SyncStatus,
    utcnow,
)

logger = logging.getLogger(__name__)

FLUSH_DELAY = 3.0


class NotesBackend(Protocol):
    async def list_notes(self) -> List[DurableNote]:
        ...

    async def create_note(self, *, title: Optional[str] = None, content: Optional[str] = None) -> DurableNote:
        ...

    async def update_note(self, note_id: str, **changes: str) -> DurableNote:
        ...

    async def delete_note(self, note_id: str) -> None:
        ...

    async def share_note(self, note_id: str) -> ShareResult:
        ...

    async def unshare_note(self, note_id: str) -> DurableNote:
        ...

    def send_beacon(self, note_id: str, changes: Dict[str, str]) -> None:
        ...


@dataclass
class FlushSchedule:
    """The single debounce timer and the note it will flush."""

    note_id: str
    handle: asyncio.TimerHandle

    def cancel(self) -> None:
        self.handle.cancel()


@dataclass
class MigrationResult:
    migrated: List[DurableNote] = field(default_factory=list)
    failed: List[DraftNote] = field(default_factory=list)
    # draft id -> id assigned by the server
    id_map: Dict[str, str] = field(default_factory=dict)


class SyncEngine:
    def __init__(
        self,
        client: NotesBackend,
        drafts: DraftStore,
        *,
        identity: Optional[Identity] = None,
        flush_delay: float = FLUSH_DELAY,
    ) -> None:
        self.client = client
        self.drafts = drafts
        self.identity = identity
        self.flush_delay = flush_delay

        self.notes: List[NoteOrDraft] = []
        self.selected_note_id: Optional[str] = None
        self.status = SyncStatus.SYNCED
        self.last_error: Optional[Exception] = None

        self._pending: Dict[str, PendingChangeSet] = {}
        self._schedule: Optional[FlushSchedule] = None
        self._locks: Dict[str, asyncio.Lock] = {}
        self._ticker: Optional[asyncio.Task] = None
        self._tasks: Set[asyncio.Task] = set()

    @classmethod
    def from_settings(
        cls,
        settings: Optional[ClientSettings] = None,
        *,
        token: Optional[str] = None,
        identity: Optional[Identity] = None,
    ) -> "SyncEngine":
        settings = settings or ClientSettings()
        client = NotesClient(base_url=settings.API_BASE_URL, timeout=settings.TIMEOUT, token=token)
        drafts = DraftStore(FileStorage(settings.DRAFTS_PATH))
        return cls(client, drafts, identity=identity, flush_delay=settings.FLUSH_DELAY)

    # Lifecycle

    def start(self) -> None:
        """Start the periodic safety-net flush; needs a running event loop."""
        if self._ticker is None:
            self._ticker = asyncio.get_running_loop().create_task(self._run_ticker())

    async def stop(self) -> None:
        """Stop timers and write whatever is still pending."""
        if self._ticker is not None:
            self._ticker.cancel()
            try:
                await self._ticker
            except asyncio.CancelledError:
                pass
            self._ticker = None
        self._cancel_schedule()
        await self.flush_all()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    # Queries

    def get_note(self, note_id: Optional[str]) -> Optional[NoteOrDraft]:
        for note in self.notes:
            if note.id == note_id:
                return note
        return None

    @property
    def selected_note(self) -> Optional[NoteOrDraft]:
        """The selected note as the editor should show it, pending edits included."""
        note = self.get_note(self.selected_note_id)
        changes = self._pending.get(self.selected_note_id) if note is not None else None
        if note is None or not changes:
            return note
        return note.model_copy(update=changes.snapshot())

    def pending_changes(self, note_id: Optional[str] = None) -> Dict[str, str]:
        changes = self._pending.get(note_id or self.selected_note_id)
        return changes.snapshot() if changes else {}

    def filter_notes(self, term: str) -> List[NoteOrDraft]:
        """Notes whose title or content contains ``term``, ignoring case."""
        needle = term.lower()
        return [note for note in self.notes
                if needle in note.title.lower() or needle in note.content.lower()]

    @property
    def has_unsaved_changes(self) -> bool:
        return any(self._pending.values())

    @property
    def is_authenticated(self) -> bool:
        return self.identity is not None

    # Loading and creating

    async def load_all(self) -> List[NoteOrDraft]:
        """Server notes first (when signed in), then local drafts.

        A failing server only hides server notes; drafts are always listed.
        """
        durable: List[DurableNote] = []
        if self.identity is not None:
            try:
                durable = await self.client.list_notes()
                self.last_error = None
            except ApiError as exc:
                logger.exception("Error fetching notes, showing local drafts only")
                self.last_error = exc

        self.notes = [*durable, *self.drafts.get_drafts()]
        return self.notes

    async def create_note(self) -> Optional[NoteOrDraft]:
        self.status = SyncStatus.SYNCING
        try:
            if self.identity is not None:
                note: NoteOrDraft = await self.client.create_note(title=DEFAULT_TITLE, content="")
            else:
                note = self.drafts.new_draft()
            self.notes.insert(0, note)
            await self.select_note(note.id)
            return note
        except (ApiError, OSError, ValueError) as exc:
            logger.exception("Error creating note")
            self.last_error = exc
            return None
        finally:
            self.status = SyncStatus.SYNCED

    async def select_note(self, note_id: Optional[str]) -> None:
        """Move the selection; edits buffered for the old selection are written now."""
        if note_id == self.selected_note_id:
            return

        previous = self.selected_note_id
        to_flush = {previous}
        if self._schedule is not None:
            to_flush.add(self._schedule.note_id)
        self._cancel_schedule()
        self.selected_note_id = note_id

        for old_id in to_flush:
            if old_id is not None and old_id != note_id and self._pending.get(old_id):
                await self.flush(old_id)

    # Editing

    def schedule_edit(self, note_id: str, **changes: str) -> None:
        """Buffer an edit and (re)start the debounce timer."""
        self._pending.setdefault(note_id, PendingChangeSet(note_id)).merge(changes)
        self.status = SyncStatus.PENDING

        if self._schedule is not None and self._schedule.note_id != note_id:
            # Another note's timer is being replaced, write its edits right away
            self._spawn(self.flush(self._schedule.note_id))
        self._cancel_schedule()

        handle = asyncio.get_running_loop().call_later(self.flush_delay, self._on_timer, note_id)
        self._schedule = FlushSchedule(note_id=note_id, handle=handle)

    async def flush(self, note_id: str) -> None:
        """Write the buffered edits of one note to whichever store owns it."""
        async with self._lock(note_id):
            changes = self._pending.get(note_id)
            if not changes:
                return

            note = self.get_note(note_id)
            if note is None:
                # Deleted while the edit was buffered
                del self._pending[note_id]
                return

            if isinstance(note, DraftNote):
                self._flush_draft(note, changes)
            elif isinstance(note, DurableNote):
                await self._flush_durable(note, changes)
            else:
                raise TypeError(f"Unknown note type: {type(note).__name__}")

            self._forget_if_empty(note_id)

    async def flush_now(self) -> None:
        """Explicit save of the selected note; nothing happens if nothing is pending."""
        note_id = self.selected_note_id
        if note_id is None or not self._pending.get(note_id):
            return
        self._cancel_schedule(note_id)
        await self.flush(note_id)

    async def flush_all(self) -> None:
        for note_id in [note_id for note_id, changes in self._pending.items() if changes]:
            await self.flush(note_id)

    async def tick(self) -> None:
        """Safety net for edits whose timer was cancelled before it fired."""
        await self.flush_all()

    def on_visibility_hidden(self) -> None:
        """Page hidden or closing: last-chance write of the selected note.

        Drafts are written locally right away. Server notes go out as a beacon
        whose delivery is never confirmed, so their edits stay pending.
        """
        note_id = self.selected_note_id
        changes = self._pending.get(note_id) if note_id is not None else None
        if not changes:
            return

        note = self.get_note(note_id)
        if isinstance(note, DraftNote):
            self._flush_draft(note, changes)
            self._forget_if_empty(note_id)
        elif isinstance(note, DurableNote) and self.identity is not None:
            self.client.send_beacon(note_id, changes.snapshot())

    # Identity and migration

    async def set_identity(self, identity: Optional[Identity]) -> Optional[MigrationResult]:
        """Record who is signed in; signing in migrates local drafts once."""
        previous = self.identity
        if previous is not None and identity is None:
            await self.flush_all()
            self.identity = None
            self._cancel_schedule()
            self.notes = [note for note in self.notes if isinstance(note, DraftNote)]
            self._pending = {note_id: changes for note_id, changes in self._pending.items()
                             if isinstance(self.get_note(note_id), DraftNote)}
            if self.get_note(self.selected_note_id) is None:
                self.selected_note_id = None
            return None

        self.identity = identity
        if previous is None and identity is not None:
            return await self.migrate_drafts()
        return None

    async def migrate_drafts(self) -> MigrationResult:
        """Upload every local draft as a new server note.

        Each upload is independent. Uploaded drafts are removed from the draft
        store, drafts whose upload failed stay there for a later attempt.
        """
        result = MigrationResult()

        for note_id in list(self._pending):
            if isinstance(self.get_note(note_id), DraftNote):
                await self.flush(note_id)

        drafts = self.drafts.get_drafts()
        if not drafts:
            return result

        self.status = SyncStatus.SYNCING
        try:
            for draft in drafts:
                try:
                    note = await self.client.create_note(title=draft.title, content=draft.content)
                except ApiError as exc:
                    logger.exception("Error migrating draft note %s", draft.id)
                    self.last_error = exc
                    result.failed.append(draft)
                    continue
                result.migrated.append(note)
                result.id_map[draft.id] = note.id

            if result.migrated:
                self.drafts.replace_all(result.failed)
                for draft_id in result.id_map:
                    self._cancel_schedule(draft_id)
                    self._pending.pop(draft_id, None)
                    self._locks.pop(draft_id, None)
                if self.selected_note_id in result.id_map:
                    self.selected_note_id = result.id_map[self.selected_note_id]
                await self.load_all()
                logger.info(
                    "Migrated %d draft notes to the account, %d kept locally",
                    len(result.migrated), len(result.failed)
                )
        finally:
            self.status = SyncStatus.SYNCED
        return result

    # Other note operations

    async def delete_note(self, note_id: str) -> bool:
        note = self.get_note(note_id)
        if note is None:
            return False

        if isinstance(note, DraftNote):
            self.drafts.delete_draft(note_id)
        else:
            try:
                await self.client.delete_note(note_id)
            except ApiError as exc:
                logger.exception("Error deleting note %s", note_id)
                self.last_error = exc
                return False

        self._cancel_schedule(note_id)
        self._pending.pop(note_id, None)
        self._locks.pop(note_id, None)
        self.notes = [existing for existing in self.notes if existing.id != note_id]
        if self.selected_note_id == note_id:
            self.selected_note_id = None
        return True

    async def share_note(self, note_id: str) -> ShareResult:
        """Publish a server note; not buffered, the request goes out immediately."""
        note = self._require_durable(note_id)
        result = await self.client.share_note(note.id)
        self._replace(result.note)
        return result

    async def unshare_note(self, note_id: str) -> DurableNote:
        note = self._require_durable(note_id)
        updated = await self.client.unshare_note(note.id)
        self._replace(updated)
        return updated

    # Internals

    def _flush_draft(self, note: DraftNote, changes: PendingChangeSet) -> None:
        snapshot = changes.snapshot()
        updated = note.model_copy(update={**snapshot, "updated_at": utcnow()})
        try:
            self.drafts.save_draft(updated)
        except (OSError, ValueError) as exc:
            logger.exception("Error saving draft note %s", note.id)
            self.last_error = exc
            self.status = SyncStatus.PENDING if self.has_unsaved_changes else SyncStatus.SYNCED
            return
        self._replace(updated)
        changes.discard(snapshot)
        self.status = SyncStatus.PENDING if self.has_unsaved_changes else SyncStatus.SYNCED

    async def _flush_durable(self, note: DurableNote, changes: PendingChangeSet) -> None:
        if self.identity is None:
            logger.debug("Not signed in, keeping edits to note %s pending", note.id)
            return

        snapshot = changes.snapshot()
        self.status = SyncStatus.SYNCING
        try:
            saved = await self.client.update_note(note.id, **snapshot)
        except ApiError as exc:
            if is_transient(exc):
                logger.exception("Error updating note %s, edits kept for the next flush", note.id)
            else:
                logger.warning("Note %s was not updated: %s", note.id, exc)
            self.last_error = exc
            self.status = SyncStatus.SYNCED
            return

        changes.discard(snapshot)
        self._replace(saved)
        self.status = SyncStatus.PENDING if changes else SyncStatus.SYNCED

    def _replace(self, note: NoteOrDraft) -> None:
        self.notes = [note if existing.id == note.id else existing for existing in self.notes]

    def _require_durable(self, note_id: str) -> DurableNote:
        note = self.get_note(note_id)
        if note is None:
            raise ValueError(f"Unknown note: {note_id}")
        if isinstance(note, DraftNote):
            raise ValueError("Draft notes cannot be shared, sign in first")
        return note

    def _forget_if_empty(self, note_id: str) -> None:
        changes = self._pending.get(note_id)
        if changes is not None and not changes:
            del self._pending[note_id]

    def _lock(self, note_id: str) -> asyncio.Lock:
        return self._locks.setdefault(note_id, asyncio.Lock())

    def _cancel_schedule(self, note_id: Optional[str] = None) -> None:
        if self._schedule is None:
            return
        if note_id is None or self._schedule.note_id == note_id:
            self._schedule.cancel()
            self._schedule = None

    def _on_timer(self, note_id: str) -> None:
        if self._schedule is not None and self._schedule.note_id == note_id:
            self._schedule = None
        if self._pending.get(note_id):
            self._spawn(self.flush(note_id))

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run_ticker(self) -> None:
        while True:
            await asyncio.sleep(self.flush_delay)
            try:
                await self.tick()
            except Exception:
                logger.exception("Error in periodic flush")
