import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from jotter import crud
from jotter.core.config import settings
from jotter.core.database import get_db
from jotter.core.security import get_current_user
from jotter.models.note import Note
from jotter.models.user import User
from jotter.schemas.note import (
    NoteCreate,
    NoteEnvelope,
    NoteListEnvelope,
    NoteResponse,
    NoteUpdate,
    ShareResponse,
    SuccessResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def public_url_for(public_id: str) -> str:
    return f"{settings.PUBLIC_BASE_URL.rstrip('/')}/share/{public_id}"


async def get_owned_note_or_404(note_id: str, user: User, db: AsyncSession) -> Note:
    """Load one of the caller's notes; anybody else's note does not exist"""
    note = await crud.fetch_owned_note(db, note_id, user.id)
    if not note:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Note not found"
        )
    return note


async def apply_note_update(note_id: str, note_update: NoteUpdate, user: User, db: AsyncSession) -> NoteEnvelope:
    note = await get_owned_note_or_404(note_id, user, db)
    update_data = note_update.model_dump(exclude_unset=True, exclude_none=True)
    note = await crud.update_note(db, note, **update_data)
    return NoteEnvelope(note=NoteResponse.model_validate(note))


@router.get("", response_model=NoteListEnvelope)
async def get_notes(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get the current user's notes, newest first"""
    notes = await crud.fetch_notes(db, current_user.id)
    return NoteListEnvelope(notes=[NoteResponse.model_validate(note) for note in notes])


@router.post("", response_model=NoteEnvelope, status_code=status.HTTP_201_CREATED)
async def create_note(
    note: NoteCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Create a new note"""
    db_note = await crud.create_note(
        db,
        user_id=current_user.id,
        title=note.title or crud.DEFAULT_TITLE,
        content=note.content or "",
    )
    return NoteEnvelope(note=NoteResponse.model_validate(db_note))


@router.put("/{note_id}", response_model=NoteEnvelope)
async def update_note(
    note_id: str,
    note_update: NoteUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Update title and/or content of a note (only owner)"""
    return await apply_note_update(note_id, note_update, current_user, db)


@router.post("/{note_id}", response_model=NoteEnvelope)
async def beacon_update_note(
    note_id: str,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Same as PUT, for page-unload beacons which can only POST a raw body"""
    body = await request.body()
    try:
        note_update = NoteUpdate.model_validate_json(body or b"{}")
    except ValidationError as exc:
        raise RequestValidationError(exc.errors())
    return await apply_note_update(note_id, note_update, current_user, db)


@router.delete("/{note_id}", response_model=SuccessResponse)
async def delete_note(
    note_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Delete a note (only owner, other notes are left alone)"""
    await crud.delete_note(db, note_id, current_user.id)
    return SuccessResponse(success=True)


@router.post("/{note_id}/share", response_model=ShareResponse)
async def share_note(
    note_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Make a note readable by anyone holding a freshly generated public id"""
    note = await get_owned_note_or_404(note_id, current_user, db)

    public_id = crud.generate_public_id()
    note = await crud.update_note(db, note, is_public=True, public_id=public_id)
    logger.info("Note %s shared publicly", note.id)

    return ShareResponse(
        note=NoteResponse.model_validate(note),
        publicUrl=public_url_for(public_id),
        publicId=public_id,
    )


@router.delete("/{note_id}/share", response_model=NoteEnvelope)
async def unshare_note(
    note_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Revoke public access; the old public id stops resolving"""
    note = await get_owned_note_or_404(note_id, current_user, db)
    note = await crud.update_note(db, note, is_public=False, public_id=None)
    return NoteEnvelope(note=NoteResponse.model_validate(note))
