from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from jotter import crud
from jotter.core.database import get_db
from jotter.schemas.note import PublicNoteEnvelope, PublicNoteResponse

router = APIRouter()


@router.get("/{public_id}", response_model=PublicNoteEnvelope)
async def get_public_note(public_id: str, db: AsyncSession = Depends(get_db)):
    """Read a publicly shared note, no authentication required"""
    found = await crud.fetch_public_note(db, public_id)
    if found is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Note not found or not public"
        )

    note, author_name = found
    response = PublicNoteResponse.model_validate(note)
    response.author_name = author_name
    return PublicNoteEnvelope(note=response)
