from pydantic import BaseModel
from datetime import datetime
from typing import Optional, List


class NoteBase(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None


class NoteCreate(NoteBase):
    pass


class NoteUpdate(NoteBase):
    pass


class NoteResponse(BaseModel):
    id: str
    title: str
    content: str
    user_id: Optional[str] = None
    is_public: bool = False
    public_id: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PublicNoteResponse(NoteResponse):
    author_name: Optional[str] = None


class NoteEnvelope(BaseModel):
    note: NoteResponse


class NoteListEnvelope(BaseModel):
    notes: List[NoteResponse]


class PublicNoteEnvelope(BaseModel):
    note: PublicNoteResponse


class ShareResponse(BaseModel):
    note: NoteResponse
    publicUrl: str
    publicId: str


class SuccessResponse(BaseModel):
    success: bool = True
