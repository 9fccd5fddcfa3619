from .note import (
    NoteCreate, NoteUpdate, NoteResponse, PublicNoteResponse,
    NoteEnvelope, NoteListEnvelope, PublicNoteEnvelope, ShareResponse, SuccessResponse,
)
from .user import Identity, IdentityEnvelope, LeaderboardEntry, LeaderboardResponse
from .auth import LoginRequest, RefreshRequest, Token, LoginResponse, ProviderProfile

__all__ = [
    "NoteCreate", "NoteUpdate", "NoteResponse", "PublicNoteResponse",
    "NoteEnvelope", "NoteListEnvelope", "PublicNoteEnvelope", "ShareResponse", "SuccessResponse",
    "Identity", "IdentityEnvelope", "LeaderboardEntry", "LeaderboardResponse",
    "LoginRequest", "RefreshRequest", "Token", "LoginResponse", "ProviderProfile",
]
