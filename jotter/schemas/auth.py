from pydantic import BaseModel
from typing import Optional

from .user import Identity


class LoginRequest(BaseModel):
    provider_token: str


class RefreshRequest(BaseModel):
    refresh_token: str


class Token(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"


class LoginResponse(Token):
    user: Identity


class ProviderProfile(BaseModel):
    """Claims returned by the OAuth provider for a verified token"""
    email: str
    name: Optional[str] = None
    picture: Optional[str] = None
