from pydantic import BaseModel, Field
from typing import Optional, List


class Identity(BaseModel):
    """The authenticated user as seen by clients"""
    id: str
    display_name: str = Field(validation_alias="full_name")
    avatar_url: Optional[str] = None

    class Config:
        from_attributes = True
        populate_by_name = True


class IdentityEnvelope(BaseModel):
    user: Identity


class LeaderboardEntry(BaseModel):
    id: str
    full_name: str
    avatar_url: Optional[str] = None
    note_count: int


class LeaderboardResponse(BaseModel):
    leaderboard: List[LeaderboardEntry]
