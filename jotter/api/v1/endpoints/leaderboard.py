from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from jotter import crud
from jotter.core.database import get_db
from jotter.schemas.user import LeaderboardEntry, LeaderboardResponse

router = APIRouter()


@router.get("", response_model=LeaderboardResponse)
async def get_leaderboard(db: AsyncSession = Depends(get_db)):
    """Rank every user by number of notes, ties broken by name"""
    rows = await crud.fetch_leaderboard(db)
    return LeaderboardResponse(leaderboard=[LeaderboardEntry(**row) for row in rows])
