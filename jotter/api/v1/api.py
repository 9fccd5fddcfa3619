from fastapi import APIRouter
from jotter.api.v1.endpoints import auth, users, notes, public, leaderboard

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["authentication"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(notes.router, prefix="/notes", tags=["notes"])
api_router.include_router(public.router, prefix="/public", tags=["public"])
api_router.include_router(leaderboard.router, prefix="/leaderboard", tags=["leaderboard"])
