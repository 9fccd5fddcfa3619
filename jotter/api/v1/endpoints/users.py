from fastapi import APIRouter, Depends

from jotter.core.security import get_current_user
from jotter.models.user import User
from jotter.schemas.user import Identity, IdentityEnvelope

router = APIRouter()


@router.get("/me", response_model=IdentityEnvelope)
async def get_current_user_info(current_user: User = Depends(get_current_user)):
    """Get current user information"""
    return IdentityEnvelope(user=Identity.model_validate(current_user))
