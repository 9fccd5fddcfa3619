import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from jotter import crud
from jotter.core.config import settings
from jotter.core.database import get_db
from jotter.core.identity import IdentityProvider, get_identity_provider
from jotter.core.redis_client import access_token_key, get_redis, refresh_token_key
from jotter.core.security import (
    create_access_token,
    create_refresh_token,
    verify_token,
    get_current_user
)
from jotter.models.user import User
from jotter.schemas.auth import LoginRequest, LoginResponse, RefreshRequest, Token
from jotter.schemas.note import SuccessResponse
from jotter.schemas.user import Identity

logger = logging.getLogger(__name__)

router = APIRouter()


async def sync_user_from_profile(db: AsyncSession, email: str, name, picture) -> User:
    """Create the account on first sign-in and keep its avatar current"""
    user = await crud.fetch_user_by_email(db, email)

    if user is None:
        user = await crud.create_user(db, email=email, full_name=name or "")
        if picture:
            user = await crud.update_user(db, user, avatar_url=picture)
        logger.info("Created account for %s", email)
        return user

    # Refresh the avatar if it has changed or is missing
    if picture and user.avatar_url != picture:
        user = await crud.update_user(db, user, avatar_url=picture)
    return user


@router.post("/login", response_model=LoginResponse)
async def login(
    payload: LoginRequest,
    provider: IdentityProvider = Depends(get_identity_provider),
    db: AsyncSession = Depends(get_db)
):
    """Exchange an OAuth provider token for API tokens"""
    profile = await provider.verify(payload.provider_token)
    user = await sync_user_from_profile(db, profile.email, profile.name, profile.picture)

    # Create tokens
    access_token = create_access_token(data={"sub": user.id})
    refresh_token = create_refresh_token(data={"sub": user.id})

    # Store tokens in Redis
    redis_client = await get_redis()
    await redis_client.setex(
        access_token_key(user.id),
        settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        access_token
    )
    await redis_client.setex(
        refresh_token_key(user.id),
        settings.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60,
        refresh_token
    )

    return LoginResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        token_type="bearer",
        user=Identity.model_validate(user),
    )


@router.post("/refresh", response_model=Token)
async def refresh_token(payload: RefreshRequest, db: AsyncSession = Depends(get_db)):
    """Refresh access token using refresh token"""
    claims = verify_token(payload.refresh_token, "refresh")
    user_id = claims["sub"]

    user = await crud.fetch_user(db, user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token"
        )

    # Check if refresh token exists in Redis
    redis_client = await get_redis()
    stored_refresh_token = await redis_client.get(refresh_token_key(user.id))

    if not stored_refresh_token or stored_refresh_token != payload.refresh_token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid refresh token"
        )

    access_token = create_access_token(data={"sub": user.id})

    # Update access token in Redis
    await redis_client.setex(
        access_token_key(user.id),
        settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        access_token
    )

    return Token(access_token=access_token, refresh_token=payload.refresh_token, token_type="bearer")


@router.post("/logout", response_model=SuccessResponse)
async def logout(current_user: User = Depends(get_current_user)):
    """Logout user by removing tokens from Redis"""
    redis_client = await get_redis()
    await redis_client.delete(access_token_key(current_user.id))
    await redis_client.delete(refresh_token_key(current_user.id))

    return SuccessResponse(success=True)
