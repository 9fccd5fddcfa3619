import logging
from typing import Protocol

import httpx
from fastapi import HTTPException, status

from jotter.core.config import settings
from jotter.schemas.auth import ProviderProfile

logger = logging.getLogger(__name__)


class IdentityProvider(Protocol):
    async def verify(self, provider_token: str) -> ProviderProfile:
        ...


class GoogleIdentityProvider:
    """Checks Google ID tokens against the tokeninfo endpoint"""

    def __init__(self, client_id: str, tokeninfo_url: str, timeout: float = 10.0):
        self.client_id = client_id
        self.tokeninfo_url = tokeninfo_url
        self.timeout = timeout

    async def verify(self, provider_token: str) -> ProviderProfile:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(self.tokeninfo_url, params={"id_token": provider_token})
        except httpx.HTTPError:
            logger.exception("Identity provider unreachable")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Identity provider unavailable"
            )

        if response.status_code != 200:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid provider token"
            )

        claims = response.json()
        if self.client_id and claims.get("aud") != self.client_id:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Provider token issued for another application"
            )
        if not claims.get("email"):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Provider token carries no email"
            )

        return ProviderProfile(
            email=claims["email"],
            name=claims.get("name"),
            picture=claims.get("picture"),
        )


def get_identity_provider() -> IdentityProvider:
    return GoogleIdentityProvider(settings.GOOGLE_CLIENT_ID, settings.GOOGLE_TOKENINFO_URL)
