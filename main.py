import uvicorn
from starlette.middleware.base import BaseHTTPMiddleware

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from contextlib import asynccontextmanager

from jotter.core.config import settings
from jotter.core.database import init_db
from jotter.core.errors import register_exception_handlers
from jotter.core.logging import configure_logging
from jotter.core.redis_client import close_redis, init_redis
from jotter.api.v1.api import api_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    configure_logging(settings.LOG_LEVEL)
    await init_db()
    await init_redis()
    yield
    # Shutdown
    await close_redis()


class HTTPSRedirectMiddleware(BaseHTTPMiddleware):
    """Middleware to ensure redirects keep the scheme the client used behind a proxy"""
    async def dispatch(self, request: Request, call_next):
        is_https = (
            request.headers.get("x-forwarded-proto") == "https" or
            request.headers.get("x-forwarded-ssl") == "on" or
            request.headers.get("x-forwarded-port") == "443"
        )

        if is_https:
            request.scope["scheme"] = "https"
        response = await call_next(request)

        # If this is a redirect response, ensure it uses HTTPS
        if is_https and response.status_code in [301, 302, 303, 307, 308]:
            location = response.headers.get("location")
            if location and location.startswith("http://"):
                response.headers["location"] = location.replace("http://", "https://", 1)

        return response


app = FastAPI(
    title="Jotter API",
    description="Notes with autosave, public sharing and a leaderboard",
    version="1.0.0",
    lifespan=lifespan
)

register_exception_handlers(app)

app.add_middleware(HTTPSRedirectMiddleware)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add trusted host middleware for production
if not settings.DEBUG:
    app.add_middleware(
        TrustedHostMiddleware,
        allowed_hosts=settings.allowed_hosts
    )

# Include API router
app.include_router(api_router, prefix="/api")


@app.get("/")
async def root():
    return {"message": "Jotter API", "version": "1.0.0"}


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        proxy_headers=True,
        forwarded_allow_ips="*"
    )
