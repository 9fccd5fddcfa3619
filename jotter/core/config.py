from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    DEBUG: bool = False
    DATABASE_URL: str = "sqlite+aiosqlite:///./jotter.db"
    REDIS_URL: str = "redis://localhost:6379/0"
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    REFRESH_TOKEN_EXPIRE_DAYS: int = 30
    ALLOWED_HOSTS: str = "*"
    LOG_LEVEL: str = "INFO"

    # Prefix for links handed out when a note is made public
    PUBLIC_BASE_URL: str = "http://localhost:3000"

    # OAuth identity provider
    GOOGLE_CLIENT_ID: str = ""
    GOOGLE_TOKENINFO_URL: str = "https://oauth2.googleapis.com/tokeninfo"

    class Config:
        env_file = [".env"]
        case_sensitive = True

    @property
    def allowed_hosts(self) -> List[str]:
        return [host.strip() for host in self.ALLOWED_HOSTS.split(",") if host.strip()]


settings = Settings()
