from pydantic_settings import BaseSettings


class ClientSettings(BaseSettings):
    """Settings for the sync client, read from ``JOTTER_*`` variables"""

    API_BASE_URL: str = "http://localhost:8000/api"
    FLUSH_DELAY: float = 3.0
    DRAFTS_PATH: str = "~/.jotter/drafts.json"
    TIMEOUT: float = 10.0

    class Config:
        env_prefix = "JOTTER_"
        env_file = [".env"]
        case_sensitive = True
        extra = "ignore"
