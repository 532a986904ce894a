from pathlib import Path
from typing import Literal, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── App ─────────────────────────────────────
    APP_NAME: str = "Mall Audit AI"
    ENVIRONMENT: Literal["local", "staging", "production", "test"] = "local"
    DEBUG: bool = True
    LOG_DIR: str = "logs"
    LOG_MAX_BYTES: int = 10_000_000
    LOG_BACKUP_COUNT: int = 5

    # ── Screenshots ─────────────────────────────
    SCREENSHOT_DIR: str = "./screenshots"
    SCREENSHOT_MAX_RETRIES: int = 3
    SCREENSHOT_PAGE_LOAD_TIMEOUT: int = 30  # seconds

    # ── Lighthouse ──────────────────────────────
    LIGHTHOUSE_TIMEOUT: int = 40000  # milliseconds
    USE_DOCKER_LIGHTHOUSE: bool = False
    LIGHTHOUSE_DOCKER_IMAGE: str = "femtopixel/google-lighthouse"

    # ── AI grading ──────────────────────────────
    LLM_API_KEY: Optional[str] = None
    LLM_MODEL: str = "gpt-4o"
    LLM_BASE_URL: Optional[str] = None
    LLM_MAX_RETRIES: int = 2
    LLM_HTML_CHAR_LIMIT: int = 15000

    class Config:
        env_file = str(Path(__file__).parent.parent.parent / ".env")
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"


settings = Settings()
