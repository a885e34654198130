from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


load_dotenv()

BASE_DIR = Path(__file__).resolve().parents[1]


class Settings:
    """Application settings loaded from environment variables.

    Keep all credentials and config centralized here. An empty
    OPENAI_API_KEY keeps the app in mock mode.
    """

    app_env: str = os.getenv("APP_ENV", "development")
    openai_api_key: str = (os.getenv("OPENAI_API_KEY") or "").strip()
    openai_model: str = os.getenv("OPENAI_MODEL", "gpt-4.1-mini")
    temperature: float = float(os.getenv("MODEL_TEMPERATURE", "0.7"))
    max_tokens: int = int(os.getenv("MODEL_MAX_TOKENS", "650"))
    max_message_length: int = int(os.getenv("MAX_MESSAGE_LENGTH", "1200"))
    max_context_messages: int = int(os.getenv("MAX_CONTEXT_MESSAGES", "12"))
    rate_limit_max: int = int(os.getenv("RATE_LIMIT_MAX", "45"))
    rate_limit_window_seconds: float = float(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "60"))
    max_image_upload_bytes: int = int(
        os.getenv("MAX_IMAGE_UPLOAD_BYTES", str(4 * 1024 * 1024))
    )
    uploads_dir: Path = Path(os.getenv("UPLOADS_DIR", str(BASE_DIR / "data" / "uploads")))
    database_url: Optional[str] = os.getenv("DATABASE_URL") or None

    @property
    def live_api_configured(self) -> bool:
        return bool(self.openai_api_key)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
