"""
Pytest configuration for MoodRoute tests.

Environment is pinned before any settings are loaded so the suite always
runs in mock mode with a throwaway uploads directory.
"""
import os
import tempfile

os.environ["OPENAI_API_KEY"] = ""
os.environ["DATABASE_URL"] = ""
os.environ["APP_ENV"] = "test"
os.environ["RATE_LIMIT_MAX"] = "1000"
os.environ["UPLOADS_DIR"] = tempfile.mkdtemp(prefix="moodroute-uploads-")

import pytest

from config.settings import Settings
from moodroute.knowledge import find_city_knowledge
from moodroute.models import ChatAttachment


@pytest.fixture
def settings(tmp_path):
    """Fresh settings instance with its own uploads directory."""
    instance = Settings()
    instance.uploads_dir = tmp_path / "uploads"
    instance.uploads_dir.mkdir()
    return instance


@pytest.fixture
def bergen():
    return find_city_knowledge("Bergen")


@pytest.fixture
def oslo():
    return find_city_knowledge("Oslo")


@pytest.fixture
def photo():
    return ChatAttachment(url="/uploads/1700000000000-abc123.png", file_name="harbor.png")


@pytest.fixture
def app_client():
    """TestClient over the FastAPI app with a clean store and rate limiter."""
    from fastapi.testclient import TestClient

    from app.main import app
    from moodroute.core.memory import InMemoryConversationStore
    from moodroute.ratelimit import RateLimiter

    app.state.store = InMemoryConversationStore()
    app.state.rate_limiter = RateLimiter(1000, 60)
    with TestClient(app) as client:
        yield client

