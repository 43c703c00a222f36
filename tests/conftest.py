"""Pytest configuration and fixtures."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401
from app.config import settings
from app.database import Base, get_db
from app.models.message import ChatMessage, NormalizedMessage


@pytest.fixture(scope="function")
def test_db():
    """Create a test database for each test."""
    # Use in-memory SQLite shared across threads for testing
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = TestingSessionLocal()

    yield db

    db.close()
    engine.dispose()


class FakeAIClient:
    """Stands in for AIClient without network access."""

    def __init__(self, reply='{"intent": "price_question", "stage": "lead"}', model="test-model"):
        self.embedding_model = "test-embedding"
        self.reply = reply
        self.model = model
        self.embedded = []
        self.chats = []

    def embed(self, text):
        self.embedded.append(text)
        return [0.5] * settings.EMBED_DIM

    def chat_completion(self, messages, model=None, temperature=0.0, max_tokens=300, json_mode=True):
        self.chats.append(messages)
        return self.reply, self.model


@pytest.fixture
def fake_ai():
    return FakeAIClient()


@pytest.fixture
def client(test_db):
    """TestClient bound to the test database."""
    from app.main import app

    def override_get_db():
        yield test_db

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def add_messages(db, organization_id, count, start=0, direction="incoming", content="Hello, what is the price?"):
    """Insert ``count`` messages with increasing timestamps and return their ids."""
    base = datetime(2026, 1, 1)
    ids = []
    for i in range(start, start + count):
        message_id = f"{organization_id}-msg-{i:04d}"
        db.add(
            ChatMessage(
                message_id=message_id,
                organization_id=organization_id,
                direction=direction,
                content=content,
                created_at=base + timedelta(minutes=i),
            )
        )
        ids.append(message_id)
    db.commit()
    return ids


def mark_normalized(db, message_ids):
    """Create normalized records for the given message ids."""
    for message_id in message_ids:
        db.add(
            NormalizedMessage(
                message_id=message_id,
                normalized_text="hello what is the price",
                text_hash="0" * 32,
                language="en",
                tokens_count=7,
            )
        )
    db.commit()
