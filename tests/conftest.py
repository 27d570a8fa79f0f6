import hashlib
import hmac
import json
import os
from datetime import datetime, timezone
from unittest.mock import Mock
from uuid import uuid4

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from inbox_api import models
from inbox_api.config import settings
from inbox_api.database import Base

APP_SECRET = "test-app-secret"
VERIFY_TOKEN = "test-verify-token"


@pytest.fixture
def db_session():
    """Mock database session."""
    return Mock()


@pytest.fixture(autouse=True)
def test_settings(monkeypatch):
    """Known settings for every test; individual tests override what they need."""
    monkeypatch.setattr(settings, "environment", "development")
    monkeypatch.setattr(settings, "skip_signature_verification", False)
    monkeypatch.setattr(settings, "meta_app_secret", APP_SECRET)
    monkeypatch.setattr(settings, "meta_webhook_verify_token", VERIFY_TOKEN)
    monkeypatch.setattr(settings, "lead_creation_policy", "instagram")
    monkeypatch.setattr(settings, "auto_reply_in_background", False)
    monkeypatch.setattr(settings, "redis_url", None)
    monkeypatch.setattr(settings, "alert_bot_token", None)
    monkeypatch.setattr(settings, "alert_chat_id", None)
    monkeypatch.setattr(settings, "openrouter_api_key", None)
    monkeypatch.setattr(settings, "zai_api_key", None)
    monkeypatch.setattr(settings, "gemini_api_key", None)
    return settings


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    """Real session on a fresh in-memory SQLite database."""
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(db):
    from fastapi.testclient import TestClient

    from inbox_api.database import get_db
    from inbox_api.main import app

    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def sign(raw_body: bytes, secret: str = APP_SECRET) -> str:
    return "sha256=" + hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()


def signed_post(client, body: dict, secret: str = APP_SECRET):
    raw = json.dumps(body).encode("utf-8")
    return client.post(
        "/webhooks/meta",
        content=raw,
        headers={"Content-Type": "application/json", "x-hub-signature-256": sign(raw, secret)},
    )


def whatsapp_body(
    text: str = "hello",
    sender: str = "971501234567",
    message_id: str = "wamid.TEST1",
    phone_number_id: str = "PHONE_ID_1",
    timestamp: str = "1717000000",
    message_type: str = "text",
) -> dict:
    message = {"id": message_id, "from": sender, "timestamp": timestamp, "type": message_type}
    if message_type == "text":
        message["text"] = {"body": text}
    return {
        "object": "whatsapp_business_account",
        "entry": [
            {
                "id": "WABA_1",
                "changes": [
                    {
                        "field": "messages",
                        "value": {
                            "messaging_product": "whatsapp",
                            "metadata": {"phone_number_id": phone_number_id, "display_phone_number": "97140000000"},
                            "messages": [message],
                        },
                    }
                ],
            }
        ],
    }


def instagram_body(
    text: str = "hi",
    sender: str = "IGSID_1",
    recipient: str = "IG_BUSINESS_1",
    mid: str = "m_TEST1",
    timestamp: int = 1717000000000,
    is_echo: bool = False,
) -> dict:
    message = {"mid": mid, "text": text}
    if is_echo:
        message["is_echo"] = True
    return {
        "object": "instagram",
        "entry": [
            {
                "id": recipient,
                "time": timestamp,
                "messaging": [
                    {
                        "sender": {"id": sender},
                        "recipient": {"id": recipient},
                        "timestamp": timestamp,
                        "message": message,
                    }
                ],
            }
        ],
    }


@pytest.fixture
def make_lead(db):
    def _make(**kwargs):
        now = datetime.now(timezone.utc)
        values = {"name": "Test Lead", "status": "new", "created_at": now, "updated_at": now}
        values.update(kwargs)
        lead = models.Lead(**values)
        db.add(lead)
        db.commit()
        return lead

    return _make


@pytest.fixture
def make_user(db):
    def _make(**kwargs):
        values = {"name": "Agent", "email": f"agent-{uuid4().hex[:8]}@example.com"}
        values.update(kwargs)
        user = models.User(**values)
        db.add(user)
        db.commit()
        return user

    return _make


@pytest.fixture
def make_rule(db):
    def _make(**kwargs):
        values = {"keyword": "*", "platform": "ALL", "priority": 0, "is_active": True, "use_ai": False}
        values.update(kwargs)
        rule = models.AutoReplyRule(**values)
        db.add(rule)
        db.commit()
        return rule

    return _make


@pytest.fixture
def make_assistant(db):
    def _make(**kwargs):
        values = {"name": "Sales", "system_prompt": "You are a property advisor.", "is_active": True}
        values.update(kwargs)
        assistant = models.AIAssistant(**values)
        db.add(assistant)
        db.commit()
        return assistant

    return _make


@pytest.fixture
def whatsapp_account(db):
    account = models.WhatsappAccount(
        phone_number_id="PHONE_ID_1",
        display_phone_number="97140000000",
        access_token="wa-token",
        is_active=True,
    )
    db.add(account)
    db.commit()
    return account


@pytest.fixture
def instagram_account(db):
    account = models.InstagramAccount(
        ig_user_id="IG_BUSINESS_1",
        page_id="PAGE_1",
        username="luxury.homes",
        access_token="ig-token",
        is_active=True,
    )
    db.add(account)
    db.commit()
    return account
