"""
Shared fixtures: in-memory SQLite database, ASGI test client, captured outbound email
"""

import os
import re
import tempfile

# Must be set before any application module reads settings
os.environ.update({
    "ENVIRONMENT": "test",
    "DATABASE_URL": "sqlite+aiosqlite:///:memory:",
    "DATABASE_AUTO_CREATE": "true",
    "BCRYPT_ROUNDS": "4",
    "RATE_LIMIT_ENABLED": "false",
    "REDIS_URL": "",
    "UPLOAD_DIR": tempfile.mkdtemp(prefix="pantrypal-uploads-"),
    "JWT_SECRET_KEY": "test-secret-key",
    "LOG_LEVEL": "WARNING",
    "FRONTEND_URL": "http://frontend.test",
})

import httpx
import pytest

from core import database
from main import app
from schemas.auth_schemas import UserCreate
from services.auth_service import auth_service
from services.email_service import email_service
from services.recipe_service import recipe_service

DEFAULT_PASSWORD = "pw123456"


class Outbox:
    """Stands in for SMTP delivery and records what would have been sent"""

    def __init__(self):
        self.messages = []
        self.fail = False

    async def send_email(self, to_email, subject, html_content, text_content=None, reply_to=None):
        if self.fail:
            return False
        self.messages.append({
            "to": to_email,
            "subject": subject,
            "html": html_content,
            "text": text_content,
            "reply_to": reply_to,
        })
        return True

    def reset_token(self) -> str:
        match = re.search(r"/reset-password/([A-Za-z0-9_\-.]+)", self.messages[-1]["html"])
        assert match, "no reset link in the last email"
        return match.group(1)


@pytest.fixture(autouse=True)
def outbox(monkeypatch):
    box = Outbox()
    monkeypatch.setattr(email_service, "send_email", box.send_email)
    return box


@pytest.fixture
async def db():
    await database.init_db()
    yield
    await database.close_db()


@pytest.fixture
async def session(db):
    async with database.async_session_factory() as session:
        yield session


@pytest.fixture
async def client(db):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac


async def make_user(session, name: str = "Alice", email: str = "alice@example.com", password: str = DEFAULT_PASSWORD):
    user, _ = await auth_service.register_user(UserCreate(name=name, email=email, password=password), session)
    return user


async def make_recipe(session, owner, title: str = "Pancakes", **fields):
    data = {
        "title": title,
        "ingredients": "flour, milk, eggs",
        "steps": "Mix.\nFry.",
    }
    data.update(fields)
    return await recipe_service.create_recipe(owner.id, data, [], session)


async def register(client, name: str = "Alice", email: str = "alice@example.com", password: str = DEFAULT_PASSWORD) -> dict:
    response = await client.post(
        "/api/users/register", json={"name": name, "email": email, "password": password}
    )
    assert response.status_code == 201, response.text
    return response.json()


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


async def post_recipe(client, token: str, title: str = "Pancakes", files=None, **fields) -> httpx.Response:
    data = {
        "title": title,
        "ingredients": "flour, milk, eggs",
        "steps": "Mix.\nFry.",
    }
    data.update(fields)
    return await client.post("/api/recipes", data=data, files=files, headers=bearer(token))
