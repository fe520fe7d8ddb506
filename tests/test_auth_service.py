from datetime import timedelta

import pytest

from conftest import DEFAULT_PASSWORD, make_user
from core.config import settings
from core.exceptions import ConflictError, InternalError, NotFoundError, UnauthorizedError, ValidationError
from schemas.auth_schemas import UserCreate, UserLogin
from services.auth_service import auth_service


async def test_register_hashes_password_and_issues_token(session):
    user, token = await auth_service.register_user(
        UserCreate(name=" Alice ", email="Alice@Example.com", password=DEFAULT_PASSWORD), session
    )

    assert user.id is not None
    assert user.name == "Alice"
    assert user.email == "alice@example.com"
    assert user.password_hash != DEFAULT_PASSWORD
    assert auth_service.verify_password(DEFAULT_PASSWORD, user.password_hash)

    payload = auth_service.verify_token(token)
    assert payload["sub"] == str(user.id)
    assert payload["type"] == "access"


async def test_register_duplicate_email_conflicts(session):
    await make_user(session)

    with pytest.raises(ConflictError, match="User already exists"):
        await make_user(session, "Other", "ALICE@example.com")


async def test_authenticate(session):
    alice = await make_user(session)

    user, token = await auth_service.authenticate_user(
        UserLogin(email="alice@example.com", password=DEFAULT_PASSWORD), session
    )
    assert user.id == alice.id
    assert (await auth_service.get_current_user(token, session)).id == alice.id

    with pytest.raises(UnauthorizedError, match="Invalid email or password"):
        await auth_service.authenticate_user(UserLogin(email="alice@example.com", password="wrong-pass"), session)
    with pytest.raises(UnauthorizedError, match="Invalid email or password"):
        await auth_service.authenticate_user(UserLogin(email="nobody@example.com", password="whatever"), session)


async def test_get_current_user_rejects_bad_tokens(session):
    alice = await make_user(session)

    with pytest.raises(UnauthorizedError):
        await auth_service.get_current_user("not-a-jwt", session)

    expired = auth_service.create_access_token({"sub": str(alice.id)}, expires_delta=timedelta(seconds=-1))
    with pytest.raises(UnauthorizedError):
        await auth_service.get_current_user(expired, session)

    reset_token = auth_service.create_password_reset_token(alice)
    with pytest.raises(UnauthorizedError):
        await auth_service.get_current_user(reset_token, session)

    ghost = auth_service.create_access_token({"sub": "4242"})
    with pytest.raises(UnauthorizedError):
        await auth_service.get_current_user(ghost, session)


async def test_password_reset_flow(session, outbox):
    alice = await make_user(session)

    assert await auth_service.request_password_reset("alice@example.com", session) is True
    assert outbox.messages[-1]["to"] == "alice@example.com"
    assert "http://frontend.test/reset-password/" in outbox.messages[-1]["html"]

    token = outbox.reset_token()
    await auth_service.reset_password(token, "newpass1", session)

    user, _ = await auth_service.authenticate_user(UserLogin(email="alice@example.com", password="newpass1"), session)
    assert user.id == alice.id


async def test_reset_token_cannot_be_reused(session):
    alice = await make_user(session)
    token = auth_service.create_password_reset_token(alice)

    await auth_service.reset_password(token, "first-new", session)

    with pytest.raises(UnauthorizedError):
        await auth_service.reset_password(token, "second-new", session)


async def test_expired_reset_token_is_rejected(session):
    alice = await make_user(session)
    token = auth_service.create_password_reset_token(alice, expires_delta=timedelta(minutes=-16))

    with pytest.raises(UnauthorizedError):
        await auth_service.reset_password(token, "newpass1", session)


async def test_access_token_is_not_a_reset_token(session):
    alice = await make_user(session)
    access = auth_service.issue_token(alice)

    with pytest.raises(UnauthorizedError):
        await auth_service.reset_password(access, "newpass1", session)


async def test_reset_enforces_minimum_length(session):
    alice = await make_user(session)
    token = auth_service.create_password_reset_token(alice)

    with pytest.raises(ValidationError):
        await auth_service.reset_password(token, "123", session)


async def test_reset_request_unknown_email(session, outbox, monkeypatch):
    with pytest.raises(NotFoundError, match="User not found"):
        await auth_service.request_password_reset("ghost@example.com", session)

    monkeypatch.setattr(settings, "PASSWORD_RESET_MASK_UNKNOWN_EMAIL", True)
    assert await auth_service.request_password_reset("ghost@example.com", session) is False
    assert outbox.messages == []


async def test_reset_request_email_failure(session, outbox):
    await make_user(session)
    outbox.fail = True

    with pytest.raises(InternalError, match="Email could not be sent"):
        await auth_service.request_password_reset("alice@example.com", session)
