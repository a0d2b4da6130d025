"""Test authentication module."""

from datetime import UTC, datetime, timedelta

import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials
from fastapi.testclient import TestClient
from jose import jwt

from splitpay.core.auth import TokenData, create_access_token, get_current_user
from splitpay.core.settings import MercadoPagoSettings
from splitpay.core.store import SqlAlchemyStore
from splitpay.core.users import CreateUserRequest, create_user


class MockCredentials(HTTPAuthorizationCredentials):
    def __init__(self, token: str) -> None:
        super().__init__(scheme="Bearer", credentials=token)


def test_create_access_token(settings: MercadoPagoSettings) -> None:
    """Test JWT token creation."""
    token = create_access_token("uid_123", settings)
    assert token is not None
    assert isinstance(token, str)


def test_token_validation(settings: MercadoPagoSettings) -> None:
    """Test JWT token validation."""
    token = create_access_token("uid_123", settings)

    token_data = get_current_user(MockCredentials(token), settings)
    assert isinstance(token_data, TokenData)
    assert token_data.uid == "uid_123"


def test_invalid_token(settings: MercadoPagoSettings) -> None:
    """Test invalid token handling."""
    with pytest.raises(HTTPException) as exc_info:
        get_current_user(MockCredentials("invalid_token"), settings)
    assert exc_info.value.status_code == 401


def test_expired_token(settings: MercadoPagoSettings) -> None:
    expired = jwt.encode(
        {"uid": "uid_123", "exp": datetime.now(UTC) - timedelta(minutes=1)},
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )
    with pytest.raises(HTTPException) as exc_info:
        get_current_user(MockCredentials(expired), settings)
    assert exc_info.value.status_code == 401


def test_login_and_me(client: TestClient, store: SqlAlchemyStore) -> None:
    user = create_user(
        CreateUserRequest(email="admin@splitpay.com", password="admin123456"), store
    )

    response = client.post(
        "/api/v1/auth/token", json={"email": "admin@splitpay.com", "password": "admin123456"}
    )
    assert response.status_code == 200
    token = response.json()["access_token"]

    me = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["uid"] == user.uid

    found = store.get_user_by_email("admin@splitpay.com")
    assert found is not None
    assert found[0].last_sign_in_at is not None


def test_login_with_wrong_password(client: TestClient, store: SqlAlchemyStore) -> None:
    create_user(CreateUserRequest(email="admin@splitpay.com", password="admin123456"), store)

    response = client.post(
        "/api/v1/auth/token", json={"email": "admin@splitpay.com", "password": "wrong-pass"}
    )
    assert response.status_code == 401


def test_no_tokens_without_signing_key(settings: MercadoPagoSettings) -> None:
    unsigned = settings.model_copy(update={"jwt_secret_key": ""})

    with pytest.raises(HTTPException) as exc_info:
        create_access_token("uid_123", unsigned)
    assert exc_info.value.status_code == 503


def test_empty_signing_key_rejects_every_token(settings: MercadoPagoSettings) -> None:
    unsigned = settings.model_copy(update={"jwt_secret_key": ""})
    token = jwt.encode(
        {"uid": "uid_123", "exp": datetime.now(UTC) + timedelta(minutes=5)},
        "some-other-key",
        algorithm=settings.jwt_algorithm,
    )

    with pytest.raises(HTTPException) as exc_info:
        get_current_user(MockCredentials(token), unsigned)
    assert exc_info.value.status_code == 401


def test_login_refused_without_signing_key(
    client: TestClient, settings: MercadoPagoSettings, store: SqlAlchemyStore
) -> None:
    create_user(CreateUserRequest(email="admin@splitpay.com", password="admin123456"), store)
    settings.jwt_secret_key = ""

    response = client.post(
        "/api/v1/auth/token", json={"email": "admin@splitpay.com", "password": "admin123456"}
    )
    assert response.status_code == 503
