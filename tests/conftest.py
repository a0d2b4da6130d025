"""Shared fixtures: settings, an in-memory store, a stub gateway and an API client."""

from decimal import Decimal
from typing import Generator, Optional

import pytest
from fastapi.testclient import TestClient

from splitpay.core.database import init_db, make_engine, make_session_factory
from splitpay.core.dependencies import get_gateway, get_settings, get_store
from splitpay.core.gateway import (
    OAuthTokenRequest,
    OAuthTokenResponse,
    PaymentCreateRequest,
    PaymentResponse,
)
from splitpay.core.main import app
from splitpay.core.settings import MercadoPagoSettings
from splitpay.core.store import SqlAlchemyStore

PLATFORM_TOKEN = "PLATFORM_TOKEN"
QR_CODE = "00020126580014br.gov.bcb.pix0136-copy-paste"
QR_CODE_BASE64 = "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNk"


class StubGateway:
    """Stands in for MercadoPagoClient and records every call it receives."""

    def __init__(self) -> None:
        self.calls: list[tuple] = []
        self.token_response = OAuthTokenResponse(
            user_id="S1", access_token="T", refresh_token="R", public_key="P"
        )
        self.exchange_error: Optional[Exception] = None
        self.create_error: Optional[Exception] = None
        self.fetch_error: Optional[Exception] = None
        self.create_status = "pending"
        self.next_payment_id = 1001
        self.remote: dict[str, PaymentResponse] = {}

    def exchange_code(self, body: OAuthTokenRequest) -> OAuthTokenResponse:
        self.calls.append(("exchange_code", body))
        if self.exchange_error:
            raise self.exchange_error
        return self.token_response

    def create_payment(
        self, access_token: str, body: PaymentCreateRequest, idempotency_key: Optional[str] = None
    ) -> PaymentResponse:
        self.calls.append(("create_payment", access_token, body, idempotency_key))
        if self.create_error:
            raise self.create_error
        payment = PaymentResponse.model_validate(
            {
                "id": self.next_payment_id,
                "status": self.create_status,
                "transaction_amount": body.transaction_amount,
                "application_fee": body.application_fee,
                "point_of_interaction": {
                    "transaction_data": {"qr_code": QR_CODE, "qr_code_base64": QR_CODE_BASE64}
                },
            }
        )
        self.next_payment_id += 1
        self.remote[payment.id] = payment
        return payment

    def get_payment(self, access_token: str, payment_id: str) -> PaymentResponse:
        self.calls.append(("get_payment", access_token, payment_id))
        if self.fetch_error:
            raise self.fetch_error
        return self.remote[payment_id]

    def set_remote(
        self, payment_id: str, status: str, amount: str, fee: Optional[str] = None
    ) -> None:
        self.remote[payment_id] = PaymentResponse(
            id=payment_id,
            status=status,
            transaction_amount=Decimal(amount),
            application_fee=Decimal(fee) if fee is not None else None,
        )


@pytest.fixture
def settings() -> MercadoPagoSettings:
    """Settings for testing."""
    return MercadoPagoSettings(
        mp_app_id="APP123",
        mp_client_secret="client_secret_456",
        mp_access_token=PLATFORM_TOKEN,
        redirect_uri="https://market.example.com/callback",
        database_url="sqlite://",
        jwt_secret_key="test_secret_key",
        jwt_algorithm="HS256",
        jwt_access_token_expire_minutes=30,
    )


@pytest.fixture
def store() -> SqlAlchemyStore:
    engine = make_engine("sqlite://")
    init_db(engine)
    return SqlAlchemyStore(make_session_factory(engine))


@pytest.fixture
def gateway() -> StubGateway:
    return StubGateway()


@pytest.fixture
def client(
    settings: MercadoPagoSettings, store: SqlAlchemyStore, gateway: StubGateway
) -> Generator[TestClient, None, None]:
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_gateway] = lambda: gateway
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
