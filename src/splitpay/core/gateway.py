"""
Mercado Pago REST client.

Requests and responses of every gateway operation used by the marketplace are
typed with pydantic models and parsed as soon as they come back, so nothing
downstream handles raw gateway JSON.
"""

import logging
import uuid
from decimal import Decimal
from typing import Any, Optional, Type

import requests
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from splitpay.core.errors import (
    GatewayTimeoutError,
    OAuthExchangeError,
    PaymentCreationError,
    PaymentFetchError,
    UpstreamError,
)

logger = logging.getLogger("gateway")


class OAuthTokenRequest(BaseModel):
    """Body of ``POST /oauth/token`` for the authorization-code grant."""

    client_secret: str
    client_id: str
    grant_type: str = "authorization_code"
    code: str
    redirect_uri: str


class OAuthTokenResponse(BaseModel):
    """Seller credentials returned by a successful token exchange."""

    model_config = ConfigDict(extra="ignore")

    user_id: str
    access_token: str
    refresh_token: str = ""
    public_key: str = ""

    @field_validator("user_id", mode="before")
    @classmethod
    def _user_id_as_str(cls, value: Any) -> Any:
        return str(value) if isinstance(value, int) else value


class PayerIdentification(BaseModel):
    type: str
    number: str


class Payer(BaseModel):
    email: str
    identification: PayerIdentification


class PaymentCreateRequest(BaseModel):
    """Body of ``POST /v1/payments``."""

    transaction_amount: Decimal
    description: str
    payment_method_id: str = "pix"
    payer: Payer
    application_fee: Decimal
    notification_url: Optional[str] = None

    def to_json(self) -> dict[str, Any]:
        body = self.model_dump(exclude_none=True)
        body["transaction_amount"] = float(self.transaction_amount)
        body["application_fee"] = float(self.application_fee)
        return body


class TransactionData(BaseModel):
    model_config = ConfigDict(extra="ignore")

    qr_code: Optional[str] = None
    qr_code_base64: Optional[str] = None


class PointOfInteraction(BaseModel):
    model_config = ConfigDict(extra="ignore")

    transaction_data: TransactionData = Field(default_factory=TransactionData)


class FeeDetail(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: str = ""
    amount: Decimal = Decimal("0")


class PaymentResponse(BaseModel):
    """Payment as reported by ``POST /v1/payments`` and ``GET /v1/payments/{id}``."""

    model_config = ConfigDict(extra="ignore")

    id: str
    status: str
    status_detail: Optional[str] = None
    transaction_amount: Decimal = Decimal("0")
    application_fee: Optional[Decimal] = None
    fee_details: list[FeeDetail] = Field(default_factory=list)
    point_of_interaction: PointOfInteraction = Field(default_factory=PointOfInteraction)

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, value: Any) -> Any:
        return str(value) if isinstance(value, int) else value

    @property
    def qr_code(self) -> Optional[str]:
        return self.point_of_interaction.transaction_data.qr_code

    @property
    def qr_code_base64(self) -> Optional[str]:
        return self.point_of_interaction.transaction_data.qr_code_base64

    @property
    def marketplace_fee(self) -> Decimal:
        """Platform fee of the payment, zero when the gateway reports none."""
        if self.application_fee is not None:
            return self.application_fee
        return sum(
            (fee.amount for fee in self.fee_details if fee.type == "application_fee"),
            Decimal("0"),
        )


class MercadoPagoClient:
    """
    Thin client over the Mercado Pago REST API.

    Args:
        base_url (str): API root, e.g. ``https://api.mercadopago.com``.
        timeout (float): Seconds before a call fails with ``GatewayTimeoutError``.
        session (requests.Session | None): Session to reuse for connection pooling.
    """

    def __init__(
        self, base_url: str, timeout: float, session: Optional[requests.Session] = None
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def exchange_code(self, body: OAuthTokenRequest) -> OAuthTokenResponse:
        """Trade an authorization code for the seller's delegated credentials."""
        logger.info("Exchanging authorization code %s... for seller credentials", body.code[:5])
        data = self._request(
            "POST", "/oauth/token", OAuthExchangeError, json=body.model_dump()
        )
        return self._parse(OAuthTokenResponse, data, OAuthExchangeError)

    def create_payment(
        self,
        access_token: str,
        body: PaymentCreateRequest,
        idempotency_key: Optional[str] = None,
    ) -> PaymentResponse:
        """Create a payment authenticated with ``access_token``."""
        headers = {"X-Idempotency-Key": idempotency_key or str(uuid.uuid4())}
        data = self._request(
            "POST",
            "/v1/payments",
            PaymentCreationError,
            access_token=access_token,
            json=body.to_json(),
            headers=headers,
        )
        return self._parse(PaymentResponse, data, PaymentCreationError)

    def get_payment(self, access_token: str, payment_id: str) -> PaymentResponse:
        """Fetch the current state of a payment."""
        data = self._request(
            "GET", f"/v1/payments/{payment_id}", PaymentFetchError, access_token=access_token
        )
        return self._parse(PaymentResponse, data, PaymentFetchError)

    def _request(
        self,
        method: str,
        path: str,
        error_cls: Type[UpstreamError],
        access_token: Optional[str] = None,
        json: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> dict[str, Any]:
        request_headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if access_token:
            request_headers["Authorization"] = f"Bearer {access_token}"
        if headers:
            request_headers.update(headers)

        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(
                method, url, json=json, headers=request_headers, timeout=self.timeout
            )
        except requests.Timeout as e:
            logger.error("Gateway call %s %s timed out after %ss", method, path, self.timeout)
            raise GatewayTimeoutError(
                f"Gateway did not answer within {self.timeout} seconds", detail=path
            ) from e
        except requests.RequestException as e:
            logger.error("Gateway call %s %s failed: %s", method, path, str(e))
            raise error_cls("Could not reach the payment gateway", detail=str(e)) from e

        try:
            data = response.json()
        except ValueError:
            data = {"message": response.text}

        if not response.ok:
            logger.error(
                "Gateway call %s %s returned %s: %s", method, path, response.status_code, data
            )
            raise error_cls(f"Gateway returned HTTP {response.status_code}", detail=data)
        if not isinstance(data, dict):
            raise error_cls("Unexpected gateway response", detail=data)
        return data

    @staticmethod
    def _parse(model: Type[BaseModel], data: dict[str, Any], error_cls: Type[UpstreamError]) -> Any:
        try:
            return model.model_validate(data)
        except PydanticValidationError as e:
            logger.error("Malformed gateway response for %s: %s", model.__name__, str(e))
            raise error_cls("Malformed gateway response", detail=str(e)) from e
