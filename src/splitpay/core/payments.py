"""Split-payment creation on behalf of a connected seller."""

import logging
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any, Optional

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, ConfigDict, Field

from splitpay.core.errors import PaymentCreationError, SellerNotFoundError, ValidationError
from splitpay.core.gateway import (
    MercadoPagoClient,
    Payer,
    PayerIdentification,
    PaymentCreateRequest,
)
from splitpay.core.models import PaymentRecord
from splitpay.core.money import compute_fee, parse_amount, parse_fee_percentage
from splitpay.core.settings import MercadoPagoSettings
from splitpay.core.store import Store

logger = logging.getLogger("payments")

PAYMENT_METHOD = "pix"
SPLIT_DETAIL = "Payment created on behalf of the seller. Marketplace fee retained automatically."


class SplitPaymentRequest(BaseModel):
    """
    Split payment requested by the dashboard.

    ``amount`` is the total charged to the payer and ``fee`` the marketplace
    percentage; both accept strings or JSON numbers. They are kept as received
    so that booleans and other non-numbers reach the money parsers unchanged.
    """

    model_config = ConfigDict(populate_by_name=True)

    seller_id: str = Field(..., alias="sellerId")
    amount: Any
    fee: Any
    payer_email: str = Field(..., alias="payerEmail")
    idempotency_key: Optional[str] = Field(None, alias="idempotencyKey")


class SplitPaymentResult(BaseModel):
    """What the payer needs to complete a Pix payment."""

    id: str
    status: str
    qr_code: Optional[str] = None
    qr_code_base64: Optional[str] = None
    detail: str = SPLIT_DETAIL
    amount: Decimal
    application_fee: Decimal


def build_payment_request(
    amount: Decimal, fee: Decimal, payer_email: str, settings: MercadoPagoSettings
) -> PaymentCreateRequest:
    """Assemble the gateway body for a Pix payment retaining ``fee`` for the platform."""
    return PaymentCreateRequest(
        transaction_amount=amount,
        description=settings.payment_description,
        payment_method_id=PAYMENT_METHOD,
        payer=Payer(
            email=payer_email,
            identification=PayerIdentification(
                type=settings.payer_identification_type,
                number=settings.payer_identification_number,
            ),
        ),
        application_fee=fee,
        notification_url=settings.notification_url,
    )


def create_split_payment(
    request: SplitPaymentRequest,
    settings: MercadoPagoSettings,
    gateway: MercadoPagoClient,
    store: Store,
) -> SplitPaymentResult:
    """
    Create a payment in the seller's name, keeping the marketplace fee.

    The payment is submitted with the seller's delegated access token; the
    platform credentials are never used here.

    Raises:
        ValidationError: If the amount, fee or payer email is malformed.
        SellerNotFoundError: If the seller never completed onboarding.
        PaymentCreationError: If the gateway refuses the payment.
        GatewayTimeoutError: If the gateway does not answer in time.
    """
    amount = parse_amount(request.amount)
    percentage = parse_fee_percentage(request.fee)
    payer_email = _require_email(request.payer_email)

    seller = store.get_seller(request.seller_id)
    if seller is None:
        logger.warning("Split payment requested for unknown seller %s", request.seller_id)
        raise SellerNotFoundError(request.seller_id)

    fee = compute_fee(amount, percentage)
    logger.info(
        "Creating split payment for seller %s: amount=%s fee=%s (%s%%)",
        seller.seller_id,
        amount,
        fee,
        percentage,
    )

    body = build_payment_request(amount, fee, payer_email, settings)
    result = gateway.create_payment(seller.access_token, body, request.idempotency_key)
    if not result.id:
        raise PaymentCreationError("Gateway did not return a payment id", detail=result.status)

    store.create_payment(
        PaymentRecord(
            payment_id=result.id,
            status=result.status,
            amount=amount,
            fee=fee,
            seller_id=seller.seller_id,
            created_at=datetime.now(UTC),
        )
    )
    logger.info("Split payment %s created with status %s", result.id, result.status)

    return SplitPaymentResult(
        id=result.id,
        status=result.status,
        qr_code=result.qr_code,
        qr_code_base64=result.qr_code_base64,
        amount=amount,
        application_fee=fee,
    )


def _require_email(value: Any) -> str:
    try:
        return validate_email(str(value or "").strip(), check_deliverability=False).normalized
    except EmailNotValidError as e:
        raise ValidationError(
            "'payerEmail' must be a valid email address.", detail={"payerEmail": value}
        ) from e
