"""
Reconciliation of payment state from Mercado Pago notifications.

Notifications are only a hint that something changed. The payment is always
re-fetched from the gateway and merged into the stored record, so replayed or
reordered deliveries converge on whatever the gateway reported last.
"""

import logging
from datetime import UTC, datetime
from typing import Any, Mapping, Optional

from pydantic import BaseModel

from splitpay.core.errors import SplitPayError
from splitpay.core.gateway import MercadoPagoClient
from splitpay.core.models import PaymentRecord
from splitpay.core.store import Store

logger = logging.getLogger("webhooks")

PAYMENT_TOPIC = "payment"


class PaymentNotification(BaseModel):
    payment_id: str
    action: Optional[str] = None


def parse_notification(
    body: Any, query: Optional[Mapping[str, str]] = None
) -> Optional[PaymentNotification]:
    """
    Extract the payment id from a notification.

    Understands the JSON body ``{"type": "payment", "data": {"id": ...}}`` and
    the query-string form ``?type=payment&data.id=...`` (or ``topic``/``id``).

    Returns:
        PaymentNotification | None: None when the notification is not about a payment.
    """
    query = query or {}
    body = body if isinstance(body, dict) else {}

    topic = body.get("type") or body.get("topic") or query.get("type") or query.get("topic")
    if topic != PAYMENT_TOPIC:
        return None

    data = body.get("data")
    payment_id = data.get("id") if isinstance(data, dict) else None
    if payment_id is None:
        payment_id = query.get("data.id") or query.get("id")
    if payment_id is None or str(payment_id).strip() == "":
        return None

    return PaymentNotification(payment_id=str(payment_id).strip(), action=body.get("action"))


def reconcile_payment(
    payment_id: str, gateway: MercadoPagoClient, store: Store, access_token: str
) -> PaymentRecord:
    """
    Fetch a payment with the platform token and merge its state into the store.

    Only status, amount, fee and the update timestamp are written; the seller
    link and creation time recorded at creation are left untouched.

    Raises:
        PaymentFetchError: If the gateway refuses the lookup.
        GatewayTimeoutError: If the gateway does not answer in time.
        StorageError: If the record cannot be written.
    """
    payment = gateway.get_payment(access_token, payment_id)
    record = store.merge_payment(
        payment_id,
        {
            "status": payment.status,
            "amount": payment.transaction_amount,
            "fee": payment.marketplace_fee,
            "updated_at": datetime.now(UTC),
        },
    )
    logger.info("Payment %s reconciled with status %s", payment_id, payment.status)
    return record


def process_notification(
    notification: PaymentNotification, gateway: MercadoPagoClient, store: Store, access_token: str
) -> None:
    """
    Background continuation of the webhook.

    The gateway already got its acknowledgement, so failures are logged and
    dropped; a later redelivery retries the reconciliation.
    """
    try:
        reconcile_payment(notification.payment_id, gateway, store, access_token)
    except SplitPayError as e:
        logger.error(
            "Reconciliation of payment %s failed (%s): %s %s",
            notification.payment_id,
            e.kind.value,
            e.message,
            e.detail,
        )
