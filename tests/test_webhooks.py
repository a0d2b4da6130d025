"""Test webhook parsing and payment reconciliation."""

from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

import pytest
from fastapi.testclient import TestClient

from splitpay.core.errors import GatewayTimeoutError, PaymentFetchError, StorageError
from splitpay.core.models import PaymentRecord
from splitpay.core.store import SqlAlchemyStore
from splitpay.core.webhooks import parse_notification, process_notification, reconcile_payment
from tests.conftest import PLATFORM_TOKEN, StubGateway


@pytest.fixture
def payment(store: SqlAlchemyStore) -> PaymentRecord:
    record = PaymentRecord(
        payment_id="P1",
        status="pending",
        amount=Decimal("100.00"),
        fee=Decimal("10.00"),
        seller_id="S1",
        created_at=datetime(2026, 1, 1, 12, 0, tzinfo=UTC),
    )
    store.create_payment(record)
    return record


class FailingMergeStore(SqlAlchemyStore):
    def merge_payment(self, payment_id: str, fields: dict[str, Any]) -> PaymentRecord:
        raise StorageError("Database operation failed", detail="disk I/O error")


@pytest.mark.parametrize(
    "body, query, expected",
    [
        ({"type": "payment", "data": {"id": "123"}}, {}, "123"),
        ({"type": "payment", "data": {"id": 123}}, {}, "123"),
        ({"action": "payment.updated", "type": "payment", "data": {"id": "9"}}, {}, "9"),
        ({}, {"type": "payment", "data.id": "77"}, "77"),
        (None, {"topic": "payment", "id": "88"}, "88"),
    ],
)
def test_parse_payment_notification(body: Any, query: dict, expected: str) -> None:
    notification = parse_notification(body, query)
    assert notification is not None
    assert notification.payment_id == expected


@pytest.mark.parametrize(
    "body",
    [
        {"type": "merchant_order", "data": {"id": "1"}},
        {"type": "payment", "data": {}},
        {"type": "payment", "data": {"id": ""}},
        {"data": {"id": "1"}},
        [],
        "payment",
    ],
)
def test_parse_ignores_other_notifications(body: Any) -> None:
    assert parse_notification(body) is None


def test_reconcile_uses_platform_token_and_keeps_seller(
    payment: PaymentRecord, gateway: StubGateway, store: SqlAlchemyStore
) -> None:
    gateway.set_remote("P1", "approved", "100.00", "10.00")

    record = reconcile_payment("P1", gateway, store, PLATFORM_TOKEN)

    assert gateway.calls == [("get_payment", PLATFORM_TOKEN, "P1")]
    assert record.status == "approved"
    assert record.seller_id == "S1"
    assert record.created_at is not None
    assert record.updated_at is not None


def test_reconcile_defaults_missing_fee_to_zero(
    payment: PaymentRecord, gateway: StubGateway, store: SqlAlchemyStore
) -> None:
    gateway.set_remote("P1", "rejected", "100.00")

    record = reconcile_payment("P1", gateway, store, PLATFORM_TOKEN)

    assert record.fee == Decimal("0")
    assert record.seller_id == "S1"


@pytest.mark.parametrize(
    "deliveries",
    [
        [("pending", "100.00", "10.00"), ("approved", "100.00", "10.00")],
        [("approved", "100.00", "10.00"), ("pending", "100.00", "10.00")],
    ],
    ids=["pending-then-approved", "approved-then-pending"],
)
def test_out_of_order_deliveries_follow_the_last_fetch(
    deliveries: list[tuple[str, str, str]],
    payment: PaymentRecord,
    gateway: StubGateway,
    store: SqlAlchemyStore,
) -> None:
    """
    Each notification re-fetches P1, so whichever fetch runs last decides the
    stored status while the seller link and creation time survive either order.
    """
    for status, amount, fee in deliveries:
        gateway.set_remote("P1", status, amount, fee)
        reconcile_payment("P1", gateway, store, PLATFORM_TOKEN)

    record = store.get_payment("P1")
    assert record is not None
    last_status, last_amount, last_fee = deliveries[-1]
    assert record.status == last_status
    assert record.amount == Decimal(last_amount)
    assert record.fee == Decimal(last_fee)
    assert record.seller_id == "S1"
    assert record.created_at is not None
    assert record.created_at.replace(tzinfo=None) == datetime(2026, 1, 1, 12, 0)
    assert record.updated_at is not None


def test_reconcile_unknown_payment_creates_unlinked_record(
    gateway: StubGateway, store: SqlAlchemyStore
) -> None:
    gateway.set_remote("P9", "approved", "50.00", "5.00")

    record = reconcile_payment("P9", gateway, store, PLATFORM_TOKEN)

    assert record.seller_id is None
    assert store.get_payment("P9") is not None


@pytest.mark.parametrize(
    "error",
    [
        PaymentFetchError("Gateway returned HTTP 404", detail={"message": "not found"}),
        GatewayTimeoutError("Gateway did not answer within 5.0 seconds"),
    ],
)
def test_process_notification_swallows_gateway_errors(
    error: Exception, payment: PaymentRecord, gateway: StubGateway, store: SqlAlchemyStore
) -> None:
    gateway.fetch_error = error
    notification = parse_notification({"type": "payment", "data": {"id": "P1"}})
    assert notification is not None

    process_notification(notification, gateway, store, PLATFORM_TOKEN)

    record = store.get_payment("P1")
    assert record is not None
    assert record.status == "pending"


def test_process_notification_swallows_storage_errors(
    store: SqlAlchemyStore, gateway: StubGateway
) -> None:
    failing_store = FailingMergeStore(store._session_factory)
    gateway.set_remote("P1", "approved", "100.00")
    notification = parse_notification({"type": "payment", "data": {"id": "P1"}})
    assert notification is not None

    process_notification(notification, gateway, failing_store, PLATFORM_TOKEN)


def test_webhook_acknowledges_and_reconciles(
    client: TestClient, payment: PaymentRecord, gateway: StubGateway, store: SqlAlchemyStore
) -> None:
    gateway.set_remote("P1", "approved", "100.00", "10.00")

    response = client.post("/webhook", json={"type": "payment", "data": {"id": "P1"}})

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    record = store.get_payment("P1")
    assert record is not None
    assert record.status == "approved"
    assert record.seller_id == "S1"


def test_webhook_acknowledges_when_reconciliation_fails(
    client: TestClient, payment: PaymentRecord, gateway: StubGateway
) -> None:
    gateway.fetch_error = PaymentFetchError("Could not reach the payment gateway")

    response = client.post("/webhook", json={"type": "payment", "data": {"id": "P1"}})

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.parametrize(
    "kwargs",
    [
        {"content": b"not json", "headers": {"content-type": "application/json"}},
        {"json": {"type": "merchant_order", "data": {"id": "1"}}},
        {"json": {}},
    ],
)
def test_webhook_acknowledges_anything(
    kwargs: dict, client: TestClient, gateway: StubGateway
) -> None:
    response = client.post("/webhook", **kwargs)

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert gateway.calls == []


def test_webhook_query_string_notification(
    client: TestClient, payment: PaymentRecord, gateway: StubGateway, store: SqlAlchemyStore
) -> None:
    gateway.set_remote("P1", "cancelled", "100.00", "10.00")

    response = client.post("/webhook?type=payment&data.id=P1")

    assert response.status_code == 200
    record = store.get_payment("P1")
    assert record is not None
    assert record.status == "cancelled"
