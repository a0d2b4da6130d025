"""Dashboard figures derived from stored sellers and payments."""

from decimal import Decimal

from splitpay.core.models import Stats
from splitpay.core.store import Store

APPROVED = "approved"


def compute_stats(store: Store) -> Stats:
    """
    Count every connected seller and total the approved payments.

    Payments in any other status contribute nothing to the amounts.
    """
    approved = store.list_payments(status=APPROVED)
    return Stats(
        total_sellers=store.count_sellers(),
        total_amount=sum((payment.amount for payment in approved), Decimal("0")),
        total_fees=sum((payment.fee for payment in approved), Decimal("0")),
    )
