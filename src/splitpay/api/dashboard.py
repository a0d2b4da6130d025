"""Dashboard endpoints: connected sellers and aggregate figures."""

import anyio
from fastapi import APIRouter, Depends

from splitpay.core.dependencies import get_store
from splitpay.core.reporting import compute_stats
from splitpay.core.store import Store

router = APIRouter(prefix="/api", tags=["dashboard"])


@router.get("/sellers")
async def list_sellers(store: Store = Depends(get_store)) -> list[dict[str, str]]:
    """List connected sellers. Credentials never leave the store."""
    sellers = await anyio.to_thread.run_sync(store.list_sellers)
    return [
        {"id": seller.seller_id, "connected_at": seller.connected_at.isoformat()}
        for seller in sellers
    ]


@router.get("/stats")
async def get_stats(store: Store = Depends(get_store)) -> dict:
    """Seller count plus totals of approved payments."""
    stats = await anyio.to_thread.run_sync(compute_stats, store)
    return {
        "total_sellers": stats.total_sellers,
        "total_amount": float(stats.total_amount),
        "total_fees": float(stats.total_fees),
    }
