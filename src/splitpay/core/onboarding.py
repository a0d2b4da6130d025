"""Seller onboarding through the Mercado Pago OAuth authorization-code flow."""

import logging
from datetime import UTC, datetime
from typing import Optional
from urllib.parse import urlencode

from pydantic import BaseModel

from splitpay.core.errors import MissingCodeError
from splitpay.core.gateway import MercadoPagoClient, OAuthTokenRequest
from splitpay.core.models import SellerRecord
from splitpay.core.settings import MercadoPagoSettings
from splitpay.core.store import Store

logger = logging.getLogger("onboarding")

SELLER_CONNECTED = "seller_connected"


class SellerConnected(BaseModel):
    """Emitted once a seller has granted access and the credentials are stored."""

    event: str = SELLER_CONNECTED
    seller_id: str
    connected_at: datetime


def build_authorization_url(settings: MercadoPagoSettings) -> str:
    """
    Build the URL a seller opens to grant the marketplace access to their account.

    Args:
        settings (MercadoPagoSettings): Platform application id and redirect target.

    Returns:
        str: Authorization URL with every query value percent-encoded.
    """
    query = urlencode(
        {
            "client_id": settings.app_id,
            "response_type": "code",
            "platform_id": "mp",
            "redirect_uri": settings.redirect_uri,
        }
    )
    return f"{settings.mp_auth_base_url.rstrip('/')}/authorization?{query}"


def exchange_code(
    code: Optional[str],
    settings: MercadoPagoSettings,
    gateway: MercadoPagoClient,
    store: Store,
) -> SellerConnected:
    """
    Exchange an authorization code for the seller's credentials and store them.

    Any credentials previously stored for the seller are replaced entirely.

    Raises:
        MissingCodeError: If ``code`` is empty; nothing is called or written.
        OAuthExchangeError: If the gateway rejects the exchange.
        GatewayTimeoutError: If the gateway does not answer in time.
        StorageError: If the credentials cannot be written.
    """
    if not code or not code.strip():
        logger.warning("OAuth callback received without an authorization code")
        raise MissingCodeError()

    credentials = gateway.exchange_code(
        OAuthTokenRequest(
            client_secret=settings.client_secret,
            client_id=settings.app_id,
            code=code.strip(),
            redirect_uri=settings.redirect_uri,
        )
    )

    connected_at = datetime.now(UTC)
    store.put_seller(
        SellerRecord(
            seller_id=credentials.user_id,
            access_token=credentials.access_token,
            refresh_token=credentials.refresh_token,
            public_key=credentials.public_key,
            connected_at=connected_at,
        )
    )
    logger.info("Seller %s connected successfully", credentials.user_id)
    return SellerConnected(seller_id=credentials.user_id, connected_at=connected_at)
