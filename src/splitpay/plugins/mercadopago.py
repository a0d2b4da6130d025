"""Mercado Pago plugin module.

This module provides the gateway-facing endpoints of the marketplace:
seller onboarding through OAuth, split payment creation and the webhook that
keeps payment state in sync with Mercado Pago.
"""

import functools
import html
import logging
from typing import Any

import anyio
from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.responses import HTMLResponse

from splitpay.core.dependencies import get_gateway, get_settings, get_store
from splitpay.core.errors import SplitPayError
from splitpay.core.gateway import MercadoPagoClient
from splitpay.core.onboarding import (
    SellerConnected,
    build_authorization_url,
    exchange_code,
)
from splitpay.core.payments import SplitPaymentRequest, create_split_payment
from splitpay.core.settings import MercadoPagoSettings
from splitpay.core.store import Store
from splitpay.core.webhooks import parse_notification, process_notification

# Setup module-level logger
logger = logging.getLogger("mercadopago")

CONNECTED_PAGE = """<!DOCTYPE html>
<html>
<body style="background:transparent; display:none;">
    <script>
        if (window.opener) {{
            try {{
                window.opener.postMessage({event}, '*');
                window.opener.focus();
            }} catch (e) {{}}
            window.close();
        }} else {{
            window.location.href = '/?status=success_connected';
        }}
    </script>
</body>
</html>
"""

ERROR_PAGE = """<!DOCTYPE html>
<html>
<body>
    <h1>Could not connect seller</h1>
    <p>{message}</p>
    <a href="/">Back to home</a>
</body>
</html>
"""


def render_connected_page(event: SellerConnected) -> str:
    """Page that tells the dashboard popup opener a seller connected, then closes."""
    return CONNECTED_PAGE.format(event=repr(html.escape(event.event)))


def render_error_page(error: SplitPayError) -> str:
    message = error.message
    if error.detail is not None:
        message = f"{message}: {error.detail}"
    return ERROR_PAGE.format(message=html.escape(message))


def create_mercadopago_router() -> APIRouter:
    """Create a router for the Mercado Pago integration."""

    router = APIRouter()

    @router.get("/auth/url")
    async def authorization_url(
        settings: MercadoPagoSettings = Depends(get_settings),
    ) -> dict[str, str]:
        """Build the onboarding URL a seller opens to connect their account."""
        url = build_authorization_url(settings)
        logger.info("Authorization URL generated for app %s", settings.app_id)
        return {"url": url}

    @router.get("/callback", response_class=HTMLResponse)
    async def oauth_callback(
        code: str | None = None,
        settings: MercadoPagoSettings = Depends(get_settings),
        gateway: MercadoPagoClient = Depends(get_gateway),
        store: Store = Depends(get_store),
    ) -> HTMLResponse:
        """
        Handle the OAuth redirect from Mercado Pago.

        Exchanges the code for the seller's credentials, stores them and
        answers with a page that notifies the dashboard. Failures are shown to
        the operator as an HTML page with a link back home.
        """
        logger.info("OAuth callback received: code=%s...", (code or "")[:5])
        try:
            event = await anyio.to_thread.run_sync(
                functools.partial(exchange_code, code, settings, gateway, store)
            )
        except SplitPayError as e:
            logger.error("OAuth error (%s): %s %s", e.kind.value, e.message, e.detail)
            return HTMLResponse(render_error_page(e), status_code=e.status_code)

        return HTMLResponse(render_connected_page(event))

    @router.post("/pay/split")
    async def pay_split(
        payment_request: SplitPaymentRequest,
        settings: MercadoPagoSettings = Depends(get_settings),
        gateway: MercadoPagoClient = Depends(get_gateway),
        store: Store = Depends(get_store),
    ) -> dict[str, Any]:
        """
        Create a Pix payment in the seller's name with the marketplace fee retained.

        Returns:
            dict: Payment id, status, Pix copy-paste code and QR code image.
        """
        result = await anyio.to_thread.run_sync(
            functools.partial(create_split_payment, payment_request, settings, gateway, store)
        )
        return {
            "id": result.id,
            "status": result.status,
            "qr_code": result.qr_code,
            "qr_code_base64": result.qr_code_base64,
            "detail": result.detail,
            "application_fee": float(result.application_fee),
        }

    @router.post("/webhook")
    async def webhook(
        request: Request,
        background_tasks: BackgroundTasks,
        settings: MercadoPagoSettings = Depends(get_settings),
        gateway: MercadoPagoClient = Depends(get_gateway),
        store: Store = Depends(get_store),
    ) -> dict[str, str]:
        """
        Receive a Mercado Pago notification.

        Always acknowledges with 200; reconciliation runs after the response
        and its outcome is never reported back to the gateway.
        """
        try:
            body = await request.json()
        except ValueError:
            body = {}

        notification = parse_notification(body, request.query_params)
        if notification is None:
            logger.info("Ignoring notification: %s", body)
        else:
            logger.info("Payment notification received for %s", notification.payment_id)
            background_tasks.add_task(
                process_notification, notification, gateway, store, settings.access_token
            )
        return {"status": "ok"}

    return router

