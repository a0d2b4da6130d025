"""
FastAPI dependencies for the split-payment application.

Every collaborator a route needs is built here once and injected with
``Depends``; tests replace them through ``app.dependency_overrides``.
"""

import logging
from functools import lru_cache

from sqlalchemy.engine import Engine

from splitpay.core.database import make_engine, make_session_factory
from splitpay.core.gateway import MercadoPagoClient
from splitpay.core.settings import MercadoPagoSettings
from splitpay.core.store import SqlAlchemyStore, Store

# Setup logger
logger = logging.getLogger("dependencies")


@lru_cache()
def get_settings() -> MercadoPagoSettings:
    """
    Get the settings for the split-payment application.
    """
    settings = MercadoPagoSettings()  # Reads MP_* and friends from .env
    if not settings.app_id or not settings.client_secret:
        logger.warning("MP_APP_ID or MP_CLIENT_SECRET is not set; onboarding will fail")
    if not settings.jwt_secret_key:
        logger.warning("JWT_SECRET_KEY is not set; dashboard login is disabled")
    logger.info("get_settings returning settings with redirect URI: %s", settings.redirect_uri)
    return settings


@lru_cache()
def get_engine() -> Engine:
    """
    Engine for the configured database.
    """
    return make_engine(get_settings().database_url)


@lru_cache()
def get_store() -> Store:
    """
    Injection method to get the store.
    """
    return SqlAlchemyStore(make_session_factory(get_engine()))


@lru_cache()
def get_gateway() -> MercadoPagoClient:
    """
    Injection method to get the Mercado Pago client.
    """
    settings = get_settings()
    logger.info("Creating Mercado Pago client for %s", settings.mp_api_base_url)
    return MercadoPagoClient(settings.mp_api_base_url, timeout=settings.gateway_timeout_seconds)
