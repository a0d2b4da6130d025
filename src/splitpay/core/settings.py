"""
Settings for the split-payment application.
"""

from urllib.parse import urlsplit, urlunsplit

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

MP_API_BASE_URL = "https://api.mercadopago.com"
MP_AUTH_BASE_URL = "https://auth.mercadopago.com.br"
MP_OAUTH_REDIRECT_URI = "http://localhost:3000/callback"

WEBHOOK_PATH = "/webhook"

load_dotenv()


class MercadoPagoSettings(BaseSettings):
    """
    Settings for the Mercado Pago marketplace application.
    """

    mp_app_id: str = ""
    mp_client_secret: str = ""
    mp_access_token: str = ""
    redirect_uri: str = MP_OAUTH_REDIRECT_URI
    mp_api_base_url: str = MP_API_BASE_URL
    mp_auth_base_url: str = MP_AUTH_BASE_URL
    gateway_timeout_seconds: float = 5.0
    port: int = 3000
    database_url: str = "sqlite:///./splitpay.db"
    cors_origins: list[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]
    payment_description: str = "Venda Marketplace com Split (%)"
    payer_identification_type: str = "CPF"
    payer_identification_number: str = "19119119100"
    jwt_secret_key: str = ""
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_minutes: int = 30

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def app_id(self) -> str:
        """Alias for the platform application identifier."""
        return self.mp_app_id

    @property
    def client_secret(self) -> str:
        """Alias for the platform client secret."""
        return self.mp_client_secret

    @property
    def access_token(self) -> str:
        """Platform default access token."""
        return self.mp_access_token

    @property
    def notification_url(self) -> str:
        """
        Webhook URL handed to the gateway on payment creation.

        Lives on the same host as the OAuth redirect target.
        """
        parts = urlsplit(self.redirect_uri)
        return urlunsplit((parts.scheme, parts.netloc, WEBHOOK_PATH, "", ""))
