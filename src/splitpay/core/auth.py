"""Authentication module for JWT handling."""

from datetime import UTC, datetime, timedelta
from typing import Any, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import BaseModel

from splitpay.core.dependencies import get_settings
from splitpay.core.settings import MercadoPagoSettings

security = HTTPBearer()


class TokenData(BaseModel):
    """Token data model."""

    uid: str
    exp: Optional[datetime] = None


def create_access_token(uid: str, settings: MercadoPagoSettings) -> str:
    """
    Create a new JWT access token for a dashboard account.

    Raises:
        HTTPException: 503 while no signing key is configured.
    """
    if not settings.jwt_secret_key:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Token signing is not configured",
        )
    expire = datetime.now(UTC) + timedelta(minutes=settings.jwt_access_token_expire_minutes)
    to_encode = {"uid": uid, "exp": expire}
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    settings: MercadoPagoSettings = Depends(get_settings),
) -> TokenData:
    """Validate JWT token and return the account it was issued to."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    # An empty key would accept tokens anyone can sign
    if not settings.jwt_secret_key:
        raise credentials_exception
    try:
        payload = jwt.decode(
            credentials.credentials,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError:
        raise credentials_exception

    uid_value: Any | None = payload.get("uid")
    if not isinstance(uid_value, str):
        raise credentials_exception

    exp_value = payload.get("exp")
    if exp_value is None:
        raise credentials_exception

    token_data = TokenData(uid=uid_value, exp=datetime.fromtimestamp(exp_value, UTC))
    if token_data.exp is None or token_data.exp < datetime.now(UTC):
        raise credentials_exception

    return token_data
