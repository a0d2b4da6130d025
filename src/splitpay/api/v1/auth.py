"""Authentication endpoints."""

import anyio
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from splitpay.core.auth import TokenData, create_access_token, get_current_user
from splitpay.core.dependencies import get_settings, get_store
from splitpay.core.settings import MercadoPagoSettings
from splitpay.core.store import Store
from splitpay.core.users import authenticate_user

router = APIRouter(prefix="/auth", tags=["auth"])


class LoginRequest(BaseModel):
    email: str
    password: str


@router.post("/token")
async def login(
    credentials: LoginRequest,
    settings: MercadoPagoSettings = Depends(get_settings),
    store: Store = Depends(get_store),
) -> dict[str, str]:
    """Exchange dashboard email and password for a bearer token."""
    user = await anyio.to_thread.run_sync(
        authenticate_user, credentials.email, credentials.password, store
    )
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    token = create_access_token(user.uid, settings)
    return {"access_token": token, "token_type": "bearer"}


@router.get("/me")
async def get_me(user: TokenData = Depends(get_current_user)) -> dict[str, str]:
    """Echo the account behind the bearer token."""
    return {"uid": user.uid, "token_expires": str(user.exp)}
