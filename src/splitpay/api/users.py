"""Dashboard account management endpoints."""

import functools
import logging

import anyio
from fastapi import APIRouter, Depends, status

from splitpay.core.dependencies import get_store
from splitpay.core.models import AdminUserRecord
from splitpay.core.store import Store
from splitpay.core.users import CreateUserRequest, create_user, delete_user, list_users

logger = logging.getLogger("users")

router = APIRouter(prefix="/api/users", tags=["users"])


def serialize_user(user: AdminUserRecord) -> dict:
    return {
        "uid": user.uid,
        "email": user.email,
        "displayName": user.display_name,
        "metadata": {
            "creationTime": user.created_at.isoformat(),
            "lastSignInTime": user.last_sign_in_at.isoformat() if user.last_sign_in_at else None,
        },
    }


@router.get("")
async def get_users(store: Store = Depends(get_store)) -> list[dict]:
    users = await anyio.to_thread.run_sync(list_users, store)
    return [serialize_user(user) for user in users]


@router.post("", status_code=status.HTTP_201_CREATED)
async def post_user(
    user_request: CreateUserRequest, store: Store = Depends(get_store)
) -> dict[str, str]:
    """Create a dashboard account. Passwords shorter than six characters are refused."""
    user = await anyio.to_thread.run_sync(functools.partial(create_user, user_request, store))
    return {"message": "User created successfully.", "uid": user.uid}


@router.delete("/{uid}")
async def remove_user(uid: str, store: Store = Depends(get_store)) -> dict[str, str]:
    await anyio.to_thread.run_sync(delete_user, uid, store)
    return {"message": "User deleted successfully."}
