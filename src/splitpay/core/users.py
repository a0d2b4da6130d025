"""Operator dashboard accounts."""

import logging
import uuid
from datetime import UTC, datetime
from typing import Optional

from email_validator import EmailNotValidError, validate_email
from passlib.context import CryptContext
from pydantic import BaseModel, ConfigDict, Field

from splitpay.core.errors import AdminUserNotFoundError, ValidationError, WeakPasswordError
from splitpay.core.models import AdminUserRecord
from splitpay.core.store import Store

logger = logging.getLogger("users")

MIN_PASSWORD_LENGTH = 6

bcrypt_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class CreateUserRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: str
    password: str
    display_name: str = Field("", alias="displayName")


def _normalize_email(email: str) -> str:
    try:
        return validate_email(email.strip(), check_deliverability=False).normalized
    except EmailNotValidError as e:
        raise ValidationError("Invalid email address.", detail={"email": email}) from e


def _check_password(password: str) -> None:
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise WeakPasswordError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long."
        )


def create_user(request: CreateUserRequest, store: Store) -> AdminUserRecord:
    """
    Register a dashboard account.

    Raises:
        WeakPasswordError: If the password is shorter than six characters.
        DuplicateEmailError: If the email is already registered.
    """
    email = _normalize_email(request.email)
    _check_password(request.password)

    user = AdminUserRecord(
        uid=uuid.uuid4().hex,
        email=email,
        display_name=request.display_name,
        created_at=datetime.now(UTC),
    )
    store.create_user(user, bcrypt_context.hash(request.password))
    logger.info("Created dashboard user %s", user.uid)
    return user


def create_or_update_user(request: CreateUserRequest, store: Store) -> AdminUserRecord:
    """Create the account, or reset password and display name when the email exists."""
    email = _normalize_email(request.email)
    existing = store.get_user_by_email(email)
    if existing is None:
        return create_user(request, store)

    _check_password(request.password)
    user, _ = existing
    store.update_user(
        user.uid,
        display_name=request.display_name,
        hashed_password=bcrypt_context.hash(request.password),
    )
    logger.info("Updated dashboard user %s", user.uid)
    return user.model_copy(update={"display_name": request.display_name})


def list_users(store: Store) -> list[AdminUserRecord]:
    return store.list_users()


def delete_user(uid: str, store: Store) -> None:
    if not store.delete_user(uid):
        raise AdminUserNotFoundError(uid)
    logger.info("Deleted dashboard user %s", uid)


def authenticate_user(email: str, password: str, store: Store) -> Optional[AdminUserRecord]:
    """Return the account when the password matches, otherwise None."""
    try:
        email = _normalize_email(email)
    except ValidationError:
        return None
    found = store.get_user_by_email(email)
    if found is None:
        return None
    user, hashed_password = found
    if not bcrypt_context.verify(password, hashed_password):
        return None
    signed_in_at = datetime.now(UTC)
    store.update_user(user.uid, last_sign_in_at=signed_in_at)
    return user.model_copy(update={"last_sign_in_at": signed_in_at})
