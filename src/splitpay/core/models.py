"""
Database models for seller OAuth credentials, split payments and dashboard accounts,
plus the plain records the store hands to the services.
"""

import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import DateTime, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from splitpay.core.database import Base

MONEY = Numeric(12, 2)


class SellerCredentials(Base):
    """
    Represents a seller's delegated Mercado Pago credentials.

    Attributes:
        seller_id (str): Mercado Pago user id of the seller.
        access_token (str): Delegated token used to act on the seller's behalf.
        refresh_token (str): Delegated token used to renew access.
        public_key (str): Public key usable by client-side payment widgets.
        connected_at (datetime): When the seller completed onboarding.
    """

    __tablename__ = "sellers"

    seller_id: Mapped[str] = mapped_column(String, primary_key=True, index=True)
    access_token: Mapped[str] = mapped_column(String, nullable=False)
    refresh_token: Mapped[str] = mapped_column(String, nullable=False, default="")
    public_key: Mapped[str] = mapped_column(String, nullable=False, default="")
    connected_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True))


class Payment(Base):
    """
    Represents a split payment created on behalf of a seller.

    Attributes:
        payment_id (str): Gateway-assigned payment id.
        status (str): Gateway status, e.g. pending or approved.
        amount (Decimal): Total charged to the payer.
        fee (Decimal): Portion retained by the platform.
        seller_id (str | None): Seller the payment settles to.
        created_at (datetime | None): When the payment was created here.
        updated_at (datetime | None): When reconciliation last touched it.
    """

    __tablename__ = "payments"

    payment_id: Mapped[str] = mapped_column(String, primary_key=True, index=True)
    status: Mapped[str] = mapped_column(String, nullable=False, index=True)
    amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    fee: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    seller_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    created_at: Mapped[datetime.datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    updated_at: Mapped[datetime.datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )


class AdminUser(Base):
    """A login account for the operator dashboard."""

    __tablename__ = "admin_users"

    uid: Mapped[str] = mapped_column(String, primary_key=True)
    email: Mapped[str] = mapped_column(String, unique=True, index=True, nullable=False)
    display_name: Mapped[str] = mapped_column(String, nullable=False, default="")
    hashed_password: Mapped[str] = mapped_column(String, nullable=False)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True))
    last_sign_in_at: Mapped[datetime.datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )


class SellerRecord(BaseModel):
    """Seller credential document."""

    model_config = ConfigDict(from_attributes=True)

    seller_id: str
    access_token: str
    refresh_token: str = ""
    public_key: str = ""
    connected_at: datetime.datetime


class PaymentRecord(BaseModel):
    """Payment document."""

    model_config = ConfigDict(from_attributes=True)

    payment_id: str
    status: str
    amount: Decimal
    fee: Decimal = Decimal("0")
    seller_id: Optional[str] = None
    created_at: Optional[datetime.datetime] = None
    updated_at: Optional[datetime.datetime] = None


class AdminUserRecord(BaseModel):
    """Dashboard account document. Never carries the password hash."""

    model_config = ConfigDict(from_attributes=True)

    uid: str
    email: str
    display_name: str = ""
    created_at: datetime.datetime
    last_sign_in_at: Optional[datetime.datetime] = None


class Stats(BaseModel):
    """Aggregate figures for the dashboard."""

    total_sellers: int = 0
    total_amount: Decimal = Field(default=Decimal("0"))
    total_fees: Decimal = Field(default=Decimal("0"))
