"""
Storage for seller credentials, payments and dashboard accounts.

Services depend on the abstract ``Store``; ``SqlAlchemyStore`` is the
implementation used by the application. Every method opens its own session,
so a store instance holds no per-request state and can be shared.
"""

import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from typing import Any, Generator, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from splitpay.core.errors import DuplicateEmailError, StorageError
from splitpay.core.models import (
    AdminUser,
    AdminUserRecord,
    Payment,
    PaymentRecord,
    SellerCredentials,
    SellerRecord,
)

logger = logging.getLogger("store")

PAYMENT_MERGE_FIELDS = ("status", "amount", "fee", "seller_id", "created_at", "updated_at")


class Store(ABC):
    """Document-style access to the sellers, payments and admin_users collections."""

    @abstractmethod
    def get_seller(self, seller_id: str) -> Optional[SellerRecord]: ...

    @abstractmethod
    def put_seller(self, seller: SellerRecord) -> None:
        """Create or entirely replace the credentials of a seller."""

    @abstractmethod
    def delete_seller(self, seller_id: str) -> bool: ...

    @abstractmethod
    def list_sellers(self) -> list[SellerRecord]: ...

    @abstractmethod
    def count_sellers(self) -> int: ...

    @abstractmethod
    def get_payment(self, payment_id: str) -> Optional[PaymentRecord]: ...

    @abstractmethod
    def create_payment(self, payment: PaymentRecord) -> None:
        """
        Record a newly created payment.

        A row already written by reconciliation gets the seller link, creation
        time, amount and fee filled in; its reconciled status is kept.
        """

    @abstractmethod
    def merge_payment(self, payment_id: str, fields: dict[str, Any]) -> PaymentRecord:
        """
        Update the given fields of a payment, keeping every other stored field.

        Creates the payment when it does not exist yet.
        """

    @abstractmethod
    def list_payments(self, status: Optional[str] = None) -> list[PaymentRecord]: ...

    @abstractmethod
    def get_user_by_email(self, email: str) -> Optional[tuple[AdminUserRecord, str]]:
        """Return the account and its password hash."""

    @abstractmethod
    def create_user(self, user: AdminUserRecord, hashed_password: str) -> None: ...

    @abstractmethod
    def update_user(
        self,
        uid: str,
        display_name: Optional[str] = None,
        hashed_password: Optional[str] = None,
        last_sign_in_at: Optional[datetime] = None,
    ) -> bool: ...

    @abstractmethod
    def list_users(self) -> list[AdminUserRecord]: ...

    @abstractmethod
    def delete_user(self, uid: str) -> bool: ...


class SqlAlchemyStore(Store):
    """Store backed by a relational database through SQLAlchemy."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    @contextmanager
    def _session(self) -> Generator[Session, None, None]:
        db = self._session_factory()
        try:
            yield db
            db.commit()
        except IntegrityError:
            db.rollback()
            raise
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("Store operation failed: %s: %s", type(e).__name__, str(e))
            raise StorageError("Database operation failed", detail=str(e)) from e
        finally:
            db.close()

    # Sellers

    def get_seller(self, seller_id: str) -> Optional[SellerRecord]:
        with self._session() as db:
            row = db.get(SellerCredentials, seller_id)
            return SellerRecord.model_validate(row) if row else None

    def put_seller(self, seller: SellerRecord) -> None:
        try:
            with self._session() as db:
                # merge() replaces every column, so nothing of a previous grant survives
                db.merge(SellerCredentials(**seller.model_dump()))
        except IntegrityError as e:
            raise StorageError(
                "Concurrent seller update", detail={"seller_id": seller.seller_id}
            ) from e

    def delete_seller(self, seller_id: str) -> bool:
        with self._session() as db:
            row = db.get(SellerCredentials, seller_id)
            if row is None:
                return False
            db.delete(row)
            return True

    def list_sellers(self) -> list[SellerRecord]:
        with self._session() as db:
            rows = db.scalars(select(SellerCredentials).order_by(SellerCredentials.connected_at))
            return [SellerRecord.model_validate(row) for row in rows]

    def count_sellers(self) -> int:
        with self._session() as db:
            return int(db.scalar(select(func.count()).select_from(SellerCredentials)) or 0)

    # Payments

    def get_payment(self, payment_id: str) -> Optional[PaymentRecord]:
        with self._session() as db:
            row = db.get(Payment, payment_id)
            return PaymentRecord.model_validate(row) if row else None

    def create_payment(self, payment: PaymentRecord) -> None:
        try:
            self._record_payment(payment)
        except IntegrityError:
            # A notification inserted the row between our lookup and insert
            try:
                self._record_payment(payment)
            except IntegrityError as e:
                raise StorageError(
                    "Payment could not be recorded", detail={"payment_id": payment.payment_id}
                ) from e

    def _record_payment(self, payment: PaymentRecord) -> None:
        with self._session() as db:
            row = db.get(Payment, payment.payment_id)
            if row is None:
                db.add(Payment(**payment.model_dump()))
                return
            logger.info("Payment %s was reconciled before it was recorded", payment.payment_id)
            row.seller_id = payment.seller_id
            row.created_at = payment.created_at
            row.amount = payment.amount
            row.fee = payment.fee
            if row.updated_at is None:
                row.status = payment.status

    def merge_payment(self, payment_id: str, fields: dict[str, Any]) -> PaymentRecord:
        unknown = set(fields) - set(PAYMENT_MERGE_FIELDS)
        if unknown:
            raise ValueError(f"Unknown payment fields: {sorted(unknown)}")
        try:
            with self._session() as db:
                row = db.get(Payment, payment_id)
                if row is None:
                    row = Payment(payment_id=payment_id, fee=Decimal("0"))
                    db.add(row)
                for name, value in fields.items():
                    setattr(row, name, value)
                db.flush()
                return PaymentRecord.model_validate(row)
        except IntegrityError as e:
            raise StorageError(
                "Concurrent payment update", detail={"payment_id": payment_id}
            ) from e

    def list_payments(self, status: Optional[str] = None) -> list[PaymentRecord]:
        with self._session() as db:
            query = select(Payment)
            if status is not None:
                query = query.where(Payment.status == status)
            return [PaymentRecord.model_validate(row) for row in db.scalars(query)]

    # Dashboard accounts

    def get_user_by_email(self, email: str) -> Optional[tuple[AdminUserRecord, str]]:
        with self._session() as db:
            row = db.scalars(select(AdminUser).where(AdminUser.email == email)).first()
            if row is None:
                return None
            return AdminUserRecord.model_validate(row), row.hashed_password

    def create_user(self, user: AdminUserRecord, hashed_password: str) -> None:
        try:
            with self._session() as db:
                db.add(AdminUser(**user.model_dump(), hashed_password=hashed_password))
        except IntegrityError as e:
            raise DuplicateEmailError("Email already registered.", detail={"email": user.email}) from e

    def update_user(
        self,
        uid: str,
        display_name: Optional[str] = None,
        hashed_password: Optional[str] = None,
        last_sign_in_at: Optional[datetime] = None,
    ) -> bool:
        with self._session() as db:
            row = db.get(AdminUser, uid)
            if row is None:
                return False
            if display_name is not None:
                row.display_name = display_name
            if hashed_password is not None:
                row.hashed_password = hashed_password
            if last_sign_in_at is not None:
                row.last_sign_in_at = last_sign_in_at
            return True

    def list_users(self) -> list[AdminUserRecord]:
        with self._session() as db:
            rows = db.scalars(select(AdminUser).order_by(AdminUser.created_at))
            return [AdminUserRecord.model_validate(row) for row in rows]

    def delete_user(self, uid: str) -> bool:
        with self._session() as db:
            row = db.get(AdminUser, uid)
            if row is None:
                return False
            db.delete(row)
            return True
