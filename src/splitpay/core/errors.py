"""
Error taxonomy for the split-payment backend.

Every error carries an ``ErrorKind`` tag. The HTTP layer maps the tag to a
status code in one place, so services only decide *what* went wrong.
"""

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Kinds of failure a request can end in."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    UPSTREAM = "upstream"
    STORAGE = "storage"


STATUS_CODES = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.UPSTREAM: 500,
    ErrorKind.STORAGE: 500,
}


class SplitPayError(Exception):
    """Base class for all errors raised by the split-payment services."""

    kind: ErrorKind = ErrorKind.UPSTREAM

    def __init__(self, message: str, detail: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail

    @property
    def status_code(self) -> int:
        return STATUS_CODES[self.kind]

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.message}
        if self.detail is not None:
            body["details"] = self.detail
        return body


class ValidationError(SplitPayError):
    """Missing or malformed input."""

    kind = ErrorKind.VALIDATION


class MissingCodeError(ValidationError):
    """The OAuth callback arrived without an authorization code."""

    def __init__(self, message: str = "Authorization code not provided.") -> None:
        super().__init__(message)


class WeakPasswordError(ValidationError):
    pass


class DuplicateEmailError(ValidationError):
    pass


class NotFoundError(SplitPayError):
    kind = ErrorKind.NOT_FOUND


class SellerNotFoundError(NotFoundError):
    """No credentials are stored for the requested seller."""

    def __init__(self, seller_id: str) -> None:
        super().__init__("Seller not found or not connected.", detail={"seller_id": seller_id})
        self.seller_id = seller_id


class AdminUserNotFoundError(NotFoundError):
    def __init__(self, uid: str) -> None:
        super().__init__("User not found.", detail={"uid": uid})
        self.uid = uid


class UpstreamError(SplitPayError):
    """The payment gateway rejected a call or could not be reached."""

    kind = ErrorKind.UPSTREAM


class OAuthExchangeError(UpstreamError):
    pass


class PaymentCreationError(UpstreamError):
    pass


class PaymentFetchError(UpstreamError):
    pass


class GatewayTimeoutError(UpstreamError):
    """A gateway call exceeded the configured timeout."""


class StorageError(SplitPayError):
    """Reading from or writing to the store failed."""

    kind = ErrorKind.STORAGE
