from decimal import Decimal
from typing import Any


class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        message: str,
        status_code: int = 400,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(AppException):
    """Resource not found."""

    def __init__(self, resource: str, identifier: Any = None):
        message = f"{resource} not found"
        if identifier:
            message = f"{resource} with id={identifier} not found"
        super().__init__(message=message, status_code=404)


class ValidationError(AppException):
    """Validation error. Raised before any mutation."""

    def __init__(self, message: str, field: str | None = None):
        details = {"field": field} if field else {}
        super().__init__(message=message, status_code=422, details=details)


class DuplicateError(AppException):
    """Duplicate resource."""

    def __init__(self, resource: str, field: str, value: Any):
        message = f"{resource} with {field}={value} already exists"
        super().__init__(message=message, status_code=409, details={"field": field, "value": value})


# --- Wallet ledger ---


class WalletError(AppException):
    """Base for wallet card failures. No balance was changed."""

    step = "wallet_deduction"


class CardNotFoundError(WalletError):
    """Wallet card does not exist."""

    def __init__(self, card_id: int):
        super().__init__(
            message=f"Wallet deduction failed: card with id={card_id} not found",
            status_code=404,
            details={"step": self.step, "card_id": card_id},
        )


class CardInactiveError(WalletError):
    """Wallet card exists but is not Active."""

    def __init__(self, card_id: int, card_name: str | None = None):
        label = card_name or f"id={card_id}"
        super().__init__(
            message=f"Wallet deduction failed: card {label} is inactive",
            status_code=409,
            details={"step": self.step, "card_id": card_id},
        )


class InsufficientBalanceError(WalletError):
    """Card balance does not cover the requested amount."""

    def __init__(self, card_id: int, requested: Decimal, available: Decimal):
        message = (
            f"Wallet deduction failed: insufficient balance on card {card_id}: "
            f"requested {requested}, available {available}"
        )
        super().__init__(
            message=message,
            status_code=409,
            details={
                "step": self.step,
                "card_id": card_id,
                "requested": str(requested),
                "available": str(available),
            },
        )


# --- Persistence ---


class PersistenceError(AppException):
    """
    Saving a document failed.

    card_charged tells the operator whether a wallet card is still charged for
    a document that does not exist; deduction_id can be passed back on retry
    so the card is not charged twice.
    """

    def __init__(
        self,
        message: str,
        card_charged: bool = False,
        deduction_id: int | None = None,
    ):
        details: dict[str, Any] = {"step": "persistence", "card_charged": card_charged}
        if deduction_id is not None:
            details["deduction_id"] = deduction_id
        super().__init__(message=message, status_code=500, details=details)

    @property
    def card_charged(self) -> bool:
        return bool(self.details.get("card_charged"))

    @property
    def deduction_id(self) -> int | None:
        return self.details.get("deduction_id")
