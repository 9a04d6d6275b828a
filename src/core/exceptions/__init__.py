from src.core.exceptions.base import (
    AppException,
    NotFoundError,
    ValidationError,
    DuplicateError,
    WalletError,
    CardNotFoundError,
    CardInactiveError,
    InsufficientBalanceError,
    PersistenceError,
)

__all__ = [
    "AppException",
    "NotFoundError",
    "ValidationError",
    "DuplicateError",
    "WalletError",
    "CardNotFoundError",
    "CardInactiveError",
    "InsufficientBalanceError",
    "PersistenceError",
]
