"""Schemas for Wallet module."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from src.modules.wallet.models import CardStatus, CardType


class WalletCardCreate(BaseModel):
    """Schema for creating a wallet card. New cards start at zero balance."""

    card_name: str = Field(..., min_length=1, max_length=100)
    card_type: CardType = CardType.OTHER
    status: CardStatus = CardStatus.ACTIVE
    linked_to_govt_fees: bool = True
    notes: str | None = None


class WalletCardUpdate(BaseModel):
    """Schema for updating card details. Balance is not editable here."""

    card_name: str | None = Field(None, min_length=1, max_length=100)
    card_type: CardType | None = None
    status: CardStatus | None = None
    linked_to_govt_fees: bool | None = None
    notes: str | None = None


class WalletCardResponse(BaseModel):
    id: int
    card_name: str
    card_type: str
    balance: float
    status: str
    linked_to_govt_fees: bool
    notes: str | None

    model_config = {"from_attributes": True}


class BalanceChangeRequest(BaseModel):
    """Top-up or withdrawal."""

    amount: Decimal = Field(..., gt=0)
    memo: str | None = Field(None, max_length=500)


class TransferRequest(BaseModel):
    to_card_id: int
    amount: Decimal = Field(..., gt=0)
    memo: str | None = Field(None, max_length=500)


class WalletTransactionResponse(BaseModel):
    id: int
    card_id: int
    transaction_type: str
    amount: float
    balance_after: float
    reference_invoice_id: int | None
    reference_quick_sale_id: int | None
    reversal_of_id: int | None
    counterpart_card_id: int | None
    memo: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class WalletSummary(BaseModel):
    total_balance: float
    active_cards: int
    linked_cards: int
