"""WalletCard and WalletTransaction models."""

from datetime import datetime
from decimal import Decimal
from enum import StrEnum

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.core.database.base import Base, BigIntPK, Money


class CardStatus(StrEnum):
    """Wallet card status."""

    ACTIVE = "Active"
    INACTIVE = "Inactive"


class CardType(StrEnum):
    """Government portal the card is loaded for."""

    ICP = "ICP"
    MOHRE = "MOHRE"
    GDRFA = "GDRFA"
    DED = "DED"
    OTHER = "Other"


class WalletTransactionType(StrEnum):
    """Kinds of balance movement."""

    TOP_UP = "Top Up"
    DEDUCTION = "Deduction"
    WITHDRAWAL = "Withdrawal"
    TRANSFER_IN = "Transfer In"
    TRANSFER_OUT = "Transfer Out"
    REVERSAL = "Reversal"


class WalletCard(Base):
    """
    Prepaid card that government fees can be paid from.

    The balance is only changed through WalletService, always with a guarded
    UPDATE so it can never go below zero.
    """

    __tablename__ = "wallet_cards"
    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_wallet_cards_balance_non_negative"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    card_name: Mapped[str] = mapped_column(String(100), nullable=False)
    card_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=CardType.OTHER.value
    )
    balance: Mapped[Decimal] = mapped_column(
        Money, nullable=False, default=Decimal("0.00")
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=CardStatus.ACTIVE.value, index=True
    )
    linked_to_govt_fees: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    transactions: Mapped[list["WalletTransaction"]] = relationship(
        "WalletTransaction",
        back_populates="card",
        order_by="WalletTransaction.id",
    )

    @property
    def is_active(self) -> bool:
        return self.status == CardStatus.ACTIVE.value


class WalletTransaction(Base):
    """
    One balance movement on a card.

    A Deduction row is the record of a government fee paid from the card.
    reference_invoice_id is attached once the invoice is saved; a Reversal
    row points back at the deduction it undoes.
    """

    __tablename__ = "wallet_transactions"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    card_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("wallet_cards.id"), nullable=False, index=True
    )
    transaction_type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    balance_after: Mapped[Decimal] = mapped_column(Money, nullable=False)

    reference_invoice_id: Mapped[int | None] = mapped_column(
        BigInteger, nullable=True, index=True
    )
    reference_quick_sale_id: Mapped[int | None] = mapped_column(
        BigInteger, nullable=True, index=True
    )
    reversal_of_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("wallet_transactions.id"), nullable=True, unique=True
    )
    counterpart_card_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    memo: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False, index=True
    )

    card: Mapped["WalletCard"] = relationship("WalletCard", back_populates="transactions")

    @property
    def is_linked(self) -> bool:
        return self.reference_invoice_id is not None or self.reference_quick_sale_id is not None
