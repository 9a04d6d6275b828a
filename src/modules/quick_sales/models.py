"""QuickSale and QuickSaleLine models."""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import BigInteger, Date, DateTime, ForeignKey, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.core.database.base import Base, BigIntPK, Money


class QuickSale(Base):
    """Walk-in cash sale with no customer record. Always paid in full."""

    __tablename__ = "quick_sales"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    sale_number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True, index=True)

    service_fee: Mapped[Decimal] = mapped_column(Money, nullable=False)
    govt_fee: Mapped[Decimal] = mapped_column(Money, nullable=False)
    total: Mapped[Decimal] = mapped_column(Money, nullable=False)
    payment_type: Mapped[str] = mapped_column(String(20), nullable=False)
    amount_received: Mapped[Decimal] = mapped_column(Money, nullable=False)
    change: Mapped[Decimal] = mapped_column(
        Money, nullable=False, default=Decimal("0.00")
    )

    wallet_card_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("wallet_cards.id"), nullable=True
    )
    wallet_card_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    sale_date: Mapped[date] = mapped_column(Date, nullable=False, default=date.today)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    lines: Mapped[list["QuickSaleLine"]] = relationship(
        "QuickSaleLine",
        back_populates="quick_sale",
        cascade="all, delete-orphan",
        order_by="QuickSaleLine.id",
    )


class QuickSaleLine(Base):
    __tablename__ = "quick_sale_lines"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    quick_sale_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("quick_sales.id", ondelete="CASCADE"), nullable=False, index=True
    )
    service_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    description: Mapped[str] = mapped_column(String(255), nullable=False)
    service_fee: Mapped[Decimal] = mapped_column(Money, nullable=False)
    govt_fee: Mapped[Decimal] = mapped_column(Money, nullable=False)
    price: Mapped[Decimal] = mapped_column(Money, nullable=False)

    quick_sale: Mapped["QuickSale"] = relationship("QuickSale", back_populates="lines")
