"""Invoice and InvoiceLine models."""

from datetime import date, datetime
from decimal import Decimal
from enum import StrEnum

from sqlalchemy import (
    BigInteger,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.core.database.base import Base, BigIntPK, Money


class DocumentType(StrEnum):
    """Quotations are stored alongside invoices with their own numbering."""

    QUOTATION = "quotation"
    INVOICE = "invoice"


class InvoiceStatus(StrEnum):
    """Invoice status enumeration."""

    PAID = "Paid"
    PENDING = "Pending"
    QUOTATION = "Quotation"


class Invoice(Base):
    """
    Invoice or quotation issued to a customer.

    Fee totals and line prices are copies taken when the document was
    created. After creation only the status may change (Pending -> Paid).
    """

    __tablename__ = "invoices"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    invoice_number: Mapped[str] = mapped_column(
        String(50), nullable=False, unique=True, index=True
    )
    document_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=DocumentType.INVOICE.value, index=True
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False, index=True)

    # Customer snapshot
    customer_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("customers.id"), nullable=True, index=True
    )
    customer_name: Mapped[str] = mapped_column(String(200), nullable=False)
    customer_mobile: Mapped[str | None] = mapped_column(String(30), nullable=True)
    customer_email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Beneficiary: a person, or "N beneficiaries" on a combined invoice
    beneficiary_name: Mapped[str] = mapped_column(String(200), nullable=False)
    beneficiary_id_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    beneficiary_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    # Amounts
    service_fee: Mapped[Decimal] = mapped_column(
        Money, nullable=False, default=Decimal("0.00")
    )
    govt_fee: Mapped[Decimal] = mapped_column(
        Money, nullable=False, default=Decimal("0.00")
    )
    total: Mapped[Decimal] = mapped_column(
        Money, nullable=False, default=Decimal("0.00")
    )
    per_person_total: Mapped[Decimal] = mapped_column(
        Money, nullable=False, default=Decimal("0.00")
    )

    # Settlement
    payment_type: Mapped[str] = mapped_column(String(20), nullable=False)
    amount_received: Mapped[Decimal] = mapped_column(
        Money, nullable=False, default=Decimal("0.00")
    )
    change: Mapped[Decimal] = mapped_column(
        Money, nullable=False, default=Decimal("0.00")
    )

    # Government fee paid from a wallet card
    wallet_card_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("wallet_cards.id"), nullable=True, index=True
    )
    wallet_card_name: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Set when generated from a work order; at most one invoice per work order
    work_order_id: Mapped[int | None] = mapped_column(
        BigInteger, nullable=True, unique=True
    )

    # Number the document carried while it was a quotation
    quotation_number: Mapped[str | None] = mapped_column(String(50), nullable=True)

    reference_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    issue_date: Mapped[date] = mapped_column(Date, nullable=False, default=date.today)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    lines: Mapped[list["InvoiceLine"]] = relationship(
        "InvoiceLine",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceLine.id",
    )

    @property
    def is_quotation(self) -> bool:
        return self.document_type == DocumentType.QUOTATION.value

    @property
    def can_be_marked_paid(self) -> bool:
        return self.status == InvoiceStatus.PENDING.value


class InvoiceLine(Base):
    """Service line copied from the catalog at creation time."""

    __tablename__ = "invoice_lines"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    invoice_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True
    )
    service_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    description: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    service_fee: Mapped[Decimal] = mapped_column(Money, nullable=False)
    govt_fee: Mapped[Decimal] = mapped_column(Money, nullable=False)
    price: Mapped[Decimal] = mapped_column(Money, nullable=False)  # service_fee + govt_fee

    # Set on combined multi-beneficiary invoices
    beneficiary_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    beneficiary_id_number: Mapped[str | None] = mapped_column(String(50), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    invoice: Mapped["Invoice"] = relationship("Invoice", back_populates="lines")
