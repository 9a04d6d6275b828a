"""WorkOrder and WorkOrderLine models."""

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


class WorkOrderStatus(StrEnum):
    """Work order progress. Any status may follow any other."""

    PENDING = "Pending"
    IN_PROGRESS = "In Progress"
    WAITING_DOCS = "Waiting Docs"
    COMPLETED = "Completed"


class WorkOrderPriority(StrEnum):
    LOW = "Low"
    NORMAL = "Normal"
    HIGH = "High"
    URGENT = "Urgent"


class WorkOrder(Base):
    """
    Job taken in at the counter, invoiced once it is completed.

    invoice_id is set the first time an invoice is generated and never
    changes afterwards.
    """

    __tablename__ = "work_orders"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    work_order_number: Mapped[str] = mapped_column(
        String(50), nullable=False, unique=True, index=True
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=WorkOrderStatus.PENDING.value, index=True
    )
    priority: Mapped[str] = mapped_column(
        String(20), nullable=False, default=WorkOrderPriority.NORMAL.value
    )
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    customer_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("customers.id"), nullable=True, index=True
    )
    customer_name: Mapped[str] = mapped_column(String(200), nullable=False)
    customer_mobile: Mapped[str | None] = mapped_column(String(30), nullable=True)
    customer_email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    beneficiary_name: Mapped[str] = mapped_column(String(200), nullable=False)
    beneficiary_id_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    beneficiary_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

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

    # Card to pay the government fee from when the order is invoiced
    wallet_card_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("wallet_cards.id"), nullable=True
    )
    invoice_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("invoices.id"), nullable=True, unique=True
    )

    reference_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    lines: Mapped[list["WorkOrderLine"]] = relationship(
        "WorkOrderLine",
        back_populates="work_order",
        cascade="all, delete-orphan",
        order_by="WorkOrderLine.id",
    )

    @property
    def is_completed(self) -> bool:
        return self.status == WorkOrderStatus.COMPLETED.value

    @property
    def is_invoiced(self) -> bool:
        return self.invoice_id is not None


class WorkOrderLine(Base):
    """Service line on a work order (fees copied from the catalog)."""

    __tablename__ = "work_order_lines"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    work_order_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("work_orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    service_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    description: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    service_fee: Mapped[Decimal] = mapped_column(Money, nullable=False)
    govt_fee: Mapped[Decimal] = mapped_column(Money, nullable=False)
    price: Mapped[Decimal] = mapped_column(Money, nullable=False)

    beneficiary_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    beneficiary_id_number: Mapped[str | None] = mapped_column(String(50), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    work_order: Mapped["WorkOrder"] = relationship("WorkOrder", back_populates="lines")
