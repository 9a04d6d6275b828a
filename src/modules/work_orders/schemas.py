"""Schemas for Work Orders module."""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from src.modules.payments.resolver import PaymentType
from src.modules.work_orders.models import WorkOrderPriority, WorkOrderStatus


class WorkOrderLineResponse(BaseModel):
    id: int
    service_id: int | None
    description: str
    category: str | None
    service_fee: float
    govt_fee: float
    price: float
    beneficiary_name: str | None
    beneficiary_id_number: str | None

    model_config = {"from_attributes": True}


class WorkOrderResponse(BaseModel):
    """Schema for work order response."""

    id: int
    work_order_number: str
    status: str
    priority: str
    due_date: date | None
    customer_id: int | None
    customer_name: str
    customer_mobile: str | None
    beneficiary_name: str
    beneficiary_id_number: str | None
    beneficiary_count: int
    service_fee: float
    govt_fee: float
    total: float
    per_person_total: float
    wallet_card_id: int | None
    invoice_id: int | None
    reference_number: str | None
    notes: str | None
    created_at: datetime
    lines: list[WorkOrderLineResponse]

    model_config = {"from_attributes": True}


class WorkOrderSummary(BaseModel):
    id: int
    work_order_number: str
    status: str
    priority: str
    due_date: date | None
    customer_name: str
    beneficiary_name: str
    total: float
    invoice_id: int | None

    model_config = {"from_attributes": True}


class WorkOrderFilters(BaseModel):
    status: WorkOrderStatus | None = None
    priority: WorkOrderPriority | None = None
    customer_id: int | None = None
    search: str | None = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=50, ge=1, le=100)


class WorkOrderUpdate(BaseModel):
    """Progress update. Fees and lines cannot be changed."""

    status: WorkOrderStatus | None = None
    priority: WorkOrderPriority | None = None
    due_date: date | None = None
    notes: str | None = None
    reference_number: str | None = Field(None, max_length=100)


class WorkOrderInvoiceRequest(BaseModel):
    """Payment for the invoice of a completed work order."""

    payment_type: PaymentType = PaymentType.CASH
    amount_received: Decimal | None = Field(None, ge=0)
    # Overrides the card chosen when the order was taken
    wallet_card_id: int | None = None
    wallet_deduction_id: int | None = None
