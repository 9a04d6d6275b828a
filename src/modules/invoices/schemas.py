"""Schemas for Invoices module."""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from src.modules.invoices.models import DocumentType, InvoiceStatus
from src.modules.payments.resolver import PaymentType


class InvoiceLineResponse(BaseModel):
    """Schema for invoice line response."""

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


class InvoiceResponse(BaseModel):
    """Schema for invoice (or quotation) response."""

    id: int
    invoice_number: str
    document_type: str
    status: str
    customer_id: int | None
    customer_name: str
    customer_mobile: str | None
    customer_email: str | None
    beneficiary_name: str
    beneficiary_id_number: str | None
    beneficiary_count: int
    service_fee: float
    govt_fee: float
    total: float
    per_person_total: float
    payment_type: str
    amount_received: float
    change: float
    wallet_card_id: int | None
    wallet_card_name: str | None
    work_order_id: int | None
    quotation_number: str | None
    reference_number: str | None
    notes: str | None
    issue_date: date
    created_at: datetime
    lines: list[InvoiceLineResponse]

    model_config = {"from_attributes": True}


class InvoiceSummary(BaseModel):
    """Row in the invoice list."""

    id: int
    invoice_number: str
    document_type: str
    status: str
    customer_name: str
    beneficiary_name: str
    total: float
    payment_type: str
    issue_date: date

    model_config = {"from_attributes": True}


class InvoiceFilters(BaseModel):
    """Filters for listing invoices."""

    document_type: DocumentType | None = None
    status: InvoiceStatus | None = None
    customer_id: int | None = None
    search: str | None = None
    date_from: date | None = None
    date_to: date | None = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=50, ge=1, le=100)


class InvoiceStatusUpdate(BaseModel):
    """Mark a pending (credit) invoice as paid."""

    status: InvoiceStatus
    payment_type: PaymentType | None = None


class QuotationConvertRequest(BaseModel):
    """Turn a quotation into an invoice. The wallet is not charged."""

    payment_type: PaymentType = PaymentType.CASH
    amount_received: Decimal | None = Field(None, ge=0)
