"""Request and response schemas for creating documents."""

from datetime import date
from decimal import Decimal
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field, field_validator, model_validator

from src.modules.documents.builder import BeneficiarySelection
from src.modules.fees.calculator import Beneficiary, BeneficiaryMode, parse_beneficiaries
from src.modules.invoices.schemas import InvoiceResponse
from src.modules.payments.resolver import PaymentType
from src.modules.work_orders.models import WorkOrderPriority
from src.modules.work_orders.schemas import WorkOrderResponse

T = TypeVar("T")


class CustomerInput(BaseModel):
    """
    Existing customer by id, or the details of a customer to use.

    A customer given by mobile number is looked up first and created only if
    no customer has that number.
    """

    customer_id: int | None = None
    name: str | None = Field(None, max_length=200)
    mobile: str | None = Field(None, max_length=30)
    email: str | None = Field(None, max_length=255)

    @field_validator("mobile")
    @classmethod
    def normalize_mobile(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.replace(" ", "").replace("-", "")
        return v or None

    @model_validator(mode="after")
    def check_identified(self) -> "CustomerInput":
        if self.customer_id is None and not (self.name and self.name.strip()):
            raise ValueError("Either customer_id or customer name is required")
        return self


class BeneficiaryInput(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    id_number: str = Field(default="", max_length=50)

    def to_beneficiary(self) -> Beneficiary:
        return Beneficiary(name=self.name.strip(), id_number=self.id_number.strip())


class BeneficiaryFields(BaseModel):
    """Beneficiary selection shared by every document request."""

    beneficiary_mode: BeneficiaryMode = BeneficiaryMode.SINGLE
    same_as_customer: bool = True
    beneficiary: BeneficiaryInput | None = None
    beneficiaries: list[BeneficiaryInput] = []
    # Bulk paste, one "name, id" per line; appended to `beneficiaries`
    beneficiaries_text: str | None = None
    combined: bool = True

    def to_selection(self) -> BeneficiarySelection:
        people = [b.to_beneficiary() for b in self.beneficiaries]
        people.extend(parse_beneficiaries(self.beneficiaries_text))
        return BeneficiarySelection(
            mode=self.beneficiary_mode,
            same_as_customer=self.same_as_customer,
            beneficiary=self.beneficiary.to_beneficiary() if self.beneficiary else None,
            beneficiaries=tuple(people),
            combined=self.combined,
        )


class DocumentCreate(BeneficiaryFields):
    customer: CustomerInput
    service_ids: list[int] = []
    # Typed-in line prices by service id; each must equal the catalog price
    price_overrides: dict[int, Decimal] = {}
    reference_number: str | None = Field(None, max_length=100)
    notes: str | None = None


class QuotationCreate(DocumentCreate):
    """Schema for creating a quotation."""


class WorkOrderCreate(DocumentCreate):
    """Schema for creating work orders (one per beneficiary unless combined)."""

    priority: WorkOrderPriority = WorkOrderPriority.NORMAL
    due_date: date | None = None
    wallet_card_id: int | None = None


class InvoiceCreate(DocumentCreate):
    """Schema for creating invoices directly at the counter."""

    payment_type: PaymentType = PaymentType.CASH
    amount_received: Decimal | None = Field(None, ge=0)
    wallet_card_id: int | None = None
    # Deduction left over from a failed save, reused instead of charging again
    wallet_deduction_id: int | None = None


class QuoteRequest(BeneficiaryFields):
    """Totals preview; nothing is saved."""

    service_ids: list[int] = []
    payment_type: PaymentType | None = None
    amount_received: Decimal | None = Field(None, ge=0)


class QuoteResponse(BaseModel):
    service_fee: float
    govt_fee: float
    total: float
    per_person_total: float
    beneficiary_count: int
    status: str | None = None
    payment_type: str | None = None
    amount_received: float | None = None
    change: float | None = None


class DocumentBatchResponse(BaseModel, Generic[T]):
    """
    Documents created by one request.

    When separate documents are created one after another and one fails,
    the ones already created stay; failed_at is the 1-based position of the
    failure and error its message. details carries the failed step and,
    for a wallet charge, whether the card is still charged and the
    deduction id to retry with.
    """

    documents: list[T]
    created_count: int
    requested_count: int
    failed_at: int | None = None
    error: str | None = None
    details: dict[str, Any] | None = None


InvoiceBatchResponse = DocumentBatchResponse[InvoiceResponse]
WorkOrderBatchResponse = DocumentBatchResponse[WorkOrderResponse]
