"""Schemas for Quick Sales module."""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field


class QuickSaleCreate(BaseModel):
    """Walk-in sale: services and the cash handed over."""

    service_ids: list[int] = Field(..., min_length=1)
    amount_received: Decimal | None = Field(None, ge=0)
    wallet_card_id: int | None = None
    wallet_deduction_id: int | None = None
    notes: str | None = None


class QuickSaleLineResponse(BaseModel):
    id: int
    service_id: int | None
    description: str
    service_fee: float
    govt_fee: float
    price: float

    model_config = {"from_attributes": True}


class QuickSaleResponse(BaseModel):
    id: int
    sale_number: str
    service_fee: float
    govt_fee: float
    total: float
    payment_type: str
    amount_received: float
    change: float
    wallet_card_id: int | None
    wallet_card_name: str | None
    notes: str | None
    sale_date: date
    created_at: datetime
    lines: list[QuickSaleLineResponse]

    model_config = {"from_attributes": True}
