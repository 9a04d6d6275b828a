"""Schemas for Catalog module."""

from decimal import Decimal

from pydantic import BaseModel, Field, field_validator


# --- Service Schemas ---


class ServiceCreate(BaseModel):
    """Schema for creating a catalog service."""

    name: str = Field(..., min_length=1, max_length=200)
    category: str | None = Field(None, max_length=100)
    service_fee: Decimal = Field(default=Decimal("0.00"), ge=0)
    govt_fee: Decimal = Field(default=Decimal("0.00"), ge=0)


class ServiceUpdate(BaseModel):
    """Schema for updating a catalog service."""

    name: str | None = Field(None, min_length=1, max_length=200)
    category: str | None = Field(None, max_length=100)
    service_fee: Decimal | None = Field(None, ge=0)
    govt_fee: Decimal | None = Field(None, ge=0)
    is_active: bool | None = None


class ServiceResponse(BaseModel):
    """Schema for service response."""

    id: int
    name: str
    category: str | None
    service_fee: float
    govt_fee: float
    price: float
    is_active: bool

    model_config = {"from_attributes": True}


# --- Customer Schemas ---


class CustomerCreate(BaseModel):
    """Schema for creating a customer."""

    name: str = Field(..., min_length=1, max_length=200)
    mobile: str = Field(..., min_length=5, max_length=30)
    email: str | None = Field(None, max_length=255)
    id_number: str | None = Field(None, max_length=50)
    nationality: str | None = Field(None, max_length=100)

    @field_validator("mobile")
    @classmethod
    def normalize_mobile(cls, v: str) -> str:
        """Strip spaces and dashes so the same number always matches."""
        return v.replace(" ", "").replace("-", "")

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name cannot be blank")
        return v


class CustomerResponse(BaseModel):
    """Schema for customer response."""

    id: int
    name: str
    mobile: str
    email: str | None
    id_number: str | None
    nationality: str | None

    model_config = {"from_attributes": True}
