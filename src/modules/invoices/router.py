"""API endpoints for Invoices module."""

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.database.session import get_db
from src.modules.invoices.models import DocumentType, InvoiceStatus
from src.modules.invoices.schemas import (
    InvoiceFilters,
    InvoiceResponse,
    InvoiceStatusUpdate,
    InvoiceSummary,
    QuotationConvertRequest,
)
from src.modules.invoices.service import InvoiceService
from src.shared.schemas.base import ApiResponse, PaginatedResponse

router = APIRouter(prefix="/invoices", tags=["Invoices"])


@router.get("", response_model=ApiResponse[PaginatedResponse[InvoiceSummary]])
async def list_invoices(
    document_type: DocumentType | None = Query(None),
    invoice_status: InvoiceStatus | None = Query(None, alias="status"),
    customer_id: int | None = Query(None),
    search: str | None = Query(None),
    date_from: date | None = Query(None),
    date_to: date | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    """List invoices and quotations with optional filters."""
    filters = InvoiceFilters(
        document_type=document_type,
        status=invoice_status,
        customer_id=customer_id,
        search=search,
        date_from=date_from,
        date_to=date_to,
        page=page,
        limit=limit,
    )
    service = InvoiceService(db)
    invoices, total = await service.list_invoices(filters)
    return ApiResponse(
        success=True,
        data=PaginatedResponse.create(
            items=[InvoiceSummary.model_validate(i) for i in invoices],
            total=total,
            page=page,
            limit=limit,
        ),
    )


@router.get("/{invoice_id}", response_model=ApiResponse[InvoiceResponse])
async def get_invoice(invoice_id: int, db: AsyncSession = Depends(get_db)):
    service = InvoiceService(db)
    invoice = await service.get_invoice_by_id(invoice_id)
    return ApiResponse(success=True, data=InvoiceResponse.model_validate(invoice))


@router.patch("/{invoice_id}/status", response_model=ApiResponse[InvoiceResponse])
async def update_invoice_status(
    invoice_id: int, data: InvoiceStatusUpdate, db: AsyncSession = Depends(get_db)
):
    """Mark a pending invoice as paid."""
    service = InvoiceService(db)
    invoice = await service.update_status(invoice_id, data)
    return ApiResponse(
        success=True,
        message="Invoice marked as paid",
        data=InvoiceResponse.model_validate(invoice),
    )


@router.post("/{invoice_id}/convert", response_model=ApiResponse[InvoiceResponse])
async def convert_quotation(
    invoice_id: int, data: QuotationConvertRequest, db: AsyncSession = Depends(get_db)
):
    """Issue an invoice from a quotation."""
    service = InvoiceService(db)
    invoice = await service.convert_quotation(invoice_id, data)
    return ApiResponse(
        success=True,
        message="Quotation converted to invoice",
        data=InvoiceResponse.model_validate(invoice),
    )
