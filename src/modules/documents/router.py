"""API endpoints for creating documents at the counter."""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.database.session import get_db
from src.modules.documents.schemas import (
    InvoiceBatchResponse,
    InvoiceCreate,
    QuotationCreate,
    QuoteRequest,
    QuoteResponse,
    WorkOrderBatchResponse,
    WorkOrderCreate,
)
from src.modules.documents.service import DocumentCreationResult, DocumentService
from src.modules.invoices.schemas import InvoiceResponse
from src.modules.work_orders.schemas import WorkOrderResponse
from src.shared.schemas.base import ApiResponse

router = APIRouter(prefix="/documents", tags=["Documents"])


def _batch_message(result: DocumentCreationResult, noun: str) -> str:
    if result.complete:
        return f"{result.created_count} {noun} created successfully"
    return (
        f"Created {result.created_count} of {result.requested_count} {noun}; "
        f"stopped at #{result.failed_at}: {result.error}"
    )


def _set_batch_status(response: Response, result: DocumentCreationResult) -> None:
    response.status_code = (
        status.HTTP_201_CREATED if result.complete else status.HTTP_207_MULTI_STATUS
    )


@router.post("/quote", response_model=ApiResponse[QuoteResponse])
async def quote(data: QuoteRequest, db: AsyncSession = Depends(get_db)):
    """Preview totals (and change, if a payment is given). Nothing is saved."""
    service = DocumentService(db)
    return ApiResponse(success=True, data=await service.quote(data))


@router.post(
    "/quotations",
    response_model=ApiResponse[InvoiceBatchResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_quotation(
    data: QuotationCreate, response: Response, db: AsyncSession = Depends(get_db)
):
    service = DocumentService(db)
    result = await service.create_quotation(data)
    _set_batch_status(response, result)
    return ApiResponse(
        success=result.complete,
        message=_batch_message(result, "quotation(s)"),
        data=InvoiceBatchResponse(
            documents=[InvoiceResponse.model_validate(d) for d in result.documents],
            created_count=result.created_count,
            requested_count=result.requested_count,
            failed_at=result.failed_at,
            error=result.error,
            details=result.details,
        ),
    )


@router.post(
    "/invoices",
    response_model=ApiResponse[InvoiceBatchResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_invoice(
    data: InvoiceCreate, response: Response, db: AsyncSession = Depends(get_db)
):
    """
    Create invoice(s). With a wallet card the government fee is charged to
    the card before the invoice is saved.
    """
    service = DocumentService(db)
    result = await service.create_invoice(data)
    _set_batch_status(response, result)
    return ApiResponse(
        success=result.complete,
        message=_batch_message(result, "invoice(s)"),
        data=InvoiceBatchResponse(
            documents=[InvoiceResponse.model_validate(d) for d in result.documents],
            created_count=result.created_count,
            requested_count=result.requested_count,
            failed_at=result.failed_at,
            error=result.error,
            details=result.details,
        ),
    )


@router.post(
    "/work-orders",
    response_model=ApiResponse[WorkOrderBatchResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_work_order(
    data: WorkOrderCreate, response: Response, db: AsyncSession = Depends(get_db)
):
    service = DocumentService(db)
    result = await service.create_work_order(data)
    _set_batch_status(response, result)
    return ApiResponse(
        success=result.complete,
        message=_batch_message(result, "work order(s)"),
        data=WorkOrderBatchResponse(
            documents=[WorkOrderResponse.model_validate(d) for d in result.documents],
            created_count=result.created_count,
            requested_count=result.requested_count,
            failed_at=result.failed_at,
            error=result.error,
            details=result.details,
        ),
    )
