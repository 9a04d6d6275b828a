"""API endpoints for Work Orders module."""

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.database.session import get_db
from src.modules.invoices.schemas import InvoiceResponse
from src.modules.work_orders.models import WorkOrderPriority, WorkOrderStatus
from src.modules.work_orders.schemas import (
    WorkOrderFilters,
    WorkOrderInvoiceRequest,
    WorkOrderResponse,
    WorkOrderSummary,
    WorkOrderUpdate,
)
from src.modules.work_orders.service import WorkOrderService
from src.shared.schemas.base import ApiResponse, PaginatedResponse

router = APIRouter(prefix="/work-orders", tags=["Work Orders"])


@router.get("", response_model=ApiResponse[PaginatedResponse[WorkOrderSummary]])
async def list_work_orders(
    work_order_status: WorkOrderStatus | None = Query(None, alias="status"),
    priority: WorkOrderPriority | None = Query(None),
    customer_id: int | None = Query(None),
    search: str | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    filters = WorkOrderFilters(
        status=work_order_status,
        priority=priority,
        customer_id=customer_id,
        search=search,
        page=page,
        limit=limit,
    )
    service = WorkOrderService(db)
    work_orders, total = await service.list_work_orders(filters)
    return ApiResponse(
        success=True,
        data=PaginatedResponse.create(
            items=[WorkOrderSummary.model_validate(w) for w in work_orders],
            total=total,
            page=page,
            limit=limit,
        ),
    )


@router.get("/{work_order_id}", response_model=ApiResponse[WorkOrderResponse])
async def get_work_order(work_order_id: int, db: AsyncSession = Depends(get_db)):
    service = WorkOrderService(db)
    work_order = await service.get_work_order_by_id(work_order_id)
    return ApiResponse(success=True, data=WorkOrderResponse.model_validate(work_order))


@router.patch("/{work_order_id}", response_model=ApiResponse[WorkOrderResponse])
async def update_work_order(
    work_order_id: int, data: WorkOrderUpdate, db: AsyncSession = Depends(get_db)
):
    service = WorkOrderService(db)
    work_order = await service.update_work_order(work_order_id, data)
    return ApiResponse(
        success=True,
        message="Work order updated successfully",
        data=WorkOrderResponse.model_validate(work_order),
    )


@router.post("/{work_order_id}/invoice", response_model=ApiResponse[InvoiceResponse])
async def generate_invoice(
    work_order_id: int,
    data: WorkOrderInvoiceRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
):
    """
    Invoice a completed work order.

    Repeating the request returns the invoice already generated (200 instead
    of 201).
    """
    service = WorkOrderService(db)
    invoice, created = await service.generate_invoice(work_order_id, data)
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return ApiResponse(
        success=True,
        message="Invoice generated" if created else "Work order is already invoiced",
        data=InvoiceResponse.model_validate(invoice),
    )
