"""API endpoints for Quick Sales module."""

from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.database.session import get_db
from src.modules.quick_sales.schemas import QuickSaleCreate, QuickSaleResponse
from src.modules.quick_sales.service import QuickSaleService
from src.shared.schemas.base import ApiResponse

router = APIRouter(prefix="/quick-sales", tags=["Quick Sales"])


@router.post(
    "",
    response_model=ApiResponse[QuickSaleResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_quick_sale(data: QuickSaleCreate, db: AsyncSession = Depends(get_db)):
    service = QuickSaleService(db)
    sale = await service.create_quick_sale(data)
    return ApiResponse(
        success=True,
        message="Quick sale recorded successfully",
        data=QuickSaleResponse.model_validate(sale),
    )


@router.get("", response_model=ApiResponse[list[QuickSaleResponse]])
async def list_quick_sales(
    sale_date: date | None = Query(None),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    service = QuickSaleService(db)
    sales = await service.list_quick_sales(sale_date=sale_date, limit=limit)
    return ApiResponse(success=True, data=[QuickSaleResponse.model_validate(s) for s in sales])


@router.get("/{sale_id}", response_model=ApiResponse[QuickSaleResponse])
async def get_quick_sale(sale_id: int, db: AsyncSession = Depends(get_db)):
    service = QuickSaleService(db)
    sale = await service.get_quick_sale_by_id(sale_id)
    return ApiResponse(success=True, data=QuickSaleResponse.model_validate(sale))
