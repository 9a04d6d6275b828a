"""API endpoints for Catalog module."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.database.session import get_db
from src.modules.catalog.schemas import (
    CustomerCreate,
    CustomerResponse,
    ServiceCreate,
    ServiceResponse,
    ServiceUpdate,
)
from src.modules.catalog.service import CatalogService
from src.shared.schemas.base import ApiResponse

router = APIRouter(tags=["Catalog"])


# --- Services ---


@router.get("/services", response_model=ApiResponse[list[ServiceResponse]])
async def list_services(
    include_inactive: bool = Query(False),
    search: str | None = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """List catalog services with their fee split."""
    service = CatalogService(db)
    services = await service.list_services(include_inactive=include_inactive, search=search)
    return ApiResponse(
        success=True,
        data=[ServiceResponse.model_validate(s) for s in services],
    )


@router.post(
    "/services",
    response_model=ApiResponse[ServiceResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_service(data: ServiceCreate, db: AsyncSession = Depends(get_db)):
    service = CatalogService(db)
    created = await service.create_service(data)
    return ApiResponse(
        success=True,
        message="Service created successfully",
        data=ServiceResponse.model_validate(created),
    )


@router.patch("/services/{service_id}", response_model=ApiResponse[ServiceResponse])
async def update_service(
    service_id: int, data: ServiceUpdate, db: AsyncSession = Depends(get_db)
):
    service = CatalogService(db)
    updated = await service.update_service(service_id, data)
    return ApiResponse(
        success=True,
        message="Service updated successfully",
        data=ServiceResponse.model_validate(updated),
    )


# --- Customers ---


@router.get("/customers", response_model=ApiResponse[list[CustomerResponse]])
async def list_customers(
    search: str | None = Query(None),
    db: AsyncSession = Depends(get_db),
):
    service = CatalogService(db)
    customers = await service.list_customers(search=search)
    return ApiResponse(
        success=True,
        data=[CustomerResponse.model_validate(c) for c in customers],
    )


@router.post(
    "/customers",
    response_model=ApiResponse[CustomerResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_customer(data: CustomerCreate, db: AsyncSession = Depends(get_db)):
    service = CatalogService(db)
    customer = await service.create_customer(data)
    return ApiResponse(
        success=True,
        message="Customer created successfully",
        data=CustomerResponse.model_validate(customer),
    )
