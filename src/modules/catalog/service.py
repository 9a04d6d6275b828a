"""Service for Catalog module (services and customers)."""

import logging

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.audit.service import AuditAction, AuditService
from src.core.exceptions import DuplicateError, NotFoundError, ValidationError
from src.modules.catalog.models import Customer, Service
from src.modules.catalog.schemas import CustomerCreate, ServiceCreate, ServiceUpdate
from src.modules.fees.calculator import ServiceFee
from src.shared.utils.money import round_money

logger = logging.getLogger(__name__)


class CatalogService:
    """Read and maintain the service catalog and customer list."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditService(db)

    # --- Services ---

    async def list_services(
        self, include_inactive: bool = False, search: str | None = None
    ) -> list[Service]:
        """List services ordered by category and name."""
        query = select(Service).order_by(Service.category, Service.name)
        if not include_inactive:
            query = query.where(Service.is_active == True)
        if search:
            term = f"%{search}%"
            query = query.where(or_(Service.name.ilike(term), Service.category.ilike(term)))
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_service_by_id(self, service_id: int) -> Service:
        result = await self.db.execute(select(Service).where(Service.id == service_id))
        service = result.scalar_one_or_none()
        if not service:
            raise NotFoundError("Service", service_id)
        return service

    async def get_service_fees(
        self, service_ids: list[int], lenient: bool = False
    ) -> list[ServiceFee]:
        """
        Fee snapshots for the selected services, in selection order.

        The same id may be selected more than once. Unknown or inactive ids
        raise ValidationError unless lenient, in which case an unknown id
        becomes a zero-fee placeholder line.
        """
        if not service_ids:
            return []

        result = await self.db.execute(
            select(Service).where(Service.id.in_(set(service_ids)))
        )
        by_id = {service.id: service for service in result.scalars().all()}

        fees: list[ServiceFee] = []
        for service_id in service_ids:
            service = by_id.get(service_id)
            if service is None:
                if not lenient:
                    raise ValidationError(
                        f"Service with id={service_id} not found", field="service_ids"
                    )
                logger.warning("Unknown service id %s priced as zero", service_id)
                fees.append(ServiceFee.placeholder(service_id))
                continue
            if not service.is_active and not lenient:
                raise ValidationError(
                    f"Service '{service.name}' is not active", field="service_ids"
                )
            fees.append(ServiceFee.from_service(service))
        return fees

    async def create_service(self, data: ServiceCreate) -> Service:
        service = Service(
            name=data.name,
            category=data.category,
            service_fee=round_money(data.service_fee),
            govt_fee=round_money(data.govt_fee),
        )
        self.db.add(service)
        await self.db.flush()

        await self.audit.log(
            action=AuditAction.CREATE,
            entity_type="Service",
            entity_id=service.id,
            entity_identifier=service.name,
            new_values={
                "service_fee": str(service.service_fee),
                "govt_fee": str(service.govt_fee),
            },
        )

        await self.db.commit()
        await self.db.refresh(service)
        return service

    async def update_service(self, service_id: int, data: ServiceUpdate) -> Service:
        """Update a service. Issued documents keep their own fee copies."""
        service = await self.get_service_by_id(service_id)
        old_values: dict[str, str] = {}
        new_values: dict[str, str] = {}

        for field in ("name", "category", "is_active"):
            value = getattr(data, field)
            if value is not None and value != getattr(service, field):
                old_values[field] = str(getattr(service, field))
                setattr(service, field, value)
                new_values[field] = str(value)

        for field in ("service_fee", "govt_fee"):
            value = getattr(data, field)
            if value is not None:
                value = round_money(value)
                if value != getattr(service, field):
                    old_values[field] = str(getattr(service, field))
                    setattr(service, field, value)
                    new_values[field] = str(value)

        if new_values:
            await self.audit.log(
                action=AuditAction.UPDATE,
                entity_type="Service",
                entity_id=service.id,
                entity_identifier=service.name,
                old_values=old_values,
                new_values=new_values,
            )

        await self.db.commit()
        await self.db.refresh(service)
        return service

    # --- Customers ---

    async def list_customers(self, search: str | None = None) -> list[Customer]:
        query = select(Customer).order_by(Customer.name)
        if search:
            term = f"%{search}%"
            query = query.where(or_(Customer.name.ilike(term), Customer.mobile.ilike(term)))
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_customer_by_id(self, customer_id: int) -> Customer:
        result = await self.db.execute(select(Customer).where(Customer.id == customer_id))
        customer = result.scalar_one_or_none()
        if not customer:
            raise NotFoundError("Customer", customer_id)
        return customer

    async def find_customer_by_mobile(self, mobile: str) -> Customer | None:
        normalized = mobile.replace(" ", "").replace("-", "")
        result = await self.db.execute(select(Customer).where(Customer.mobile == normalized))
        return result.scalar_one_or_none()

    async def create_customer(self, data: CustomerCreate, commit: bool = True) -> Customer:
        """Create a customer. Mobile numbers are unique."""
        if await self.find_customer_by_mobile(data.mobile):
            raise DuplicateError("Customer", "mobile", data.mobile)

        customer = Customer(
            name=data.name,
            mobile=data.mobile,
            email=data.email,
            id_number=data.id_number,
            nationality=data.nationality,
        )
        self.db.add(customer)
        await self.db.flush()

        await self.audit.log(
            action=AuditAction.CREATE,
            entity_type="Customer",
            entity_id=customer.id,
            entity_identifier=customer.mobile,
            new_values={"name": customer.name},
        )

        if commit:
            await self.db.commit()
            await self.db.refresh(customer)
        return customer

    async def get_or_create_customer(self, data: CustomerCreate) -> Customer:
        """Reuse the customer with this mobile if one exists."""
        existing = await self.find_customer_by_mobile(data.mobile)
        if existing:
            return existing
        return await self.create_customer(data)
