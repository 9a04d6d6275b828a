"""Service for Work Orders module."""

import logging

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.core.audit.service import AuditAction, AuditService
from src.core.exceptions import PersistenceError, ValidationError
from src.modules.documents.builder import PaymentRequest, build_invoice_from_work_order
from src.modules.documents.repository import DocumentRepository, SqlDocumentRepository
from src.modules.documents.service import DocumentService
from src.modules.invoices.models import Invoice
from src.modules.work_orders.models import WorkOrder
from src.modules.work_orders.schemas import (
    WorkOrderFilters,
    WorkOrderInvoiceRequest,
    WorkOrderUpdate,
)

logger = logging.getLogger(__name__)


class WorkOrderService:
    """Progress tracking and invoicing of work orders."""

    def __init__(self, db: AsyncSession, repository: DocumentRepository | None = None):
        self.db = db
        self.repository = repository or SqlDocumentRepository(db)
        self.documents = DocumentService(db, self.repository)
        self.audit = AuditService(db)

    async def get_work_order_by_id(self, work_order_id: int) -> WorkOrder:
        return await self.repository.get_work_order(work_order_id)

    async def list_work_orders(self, filters: WorkOrderFilters) -> tuple[list[WorkOrder], int]:
        query = (
            select(WorkOrder)
            .options(selectinload(WorkOrder.lines))
            .order_by(WorkOrder.id.desc())
        )
        if filters.status is not None:
            query = query.where(WorkOrder.status == filters.status.value)
        if filters.priority is not None:
            query = query.where(WorkOrder.priority == filters.priority.value)
        if filters.customer_id is not None:
            query = query.where(WorkOrder.customer_id == filters.customer_id)
        if filters.search:
            search_term = f"%{filters.search}%"
            query = query.where(
                or_(
                    WorkOrder.work_order_number.ilike(search_term),
                    WorkOrder.customer_name.ilike(search_term),
                    WorkOrder.beneficiary_name.ilike(search_term),
                    WorkOrder.reference_number.ilike(search_term),
                )
            )

        count_query = select(func.count()).select_from(query.subquery())
        total = (await self.db.execute(count_query)).scalar() or 0

        offset = (filters.page - 1) * filters.limit
        result = await self.db.execute(query.offset(offset).limit(filters.limit))
        return list(result.scalars().all()), total

    async def update_work_order(self, work_order_id: int, data: WorkOrderUpdate) -> WorkOrder:
        """Update status, priority, due date or notes."""
        work_order = await self.repository.get_work_order(work_order_id)

        changes = {}
        old_values = {}
        for field, value in data.model_dump(exclude_unset=True).items():
            if value is None and field in ("status", "priority"):
                continue
            if hasattr(value, "value"):
                value = value.value
            if value != getattr(work_order, field):
                old_values[field] = str(getattr(work_order, field))
                changes[field] = value

        if not changes:
            return work_order

        work_order = await self.repository.update_work_order(work_order_id, changes)
        await self.audit.log(
            action=AuditAction.UPDATE,
            entity_type="WorkOrder",
            entity_id=work_order.id,
            entity_identifier=work_order.work_order_number,
            old_values=old_values,
            new_values={field: str(value) for field, value in changes.items()},
        )
        await self.db.commit()
        return await self.repository.get_work_order(work_order_id)

    async def generate_invoice(
        self, work_order_id: int, data: WorkOrderInvoiceRequest
    ) -> tuple[Invoice, bool]:
        """
        Invoice a completed work order.

        Returns (invoice, created). A work order that already has an invoice
        returns that invoice and creates nothing.
        """
        work_order = await self.repository.get_work_order(work_order_id)
        if work_order.invoice_id is not None:
            return await self.repository.get_invoice(work_order.invoice_id), False

        if not work_order.is_completed:
            raise ValidationError(
                f"Work order {work_order.work_order_number} is {work_order.status}; "
                "only Completed work orders can be invoiced",
                field="status",
            )

        draft = build_invoice_from_work_order(
            work_order,
            PaymentRequest(
                payment_type=data.payment_type,
                amount_tendered=data.amount_received,
                wallet_card_id=data.wallet_card_id,
            ),
        )
        try:
            invoice = await self.documents.save_invoice(
                draft, reuse_deduction_id=data.wallet_deduction_id
            )
        except PersistenceError as exc:
            # Lost a race with another request invoicing the same order
            existing = await self.repository.get_invoice_for_work_order(work_order_id)
            if existing is not None and not exc.card_charged:
                return existing, False
            raise

        logger.info(
            "Generated invoice %s from work order %s", invoice.invoice_number, work_order_id
        )
        return invoice, True
