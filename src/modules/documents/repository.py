"""Storage for invoices, quotations and work orders."""

from datetime import date
from typing import Any, Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.core.documents.number_generator import DocumentNumberGenerator, DocumentPrefix
from src.core.exceptions import NotFoundError
from src.modules.documents.builder import DocumentKind, DraftDocument
from src.modules.invoices.models import DocumentType, Invoice, InvoiceLine
from src.modules.payments.resolver import PaymentType
from src.modules.work_orders.models import WorkOrder, WorkOrderLine, WorkOrderPriority
from src.shared.utils.money import ZERO


class DocumentRepository(Protocol):
    """
    What the document service needs from storage.

    create_* methods flush but do not commit; the caller owns the
    transaction so a document and its wallet link are saved together.
    """

    async def create_invoice(
        self, draft: DraftDocument, wallet_card_name: str | None = None
    ) -> Invoice: ...

    async def create_work_order(
        self,
        draft: DraftDocument,
        priority: WorkOrderPriority = WorkOrderPriority.NORMAL,
        due_date: date | None = None,
    ) -> WorkOrder: ...

    async def update_work_order(self, work_order_id: int, changes: dict[str, Any]) -> WorkOrder: ...

    async def update_invoice_status(self, invoice_id: int, status: str) -> Invoice: ...

    async def get_invoice(self, invoice_id: int) -> Invoice: ...

    async def get_work_order(self, work_order_id: int) -> WorkOrder: ...

    async def get_invoice_for_work_order(self, work_order_id: int) -> Invoice | None: ...


class SqlDocumentRepository:
    """DocumentRepository on the SQLAlchemy session."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.numbers = DocumentNumberGenerator(db)

    async def create_invoice(
        self, draft: DraftDocument, wallet_card_name: str | None = None
    ) -> Invoice:
        if draft.kind == DocumentKind.QUOTATION:
            prefix = DocumentPrefix.QUOTATION
            document_type = DocumentType.QUOTATION
        else:
            prefix = DocumentPrefix.INVOICE
            document_type = DocumentType.INVOICE

        outcome = draft.outcome
        invoice = Invoice(
            invoice_number=await self.numbers.generate(prefix),
            document_type=document_type.value,
            status=draft.status,
            customer_id=draft.customer.customer_id,
            customer_name=draft.customer.name,
            customer_mobile=draft.customer.mobile,
            customer_email=draft.customer.email,
            beneficiary_name=draft.beneficiary_name,
            beneficiary_id_number=draft.beneficiary_id_number,
            beneficiary_count=draft.totals.beneficiary_count,
            service_fee=draft.totals.service_fee,
            govt_fee=draft.totals.govt_fee,
            total=draft.totals.total,
            per_person_total=draft.totals.per_person_total,
            payment_type=outcome.payment_type.value if outcome else PaymentType.CREDIT.value,
            amount_received=outcome.amount_received if outcome else ZERO,
            change=outcome.change if outcome else ZERO,
            wallet_card_id=draft.wallet_card_id if draft.charges_wallet else None,
            wallet_card_name=wallet_card_name if draft.charges_wallet else None,
            work_order_id=draft.work_order_id,
            reference_number=draft.reference_number,
            notes=draft.notes,
            issue_date=date.today(),
        )
        invoice.lines = [
            InvoiceLine(
                service_id=line.service_id,
                description=line.description,
                category=line.category,
                service_fee=line.service_fee,
                govt_fee=line.govt_fee,
                price=line.price,
                beneficiary_name=line.beneficiary_name,
                beneficiary_id_number=line.beneficiary_id_number,
            )
            for line in draft.lines
        ]
        self.db.add(invoice)
        await self.db.flush()
        return invoice

    async def create_work_order(
        self,
        draft: DraftDocument,
        priority: WorkOrderPriority = WorkOrderPriority.NORMAL,
        due_date: date | None = None,
    ) -> WorkOrder:
        work_order = WorkOrder(
            work_order_number=await self.numbers.generate(DocumentPrefix.WORK_ORDER),
            status=draft.status,
            priority=WorkOrderPriority(priority).value,
            due_date=due_date,
            customer_id=draft.customer.customer_id,
            customer_name=draft.customer.name,
            customer_mobile=draft.customer.mobile,
            customer_email=draft.customer.email,
            beneficiary_name=draft.beneficiary_name,
            beneficiary_id_number=draft.beneficiary_id_number,
            beneficiary_count=draft.totals.beneficiary_count,
            service_fee=draft.totals.service_fee,
            govt_fee=draft.totals.govt_fee,
            total=draft.totals.total,
            per_person_total=draft.totals.per_person_total,
            wallet_card_id=draft.wallet_card_id,
            reference_number=draft.reference_number,
            notes=draft.notes,
        )
        work_order.lines = [
            WorkOrderLine(
                service_id=line.service_id,
                description=line.description,
                category=line.category,
                service_fee=line.service_fee,
                govt_fee=line.govt_fee,
                price=line.price,
                beneficiary_name=line.beneficiary_name,
                beneficiary_id_number=line.beneficiary_id_number,
            )
            for line in draft.lines
        ]
        self.db.add(work_order)
        await self.db.flush()
        return work_order

    async def update_work_order(self, work_order_id: int, changes: dict[str, Any]) -> WorkOrder:
        work_order = await self.get_work_order(work_order_id)
        for field, value in changes.items():
            setattr(work_order, field, value)
        await self.db.flush()
        return work_order

    async def update_invoice_status(self, invoice_id: int, status: str) -> Invoice:
        invoice = await self.get_invoice(invoice_id)
        invoice.status = status
        await self.db.flush()
        return invoice

    async def get_invoice(self, invoice_id: int) -> Invoice:
        result = await self.db.execute(
            select(Invoice)
            .where(Invoice.id == invoice_id)
            .options(selectinload(Invoice.lines))
            .execution_options(populate_existing=True)
        )
        invoice = result.scalar_one_or_none()
        if not invoice:
            raise NotFoundError("Invoice", invoice_id)
        return invoice

    async def get_work_order(self, work_order_id: int) -> WorkOrder:
        result = await self.db.execute(
            select(WorkOrder)
            .where(WorkOrder.id == work_order_id)
            .options(selectinload(WorkOrder.lines))
            .execution_options(populate_existing=True)
        )
        work_order = result.scalar_one_or_none()
        if not work_order:
            raise NotFoundError("Work order", work_order_id)
        return work_order

    async def get_invoice_for_work_order(self, work_order_id: int) -> Invoice | None:
        result = await self.db.execute(
            select(Invoice)
            .where(Invoice.work_order_id == work_order_id)
            .options(selectinload(Invoice.lines))
        )
        return result.scalar_one_or_none()
