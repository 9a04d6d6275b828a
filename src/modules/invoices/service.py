"""Service for Invoices module: listing and status changes after creation."""

import logging

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.core.audit.service import AuditAction, AuditService
from src.core.documents.number_generator import DocumentNumberGenerator, DocumentPrefix
from src.core.exceptions import ValidationError
from src.modules.documents.repository import DocumentRepository, SqlDocumentRepository
from src.modules.invoices.models import DocumentType, Invoice, InvoiceStatus
from src.modules.invoices.schemas import (
    InvoiceFilters,
    InvoiceStatusUpdate,
    QuotationConvertRequest,
)
from src.modules.payments.resolver import PaymentType, resolve

logger = logging.getLogger(__name__)


class InvoiceService:
    """
    Invoices after they are issued.

    Amounts never change once an invoice exists. The only status change is
    a pending (credit) invoice being marked as paid; a quotation can be
    turned into an invoice once.
    """

    def __init__(self, db: AsyncSession, repository: DocumentRepository | None = None):
        self.db = db
        self.repository = repository or SqlDocumentRepository(db)
        self.audit = AuditService(db)

    async def get_invoice_by_id(self, invoice_id: int) -> Invoice:
        return await self.repository.get_invoice(invoice_id)

    async def list_invoices(self, filters: InvoiceFilters) -> tuple[list[Invoice], int]:
        """List invoices with filters."""
        query = select(Invoice).options(selectinload(Invoice.lines)).order_by(Invoice.id.desc())

        if filters.document_type is not None:
            query = query.where(Invoice.document_type == filters.document_type.value)
        if filters.status is not None:
            query = query.where(Invoice.status == filters.status.value)
        if filters.customer_id is not None:
            query = query.where(Invoice.customer_id == filters.customer_id)
        if filters.date_from is not None:
            query = query.where(Invoice.issue_date >= filters.date_from)
        if filters.date_to is not None:
            query = query.where(Invoice.issue_date <= filters.date_to)
        if filters.search:
            search_term = f"%{filters.search}%"
            query = query.where(
                or_(
                    Invoice.invoice_number.ilike(search_term),
                    Invoice.customer_name.ilike(search_term),
                    Invoice.customer_mobile.ilike(search_term),
                    Invoice.beneficiary_name.ilike(search_term),
                    Invoice.reference_number.ilike(search_term),
                )
            )

        count_query = select(func.count()).select_from(query.subquery())
        total = (await self.db.execute(count_query)).scalar() or 0

        offset = (filters.page - 1) * filters.limit
        result = await self.db.execute(query.offset(offset).limit(filters.limit))
        return list(result.scalars().all()), total

    async def update_status(self, invoice_id: int, data: InvoiceStatusUpdate) -> Invoice:
        """Mark a pending invoice as paid. Fees are not recalculated."""
        invoice = await self.repository.get_invoice(invoice_id)

        if data.status != InvoiceStatus.PAID or not invoice.can_be_marked_paid:
            raise ValidationError(
                f"Cannot change invoice {invoice.invoice_number} from "
                f"{invoice.status} to {data.status.value}; only Pending invoices can be marked Paid",
                field="status",
            )
        if data.payment_type == PaymentType.CREDIT:
            raise ValidationError("A paid invoice needs a payment method", field="payment_type")

        old_status = invoice.status
        invoice = await self.repository.update_invoice_status(invoice_id, InvoiceStatus.PAID.value)
        if data.payment_type is not None:
            invoice.payment_type = data.payment_type.value
            await self.db.flush()

        await self.audit.log(
            action=AuditAction.MARK_PAID,
            entity_type="Invoice",
            entity_id=invoice.id,
            entity_identifier=invoice.invoice_number,
            old_values={"status": old_status},
            new_values={"status": invoice.status, "payment_type": invoice.payment_type},
        )
        await self.db.commit()
        logger.info("Invoice %s marked as paid", invoice.invoice_number)
        return await self.repository.get_invoice(invoice_id)

    async def convert_quotation(
        self, invoice_id: int, data: QuotationConvertRequest
    ) -> Invoice:
        """
        Issue an invoice from a quotation at the quoted prices.

        The document gets an invoice number and keeps its quotation number.
        Cash short of the total leaves the invoice pending on credit.
        """
        invoice = await self.repository.get_invoice(invoice_id)
        if not invoice.is_quotation:
            raise ValidationError(
                f"{invoice.invoice_number} is not a quotation", field="invoice_id"
            )

        outcome = resolve(invoice.total, data.payment_type, data.amount_received)
        quotation_number = invoice.invoice_number

        invoice.quotation_number = quotation_number
        invoice.invoice_number = await DocumentNumberGenerator(self.db).generate(
            DocumentPrefix.INVOICE
        )
        invoice.document_type = DocumentType.INVOICE.value
        invoice.status = outcome.status.value
        invoice.payment_type = outcome.payment_type.value
        invoice.amount_received = outcome.amount_received
        invoice.change = outcome.change

        await self.audit.log(
            action=AuditAction.CONVERT_QUOTATION,
            entity_type="Invoice",
            entity_id=invoice.id,
            entity_identifier=invoice.invoice_number,
            old_values={"invoice_number": quotation_number, "status": InvoiceStatus.QUOTATION.value},
            new_values={"status": invoice.status, "payment_type": invoice.payment_type},
        )
        await self.db.commit()
        logger.info("Quotation %s converted to %s", quotation_number, invoice.invoice_number)
        return await self.repository.get_invoice(invoice_id)
