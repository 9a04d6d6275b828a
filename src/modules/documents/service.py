"""Service for creating quotations, work orders and invoices."""

import logging
from dataclasses import dataclass, replace
from datetime import date, timedelta
from typing import Any, Awaitable, Callable, Generic, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.audit.service import AuditAction, AuditService
from src.core.config import settings
from src.core.exceptions import AppException
from src.modules.catalog.schemas import CustomerCreate
from src.modules.catalog.service import CatalogService
from src.modules.documents.builder import (
    CustomerSnapshot,
    DocumentKind,
    DraftDocument,
    PaymentRequest,
    build_documents,
)
from src.modules.documents.repository import DocumentRepository, SqlDocumentRepository
from src.modules.documents.schemas import (
    CustomerInput,
    DocumentCreate,
    InvoiceCreate,
    QuotationCreate,
    QuoteRequest,
    QuoteResponse,
    WorkOrderCreate,
)
from src.modules.documents.settlement import save_with_wallet_charge
from src.modules.fees.calculator import beneficiary_count, compute_totals
from src.modules.invoices.models import Invoice
from src.modules.payments.resolver import resolve
from src.modules.wallet.service import WalletService
from src.modules.work_orders.models import WorkOrder

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class DocumentCreationResult(Generic[T]):
    """Outcome of a create request that may produce several documents."""

    documents: list[T]
    requested_count: int
    failed_at: int | None = None
    error: str | None = None
    # Details of the failure (step, card_charged, deduction_id)
    details: dict[str, Any] | None = None

    @property
    def created_count(self) -> int:
        return len(self.documents)

    @property
    def complete(self) -> bool:
        return self.failed_at is None


class DocumentService:
    """
    Creates documents from counter requests.

    Everything that can refuse a request (customer, services, beneficiaries,
    prices, cash shortfall) is checked before the wallet is charged or any
    row is written. An invoice that pays its government fee from a wallet
    card is charged first and saved second.
    """

    def __init__(self, db: AsyncSession, repository: DocumentRepository | None = None):
        self.db = db
        self.repository = repository or SqlDocumentRepository(db)
        self.catalog = CatalogService(db)
        self.wallet = WalletService(db)
        self.audit = AuditService(db)

    async def quote(self, data: QuoteRequest) -> QuoteResponse:
        """Totals for a selection, as shown while the operator is still choosing."""
        services = await self.catalog.get_service_fees(data.service_ids, lenient=True)
        selection = data.to_selection()
        count = beneficiary_count(selection.mode, selection.beneficiaries)
        totals = compute_totals(services, count)

        response = QuoteResponse(
            service_fee=float(totals.service_fee),
            govt_fee=float(totals.govt_fee),
            total=float(totals.total),
            per_person_total=float(totals.per_person_total),
            beneficiary_count=totals.beneficiary_count,
        )
        if data.payment_type is not None:
            outcome = resolve(totals.total, data.payment_type, data.amount_received)
            response.status = outcome.status.value
            response.payment_type = outcome.payment_type.value
            response.amount_received = float(outcome.amount_received)
            response.change = float(outcome.change)
        return response

    async def create_quotation(self, data: QuotationCreate) -> DocumentCreationResult[Invoice]:
        drafts, new_customer = await self._prepare(DocumentKind.QUOTATION, data)
        return await self._create_each(
            drafts,
            lambda draft, index, customer: self.save_invoice(draft, new_customer=customer),
            reload=self.repository.get_invoice,
            new_customer=new_customer,
        )

    async def create_work_order(self, data: WorkOrderCreate) -> DocumentCreationResult[WorkOrder]:
        drafts, new_customer = await self._prepare(DocumentKind.WORK_ORDER, data)
        drafts = [replace(draft, wallet_card_id=data.wallet_card_id) for draft in drafts]
        due_date = data.due_date or date.today() + timedelta(days=settings.work_order_due_days)
        return await self._create_each(
            drafts,
            lambda draft, index, customer: self.save_work_order(
                draft, data.priority, due_date, new_customer=customer
            ),
            reload=self.repository.get_work_order,
            new_customer=new_customer,
        )

    async def create_invoice(self, data: InvoiceCreate) -> DocumentCreationResult[Invoice]:
        """
        Create invoices, charging the wallet card for government fees.

        Several separate invoices are charged and saved one at a time after
        the card balance has been checked against their combined government
        fee. A failure stops the run; invoices already saved are kept.
        """
        payment = PaymentRequest(
            payment_type=data.payment_type,
            amount_tendered=data.amount_received,
            wallet_card_id=data.wallet_card_id,
        )
        drafts, new_customer = await self._prepare(DocumentKind.INVOICE, data, payment)

        charged = [draft for draft in drafts if draft.charges_wallet]
        if len(drafts) > 1 and charged:
            await self.wallet.check_can_deduct(
                data.wallet_card_id, sum(draft.totals.govt_fee for draft in charged)
            )

        reuse = {0: data.wallet_deduction_id} if data.wallet_deduction_id else {}

        async def save(
            draft: DraftDocument, index: int, customer: CustomerCreate | None
        ) -> Invoice:
            return await self.save_invoice(
                draft, reuse_deduction_id=reuse.get(index), new_customer=customer
            )

        return await self._create_each(
            drafts, save, reload=self.repository.get_invoice, new_customer=new_customer
        )

    async def save_invoice(
        self,
        draft: DraftDocument,
        reuse_deduction_id: int | None = None,
        new_customer: CustomerCreate | None = None,
    ) -> Invoice:
        """
        Save one invoice or quotation draft.

        A draft from a work order also links the invoice back to the order in
        the same transaction. new_customer is created in that transaction too,
        after the wallet card has been charged.
        """
        is_quotation = draft.kind == DocumentKind.QUOTATION

        async def save(card_name: str | None) -> Invoice:
            to_save = await self._attach_new_customer(draft, new_customer)
            invoice = await self.repository.create_invoice(to_save, wallet_card_name=card_name)
            if draft.work_order_id is not None:
                await self.repository.update_work_order(
                    draft.work_order_id, {"invoice_id": invoice.id}
                )
                await self.audit.log(
                    action=AuditAction.GENERATE_INVOICE,
                    entity_type="WorkOrder",
                    entity_id=draft.work_order_id,
                    new_values={"invoice_id": invoice.id},
                )
            await self.audit.log(
                action=(
                    AuditAction.CREATE_QUOTATION if is_quotation else AuditAction.CREATE_INVOICE
                ),
                entity_type="Invoice",
                entity_id=invoice.id,
                entity_identifier=invoice.invoice_number,
                new_values={
                    "total": str(invoice.total),
                    "govt_fee": str(invoice.govt_fee),
                    "status": invoice.status,
                    "payment_type": invoice.payment_type,
                    "work_order_id": invoice.work_order_id,
                },
            )
            return invoice

        label = "quotation" if is_quotation else "invoice"
        invoice = await save_with_wallet_charge(
            self.db,
            self.wallet,
            save,
            label=f"{label} for {draft.beneficiary_name}",
            link_field="invoice_id",
            card_id=draft.wallet_card_id if draft.charges_wallet else None,
            amount=draft.totals.govt_fee,
            memo=f"Government fee: {draft.customer.name} / {draft.beneficiary_name}",
            reuse_deduction_id=reuse_deduction_id,
        )
        logger.info("Created %s %s (total %s)", label, invoice.invoice_number, invoice.total)
        return await self.repository.get_invoice(invoice.id)

    async def save_work_order(
        self,
        draft: DraftDocument,
        priority,
        due_date: date | None,
        new_customer: CustomerCreate | None = None,
    ) -> WorkOrder:
        async def save(_card_name: str | None) -> WorkOrder:
            to_save = await self._attach_new_customer(draft, new_customer)
            work_order = await self.repository.create_work_order(
                to_save, priority=priority, due_date=due_date
            )
            await self.audit.log(
                action=AuditAction.CREATE_WORK_ORDER,
                entity_type="WorkOrder",
                entity_id=work_order.id,
                entity_identifier=work_order.work_order_number,
                new_values={"total": str(work_order.total), "priority": work_order.priority},
            )
            return work_order

        work_order = await save_with_wallet_charge(
            self.db,
            self.wallet,
            save,
            label=f"work order for {draft.beneficiary_name}",
            link_field="invoice_id",
        )
        logger.info("Created work order %s", work_order.work_order_number)
        return await self.repository.get_work_order(work_order.id)

    # --- Helpers ---

    async def _prepare(
        self,
        kind: DocumentKind,
        data: DocumentCreate,
        payment: PaymentRequest | None = None,
    ) -> tuple[list[DraftDocument], CustomerCreate | None]:
        customer, new_customer = await self._resolve_customer(data.customer)
        services = await self.catalog.get_service_fees(
            data.service_ids, lenient=not settings.strict_service_lookup
        )
        drafts = build_documents(
            kind,
            customer,
            data.to_selection(),
            services,
            payment=payment,
            price_overrides=data.price_overrides,
            reference_number=data.reference_number,
            notes=data.notes,
        )
        return drafts, new_customer

    async def _resolve_customer(
        self, data: CustomerInput
    ) -> tuple[CustomerSnapshot, CustomerCreate | None]:
        """
        Snapshot of the paying customer.

        The second value is set when the customer has to be created; that
        happens only after the request has passed validation.
        """
        if data.customer_id is not None:
            customer = await self.catalog.get_customer_by_id(data.customer_id)
            return self._snapshot(customer), None

        if data.mobile:
            existing = await self.catalog.find_customer_by_mobile(data.mobile)
            if existing:
                return self._snapshot(existing), None
            new_customer = CustomerCreate(name=data.name, mobile=data.mobile, email=data.email)
            snapshot = CustomerSnapshot(
                name=new_customer.name, mobile=new_customer.mobile, email=data.email
            )
            return snapshot, new_customer

        # Walk-in customer, printed on the document only
        return CustomerSnapshot(name=data.name.strip(), email=data.email), None

    async def _attach_new_customer(
        self, draft: DraftDocument, new_customer: CustomerCreate | None
    ) -> DraftDocument:
        if new_customer is None:
            return draft
        customer = await self.catalog.create_customer(new_customer, commit=False)
        return replace(draft, customer=self._snapshot(customer))

    @staticmethod
    def _snapshot(customer) -> CustomerSnapshot:
        return CustomerSnapshot(
            name=customer.name,
            mobile=customer.mobile,
            email=customer.email,
            customer_id=customer.id,
        )

    async def _create_each(
        self,
        drafts: list[DraftDocument],
        save: Callable[[DraftDocument, int, CustomerCreate | None], Awaitable[T]],
        reload: Callable[[int], Awaitable[T]],
        new_customer: CustomerCreate | None = None,
    ) -> DocumentCreationResult[T]:
        """
        Save drafts in order, stopping at the first failure.

        A new customer is created with the first document that is saved;
        later drafts carry that customer's snapshot.
        """
        documents: list[T] = []
        saved_ids: list[int] = []
        customer: CustomerSnapshot | None = None
        for index, draft in enumerate(drafts):
            pending = new_customer if customer is None else None
            if customer is not None:
                draft = replace(draft, customer=customer)
            try:
                document = await save(draft, index, pending)
            except AppException as exc:
                if not documents:
                    raise
                logger.warning(
                    "Stopped after %s of %s documents: %s",
                    len(documents),
                    len(drafts),
                    exc.message,
                )
                # The failed save rolled back the session, expiring the kept rows
                documents = [await reload(document_id) for document_id in saved_ids]
                return DocumentCreationResult(
                    documents=documents,
                    requested_count=len(drafts),
                    failed_at=index + 1,
                    error=exc.message,
                    details=exc.details or None,
                )
            documents.append(document)
            saved_ids.append(document.id)
            if pending is not None:
                customer = CustomerSnapshot(
                    name=document.customer_name,
                    mobile=document.customer_mobile,
                    email=document.customer_email,
                    customer_id=document.customer_id,
                )
        return DocumentCreationResult(documents=documents, requested_count=len(drafts))
