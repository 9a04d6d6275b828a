"""Tests for Invoices module."""

from decimal import Decimal

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.audit import AuditAction, list_audit_entries
from src.core.exceptions import NotFoundError, ValidationError
from src.modules.catalog.schemas import CustomerCreate, ServiceCreate
from src.modules.catalog.service import CatalogService
from src.modules.documents.schemas import CustomerInput, InvoiceCreate, QuotationCreate
from src.modules.documents.service import DocumentService
from src.modules.invoices.models import DocumentType, InvoiceStatus
from src.modules.invoices.schemas import (
    InvoiceFilters,
    InvoiceStatusUpdate,
    QuotationConvertRequest,
)
from src.modules.invoices.service import InvoiceService
from src.modules.payments.resolver import PaymentType


class TestInvoiceService:
    async def _setup_test_data(self, db_session: AsyncSession) -> dict:
        catalog = CatalogService(db_session)
        visa = await catalog.create_service(
            ServiceCreate(
                name="Visa Application", service_fee=Decimal("100"), govt_fee=Decimal("300")
            )
        )
        customer = await catalog.create_customer(
            CustomerCreate(name="Ahmed Ali", mobile="0501234567")
        )
        return {"service_id": visa.id, "customer_id": customer.id}

    async def _create_invoice(self, db_session: AsyncSession, data: dict, **fields):
        result = await DocumentService(db_session).create_invoice(
            InvoiceCreate(
                customer=CustomerInput(customer_id=data["customer_id"]),
                service_ids=[data["service_id"]],
                **fields,
            )
        )
        return result.documents[0]

    async def _create_quotation(self, db_session: AsyncSession, data: dict):
        result = await DocumentService(db_session).create_quotation(
            QuotationCreate(
                customer=CustomerInput(customer_id=data["customer_id"]),
                service_ids=[data["service_id"]],
            )
        )
        return result.documents[0]

    async def test_mark_pending_invoice_paid(self, db_session: AsyncSession):
        data = await self._setup_test_data(db_session)
        invoice = await self._create_invoice(db_session, data, payment_type=PaymentType.CREDIT)
        assert invoice.status == "Pending"
        service = InvoiceService(db_session)

        paid = await service.update_status(
            invoice.id,
            InvoiceStatusUpdate(status=InvoiceStatus.PAID, payment_type=PaymentType.BANK_TRANSFER),
        )

        assert paid.status == "Paid"
        assert paid.payment_type == "Bank Transfer"
        assert paid.total == Decimal("400.00")

        entries, total = await list_audit_entries(
            db_session, entity_type="Invoice", action=AuditAction.MARK_PAID
        )
        assert total == 1
        assert entries[0].old_values == {"status": "Pending"}

    async def test_paid_invoice_cannot_change(self, db_session: AsyncSession):
        data = await self._setup_test_data(db_session)
        invoice = await self._create_invoice(db_session, data)
        service = InvoiceService(db_session)

        with pytest.raises(ValidationError):
            await service.update_status(invoice.id, InvoiceStatusUpdate(status=InvoiceStatus.PAID))
        with pytest.raises(ValidationError):
            await service.update_status(
                invoice.id, InvoiceStatusUpdate(status=InvoiceStatus.PENDING)
            )

    async def test_paid_needs_payment_method(self, db_session: AsyncSession):
        data = await self._setup_test_data(db_session)
        invoice = await self._create_invoice(db_session, data, payment_type=PaymentType.CREDIT)

        with pytest.raises(ValidationError) as exc_info:
            await InvoiceService(db_session).update_status(
                invoice.id,
                InvoiceStatusUpdate(status=InvoiceStatus.PAID, payment_type=PaymentType.CREDIT),
            )
        assert exc_info.value.details["field"] == "payment_type"

    async def test_quotation_cannot_be_marked_paid(self, db_session: AsyncSession):
        data = await self._setup_test_data(db_session)
        quotation = await self._create_quotation(db_session, data)

        with pytest.raises(ValidationError):
            await InvoiceService(db_session).update_status(
                quotation.id, InvoiceStatusUpdate(status=InvoiceStatus.PAID)
            )

    async def test_convert_quotation(self, db_session: AsyncSession):
        data = await self._setup_test_data(db_session)
        quotation = await self._create_quotation(db_session, data)
        quotation_number = quotation.invoice_number
        service = InvoiceService(db_session)

        invoice = await service.convert_quotation(
            quotation.id, QuotationConvertRequest(amount_received=Decimal("450"))
        )

        assert invoice.id == quotation.id
        assert invoice.invoice_number.startswith("INV-")
        assert invoice.quotation_number == quotation_number
        assert invoice.document_type == "invoice"
        assert invoice.status == "Paid"
        assert invoice.change == Decimal("50.00")

        with pytest.raises(ValidationError):
            await service.convert_quotation(invoice.id, QuotationConvertRequest())

    async def test_list_invoices_filters(self, db_session: AsyncSession):
        data = await self._setup_test_data(db_session)
        await self._create_invoice(db_session, data)
        await self._create_invoice(db_session, data, payment_type=PaymentType.CREDIT)
        await self._create_quotation(db_session, data)
        service = InvoiceService(db_session)

        _, total = await service.list_invoices(InvoiceFilters())
        assert total == 3

        quotations, total = await service.list_invoices(
            InvoiceFilters(document_type=DocumentType.QUOTATION)
        )
        assert total == 1
        assert quotations[0].invoice_number.startswith("QUO-")

        pending, total = await service.list_invoices(
            InvoiceFilters(status=InvoiceStatus.PENDING)
        )
        assert total == 1
        assert pending[0].payment_type == "Credit"

        page, total = await service.list_invoices(InvoiceFilters(search="Ahmed", limit=2))
        assert total == 3
        assert len(page) == 2

    async def test_unknown_invoice(self, db_session: AsyncSession):
        with pytest.raises(NotFoundError):
            await InvoiceService(db_session).get_invoice_by_id(999)


class TestInvoicesAPI:
    async def _create_invoice(self, client: AsyncClient, payment_type: str) -> dict:
        response = await client.post(
            "/api/v1/services",
            json={"name": "Typing", "service_fee": "30", "govt_fee": "0"},
        )
        service_id = response.json()["data"]["id"]
        response = await client.post(
            "/api/v1/documents/invoices",
            json={
                "customer": {"name": "Sara Khan", "mobile": "0559876543"},
                "service_ids": [service_id],
                "payment_type": payment_type,
            },
        )
        assert response.status_code == 201
        return response.json()["data"]["documents"][0]

    async def test_mark_paid_endpoint(self, client: AsyncClient):
        invoice = await self._create_invoice(client, "Credit")

        response = await client.patch(
            f"/api/v1/invoices/{invoice['id']}/status",
            json={"status": "Paid", "payment_type": "Cash"},
        )

        assert response.status_code == 200
        assert response.json()["data"]["status"] == "Paid"

        response = await client.patch(
            f"/api/v1/invoices/{invoice['id']}/status", json={"status": "Pending"}
        )
        assert response.status_code == 422

    async def test_list_by_status(self, client: AsyncClient):
        await self._create_invoice(client, "Credit")

        response = await client.get("/api/v1/invoices", params={"status": "Pending"})

        assert response.status_code == 200
        body = response.json()["data"]
        assert body["total"] == 1
        assert body["items"][0]["customer_name"] == "Sara Khan"

    async def test_get_unknown_invoice(self, client: AsyncClient):
        response = await client.get("/api/v1/invoices/404")
        assert response.status_code == 404
        assert response.json()["success"] is False
