"""Wallet charge and document save failing halfway."""

from decimal import Decimal

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import PersistenceError, ValidationError
from src.modules.catalog.models import Customer
from src.modules.catalog.schemas import CustomerCreate, ServiceCreate
from src.modules.catalog.service import CatalogService
from src.modules.documents.repository import SqlDocumentRepository
from src.modules.documents.schemas import CustomerInput, InvoiceCreate
from src.modules.documents.service import DocumentService
from src.modules.fees.calculator import BeneficiaryMode
from src.modules.invoices.models import Invoice
from src.modules.wallet.models import CardType, WalletTransaction, WalletTransactionType
from src.modules.wallet.schemas import WalletCardCreate
from src.modules.wallet.service import WalletService


class FailingRepository(SqlDocumentRepository):
    """Raises a database error on the n-th invoice insert."""

    def __init__(self, db: AsyncSession, fail_on_call: int = 1):
        super().__init__(db)
        self.fail_on_call = fail_on_call
        self.calls = 0

    async def create_invoice(self, draft, wallet_card_name=None):
        self.calls += 1
        if self.calls == self.fail_on_call:
            raise OperationalError("INSERT INTO invoices", {}, Exception("disk I/O error"))
        return await super().create_invoice(draft, wallet_card_name=wallet_card_name)


async def _setup_test_data(db_session: AsyncSession, card_balance: str) -> dict:
    catalog = CatalogService(db_session)
    visa = await catalog.create_service(
        ServiceCreate(name="Visa Application", service_fee=Decimal("100"), govt_fee=Decimal("300"))
    )
    emirates_id = await catalog.create_service(
        ServiceCreate(name="Emirates ID", service_fee=Decimal("70"), govt_fee=Decimal("150"))
    )
    customer = await catalog.create_customer(
        CustomerCreate(name="Ahmed Ali", mobile="0501234567")
    )
    wallet = WalletService(db_session)
    card = await wallet.create_card(WalletCardCreate(card_name="ICP Card", card_type=CardType.ICP))
    await wallet.top_up(card.id, Decimal(card_balance))
    return {
        "service_ids": [visa.id, emirates_id.id],
        "customer_id": customer.id,
        "card_id": card.id,
    }


def _invoice_request(data: dict, **overrides) -> InvoiceCreate:
    fields = {
        "customer": CustomerInput(customer_id=data["customer_id"]),
        "service_ids": data["service_ids"],
        "wallet_card_id": data["card_id"],
    }
    fields.update(overrides)
    return InvoiceCreate(**fields)


async def _balance(db_session: AsyncSession, card_id: int) -> Decimal:
    return (await WalletService(db_session).get_card(card_id)).balance


async def _transactions(db_session: AsyncSession, kind: WalletTransactionType) -> list:
    result = await db_session.execute(
        select(WalletTransaction)
        .where(WalletTransaction.transaction_type == kind.value)
        .order_by(WalletTransaction.id)
    )
    return list(result.scalars().all())


async def _invoice_count(db_session: AsyncSession) -> int:
    return (await db_session.execute(select(func.count()).select_from(Invoice))).scalar()


class TestChargeThenSave:
    async def test_failed_save_reverses_charge(self, db_session: AsyncSession):
        data = await _setup_test_data(db_session, "1000")
        service = DocumentService(db_session, repository=FailingRepository(db_session))

        with pytest.raises(PersistenceError) as exc_info:
            await service.create_invoice(_invoice_request(data))

        assert exc_info.value.card_charged is False
        assert exc_info.value.details["step"] == "persistence"
        assert await _invoice_count(db_session) == 0
        assert await _balance(db_session, data["card_id"]) == Decimal("1000.00")
        [deduction] = await _transactions(db_session, WalletTransactionType.DEDUCTION)
        [reversal] = await _transactions(db_session, WalletTransactionType.REVERSAL)
        assert reversal.reversal_of_id == deduction.id

    async def test_failed_reversal_reports_charge_and_retry_reuses_it(
        self, db_session: AsyncSession, monkeypatch
    ):
        data = await _setup_test_data(db_session, "1000")

        async def refund_unavailable(self, transaction_id, memo=None, commit=True):
            raise OperationalError("UPDATE wallet_cards", {}, Exception("database is locked"))

        monkeypatch.setattr(WalletService, "refund_deduction", refund_unavailable)
        service = DocumentService(db_session, repository=FailingRepository(db_session))

        with pytest.raises(PersistenceError) as exc_info:
            await service.create_invoice(_invoice_request(data))

        error = exc_info.value
        assert error.card_charged is True
        assert error.deduction_id is not None
        assert f"wallet_deduction_id={error.deduction_id}" in error.message
        assert await _balance(db_session, data["card_id"]) == Decimal("550.00")

        # Retry with a working store: the same deduction pays for the invoice
        monkeypatch.undo()
        result = await DocumentService(db_session).create_invoice(
            _invoice_request(data, wallet_deduction_id=error.deduction_id)
        )

        [invoice] = result.documents
        assert invoice.wallet_card_name == "ICP Card"
        assert await _balance(db_session, data["card_id"]) == Decimal("550.00")
        [deduction] = await _transactions(db_session, WalletTransactionType.DEDUCTION)
        assert deduction.id == error.deduction_id
        assert deduction.reference_invoice_id == invoice.id

    async def test_failed_save_without_card_charges_nothing(self, db_session: AsyncSession):
        data = await _setup_test_data(db_session, "1000")
        service = DocumentService(db_session, repository=FailingRepository(db_session))

        with pytest.raises(PersistenceError) as exc_info:
            await service.create_invoice(_invoice_request(data, wallet_card_id=None))

        assert exc_info.value.card_charged is False
        assert await _transactions(db_session, WalletTransactionType.DEDUCTION) == []

    async def test_failed_save_does_not_keep_new_customer(self, db_session: AsyncSession):
        data = await _setup_test_data(db_session, "1000")
        service = DocumentService(db_session, repository=FailingRepository(db_session))

        with pytest.raises(PersistenceError):
            await service.create_invoice(
                _invoice_request(
                    data, customer=CustomerInput(name="Sara Khan", mobile="0559876543")
                )
            )

        customers = (
            await db_session.execute(select(func.count()).select_from(Customer))
        ).scalar()
        assert customers == 1
        assert await _balance(db_session, data["card_id"]) == Decimal("1000.00")

    async def test_deduction_id_without_card_charge_rejected(self, db_session: AsyncSession):
        data = await _setup_test_data(db_session, "1000")

        with pytest.raises(ValidationError) as exc_info:
            await DocumentService(db_session).create_invoice(
                _invoice_request(data, wallet_card_id=None, wallet_deduction_id=5)
            )

        assert exc_info.value.details["field"] == "wallet_deduction_id"
        assert await _invoice_count(db_session) == 0


class TestSeparateInvoicesStopping:
    async def test_second_invoice_fails_first_kept(self, db_session: AsyncSession):
        data = await _setup_test_data(db_session, "1500")
        service = DocumentService(
            db_session, repository=FailingRepository(db_session, fail_on_call=2)
        )

        result = await service.create_invoice(
            _invoice_request(
                data,
                beneficiary_mode=BeneficiaryMode.MULTIPLE,
                beneficiaries_text="Sara\nOmar\nLina",
                combined=False,
            )
        )

        assert not result.complete
        assert result.created_count == 1
        assert result.requested_count == 3
        assert result.failed_at == 2
        assert "reversed" in result.error
        [kept] = result.documents
        assert kept.beneficiary_name == "Sara"
        assert kept.invoice_number.startswith("INV-")
        assert kept.total == Decimal("620.00")
        assert len(kept.lines) == 2
        assert await _invoice_count(db_session) == 1
        # Only the saved invoice stays charged
        assert await _balance(db_session, data["card_id"]) == Decimal("1050.00")

    async def test_partial_batch_endpoint(
        self, client: AsyncClient, db_session: AsyncSession, monkeypatch
    ):
        data = await _setup_test_data(db_session, "1500")
        original = SqlDocumentRepository.create_invoice
        calls = {"count": 0}

        async def flaky_create_invoice(self, draft, wallet_card_name=None):
            calls["count"] += 1
            if calls["count"] == 3:
                raise OperationalError("INSERT INTO invoices", {}, Exception("disk full"))
            return await original(self, draft, wallet_card_name=wallet_card_name)

        monkeypatch.setattr(SqlDocumentRepository, "create_invoice", flaky_create_invoice)

        response = await client.post(
            "/api/v1/documents/invoices",
            json={
                "customer": {"customer_id": data["customer_id"]},
                "service_ids": data["service_ids"],
                "wallet_card_id": data["card_id"],
                "beneficiary_mode": "multiple",
                "beneficiaries": [{"name": "Sara"}, {"name": "Omar"}, {"name": "Lina"}],
                "combined": False,
            },
        )

        assert response.status_code == 207
        body = response.json()
        assert body["success"] is False
        assert body["data"]["created_count"] == 2
        assert body["data"]["failed_at"] == 3
        assert "Created 2 of 3" in body["message"]
        assert body["data"]["details"]["card_charged"] is False
        assert body["data"]["documents"][1]["beneficiary_name"] == "Omar"

    async def test_batch_reports_card_still_charged(
        self, db_session: AsyncSession, monkeypatch
    ):
        data = await _setup_test_data(db_session, "1500")

        async def refund_unavailable(self, transaction_id, memo=None, commit=True):
            raise OperationalError("UPDATE wallet_cards", {}, Exception("database is locked"))

        monkeypatch.setattr(WalletService, "refund_deduction", refund_unavailable)
        service = DocumentService(
            db_session, repository=FailingRepository(db_session, fail_on_call=2)
        )

        result = await service.create_invoice(
            _invoice_request(
                data,
                beneficiary_mode=BeneficiaryMode.MULTIPLE,
                beneficiaries_text="Sara\nOmar\nLina",
                combined=False,
            )
        )

        assert result.failed_at == 2
        assert result.details["step"] == "persistence"
        assert result.details["card_charged"] is True
        assert result.details["deduction_id"] is not None
        assert f"wallet_deduction_id={result.details['deduction_id']}" in result.error
        # First invoice plus the charge left behind by the failed one
        assert await _balance(db_session, data["card_id"]) == Decimal("600.00")
