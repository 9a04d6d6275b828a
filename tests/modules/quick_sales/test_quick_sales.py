"""Tests for Quick Sales module."""

from decimal import Decimal

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import InsufficientBalanceError, ValidationError
from src.modules.catalog.schemas import ServiceCreate
from src.modules.catalog.service import CatalogService
from src.modules.quick_sales.schemas import QuickSaleCreate
from src.modules.quick_sales.service import QuickSaleService
from src.modules.wallet.models import WalletTransaction, WalletTransactionType
from src.modules.wallet.schemas import WalletCardCreate
from src.modules.wallet.service import WalletService


class TestQuickSaleService:
    async def _setup_test_data(self, db_session: AsyncSession) -> dict:
        catalog = CatalogService(db_session)
        typing = await catalog.create_service(
            ServiceCreate(name="Typing", service_fee=Decimal("30"), govt_fee=Decimal("0"))
        )
        medical = await catalog.create_service(
            ServiceCreate(name="Medical Test", service_fee=Decimal("50"), govt_fee=Decimal("270"))
        )
        wallet = WalletService(db_session)
        card = await wallet.create_card(WalletCardCreate(card_name="DHA Card"))
        await wallet.top_up(card.id, Decimal("500"))
        return {"typing_id": typing.id, "medical_id": medical.id, "card_id": card.id}

    async def test_cash_sale_with_change(self, db_session: AsyncSession):
        data = await self._setup_test_data(db_session)

        sale = await QuickSaleService(db_session).create_quick_sale(
            QuickSaleCreate(
                service_ids=[data["typing_id"], data["medical_id"]],
                amount_received=Decimal("400"),
            )
        )

        assert sale.sale_number.startswith("QS-")
        assert sale.total == Decimal("350.00")
        assert sale.change == Decimal("50.00")
        assert sale.payment_type == "Cash"
        assert len(sale.lines) == 2
        assert sale.wallet_card_id is None

    async def test_exact_when_nothing_tendered(self, db_session: AsyncSession):
        data = await self._setup_test_data(db_session)

        sale = await QuickSaleService(db_session).create_quick_sale(
            QuickSaleCreate(service_ids=[data["typing_id"]])
        )

        assert sale.amount_received == Decimal("30.00")
        assert sale.change == Decimal("0.00")

    async def test_short_cash_refused(self, db_session: AsyncSession):
        data = await self._setup_test_data(db_session)
        service = QuickSaleService(db_session)

        with pytest.raises(ValidationError) as exc_info:
            await service.create_quick_sale(
                QuickSaleCreate(service_ids=[data["medical_id"]], amount_received=Decimal("100"))
            )
        assert exc_info.value.details["field"] == "amount_received"
        assert await service.list_quick_sales() == []

    async def test_card_pays_govt_fee(self, db_session: AsyncSession):
        data = await self._setup_test_data(db_session)

        sale = await QuickSaleService(db_session).create_quick_sale(
            QuickSaleCreate(service_ids=[data["medical_id"]], wallet_card_id=data["card_id"])
        )

        assert sale.wallet_card_name == "DHA Card"
        assert (await WalletService(db_session).get_card(data["card_id"])).balance == Decimal(
            "230.00"
        )
        result = await db_session.execute(
            select(WalletTransaction).where(
                WalletTransaction.transaction_type == WalletTransactionType.DEDUCTION.value
            )
        )
        deduction = result.scalar_one()
        assert deduction.reference_quick_sale_id == sale.id
        assert deduction.reference_invoice_id is None

    async def test_card_too_low_refused(self, db_session: AsyncSession):
        data = await self._setup_test_data(db_session)
        service = QuickSaleService(db_session)

        with pytest.raises(InsufficientBalanceError):
            await service.create_quick_sale(
                QuickSaleCreate(
                    service_ids=[data["medical_id"], data["medical_id"]],
                    wallet_card_id=data["card_id"],
                )
            )
        assert await service.list_quick_sales() == []


class TestQuickSalesAPI:
    async def test_create_and_list(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/services", json={"name": "Photo", "service_fee": "15", "govt_fee": "0"}
        )
        service_id = response.json()["data"]["id"]

        response = await client.post(
            "/api/v1/quick-sales", json={"service_ids": [service_id], "amount_received": "20"}
        )
        assert response.status_code == 201
        assert response.json()["data"]["change"] == 5.0

        response = await client.get("/api/v1/quick-sales")
        assert len(response.json()["data"]) == 1

    async def test_empty_sale_rejected(self, client: AsyncClient):
        response = await client.post("/api/v1/quick-sales", json={"service_ids": []})
        assert response.status_code == 422
