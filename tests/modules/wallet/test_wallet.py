"""Tests for Wallet module."""

from decimal import Decimal

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.audit import AuditAction, list_audit_entries
from src.core.exceptions import (
    CardInactiveError,
    CardNotFoundError,
    InsufficientBalanceError,
    ValidationError,
)
from src.modules.wallet.models import CardStatus, CardType, WalletTransaction, WalletTransactionType
from src.modules.wallet.schemas import WalletCardCreate, WalletCardUpdate
from src.modules.wallet.service import WalletService


async def _card_with_balance(
    db_session: AsyncSession, balance: str, name: str = "ICP Card"
) -> int:
    service = WalletService(db_session)
    card = await service.create_card(WalletCardCreate(card_name=name, card_type=CardType.ICP))
    if Decimal(balance) > 0:
        await service.top_up(card.id, Decimal(balance))
    return card.id


class TestDeduct:
    async def test_deduct_reduces_balance(self, db_session: AsyncSession):
        card_id = await _card_with_balance(db_session, "1000")
        service = WalletService(db_session)

        transaction = await service.deduct(card_id, Decimal("450"), memo="Visa govt fee")

        assert transaction.transaction_type == WalletTransactionType.DEDUCTION.value
        assert transaction.amount == Decimal("450.00")
        assert transaction.balance_after == Decimal("550.00")
        assert (await service.get_card(card_id)).balance == Decimal("550.00")

    async def test_deduct_exact_balance_reaches_zero(self, db_session: AsyncSession):
        card_id = await _card_with_balance(db_session, "450")
        service = WalletService(db_session)

        await service.deduct(card_id, Decimal("450"))

        assert (await service.get_card(card_id)).balance == Decimal("0.00")

    async def test_insufficient_balance_changes_nothing(self, db_session: AsyncSession):
        card_id = await _card_with_balance(db_session, "200")
        service = WalletService(db_session)

        with pytest.raises(InsufficientBalanceError) as exc_info:
            await service.deduct(card_id, Decimal("450"))

        assert exc_info.value.details["requested"] == "450.00"
        assert exc_info.value.details["available"] == "200.00"
        assert exc_info.value.details["step"] == "wallet_deduction"
        assert (await service.get_card(card_id)).balance == Decimal("200.00")

        result = await db_session.execute(
            select(WalletTransaction).where(
                WalletTransaction.transaction_type == WalletTransactionType.DEDUCTION.value
            )
        )
        assert result.scalars().all() == []

    async def test_inactive_card_refused(self, db_session: AsyncSession):
        card_id = await _card_with_balance(db_session, "1000")
        service = WalletService(db_session)
        await service.update_card(card_id, WalletCardUpdate(status=CardStatus.INACTIVE))

        with pytest.raises(CardInactiveError):
            await service.deduct(card_id, Decimal("10"))
        assert (await service.get_card(card_id)).balance == Decimal("1000.00")

    async def test_unknown_card_refused(self, db_session: AsyncSession):
        service = WalletService(db_session)
        with pytest.raises(CardNotFoundError):
            await service.deduct(404, Decimal("10"))

    @pytest.mark.parametrize("amount", ["0", "-5"])
    async def test_non_positive_amount_refused(self, db_session: AsyncSession, amount):
        card_id = await _card_with_balance(db_session, "100")
        service = WalletService(db_session)
        with pytest.raises(ValidationError):
            await service.deduct(card_id, Decimal(amount))

    async def test_sequence_of_deductions_never_goes_negative(self, db_session: AsyncSession):
        card_id = await _card_with_balance(db_session, "100")
        service = WalletService(db_session)

        succeeded = 0
        for _ in range(5):
            try:
                await service.deduct(card_id, Decimal("30"))
                succeeded += 1
            except InsufficientBalanceError:
                pass

        assert succeeded == 3
        assert (await service.get_card(card_id)).balance == Decimal("10.00")

    async def test_check_can_deduct_is_read_only(self, db_session: AsyncSession):
        card_id = await _card_with_balance(db_session, "500")
        service = WalletService(db_session)

        card = await service.check_can_deduct(card_id, Decimal("500"))
        assert card.balance == Decimal("500.00")
        with pytest.raises(InsufficientBalanceError):
            await service.check_can_deduct(card_id, Decimal("500.01"))

    async def test_deduction_is_audited(self, db_session: AsyncSession):
        card_id = await _card_with_balance(db_session, "500")
        await WalletService(db_session).deduct(card_id, Decimal("120"))

        entries, total = await list_audit_entries(
            db_session, entity_type="WalletCard", action=AuditAction.CARD_DEDUCTION
        )
        assert total == 1
        assert entries[0].entity_id == card_id
        assert entries[0].new_values["amount"] == "120.00"


class TestRefundAndLink:
    async def test_refund_restores_balance_once(self, db_session: AsyncSession):
        card_id = await _card_with_balance(db_session, "1000")
        service = WalletService(db_session)
        deduction = await service.deduct(card_id, Decimal("450"))

        reversal = await service.refund_deduction(deduction.id)

        assert reversal.transaction_type == WalletTransactionType.REVERSAL.value
        assert reversal.reversal_of_id == deduction.id
        assert (await service.get_card(card_id)).balance == Decimal("1000.00")
        with pytest.raises(ValidationError):
            await service.refund_deduction(deduction.id)

    async def test_linked_deduction_cannot_be_refunded(self, db_session: AsyncSession):
        card_id = await _card_with_balance(db_session, "1000")
        service = WalletService(db_session)
        deduction = await service.deduct(card_id, Decimal("450"))
        await service.link_deduction(deduction.id, invoice_id=77)
        await db_session.commit()

        with pytest.raises(ValidationError):
            await service.refund_deduction(deduction.id)
        with pytest.raises(ValidationError):
            await service.link_deduction(deduction.id, invoice_id=78)

    async def test_unlinked_deduction_must_match(self, db_session: AsyncSession):
        card_id = await _card_with_balance(db_session, "1000")
        other_card_id = await _card_with_balance(db_session, "1000", name="MOHRE Card")
        service = WalletService(db_session)
        deduction = await service.deduct(card_id, Decimal("450"))

        found = await service.get_unlinked_deduction(deduction.id, card_id, Decimal("450"))
        assert found.id == deduction.id

        with pytest.raises(ValidationError):
            await service.get_unlinked_deduction(deduction.id, other_card_id, Decimal("450"))
        with pytest.raises(ValidationError):
            await service.get_unlinked_deduction(deduction.id, card_id, Decimal("400"))

        await service.refund_deduction(deduction.id)
        with pytest.raises(ValidationError):
            await service.get_unlinked_deduction(deduction.id, card_id, Decimal("450"))


class TestManualBalanceChanges:
    async def test_top_up_and_withdraw(self, db_session: AsyncSession):
        card_id = await _card_with_balance(db_session, "0")
        service = WalletService(db_session)

        await service.top_up(card_id, Decimal("250.75"))
        withdrawal = await service.withdraw(card_id, Decimal("50.75"))

        assert withdrawal.balance_after == Decimal("200.00")
        with pytest.raises(InsufficientBalanceError):
            await service.withdraw(card_id, Decimal("200.01"))

    async def test_withdraw_allowed_on_inactive_card(self, db_session: AsyncSession):
        card_id = await _card_with_balance(db_session, "100")
        service = WalletService(db_session)
        await service.update_card(card_id, WalletCardUpdate(status=CardStatus.INACTIVE))

        await service.withdraw(card_id, Decimal("100"))
        assert (await service.get_card(card_id)).balance == Decimal("0.00")

    async def test_transfer_moves_balance(self, db_session: AsyncSession):
        source_id = await _card_with_balance(db_session, "500", name="ICP Card")
        target_id = await _card_with_balance(db_session, "0", name="GDRFA Card")
        service = WalletService(db_session)

        outgoing, incoming = await service.transfer(source_id, target_id, Decimal("200"))

        assert outgoing.balance_after == Decimal("300.00")
        assert incoming.balance_after == Decimal("200.00")
        assert (await service.get_summary()).total_balance == 500.0

    async def test_transfer_over_balance_refused(self, db_session: AsyncSession):
        source_id = await _card_with_balance(db_session, "100", name="ICP Card")
        target_id = await _card_with_balance(db_session, "0", name="GDRFA Card")
        service = WalletService(db_session)

        with pytest.raises(InsufficientBalanceError):
            await service.transfer(source_id, target_id, Decimal("100.01"))
        with pytest.raises(ValidationError):
            await service.transfer(source_id, source_id, Decimal("1"))
        assert (await service.get_card(target_id)).balance == Decimal("0.00")

    async def test_active_cards_listing(self, db_session: AsyncSession):
        active_id = await _card_with_balance(db_session, "0", name="A Card")
        inactive_id = await _card_with_balance(db_session, "0", name="B Card")
        service = WalletService(db_session)
        await service.update_card(inactive_id, WalletCardUpdate(status=CardStatus.INACTIVE))

        cards = await service.get_active_cards()
        assert [c.id for c in cards] == [active_id]


class TestWalletAPI:
    async def test_card_lifecycle(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/wallet/cards", json={"card_name": "ICP Card", "card_type": "ICP"}
        )
        assert response.status_code == 201
        card = response.json()["data"]
        assert card["balance"] == 0.0

        response = await client.post(
            f"/api/v1/wallet/cards/{card['id']}/top-up", json={"amount": "1000"}
        )
        assert response.status_code == 200
        assert response.json()["data"]["balance_after"] == 1000.0

        response = await client.post(
            f"/api/v1/wallet/cards/{card['id']}/withdraw", json={"amount": "5000"}
        )
        assert response.status_code == 409
        body = response.json()
        assert body["success"] is False
        assert body["details"]["available"] == "1000.00"

        response = await client.get(f"/api/v1/wallet/cards/{card['id']}/transactions")
        assert [t["transaction_type"] for t in response.json()["data"]] == ["Top Up"]

    async def test_balance_not_editable(self, client: AsyncClient):
        response = await client.post("/api/v1/wallet/cards", json={"card_name": "DED Card"})
        card_id = response.json()["data"]["id"]

        response = await client.patch(
            f"/api/v1/wallet/cards/{card_id}", json={"card_name": "DED", "balance": "9999"}
        )
        assert response.status_code == 200
        assert response.json()["data"]["card_name"] == "DED"
        assert response.json()["data"]["balance"] == 0.0

    async def test_unknown_card_404(self, client: AsyncClient):
        response = await client.get("/api/v1/wallet/cards/999")
        assert response.status_code == 404
