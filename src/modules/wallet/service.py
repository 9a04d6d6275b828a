"""Service for Wallet module: the only code that changes card balances."""

import logging
from decimal import Decimal

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.audit.service import AuditAction, AuditService
from src.core.exceptions import (
    CardInactiveError,
    CardNotFoundError,
    InsufficientBalanceError,
    NotFoundError,
    ValidationError,
)
from src.modules.wallet.models import (
    CardStatus,
    WalletCard,
    WalletTransaction,
    WalletTransactionType,
)
from src.modules.wallet.schemas import WalletCardCreate, WalletCardUpdate, WalletSummary
from src.shared.utils.money import ZERO, round_money

logger = logging.getLogger(__name__)


class WalletService:
    """
    Wallet card ledger.

    Debits are a single conditional UPDATE (balance >= amount in the WHERE
    clause), so two sales racing for the same card cannot both pass a stale
    balance check. A debit that matches no row changes nothing.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditService(db)

    # --- Cards ---

    async def create_card(self, data: WalletCardCreate) -> WalletCard:
        card = WalletCard(
            card_name=data.card_name,
            card_type=data.card_type.value,
            status=data.status.value,
            linked_to_govt_fees=data.linked_to_govt_fees,
            notes=data.notes,
            balance=ZERO,
        )
        self.db.add(card)
        await self.db.flush()

        await self.audit.log(
            action=AuditAction.CREATE,
            entity_type="WalletCard",
            entity_id=card.id,
            entity_identifier=card.card_name,
            new_values={"card_type": card.card_type, "status": card.status},
        )

        await self.db.commit()
        await self.db.refresh(card)
        return card

    async def update_card(self, card_id: int, data: WalletCardUpdate) -> WalletCard:
        card = await self.get_card(card_id)
        old_values: dict[str, str] = {}
        new_values: dict[str, str] = {}

        for field in ("card_name", "card_type", "status", "linked_to_govt_fees", "notes"):
            value = getattr(data, field)
            if value is None:
                continue
            if hasattr(value, "value"):
                value = value.value
            if value != getattr(card, field):
                old_values[field] = str(getattr(card, field))
                setattr(card, field, value)
                new_values[field] = str(value)

        if new_values:
            await self.audit.log(
                action=AuditAction.UPDATE,
                entity_type="WalletCard",
                entity_id=card.id,
                entity_identifier=card.card_name,
                old_values=old_values,
                new_values=new_values,
            )

        await self.db.commit()
        return await self.get_card(card_id)

    async def get_card(self, card_id: int) -> WalletCard:
        """Get card with its balance as currently stored."""
        card = await self._load_card(card_id)
        if not card:
            raise NotFoundError("Wallet card", card_id)
        return card

    async def list_cards(
        self, active_only: bool = False, linked_only: bool = False
    ) -> list[WalletCard]:
        query = select(WalletCard).order_by(WalletCard.card_name)
        if active_only:
            query = query.where(WalletCard.status == CardStatus.ACTIVE.value)
        if linked_only:
            query = query.where(WalletCard.linked_to_govt_fees == True)
        result = await self.db.execute(query.execution_options(populate_existing=True))
        return list(result.scalars().all())

    async def get_active_cards(self) -> list[WalletCard]:
        """Cards that can pay government fees."""
        return await self.list_cards(active_only=True)

    async def get_summary(self) -> WalletSummary:
        total = (
            await self.db.execute(select(func.coalesce(func.sum(WalletCard.balance), 0)))
        ).scalar()
        cards = await self.list_cards()
        return WalletSummary(
            total_balance=float(round_money(total or 0)),
            active_cards=sum(1 for c in cards if c.is_active),
            linked_cards=sum(1 for c in cards if c.linked_to_govt_fees),
        )

    async def list_transactions(self, card_id: int, limit: int = 100) -> list[WalletTransaction]:
        await self.get_card(card_id)
        result = await self.db.execute(
            select(WalletTransaction)
            .where(WalletTransaction.card_id == card_id)
            .order_by(WalletTransaction.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    # --- Deductions ---

    async def deduct(
        self,
        card_id: int,
        amount: Decimal,
        reference_invoice_id: int | None = None,
        memo: str | None = None,
        commit: bool = True,
    ) -> WalletTransaction:
        """
        Pay a government fee from a card.

        Raises CardNotFoundError, CardInactiveError or InsufficientBalanceError
        without touching the balance. On success the Deduction row is the
        record of the charge.
        """
        amount = self._positive_amount(amount)

        balance_after = await self._debit(card_id, amount, require_active=True)
        transaction = WalletTransaction(
            card_id=card_id,
            transaction_type=WalletTransactionType.DEDUCTION.value,
            amount=amount,
            balance_after=balance_after,
            reference_invoice_id=reference_invoice_id,
            memo=memo,
        )
        self.db.add(transaction)
        await self.db.flush()
        await self.db.refresh(transaction)

        await self.audit.log(
            action=AuditAction.CARD_DEDUCTION,
            entity_type="WalletCard",
            entity_id=card_id,
            new_values={
                "amount": str(amount),
                "balance_after": str(balance_after),
                "transaction_id": transaction.id,
            },
            comment=memo,
        )

        if commit:
            await self.db.commit()
        logger.info(
            "Deducted %s from wallet card %s (balance now %s)", amount, card_id, balance_after
        )
        return transaction

    async def check_can_deduct(self, card_id: int, amount: Decimal) -> WalletCard:
        """
        Read-only check that a deduction of `amount` would pass right now.

        Used before a batch so it is refused up front; each deduction in the
        batch is still guarded on its own.
        """
        amount = self._positive_amount(amount)
        card = await self._load_card(card_id)
        self._raise_if_unusable(card, card_id, amount)
        return card

    async def refund_deduction(
        self, transaction_id: int, memo: str | None = None, commit: bool = True
    ) -> WalletTransaction:
        """Give back a deduction whose document was never saved."""
        deduction = await self._get_transaction(transaction_id)
        if deduction.transaction_type != WalletTransactionType.DEDUCTION.value:
            raise ValidationError("Only deductions can be reversed")
        if deduction.is_linked:
            raise ValidationError("Deduction is attached to a saved document")
        if await self._find_reversal(transaction_id):
            raise ValidationError(f"Deduction {transaction_id} is already reversed")

        balance_after = await self._credit(deduction.card_id, deduction.amount)
        reversal = WalletTransaction(
            card_id=deduction.card_id,
            transaction_type=WalletTransactionType.REVERSAL.value,
            amount=deduction.amount,
            balance_after=balance_after,
            reversal_of_id=deduction.id,
            memo=memo or f"Reversal of deduction {deduction.id}",
        )
        self.db.add(reversal)
        await self.db.flush()
        await self.db.refresh(reversal)

        await self.audit.log(
            action=AuditAction.CARD_REVERSAL,
            entity_type="WalletCard",
            entity_id=deduction.card_id,
            new_values={
                "amount": str(deduction.amount),
                "reversal_of_id": deduction.id,
                "balance_after": str(balance_after),
            },
        )

        if commit:
            await self.db.commit()
        logger.info(
            "Reversed deduction %s on wallet card %s", deduction.id, deduction.card_id
        )
        return reversal

    async def link_deduction(
        self,
        transaction_id: int,
        invoice_id: int | None = None,
        quick_sale_id: int | None = None,
    ) -> WalletTransaction:
        """Attach the saved document to its deduction. Caller commits."""
        deduction = await self._get_transaction(transaction_id)
        if deduction.is_linked:
            raise ValidationError(f"Deduction {transaction_id} is already attached")
        deduction.reference_invoice_id = invoice_id
        deduction.reference_quick_sale_id = quick_sale_id
        await self.db.flush()
        return deduction

    async def get_unlinked_deduction(
        self, transaction_id: int, card_id: int, amount: Decimal
    ) -> WalletTransaction:
        """
        Deduction left over from a failed save, to be reused on retry.

        It must be a deduction on the same card for the same amount that is
        neither attached to a document nor reversed.
        """
        deduction = await self._get_transaction(transaction_id)
        if (
            deduction.transaction_type != WalletTransactionType.DEDUCTION.value
            or deduction.card_id != card_id
            or round_money(deduction.amount) != round_money(amount)
        ):
            raise ValidationError(
                f"Deduction {transaction_id} does not match card {card_id} and amount {amount}",
                field="wallet_deduction_id",
            )
        if deduction.is_linked or await self._find_reversal(transaction_id):
            raise ValidationError(
                f"Deduction {transaction_id} was already used or reversed",
                field="wallet_deduction_id",
            )
        return deduction

    # --- Manual balance changes ---

    async def top_up(self, card_id: int, amount: Decimal, memo: str | None = None) -> WalletTransaction:
        amount = self._positive_amount(amount)
        await self.get_card(card_id)

        balance_after = await self._credit(card_id, amount)
        transaction = WalletTransaction(
            card_id=card_id,
            transaction_type=WalletTransactionType.TOP_UP.value,
            amount=amount,
            balance_after=balance_after,
            memo=memo or "Card top-up",
        )
        self.db.add(transaction)
        await self.db.flush()
        await self.db.refresh(transaction)

        await self.audit.log(
            action=AuditAction.CARD_TOP_UP,
            entity_type="WalletCard",
            entity_id=card_id,
            new_values={"amount": str(amount), "balance_after": str(balance_after)},
            comment=memo,
        )

        await self.db.commit()
        logger.info("Topped up wallet card %s by %s", card_id, amount)
        return transaction

    async def withdraw(self, card_id: int, amount: Decimal, memo: str | None = None) -> WalletTransaction:
        amount = self._positive_amount(amount)

        balance_after = await self._debit(card_id, amount, require_active=False)
        transaction = WalletTransaction(
            card_id=card_id,
            transaction_type=WalletTransactionType.WITHDRAWAL.value,
            amount=amount,
            balance_after=balance_after,
            memo=memo or "Withdrawal",
        )
        self.db.add(transaction)
        await self.db.flush()
        await self.db.refresh(transaction)

        await self.audit.log(
            action=AuditAction.CARD_WITHDRAWAL,
            entity_type="WalletCard",
            entity_id=card_id,
            new_values={"amount": str(amount), "balance_after": str(balance_after)},
            comment=memo,
        )

        await self.db.commit()
        logger.info("Withdrew %s from wallet card %s", amount, card_id)
        return transaction

    async def transfer(
        self, from_card_id: int, to_card_id: int, amount: Decimal, memo: str | None = None
    ) -> tuple[WalletTransaction, WalletTransaction]:
        """Move balance between two cards in one transaction."""
        amount = self._positive_amount(amount)
        if from_card_id == to_card_id:
            raise ValidationError("Cannot transfer to the same card", field="to_card_id")
        target = await self._load_card(to_card_id)
        if not target:
            raise CardNotFoundError(to_card_id)

        from_balance = await self._debit(from_card_id, amount, require_active=False)
        to_balance = await self._credit(to_card_id, amount)

        outgoing = WalletTransaction(
            card_id=from_card_id,
            transaction_type=WalletTransactionType.TRANSFER_OUT.value,
            amount=amount,
            balance_after=from_balance,
            counterpart_card_id=to_card_id,
            memo=memo,
        )
        incoming = WalletTransaction(
            card_id=to_card_id,
            transaction_type=WalletTransactionType.TRANSFER_IN.value,
            amount=amount,
            balance_after=to_balance,
            counterpart_card_id=from_card_id,
            memo=memo,
        )
        self.db.add_all([outgoing, incoming])
        await self.db.flush()
        await self.db.refresh(outgoing)
        await self.db.refresh(incoming)

        await self.audit.log(
            action=AuditAction.CARD_TRANSFER,
            entity_type="WalletCard",
            entity_id=from_card_id,
            new_values={"to_card_id": to_card_id, "amount": str(amount)},
            comment=memo,
        )

        await self.db.commit()
        logger.info("Transferred %s from wallet card %s to %s", amount, from_card_id, to_card_id)
        return outgoing, incoming

    # --- Helpers ---

    def _positive_amount(self, amount: Decimal) -> Decimal:
        amount = round_money(amount)
        if amount <= 0:
            raise ValidationError("Amount must be greater than zero", field="amount")
        return amount

    async def _load_card(self, card_id: int) -> WalletCard | None:
        result = await self.db.execute(
            select(WalletCard)
            .where(WalletCard.id == card_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    def _raise_if_unusable(self, card: WalletCard | None, card_id: int, amount: Decimal) -> None:
        if card is None:
            raise CardNotFoundError(card_id)
        if not card.is_active:
            raise CardInactiveError(card_id, card.card_name)
        if card.balance < amount:
            raise InsufficientBalanceError(card_id, amount, card.balance)

    async def _debit(self, card_id: int, amount: Decimal, require_active: bool) -> Decimal:
        """Guarded decrement. Returns the new balance."""
        conditions = [WalletCard.id == card_id, WalletCard.balance >= amount]
        if require_active:
            conditions.append(WalletCard.status == CardStatus.ACTIVE.value)

        result = await self.db.execute(
            update(WalletCard)
            .where(*conditions)
            .values(balance=WalletCard.balance - amount)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            card = await self._load_card(card_id)
            logger.warning(
                "Refused debit of %s on wallet card %s (balance %s)",
                amount,
                card_id,
                card.balance if card else None,
            )
            if card is None:
                raise CardNotFoundError(card_id)
            if require_active and not card.is_active:
                raise CardInactiveError(card_id, card.card_name)
            raise InsufficientBalanceError(card_id, amount, card.balance)

        card = await self._load_card(card_id)
        return round_money(card.balance)

    async def _credit(self, card_id: int, amount: Decimal) -> Decimal:
        result = await self.db.execute(
            update(WalletCard)
            .where(WalletCard.id == card_id)
            .values(balance=WalletCard.balance + amount)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise CardNotFoundError(card_id)
        card = await self._load_card(card_id)
        return round_money(card.balance)

    async def _get_transaction(self, transaction_id: int) -> WalletTransaction:
        result = await self.db.execute(
            select(WalletTransaction).where(WalletTransaction.id == transaction_id)
        )
        transaction = result.scalar_one_or_none()
        if not transaction:
            raise NotFoundError("Wallet transaction", transaction_id)
        return transaction

    async def _find_reversal(self, transaction_id: int) -> WalletTransaction | None:
        result = await self.db.execute(
            select(WalletTransaction).where(WalletTransaction.reversal_of_id == transaction_id)
        )
        return result.scalar_one_or_none()
