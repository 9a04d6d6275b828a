"""
Charge a wallet card for a document, then save the document.

The card is charged (and committed) before the document is written. If the
write fails the charge is reversed; if the reversal fails too the error says
so and carries the deduction id, which a retry passes back instead of
charging again.
"""

import logging
from decimal import Decimal
from typing import Awaitable, Callable, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import AppException, PersistenceError, ValidationError
from src.modules.wallet.service import WalletService

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def save_with_wallet_charge(
    db: AsyncSession,
    wallet: WalletService,
    save: Callable[[str | None], Awaitable[T]],
    *,
    label: str,
    link_field: str,
    card_id: int | None = None,
    amount: Decimal | None = None,
    memo: str | None = None,
    reuse_deduction_id: int | None = None,
) -> T:
    """
    Run `save(card_name)` and commit, charging `amount` to the card first.

    With no card or no amount the wallet is left alone. link_field is the
    keyword link_deduction uses to point the deduction at the saved row
    ("invoice_id" or "quick_sale_id").
    """
    charging = card_id is not None and amount is not None and amount > 0
    if reuse_deduction_id is not None and not charging:
        raise ValidationError(
            f"Deduction {reuse_deduction_id} was given but the {label} "
            "charges no wallet card",
            field="wallet_deduction_id",
        )

    deduction_id = None
    card_name = None
    if charging:
        try:
            if reuse_deduction_id is not None:
                deduction = await wallet.get_unlinked_deduction(
                    reuse_deduction_id, card_id, amount
                )
                logger.info("Reusing deduction %s for %s", deduction.id, label)
            else:
                deduction = await wallet.deduct(card_id, amount, memo=memo)
        except AppException:
            # Nothing was charged; drop anything staged for this document
            await db.rollback()
            raise
        deduction_id = deduction.id
        card_name = (await wallet.get_card(card_id)).card_name

    try:
        saved = await save(card_name)
        if deduction_id is not None:
            await wallet.link_deduction(deduction_id, **{link_field: saved.id})
        await db.commit()
    except (SQLAlchemyError, AppException) as exc:
        await db.rollback()
        logger.error("Saving %s failed: %s", label, exc)
        raise await _compensate(db, wallet, deduction_id, label) from exc

    return saved


async def _compensate(
    db: AsyncSession, wallet: WalletService, deduction_id: int | None, label: str
) -> PersistenceError:
    if deduction_id is None:
        return PersistenceError(f"Saving {label} failed; nothing was charged")

    try:
        await wallet.refund_deduction(deduction_id, memo=f"Reversal: {label} was not saved")
    except (SQLAlchemyError, AppException):
        await db.rollback()
        logger.exception("Could not reverse deduction %s for %s", deduction_id, label)
        return PersistenceError(
            f"Saving {label} failed and the wallet card is still charged; "
            f"retry with wallet_deduction_id={deduction_id}",
            card_charged=True,
            deduction_id=deduction_id,
        )

    return PersistenceError(
        f"Saving {label} failed; the wallet card charge was reversed",
        card_charged=False,
    )
