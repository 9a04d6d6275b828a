"""
Settlement rules for a sale.

Decides the status of an invoice (Paid / Pending / Quotation), how much was
received and how much change is due. Credit is always pending. A cash
tender below the total either turns the sale into credit or is refused,
depending on the caller.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import StrEnum

from src.core.exceptions import ValidationError
from src.shared.utils.money import ZERO, round_money


class PaymentType(StrEnum):
    """How the customer pays."""

    CASH = "Cash"
    CARD = "Card"
    BANK_TRANSFER = "Bank Transfer"
    CREDIT = "Credit"


class SettlementStatus(StrEnum):
    """Invoice status fixed at creation."""

    PAID = "Paid"
    PENDING = "Pending"
    QUOTATION = "Quotation"


@dataclass(frozen=True)
class PaymentOutcome:
    status: SettlementStatus
    payment_type: PaymentType
    amount_received: Decimal
    change: Decimal

    @property
    def is_paid(self) -> bool:
        return self.status == SettlementStatus.PAID


def quotation_outcome() -> PaymentOutcome:
    """Quotations are never settled."""
    return PaymentOutcome(
        status=SettlementStatus.QUOTATION,
        payment_type=PaymentType.CREDIT,
        amount_received=ZERO,
        change=ZERO,
    )


def resolve(
    total: Decimal,
    payment_type: PaymentType | str,
    amount_tendered: Decimal | None = None,
    convert_shortfall: bool = True,
) -> PaymentOutcome:
    """
    Settle a sale of `total`.

    Card and bank transfer without a tendered amount count as exact payment.
    A cash tender below the total becomes credit (Pending) when
    convert_shortfall is set, otherwise it is refused with ValidationError.
    """
    payment_type = PaymentType(payment_type)
    total = round_money(total)

    if payment_type == PaymentType.CREDIT:
        return PaymentOutcome(
            status=SettlementStatus.PENDING,
            payment_type=PaymentType.CREDIT,
            amount_received=ZERO,
            change=ZERO,
        )

    if amount_tendered is not None and amount_tendered > 0:
        received = round_money(amount_tendered)
    else:
        received = total

    if payment_type == PaymentType.CASH and received < total:
        if not convert_shortfall:
            raise ValidationError(
                f"Amount received ({received}) is less than total ({total})",
                field="amount_received",
            )
        return PaymentOutcome(
            status=SettlementStatus.PENDING,
            payment_type=PaymentType.CREDIT,
            amount_received=received,
            change=ZERO,
        )

    return PaymentOutcome(
        status=SettlementStatus.PAID,
        payment_type=payment_type,
        amount_received=received,
        change=max(ZERO, received - total),
    )


def exact_outcome(total: Decimal, payment_type: PaymentType | str) -> PaymentOutcome:
    """
    Outcome for one of several invoices issued together: a paid method
    receives exactly the invoice total with no change, credit stays pending.
    """
    payment_type = PaymentType(payment_type)
    if payment_type == PaymentType.CREDIT:
        return resolve(total, payment_type)
    return PaymentOutcome(
        status=SettlementStatus.PAID,
        payment_type=payment_type,
        amount_received=round_money(total),
        change=ZERO,
    )
