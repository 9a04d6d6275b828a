"""
Document assembly.

Turns a customer, a beneficiary selection, catalog fee snapshots and the
payment details into draft documents ready to be saved. Nothing here touches
the database; every check that can refuse a request runs here, before the
wallet is charged or a row is written.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import StrEnum
from typing import Mapping, Sequence

from src.core.exceptions import ValidationError
from src.modules.fees.calculator import (
    Beneficiary,
    BeneficiaryMode,
    FeeTotals,
    ServiceFee,
    compute_totals,
)
from src.modules.payments.resolver import (
    PaymentOutcome,
    PaymentType,
    exact_outcome,
    quotation_outcome,
    resolve,
)
from src.modules.work_orders.models import WorkOrderStatus
from src.shared.utils.money import round_money


class DocumentKind(StrEnum):
    QUOTATION = "quotation"
    WORK_ORDER = "work_order"
    INVOICE = "invoice"


@dataclass(frozen=True)
class CustomerSnapshot:
    """Customer details as printed on the document."""

    name: str
    mobile: str | None = None
    email: str | None = None
    customer_id: int | None = None


@dataclass(frozen=True)
class BeneficiarySelection:
    """
    Who the services are for.

    In single mode the beneficiary is the customer unless same_as_customer is
    off. In multiple mode `combined` puts everyone on one document, otherwise
    each beneficiary gets a document of their own.
    """

    mode: BeneficiaryMode = BeneficiaryMode.SINGLE
    same_as_customer: bool = True
    beneficiary: Beneficiary | None = None
    beneficiaries: tuple[Beneficiary, ...] = ()
    combined: bool = True


@dataclass(frozen=True)
class PaymentRequest:
    payment_type: PaymentType
    amount_tendered: Decimal | None = None
    wallet_card_id: int | None = None


@dataclass(frozen=True)
class DraftLine:
    service_id: int | None
    description: str
    category: str | None
    service_fee: Decimal
    govt_fee: Decimal
    price: Decimal
    beneficiary_name: str | None = None
    beneficiary_id_number: str | None = None


@dataclass(frozen=True)
class DraftDocument:
    """A document that has passed validation but is not saved yet."""

    kind: DocumentKind
    customer: CustomerSnapshot
    beneficiary_name: str
    beneficiary_id_number: str | None
    lines: tuple[DraftLine, ...]
    totals: FeeTotals
    status: str
    outcome: PaymentOutcome | None = None
    wallet_card_id: int | None = None
    reference_number: str | None = None
    notes: str | None = None
    work_order_id: int | None = field(default=None, compare=False)

    @property
    def charges_wallet(self) -> bool:
        """Only invoices with a card and a government fee touch the wallet."""
        return (
            self.kind == DocumentKind.INVOICE
            and self.wallet_card_id is not None
            and self.totals.govt_fee > 0
        )


def _line(service: ServiceFee, beneficiary: Beneficiary | None = None) -> DraftLine:
    description = service.name
    if beneficiary is not None:
        description = f"{service.name} - {beneficiary.label}"
    return DraftLine(
        service_id=service.service_id,
        description=description,
        category=service.category,
        service_fee=service.service_fee,
        govt_fee=service.govt_fee,
        price=service.price,
        beneficiary_name=beneficiary.name if beneficiary else None,
        beneficiary_id_number=(beneficiary.id_number or None) if beneficiary else None,
    )


def check_price_overrides(
    services: Sequence[ServiceFee], price_overrides: Mapping[int, Decimal] | None
) -> None:
    """A typed-in line price must match the catalog fees it is made of."""
    if not price_overrides:
        return
    by_id = {service.service_id: service for service in services}
    for service_id, price in price_overrides.items():
        service = by_id.get(service_id)
        if service is None:
            raise ValidationError(
                f"Price given for service {service_id} which is not selected",
                field="price_overrides",
            )
        if round_money(price) != round_money(service.price):
            raise ValidationError(
                f"Price {round_money(price)} for '{service.name}' does not match "
                f"service fee {service.service_fee} + government fee {service.govt_fee}",
                field="price_overrides",
            )


def _validate(
    kind: DocumentKind,
    customer: CustomerSnapshot,
    selection: BeneficiarySelection,
    services: Sequence[ServiceFee],
    payment: PaymentRequest | None,
) -> None:
    if not customer.name or not customer.name.strip():
        raise ValidationError("Customer is required", field="customer")
    if not services:
        raise ValidationError("Select at least one service", field="service_ids")
    if selection.mode == BeneficiaryMode.MULTIPLE:
        if not selection.beneficiaries:
            raise ValidationError("Enter at least one beneficiary", field="beneficiaries")
    elif not selection.same_as_customer:
        if selection.beneficiary is None or not selection.beneficiary.name.strip():
            raise ValidationError("Beneficiary name is required", field="beneficiary")
    if kind == DocumentKind.INVOICE and payment is None:
        raise ValidationError("Payment type is required", field="payment_type")


def _status_for(kind: DocumentKind, outcome: PaymentOutcome | None) -> str:
    if kind == DocumentKind.WORK_ORDER:
        return WorkOrderStatus.PENDING.value
    return outcome.status.value


def _outcome_for(
    kind: DocumentKind,
    total: Decimal,
    payment: PaymentRequest | None,
    convert_shortfall: bool,
    exact: bool = False,
) -> PaymentOutcome | None:
    if kind == DocumentKind.QUOTATION:
        return quotation_outcome()
    if kind == DocumentKind.WORK_ORDER:
        return None
    if exact:
        return exact_outcome(total, payment.payment_type)
    return resolve(
        total,
        payment.payment_type,
        payment.amount_tendered,
        convert_shortfall=convert_shortfall,
    )


def build_documents(
    kind: DocumentKind,
    customer: CustomerSnapshot,
    selection: BeneficiarySelection,
    services: Sequence[ServiceFee],
    payment: PaymentRequest | None = None,
    price_overrides: Mapping[int, Decimal] | None = None,
    reference_number: str | None = None,
    notes: str | None = None,
    convert_shortfall: bool = True,
) -> list[DraftDocument]:
    """
    Build the drafts for one request.

    Returns one draft, except in separate multiple-beneficiary mode where
    there is one per beneficiary. Raises ValidationError for anything that
    must stop the request.
    """
    kind = DocumentKind(kind)
    _validate(kind, customer, selection, services, payment)
    check_price_overrides(services, price_overrides)

    common = {
        "kind": kind,
        "customer": customer,
        "wallet_card_id": payment.wallet_card_id if kind == DocumentKind.INVOICE else None,
        "reference_number": reference_number,
        "notes": notes,
    }

    def for_one(person: Beneficiary, exact: bool = False) -> DraftDocument:
        totals = compute_totals(services, 1)
        outcome = _outcome_for(kind, totals.total, payment, convert_shortfall, exact=exact)
        return DraftDocument(
            beneficiary_name=person.name.strip(),
            beneficiary_id_number=person.id_number or None,
            lines=tuple(_line(service) for service in services),
            totals=totals,
            status=_status_for(kind, outcome),
            outcome=outcome,
            **common,
        )

    if selection.mode == BeneficiaryMode.SINGLE:
        if selection.same_as_customer:
            return [for_one(Beneficiary(name=customer.name))]
        return [for_one(selection.beneficiary)]

    people = selection.beneficiaries
    if len(people) == 1:
        return [for_one(people[0])]

    if selection.combined:
        totals = compute_totals(services, len(people))
        outcome = _outcome_for(kind, totals.total, payment, convert_shortfall)
        lines = tuple(_line(service, person) for person in people for service in services)
        return [
            DraftDocument(
                beneficiary_name=f"{len(people)} beneficiaries",
                beneficiary_id_number=None,
                lines=lines,
                totals=totals,
                status=_status_for(kind, outcome),
                outcome=outcome,
                **common,
            )
        ]

    # Separate documents: each paid method settles exactly its own total
    return [for_one(person, exact=True) for person in people]


def build_invoice_from_work_order(work_order, payment: PaymentRequest) -> DraftDocument:
    """
    Invoice draft for a completed work order, priced as the order was.

    Credit leaves the invoice pending; a paid method must cover the total.
    """
    total = round_money(work_order.total)
    outcome = resolve(
        total,
        payment.payment_type,
        payment.amount_tendered,
        convert_shortfall=False,
    )
    count = work_order.beneficiary_count or 1
    service_fee = round_money(work_order.service_fee)
    govt_fee = round_money(work_order.govt_fee)
    totals = FeeTotals(
        service_fee=service_fee,
        govt_fee=govt_fee,
        total=total,
        per_person_service_fee=round_money(service_fee / count),
        per_person_govt_fee=round_money(govt_fee / count),
        per_person_total=round_money(work_order.per_person_total),
        beneficiary_count=count,
    )
    lines = tuple(
        DraftLine(
            service_id=line.service_id,
            description=line.description,
            category=line.category,
            service_fee=round_money(line.service_fee),
            govt_fee=round_money(line.govt_fee),
            price=round_money(line.price),
            beneficiary_name=line.beneficiary_name,
            beneficiary_id_number=line.beneficiary_id_number,
        )
        for line in work_order.lines
    )
    return DraftDocument(
        kind=DocumentKind.INVOICE,
        customer=CustomerSnapshot(
            name=work_order.customer_name,
            mobile=work_order.customer_mobile,
            email=work_order.customer_email,
            customer_id=work_order.customer_id,
        ),
        beneficiary_name=work_order.beneficiary_name,
        beneficiary_id_number=work_order.beneficiary_id_number,
        lines=lines,
        totals=totals,
        status=outcome.status.value,
        outcome=outcome,
        wallet_card_id=payment.wallet_card_id or work_order.wallet_card_id,
        reference_number=work_order.reference_number,
        notes=work_order.notes,
        work_order_id=work_order.id,
    )
