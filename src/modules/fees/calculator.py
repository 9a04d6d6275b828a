"""
Fee calculation for documents.

Pure functions, no I/O. A document's price is built from the two fee parts
of each selected service: the service fee (kept by the business) and the
government fee (passed through). When one document covers several
beneficiaries the fees are summed once per person and only then multiplied
by the head count, so `total == per_person_total * beneficiary_count` holds
exactly.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import StrEnum
from typing import Iterable, Sequence

from src.shared.utils.money import ZERO, round_money


class BeneficiaryMode(StrEnum):
    """Who the services are for."""

    SINGLE = "single"
    MULTIPLE = "multiple"


@dataclass(frozen=True)
class Beneficiary:
    """Person receiving the service (may differ from the paying customer)."""

    name: str
    id_number: str = ""

    @property
    def label(self) -> str:
        if self.id_number:
            return f"{self.name} ({self.id_number})"
        return self.name


@dataclass(frozen=True)
class ServiceFee:
    """Fee snapshot of a catalog service at document creation time."""

    service_id: int | None
    name: str
    service_fee: Decimal
    govt_fee: Decimal
    category: str | None = None

    @property
    def price(self) -> Decimal:
        return self.service_fee + self.govt_fee

    @classmethod
    def from_service(cls, service) -> "ServiceFee":
        return cls(
            service_id=service.id,
            name=service.name,
            service_fee=round_money(service.service_fee),
            govt_fee=round_money(service.govt_fee),
            category=service.category,
        )

    @classmethod
    def placeholder(cls, service_id: int) -> "ServiceFee":
        """Zero-fee stand-in for a service id the catalog does not know."""
        return cls(
            service_id=service_id,
            name=f"Unknown service #{service_id}",
            service_fee=ZERO,
            govt_fee=ZERO,
        )


@dataclass(frozen=True)
class FeeTotals:
    """Fee figures for one document."""

    service_fee: Decimal
    govt_fee: Decimal
    total: Decimal
    per_person_service_fee: Decimal
    per_person_govt_fee: Decimal
    per_person_total: Decimal
    beneficiary_count: int


def parse_beneficiaries(text: str | None) -> list[Beneficiary]:
    """
    Parse a bulk beneficiary list.

    One beneficiary per line as "name, id_number" (id optional). Blank lines
    are dropped and lines without a name are left out.
    """
    beneficiaries: list[Beneficiary] = []
    if not text:
        return beneficiaries
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line:
            continue
        parts = [part.strip() for part in line.split(",")]
        name = parts[0]
        if not name:
            continue
        id_number = parts[1] if len(parts) > 1 else ""
        beneficiaries.append(Beneficiary(name=name, id_number=id_number))
    return beneficiaries


def beneficiary_count(mode: BeneficiaryMode | str, beneficiaries: Sequence[Beneficiary]) -> int:
    """Multiplier for a document: the list length in multiple mode, never below 1."""
    if BeneficiaryMode(mode) == BeneficiaryMode.MULTIPLE:
        return max(1, len(beneficiaries))
    return 1


def compute_totals(services: Iterable[ServiceFee], beneficiary_count: int = 1) -> FeeTotals:
    """Sum fees across services once, then multiply by the beneficiary count."""
    if beneficiary_count < 1:
        raise ValueError("beneficiary_count must be at least 1")

    per_person_service_fee = ZERO
    per_person_govt_fee = ZERO
    for service in services:
        per_person_service_fee += service.service_fee
        per_person_govt_fee += service.govt_fee

    per_person_total = per_person_service_fee + per_person_govt_fee
    service_fee = per_person_service_fee * beneficiary_count
    govt_fee = per_person_govt_fee * beneficiary_count

    return FeeTotals(
        service_fee=service_fee,
        govt_fee=govt_fee,
        total=service_fee + govt_fee,
        per_person_service_fee=per_person_service_fee,
        per_person_govt_fee=per_person_govt_fee,
        per_person_total=per_person_total,
        beneficiary_count=beneficiary_count,
    )
