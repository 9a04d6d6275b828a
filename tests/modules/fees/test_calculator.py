"""Tests for the fee calculator."""

from decimal import Decimal

import pytest

from src.modules.fees.calculator import (
    Beneficiary,
    BeneficiaryMode,
    ServiceFee,
    beneficiary_count,
    compute_totals,
    parse_beneficiaries,
)


def _fee(service_id: int, service_fee: str, govt_fee: str, name: str | None = None) -> ServiceFee:
    return ServiceFee(
        service_id=service_id,
        name=name or f"Service {service_id}",
        service_fee=Decimal(service_fee),
        govt_fee=Decimal(govt_fee),
    )


VISA = _fee(1, "100", "300", "Visa Application")
EMIRATES_ID = _fee(2, "70", "150", "Emirates ID")


class TestComputeTotals:
    def test_single_beneficiary_sums_fees(self):
        totals = compute_totals([VISA, EMIRATES_ID], 1)

        assert totals.service_fee == Decimal("170")
        assert totals.govt_fee == Decimal("450")
        assert totals.total == Decimal("620")
        assert totals.per_person_total == Decimal("620")
        assert totals.beneficiary_count == 1

    def test_multiplies_after_summing(self):
        totals = compute_totals([VISA, EMIRATES_ID], 3)

        assert totals.per_person_service_fee == Decimal("170")
        assert totals.per_person_govt_fee == Decimal("450")
        assert totals.service_fee == Decimal("510")
        assert totals.govt_fee == Decimal("1350")
        assert totals.total == Decimal("1860")

    @pytest.mark.parametrize("count", [1, 2, 5, 17])
    def test_total_is_per_person_times_count(self, count):
        services = [_fee(1, "33.33", "66.67"), _fee(2, "0.10", "0.20"), _fee(3, "12.5", "0")]
        totals = compute_totals(services, count)

        assert totals.total == totals.service_fee + totals.govt_fee
        assert totals.total == totals.per_person_total * count
        assert totals.per_person_total == Decimal("112.80")

    def test_duplicate_selection_counts_twice(self):
        totals = compute_totals([VISA, VISA], 1)
        assert totals.total == Decimal("800")

    def test_no_services_is_zero(self):
        totals = compute_totals([], 4)
        assert totals.total == Decimal("0")
        assert totals.beneficiary_count == 4

    def test_zero_count_rejected(self):
        with pytest.raises(ValueError):
            compute_totals([VISA], 0)

    def test_placeholder_adds_nothing(self):
        totals = compute_totals([VISA, ServiceFee.placeholder(99)], 1)
        assert totals.total == Decimal("400")


class TestBeneficiaries:
    def test_count_single_mode_ignores_list(self):
        people = [Beneficiary("A"), Beneficiary("B")]
        assert beneficiary_count(BeneficiaryMode.SINGLE, people) == 1

    def test_count_multiple_mode(self):
        people = [Beneficiary("A"), Beneficiary("B"), Beneficiary("C")]
        assert beneficiary_count("multiple", people) == 3

    def test_count_multiple_mode_empty_is_one(self):
        assert beneficiary_count(BeneficiaryMode.MULTIPLE, []) == 1

    def test_parse_bulk_text(self):
        text = "Ahmed Ali, 784-1990-1234567-1\n\n  Sara Khan  \n, 784-2000\nJohn,\n"
        people = parse_beneficiaries(text)

        assert people == [
            Beneficiary("Ahmed Ali", "784-1990-1234567-1"),
            Beneficiary("Sara Khan", ""),
            Beneficiary("John", ""),
        ]

    def test_parse_empty(self):
        assert parse_beneficiaries(None) == []
        assert parse_beneficiaries("  \n\n") == []

    def test_label(self):
        assert Beneficiary("Ahmed", "784").label == "Ahmed (784)"
        assert Beneficiary("Ahmed").label == "Ahmed"
