"""
Tests for kernel value objects, reference tables and proposal models.

Covers:
- Decimal coercion, NaN handling and currency display
- Fee-scale ordering and duplicate-rate validation
- Proposal model coercion and lookups
"""

from decimal import Decimal

import pytest

from fee_kernel.domain.disciplines import (
    Discipline,
    Phase,
    discipline_name,
    parse_discipline,
    parse_phase,
)
from fee_kernel.domain.proposal import (
    ConstructionCost,
    ProposalSnapshot,
    Space,
    Structure,
    TrackedService,
)
from fee_kernel.domain.reference import (
    DuplicateRate,
    DuplicateRateTable,
    FeeScaleBracket,
    FeeScaleTable,
)
from fee_kernel.domain.values import (
    Money,
    format_currency,
    optional_decimal,
    percent_of,
    safe_amount,
    to_decimal,
)
from fee_kernel.exceptions import FeeScaleOrderError, InvalidDuplicateRateError


class TestValues:

    def test_float_goes_through_str(self):
        assert to_decimal(0.1) == Decimal("0.1")

    def test_nan_kept(self):
        assert to_decimal(float("nan")).is_nan()

    def test_text_rejected(self):
        with pytest.raises(ValueError):
            to_decimal("abc")

    def test_bool_rejected(self):
        with pytest.raises(ValueError):
            to_decimal(True)

    @pytest.mark.parametrize("value", ["Infinity", "-inf", float("inf"), Decimal("-Infinity")])
    def test_infinite_rejected(self, value):
        with pytest.raises(ValueError):
            to_decimal(value)
        with pytest.raises(ValueError):
            optional_decimal(value)

    def test_percent_of(self):
        assert percent_of(Decimal("50000"), Decimal("4")) == Decimal("2000")
        assert percent_of(Decimal("200"), Decimal("0")) == Decimal("0")

    def test_blank_is_none(self):
        assert optional_decimal("  ") is None
        assert optional_decimal(None) is None

    def test_safe_amount(self):
        assert safe_amount(None) == Decimal("0")
        assert safe_amount(Decimal("NaN")) == Decimal("0")
        assert safe_amount(Decimal("12.5")) == Decimal("12.5")

    def test_money_rounds_half_up(self):
        assert Money.of("2.345").round().amount == Decimal("2.35")

    def test_money_rejects_mixed_currencies(self):
        with pytest.raises(ValueError):
            Money.of("1", "USD") + Money.of("1", "EUR")

    @pytest.mark.parametrize("value,expected", [
        (Decimal("1234.5"), "$1,234.50"),
        (None, "$0.00"),
        (float("nan"), "$0.00"),
        ("", "$0.00"),
        (Decimal("-12"), "-$12.00"),
    ])
    def test_format_currency(self, value, expected):
        assert format_currency(value) == expected

    def test_format_unknown_currency(self):
        assert format_currency(Decimal("5"), "CHF") == "5.00 CHF"


class TestDisciplines:

    def test_parse_any_case(self):
        assert parse_discipline("mechanical") is Discipline.MECHANICAL
        assert parse_discipline("Acoustics") is None

    def test_discipline_name(self):
        assert discipline_name(Discipline.PLUMBING) == "Plumbing"
        assert discipline_name(" Acoustics ") == "Acoustics"

    def test_parse_phase(self):
        assert parse_phase("Design") is Phase.DESIGN
        with pytest.raises(ValueError):
            parse_phase("bidding")


class TestFeeScaleTable:

    def test_unsorted_rejected(self):
        with pytest.raises(FeeScaleOrderError) as exc:
            FeeScaleTable(brackets=(
                FeeScaleBracket(construction_cost="500", prime_consultant_rate="8"),
                FeeScaleBracket(construction_cost="100", prime_consultant_rate="9"),
            ))
        assert exc.value.code == "FEE_SCALE_ORDER"
        assert exc.value.index == 1

    def test_repeated_threshold_rejected(self):
        with pytest.raises(FeeScaleOrderError):
            FeeScaleTable(brackets=(
                FeeScaleBracket(construction_cost="100", prime_consultant_rate="8"),
                FeeScaleBracket(construction_cost="100", prime_consultant_rate="9"),
            ))

    def test_from_rows_sorts_and_keeps_first(self, captured_logs):
        table = FeeScaleTable.from_rows([
            FeeScaleBracket(construction_cost="500", prime_consultant_rate="8"),
            FeeScaleBracket(construction_cost="0", prime_consultant_rate="10", id=1),
            FeeScaleBracket(construction_cost="0", prime_consultant_rate="11", id=2),
        ])

        assert table.thresholds == (Decimal("0"), Decimal("500"))
        assert table[0].id == 1
        assert any(
            r["message"] == "fee_scale_duplicate_threshold_dropped" for r in captured_logs()
        )

    def test_empty(self):
        assert FeeScaleTable.empty().is_empty
        assert len(FeeScaleTable.empty()) == 0


class TestDuplicateRateTable:

    def test_lookup(self):
        table = DuplicateRateTable.from_mapping({1: "1", 2: "0.75"})
        assert table.lookup(2) == Decimal("0.75")
        assert table.lookup(3) is None

    @pytest.mark.parametrize("rate_id", [0, 11])
    def test_id_out_of_range(self, rate_id):
        with pytest.raises(InvalidDuplicateRateError):
            DuplicateRateTable(rates=(DuplicateRate(id=rate_id, rate="1"),))

    def test_repeated_id(self):
        with pytest.raises(InvalidDuplicateRateError):
            DuplicateRateTable(rates=(DuplicateRate(id=2, rate="1"), DuplicateRate(id=2, rate="0.5")))


class TestProposalModels:

    def test_cost_coercion(self):
        cost = ConstructionCost(discipline=Discipline.MECHANICAL, cost_per_sqft=12.5)
        assert cost.discipline == "Mechanical"
        assert cost.cost_per_sqft == Decimal("12.5")

    def test_missing_cost_is_zero(self):
        assert ConstructionCost(discipline="Plumbing", cost_per_sqft=None).cost_per_sqft == Decimal("0")

    def test_space_cost_lookup(self):
        space = Space(id="s", construction_costs=(ConstructionCost("Electrical", "3"),))
        assert space.cost_for("electrical").cost_per_sqft == Decimal("3")
        assert space.cost_for("Civil") is None

    def test_default_design_percentage(self):
        assert Structure(id="a").effective_design_percentage == Decimal("80")
        assert Structure(id="a", design_percentage="0").effective_design_percentage == Decimal("0")

    def test_service_coercion(self):
        service = TrackedService(
            id="svc", service_name="Calcs", discipline="Mechanical", phase="construction",
            min_fee=500, rate="", fee_increment=None,
        )
        assert service.phase is Phase.CONSTRUCTION
        assert service.min_fee == Decimal("500")
        assert service.rate is None
        assert service.has_fee_configuration

    def test_snapshot_lookups(self):
        snapshot = ProposalSnapshot(
            structures=[Structure(id="a"), Structure(id="b")],
            tracked_services=[
                TrackedService(id="s1", service_name="x", discipline="Civil", phase="design", structure_id="b"),
            ],
        )
        assert snapshot.structure("b").id == "b"
        assert snapshot.structure("z") is None
        assert [s.id for s in snapshot.services_for("b")] == ["s1"]
        assert snapshot.service("nope") is None
