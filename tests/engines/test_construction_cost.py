"""
Tests for construction cost aggregation.

Covers:
- Per-discipline totals across levels and spaces
- Inactive, missing and "Total" cost records
- NaN floor area and cost per square foot
- Structure-wide totals and floor area
"""

from decimal import Decimal

from conftest import make_space, make_structure

from fee_engines.construction_cost import (
    construction_costs_by_discipline,
    space_construction_cost,
    structure_construction_cost,
    total_construction_cost,
    total_floor_area,
)
from fee_kernel.domain.proposal import ConstructionCost, Level, Space, Structure


class TestTotalConstructionCost:

    def test_single_space(self, worked_structure):
        assert total_construction_cost(worked_structure, "Mechanical") == Decimal("50000")

    def test_discipline_name_is_case_insensitive(self, worked_structure):
        assert total_construction_cost(worked_structure, "mechanical") == Decimal("50000")

    def test_sums_across_spaces(self):
        structure = make_structure(spaces=[
            make_space("s1", "1000", {"Mechanical": "50"}),
            make_space("s2", "500", {"Mechanical": "20"}),
        ])
        assert total_construction_cost(structure, "Mechanical") == Decimal("60000")

    def test_sums_across_levels(self):
        structure = Structure(
            id="bldg",
            levels=(
                Level(id="l1", spaces=(make_space("s1", "100", {"Plumbing": "10"}),)),
                Level(id="l2", spaces=(make_space("s2", "200", {"Plumbing": "10"}),)),
            ),
        )
        assert total_construction_cost(structure, "Plumbing") == Decimal("3000")

    def test_inactive_cost_contributes_zero(self):
        space = Space(
            id="s1",
            floor_area="1000",
            construction_costs=(
                ConstructionCost(discipline="Civil", cost_per_sqft="19", is_active=False),
            ),
        )
        assert space_construction_cost(space, "Civil") == Decimal("0")

    def test_missing_discipline_contributes_zero(self, worked_structure):
        assert total_construction_cost(worked_structure, "Electrical") == Decimal("0")

    def test_empty_structure(self):
        assert total_construction_cost(Structure(id="empty"), "Mechanical") == Decimal("0")

    def test_nan_floor_area_reads_as_zero(self, captured_logs):
        structure = make_structure(spaces=[
            make_space("s1", float("nan"), {"Mechanical": "50"}),
            make_space("s2", "100", {"Mechanical": "50"}),
        ])
        total = total_construction_cost(structure, "Mechanical")

        assert total == Decimal("5000")
        assert not total.is_nan()
        assert any(r["message"] == "construction_cost_nan_coerced" for r in captured_logs())

    def test_nan_cost_per_sqft_reads_as_zero(self):
        structure = make_structure(spaces=[make_space("s1", "100", {"Mechanical": float("nan")})])
        assert total_construction_cost(structure, "Mechanical") == Decimal("0")

    def test_missing_floor_area_reads_as_zero(self):
        structure = make_structure(spaces=[make_space("s1", None, {"Mechanical": "50"})])
        assert total_construction_cost(structure, "Mechanical") == Decimal("0")


class TestStructureWideCost:

    def test_structure_cost_sums_active_disciplines(self):
        structure = make_structure(spaces=[
            make_space("s1", "100", {"Mechanical": "50", "Electrical": "30", "Total": "400"}),
        ])
        assert structure_construction_cost(structure) == Decimal("8000")

    def test_total_cost_type_is_never_a_discipline(self):
        structure = make_structure(spaces=[make_space("s1", "100", {"Total": "400"})])
        assert structure_construction_cost(structure) == Decimal("0")
        assert "Total" not in construction_costs_by_discipline(structure)

    def test_by_discipline_always_lists_five(self, worked_structure):
        costs = construction_costs_by_discipline(worked_structure)

        assert set(costs) == {"Civil", "Electrical", "Mechanical", "Plumbing", "Structural"}
        assert costs["Mechanical"] == Decimal("50000")
        assert costs["Civil"] == Decimal("0")

    def test_by_discipline_keeps_unknown_names(self):
        structure = make_structure(spaces=[make_space("s1", "10", {"Fire Protection": "3"})])
        assert construction_costs_by_discipline(structure)["Fire Protection"] == Decimal("30")

    def test_total_floor_area(self):
        structure = make_structure(spaces=[
            make_space("s1", "1000"),
            make_space("s2", "250.5"),
            make_space("s3", None),
        ])
        assert total_floor_area(structure) == Decimal("1250.5")
