"""
Property-based tests for the fee engines.

Properties checked:
- Bracket lookup is monotonic in construction cost
- Zero cost always resolves to the first bracket
- Duplicate rate ids are capped at 10
- Design and construction fees sum to the full-rate fee
- Increment rounding: aligned fees are unchanged, others rise by less than one increment
- A minimum fee is a floor
- custom_fee never changes the calculated fee
"""

from decimal import Decimal

from hypothesis import given, settings
from hypothesis import strategies as st

from conftest import make_service, make_space, make_structure

from fee_engines.discipline_fee import calculate_discipline_fee
from fee_engines.duplicates import duplicate_rate_id
from fee_engines.fee_scale import bracket_index
from fee_engines.service_fee import calculate_service_fee, round_up_to_increment
from fee_kernel.domain.disciplines import Phase
from fee_kernel.domain.reference import DuplicateRateTable, FeeScaleBracket, FeeScaleTable

NO_DUPLICATES = DuplicateRateTable.empty()
SCALE = FeeScaleTable(brackets=(
    FeeScaleBracket(construction_cost="0", prime_consultant_rate="10", fraction_mechanical="50"),
))

amounts = st.decimals(min_value=0, max_value=10_000_000, places=2, allow_nan=False, allow_infinity=False)
positive = st.decimals(min_value="0.01", max_value=100_000, places=2, allow_nan=False, allow_infinity=False)
percentages = st.decimals(min_value=0, max_value=100, places=2, allow_nan=False, allow_infinity=False)


@st.composite
def fee_scales(draw):
    """Tables starting at zero with 1-8 ascending thresholds."""
    extra = draw(st.lists(
        st.integers(min_value=1, max_value=50_000_000), max_size=7, unique=True,
    ))
    thresholds = [0] + sorted(extra)
    return FeeScaleTable(brackets=tuple(
        FeeScaleBracket(
            construction_cost=t,
            prime_consultant_rate=draw(st.integers(min_value=1, max_value=15)),
            fraction_mechanical=draw(st.integers(min_value=0, max_value=100)),
        )
        for t in thresholds
    ))


class TestBracketProperties:

    @given(scale=fee_scales(), a=amounts, b=amounts)
    def test_monotonic(self, scale, a, b):
        low, high = sorted((a, b))
        assert bracket_index(low, scale) <= bracket_index(high, scale)

    @given(scale=fee_scales())
    def test_zero_cost_first_bracket(self, scale):
        assert bracket_index(Decimal("0"), scale) == 0

    @given(scale=fee_scales(), cost=amounts)
    def test_threshold_not_above_cost(self, scale, cost):
        index = bracket_index(cost, scale)
        assert scale[index].construction_cost <= cost
        if index + 1 < len(scale):
            assert cost < scale[index + 1].construction_cost

    @given(ordinal=st.integers(min_value=9, max_value=10_000))
    def test_rate_id_capped(self, ordinal):
        assert duplicate_rate_id(ordinal) == 10


class TestFeeProperties:

    @settings(max_examples=50)
    @given(scale=fee_scales(), cost=positive, area=positive, percentage=percentages)
    def test_phases_complement(self, scale, cost, area, percentage):
        structure = make_structure(
            spaces=[make_space("s1", area, {"Mechanical": cost})],
            design_percentage=percentage,
        )
        design = calculate_discipline_fee(structure, "Mechanical", Phase.DESIGN, scale, NO_DUPLICATES)
        construction = calculate_discipline_fee(
            structure, "Mechanical", Phase.CONSTRUCTION, scale, NO_DUPLICATES
        )
        full = cost * area * design.rate / 100
        assert abs((design.fee + construction.fee) - full) <= max(full, Decimal("1")) * Decimal("1e-20")

    @given(amount=amounts, increment=positive)
    def test_increment_rounding_bounded(self, amount, increment):
        rounded = round_up_to_increment(amount, increment)
        assert rounded >= amount
        assert rounded - amount < increment
        assert rounded % increment == 0

    @given(multiple=st.integers(min_value=0, max_value=10_000), increment=positive)
    def test_aligned_amount_unchanged(self, multiple, increment):
        amount = increment * multiple
        assert round_up_to_increment(amount, increment) == amount

    @settings(max_examples=50)
    @given(min_fee=amounts, rate=st.one_of(st.none(), percentages), increment=st.one_of(st.none(), positive))
    def test_minimum_is_floor(self, min_fee, rate, increment):
        service = make_service(min_fee=min_fee, rate=rate, fee_increment=increment)
        result = calculate_service_fee(
            service, "Mechanical", make_structure(), SCALE, NO_DUPLICATES
        )
        assert result.calculated_fee >= min_fee

    @settings(max_examples=50)
    @given(min_fee=st.one_of(st.none(), amounts), rate=st.one_of(st.none(), percentages), custom=amounts)
    def test_custom_fee_transparent(self, min_fee, rate, custom):
        structure = make_structure()
        plain = calculate_service_fee(
            make_service(min_fee=min_fee, rate=rate), "Mechanical", structure,
            SCALE, NO_DUPLICATES,
        )
        overridden = calculate_service_fee(
            make_service(min_fee=min_fee, rate=rate, custom_fee=custom), "Mechanical", structure,
            SCALE, NO_DUPLICATES,
        )
        assert overridden.calculated_fee == plain.calculated_fee
        assert overridden.display_fee == custom
        assert overridden.is_custom
