"""
Pytest fixtures for the fee kernel test suite.

Provides:
- Structured logging configured once per session, with a capture fixture
- Reference tables (fee scale, duplicate rates) for engine tests
- Builders for structures, spaces and tracked services
"""

import json
import logging
from decimal import Decimal
from io import StringIO

import pytest

from fee_kernel.domain.disciplines import Phase
from fee_kernel.domain.proposal import (
    ConstructionCost,
    Level,
    ProposalSnapshot,
    Space,
    Structure,
    TrackedService,
)
from fee_kernel.domain.reference import (
    DuplicateRateTable,
    FeeScaleBracket,
    FeeScaleTable,
)
from fee_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture fee_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            resolve_rate(...)
            logs = captured_logs()
            assert any(r["message"] == "fee_scale_fallback_rate_used" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("fee_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Builders
# =============================================================================


def make_space(space_id="space-1", floor_area="1000", costs=None):
    """Space with ``{discipline: cost_per_sqft}`` costs, all active."""
    costs = {"Mechanical": "50"} if costs is None else costs
    return Space(
        id=space_id,
        name=space_id,
        floor_area=floor_area,
        construction_costs=tuple(
            ConstructionCost(discipline=d, cost_per_sqft=v) for d, v in costs.items()
        ),
    )


def make_structure(structure_id="bldg-a", spaces=None, **kwargs):
    spaces = (make_space(),) if spaces is None else tuple(spaces)
    kwargs.setdefault("name", "Building A")
    return Structure(
        id=structure_id,
        levels=(Level(id=f"{structure_id}-l1", name="Level 1", level_number=1, spaces=spaces),),
        **kwargs,
    )


def make_service(service_id="svc-1", structure_id="bldg-a", **kwargs):
    kwargs.setdefault("service_name", "Load calculations")
    kwargs.setdefault("discipline", "Mechanical")
    kwargs.setdefault("phase", Phase.DESIGN)
    return TrackedService(id=service_id, structure_id=structure_id, **kwargs)


# =============================================================================
# Reference fixtures
# =============================================================================


@pytest.fixture
def single_bracket_scale():
    """One bracket from zero: prime rate 10, Mechanical gets half of it."""
    return FeeScaleTable(brackets=(
        FeeScaleBracket(
            construction_cost="0",
            prime_consultant_rate="10",
            fraction_mechanical="50",
        ),
    ))


@pytest.fixture
def tiered_scale():
    return FeeScaleTable(brackets=(
        FeeScaleBracket(construction_cost="0", prime_consultant_rate="12",
                        fraction_mechanical="50", fraction_plumbing="25",
                        fraction_electrical="40", fraction_structural="60"),
        FeeScaleBracket(construction_cost="100000", prime_consultant_rate="10",
                        fraction_mechanical="50", fraction_plumbing="25",
                        fraction_electrical="40", fraction_structural="60"),
        FeeScaleBracket(construction_cost="1000000", prime_consultant_rate="8",
                        fraction_mechanical="50", fraction_plumbing="25",
                        fraction_electrical="40", fraction_structural="60"),
    ))


@pytest.fixture
def duplicate_rates():
    return DuplicateRateTable.from_mapping({
        1: "1.0",
        2: "0.75",
        3: "0.5",
        10: "0.25",
    })


@pytest.fixture
def worked_structure():
    """Mechanical 50/sqft over 1000 sqft, design share 80%."""
    return make_structure(design_percentage=Decimal("80"))


@pytest.fixture
def worked_snapshot(worked_structure):
    return ProposalSnapshot(
        structures=(worked_structure,),
        tracked_services=(
            make_service(
                "svc-calcs", min_fee="1000", rate="10", fee_increment="250",
            ),
            make_service(
                "svc-ca", service_name="Construction administration",
                phase=Phase.CONSTRUCTION, is_construction_admin=True,
            ),
        ),
        proposal_id="prop-1",
    )


@pytest.fixture
def snapshot_payload():
    """Canonical dict payload matching ``worked_snapshot``."""
    return {
        "proposal_id": "prop-1",
        "currency": "USD",
        "structures": [
            {
                "id": "bldg-a",
                "name": "Building A",
                "design_percentage": 80,
                "levels": [
                    {
                        "id": "bldg-a-l1",
                        "name": "Level 1",
                        "level_number": 1,
                        "spaces": [
                            {
                                "id": "space-1",
                                "name": "space-1",
                                "floor_area": 1000,
                                "construction_costs": [
                                    {"discipline": "Mechanical", "cost_per_sqft": 50},
                                ],
                            },
                        ],
                    },
                ],
            },
        ],
        "tracked_services": [
            {
                "id": "svc-calcs",
                "service_name": "Load calculations",
                "discipline": "Mechanical",
                "phase": "design",
                "structure_id": "bldg-a",
                "min_fee": 1000,
                "rate": 10,
                "fee_increment": 250,
            },
            {
                "id": "svc-ca",
                "service_name": "Construction administration",
                "discipline": "Mechanical",
                "phase": "construction",
                "structure_id": "bldg-a",
                "is_construction_admin": True,
            },
        ],
    }
