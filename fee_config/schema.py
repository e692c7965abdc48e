"""
ReferenceSet schema.

Defines the reference data a fee calculation reads: the design fee
scale, duplicate-structure rates, regional and project-type cost indices,
the standard engineering services and the building-type cost catalog.
YAML files are parsed into these types by the loader; the engines only
ever see the kernel types they carry.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from fee_kernel.domain.reference import (
    BuildingTypeCost,
    DuplicateRateTable,
    FeeScaleTable,
    ServiceTemplate,
)

# ---------------------------------------------------------------------------
# Cost indices
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StateCostIndex:
    """Regional construction cost index, in percent of the national average."""

    state: str
    cost_index: Decimal
    metro_area: str | None = None


@dataclass(frozen=True)
class ProjectConstructionType:
    """Construction type (new, renovation, ...) with its relative cost index."""

    id: str
    name: str
    relative_cost_index: Decimal = Decimal("100")


# ---------------------------------------------------------------------------
# Reference set
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ReferenceSet:
    """
    One named, versioned set of fee reference data.

    ``checksum`` is the SHA-256 of the canonical JSON of the source YAML
    and changes whenever any reference value changes.
    """

    set_id: str
    version: int
    currency: str
    fee_scale: FeeScaleTable
    duplicate_rates: DuplicateRateTable
    state_cost_indices: tuple[StateCostIndex, ...] = ()
    project_types: tuple[ProjectConstructionType, ...] = ()
    service_templates: tuple[ServiceTemplate, ...] = ()
    building_costs: tuple[BuildingTypeCost, ...] = ()
    checksum: str = ""

    def cost_index(self, state: str, metro_area: str | None = None) -> Decimal | None:
        """Index for a state, preferring an exact metro-area match."""
        state_key = state.strip().upper()
        fallback = None
        for entry in self.state_cost_indices:
            if entry.state.upper() != state_key:
                continue
            if metro_area is not None and entry.metro_area == metro_area:
                return entry.cost_index
            if fallback is None:
                fallback = entry.cost_index
        return fallback

    def project_type_index(self, project_type_id: str) -> Decimal | None:
        for entry in self.project_types:
            if entry.id == project_type_id:
                return entry.relative_cost_index
        return None

    def building_costs_for(self, building_type_id: str) -> tuple[BuildingTypeCost, ...]:
        return tuple(
            c for c in self.building_costs if c.building_type_id == building_type_id
        )
