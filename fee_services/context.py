"""
fee_services.context -- Explicit calculation context.

Holds the read-only reference data one calculation pass needs (fee scale,
duplicate rates, service templates, building-cost catalog) so callers pass
it to the service layer instead of reaching for a process-wide store.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path

from fee_config import ReferenceSet, get_active_config
from fee_engines.tracer import fingerprint
from fee_kernel.domain.reference import (
    BuildingTypeCost,
    DuplicateRateTable,
    FeeScaleTable,
    ServiceTemplate,
)


@dataclass(frozen=True)
class CalculationContext:
    """
    Reference data for a calculation pass.

    An empty fee scale is valid: it stands for "not loaded yet" and every
    rate resolves to the fallback.
    """

    fee_scale: FeeScaleTable = field(default_factory=FeeScaleTable.empty)
    duplicate_rates: DuplicateRateTable = field(default_factory=DuplicateRateTable.empty)
    service_templates: tuple[ServiceTemplate, ...] = ()
    building_costs: tuple[BuildingTypeCost, ...] = ()
    currency: str = "USD"
    reference_set_id: str | None = None

    @classmethod
    def from_reference_set(cls, reference: ReferenceSet) -> CalculationContext:
        return cls(
            fee_scale=reference.fee_scale,
            duplicate_rates=reference.duplicate_rates,
            service_templates=reference.service_templates,
            building_costs=reference.building_costs,
            currency=reference.currency,
            reference_set_id=reference.set_id,
        )

    @classmethod
    def from_config(
        cls,
        set_name: str = "default",
        config_dir: Path | None = None,
    ) -> CalculationContext:
        return cls.from_reference_set(get_active_config(set_name, config_dir))

    def with_fee_scale(self, fee_scale: FeeScaleTable) -> CalculationContext:
        return replace(self, fee_scale=fee_scale)

    def with_duplicate_rates(self, duplicate_rates: DuplicateRateTable) -> CalculationContext:
        return replace(self, duplicate_rates=duplicate_rates)

    @property
    def fingerprint(self) -> str:
        """Content hash of the tables that affect fee results."""
        return fingerprint(self.fee_scale, self.duplicate_rates)
