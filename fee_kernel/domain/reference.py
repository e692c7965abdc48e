"""
Reference Tables (``fee_kernel.domain.reference``).

Responsibility
--------------
Immutable reference data the fee engines read but never change:

* ``FeeScaleTable`` -- ordered brackets mapping a construction-cost
  threshold to a prime-consultant rate and per-discipline fractions.
* ``DuplicateRateTable`` -- multipliers for duplicate structures, indexed
  by rate id (1 = original, 2 = first duplicate, ... capped at 10).
* ``BuildingTypeCost`` -- catalog rows used to seed space construction costs.
* ``ServiceTemplate`` -- a standard engineering service that becomes one
  ``TrackedService`` per structure.

Invariants enforced
-------------------
* Fee-scale thresholds are strictly ascending (unique).  The strict
  constructor raises ``FeeScaleOrderError``; ``FeeScaleTable.from_rows``
  sorts and de-duplicates instead.
* An empty ``FeeScaleTable`` is valid: it is what the engine sees before the
  table has loaded, and it resolves to the fallback rate.
* Duplicate rate ids are unique and within ``1..MAX_DUPLICATE_RATE_ID``.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from fee_kernel.domain.disciplines import Phase, discipline_name, parse_phase
from fee_kernel.domain.values import optional_decimal, to_decimal
from fee_kernel.exceptions import FeeScaleOrderError, InvalidDuplicateRateError
from fee_kernel.logging_config import get_logger

logger = get_logger("domain.reference")

MAX_DUPLICATE_RATE_ID = 10


# ============================================================================
# Fee scale
# ============================================================================


@dataclass(frozen=True)
class FeeScaleBracket:
    """
    One row of the design fee scale.

    ``prime_consultant_rate`` is a percent of construction cost; each
    ``fraction_*`` is a percent of the prime rate.
    """

    construction_cost: Decimal
    prime_consultant_rate: Decimal
    fraction_mechanical: Decimal = Decimal("100")
    fraction_plumbing: Decimal = Decimal("100")
    fraction_electrical: Decimal = Decimal("100")
    fraction_structural: Decimal = Decimal("100")
    id: int | None = None

    def __post_init__(self) -> None:
        for name in (
            "construction_cost",
            "prime_consultant_rate",
            "fraction_mechanical",
            "fraction_plumbing",
            "fraction_electrical",
            "fraction_structural",
        ):
            object.__setattr__(self, name, to_decimal(getattr(self, name)))


@dataclass(frozen=True)
class FeeScaleTable:
    """Ordered, immutable set of fee-scale brackets."""

    brackets: tuple[FeeScaleBracket, ...] = ()

    def __post_init__(self) -> None:
        brackets = tuple(self.brackets)
        for i in range(1, len(brackets)):
            prev = brackets[i - 1].construction_cost
            cur = brackets[i].construction_cost
            if not cur > prev:
                raise FeeScaleOrderError(index=i, previous=prev, current=cur)
        object.__setattr__(self, "brackets", brackets)

    @classmethod
    def empty(cls) -> FeeScaleTable:
        return cls(brackets=())

    @classmethod
    def from_rows(cls, rows: Iterable[FeeScaleBracket]) -> FeeScaleTable:
        """
        Build a table from rows in any order.

        Rows are sorted by threshold; when a threshold repeats, the first
        row wins and the rest are dropped with a warning.
        """
        ordered = sorted(rows, key=lambda b: b.construction_cost)
        kept: list[FeeScaleBracket] = []
        for bracket in ordered:
            if kept and kept[-1].construction_cost == bracket.construction_cost:
                logger.warning("fee_scale_duplicate_threshold_dropped", extra={
                    "construction_cost": str(bracket.construction_cost),
                    "bracket_id": bracket.id,
                })
                continue
            kept.append(bracket)
        return cls(brackets=tuple(kept))

    @property
    def is_empty(self) -> bool:
        return not self.brackets

    @property
    def thresholds(self) -> tuple[Decimal, ...]:
        return tuple(b.construction_cost for b in self.brackets)

    def __len__(self) -> int:
        return len(self.brackets)

    def __iter__(self) -> Iterator[FeeScaleBracket]:
        return iter(self.brackets)

    def __getitem__(self, index: int) -> FeeScaleBracket:
        return self.brackets[index]


# ============================================================================
# Duplicate structure rates
# ============================================================================


@dataclass(frozen=True)
class DuplicateRate:
    """Multiplier applied to a structure's rate, by rate id."""

    id: int
    rate: Decimal

    def __post_init__(self) -> None:
        object.__setattr__(self, "id", int(self.id))
        object.__setattr__(self, "rate", to_decimal(self.rate))


@dataclass(frozen=True)
class DuplicateRateTable:
    """Ordered duplicate-rate entries, ids 1..10."""

    rates: tuple[DuplicateRate, ...] = ()

    def __post_init__(self) -> None:
        rates = tuple(sorted(self.rates, key=lambda r: r.id))
        seen: set[int] = set()
        for entry in rates:
            if not 1 <= entry.id <= MAX_DUPLICATE_RATE_ID:
                raise InvalidDuplicateRateError(
                    entry.id, f"id must be between 1 and {MAX_DUPLICATE_RATE_ID}"
                )
            if entry.id in seen:
                raise InvalidDuplicateRateError(entry.id, "id is repeated")
            seen.add(entry.id)
        object.__setattr__(self, "rates", rates)

    @classmethod
    def empty(cls) -> DuplicateRateTable:
        return cls(rates=())

    @classmethod
    def from_mapping(cls, mapping: Mapping[int, Any]) -> DuplicateRateTable:
        return cls(rates=tuple(DuplicateRate(id=k, rate=v) for k, v in mapping.items()))

    def lookup(self, rate_id: int) -> Decimal | None:
        for entry in self.rates:
            if entry.id == rate_id:
                return entry.rate
        return None

    def __len__(self) -> int:
        return len(self.rates)


# ============================================================================
# Catalog data
# ============================================================================


@dataclass(frozen=True)
class BuildingTypeCost:
    """Published cost per square foot for one building type, cost type and year."""

    building_type_id: str
    cost_type: str  # a discipline name or "Total"
    year: int
    cost_per_sqft: Decimal

    def __post_init__(self) -> None:
        object.__setattr__(self, "year", int(self.year))
        object.__setattr__(self, "cost_per_sqft", to_decimal(self.cost_per_sqft))


@dataclass(frozen=True)
class ServiceTemplate:
    """Standard engineering service offered on every structure."""

    id: str
    service_name: str
    discipline: str
    phase: Phase
    min_fee: Decimal | None = None
    rate: Decimal | None = None
    fee_increment: Decimal | None = None
    is_included_in_fee: bool = False
    is_default_included: bool = False
    is_construction_admin: bool = False
    description: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "phase", parse_phase(self.phase))
        object.__setattr__(self, "discipline", discipline_name(self.discipline))
        for name in ("min_fee", "rate", "fee_increment"):
            object.__setattr__(self, name, optional_decimal(getattr(self, name)))
