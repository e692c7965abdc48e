"""
Reference Set Loader (``fee_config.loader``).

Responsibility
--------------
Loads the YAML files of a reference-set directory and parses them into
typed ``fee_config.schema`` and ``fee_kernel.domain.reference`` dataclass
instances.  Callers outside this package use
``fee_config.get_active_config()`` instead.

Architecture position
---------------------
**Config layer** -- infrastructure tooling.  Depends on ``fee_kernel``
domain types only; never on engines or services.

Invariants enforced
-------------------
* Parse errors raise ``KeyError`` or ``ValueError`` with descriptive
  messages; required fields have no silent defaults.
* Fee-scale rows are validated by the strict ``FeeScaleTable``
  constructor: thresholds in the YAML must already be ascending.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the
  source documents for change detection.

Failure modes
-------------
* Missing ``reference.yaml``  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Unsorted fee scale  -> ``FeeScaleOrderError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from fee_config.schema import ProjectConstructionType, ReferenceSet, StateCostIndex
from fee_kernel.domain.reference import (
    BuildingTypeCost,
    DuplicateRate,
    DuplicateRateTable,
    FeeScaleBracket,
    FeeScaleTable,
    ServiceTemplate,
)
from fee_kernel.domain.values import optional_decimal, to_decimal

REFERENCE_FILE = "reference.yaml"
SERVICES_FILE = "services.yaml"
BUILDING_COSTS_FILE = "building_costs.yaml"


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Postconditions:
        - Returns a ``dict`` (empty if the YAML document is empty).
    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_fee_bracket(data: dict[str, Any]) -> FeeScaleBracket:
    """Parse one fee-scale row; fractions default to 100."""
    return FeeScaleBracket(
        construction_cost=to_decimal(data["construction_cost"]),
        prime_consultant_rate=to_decimal(data["prime_consultant_rate"]),
        fraction_mechanical=to_decimal(data.get("fraction_mechanical", 100)),
        fraction_plumbing=to_decimal(data.get("fraction_plumbing", 100)),
        fraction_electrical=to_decimal(data.get("fraction_electrical", 100)),
        fraction_structural=to_decimal(data.get("fraction_structural", 100)),
        id=data.get("id"),
    )


def parse_fee_scale(rows: list[dict[str, Any]]) -> FeeScaleTable:
    """Parse the fee scale; raises ``FeeScaleOrderError`` if unsorted."""
    return FeeScaleTable(brackets=tuple(parse_fee_bracket(r) for r in rows or ()))


def parse_duplicate_rates(rows: list[dict[str, Any]]) -> DuplicateRateTable:
    return DuplicateRateTable(
        rates=tuple(DuplicateRate(id=r["id"], rate=r["rate"]) for r in rows or ())
    )


def parse_state_cost_index(data: dict[str, Any]) -> StateCostIndex:
    return StateCostIndex(
        state=data["state"],
        cost_index=to_decimal(data["cost_index"]),
        metro_area=data.get("metro_area"),
    )


def parse_project_type(data: dict[str, Any]) -> ProjectConstructionType:
    return ProjectConstructionType(
        id=str(data["id"]),
        name=data["name"],
        relative_cost_index=to_decimal(data.get("relative_cost_index", 100)),
    )


def parse_service_template(data: dict[str, Any]) -> ServiceTemplate:
    """
    Parse a standard engineering service.

    Raises:
        KeyError: if ``id``, ``service_name``, ``discipline`` or ``phase``
            is missing.
        ValueError: if ``phase`` is not design or construction.
    """
    return ServiceTemplate(
        id=str(data["id"]),
        service_name=data["service_name"],
        discipline=data["discipline"],
        phase=data["phase"],
        min_fee=optional_decimal(data.get("min_fee")),
        rate=optional_decimal(data.get("rate")),
        fee_increment=optional_decimal(data.get("fee_increment")),
        is_included_in_fee=bool(data.get("is_included_in_fee", False)),
        is_default_included=bool(data.get("is_default_included", False)),
        is_construction_admin=bool(data.get("is_construction_admin", False)),
        description=data.get("description"),
    )


def parse_building_cost(data: dict[str, Any]) -> BuildingTypeCost:
    return BuildingTypeCost(
        building_type_id=str(data["building_type_id"]),
        cost_type=data["cost_type"],
        year=data["year"],
        cost_per_sqft=to_decimal(data["cost_per_sqft"]),
    )


def load_reference_set(directory: Path) -> ReferenceSet:
    """
    Load every file of a reference-set directory.

    ``reference.yaml`` is required; ``services.yaml`` and
    ``building_costs.yaml`` are optional.
    """
    reference = load_yaml_file(directory / REFERENCE_FILE)
    services_path = directory / SERVICES_FILE
    costs_path = directory / BUILDING_COSTS_FILE
    services = load_yaml_file(services_path) if services_path.is_file() else {}
    costs = load_yaml_file(costs_path) if costs_path.is_file() else {}

    return ReferenceSet(
        set_id=reference.get("set_id", directory.name),
        version=int(reference.get("version", 1)),
        currency=reference.get("currency", "USD"),
        fee_scale=parse_fee_scale(reference.get("fee_scale", [])),
        duplicate_rates=parse_duplicate_rates(reference.get("duplicate_rates", [])),
        state_cost_indices=tuple(
            parse_state_cost_index(r) for r in reference.get("state_cost_indices", [])
        ),
        project_types=tuple(
            parse_project_type(r) for r in reference.get("project_types", [])
        ),
        service_templates=tuple(
            parse_service_template(r) for r in services.get("services", [])
        ),
        building_costs=tuple(
            parse_building_cost(r) for r in costs.get("building_costs", [])
        ),
        checksum=compute_checksum({
            "reference": reference,
            "services": services,
            "building_costs": costs,
        }),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Postconditions:
        - Returns a hex-encoded SHA-256 hash string.
        - Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
