"""
fee_services.snapshot -- Proposal payload parsing.

Responsibility:
    Turn a proposal payload (a dict, or a JSON/YAML file) into an immutable
    ``ProposalSnapshot``, and back again.  This is the boundary where
    malformed input shape is detected.

Architecture position:
    Services -- boundary adapter between external payloads and kernel
    domain objects.  The engines only ever see the parsed snapshot.

Invariants enforced:
    - One canonical snake_case shape:
      ``{proposal_id, currency, structures: [{id, name, parent_id,
      design_percentage, duplicate_number, duplicate_rate, levels: [{id,
      name, level_number, spaces: [{id, name, floor_area,
      construction_costs: [{discipline, cost_per_sqft, is_active}]}]}]}],
      tracked_services: [{id, service_name, discipline, phase,
      structure_id, min_fee, rate, fee_increment, is_included,
      is_construction_admin, custom_fee, service_id}]}``.
    - NaN numbers are preserved (the engines neutralise them); text that
      is not a number is a shape error.

Failure modes:
    - ``MalformedSnapshotError`` with a JSON-path-like location for a
      missing key, a wrong container type, a non-numeric number or an
      unknown phase.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any, TypeVar

import yaml

from fee_kernel.domain.proposal import (
    ConstructionCost,
    Level,
    ProposalSnapshot,
    Space,
    Structure,
    TrackedService,
)
from fee_kernel.exceptions import MalformedSnapshotError
from fee_kernel.logging_config import get_logger

logger = get_logger("services.snapshot")

T = TypeVar("T")


def _mapping(value: Any, path: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise MalformedSnapshotError(path, f"expected an object, got {type(value).__name__}")
    return value


def _items(data: Mapping[str, Any], key: str, path: str) -> list[Any]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise MalformedSnapshotError(
            f"{path}.{key}", f"expected a list, got {type(value).__name__}"
        )
    return value


def _required(data: Mapping[str, Any], key: str, path: str) -> Any:
    if key not in data or data[key] is None:
        raise MalformedSnapshotError(f"{path}.{key}", "required field is missing")
    return data[key]


def _int(value: Any, path: str) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise MalformedSnapshotError(path, f"expected an integer, got {value!r}") from e


def _id(value: Any) -> str | None:
    return None if value is None else str(value)


def _flag(data: Mapping[str, Any], key: str, default: bool, path: str) -> bool:
    value = data.get(key)
    if value is None:
        return default
    if not isinstance(value, bool):
        raise MalformedSnapshotError(f"{path}.{key}", f"expected true or false, got {value!r}")
    return value


def _build(factory: Callable[..., T], path: str, **kwargs: Any) -> T:
    try:
        return factory(**kwargs)
    except ValueError as e:
        raise MalformedSnapshotError(path, str(e)) from e


def _parse_cost(data: Any, path: str) -> ConstructionCost:
    data = _mapping(data, path)
    return _build(
        ConstructionCost, path,
        discipline=_required(data, "discipline", path),
        cost_per_sqft=data.get("cost_per_sqft"),
        is_active=_flag(data, "is_active", True, path),
        id=data.get("id"),
    )


def _parse_space(data: Any, path: str) -> Space:
    data = _mapping(data, path)
    return _build(
        Space, path,
        id=str(_required(data, "id", path)),
        name=data.get("name") or "",
        floor_area=data.get("floor_area"),
        construction_costs=tuple(
            _parse_cost(c, f"{path}.construction_costs[{i}]")
            for i, c in enumerate(_items(data, "construction_costs", path))
        ),
    )


def _parse_level(data: Any, path: str) -> Level:
    data = _mapping(data, path)
    return _build(
        Level, path,
        id=str(_required(data, "id", path)),
        name=data.get("name") or "",
        level_number=_int(data.get("level_number"), f"{path}.level_number") or 0,
        spaces=tuple(
            _parse_space(s, f"{path}.spaces[{i}]")
            for i, s in enumerate(_items(data, "spaces", path))
        ),
    )


def _parse_structure(data: Any, path: str) -> Structure:
    data = _mapping(data, path)
    return _build(
        Structure, path,
        id=str(_required(data, "id", path)),
        name=data.get("name") or "",
        levels=tuple(
            _parse_level(lv, f"{path}.levels[{i}]")
            for i, lv in enumerate(_items(data, "levels", path))
        ),
        parent_id=_id(data.get("parent_id")),
        design_percentage=data.get("design_percentage"),
        duplicate_number=_int(data.get("duplicate_number"), f"{path}.duplicate_number"),
        duplicate_rate=data.get("duplicate_rate"),
    )


def _parse_service(data: Any, path: str) -> TrackedService:
    data = _mapping(data, path)
    return _build(
        TrackedService, path,
        id=str(_required(data, "id", path)),
        service_name=data.get("service_name") or "",
        discipline=_required(data, "discipline", path),
        phase=_required(data, "phase", path),
        structure_id=_id(data.get("structure_id")),
        min_fee=data.get("min_fee"),
        rate=data.get("rate"),
        fee_increment=data.get("fee_increment"),
        is_included=_flag(data, "is_included", True, path),
        is_construction_admin=_flag(data, "is_construction_admin", False, path),
        custom_fee=data.get("custom_fee"),
        service_id=data.get("service_id"),
    )


def parse_snapshot(payload: Any) -> ProposalSnapshot:
    """
    Parse a proposal payload into a ``ProposalSnapshot``.

    Raises:
        MalformedSnapshotError: if the payload does not have the expected
            shape.
    """
    data = _mapping(payload, "$")
    snapshot = ProposalSnapshot(
        structures=tuple(
            _parse_structure(s, f"$.structures[{i}]")
            for i, s in enumerate(_items(data, "structures", "$"))
        ),
        tracked_services=tuple(
            _parse_service(s, f"$.tracked_services[{i}]")
            for i, s in enumerate(_items(data, "tracked_services", "$"))
        ),
        proposal_id=data.get("proposal_id"),
        currency=data.get("currency") or "USD",
    )
    logger.debug("snapshot_parsed", extra={
        "proposal_id": snapshot.proposal_id,
        "structure_count": len(snapshot.structures),
        "service_count": len(snapshot.tracked_services),
    })
    return snapshot


def load_snapshot(path: Path) -> ProposalSnapshot:
    """
    Read a UTF-8 JSON or YAML proposal file.

    Raises:
        MalformedSnapshotError: if the file is not valid UTF-8, JSON or
            YAML, or the payload has the wrong shape.
        OSError: if the file cannot be opened.
    """
    path = Path(path)
    with open(path, encoding="utf-8") as f:
        try:
            if path.suffix.lower() in (".yaml", ".yml"):
                payload = yaml.safe_load(f)
            else:
                payload = json.load(f)
        except UnicodeDecodeError as e:
            raise MalformedSnapshotError("$", f"not valid UTF-8: {e}") from e
        except json.JSONDecodeError as e:
            raise MalformedSnapshotError("$", f"invalid JSON: {e}") from e
        except yaml.YAMLError as e:
            raise MalformedSnapshotError("$", f"invalid YAML: {e}") from e
    return parse_snapshot(payload)


def _number(value: Any) -> str | None:
    return None if value is None else str(value)


def snapshot_to_dict(snapshot: ProposalSnapshot) -> dict[str, Any]:
    """Canonical payload for a snapshot; numbers are written as strings."""
    return {
        "proposal_id": snapshot.proposal_id,
        "currency": snapshot.currency,
        "structures": [
            {
                "id": s.id,
                "name": s.name,
                "parent_id": s.parent_id,
                "design_percentage": _number(s.design_percentage),
                "duplicate_number": s.duplicate_number,
                "duplicate_rate": _number(s.duplicate_rate),
                "levels": [
                    {
                        "id": lv.id,
                        "name": lv.name,
                        "level_number": lv.level_number,
                        "spaces": [
                            {
                                "id": sp.id,
                                "name": sp.name,
                                "floor_area": _number(sp.floor_area),
                                "construction_costs": [
                                    {
                                        "id": c.id,
                                        "discipline": c.discipline,
                                        "cost_per_sqft": _number(c.cost_per_sqft),
                                        "is_active": c.is_active,
                                    }
                                    for c in sp.construction_costs
                                ],
                            }
                            for sp in lv.spaces
                        ],
                    }
                    for lv in s.levels
                ],
            }
            for s in snapshot.structures
        ],
        "tracked_services": [
            {
                "id": t.id,
                "service_name": t.service_name,
                "discipline": t.discipline,
                "phase": t.phase.value,
                "structure_id": t.structure_id,
                "min_fee": _number(t.min_fee),
                "rate": _number(t.rate),
                "fee_increment": _number(t.fee_increment),
                "is_included": t.is_included,
                "is_construction_admin": t.is_construction_admin,
                "custom_fee": _number(t.custom_fee),
                "service_id": t.service_id,
            }
            for t in snapshot.tracked_services
        ],
    }
