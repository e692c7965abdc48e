"""
fee_services.commands -- Proposal editing commands.

Responsibility:
    Apply the edits a user makes to a proposal (add, duplicate, copy,
    remove and rename structures, change the design split, include or
    override services, move services between structures, edit spaces) as
    pure functions from one ``ProposalSnapshot`` to the next.

Architecture position:
    Services -- orchestration over kernel domain objects.  Reads
    ``fee_engines.duplicates`` for lineage naming and
    ``fee_engines.service_fee`` to decide whether an entered fee is a
    custom override.

Invariants enforced:
    - Immutability: every command returns a new snapshot built with
      ``dataclasses.replace``; the input snapshot is never modified.
    - Duplicates are named ``"<parent> (Duplicate N)"``, numbered 1..n in
      order, and carry the stored rate ``0.75^(n-1)``.  Removing a
      duplicate renumbers the rest; removing an original removes its
      duplicates and their services.
    - Renames and design-percentage changes on an original propagate to
      its duplicates; duplicates cannot be renamed directly.
    - ``set_service_fee`` stores a custom fee only when it differs from the
      calculated fee, and marks the service included.

Failure modes:
    - ``StructureNotFoundError`` / ``ServiceNotFoundError`` /
      ``SpaceNotFoundError`` for unknown ids.
    - ``DuplicateRenameError`` when renaming a duplicate.

Usage:
    from fee_services.commands import duplicate_structure, set_service_fee

    snapshot = duplicate_structure(snapshot, "bldg-a")
    snapshot = set_service_fee(snapshot, "svc-1", Decimal("1500"), context)
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import replace
from decimal import Decimal
from typing import Any
from uuid import uuid4

from fee_engines.duplicates import base_name, default_duplicate_rate, duplicate_name
from fee_engines.service_fee import calculate_service_fee
from fee_kernel.domain.disciplines import Phase, parse_phase
from fee_kernel.domain.proposal import (
    Level,
    ProposalSnapshot,
    Space,
    Structure,
    TrackedService,
)
from fee_kernel.domain.reference import ServiceTemplate
from fee_kernel.domain.values import HUNDRED, ZERO, optional_decimal, to_decimal
from fee_kernel.exceptions import (
    DuplicateRenameError,
    ServiceNotFoundError,
    SpaceNotFoundError,
    StructureNotFoundError,
)
from fee_kernel.logging_config import get_logger
from fee_services.context import CalculationContext

logger = get_logger("services.commands")

IdFactory = Callable[[], str]

COPY_SUFFIX = " (Copy)"


def _new_id() -> str:
    return str(uuid4())


def _structure(snapshot: ProposalSnapshot, structure_id: str) -> Structure:
    structure = snapshot.structure(structure_id)
    if structure is None:
        raise StructureNotFoundError(structure_id)
    return structure


def _service(snapshot: ProposalSnapshot, service_id: str) -> TrackedService:
    service = snapshot.service(service_id)
    if service is None:
        raise ServiceNotFoundError(service_id)
    return service


def _duplicates_of(snapshot: ProposalSnapshot, parent_id: str) -> list[Structure]:
    return sorted(
        (s for s in snapshot.structures if s.parent_id == parent_id),
        key=lambda s: s.duplicate_number or 0,
    )


def _replace_structures(
    snapshot: ProposalSnapshot,
    updates: dict[str, Structure],
) -> ProposalSnapshot:
    return replace(
        snapshot,
        structures=tuple(updates.get(s.id, s) for s in snapshot.structures),
    )


def _replace_service(snapshot: ProposalSnapshot, service: TrackedService) -> ProposalSnapshot:
    return replace(
        snapshot,
        tracked_services=tuple(
            service if s.id == service.id else s for s in snapshot.tracked_services
        ),
    )


def _clone_levels(levels: Sequence[Level], new_id: IdFactory) -> tuple[Level, ...]:
    return tuple(
        replace(
            level,
            id=new_id(),
            spaces=tuple(replace(space, id=new_id()) for space in level.spaces),
        )
        for level in levels
    )


def _clone_services(
    snapshot: ProposalSnapshot,
    source_id: str,
    target_id: str,
    new_id: IdFactory,
) -> tuple[TrackedService, ...]:
    return tuple(
        replace(s, id=new_id(), structure_id=target_id)
        for s in snapshot.services_for(source_id)
    )


def service_from_template(
    template: ServiceTemplate,
    structure_id: str,
    new_id: IdFactory = _new_id,
) -> TrackedService:
    """Tracked service for one structure, seeded from a standard service."""
    return TrackedService(
        id=new_id(),
        service_name=template.service_name,
        discipline=template.discipline,
        phase=template.phase,
        structure_id=structure_id,
        min_fee=template.min_fee,
        rate=template.rate,
        fee_increment=template.fee_increment,
        is_included=template.is_default_included,
        is_construction_admin=template.is_construction_admin,
        service_id=template.id,
    )


# ---------------------------------------------------------------------------
# Structures
# ---------------------------------------------------------------------------


def add_structure(
    snapshot: ProposalSnapshot,
    structure: Structure,
    templates: Sequence[ServiceTemplate] = (),
    new_id: IdFactory = _new_id,
) -> ProposalSnapshot:
    """Append a structure with one tracked service per standard service."""
    services = tuple(service_from_template(t, structure.id, new_id) for t in templates)
    logger.info("structure_added", extra={
        "structure_id": structure.id,
        "service_count": len(services),
    })
    return replace(
        snapshot,
        structures=snapshot.structures + (structure,),
        tracked_services=snapshot.tracked_services + services,
    )


def duplicate_structure(
    snapshot: ProposalSnapshot,
    structure_id: str,
    new_id: IdFactory = _new_id,
) -> ProposalSnapshot:
    """
    Add the next duplicate of a structure.

    Duplicating a duplicate adds another duplicate of its parent.  The new
    structure is inserted after the parent's last duplicate; levels, spaces
    and tracked services are cloned with fresh ids.
    """
    source = _structure(snapshot, structure_id)
    parent = _structure(snapshot, source.parent_id) if source.is_duplicate else source

    siblings = _duplicates_of(snapshot, parent.id)
    number = len(siblings) + 1
    duplicate = replace(
        parent,
        id=new_id(),
        name=duplicate_name(parent.name, number),
        parent_id=parent.id,
        duplicate_number=number,
        duplicate_rate=default_duplicate_rate(number),
        levels=_clone_levels(parent.levels, new_id),
    )

    ids = [s.id for s in snapshot.structures]
    insert_at = max([ids.index(parent.id)] + [ids.index(s.id) for s in siblings]) + 1
    structures = (
        snapshot.structures[:insert_at] + (duplicate,) + snapshot.structures[insert_at:]
    )

    logger.info("structure_duplicated", extra={
        "structure_id": duplicate.id,
        "parent_id": parent.id,
        "duplicate_number": number,
    })
    return replace(
        snapshot,
        structures=structures,
        tracked_services=snapshot.tracked_services
        + _clone_services(snapshot, parent.id, duplicate.id, new_id),
    )


def copy_structure(
    snapshot: ProposalSnapshot,
    structure_id: str,
    new_id: IdFactory = _new_id,
) -> ProposalSnapshot:
    """Add an independent copy (not a duplicate) billed at the full rate."""
    source = _structure(snapshot, structure_id)
    copy = replace(
        source,
        id=new_id(),
        name=base_name(source.name) + COPY_SUFFIX,
        parent_id=None,
        duplicate_number=None,
        duplicate_rate=None,
        levels=_clone_levels(source.levels, new_id),
    )
    logger.info("structure_copied", extra={
        "structure_id": copy.id,
        "source_id": source.id,
    })
    return replace(
        snapshot,
        structures=snapshot.structures + (copy,),
        tracked_services=snapshot.tracked_services
        + _clone_services(snapshot, source.id, copy.id, new_id),
    )


def remove_structure(snapshot: ProposalSnapshot, structure_id: str) -> ProposalSnapshot:
    """
    Remove a structure and its tracked services.

    Removing an original also removes its duplicates; removing a duplicate
    renumbers the parent's remaining duplicates 1..n.
    """
    target = _structure(snapshot, structure_id)

    if not target.is_duplicate:
        removed = {target.id} | {s.id for s in snapshot.structures if s.parent_id == target.id}
        logger.info("structure_removed", extra={
            "structure_id": target.id,
            "removed_count": len(removed),
        })
        return replace(
            snapshot,
            structures=tuple(s for s in snapshot.structures if s.id not in removed),
            tracked_services=tuple(
                s for s in snapshot.tracked_services if s.structure_id not in removed
            ),
        )

    remaining = [s for s in _duplicates_of(snapshot, target.parent_id) if s.id != target.id]
    parent = snapshot.structure(target.parent_id)
    parent_name = parent.name if parent is not None else base_name(target.name)
    renumbered = {
        s.id: replace(
            s,
            name=duplicate_name(parent_name, n),
            duplicate_number=n,
            duplicate_rate=default_duplicate_rate(n),
        )
        for n, s in enumerate(remaining, start=1)
    }
    logger.info("structure_removed", extra={
        "structure_id": target.id,
        "parent_id": target.parent_id,
        "renumbered_count": len(renumbered),
    })
    pruned = replace(
        snapshot,
        structures=tuple(s for s in snapshot.structures if s.id != target.id),
        tracked_services=tuple(
            s for s in snapshot.tracked_services if s.structure_id != target.id
        ),
    )
    return _replace_structures(pruned, renumbered)


def rename_structure(
    snapshot: ProposalSnapshot,
    structure_id: str,
    name: str,
) -> ProposalSnapshot:
    """Rename an original structure; its duplicates follow the new name."""
    target = _structure(snapshot, structure_id)
    if target.is_duplicate:
        raise DuplicateRenameError(target.id, target.parent_id)

    updates = {target.id: replace(target, name=name)}
    for dup in _duplicates_of(snapshot, target.id):
        number = dup.duplicate_number or 1
        updates[dup.id] = replace(dup, name=duplicate_name(name, number))
    return _replace_structures(snapshot, updates)


def set_design_percentage(
    snapshot: ProposalSnapshot,
    structure_id: str,
    percentage: Decimal | int | str | None,
) -> ProposalSnapshot:
    """
    Set the design share of a structure's fee (clamped to 0..100).

    ``None`` or NaN restores the default split.  A change on an original
    is applied to its duplicates as well.
    """
    target = _structure(snapshot, structure_id)
    value = optional_decimal(percentage)
    if value is not None and value.is_nan():
        value = None
    if value is not None:
        value = min(max(value, ZERO), HUNDRED)

    updates = {target.id: replace(target, design_percentage=value)}
    if not target.is_duplicate:
        for dup in _duplicates_of(snapshot, target.id):
            updates[dup.id] = replace(dup, design_percentage=value)
    return _replace_structures(snapshot, updates)


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------


def set_service_included(
    snapshot: ProposalSnapshot,
    service_id: str,
    included: bool,
) -> ProposalSnapshot:
    service = _service(snapshot, service_id)
    return _replace_service(snapshot, replace(service, is_included=included))


def set_service_fee(
    snapshot: ProposalSnapshot,
    service_id: str,
    fee: Decimal | int | str,
    context: CalculationContext,
) -> ProposalSnapshot:
    """
    Record a fee the user typed for a service.

    The value is stored as a custom fee only when it differs from the
    calculated fee; entering the calculated value clears any override.  The
    service becomes included either way.
    """
    service = _service(snapshot, service_id)
    structure = _structure(snapshot, service.structure_id)
    amount = to_decimal(fee)

    calculated = calculate_service_fee(
        service,
        service.discipline,
        structure,
        context.fee_scale,
        context.duplicate_rates,
        snapshot.structures,
    ).calculated_fee
    custom = None if amount == calculated else amount

    logger.info("service_fee_set", extra={
        "service_id": service.id,
        "calculated_fee": str(calculated),
        "custom_fee": None if custom is None else str(custom),
    })
    return _replace_service(
        snapshot, replace(service, custom_fee=custom, is_included=True)
    )


def revert_service_fee(snapshot: ProposalSnapshot, service_id: str) -> ProposalSnapshot:
    """Drop a custom fee so the calculated fee is displayed again."""
    service = _service(snapshot, service_id)
    return _replace_service(snapshot, replace(service, custom_fee=None))


def move_service(
    snapshot: ProposalSnapshot,
    service_id: str,
    structure_id: str | None = None,
    phase: Phase | str | None = None,
    position: int | None = None,
) -> ProposalSnapshot:
    """
    Move a tracked service to another structure and/or phase, or reorder it.

    ``position`` is an index among the services of the destination
    structure; the service is appended when it is omitted.
    """
    service = _service(snapshot, service_id)
    if structure_id is not None:
        _structure(snapshot, structure_id)

    moved = replace(
        service,
        structure_id=structure_id if structure_id is not None else service.structure_id,
        phase=parse_phase(phase) if phase is not None else service.phase,
    )
    others = [s for s in snapshot.tracked_services if s.id != service.id]
    peers = [i for i, s in enumerate(others) if s.structure_id == moved.structure_id]

    if position is None or position >= len(peers):
        insert_at = peers[-1] + 1 if peers else len(others)
    else:
        insert_at = peers[max(position, 0)]
    others.insert(insert_at, moved)

    logger.debug("service_moved", extra={
        "service_id": service.id,
        "target_structure_id": moved.structure_id,
        "phase": moved.phase.value,
        "position": position,
    })
    return replace(snapshot, tracked_services=tuple(others))


# ---------------------------------------------------------------------------
# Spaces
# ---------------------------------------------------------------------------


def update_space(
    snapshot: ProposalSnapshot,
    structure_id: str,
    level_id: str,
    space_id: str,
    **changes: Any,
) -> ProposalSnapshot:
    """Replace fields of one space (``name``, ``floor_area``, ``construction_costs``)."""
    structure = _structure(snapshot, structure_id)
    level = next((lv for lv in structure.levels if lv.id == level_id), None)
    if level is None:
        raise SpaceNotFoundError(structure_id, level_id)
    space = next((sp for sp in level.spaces if sp.id == space_id), None)
    if space is None:
        raise SpaceNotFoundError(structure_id, level_id, space_id)

    updated: Space = replace(space, **changes)
    new_level = replace(
        level,
        spaces=tuple(updated if sp.id == space_id else sp for sp in level.spaces),
    )
    new_structure = replace(
        structure,
        levels=tuple(new_level if lv.id == level_id else lv for lv in structure.levels),
    )
    return _replace_structures(snapshot, {structure.id: new_structure})
