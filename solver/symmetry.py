# solver/symmetry.py
"""
Symmetry grouping: placements that are images of each other under the
selected grid symmetry share a single decision variable, which both shrinks
the CNF and forces the solution itself to be symmetric.

Orbits are found by BFS over an implicit graph. Nodes are placements, and an
edge joins a placement to the same-shape placement whose footprint equals its
image under one of the generating transforms. An orbit whose members overlap
cannot be selected as a unit; the soft policy splits it into independent
singletons, the hard policy drops it.
"""
from __future__ import annotations

import logging
import math
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import AbstractSet, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from models import (
    Cell,
    GroupingWarning,
    Placement,
    SolveElement,
    SolveParameters,
    SymmetryGroup,
    SymmetryMode,
    cell_key,
    covered_cells,
)
from solver.variables import VariableAllocator

log = logging.getLogger(__name__)


class Transform(Enum):
    IDENTITY = "identity"
    REFLECT_HORIZONTAL = "reflect-horizontal"
    REFLECT_VERTICAL = "reflect-vertical"
    ROTATE_180 = "rotate180"
    ROTATE_90 = "rotate90"


TRANSFORMS_BY_MODE: Dict[SymmetryMode, Tuple[Transform, ...]] = {
    SymmetryMode.NONE: (Transform.IDENTITY,),
    SymmetryMode.HORIZONTAL: (Transform.REFLECT_HORIZONTAL,),
    SymmetryMode.VERTICAL: (Transform.REFLECT_VERTICAL,),
    SymmetryMode.QUADRANTS: (Transform.REFLECT_HORIZONTAL, Transform.REFLECT_VERTICAL),
    SymmetryMode.ROTATIONAL_180: (Transform.ROTATE_180,),
    # repeated application reaches 180 and 270
    SymmetryMode.ROTATIONAL_90: (Transform.ROTATE_90,),
}


def transform_point(r: int, c: int, transform: Transform, width: int, height: int) -> Optional[Cell]:
    """Image of cell ``(r, c)``, or ``None`` when it leaves the grid."""

    if transform is Transform.IDENTITY:
        nr, nc = r, c
    elif transform is Transform.REFLECT_HORIZONTAL:
        nr, nc = height - 1 - r, c
    elif transform is Transform.REFLECT_VERTICAL:
        nr, nc = r, width - 1 - c
    elif transform is Transform.ROTATE_180:
        nr, nc = height - 1 - r, width - 1 - c
    elif transform is Transform.ROTATE_90:
        # cell centres rotated about the geometric centre of the grid
        cx = (width - 1) / 2.0 + 0.5
        cy = (height - 1) / 2.0 + 0.5
        dx = (c + 0.5) - cx
        dy = (r + 0.5) - cy
        nc = int(math.floor(cx + dy))
        nr = int(math.floor(cy - dx))
    else:  # pragma: no cover - enum is closed
        raise ValueError(f"unsupported transform: {transform!r}")

    if 0 <= nr < height and 0 <= nc < width:
        return nr, nc
    return None


def transform_cells(
    cells: Sequence[Cell],
    transform: Transform,
    width: int,
    height: int,
    blocked: AbstractSet[Cell],
) -> Optional[Tuple[Cell, ...]]:
    """Image of a footprint; ``None`` unless every cell lands in bounds,
    off the blocked set, and the mapping stays one-to-one."""

    if transform is Transform.IDENTITY:
        return tuple(cells)

    out: List[Cell] = []
    for r, c in cells:
        image = transform_point(r, c, transform, width, height)
        if image is None or image in blocked:
            return None
        out.append(image)

    if len(set(out)) != len(cells):
        log.debug("transform %s collapsed %d cells onto %d", transform.value, len(cells), len(set(out)))
        return None
    return tuple(out)


@dataclass
class GroupingOutcome:
    elements: List[SolveElement] = field(default_factory=list)
    variable_map: Dict[int, SolveElement] = field(default_factory=dict)
    warnings: List[GroupingWarning] = field(default_factory=list)
    discarded_ids: Set[int] = field(default_factory=set)


IndexKey = Tuple[int, Tuple[Cell, ...]]


def _build_index(placements: Iterable[Placement]) -> Dict[IndexKey, List[Placement]]:
    index: Dict[IndexKey, List[Placement]] = {}
    for p in placements:
        index.setdefault((p.shape_index, cell_key(p.cells)), []).append(p)
    return index


def _collect_orbit(
    seed: Placement,
    index: Dict[IndexKey, List[Placement]],
    transforms: Sequence[Transform],
    params: SolveParameters,
    assigned: AbstractSet[int],
) -> List[Placement]:
    members: List[Placement] = []
    visited = {seed.placement_id}
    queue = deque([seed])

    while queue:
        current = queue.popleft()
        members.append(current)
        for transform in transforms:
            if transform is Transform.IDENTITY:
                continue
            image = transform_cells(
                current.cells, transform, params.width, params.height, params.blocked
            )
            if image is None:
                continue
            # keyed by shape too: one orbit variable stands for a single shape,
            # so a different shape on the same footprint is never a partner
            for partner in index.get((current.shape_index, cell_key(image)), ()):
                pid = partner.placement_id
                if pid in visited or pid in assigned:
                    continue
                visited.add(pid)
                queue.append(partner)

    return members


def _pairwise_disjoint(members: Sequence[Placement]) -> bool:
    seen: Set[Cell] = set()
    for p in members:
        if not seen.isdisjoint(p.cell_set):
            return False
        seen.update(p.cell_set)
    return True


def _emit(outcome: GroupingOutcome, element: SolveElement, variable_id: int) -> None:
    outcome.elements.append(element)
    outcome.variable_map[variable_id] = element


def group_placements(
    placements: Sequence[Placement],
    params: SolveParameters,
    allocator: VariableAllocator,
) -> GroupingOutcome:
    """Partition placements into decision elements, one variable each."""

    outcome = GroupingOutcome()
    if not placements:
        return outcome

    transforms = TRANSFORMS_BY_MODE.get(params.symmetry, (Transform.IDENTITY,))
    index = _build_index(placements)
    assigned: Set[int] = set()

    for seed in placements:
        if seed.placement_id in assigned:
            continue

        members = _collect_orbit(seed, index, transforms, params, assigned)
        member_ids = tuple(p.placement_id for p in members)

        if len(members) == 1 or _pairwise_disjoint(members):
            var = allocator.next()
            if len(members) == 1:
                element: SolveElement = members[0]
                members[0].assign_variable(var)
            else:
                element = SymmetryGroup(var, tuple(members))
            _emit(outcome, element, var)
            assigned.update(member_ids)
            continue

        if params.soft_symmetry:
            for p in members:
                var = allocator.next()
                p.assign_variable(var)
                _emit(outcome, p, var)
            action = "split"
        else:
            outcome.discarded_ids.update(member_ids)
            action = "discard"
        assigned.update(member_ids)
        warning = GroupingWarning(seed.placement_id, member_ids, action)
        outcome.warnings.append(warning)
        log.info(warning.describe())

    _drop_duplicate_footprints(outcome)
    return outcome


def _drop_duplicate_footprints(outcome: GroupingOutcome) -> None:
    seen: Set[Tuple[Cell, ...]] = set()
    kept: List[SolveElement] = []
    for element in outcome.elements:
        key = cell_key(covered_cells(element))
        if key in seen:
            outcome.variable_map.pop(element.variable_id, None)
            log.debug(
                "dropping element %d: footprint duplicates an earlier element",
                element.variable_id,
            )
            continue
        seen.add(key)
        kept.append(element)
    outcome.elements = kept


__all__ = [
    "Transform",
    "TRANSFORMS_BY_MODE",
    "GroupingOutcome",
    "transform_point",
    "transform_cells",
    "group_placements",
]
