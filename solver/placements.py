# solver/placements.py
from __future__ import annotations

import logging
from typing import AbstractSet, List, Sequence

from models import Cell, Placement, Shape, grid_dims, occupied_offsets

log = logging.getLogger(__name__)


def enumerate_placements(
    width: int,
    height: int,
    blocked: AbstractSet[Cell],
    shapes: Sequence[Shape],
) -> List[Placement]:
    """Every in-bounds, unblocked position of every shape rotation.

    Offsets run row-major (top row first, left to right) inside each rotation;
    rotations follow the shape's deduplicated rotation order and shapes follow
    catalog order. Placement ids are a plain counter over the emitted list.
    """

    placements: List[Placement] = []
    next_id = 0

    for shape_index, shape in enumerate(shapes):
        for rot_index, grid in enumerate(shape.rotations):
            rot_h, rot_w = grid_dims(grid)
            offsets = occupied_offsets(grid)
            if rot_h == 0 or rot_w == 0 or not offsets:
                continue

            for r in range(height - rot_h + 1):
                for c in range(width - rot_w + 1):
                    covered: List[Cell] = []
                    for pr, pc in offsets:
                        cell = (r + pr, c + pc)
                        if cell in blocked:
                            break
                        covered.append(cell)
                    else:
                        placements.append(
                            Placement(
                                placement_id=next_id,
                                shape_index=shape_index,
                                shape_name=shape.name,
                                rotation_index=rot_index,
                                row=r,
                                col=c,
                                grid=grid,
                                cells=tuple(covered),
                            )
                        )
                        next_id += 1

    log.debug("enumerated %d placements on %dx%d grid", len(placements), width, height)
    return placements
