# solver/reconstruct.py
from __future__ import annotations

from typing import Dict, Iterable, List

from models import Placement, SolveElement, element_placements


def reconstruct(true_vars: Iterable[int], variable_map: Dict[int, SolveElement]) -> List[Placement]:
    """Expand the true decision variables back into placements.

    Variables missing from ``variable_map`` are sequential-counter or
    cell-link auxiliaries and are skipped.
    """

    placements: List[Placement] = []
    seen = set()
    for var in true_vars:
        element = variable_map.get(var)
        if element is None or var in seen:
            continue
        seen.add(var)
        placements.extend(element_placements(element))
    return placements
