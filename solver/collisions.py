# solver/collisions.py
from __future__ import annotations

from typing import Dict, Iterable, List

from models import SolveElement, covered_cells
from solver.cardinality import Clause, encode_at_most_k
from solver.variables import VariableAllocator

CollisionIndex = Dict[int, List[int]]


def index_collisions(elements: Iterable[SolveElement], width: int) -> CollisionIndex:
    """Map cell index ``r * width + c`` to the element variables covering it."""

    index: CollisionIndex = {}
    for element in elements:
        var = element.variable_id
        if var <= 0:
            raise ValueError(f"element without a variable id: {element!r}")
        for r, c in sorted(covered_cells(element)):
            bucket = index.setdefault(r * width + c, [])
            if var not in bucket:
                bucket.append(var)
    return index


def collision_clauses(index: CollisionIndex, allocator: VariableAllocator) -> List[Clause]:
    """At most one selected element per cell."""

    clauses: List[Clause] = []
    for cell in sorted(index):
        bucket = index[cell]
        if len(bucket) < 2:
            continue
        encoded, _aux = encode_at_most_k(bucket, 1, allocator)
        clauses.extend(encoded)
    return clauses


__all__ = ["CollisionIndex", "index_collisions", "collision_clauses"]
