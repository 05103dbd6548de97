# solver/cardinality.py
"""Sequential-counter (Sinz 2005) cardinality constraints in CNF.

Both encoders return ``(clauses, aux_count)`` where ``aux_count`` is the
number of fresh variables drawn from the allocator.
"""
from __future__ import annotations

from typing import List, Sequence, Tuple

from solver.variables import VariableAllocator

Clause = List[int]


def encode_at_most_k(
    variables: Sequence[int], k: int, allocator: VariableAllocator
) -> Tuple[List[Clause], int]:
    """At most ``k`` of ``variables`` are true."""

    if k < 0:
        raise ValueError("k cannot be negative")
    xs = list(variables)
    n = len(xs)
    clauses: List[Clause] = []

    if k == 0:
        return [[-x] for x in xs], 0
    if k >= n or n <= 1:
        return clauses, 0

    # s[i][j]: at least j+1 of x_0..x_i are true
    s = [[allocator.next() for _ in range(k)] for _ in range(n)]

    clauses.append([-xs[0], s[0][0]])
    for j in range(1, k):
        clauses.append([-s[0][j]])

    for i in range(1, n):
        clauses.append([-xs[i], s[i][0]])
        clauses.append([-s[i - 1][0], s[i][0]])
        for j in range(1, k):
            clauses.append([-xs[i], -s[i - 1][j - 1], s[i][j]])
            clauses.append([-s[i - 1][j], s[i][j]])
        clauses.append([-xs[i], -s[i - 1][k - 1]])

    return clauses, n * k


def encode_at_least_k(
    variables: Sequence[int], k: int, allocator: VariableAllocator
) -> Tuple[List[Clause], int]:
    """At least ``k`` of ``variables`` are true.

    Encoded as "at most n-k of the complements are true", with one fresh
    complement variable per input.
    """

    if k < 0:
        raise ValueError("k cannot be negative")
    xs = list(variables)
    n = len(xs)

    if k == 0:
        return [], 0
    if k > n:
        dummy = allocator.next()
        return [[dummy], [-dummy]], 1
    if k == n:
        return [[x] for x in xs], 0

    clauses: List[Clause] = []
    complements: List[int] = []
    for x in xs:
        t = allocator.next()
        complements.append(t)
        clauses.append([t, x])
        clauses.append([-t, -x])

    at_most, aux = encode_at_most_k(complements, n - k, allocator)
    clauses.extend(at_most)
    return clauses, n + aux


__all__ = ["Clause", "encode_at_most_k", "encode_at_least_k"]
