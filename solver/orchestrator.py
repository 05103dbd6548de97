# Orchestrator: Phase A encoding + descending-coverage SAT search
from __future__ import annotations

import math
import time
import logging
import threading
from typing import Any, Dict, List, Optional

from config import CFG
from models import IterationLog, SolveParameters, SolverResult
from progress import (
    set_phase, set_attempt, set_grid, set_progress_pct, set_coverage,
    set_status, set_message, record_iteration, log_attempt_detail,
)
from solver.cardinality import Clause, encode_at_least_k
from solver.collisions import CollisionIndex, collision_clauses, index_collisions
from solver.dimacs import SAT, format_dimacs
from solver.oracle import CANCELLED, SatOracle
from solver.placements import enumerate_placements
from solver.reconstruct import reconstruct
from solver.symmetry import group_placements
from solver.variables import VariableAllocator

log = logging.getLogger(__name__)

MSG_NO_PLACEMENTS = "No valid placements possible for any shape."
MSG_NO_ELEMENTS = "Grouping resulted in zero elements."
MSG_NO_SOLUTION = "No solution found!"
MSG_CANCELLED = "Solve cancelled."


# ---------- helpers ----------

def _align_down_to_multiple(value: int, step: int) -> int:
    if step <= 1:
        return int(value)
    value_i = int(value)
    return int((value_i // step) * step)


def _coverage_step(params: SolveParameters) -> int:
    step = 0
    for shape in params.shapes:
        step = math.gcd(step, int(shape.area))
    return max(1, step)


class _StopSignal:
    """Event-like view over the caller's cancel event and the run deadline."""

    def __init__(self, cancel: Optional[threading.Event], deadline: Optional[float]):
        self.cancel = cancel
        self.deadline = deadline

    def is_set(self) -> bool:
        if self.cancel is not None and self.cancel.is_set():
            return True
        return self.deadline is not None and time.monotonic() >= self.deadline


def _coverage_clauses(
    params: SolveParameters,
    index: CollisionIndex,
    allocator: VariableAllocator,
    target: int,
) -> List[Clause]:
    """Cell-covered ``y`` variables, their links, and ``AtLeastK(ys, target)``."""

    clauses: List[Clause] = []
    ys: List[int] = []
    for r in range(params.height):
        for c in range(params.width):
            if (r, c) in params.blocked:
                continue
            y = allocator.next()
            ys.append(y)
            bucket = index.get(r * params.width + c, [])
            if not bucket:
                clauses.append([-y])
                continue
            clauses.append([-y] + list(bucket))
            for e in bucket:
                clauses.append([-e, y])
    at_least, _aux = encode_at_least_k(ys, target, allocator)
    clauses.extend(at_least)
    return clauses


def _failure(message: str, **kwargs: Any) -> SolverResult:
    return SolverResult(False, message, **kwargs)


# ---------- main entry ----------

def solve(
    params: SolveParameters,
    *,
    oracle: Optional[Any] = None,
    cancel: Optional[threading.Event] = None,
) -> SolverResult:
    """
    Find a maximum-coverage, non-overlapping arrangement for ``params``.

    ``oracle`` is anything with ``solve(cnf_text, cancel) -> OracleAnswer``;
    by default the configured external SAT solver is used. Runtime failures
    come back as ``SolverResult(ok=False, ...)``; nothing is raised.
    """

    t0 = time.monotonic()
    if oracle is None:
        oracle = SatOracle.from_config()
    timeout_s = float(getattr(CFG, "SOLVE_TIMEOUT_S", 0) or 0)
    stop = _StopSignal(cancel, (t0 + timeout_s) if timeout_s > 0 else None)
    usable = params.usable_cells

    set_grid(f"{params.width} × {params.height} cells")
    log_attempt_detail(
        "Run setup",
        width=params.width,
        height=params.height,
        blocked=len(params.blocked),
        shapes=len(params.shapes),
        symmetry=params.symmetry.value,
        soft_symmetry=1 if params.soft_symmetry else 0,
        oracle=oracle.describe() if hasattr(oracle, "describe") else type(oracle).__name__,
    )

    # ----- Phase A: placements, grouping, collision clauses -----
    set_phase("placements")
    placements = enumerate_placements(params.width, params.height, params.blocked, params.shapes)
    stats: Dict[str, int] = {"placements": len(placements), "usable_cells": usable}
    if not placements:
        log_attempt_detail("No placements", usable_cells=usable)
        return _failure(MSG_NO_PLACEMENTS, stats=stats)

    set_phase("symmetry")
    allocator = VariableAllocator()
    grouping = group_placements(placements, params, allocator)
    stats["elements"] = len(grouping.elements)
    stats["discarded_placements"] = len(grouping.discarded_ids)
    if not grouping.elements:
        log_attempt_detail("No elements after grouping", discarded=len(grouping.discarded_ids))
        return _failure(MSG_NO_ELEMENTS, warnings=list(grouping.warnings), stats=stats)

    set_phase("collisions")
    index = index_collisions(grouping.elements, params.width)
    base_clauses = collision_clauses(index, allocator)
    stats["base_variables"] = allocator.max_id
    stats["base_clauses"] = len(base_clauses)
    log_attempt_detail(
        "Base encoding",
        placements=len(placements),
        elements=len(grouping.elements),
        warnings=len(grouping.warnings),
        variables=allocator.max_id,
        clauses=len(base_clauses),
    )

    # ----- Phase B: descending coverage targets -----
    set_phase("search")
    step = _coverage_step(params)
    initial = _align_down_to_multiple(usable, step)
    target = initial
    iterations: List[IterationLog] = []

    def _result(ok: bool, message: str, coverage: int = 0, chosen=None) -> SolverResult:
        stats["iterations"] = len(iterations)
        return SolverResult(
            ok,
            message,
            coverage=coverage,
            placements=chosen,
            iterations=iterations,
            warnings=list(grouping.warnings),
            stats=stats,
        )

    while target >= 0:
        if stop.is_set():
            log_attempt_detail("Solve cancelled", target=target)
            return _result(False, MSG_CANCELLED)

        set_attempt(f">= {target} cells")
        if initial > 0:
            set_progress_pct(100.0 * (initial - target) / initial)

        round_alloc = allocator.replay()
        clauses = base_clauses + _coverage_clauses(params, index, round_alloc, target)
        cnf_text = format_dimacs(clauses, round_alloc.max_id)

        record_iteration(len(iterations) + 1, target)
        answer = oracle.solve(cnf_text, stop)
        entry = IterationLog(
            iteration=len(iterations) + 1,
            required_cells=target,
            variables=round_alloc.max_id,
            clauses=len(clauses),
            duration_s=round(float(answer.duration_s or 0.0), 4),
            satisfiable=answer.status == SAT,
            oracle_status=answer.status,
        )
        iterations.append(entry)
        record_iteration(entry.iteration, target, answer.status)
        log_attempt_detail(
            "Iteration",
            n=entry.iteration,
            target=target,
            variables=entry.variables,
            clauses=entry.clauses,
            status=answer.status,
            duration=f"{entry.duration_s:.2f}s",
            error=answer.error,
        )

        if answer.status == CANCELLED or (answer.status != SAT and stop.is_set()):
            return _result(False, MSG_CANCELLED)

        if answer.status == SAT:
            chosen = reconstruct(answer.true_vars, grouping.variable_map)
            set_coverage(target, usable)
            set_message(f"Covered {target} of {usable} cells")
            log.info("coverage %d/%d reached after %d iteration(s)", target, usable, len(iterations))
            return _result(True, f"Solved: {target} of {usable} cells covered.", target, chosen)

        if answer.error:
            log.warning("oracle gave no answer for target %d: %s", target, answer.error)
        if target == 0:
            break
        target = max(0, target - step)

    set_status("Error")
    return _result(False, MSG_NO_SOLUTION)


__all__ = [
    "solve",
    "MSG_NO_PLACEMENTS",
    "MSG_NO_ELEMENTS",
    "MSG_NO_SOLUTION",
    "MSG_CANCELLED",
]
