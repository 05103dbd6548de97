# solver/dimacs.py
"""DIMACS CNF text in both directions, plus SAT-competition output parsing."""
from __future__ import annotations

import logging
from typing import Iterable, List, Sequence, Tuple

log = logging.getLogger(__name__)

SAT = "SAT"
UNSAT = "UNSAT"
UNKNOWN = "UNKNOWN"


def format_dimacs(clauses: Iterable[Sequence[int]], variable_count: int) -> str:
    lines: List[str] = []
    skipped = 0
    for clause in clauses:
        if not clause:
            skipped += 1
            continue
        lines.append(" ".join(str(int(lit)) for lit in clause) + " 0")
    if skipped:
        log.warning("skipped %d empty clause(s) while formatting DIMACS", skipped)
    header = f"p cnf {int(variable_count)} {len(lines)}"
    return "\n".join([header, *lines]) + "\n"


def parse_dimacs(text: str) -> Tuple[int, List[List[int]]]:
    """Return ``(variable_count, clauses)``; clauses may span lines."""

    variable_count = 0
    clauses: List[List[int]] = []
    current: List[int] = []
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("c") or line.startswith("%"):
            continue
        if line.startswith("p"):
            parts = line.split()
            if len(parts) < 4 or parts[1] != "cnf":
                raise ValueError(f"bad DIMACS header: {line!r}")
            variable_count = int(parts[2])
            continue
        for tok in line.split():
            lit = int(tok)
            if lit == 0:
                clauses.append(current)
                current = []
            else:
                current.append(lit)
    if current:
        clauses.append(current)
    return variable_count, clauses


def parse_solver_output(output: str) -> Tuple[str, List[int]]:
    """Return ``(status, true_vars)`` from an ``s``/``v`` style response."""

    status = UNKNOWN
    literals: List[int] = []
    for raw in (output or "").splitlines():
        line = raw.strip()
        if line.startswith("s "):
            verdict = line[2:].strip().upper()
            if verdict == "SATISFIABLE":
                status = SAT
            elif verdict == "UNSATISFIABLE":
                status = UNSAT
        elif line.startswith("v "):
            for tok in line[2:].split():
                try:
                    lit = int(tok)
                except ValueError:
                    continue
                if lit != 0:
                    literals.append(lit)
    if status != SAT:
        return status, []
    return status, [lit for lit in literals if lit > 0]


__all__ = [
    "SAT",
    "UNSAT",
    "UNKNOWN",
    "format_dimacs",
    "parse_dimacs",
    "parse_solver_output",
]
