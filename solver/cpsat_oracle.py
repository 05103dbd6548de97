# solver/cpsat_oracle.py
"""
Stand-in DIMACS oracle backed by OR-Tools CP-SAT.

Speaks the same stdin/stdout protocol as cryptominisat so the subprocess
adapter can drive it unchanged:

    python -m solver.cpsat_oracle [--time-limit SECONDS] [--workers N] < problem.cnf

Exit codes follow the SAT-competition convention (10 SAT, 20 UNSAT, 0 unknown).
"""
from __future__ import annotations

import argparse
import sys
from typing import List, Optional, Sequence, Tuple

from ortools.sat.python import cp_model as _cp

from solver.dimacs import SAT, UNKNOWN, UNSAT, parse_dimacs

EXIT_SAT = 10
EXIT_UNSAT = 20
EXIT_UNKNOWN = 0


def solve_cnf(
    variable_count: int,
    clauses: Sequence[Sequence[int]],
    *,
    time_limit: Optional[float] = None,
    workers: int = 1,
) -> Tuple[str, List[int]]:
    """Return ``(status, literals)``; literals cover every variable when SAT."""

    for clause in clauses:
        if not clause:
            return UNSAT, []
        top = max(abs(lit) for lit in clause)
        if top > variable_count:
            variable_count = top

    m = _cp.CpModel()
    xs = [None] + [m.new_bool_var(f"x{i}") for i in range(1, variable_count + 1)]
    for clause in clauses:
        m.add_bool_or([xs[lit] if lit > 0 else xs[-lit].negated() for lit in clause])

    solver = _cp.CpSolver()
    if time_limit and time_limit > 0:
        solver.parameters.max_time_in_seconds = float(time_limit)
    solver.parameters.num_workers = max(1, int(workers))
    solver.parameters.log_search_progress = False

    res = solver.solve(m)
    if res in (_cp.OPTIMAL, _cp.FEASIBLE):
        lits = [i if solver.boolean_value(xs[i]) else -i for i in range(1, variable_count + 1)]
        return SAT, lits
    if res == _cp.INFEASIBLE:
        return UNSAT, []
    return UNKNOWN, []


def format_answer(status: str, literals: Sequence[int], per_line: int = 20) -> str:
    if status == SAT:
        out = ["s SATISFIABLE"]
        lits = [str(lit) for lit in literals] + ["0"]
        for i in range(0, len(lits), per_line):
            out.append("v " + " ".join(lits[i:i + per_line]))
        return "\n".join(out) + "\n"
    if status == UNSAT:
        return "s UNSATISFIABLE\n"
    return "s UNKNOWN\n"


def main(argv: Optional[Sequence[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="CP-SAT backed DIMACS oracle")
    ap.add_argument("--time-limit", type=float, default=0.0)
    ap.add_argument("--workers", type=int, default=1)
    args = ap.parse_args(argv)

    try:
        variable_count, clauses = parse_dimacs(sys.stdin.read())
    except ValueError as e:
        sys.stderr.write(f"c parse error: {e}\n")
        sys.stdout.write("s UNKNOWN\n")
        return EXIT_UNKNOWN

    status, literals = solve_cnf(
        variable_count, clauses, time_limit=args.time_limit, workers=args.workers
    )
    sys.stdout.write(format_answer(status, literals))
    sys.stdout.flush()
    if status == SAT:
        return EXIT_SAT
    if status == UNSAT:
        return EXIT_UNSAT
    return EXIT_UNKNOWN


if __name__ == "__main__":
    sys.exit(main())
