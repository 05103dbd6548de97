import io
import sys

import pytest

pytest.importorskip("ortools")

from solver import cpsat_oracle
from solver.dimacs import SAT, UNSAT, parse_solver_output
from solver.oracle import SatOracle, cpsat_command


def test_solve_cnf_returns_full_assignment():
    status, lits = cpsat_oracle.solve_cnf(3, [[1], [-1, 2], [-3]])
    assert status == SAT
    assert lits == [1, 2, -3]


def test_solve_cnf_detects_contradiction():
    assert cpsat_oracle.solve_cnf(1, [[1], [-1]]) == (UNSAT, [])
    assert cpsat_oracle.solve_cnf(1, [[]]) == (UNSAT, [])


def test_format_answer_round_trips_through_output_parser():
    text = cpsat_oracle.format_answer(SAT, list(range(1, 45)), per_line=20)
    assert text.count("\nv ") == 3
    assert parse_solver_output(text) == (SAT, list(range(1, 45)))


def test_main_speaks_competition_exit_codes(monkeypatch, capsys):
    monkeypatch.setattr(sys, "stdin", io.StringIO("p cnf 2 2\n1 0\n-1 2 0\n"))
    assert cpsat_oracle.main([]) == cpsat_oracle.EXIT_SAT
    assert "s SATISFIABLE" in capsys.readouterr().out

    monkeypatch.setattr(sys, "stdin", io.StringIO("p cnf 1 2\n1 0\n-1 0\n"))
    assert cpsat_oracle.main([]) == cpsat_oracle.EXIT_UNSAT
    assert "s UNSATISFIABLE" in capsys.readouterr().out


def test_bundled_oracle_runs_as_child_process():
    answer = SatOracle(cpsat_command(30), timeout_s=120).solve("p cnf 2 2\n-1 0\n1 2 0\n")
    assert answer.status == SAT
    assert answer.true_vars == [2]
