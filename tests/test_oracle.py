import sys
import threading
import time
import types

import pytest

import solver.oracle as oracle_mod
from solver.dimacs import SAT, UNKNOWN, UNSAT
from solver.oracle import CANCELLED, ERROR, TIMEOUT, SatOracle, resolve_oracle_command


def _script(tmp_path, name, body):
    path = tmp_path / name
    path.write_text("import sys, time\n" + body, encoding="utf-8")
    return [sys.executable, str(path)]


def _cfg(**overrides):
    base = dict(
        ORACLE_PATH="",
        ORACLE_ARGS="",
        ORACLE_THREADS=0,
        ORACLE_TIMEOUT_S=5.0,
        ORACLE_FALLBACK_CPSAT=True,
    )
    base.update(overrides)
    return types.SimpleNamespace(**base)


def test_satisfiable_answer_is_parsed(tmp_path):
    cmd = _script(
        tmp_path,
        "sat.py",
        "data = sys.stdin.read()\n"
        "assert data.startswith('p cnf')\n"
        "print('s SATISFIABLE')\n"
        "print('v 1 -2 3 0')\n"
        "sys.exit(10)\n",
    )
    answer = SatOracle(cmd, timeout_s=30).solve("p cnf 3 1\n1 3 0\n")
    assert answer.status == SAT
    assert answer.satisfiable
    assert answer.true_vars == [1, 3]
    assert answer.returncode == 10


def test_large_input_does_not_deadlock(tmp_path):
    cmd = _script(
        tmp_path,
        "unsat.py",
        "data = sys.stdin.read()\n"
        "sys.stderr.write('x' * 200000)\n"
        "print('s UNSATISFIABLE')\n",
    )
    clauses = "".join(f"{i} -{i + 1} 0\n" for i in range(1, 60000))
    answer = SatOracle(cmd, timeout_s=60).solve(f"p cnf 60000 59999\n{clauses}")
    assert answer.status == UNSAT
    assert answer.true_vars == []
    assert len(answer.stderr_tail) <= 2048


def test_unparseable_output_is_unknown(tmp_path):
    cmd = _script(tmp_path, "junk.py", "sys.stdin.read()\nprint('hello')\n")
    answer = SatOracle(cmd, timeout_s=30).solve("p cnf 1 1\n1 0\n")
    assert answer.status == UNKNOWN
    assert not answer.satisfiable


def test_slow_oracle_times_out_and_is_reaped(tmp_path):
    cmd = _script(tmp_path, "slow.py", "time.sleep(60)\n")
    t0 = time.monotonic()
    answer = SatOracle(cmd, timeout_s=0.5, poll_s=0.05).solve("p cnf 1 1\n1 0\n")
    assert answer.status == TIMEOUT
    assert time.monotonic() - t0 < 20
    assert answer.returncode is not None


def test_cancel_event_stops_running_oracle(tmp_path):
    cmd = _script(tmp_path, "slow.py", "time.sleep(60)\n")
    cancel = threading.Event()
    timer = threading.Timer(0.3, cancel.set)
    timer.start()
    try:
        answer = SatOracle(cmd, timeout_s=30, poll_s=0.05).solve("p cnf 1 1\n1 0\n", cancel)
    finally:
        timer.cancel()
    assert answer.status == CANCELLED


def test_pre_set_cancel_never_starts_process(tmp_path):
    cancel = threading.Event()
    cancel.set()
    answer = SatOracle([sys.executable, "-c", "pass"]).solve("p cnf 0 0\n", cancel)
    assert answer.status == CANCELLED


def test_missing_command_is_reported_not_raised():
    answer = SatOracle(None).solve("p cnf 1 1\n1 0\n")
    assert answer.status == ERROR
    assert "not found" in answer.error


def test_nonexistent_binary_is_reported_not_raised(tmp_path):
    answer = SatOracle([str(tmp_path / "no-such-solver")]).solve("p cnf 1 1\n1 0\n")
    assert answer.status == ERROR
    assert answer.error


def test_resolve_prefers_configured_cryptominisat(tmp_path, monkeypatch):
    monkeypatch.delenv("CRYPTOMINISAT_PATH", raising=False)
    binary = tmp_path / "cryptominisat5"
    binary.write_text("", encoding="utf-8")
    cmd = resolve_oracle_command(_cfg(ORACLE_PATH=str(binary), ORACLE_THREADS=2, ORACLE_ARGS="--verb 0"))
    assert cmd == [str(binary), "--threads", "2", "--verb", "0"]


def test_resolve_reads_environment_override(tmp_path, monkeypatch):
    binary = tmp_path / "mysolver"
    binary.write_text("", encoding="utf-8")
    monkeypatch.setenv("CRYPTOMINISAT_PATH", str(binary))
    assert resolve_oracle_command(_cfg()) == [str(binary)]


def test_resolve_falls_back_to_cpsat(monkeypatch):
    monkeypatch.delenv("CRYPTOMINISAT_PATH", raising=False)
    monkeypatch.setattr(oracle_mod.shutil, "which", lambda name: None)
    cmd = resolve_oracle_command(_cfg(ORACLE_TIMEOUT_S=5.0))
    assert cmd[:3] == [sys.executable, "-m", "solver.cpsat_oracle"]
    assert cmd[3:] == ["--time-limit", "5"]


def test_resolve_without_fallback_returns_none(monkeypatch):
    monkeypatch.delenv("CRYPTOMINISAT_PATH", raising=False)
    monkeypatch.setattr(oracle_mod.shutil, "which", lambda name: None)
    assert resolve_oracle_command(_cfg(ORACLE_FALLBACK_CPSAT=False)) is None
    assert not SatOracle.from_config(_cfg(ORACLE_FALLBACK_CPSAT=False)).available
