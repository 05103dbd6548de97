# solver/oracle.py
"""
Child-process adapter for the external SAT oracle.

The DIMACS text is written to the child's stdin and the stream is closed;
stdout and stderr are drained concurrently by ``Popen.communicate`` in short
slices so a timeout or a cancel request can tear the child down between
slices. Every failure mode comes back as an ``OracleAnswer``; nothing here
raises on a runtime condition.
"""
from __future__ import annotations

import os
import shlex
import shutil
import subprocess
import sys
import threading
import time
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from config import CFG
from solver.dimacs import SAT, UNKNOWN, UNSAT, parse_solver_output

log = logging.getLogger(__name__)

ERROR = "ERROR"
TIMEOUT = "TIMEOUT"
CANCELLED = "CANCELLED"

CRYPTOMINISAT_NAMES = ("cryptominisat5", "cryptominisat5.exe")
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


@dataclass
class OracleAnswer:
    status: str
    true_vars: List[int] = field(default_factory=list)
    error: Optional[str] = None
    stderr_tail: str = ""
    duration_s: float = 0.0
    returncode: Optional[int] = None

    @property
    def satisfiable(self) -> bool:
        return self.status == SAT


def _default_threads() -> int:
    return max((os.cpu_count() or 1) - 1, 1)


def _is_cryptominisat(path: str) -> bool:
    return os.path.basename(path).lower().startswith("cryptominisat")


def cpsat_command(time_limit: Optional[float] = None) -> List[str]:
    cmd = [sys.executable, "-m", "solver.cpsat_oracle"]
    if time_limit and time_limit > 0:
        cmd += ["--time-limit", f"{float(time_limit):g}"]
    return cmd


def resolve_oracle_command(cfg=CFG) -> Optional[List[str]]:
    """Locate the oracle: configured path, $CRYPTOMINISAT_PATH, PATH, CP-SAT."""

    extra = shlex.split(getattr(cfg, "ORACLE_ARGS", "") or "")

    candidates: List[str] = []
    configured = (getattr(cfg, "ORACLE_PATH", "") or "").strip()
    if configured:
        candidates.append(configured)
    env_path = (os.environ.get("CRYPTOMINISAT_PATH") or "").strip()
    if env_path:
        candidates.append(env_path)

    binary: Optional[str] = None
    for cand in candidates:
        if os.path.isfile(cand):
            binary = cand
            break
        found = shutil.which(cand)
        if found:
            binary = found
            break
        log.warning("configured SAT oracle %r not found", cand)

    if binary is None and not candidates:
        for name in CRYPTOMINISAT_NAMES:
            found = shutil.which(name)
            if found:
                binary = found
                break

    if binary is not None:
        cmd = [binary]
        if _is_cryptominisat(binary):
            threads = int(getattr(cfg, "ORACLE_THREADS", 0) or 0) or _default_threads()
            cmd += ["--threads", str(threads)]
        return cmd + extra

    if getattr(cfg, "ORACLE_FALLBACK_CPSAT", False):
        return cpsat_command(getattr(cfg, "ORACLE_TIMEOUT_S", None)) + extra
    return None


def _terminate_process(proc: subprocess.Popen, grace: float = 0.2) -> None:
    """Tear ``proc`` down: terminate, then kill if it lingers."""

    if proc.poll() is not None:
        return
    try:
        proc.terminate()
        proc.wait(timeout=grace)
    except subprocess.TimeoutExpired:
        proc.kill()
    except OSError:
        pass


def _tail(text: str, limit: int = 2048) -> str:
    text = text or ""
    return text[-limit:].strip()


class SatOracle:
    def __init__(
        self,
        command: Optional[Sequence[str]],
        *,
        timeout_s: Optional[float] = None,
        poll_s: float = 0.1,
        cwd: Optional[str] = PROJECT_ROOT,
    ):
        self.command = list(command) if command else None
        self.timeout_s = float(timeout_s) if timeout_s else None
        self.poll_s = max(0.01, float(poll_s))
        self.cwd = cwd

    @classmethod
    def from_config(cls, cfg=CFG) -> "SatOracle":
        return cls(
            resolve_oracle_command(cfg),
            timeout_s=getattr(cfg, "ORACLE_TIMEOUT_S", None),
        )

    @property
    def available(self) -> bool:
        return bool(self.command)

    def describe(self) -> str:
        return " ".join(self.command) if self.command else "<none>"

    def solve(self, cnf_text: str, cancel: Optional[threading.Event] = None) -> OracleAnswer:
        t0 = time.monotonic()
        if not self.command:
            return OracleAnswer(ERROR, error="SAT solver not found")
        if cancel is not None and cancel.is_set():
            return OracleAnswer(CANCELLED, error="cancelled before start")

        try:
            proc = subprocess.Popen(
                self.command,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                cwd=self.cwd,
                text=True,
                encoding="ascii",
                errors="replace",
            )
        except OSError as e:
            log.warning("could not start SAT oracle %s: %s", self.describe(), e)
            return OracleAnswer(ERROR, error=f"{type(e).__name__}: {e}", duration_s=time.monotonic() - t0)

        deadline = (t0 + self.timeout_s) if self.timeout_s else None
        pending_input: Optional[str] = cnf_text
        stopped: Optional[str] = None
        out = err = ""

        while True:
            wait_slice = self.poll_s
            if deadline is not None:
                wait_slice = max(0.0, min(wait_slice, deadline - time.monotonic()))
            try:
                out, err = proc.communicate(input=pending_input, timeout=wait_slice)
                break
            except subprocess.TimeoutExpired:
                pending_input = None
            except (BrokenPipeError, OSError) as e:
                _terminate_process(proc)
                return OracleAnswer(
                    ERROR,
                    error=f"oracle pipe error: {type(e).__name__}: {e}",
                    duration_s=time.monotonic() - t0,
                    returncode=proc.returncode,
                )

            if cancel is not None and cancel.is_set():
                stopped = CANCELLED
            elif deadline is not None and time.monotonic() >= deadline:
                stopped = TIMEOUT
            if stopped:
                _terminate_process(proc)
                try:
                    out, err = proc.communicate(timeout=2.0)
                except (subprocess.TimeoutExpired, OSError):
                    out, err = "", ""
                break

        duration = time.monotonic() - t0
        if stopped:
            msg = "cancelled" if stopped == CANCELLED else f"timed out after {self.timeout_s:g}s"
            return OracleAnswer(stopped, error=msg, stderr_tail=_tail(err),
                                duration_s=duration, returncode=proc.returncode)

        status, true_vars = parse_solver_output(out)
        if err and err.strip():
            log.debug("SAT oracle stderr: %s", _tail(err))
        if status == UNKNOWN:
            log.warning(
                "could not determine SAT/UNSAT from oracle output (exit %s)", proc.returncode
            )
        return OracleAnswer(status, true_vars, stderr_tail=_tail(err),
                            duration_s=duration, returncode=proc.returncode)


__all__ = [
    "SAT",
    "UNSAT",
    "UNKNOWN",
    "ERROR",
    "TIMEOUT",
    "CANCELLED",
    "OracleAnswer",
    "SatOracle",
    "resolve_oracle_command",
    "cpsat_command",
]
