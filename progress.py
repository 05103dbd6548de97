from __future__ import annotations

import json
import logging
import os
import time
import threading
from pathlib import Path
from typing import Any, Dict, Optional

from config import CFG

# ------------------------------
# Run state shared by the solver thread and /progress3
# ------------------------------

PROGRESS_LOCK = threading.Lock()


def _log_dir() -> Path:
    configured = Path(CFG.LOG_DIR or "logs")
    if configured.is_absolute():
        return configured
    return Path(__file__).resolve().parent / configured


def _state_file_path() -> Path:
    configured = os.environ.get("PROGRESS_STATE_FILE")
    if configured:
        return Path(configured)
    return _log_dir() / "progress_state.json"


STATE_FILE = _state_file_path()
STATE_FILE_TMP = STATE_FILE.with_name(STATE_FILE.name + ".tmp")
_LAST_STATE_MTIME: float = 0.0


def _init_logger() -> logging.Logger:
    logger = logging.getLogger("solver.attempt_log")
    if logger.handlers:
        return logger

    log_path = _log_dir() / "solver_attempts.log"
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_path, encoding="utf-8")
        handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(levelname)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
        logger.propagate = False
    except OSError:
        # An unwritable log directory leaves the logger without handlers;
        # progress tracking carries on without the attempt log.
        logger.handlers.clear()
    return logger


ATTEMPT_LOGGER = _init_logger()


def _fmt_seconds(seconds: Optional[float]) -> Optional[str]:
    if seconds is None:
        return None
    return f"{max(0.0, float(seconds)):.2f}s"


def _emit_log(event: str, **fields: Any) -> None:
    if not ATTEMPT_LOGGER.handlers:
        return
    extras = " ".join(
        f"{key}={value}" for key, value in fields.items() if value is not None and value != ""
    )
    if extras:
        ATTEMPT_LOGGER.info("%s | %s", event, extras)
    else:
        ATTEMPT_LOGGER.info("%s", event)


def log_attempt_detail(event: str, **fields: Any) -> None:
    """Free-form detail line in the attempt log (``event | k=v ...``)."""
    _emit_log(event, **fields)


class _Span:
    """A named stretch of the run (a phase or a coverage attempt).

    Switching to a new name closes the previous one, so the attempt log
    shows one ``started``/``finished`` pair per stretch with its duration.
    """

    def __init__(self, kind: str):
        self.kind = kind
        self.name = ""
        self.started: Optional[float] = None

    def switch(self, name: str, now: float, **context: Any) -> None:
        if name == self.name:
            return
        self.close(now, reason="switch", **context)
        self.name = name
        self.started = now if name else None
        if name:
            _emit_log(f"{self.kind.capitalize()} started", **context, **{self.kind: name})

    def close(self, now: float, *, reason: Optional[str] = None, **context: Any) -> None:
        if not self.name:
            return
        duration = None if self.started is None else now - self.started
        _emit_log(
            f"{self.kind.capitalize()} finished",
            **context,
            **{self.kind: self.name},
            duration=_fmt_seconds(duration),
            reason=reason,
        )
        self.name = ""
        self.started = None


_PHASE = _Span("phase")
_ATTEMPT = _Span("attempt")
_RUN_START: Optional[float] = None


def _defaults(run_id: int) -> Dict[str, Any]:
    return {
        "status": "Idle",          # Idle | Solving | Solved | Error
        "phase": "",               # request | placements | symmetry | collisions | search
        "attempt": "",             # e.g. ">= 24 cells"
        "grid": "",                # e.g. "7 × 7 cells"
        "percent": 0.0,            # 0..100, share of the target range already ruled out
        "iteration": 0,            # oracle calls made so far
        "target": None,            # coverage target of the latest call
        "oracle_status": "",       # answer to that call, blank while it runs
        "coverage": 0,             # cells covered by the accepted answer
        "coverage_pct": 0.0,       # % of usable cells covered
        "elapsed_start": None,     # t0 (float) when solving started
        "elapsed": 0.0,            # seconds snapshot
        "message": "",
        "done": False,
        "ok": None,
        "result_url": "",
        "run_id": run_id,          # increases by one per reset()
    }


# Single source of truth for the UI
PROGRESS: Dict[str, Any] = _defaults(0)


def _persist_locked() -> None:
    global _LAST_STATE_MTIME
    try:
        STATE_FILE.parent.mkdir(parents=True, exist_ok=True)
        with STATE_FILE_TMP.open("w", encoding="utf-8") as fh:
            json.dump(PROGRESS, fh, ensure_ascii=False, separators=(",", ":"))
        STATE_FILE_TMP.replace(STATE_FILE)
        _LAST_STATE_MTIME = STATE_FILE.stat().st_mtime
    except OSError:
        # Persistence is best effort; the in-memory state stays authoritative.
        pass


def _load_persisted_locked(force: bool = False) -> None:
    global _LAST_STATE_MTIME
    try:
        stat = STATE_FILE.stat()
    except OSError:
        return
    if not force and stat.st_mtime <= _LAST_STATE_MTIME:
        return
    try:
        with STATE_FILE.open("r", encoding="utf-8") as fh:
            data = json.load(fh)
    except (OSError, ValueError):
        return
    if not isinstance(data, dict):
        return
    PROGRESS.update({key: data[key] for key in PROGRESS if key in data})
    _LAST_STATE_MTIME = stat.st_mtime


def _update(**fields: Any) -> None:
    with PROGRESS_LOCK:
        PROGRESS.update(fields)
        _persist_locked()


def _as_text(v: Any) -> str:
    return "" if v is None else str(v)


def _as_float(v: Any) -> float:
    try:
        return float(v)
    except (TypeError, ValueError):
        return 0.0


# ------------------------------
# Run lifecycle
# ------------------------------

def _now() -> float:
    return time.time()


def _fmt_elapsed(seconds: float) -> str:
    seconds = max(0.0, float(seconds))
    if seconds < 60:
        return f"{int(seconds)}s"
    m, s = divmod(int(seconds), 60)
    if m < 60:
        return f"{m}m {s}s"
    h, m = divmod(m, 60)
    return f"{h}h {m}m"


def reset() -> int:
    """Start a fresh run; returns its ``run_id``."""
    global _RUN_START
    with PROGRESS_LOCK:
        now = _now()
        _ATTEMPT.close(now, reason="reset", phase=_PHASE.name)
        _PHASE.close(now, reason="reset")
        _RUN_START = None
        try:
            run_id = int(PROGRESS.get("run_id", 0)) + 1
        except (TypeError, ValueError):
            run_id = 1
        PROGRESS.clear()
        PROGRESS.update(_defaults(run_id))
        _emit_log("Progress reset", run_id=run_id)
        _persist_locked()
        return run_id


def start_timer() -> None:
    global _RUN_START
    with PROGRESS_LOCK:
        _RUN_START = _now()
        PROGRESS["elapsed_start"] = _RUN_START
        PROGRESS["elapsed"] = 0.0
        _emit_log("Run timer started", run_id=PROGRESS.get("run_id"))
        _persist_locked()


def _touch_elapsed_locked() -> None:
    t0 = PROGRESS.get("elapsed_start")
    if t0 is not None:
        PROGRESS["elapsed"] = _now() - float(t0)


# ------------------------------
# Setters (tolerant)
# ------------------------------

def set_status(v: Any) -> None:
    _update(status=str(v))


def set_phase(v: Any) -> None:
    phase = _as_text(v)
    with PROGRESS_LOCK:
        now = _now()
        if phase != _PHASE.name:
            _ATTEMPT.close(now, reason="phase_change", phase=_PHASE.name)
        _PHASE.switch(phase, now)
        PROGRESS["phase"] = phase
        _persist_locked()


def set_attempt(v: Any) -> None:
    attempt = _as_text(v)
    with PROGRESS_LOCK:
        _ATTEMPT.switch(attempt, _now(), phase=_PHASE.name)
        PROGRESS["attempt"] = attempt
        _persist_locked()


def set_grid(v: Any) -> None:
    _update(grid=_as_text(v))


def set_progress_pct(pct: Any) -> None:
    f = max(0.0, min(100.0, _as_float(pct)))
    with PROGRESS_LOCK:
        PROGRESS["percent"] = f
        _touch_elapsed_locked()
        _persist_locked()


def record_iteration(n: Any, target: Any, status: Any = None) -> None:
    """Note the latest oracle call: its number, coverage target and answer."""
    _update(iteration=int(n), target=int(target), oracle_status=_as_text(status))


def set_coverage(cells: Any, usable: Any = None) -> None:
    try:
        n = max(0, int(cells))
    except (TypeError, ValueError):
        n = 0
    try:
        total = int(usable) if usable is not None else 0
    except (TypeError, ValueError):
        total = 0
    pct = max(0.0, min(100.0, 100.0 * n / total)) if total > 0 else 0.0
    _update(coverage=n, coverage_pct=pct)


def set_elapsed(seconds: Any) -> None:
    _update(elapsed=max(0.0, _as_float(seconds)))


def set_message(msg: Any) -> None:
    _update(message=_as_text(msg))


def set_result_url(url: Any) -> None:
    _update(result_url=_as_text(url))


def set_done(ok: Any = None, *, reason: Any = None) -> None:
    """Mark the run complete.

    ``ok`` picks the final status (``Solved``/``Error``); when omitted an idle
    run is reported as solved. ``reason`` lands in the ``message`` field.
    """
    global _RUN_START
    with PROGRESS_LOCK:
        _touch_elapsed_locked()
        now = _now()
        if ok is not None:
            PROGRESS["ok"] = bool(ok)
            PROGRESS["status"] = "Solved" if ok else "Error"
        elif PROGRESS.get("status") in ("", "Idle", None):
            PROGRESS["ok"] = True
            PROGRESS["status"] = "Solved"
        if reason is not None:
            PROGRESS["message"] = str(reason)
        PROGRESS["percent"] = 100.0
        PROGRESS["done"] = True

        _ATTEMPT.close(now, reason="run_complete", phase=_PHASE.name)
        total = None if _RUN_START is None else now - _RUN_START
        _RUN_START = None
        _emit_log(
            "Run finished",
            run_id=PROGRESS.get("run_id"),
            status=PROGRESS.get("status"),
            ok=PROGRESS.get("ok"),
            duration=_fmt_seconds(total),
            iterations=PROGRESS.get("iteration"),
            coverage=PROGRESS.get("coverage"),
            coverage_pct=f"{float(PROGRESS.get('coverage_pct') or 0.0):.2f}%",
            message=PROGRESS.get("message"),
        )
        _persist_locked()


# ------------------------------
# Snapshots for the UI
# ------------------------------

def snapshot() -> Dict[str, Any]:
    with PROGRESS_LOCK:
        _load_persisted_locked()
        _touch_elapsed_locked()
        snap = {k: v for k, v in PROGRESS.items() if k != "elapsed_start"}
        snap["elapsed_str"] = _fmt_elapsed(PROGRESS["elapsed"])
        return snap


def as_json() -> Dict[str, Any]:
    # Alias used by /progress3
    return snapshot()


with PROGRESS_LOCK:
    _load_persisted_locked(force=True)
