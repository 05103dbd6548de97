import importlib
import json
import os
import time

from progress import (
    reset,
    set_attempt,
    set_coverage,
    set_done,
    set_phase,
    set_progress_pct,
    set_result_url,
    set_status,
    snapshot,
)


def test_set_done_no_args_defaults_to_solved():
    reset()
    set_done()
    snap = snapshot()
    assert snap["status"] == "Solved"
    assert snap["percent"] == 100.0
    assert snap["done"] is True
    assert snap["ok"] is True
    assert snap["result_url"] == ""


def test_set_done_failure_records_reason():
    reset()
    set_status("Solving")
    set_done(False, reason="No solution found!")
    snap = snapshot()
    assert snap["status"] == "Error"
    assert snap["percent"] == 100.0
    assert snap["message"] == "No solution found!"
    assert snap["done"] is True
    assert snap["ok"] is False


def test_set_result_url_tracks_navigation_target():
    reset()
    set_result_url("/foo")
    snap = snapshot()
    assert snap["result_url"] == "/foo"
    assert snap["done"] is False


def test_reset_increments_run_identifier():
    reset()
    first = snapshot()["run_id"]
    reset()
    second = snapshot()["run_id"]
    assert isinstance(first, int)
    assert isinstance(second, int)
    assert second == first + 1


def test_coverage_percentage_uses_usable_cells():
    reset()
    set_coverage(6, 8)
    snap = snapshot()
    assert snap["coverage"] == 6
    assert snap["coverage_pct"] == 75.0
    set_coverage("junk", 0)
    assert snapshot()["coverage_pct"] == 0.0


def test_progress_pct_is_clamped():
    reset()
    set_progress_pct(250)
    assert snapshot()["percent"] == 100.0
    set_progress_pct(None)
    assert snapshot()["percent"] == 0.0


def test_phase_and_attempt_are_plain_strings():
    reset()
    set_phase("search")
    set_attempt(">= 12 cells")
    snap = snapshot()
    assert snap["phase"] == "search"
    assert snap["attempt"] == ">= 12 cells"
    assert "elapsed_start" not in snap
    assert "elapsed_str" in snap


def test_snapshot_reads_state_written_by_other_process(tmp_path, monkeypatch):
    import progress as progress_module

    state_path = tmp_path / "state.json"
    monkeypatch.setenv("PROGRESS_STATE_FILE", str(state_path))
    progress = importlib.reload(progress_module)

    progress.reset()
    progress.set_phase("symmetry")
    first = progress.snapshot()
    assert first["phase"] == "symmetry"

    data = dict(first)
    data["phase"] = "search"
    data["attempt"] = ">= 9 cells"
    state_path.write_text(json.dumps(data))
    os.utime(state_path, None)

    with progress.PROGRESS_LOCK:
        progress.PROGRESS["phase"] = ""
        progress.PROGRESS["attempt"] = ""
        progress._LAST_STATE_MTIME = 0.0

    time.sleep(0.01)
    updated = progress.snapshot()
    assert updated["phase"] == "search"
    assert updated["attempt"] == ">= 9 cells"

    monkeypatch.delenv("PROGRESS_STATE_FILE", raising=False)
    importlib.reload(progress_module)


def test_attempt_log_lines_are_key_value(tmp_path):
    import logging
    import progress as progress_module

    log_path = tmp_path / "attempts.log"
    handler = logging.FileHandler(log_path, encoding="utf-8")
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger = progress_module.ATTEMPT_LOGGER
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    try:
        progress_module.log_attempt_detail("Iteration", n=1, target=8, error=None)
    finally:
        logger.removeHandler(handler)
        handler.close()
    assert log_path.read_text(encoding="utf-8").strip() == "Iteration | n=1 target=8"


def test_record_iteration_is_cleared_by_reset():
    from progress import record_iteration

    reset()
    record_iteration(3, 12)
    snap = snapshot()
    assert (snap["iteration"], snap["target"], snap["oracle_status"]) == (3, 12, "")
    record_iteration(3, 12, "UNSAT")
    assert snapshot()["oracle_status"] == "UNSAT"
    reset()
    snap = snapshot()
    assert (snap["iteration"], snap["target"], snap["oracle_status"]) == (0, None, "")


def test_attempt_switch_logs_finished_then_started(tmp_path):
    import logging
    import progress as progress_module

    reset()
    set_phase("search")
    log_path = tmp_path / "spans.log"
    handler = logging.FileHandler(log_path, encoding="utf-8")
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger = progress_module.ATTEMPT_LOGGER
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    try:
        set_attempt(">= 4 cells")
        set_attempt(">= 3 cells")
        set_done(True)
    finally:
        logger.removeHandler(handler)
        handler.close()
    lines = log_path.read_text(encoding="utf-8").splitlines()
    assert lines[0] == "Attempt started | phase=search attempt=>= 4 cells"
    assert lines[1].startswith("Attempt finished | phase=search attempt=>= 4 cells duration=")
    assert lines[1].endswith("reason=switch")
    assert lines[2] == "Attempt started | phase=search attempt=>= 3 cells"
    assert lines[3].endswith("reason=run_complete")
    assert lines[4].startswith("Run finished | run_id=")
