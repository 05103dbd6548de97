# app.py: JSON solve endpoint; progress no-cache
from __future__ import annotations
import os
import time
import logging
import threading
from typing import Any, Dict, Tuple

from flask import Flask, request, send_from_directory, jsonify, url_for

from solver.orchestrator import solve as run_solver
from shapes import parse_request, catalog_payload
from config import CFG
from io_files import write_placements, write_layout_view_html
from render import render_result

from progress import (
    reset as progress_reset,
    as_json as progress_json,
    start_timer as progress_start,
    set_status, set_phase, set_attempt, set_progress_pct,
    set_elapsed, set_done, set_result_url,
)

BASE_DIR = os.path.dirname(os.path.abspath(__file__))


def _resolve_output_paths(configured: str, fallback: str) -> Tuple[str, str, str]:
    name = (configured or "").strip() or fallback
    if os.path.isabs(name):
        full_path = name
    else:
        full_path = os.path.abspath(os.path.join(BASE_DIR, name))
    directory = os.path.dirname(full_path) or BASE_DIR
    filename = os.path.basename(full_path) or fallback
    return full_path, directory, filename


_PLACEMENTS_FULL_PATH, PLACEMENTS_DIR, PLACEMENTS_FILENAME = _resolve_output_paths(
    CFG.PLACEMENTS_OUT, "placements.txt"
)
_LAYOUT_FULL_PATH, LAYOUT_DIR, LAYOUT_FILENAME = _resolve_output_paths(
    CFG.LAYOUT_HTML, "layout_view.html"
)

LAST_RESULT: Dict[str, Any] = {
    "ok": False,
    "run_id": 0,
    "message": "",
    "coverage": 0,
    "usable_cells": 0,
    "width": 0,
    "height": 0,
    "placements": [],
    "iterations": [],
    "warnings": [],
    "stats": {},
    "elapsed_str": "0s",
    "svg": "",
    "placements_filename": PLACEMENTS_FILENAME,
    "layout_filename": LAYOUT_FILENAME,
}

# One cancel event per run, keyed by progress run_id; POST /cancel sets it.
CANCEL_LOCK = threading.Lock()
CANCEL_EVENTS: Dict[int, threading.Event] = {}

app = Flask(__name__)
log = logging.getLogger(__name__)


@app.after_request
def _no_cache_progress(resp):
    if request.path == "/progress3":
        resp.headers["Cache-Control"] = "no-store, max-age=0"
        resp.headers["Pragma"] = "no-cache"
        resp.headers["Expires"] = "0"
    return resp


def _fmt_elapsed(seconds: float) -> str:
    if seconds < 1:
        return "0s"
    m, s = divmod(int(seconds), 60)
    if m == 0:
        return f"{s}s"
    h, m = divmod(m, 60)
    if h == 0:
        return f"{m}m {s}s"
    return f"{h}h {m}m {s}s"


def _finalize_solver_progress(ok_flag: bool, message: str) -> None:
    """Write the terminal solver status without clobbering failure states."""

    set_status("Solved" if ok_flag else "Error")
    set_done(ok_flag, reason=message)


def _error_response(message: str, status: int = 400):
    LAST_RESULT.update({
        "ok": False,
        "message": message,
        "coverage": 0,
        "placements": [],
        "iterations": [],
        "warnings": [],
        "stats": {},
        "svg": "",
    })
    return jsonify({"ok": False, "message": message}), status


@app.route("/shapes")
def shapes():
    return jsonify({"shapes": catalog_payload()})


@app.route("/solve", methods=["POST"])
def solve():
    run_id = progress_reset()
    progress_start()
    cancel_event = threading.Event()
    with CANCEL_LOCK:
        CANCEL_EVENTS[run_id] = cancel_event

    set_status("Solving")
    set_phase("request")
    set_attempt("")
    set_progress_pct(0)

    t0 = time.time()
    try:
        payload = request.get_json(silent=True)
        params, err = parse_request(payload)
        if err:
            reason = f"Bad request: {err}"
            _finalize_solver_progress(False, reason)
            return _error_response(reason)

        try:
            result = run_solver(params, cancel=cancel_event)
        except Exception as e:
            log.exception("solver failed for run %d", run_id)
            reason = f"solver exception: {type(e).__name__}: {e}"
            _finalize_solver_progress(False, reason)
            return _error_response(reason, 500)
    finally:
        with CANCEL_LOCK:
            CANCEL_EVENTS.pop(run_id, None)

    _finalize_solver_progress(result.ok, result.message)
    set_elapsed(time.time() - t0)

    svg_markup, legend_html = render_result(result.placements, params.width, params.height, params.blocked)
    placements_path = write_placements(
        result.placements, params.width, params.height, BASE_DIR, params.blocked
    )
    layout_path = write_layout_view_html(svg_markup, legend_html, BASE_DIR)

    body = result.to_dict()
    LAST_RESULT.update(body)
    LAST_RESULT.update({
        "run_id": run_id,
        "usable_cells": params.usable_cells,
        "width": params.width,
        "height": params.height,
        "elapsed_str": _fmt_elapsed(time.time() - t0),
        "svg": svg_markup,
        "placements_filename": os.path.basename(placements_path) or PLACEMENTS_FILENAME,
        "layout_filename": os.path.basename(layout_path) or LAYOUT_FILENAME,
    })
    set_result_url(url_for("result_latest"))
    return jsonify(LAST_RESULT)


@app.route("/cancel", methods=["POST"])
def cancel():
    """Cancel one run: the ``run_id`` given in the body, else the newest one."""

    payload = request.get_json(silent=True) or {}
    raw = payload.get("run_id") if isinstance(payload, dict) else None
    with CANCEL_LOCK:
        if raw is None:
            run_id = max(CANCEL_EVENTS) if CANCEL_EVENTS else None
        else:
            try:
                run_id = int(raw)
            except (TypeError, ValueError, OverflowError):
                return jsonify({"ok": False, "message": f"bad run_id: {raw!r}"}), 400
        event = CANCEL_EVENTS.get(run_id) if run_id is not None else None
        if event is None:
            return jsonify({"ok": False, "run_id": run_id, "message": "no such running solve"})
        event.set()
    return jsonify({"ok": True, "run_id": run_id})


@app.route("/result/latest")
def result_latest():
    return jsonify(LAST_RESULT)


@app.route("/download/placements")
def download_placements():
    return send_from_directory(PLACEMENTS_DIR, PLACEMENTS_FILENAME, as_attachment=True)


@app.route("/download/html")
def download_html():
    return send_from_directory(LAYOUT_DIR, LAYOUT_FILENAME, as_attachment=True)


@app.route("/progress3")
def progress3():
    return jsonify(progress_json())


if __name__ == "__main__":
    app.run(debug=False, threaded=True)
