"""Helpers for writing solver outputs to disk."""

from __future__ import annotations

import os
from typing import Iterable, List, Optional

from config import CFG
from models import Cell, Placement


def _resolve_output_path(base_dir: str, configured_name: str, fallback: str) -> str:
    """Return the absolute path where an output artifact should be written."""

    name = (configured_name or "").strip() or fallback
    if os.path.isabs(name):
        return name
    return os.path.join(base_dir, name)


def _ascii_map(placements: List[Placement], width: int, height: int, blocked: Iterable[Cell]) -> List[str]:
    rows = [["." for _ in range(width)] for _ in range(height)]
    for r, c in blocked:
        if 0 <= r < height and 0 <= c < width:
            rows[r][c] = "#"
    for i, p in enumerate(placements):
        mark = chr(ord("A") + i % 26) if i < 26 else chr(ord("a") + i % 26)
        for r, c in p.cells:
            rows[r][c] = mark
    return ["".join(row) for row in rows]


def write_placements(
    placements: Optional[List[Placement]],
    width: int,
    height: int,
    base_dir: str,
    blocked: Iterable[Cell] = (),
) -> str:
    """Write the chosen placements to the configured text file."""

    path = _resolve_output_path(base_dir, CFG.PLACEMENTS_OUT, "placements.txt")
    os.makedirs(os.path.dirname(path), exist_ok=True)

    with open(path, "w", encoding="utf-8") as f:
        if not placements:
            f.write("No solution\n")
        else:
            covered = sum(len(p.cells) for p in placements)
            f.write(f"grid {width}x{height} coverage {covered}\n")
            for p in placements:
                cells = " ".join(f"({r},{c})" for r, c in sorted(p.cells))
                f.write(f"{p.shape_name} rot {p.rotation_index} @ ({p.row},{p.col}) cells {cells}\n")
            f.write("\n")
            for line in _ascii_map(placements, width, height, blocked):
                f.write(line + "\n")
    return path


def write_layout_view_html(svg: str, legend_html: str, base_dir: str) -> str:
    """Write the rendered SVG/legend preview to the configured HTML file."""

    path = _resolve_output_path(base_dir, CFG.LAYOUT_HTML, "layout_view.html")
    os.makedirs(os.path.dirname(path), exist_ok=True)

    with open(path, "w", encoding="utf-8") as vf:
        vf.write(
            f"""<!doctype html>
<html><head><meta charset='utf-8'><title>Layout View</title>
<style>.swatch{{display:inline-block;width:12px;height:12px;margin-right:6px}}</style></head>
<body class='container'>
<h1>Layout View</h1>
<section class='card'><div class='gridwrap'>{svg}</div></section>
<section class='card'><h3>Legend</h3><ul>{legend_html}</ul></section>
</body></html>"""
        )
    return path


__all__ = ["write_placements", "write_layout_view_html"]
