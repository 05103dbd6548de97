import html
import random
from typing import Dict, Iterable, List, Optional, Tuple

from models import Cell, Placement

CELL_PX = 32

_GLYPHS = {"Loader": "L", "Cooler": "C", "Generic": ""}
_ARROWS = {0: "^", 1: ">", 2: "v", 3: "<"}


def _color(name: str) -> str:
    rng = random.Random(name)
    r = rng.randint(40, 200)
    g = rng.randint(40, 200)
    b = rng.randint(40, 200)
    return f"rgb({r},{g},{b})"


def _glyph(p: Placement, r: int, c: int) -> str:
    cell = p.cell_type_at(r, c)
    if cell is None:
        return ""
    if cell.rotatable:
        return _ARROWS.get(int(cell.facing), "")
    return _GLYPHS.get(cell.name, cell.name[:1])


def render_result(placements: Optional[List[Placement]], width: int, height: int,
                  blocked: Iterable[Cell] = ()) -> Tuple[str, str]:
    """Return ``(svg, legend_html)`` for a solved grid."""
    placements = placements or []
    palette: Dict[str, str] = {}
    counts: Dict[str, int] = {}
    for p in placements:
        palette.setdefault(p.shape_name, _color(p.shape_name))
        counts[p.shape_name] = counts.get(p.shape_name, 0) + 1

    svg_w = width * CELL_PX + 2
    svg_h = height * CELL_PX + 2

    parts: List[str] = []
    for r, c in sorted(blocked):
        parts.append(
            f'<rect x="{c * CELL_PX + 1}" y="{r * CELL_PX + 1}" width="{CELL_PX}" height="{CELL_PX}" '
            f'fill="#444" class="blocked"/>'
        )
    for p in placements:
        fill = palette[p.shape_name]
        title = html.escape(f"{p.shape_name} r{p.rotation_index} @ ({p.row},{p.col})")
        cells = []
        for r, c in sorted(p.cells):
            x = c * CELL_PX + 1
            y = r * CELL_PX + 1
            cells.append(
                f'<rect x="{x}" y="{y}" width="{CELL_PX}" height="{CELL_PX}" '
                f'fill="{fill}" stroke="black" stroke-width="1"/>'
            )
            glyph = _glyph(p, r, c)
            if glyph:
                cells.append(
                    f'<text x="{x + CELL_PX // 2}" y="{y + CELL_PX // 2 + 5}" font-size="14" '
                    f'text-anchor="middle" fill="black">{html.escape(glyph)}</text>'
                )
        parts.append(f'<g class="placement"><title>{title}</title>{"".join(cells)}</g>')

    frame = f'<rect x="1" y="1" width="{svg_w - 2}" height="{svg_h - 2}" fill="none" stroke="black" stroke-width="2"/>'
    svg = (
        f'<svg class="layout-svg" xmlns="http://www.w3.org/2000/svg" '
        f'width="{svg_w}" height="{svg_h}" '
        f'viewBox="0 0 {svg_w} {svg_h}" preserveAspectRatio="xMinYMin meet">'
        f'{"".join(parts)}{frame}</svg>'
    )

    legend = "".join(
        f"<li><span class='swatch' style='background:{c}'></span>{html.escape(n)} × {counts[n]}</li>"
        for n, c in palette.items()
    )
    return svg, legend
