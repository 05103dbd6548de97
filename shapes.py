# shapes.py: request parser + built-in shape catalog
from __future__ import annotations

import math
from typing import Any, Dict, List, Optional, Sequence, Tuple

from config import CFG
from models import CellType, Direction, Grid, Shape, SolveParameters, SymmetryMode, freeze_grid

# Pattern alphabet, one character per cell:
#   .  empty      #  generic     L  loader     C  cooler
#   ^  >  v  <    clip facing north / east / south / west
EMPTY_CHARS = {".", " ", "_"}

LOADER = CellType("Loader")
GENERIC = CellType("Generic")
COOLER = CellType("Cooler")

CELL_CHARS: Dict[str, CellType] = {
    "#": GENERIC,
    "L": LOADER,
    "C": COOLER,
    "^": CellType("Clip", True, Direction.NORTH),
    ">": CellType("Clip", True, Direction.EAST),
    "v": CellType("Clip", True, Direction.SOUTH),
    "<": CellType("Clip", True, Direction.WEST),
}

CATALOG_PATTERNS: Dict[str, Tuple[Tuple[str, ...], bool]] = {
    "3-Clip": ((">L<", ".^."), True),
    "4-Clip": ((".v.", ">L<", ".^."), True),
    "Monomino": (("#",), False),
    "Domino": (("##",), True),
    "L-Tromino": (("#.", "##"), True),
}


def _to_int(x: Any) -> Optional[int]:
    if isinstance(x, bool):
        return None
    try:
        f = float(x)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(f) or f != int(f):
        return None
    return int(f)


def _to_bool(x: Any, default: bool) -> bool:
    if x is None or x == "":
        return default
    if isinstance(x, bool):
        return x
    s = str(x).strip().lower()
    if s in ("1", "true", "yes", "on", "soft"):
        return True
    if s in ("0", "false", "no", "off", "hard"):
        return False
    return default


def _as_listish(val: Any) -> List[Any]:
    if val is None:
        return []
    if isinstance(val, (list, tuple)):
        return list(val)
    return [val]


def parse_pattern(name: str, rows: Sequence[str]) -> Tuple[Optional[Grid], Optional[str]]:
    """Turn text rows into a cell grid; returns ``(grid, error)``."""

    if isinstance(rows, str):
        rows = rows.splitlines()
    rows = [str(r) for r in rows if str(r) != ""]
    if not rows:
        return None, f"shape {name!r} has an empty pattern"
    width = len(rows[0])
    if any(len(r) != width for r in rows):
        return None, f"shape {name!r}: pattern rows must all have the same length"

    grid: List[List[Optional[CellType]]] = []
    occupied = 0
    for row in rows:
        out_row: List[Optional[CellType]] = []
        for ch in row:
            if ch in EMPTY_CHARS:
                out_row.append(None)
                continue
            cell = CELL_CHARS.get(ch)
            if cell is None:
                return None, f"shape {name!r}: unknown cell character {ch!r}"
            out_row.append(cell)
            occupied += 1
        grid.append(out_row)
    if occupied == 0:
        return None, f"shape {name!r} has no occupied cells"
    return freeze_grid(grid), None


def format_pattern(grid: Grid) -> List[str]:
    by_cell = {cell: ch for ch, cell in CELL_CHARS.items()}
    return [
        "".join("." if cell is None else by_cell.get(cell, "#") for cell in row)
        for row in grid
    ]


def catalog_shape(name: str) -> Optional[Shape]:
    key = (name or "").strip().lower()
    for cat_name, (rows, rotatable) in CATALOG_PATTERNS.items():
        if cat_name.lower() == key:
            grid, _err = parse_pattern(cat_name, rows)
            return Shape(cat_name, grid, rotatable)
    return None


def catalog() -> List[Shape]:
    return [catalog_shape(name) for name in CATALOG_PATTERNS]


def catalog_payload() -> List[Dict[str, Any]]:
    return [
        {
            "name": s.name,
            "pattern": format_pattern(s.pattern),
            "rotatable": s.rotatable,
            "area": s.area,
            "rotations": len(s.rotations),
        }
        for s in catalog()
    ]


def _parse_shape(item: Any) -> Tuple[Optional[Shape], Optional[str]]:
    if isinstance(item, str):
        shape = catalog_shape(item)
        if shape is None:
            return None, f"unknown shape: {item!r}"
        return shape, None
    if not isinstance(item, dict):
        return None, f"bad shape entry: {item!r}"

    name = str(item.get("name") or "").strip()
    pattern = item.get("pattern")
    if pattern is None:
        # bare name, optionally overriding rotatability
        shape = catalog_shape(name)
        if shape is None:
            return None, f"unknown shape: {name!r}"
        if "rotatable" in item:
            shape = Shape(shape.name, shape.pattern, _to_bool(item.get("rotatable"), shape.rotatable))
        return shape, None

    if not name:
        return None, "custom shapes need a name"
    grid, err = parse_pattern(name, pattern)
    if err:
        return None, err
    return Shape(name, grid, _to_bool(item.get("rotatable"), True)), None


def _parse_cell(raw: Any) -> Optional[Tuple[int, int]]:
    if isinstance(raw, dict):
        raw = (raw.get("r", raw.get("row")), raw.get("c", raw.get("col")))
    elif isinstance(raw, str):
        raw = raw.replace(";", ",").split(",")
    if not isinstance(raw, (list, tuple)) or len(raw) != 2:
        return None
    r, c = _to_int(raw[0]), _to_int(raw[1])
    if r is None or c is None:
        return None
    return r, c


def parse_request(payload: Any) -> Tuple[Optional[SolveParameters], Optional[str]]:
    """
    Return (params, error_message_or_None).

    Accepted JSON:
      {"width": 7, "height": 7, "blocked": [[r, c], ...],
       "shapes": ["3-Clip", {"name": "T", "pattern": ["###", ".#."], "rotatable": true}],
       "symmetry": "Rotational (180°)", "soft_symmetry": true}
    """
    if not isinstance(payload, dict) or not payload:
        return None, "nothing parsed from request"

    width = _to_int(payload.get("width"))
    height = _to_int(payload.get("height"))
    if width is None or height is None or width <= 0 or height <= 0:
        return None, "width and height must be positive integers"
    max_side = int(getattr(CFG, "MAX_GRID_SIDE", 0) or 0)
    if max_side and (width > max_side or height > max_side):
        return None, f"grid too large: at most {max_side} cells per side"

    blocked = set()
    for raw in _as_listish(payload.get("blocked")):
        cell = _parse_cell(raw)
        if cell is None:
            return None, f"bad blocked cell: {raw!r}"
        r, c = cell
        if not (0 <= r < height and 0 <= c < width):
            return None, f"blocked cell ({r}, {c}) is outside the {width}x{height} grid"
        blocked.add(cell)

    shapes: List[Shape] = []
    for item in _as_listish(payload.get("shapes")):
        shape, err = _parse_shape(item)
        if err:
            return None, err
        shapes.append(shape)
    if not shapes:
        return None, "select at least one shape"

    try:
        symmetry = SymmetryMode.parse(payload.get("symmetry"))
    except ValueError as e:
        return None, str(e)

    soft = _to_bool(payload.get("soft_symmetry"), bool(getattr(CFG, "SOFT_SYMMETRY", True)))
    return SolveParameters(width, height, frozenset(blocked), tuple(shapes), symmetry, soft), None


__all__ = [
    "CELL_CHARS",
    "CATALOG_PATTERNS",
    "parse_pattern",
    "format_pattern",
    "catalog_shape",
    "catalog",
    "catalog_payload",
    "parse_request",
]
