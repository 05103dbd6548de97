from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum, IntEnum
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Tuple, Union

Cell = Tuple[int, int]  # (row, col)


class Direction(IntEnum):
    NORTH = 0
    EAST = 1
    SOUTH = 2
    WEST = 3

    def turned(self) -> "Direction":
        return Direction((int(self) + 1) % 4)


@dataclass(frozen=True)
class CellType:
    """Tag carried by an occupied shape cell (loader, clip, cooler, ...)."""

    name: str
    rotatable: bool = False
    facing: Direction = Direction.NORTH

    def turned(self) -> "CellType":
        if not self.rotatable:
            return self
        return CellType(self.name, self.rotatable, self.facing.turned())


Grid = Tuple[Tuple[Optional[CellType], ...], ...]


def freeze_grid(rows: Iterable[Iterable[Optional[CellType]]]) -> Grid:
    return tuple(tuple(row) for row in rows)


def grid_dims(grid: Grid) -> Tuple[int, int]:
    h = len(grid)
    w = len(grid[0]) if h else 0
    return h, w


def occupied_offsets(grid: Grid) -> List[Cell]:
    return [
        (r, c)
        for r, row in enumerate(grid)
        for c, cell in enumerate(row)
        if cell is not None
    ]


def rotate_grid(grid: Grid) -> Grid:
    """Quarter turn clockwise; rotatable cell tags turn with the grid."""

    rows, cols = grid_dims(grid)
    if rows == 0 or cols == 0:
        return ()
    out: List[List[Optional[CellType]]] = [[None] * rows for _ in range(cols)]
    for i in range(rows):
        for j in range(cols):
            cell = grid[i][j]
            out[j][rows - 1 - i] = None if cell is None else cell.turned()
    return freeze_grid(out)


def _position_signature(grid: Grid) -> Tuple[int, int, Tuple[Cell, ...]]:
    rows, cols = grid_dims(grid)
    return rows, cols, tuple(occupied_offsets(grid))


@dataclass(frozen=True)
class Shape:
    name: str
    pattern: Grid
    rotatable: bool = True
    rotations: Tuple[Grid, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        pattern = freeze_grid(self.pattern)
        object.__setattr__(self, "pattern", pattern)
        object.__setattr__(self, "rotations", tuple(self._unique_rotations(pattern)))

    def _unique_rotations(self, base: Grid) -> List[Grid]:
        if not base or not base[0]:
            return []
        if not self.rotatable:
            return [base]
        seen = set()
        out: List[Grid] = []
        current = base
        for _ in range(4):
            sig = _position_signature(current)
            if sig not in seen:
                seen.add(sig)
                out.append(current)
            current = rotate_grid(current)
        return out

    @property
    def area(self) -> int:
        return len(occupied_offsets(self.pattern))


@dataclass(eq=False)
class Placement:
    placement_id: int
    shape_index: int
    shape_name: str
    rotation_index: int
    row: int
    col: int
    grid: Grid = field(repr=False)
    cells: Tuple[Cell, ...]
    variable_id: int = 0

    def __post_init__(self):
        self.cells = tuple(self.cells)
        self._cell_set: FrozenSet[Cell] = frozenset(self.cells)

    @property
    def cell_set(self) -> FrozenSet[Cell]:
        return self._cell_set

    def assign_variable(self, variable_id: int) -> None:
        if self.variable_id:
            raise ValueError(
                f"placement {self.placement_id} already owns variable {self.variable_id}"
            )
        if variable_id <= 0:
            raise ValueError(f"variable ids are positive, got {variable_id}")
        self.variable_id = int(variable_id)

    def cell_type_at(self, r: int, c: int) -> Optional[CellType]:
        pr, pc = r - self.row, c - self.col
        rows, cols = grid_dims(self.grid)
        if 0 <= pr < rows and 0 <= pc < cols:
            return self.grid[pr][pc]
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "shape": self.shape_name,
            "rotation": self.rotation_index,
            "row": self.row,
            "col": self.col,
            "cells": [list(cell) for cell in self.cells],
        }


@dataclass(frozen=True)
class SymmetryGroup:
    variable_id: int
    placements: Tuple[Placement, ...]
    cell_set: FrozenSet[Cell] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        members = tuple(self.placements)
        if len(members) < 2:
            raise ValueError("a symmetry group needs at least two placements")
        union: set = set()
        total = 0
        for p in members:
            union.update(p.cell_set)
            total += len(p.cell_set)
        if len(union) != total:
            raise ValueError("symmetry group members overlap")
        object.__setattr__(self, "placements", members)
        object.__setattr__(self, "cell_set", frozenset(union))


SolveElement = Union[Placement, SymmetryGroup]


def element_placements(element: SolveElement) -> Tuple[Placement, ...]:
    if isinstance(element, SymmetryGroup):
        return element.placements
    return (element,)


def covered_cells(element: SolveElement) -> FrozenSet[Cell]:
    return element.cell_set


def cell_key(cells: Iterable[Cell]) -> Tuple[Cell, ...]:
    """Canonical footprint key: cells sorted by row, then column."""
    return tuple(sorted(cells))


class SymmetryMode(Enum):
    NONE = "None"
    HORIZONTAL = "Horizontal"
    VERTICAL = "Vertical"
    QUADRANTS = "Quadrants"
    ROTATIONAL_180 = "Rotational (180°)"
    ROTATIONAL_90 = "Rotational (90°)"

    @classmethod
    def parse(cls, value: Any) -> "SymmetryMode":
        if isinstance(value, cls):
            return value
        if value is None or str(value).strip() == "":
            return cls.NONE
        text = str(value).strip().lower()
        for mode in cls:
            if text in (mode.value.lower(), mode.name.lower()):
                return mode
        aliases = {
            "rot180": cls.ROTATIONAL_180,
            "rotational180": cls.ROTATIONAL_180,
            "180": cls.ROTATIONAL_180,
            "rot90": cls.ROTATIONAL_90,
            "rotational90": cls.ROTATIONAL_90,
            "90": cls.ROTATIONAL_90,
        }
        if text in aliases:
            return aliases[text]
        raise ValueError(f"unknown symmetry mode: {value!r}")


@dataclass(frozen=True)
class SolveParameters:
    width: int
    height: int
    blocked: FrozenSet[Cell]
    shapes: Tuple[Shape, ...]
    symmetry: SymmetryMode = SymmetryMode.NONE
    soft_symmetry: bool = True

    def __post_init__(self):
        object.__setattr__(self, "blocked", frozenset((int(r), int(c)) for r, c in self.blocked))
        object.__setattr__(self, "shapes", tuple(self.shapes))

    @property
    def usable_cells(self) -> int:
        return self.width * self.height - len(self.blocked)


@dataclass
class IterationLog:
    iteration: int
    required_cells: int
    variables: int
    clauses: int
    duration_s: float
    satisfiable: bool
    oracle_status: str = ""


@dataclass(frozen=True)
class GroupingWarning:
    seed_id: int
    member_ids: Tuple[int, ...]
    action: str  # "split" | "discard"

    def describe(self) -> str:
        verb = "split into singletons" if self.action == "split" else "discarded"
        return (
            f"symmetry orbit seeded at placement {self.seed_id} "
            f"({len(self.member_ids)} placements) overlaps itself and was {verb}"
        )


@dataclass
class SolverResult:
    ok: bool
    message: str
    coverage: int = 0
    placements: Optional[List[Placement]] = None
    iterations: List[IterationLog] = field(default_factory=list)
    warnings: List[GroupingWarning] = field(default_factory=list)
    stats: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "message": self.message,
            "coverage": self.coverage,
            "placements": [p.to_dict() for p in (self.placements or [])],
            "iterations": [asdict(it) for it in self.iterations],
            "warnings": [w.describe() for w in self.warnings],
            "stats": dict(self.stats),
        }
