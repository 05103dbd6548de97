from models import Shape
from shapes import catalog_shape, parse_pattern
from solver.placements import enumerate_placements


def _shape(name, *rows, rotatable=True):
    grid, err = parse_pattern(name, rows)
    assert err is None
    return Shape(name, grid, rotatable)


def test_monomino_fills_every_free_cell():
    out = enumerate_placements(3, 3, {(1, 1)}, [catalog_shape("Monomino")])
    assert len(out) == 8
    assert all((1, 1) not in p.cell_set for p in out)


def test_offsets_are_row_major():
    out = enumerate_placements(2, 2, set(), [catalog_shape("Monomino")])
    assert [(p.row, p.col) for p in out] == [(0, 0), (0, 1), (1, 0), (1, 1)]


def test_counts_follow_rotations_and_bounds():
    domino = _shape("dom", "##")
    # 3 horizontal rows of 2 + 2 vertical rows of 3
    out = enumerate_placements(3, 3, set(), [domino])
    assert len(out) == 12
    assert sum(1 for p in out if p.rotation_index == 0) == 6
    assert sum(1 for p in out if p.rotation_index == 1) == 6


def test_placements_stay_in_bounds_and_off_blocked_cells():
    blocked = {(0, 1), (2, 2)}
    out = enumerate_placements(4, 3, blocked, [catalog_shape("3-Clip"), catalog_shape("Domino")])
    assert out
    for p in out:
        assert p.cell_set.isdisjoint(blocked)
        for r, c in p.cells:
            assert 0 <= r < 3 and 0 <= c < 4


def test_shape_larger_than_grid_yields_nothing():
    assert enumerate_placements(2, 2, set(), [catalog_shape("4-Clip")]) == []


def test_placement_ids_are_unique_counter():
    out = enumerate_placements(4, 4, set(), [catalog_shape("Domino"), catalog_shape("L-Tromino")])
    assert [p.placement_id for p in out] == list(range(len(out)))
    assert {p.shape_index for p in out} == {0, 1}


def test_blank_pattern_cells_are_not_covered():
    out = enumerate_placements(3, 2, {(1, 0)}, [_shape("L", "#.", "##", rotatable=False)])
    # (1, 0) rules out the left offset
    assert [(p.row, p.col) for p in out] == [(0, 1)]
    assert set(out[0].cells) == {(0, 1), (1, 1), (1, 2)}
