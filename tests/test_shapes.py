import json

import pytest

from config import CFG
from models import Direction, SymmetryMode
from shapes import catalog_payload, catalog_shape, format_pattern, parse_pattern, parse_request


def test_pattern_alphabet():
    grid, err = parse_pattern("x", [">L<", ".^C"])
    assert err is None
    assert grid[0][0].name == "Clip" and grid[0][0].facing == Direction.EAST
    assert grid[0][1].name == "Loader"
    assert grid[1][0] is None
    assert grid[1][2].name == "Cooler"
    assert format_pattern(grid) == [">L<", ".^C"]


@pytest.mark.parametrize(
    "rows, fragment",
    [
        ([], "empty pattern"),
        (["##", "#"], "same length"),
        (["#?"], "unknown cell character"),
        (["..", ".."], "no occupied cells"),
    ],
)
def test_malformed_patterns(rows, fragment):
    grid, err = parse_pattern("bad", rows)
    assert grid is None
    assert fragment in err


def test_catalog_lookup_is_case_insensitive():
    assert catalog_shape("3-clip").name == "3-Clip"
    assert catalog_shape("nope") is None
    payload = {s["name"]: s for s in catalog_payload()}
    assert payload["4-Clip"]["area"] == 5
    assert payload["4-Clip"]["rotations"] == 1
    assert payload["3-Clip"]["rotations"] == 4


def test_parse_request_full_payload():
    params, err = parse_request(
        {
            "width": "5",
            "height": 4,
            "blocked": [[0, 0], "3,4", {"r": 1, "c": 2}],
            "shapes": ["3-Clip", {"name": "T", "pattern": ["###", ".#."], "rotatable": "false"}],
            "symmetry": "Quadrants",
            "soft_symmetry": "hard",
        }
    )
    assert err is None
    assert (params.width, params.height) == (5, 4)
    assert params.blocked == frozenset({(0, 0), (3, 4), (1, 2)})
    assert [s.name for s in params.shapes] == ["3-Clip", "T"]
    assert len(params.shapes[1].rotations) == 1
    assert params.symmetry is SymmetryMode.QUADRANTS
    assert params.soft_symmetry is False


def test_parse_request_defaults_soft_policy_from_config(monkeypatch):
    monkeypatch.setattr(CFG, "SOFT_SYMMETRY", True)
    params, err = parse_request({"width": 2, "height": 2, "shapes": [{"name": "domino"}]})
    assert err is None
    assert params.soft_symmetry is True
    assert params.symmetry is SymmetryMode.NONE


@pytest.mark.parametrize(
    "payload, fragment",
    [
        (None, "nothing parsed"),
        ({"width": 2.5, "height": 2, "shapes": ["Monomino"]}, "positive integers"),
        ({"width": 10_000, "height": 2, "shapes": ["Monomino"]}, "too large"),
        ({"width": 2, "height": 2, "blocked": [[2, 0]], "shapes": ["Monomino"]}, "outside"),
        ({"width": 2, "height": 2, "blocked": ["x"], "shapes": ["Monomino"]}, "bad blocked cell"),
        ({"width": 2, "height": 2, "shapes": []}, "at least one shape"),
        ({"width": 2, "height": 2, "shapes": ["Hexomino"]}, "unknown shape"),
        ({"width": 2, "height": 2, "shapes": [{"pattern": ["#"]}]}, "need a name"),
        ({"width": 2, "height": 2, "shapes": ["Monomino"], "symmetry": "diagonal"}, "unknown symmetry"),
    ],
)
def test_parse_request_rejects(payload, fragment):
    params, err = parse_request(payload)
    assert params is None
    assert fragment in err


@pytest.mark.parametrize("literal", ["Infinity", "-Infinity", "NaN"])
def test_parse_request_rejects_non_finite_json_numbers(literal):
    for field in ("width", "height"):
        payload = json.loads('{"width": 3, "height": 3, "shapes": ["Monomino"]}')
        payload[field] = json.loads(literal)
        params, err = parse_request(payload)
        assert params is None
        assert "positive integers" in err


def test_parse_request_rejects_non_finite_blocked_cell():
    payload = json.loads('{"width": 3, "height": 3, "blocked": [[NaN, 0]], "shapes": ["Monomino"]}')
    params, err = parse_request(payload)
    assert params is None
    assert "bad blocked cell" in err
