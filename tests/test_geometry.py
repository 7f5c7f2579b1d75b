# test_geometry.py
from __future__ import annotations

import pytest

from zone_app.app.projection.errors import UnsupportedFormatError
from zone_app.app.projection.geometry import first_leaf, iter_leaves, map_coordinates, map_geometry


def _shift(point):
    return [point[0] + 1, point[1] + 1]


def _ring(x0: float):
    return [[x0, 0], [x0 + 1, 0], [x0 + 1, 1], [x0, 0]]


def test_multipolygon_shape_preserved():
    geom = {
        "type": "MultiPolygon",
        "coordinates": [
            [_ring(0), _ring(10)],
            [_ring(20), _ring(30)],
        ],
        "bbox": [0, 0, 31, 1],
    }

    out = map_geometry(geom, _shift)

    assert out["type"] == "MultiPolygon"
    assert "bbox" not in out
    assert len(out["coordinates"]) == 2
    assert [len(p) for p in out["coordinates"]] == [2, 2]
    assert all(len(ring) == 4 for p in out["coordinates"] for ring in p)
    assert out["coordinates"][1][1][0] == [31, 1]
    # input untouched
    assert geom["coordinates"][1][1][0] == [30, 0]
    assert "bbox" in geom


def test_geometry_collection():
    geom = {
        "type": "GeometryCollection",
        "geometries": [
            {"type": "Point", "coordinates": [1, 2]},
            {"type": "LineString", "coordinates": [[0, 0], [3, 4]]},
        ],
    }
    out = map_geometry(geom, _shift)
    assert out["geometries"][0]["coordinates"] == [2, 3]
    assert out["geometries"][1]["coordinates"] == [[1, 1], [4, 5]]


def test_bare_tree():
    assert map_coordinates([[[1, 2], [3, 4]]], _shift) == [[[2, 3], [4, 5]]]
    assert map_coordinates((5, 6), _shift) == [6, 7]


def test_leaves():
    geom = {"type": "Polygon", "coordinates": [_ring(7)]}
    assert first_leaf(geom) == [7, 0]
    assert len(list(iter_leaves(geom))) == 4
    assert first_leaf([]) is None
    assert first_leaf({"type": "GeometryCollection", "geometries": []}) is None


def test_unsupported_type():
    with pytest.raises(UnsupportedFormatError):
        map_geometry({"type": "Circle", "coordinates": [0, 0]}, _shift)


def test_malformed_inputs():
    with pytest.raises(UnsupportedFormatError):
        map_coordinates("39500000,4500000", _shift)
    with pytest.raises(UnsupportedFormatError):
        map_geometry({"type": "Polygon"}, _shift)
    with pytest.raises(UnsupportedFormatError):
        map_geometry({"type": "LineString", "coordinates": 5}, _shift)
    with pytest.raises(UnsupportedFormatError):
        map_geometry({"type": "GeometryCollection", "geometries": [[39500000, 4500000]]}, _shift)
