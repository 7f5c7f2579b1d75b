"""GeoJSON geometry and bare coordinate-tree traversal.

Every geometry kind has exactly one handler; the table is checked at import
so a new ``GeometryType`` member cannot be added without one. Handlers copy
the geometry mapping, replace ``coordinates``/``geometries`` and drop
``bbox``/``crs`` since those describe the source projection.
"""
from __future__ import annotations

from numbers import Real
from typing import Any, Callable, Dict, Iterator, Optional, Sequence, Tuple

from .errors import UnsupportedFormatError
from .models import GeometryType

LeafFunction = Callable[[Any], Any]
GeometryHandler = Callable[[Dict[str, Any], LeafFunction], Dict[str, Any]]

_SOURCE_ONLY_MEMBERS = ('bbox', 'crs')


def is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def is_leaf(value: Any) -> bool:
    return isinstance(value, (list, tuple)) and len(value) > 0 and is_number(value[0])


def leaf_xy(value: Any) -> Tuple[float, float]:
    if not isinstance(value, (list, tuple)) or len(value) < 2 or not (is_number(value[0]) and is_number(value[1])):
        raise UnsupportedFormatError(f'Coordinate must hold at least two numbers, got {value!r}', value=value)
    return float(value[0]), float(value[1])


def is_geojson_geometry(value: Any) -> bool:
    return isinstance(value, dict) and 'type' in value


def geometry_type(geometry: Dict[str, Any]) -> GeometryType:
    if not isinstance(geometry, dict):
        raise UnsupportedFormatError(f"Geometry must be a mapping, got {type(geometry).__name__}", value=geometry)
    try:
        return GeometryType(geometry.get('type'))
    except ValueError:
        raise UnsupportedFormatError(f"Unsupported geometry type {geometry.get('type')!r}", value=geometry.get('type')) from None


def first_leaf(node: Any) -> Optional[Sequence]:
    if isinstance(node, dict):
        if node.get('type') == GeometryType.GEOMETRY_COLLECTION.value:
            geometries = node.get('geometries') or []
            return first_leaf(geometries[0]) if geometries else None
        return first_leaf(node.get('coordinates'))
    while isinstance(node, (list, tuple)) and node and isinstance(node[0], (list, tuple)):
        node = node[0]
    return node if is_leaf(node) else None


def iter_leaves(node: Any) -> Iterator[Sequence]:
    if isinstance(node, dict):
        if node.get('type') == GeometryType.GEOMETRY_COLLECTION.value:
            for geometry in node.get('geometries') or []:
                yield from iter_leaves(geometry)
        else:
            yield from iter_leaves(node.get('coordinates'))
    elif is_leaf(node):
        yield node
    elif isinstance(node, (list, tuple)):
        for child in node:
            yield from iter_leaves(child)


def _sequence(value: Any, what: str) -> Sequence:
    if not isinstance(value, (list, tuple)):
        raise UnsupportedFormatError(f'{what} must be an array, got {type(value).__name__}', value=value)
    return value


def map_tree(node: Any, fn: LeafFunction) -> Any:
    """Apply ``fn`` to every leaf of a bare nested coordinate array."""
    if is_leaf(node):
        return fn(node)
    return [map_tree(child, fn) for child in _sequence(node, 'Coordinate tree node')]


def _positions(coords: Any, fn: LeafFunction) -> list:
    return [fn(p) for p in _sequence(coords, 'Positions')]


def _rings(coords: Any, fn: LeafFunction) -> list:
    return [_positions(ring, fn) for ring in _sequence(coords, 'Rings')]


def _polygons(coords: Any, fn: LeafFunction) -> list:
    return [_rings(polygon, fn) for polygon in _sequence(coords, 'Polygons')]


def _copy(geometry: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in geometry.items() if k not in _SOURCE_ONLY_MEMBERS}


def _with_coordinates(mapper: Callable[[Any, LeafFunction], Any]) -> GeometryHandler:
    def handler(geometry: Dict[str, Any], fn: LeafFunction) -> Dict[str, Any]:
        if 'coordinates' not in geometry:
            raise UnsupportedFormatError(f"{geometry.get('type')} geometry has no 'coordinates'", value=geometry)
        out = _copy(geometry)
        out['coordinates'] = mapper(geometry['coordinates'], fn)
        return out
    return handler


def _collection(geometry: Dict[str, Any], fn: LeafFunction) -> Dict[str, Any]:
    out = _copy(geometry)
    out['geometries'] = [map_geometry(g, fn) for g in _sequence(geometry.get('geometries'), 'geometries')]
    return out


_HANDLERS: Dict[GeometryType, GeometryHandler] = {
    GeometryType.POINT: _with_coordinates(lambda coords, fn: fn(coords)),
    GeometryType.LINE_STRING: _with_coordinates(_positions),
    GeometryType.MULTI_POINT: _with_coordinates(_positions),
    GeometryType.POLYGON: _with_coordinates(_rings),
    GeometryType.MULTI_LINE_STRING: _with_coordinates(_rings),
    GeometryType.MULTI_POLYGON: _with_coordinates(_polygons),
    GeometryType.GEOMETRY_COLLECTION: _collection,
}

_missing = set(GeometryType) - set(_HANDLERS)
if _missing:
    raise RuntimeError(f'No geometry handler for: {sorted(t.value for t in _missing)}')


def map_geometry(geometry: Dict[str, Any], fn: LeafFunction) -> Dict[str, Any]:
    return _HANDLERS[geometry_type(geometry)](geometry, fn)


def map_coordinates(coords: Any, fn: LeafFunction) -> Any:
    """Dispatch on shape: GeoJSON geometry mapping or bare coordinate tree."""
    if is_geojson_geometry(coords):
        return map_geometry(coords, fn)
    if isinstance(coords, (list, tuple)):
        return map_tree(coords, fn)
    raise UnsupportedFormatError(f'Unsupported coordinate input of type {type(coords).__name__}', value=coords)
