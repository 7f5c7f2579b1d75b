"""Projection detection and coordinate normalization to WGS84.

Collaborators should go through the ``service`` functions; the classes are
exported for wiring custom catalogs or caches.
"""

from .cache import TransformCache
from .catalog import ProjectionCatalog, build_catalog, zone_to_central_meridian
from .errors import CatalogError, ProjectionError, TransformError, UnsupportedFormatError
from .matcher import ProjectionMatcher
from .models import DetectionResult, MatchType, ProjectionDefinition, TransformOptions, WGS84Check
from .service import (
    batch_transform_points,
    detect_projection,
    get_transform_stats,
    reset_transform_cache,
    transform_coordinates,
)
from .transformer import CoordinateTransformer

__all__ = [
    'CoordinateTransformer',
    'ProjectionMatcher',
    'ProjectionCatalog',
    'TransformCache',
    'build_catalog',
    'zone_to_central_meridian',
    'ProjectionDefinition',
    'DetectionResult',
    'MatchType',
    'TransformOptions',
    'WGS84Check',
    'ProjectionError',
    'CatalogError',
    'TransformError',
    'UnsupportedFormatError',
    'detect_projection',
    'transform_coordinates',
    'batch_transform_points',
    'get_transform_stats',
    'reset_transform_cache',
]
