from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from pyproj.exceptions import ProjError

from ..config import Settings, settings as default_settings
from .cache import PointFunction, TransformCache, get_default_cache
from .errors import TransformError, UnsupportedFormatError
from .geometry import first_leaf, iter_leaves, leaf_xy, map_coordinates
from .matcher import ProjectionMatcher
from .models import (
    BatchResult,
    DetectionResult,
    MatchType,
    PointFailure,
    ProjectionDefinition,
    RoundTripResult,
    TransformOptions,
    TransformStats,
    WGS84Check,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], Optional[bool]]

# Rough per-coordinate cost used for upload time estimates, ms
_MS_PER_COORDINATE = 0.1


def in_wgs84_bounds(x: float, y: float) -> bool:
    return -180 <= x <= 180 and -90 <= y <= 90


@dataclass
class _Counters:
    successful: int = 0
    failed: int = 0
    cached: int = 0
    out_of_range: int = 0


class CoordinateTransformer:
    """Project coordinate trees and GeoJSON geometries to WGS84 lon/lat.

    The matcher resolves PRJ text to a definition; when it cannot, the
    configured default definition is used so a transform is always attempted.
    Point functions are memoized in the injected ``TransformCache``.
    """

    def __init__(
        self,
        matcher: ProjectionMatcher,
        *,
        cache: Optional[TransformCache] = None,
        settings: Optional[Settings] = None,
        default_definition: Optional[ProjectionDefinition] = None,
    ):
        self.matcher = matcher
        self.settings = settings or default_settings
        self.cache = cache if cache is not None else get_default_cache()
        if default_definition is None:
            default_definition = matcher.catalog.get(self.settings.default_projection_id)
        self.default_definition = default_definition.model_copy(update={'source_method': MatchType.DEFAULT_FALLBACK})
        self._counters = _Counters()

    # ── options ──────────────────────────────────────────────────────────────

    def default_options(self) -> TransformOptions:
        return TransformOptions(
            fallback_to_original=self.settings.fallback_to_original,
            wgs84_check=WGS84Check(self.settings.wgs84_check),
            batch_size=self.settings.batch_size,
        )

    def _options(self, options: Union[TransformOptions, Dict[str, Any], None]) -> TransformOptions:
        if options is None:
            return self.default_options()
        if isinstance(options, TransformOptions):
            return options
        return TransformOptions.model_validate({**self.default_options().model_dump(), **options})

    # ── projection resolution ────────────────────────────────────────────────

    def default_detection(self) -> DetectionResult:
        return DetectionResult(
            match_type=MatchType.DEFAULT_FALLBACK,
            definition=self.default_definition,
            central_meridian=self.default_definition.central_meridian,
        )

    def is_runnable(self, definition: ProjectionDefinition) -> bool:
        """Build the transform and push one probe point (the false origin) through it."""
        spec = definition.transform_spec
        try:
            lon, lat = self._cached(spec)(*_false_origin(spec))
        except (TransformError, ProjError, ValueError) as e:
            logger.warning('Projection %s is not usable: %s', definition.id, e)
            return False
        return math.isfinite(lon) and math.isfinite(lat)

    def resolve(self, prj_text: Optional[str]) -> DetectionResult:
        detection = self.matcher.detect(prj_text)
        if detection is None:
            logger.info('Using default projection %s', self.default_definition.id)
            return self.default_detection()
        if not self.is_runnable(detection.definition):
            logger.warning('Detected projection %s failed validation; using default %s',
                           detection.definition.id, self.default_definition.id)
            return self.default_detection()
        return detection

    def _cached(self, spec: str) -> PointFunction:
        created = spec not in self.cache
        fn = self.cache.get_or_create(spec)
        if created:
            self._counters.cached += 1
        return fn

    def _point_function(self, detection: DetectionResult) -> PointFunction:
        spec = detection.definition.transform_spec
        try:
            return self._cached(spec)
        except TransformError as e:
            raise TransformError(str(e.args[0]), transform_spec=spec, strategy=detection.match_type) from e

    # ── single transform ─────────────────────────────────────────────────────

    def is_wgs84(self, coords: Any, check: WGS84Check = WGS84Check.FIRST_POINT) -> bool:
        """Heuristic: coordinates already inside lon/lat bounds need no transform.

        A projected system with its origin near 0E/0N can fall inside these
        bounds too; ``WGS84Check.ALL_POINTS`` narrows that and
        ``WGS84Check.DISABLED`` turns the shortcut off.
        """
        if check == WGS84Check.DISABLED:
            return False
        if check == WGS84Check.ALL_POINTS:
            leaves = list(iter_leaves(coords))
            return bool(leaves) and all(_leaf_in_bounds(leaf) for leaf in leaves)
        leaf = first_leaf(coords)
        return leaf is not None and _leaf_in_bounds(leaf)

    def transform(
        self,
        coords: Any,
        prj_text: Optional[str] = None,
        options: Union[TransformOptions, Dict[str, Any], None] = None,
    ) -> Any:
        opts = self._options(options)

        if self.is_wgs84(coords, opts.wgs84_check):
            logger.info('Coordinates already look like WGS84; returned unchanged')
            return coords

        detection = self.resolve(prj_text)
        try:
            point_fn = self._point_function(detection)
        except TransformError:
            self._counters.failed += 1
            if opts.fallback_to_original:
                logger.exception('Transform for %s could not be built; returning original coordinates', detection.definition.id)
                return coords
            raise

        def convert(point: Sequence) -> Any:
            return self._transform_point(point, point_fn, detection, fallback=opts.fallback_to_original)

        return map_coordinates(coords, convert)

    def _transform_point(
        self,
        point: Sequence,
        point_fn: PointFunction,
        detection: DetectionResult,
        *,
        fallback: bool,
    ) -> Any:
        x, y = leaf_xy(point)
        try:
            lon, lat = point_fn(x, y)
        except (ProjError, ArithmeticError, ValueError) as e:
            return self._point_failed(point, str(e), detection, fallback=fallback, cause=e)

        if not (math.isfinite(lon) and math.isfinite(lat)):
            return self._point_failed(point, f'non-finite result ({lon}, {lat})', detection, fallback=fallback)

        if not in_wgs84_bounds(lon, lat):
            self._counters.out_of_range += 1
            logger.warning('Transform result outside WGS84 bounds: [%s, %s] -> [%s, %s]', x, y, lon, lat)

        self._counters.successful += 1
        return [lon, lat]

    def _point_failed(
        self,
        point: Sequence,
        reason: str,
        detection: DetectionResult,
        *,
        fallback: bool,
        cause: Optional[BaseException] = None,
    ) -> Sequence:
        self._counters.failed += 1
        logger.error('Transform failed for %r with %s: %s', point, detection.definition.id, reason)
        if fallback:
            return point
        raise TransformError(
            f'Transform failed: {reason}',
            point=list(point),
            transform_spec=detection.definition.transform_spec,
            strategy=detection.match_type,
        ) from cause

    # ── batch ────────────────────────────────────────────────────────────────

    def batch_transform(
        self,
        points: Sequence[Sequence[float]],
        prj_text: Optional[str] = None,
        options: Union[TransformOptions, Dict[str, Any], None] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> BatchResult:
        """Transform a flat list of points in chunks.

        The projection is resolved once for the whole batch. After each chunk
        ``on_progress(done, total)`` is called; returning ``False`` stops the
        run and the result is marked incomplete. Failed points are dropped, or
        kept as ``PointFailure`` annotations with ``include_failures``.
        """
        opts = self._options(options)
        total = len(points)
        detection = self.resolve(prj_text)

        if self.is_wgs84(points, opts.wgs84_check):
            logger.info('Batch of %d points already looks like WGS84; returned unchanged', total)
            if on_progress is not None:
                on_progress(total, total)
            return BatchResult(
                points=[_plain(p) for p in points],
                succeeded=total,
                failed=0,
                total=total,
                definition=detection.definition,
            )

        logger.info('Batch transform of %d points with %s', total, detection.definition.id)

        build_error: Optional[TransformError] = None
        point_fn: Optional[PointFunction] = None
        try:
            point_fn = self._point_function(detection)
        except TransformError as e:
            build_error = e
            logger.error('Batch transform could not be built: %s', e)

        results: List[Union[PointFailure, List[float]]] = []
        succeeded = failed = 0
        completed = True

        for start in range(0, total, opts.batch_size):
            for index, point in enumerate(points[start:start + opts.batch_size], start=start):
                try:
                    if build_error is not None:
                        raise build_error
                    results.append(self._transform_point(point, point_fn, detection, fallback=False))
                    succeeded += 1
                    continue
                except UnsupportedFormatError as e:
                    self._counters.failed += 1
                    error = e
                except TransformError as e:
                    error = e

                failed += 1
                if opts.include_failures:
                    results.append(PointFailure(index=index, original=_raw(point), error=str(error)))

            done = min(start + opts.batch_size, total)
            if on_progress is not None and on_progress(done, total) is False:
                logger.info('Batch transform stopped by caller at %d/%d', done, total)
                completed = False
                break

        if build_error is not None:
            self._counters.failed += failed

        logger.info('Batch transform finished: %d ok, %d failed of %d', succeeded, failed, total)
        return BatchResult(
            points=results,
            succeeded=succeeded,
            failed=failed,
            total=total,
            definition=detection.definition,
            completed=completed,
        )

    # ── diagnostics ──────────────────────────────────────────────────────────

    def validate_round_trip(
        self,
        original: Sequence[float],
        transformed: Sequence[float],
        transform_spec: str,
        tolerance: Optional[float] = None,
    ) -> RoundTripResult:
        """Inverse-transform ``transformed`` and compare with ``original`` in source units."""
        tol = self.settings.round_trip_tolerance if tolerance is None else tolerance
        try:
            ox, oy = leaf_xy(original)
            lon, lat = leaf_xy(transformed)
            bx, by = self.cache.get_inverse(transform_spec)(lon, lat)
        except (TransformError, UnsupportedFormatError, ProjError, ValueError) as e:
            return RoundTripResult(is_valid=False, tolerance=tol, message=str(e))

        dx, dy = abs(ox - bx), abs(oy - by)
        return RoundTripResult(is_valid=dx < tol and dy < tol, tolerance=tol, error=(dx, dy))

    def estimate_transform_time(self, coordinate_count: int) -> int:
        return math.ceil(coordinate_count * _MS_PER_COORDINATE)

    def get_stats(self) -> TransformStats:
        c = self._counters
        return TransformStats(
            successful_transforms=c.successful,
            failed_transforms=c.failed,
            cached_transforms=c.cached,
            out_of_range_points=c.out_of_range,
            cache_size=len(self.cache),
        )

    def reset_stats(self) -> None:
        self._counters = _Counters()

    def clear_cache(self) -> None:
        self.cache.clear()


def _leaf_in_bounds(leaf: Sequence) -> bool:
    try:
        x, y = leaf_xy(leaf)
    except UnsupportedFormatError:
        return False
    return in_wgs84_bounds(x, y)


def _plain(point: Any) -> List[float]:
    if isinstance(point, (list, tuple)):
        return [float(v) for v in point if isinstance(v, (int, float))]
    return []


def _raw(point: Any) -> List[Any]:
    return list(point) if isinstance(point, (list, tuple)) else [point]


def _false_origin(spec: str) -> tuple:
    params = dict(p[1:].split('=', 1) for p in spec.split() if p.startswith('+') and '=' in p)
    return float(params.get('x_0', 0)), float(params.get('y_0', 0))
