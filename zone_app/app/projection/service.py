from __future__ import annotations

from functools import lru_cache
from typing import Any, Dict, Optional, Sequence, Union

from ..config import settings
from .catalog import ProjectionCatalog, build_catalog
from .matcher import ProjectionMatcher
from .models import BatchResult, DetectionResult, TransformOptions, TransformStats
from .presets import ProjectionPresets, load_datum_presets_yaml
from .transformer import CoordinateTransformer, ProgressCallback

Options = Union[TransformOptions, Dict[str, Any], None]


@lru_cache(maxsize=1)
def _get_presets(path: str) -> ProjectionPresets:
    return load_datum_presets_yaml(path)


@lru_cache(maxsize=1)
def get_catalog(path: Optional[str] = None) -> ProjectionCatalog:
    return build_catalog(_get_presets(path or settings.datum_presets_path))


@lru_cache(maxsize=1)
def get_transformer(path: Optional[str] = None) -> CoordinateTransformer:
    return CoordinateTransformer(ProjectionMatcher(get_catalog(path)), settings=settings)


def detect_projection(prj_text: Optional[str]) -> Optional[DetectionResult]:
    return get_transformer().matcher.detect(prj_text)


def transform_coordinates(coords: Any, prj_text: Optional[str] = None, options: Options = None) -> Any:
    return get_transformer().transform(coords, prj_text, options)


def batch_transform_points(
    points: Sequence[Sequence[float]],
    prj_text: Optional[str] = None,
    options: Options = None,
    on_progress: Optional[ProgressCallback] = None,
) -> BatchResult:
    return get_transformer().batch_transform(points, prj_text, options, on_progress)


def get_transform_stats() -> TransformStats:
    return get_transformer().get_stats()


def reset_transform_cache() -> None:
    t = get_transformer()
    t.clear_cache()
    t.reset_stats()
