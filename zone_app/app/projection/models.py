from enum import Enum
from typing import Any, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field


class MatchType(str, Enum):
    EXACT = 'exact'
    KEYWORD = 'keyword'
    REGEX = 'regex'
    PARAMETER_PARSED = 'parameter-parsed'
    EPSG = 'epsg'
    DEFAULT_FALLBACK = 'default-fallback'


class WGS84Check(str, Enum):
    """How the transformer decides that input is already longitude/latitude."""

    FIRST_POINT = 'first_point'
    ALL_POINTS = 'all_points'
    DISABLED = 'disabled'


class GeometryType(str, Enum):
    POINT = 'Point'
    LINE_STRING = 'LineString'
    POLYGON = 'Polygon'
    MULTI_POINT = 'MultiPoint'
    MULTI_LINE_STRING = 'MultiLineString'
    MULTI_POLYGON = 'MultiPolygon'
    GEOMETRY_COLLECTION = 'GeometryCollection'


class ProjectionDefinition(BaseModel):
    model_config = ConfigDict(extra='forbid', frozen=True)

    id: str
    transform_spec: str
    source_method: MatchType = MatchType.EXACT

    epsg_code: Optional[int] = None
    datum: Optional[str] = None
    central_meridian: Optional[float] = None
    zone: Optional[int] = None


class DetectionResult(BaseModel):
    model_config = ConfigDict(extra='forbid', frozen=True)

    match_type: MatchType
    definition: ProjectionDefinition

    matched_keyword: Optional[str] = None
    matched_pattern: Optional[str] = None
    central_meridian: Optional[float] = None


class TransformOptions(BaseModel):
    model_config = ConfigDict(extra='forbid')

    fallback_to_original: bool = False
    wgs84_check: WGS84Check = WGS84Check.FIRST_POINT
    batch_size: int = Field(default=100, ge=1)
    include_failures: bool = False


class PointFailure(BaseModel):
    model_config = ConfigDict(extra='forbid')

    index: int
    original: List[Any]
    error: str


class BatchResult(BaseModel):
    model_config = ConfigDict(extra='forbid')

    points: List[Union[PointFailure, List[float]]]
    succeeded: int
    failed: int
    total: int
    definition: ProjectionDefinition
    completed: bool = True


class RoundTripResult(BaseModel):
    model_config = ConfigDict(extra='forbid')

    is_valid: bool
    tolerance: float
    error: Optional[Tuple[float, float]] = None
    message: Optional[str] = None


class TransformStats(BaseModel):
    model_config = ConfigDict(extra='forbid')

    successful_transforms: int = 0
    failed_transforms: int = 0
    cached_transforms: int = 0
    out_of_range_points: int = 0
    cache_size: int = 0
