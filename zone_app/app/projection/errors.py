from __future__ import annotations

from typing import Any, Optional

from .models import MatchType


class ProjectionError(Exception):
    pass


class CatalogError(ProjectionError):
    pass


class UnsupportedFormatError(ProjectionError):
    def __init__(self, message: str, *, value: Any = None):
        super().__init__(message)
        self.value = value


class TransformError(ProjectionError):
    """A point (or a whole transform) could not be projected to WGS84.

    Carries enough context for the caller to log or reject the upload:
    the offending point, the transform spec in use and the detection strategy
    that produced it.
    """

    def __init__(
        self,
        message: str,
        *,
        point: Any = None,
        transform_spec: Optional[str] = None,
        strategy: Optional[MatchType] = None,
    ):
        super().__init__(message)
        self.point = point
        self.transform_spec = transform_spec
        self.strategy = strategy

    def __str__(self) -> str:
        msg = super().__str__()
        parts = []
        if self.point is not None:
            parts.append(f'point={self.point!r}')
        if self.strategy is not None:
            parts.append(f'strategy={self.strategy.value}')
        if self.transform_spec:
            parts.append(f'spec={self.transform_spec!r}')
        return f"{msg} ({', '.join(parts)})" if parts else msg
