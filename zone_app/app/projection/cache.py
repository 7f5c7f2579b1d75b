from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from functools import partial
from typing import Callable, Dict, List, Tuple

from pyproj import CRS, Transformer
from pyproj.enums import TransformDirection
from pyproj.exceptions import CRSError, ProjError

from .errors import TransformError

logger = logging.getLogger(__name__)

PointFunction = Callable[[float, float], Tuple[float, float]]

WGS84 = 'EPSG:4326'

_BASE36 = '0123456789abcdefghijklmnopqrstuvwxyz'


def spec_hash(spec: str) -> str:
    """32-bit rolling hash (h * 31 + c) of a transform spec, base 36."""
    h = 0
    for ch in spec:
        h = ((h << 5) - h + ord(ch)) & 0xFFFFFFFF
    if h & 0x80000000:
        h -= 0x100000000
    n = abs(h)
    if n == 0:
        return '0'
    out = []
    while n:
        n, r = divmod(n, 36)
        out.append(_BASE36[r])
    return ''.join(reversed(out))


def build_transformer(spec: str) -> Transformer:
    try:
        source = CRS.from_proj4(spec)
        return Transformer.from_crs(source, WGS84, always_xy=True)
    except (CRSError, ProjError) as e:
        raise TransformError(f'Cannot build transform to WGS84: {e}', transform_spec=spec) from e


@dataclass(frozen=True)
class _CacheEntry:
    spec: str
    forward: PointFunction
    inverse: PointFunction


class TransformCache:
    """Memoized spec -> WGS84 point functions.

    Append-only: entries are never replaced, only dropped together by
    ``clear()``. Two callers racing on the same spec build equal entries and
    the later insert wins.
    """

    def __init__(self):
        self._entries: Dict[str, _CacheEntry] = {}
        self._lock = threading.Lock()

    @staticmethod
    def key_for(spec: str) -> str:
        return f'proj_{spec_hash(spec)}'

    def _entry(self, spec: str) -> _CacheEntry:
        key = self.key_for(spec)
        entry = self._entries.get(key)
        if entry is not None and entry.spec == spec:
            return entry

        transformer = build_transformer(spec)
        entry = _CacheEntry(
            spec=spec,
            forward=partial(transformer.transform, errcheck=True),
            inverse=partial(transformer.transform, direction=TransformDirection.INVERSE, errcheck=True),
        )
        with self._lock:
            existing = self._entries.get(key)
            if existing is not None and existing.spec != spec:
                logger.warning('Transform cache key %s already holds a different spec; serving uncached', key)
                return entry
            self._entries[key] = entry
        logger.debug('Transform cached under %s: %s', key, spec)
        return entry

    def get_or_create(self, spec: str) -> PointFunction:
        return self._entry(spec).forward

    def get_inverse(self, spec: str) -> PointFunction:
        return self._entry(spec).inverse

    def keys(self) -> List[str]:
        return list(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
        logger.info('Transform cache cleared')

    def __contains__(self, spec: object) -> bool:
        if not isinstance(spec, str):
            return False
        entry = self._entries.get(self.key_for(spec))
        return entry is not None and entry.spec == spec

    def __len__(self) -> int:
        return len(self._entries)


_default_cache = TransformCache()


def get_default_cache() -> TransformCache:
    return _default_cache
