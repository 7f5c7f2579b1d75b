from __future__ import annotations

import logging
import re
from typing import Callable, Dict, List, Optional, Tuple

from .catalog import (
    STANDARD_CENTRAL_MERIDIANS,
    ProjectionCatalog,
    build_transform_spec,
    format_number,
    is_standard_central_meridian,
    normalize_name,
    normalize_text,
    six_degree_zone_to_central_meridian,
    zone_false_easting,
    zone_to_central_meridian,
)
from .errors import CatalogError
from .models import DetectionResult, MatchType, ProjectionDefinition

logger = logging.getLogger(__name__)

_EPSG_TOKEN = re.compile(r'\bEPSG[:\s]*(\d+)', re.IGNORECASE)
_EPSG_AUTHORITY = re.compile(r'AUTHORITY\[\s*"EPSG"\s*,\s*"?(\d+)"?\s*\]', re.IGNORECASE)
_CRS_NAME = re.compile(r'^\s*(?:PROJCS|PROJCRS|GEOGCS|GEOGCRS)\[\s*"([^"]+)"')

PRIORITY_KEYWORDS: Tuple[str, ...] = (
    'CGCS2000',
    'XIAN_1980',
    'BEIJING_1954',
    '3_DEGREE_GK',
    '6_DEGREE_GK',
) + tuple(f'CM_{cm}E' for cm in STANDARD_CENTRAL_MERIDIANS)

_GK = r'(?:GK|GAUSS_KRUGER|GAUSS_KRUEGER)'

# (pattern, band): band tells how the captured number becomes a central meridian
#   'zone3': 3-degree zone number, 'zone6': 6-degree zone number, 'cm': degrees
STRUCTURAL_PATTERNS: Tuple[Tuple[re.Pattern, str], ...] = (
    (re.compile(rf'3_DEGREE_{_GK}_ZONE_(\d+)'), 'zone3'),
    (re.compile(rf'3_DEGREE_{_GK}_CM_(\d+)E'), 'cm'),
    (re.compile(rf'(?<!3_DEGREE_){_GK}_ZONE_(\d+)'), 'zone6'),
    (re.compile(rf'{_GK}_CM_(\d+)E'), 'cm'),
    (re.compile(r'(?<![A-Z0-9])CM_?(\d{2,3})E(?![A-Z0-9])'), 'cm'),
    (re.compile(r'(?<![A-Z0-9])ZONE_?(\d{1,2})(?!\d)'), 'zone3'),
)

_NUMBER = r'(-?\d+(?:\.\d+)?(?:E[+-]?\d+)?)'


def _parameter(name: str) -> re.Pattern:
    # WKT PARAMETER["Central_Meridian",117.0] as well as free text CENTRAL MERIDIAN = 117
    return re.compile(rf'{name}["\s]*[,=:]?\s*{_NUMBER}', re.IGNORECASE)


_PARAMETERS: Dict[str, re.Pattern] = {
    'central_meridian': _parameter(r'CENTRAL[_\s]MERIDIAN'),
    'false_easting': _parameter(r'FALSE[_\s]EASTING'),
    'false_northing': _parameter(r'FALSE[_\s]NORTHING'),
    'scale_factor': _parameter(r'SCALE[_\s]FACTOR'),
    'latitude_of_origin': _parameter(r'LATITUDE[_\s]OF[_\s]ORIGIN'),
}
_PROJECTION = re.compile(r'PROJECTION\[\s*"([^"]+)"', re.IGNORECASE)
_DATUM = re.compile(r'DATUM\[\s*"([^"]+)"', re.IGNORECASE)
_ELLIPSOID = re.compile(r'(?:ELLIPSOID|SPHEROID)\[\s*"([^"]+)"', re.IGNORECASE)


def _projection_kind(name: Optional[str]) -> Optional[str]:
    """Map a WKT projection name onto a proj keyword; None when unrecognized."""
    if not name:
        return None
    key = normalize_name(name)
    if 'TRANSVERSE_MERCATOR' in key or 'GAUSS_KRUGER' in key or 'GAUSS_KRUEGER' in key:
        return 'tmerc'
    if key.startswith('MERCATOR'):
        return 'merc'
    return None


def _infer_structural_datum(tokens: str) -> str:
    t = re.sub(r'GRS_?1980', '', tokens)
    if 'XIAN' in t or '1980' in t:
        return 'XIAN_1980'
    if 'BEIJING' in t or '1954' in t:
        return 'BEIJING_1954'
    return 'CGCS2000'


def _infer_parameter_datum(tokens: str) -> str:
    if 'CGCS2000' in tokens or 'CHINA_2000' in tokens or 'CHINA_GEODETIC' in tokens:
        return 'CGCS2000'
    if 'XIAN' in tokens or 'IAG_1975' in tokens or 'IAG_75' in tokens:
        return 'XIAN_1980'
    if 'BEIJING' in tokens or 'KRASOVSKY' in tokens or 'KRASSOWSKY' in tokens or 'KRASSOVSKY' in tokens:
        return 'BEIJING_1954'
    if re.search(r'GRS_?1980|GRS_?80', tokens):
        return 'CGCS2000'
    if 'WGS' in tokens:
        return 'WGS84'
    if '1980' in tokens:
        return 'XIAN_1980'
    if '1954' in tokens:
        return 'BEIJING_1954'
    return 'WGS84'


class ProjectionMatcher:
    """Resolve free-text PRJ content to a projection definition.

    Strategies run in a fixed order and the first hit wins:
    EPSG code, exact catalog name, unambiguous keyword, structural
    (zone / central meridian) inference, raw WKT parameter parsing.
    ``detect`` never raises: malformed input degrades to a weaker
    strategy or ``None``.
    """

    def __init__(self, catalog: ProjectionCatalog):
        self.catalog = catalog
        self._strategies: List[Tuple[MatchType, Callable[[str], Optional[DetectionResult]]]] = [
            (MatchType.EPSG, self._match_epsg),
            (MatchType.EXACT, self._match_exact),
            (MatchType.KEYWORD, self._match_keyword),
            (MatchType.REGEX, self._match_structural),
            (MatchType.PARAMETER_PARSED, self._match_parameters),
        ]

    def detect(self, prj_text: Optional[str]) -> Optional[DetectionResult]:
        if not prj_text or not prj_text.strip():
            return None

        logger.debug('Detecting projection from PRJ text (%d chars)', len(prj_text))
        for match_type, strategy in self._strategies:
            try:
                result = strategy(prj_text)
            except Exception:
                logger.exception('Projection strategy %s failed; trying the next one', match_type.value)
                continue
            if result is not None:
                logger.info('Projection detected via %s: %s', match_type.value, result.definition.id)
                return result

        logger.warning('No projection could be inferred from PRJ text')
        return None

    def _result(self, definition: ProjectionDefinition, match_type: MatchType, **extra) -> DetectionResult:
        if definition.source_method != match_type:
            definition = definition.model_copy(update={'source_method': match_type})
        extra.setdefault('central_meridian', definition.central_meridian)
        return DetectionResult(match_type=match_type, definition=definition, **extra)

    def extract_epsg_codes(self, prj_text: str) -> List[int]:
        """EPSG codes in lookup order: explicit tokens first, then WKT AUTHORITY codes outermost first."""
        codes = [int(m.group(1)) for m in _EPSG_TOKEN.finditer(prj_text)]
        # WKT1 puts the AUTHORITY of the outermost CRS last
        codes += [int(m.group(1)) for m in reversed(list(_EPSG_AUTHORITY.finditer(prj_text)))]
        unique: List[int] = []
        for code in codes:
            if code not in unique:
                unique.append(code)
        return unique

    def _match_epsg(self, prj_text: str) -> Optional[DetectionResult]:
        for code in self.extract_epsg_codes(prj_text):
            definition = self.catalog.by_epsg(code)
            if definition is not None:
                return self._result(definition, MatchType.EPSG, matched_pattern=f'EPSG:{code}')
            logger.debug('EPSG:%d is not in the catalog', code)
        return None

    def _match_exact(self, prj_text: str) -> Optional[DetectionResult]:
        definition = self.catalog.by_name(prj_text)
        if definition is None:
            m = _CRS_NAME.match(normalize_text(prj_text))
            if m:
                definition = self.catalog.by_name(m.group(1))
        if definition is None:
            return None
        return self._result(definition, MatchType.EXACT)

    def _match_keyword(self, prj_text: str) -> Optional[DetectionResult]:
        tokens = normalize_name(prj_text)
        for keyword in PRIORITY_KEYWORDS:
            if keyword not in tokens:
                continue
            candidates = self.catalog.names_containing(keyword)
            if len(candidates) == 1:
                return self._result(candidates[0], MatchType.KEYWORD, matched_keyword=keyword)
            logger.debug('Keyword %s matches %d catalog entries; skipped', keyword, len(candidates))
        return None

    def _match_structural(self, prj_text: str) -> Optional[DetectionResult]:
        tokens = normalize_name(prj_text)
        for pattern, band in STRUCTURAL_PATTERNS:
            m = pattern.search(tokens)
            if not m:
                continue

            number = int(m.group(1))
            zone: Optional[int] = None
            if band == 'zone3':
                zone = number
                cm = zone_to_central_meridian(zone)
            elif band == 'zone6':
                zone = number
                cm = six_degree_zone_to_central_meridian(zone)
            else:
                cm = number

            if not is_standard_central_meridian(cm):
                logger.debug('Pattern %s gave central meridian %s outside the standard set; rejected', pattern.pattern, cm)
                continue

            datum_key = _infer_structural_datum(tokens)
            params = self.extract_parameters(prj_text)
            if params.get('false_easting') is not None:
                x_0 = params['false_easting']
            elif zone is not None:
                x_0 = zone_false_easting(zone)
            else:
                x_0 = 500000.0

            datum = self.catalog.datum(datum_key)
            band_tag = '6_Degree_GK' if band == 'zone6' else '3_Degree_GK'
            suffix = f'Zone_{zone}' if zone is not None else f'CM_{cm}E'
            definition = ProjectionDefinition(
                id=f'{datum.prj_prefix}_{band_tag}_{suffix}',
                transform_spec=build_transform_spec(lon_0=cm, x_0=x_0, datum=datum),
                source_method=MatchType.REGEX,
                datum=datum_key,
                central_meridian=cm,
                zone=zone,
            )
            return self._result(definition, MatchType.REGEX, matched_pattern=pattern.pattern, central_meridian=float(cm))
        return None

    def extract_parameters(self, prj_text: str) -> Dict[str, object]:
        params: Dict[str, object] = {}
        for key, pattern in _PARAMETERS.items():
            m = pattern.search(prj_text)
            params[key] = float(m.group(1)) if m else None
        for key, pattern in (('projection', _PROJECTION), ('datum', _DATUM), ('ellipsoid', _ELLIPSOID)):
            m = pattern.search(prj_text)
            params[key] = m.group(1) if m else None
        return params

    def _match_parameters(self, prj_text: str) -> Optional[DetectionResult]:
        params = self.extract_parameters(prj_text)
        cm = params['central_meridian']
        if cm is None:
            return None

        kind = _projection_kind(params['projection'])
        if params['false_easting'] is None and kind is None:
            logger.debug('Central meridian found but neither false easting nor a known projection; rejected')
            return None

        # DATUM[...] / ELLIPSOID[...] names decide when present, the whole text otherwise
        hints = ' '.join(str(params[k]) for k in ('datum', 'ellipsoid') if params[k])
        datum_key = _infer_parameter_datum(normalize_name(hints or prj_text))
        try:
            datum = self.catalog.datum(datum_key)
        except CatalogError:
            logger.warning('Datum %s inferred from parameters is not configured', datum_key)
            return None

        projection = kind or 'tmerc'
        definition = ProjectionDefinition(
            id=f'PARAMETERS_{projection.upper()}_CM_{format_number(cm)}E_{datum_key}',
            transform_spec=build_transform_spec(
                projection=projection,
                lat_0=params['latitude_of_origin'] or 0.0,
                lon_0=cm,
                k=1.0 if params['scale_factor'] is None else params['scale_factor'],
                x_0=500000.0 if params['false_easting'] is None else params['false_easting'],
                y_0=params['false_northing'] or 0.0,
                datum=datum,
            ),
            source_method=MatchType.PARAMETER_PARSED,
            datum=datum_key,
            central_meridian=cm,
        )
        return self._result(definition, MatchType.PARAMETER_PARSED, matched_pattern=params['projection'])
