from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union

from .errors import CatalogError
from .models import ProjectionDefinition
from .presets import BandSeries, DatumPreset, ProjectionPresets

logger = logging.getLogger(__name__)

# Central meridians of the 3-degree bands covering China, 75E..135E.
STANDARD_CENTRAL_MERIDIANS: Tuple[int, ...] = tuple(range(75, 136, 3))
THREE_DEGREE_ZONES = range(25, 46)
SIX_DEGREE_ZONES = range(13, 24)

_QUOTES = str.maketrans({
    '“': '"', '”': '"', '„': '"', '＂': '"',
    '‘': "'", '’': "'", '‚': "'", '＇': "'",
})


def zone_to_central_meridian(zone: int) -> int:
    return 75 + (zone - 25) * 3


def central_meridian_to_zone(central_meridian: float) -> int:
    return round((central_meridian - 75) / 3 + 25)


def six_degree_zone_to_central_meridian(zone: int) -> int:
    return zone * 6 - 3


def zone_false_easting(zone: int) -> float:
    return zone * 1_000_000 + 500_000.0


def is_standard_central_meridian(value: float) -> bool:
    return any(abs(value - cm) < 1e-9 for cm in STANDARD_CENTRAL_MERIDIANS)


def normalize_text(text: str) -> str:
    """Uppercase, straighten typographic quotes, collapse whitespace."""
    return re.sub(r'\s+', ' ', text.translate(_QUOTES).upper()).strip()


def normalize_name(name: str) -> str:
    s = normalize_text(name).replace('"', '').replace("'", '')
    s = re.sub(r'[\s\-/]+', '_', s)
    s = re.sub(r'_+', '_', s)
    return s.strip('_')


def format_number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return f'{value:.10f}'.rstrip('0').rstrip('.')


def datum_terms(datum: DatumPreset) -> str:
    ell = datum.ellipsoid
    if ell.ellps:
        ellipsoid = f'+ellps={ell.ellps}'
    else:
        ellipsoid = f'+a={format_number(ell.a)} +b={format_number(ell.b)}'
    return f'{ellipsoid} +towgs84={datum.towgs84}'


def build_transform_spec(
    *,
    lon_0: float,
    x_0: float,
    datum: DatumPreset,
    projection: str = 'tmerc',
    lat_0: float = 0.0,
    k: float = 1.0,
    y_0: float = 0.0,
) -> str:
    return (
        f'+proj={projection} +lat_0={format_number(lat_0)} +lon_0={format_number(lon_0)} '
        f'+k={format_number(k)} +x_0={format_number(x_0)} +y_0={format_number(y_0)} '
        f'{datum_terms(datum)} +units=m +no_defs'
    )


def geographic_spec(datum: DatumPreset) -> str:
    return f'+proj=longlat {datum_terms(datum)} +no_defs'


@dataclass(frozen=True)
class CatalogEntry:
    definition: ProjectionDefinition
    aliases: Tuple[str, ...] = ()

    @property
    def names(self) -> Tuple[str, ...]:
        return (normalize_name(self.definition.id),) + tuple(normalize_name(a) for a in self.aliases)


class ProjectionCatalog:
    """Immutable table of known projection definitions.

    Indexed by canonical PRJ name (normalized, aliases included) and by EPSG
    code. Built once per process from the datum presets, or directly from a
    handful of definitions when a small catalog is enough.
    """

    def __init__(
        self,
        entries: Iterable[Union[CatalogEntry, ProjectionDefinition]],
        *,
        datums: Mapping[str, DatumPreset],
    ):
        self._entries: List[CatalogEntry] = []
        self._by_name: Dict[str, CatalogEntry] = {}
        self._by_epsg: Dict[int, CatalogEntry] = {}
        for item in entries:
            self._add(item if isinstance(item, CatalogEntry) else CatalogEntry(item))
        self._datums = MappingProxyType(dict(datums))

    def _add(self, entry: CatalogEntry) -> None:
        for name in entry.names:
            existing = self._by_name.get(name)
            if existing is not None and existing is not entry:
                raise CatalogError(f'Duplicate catalog name {name!r} ({existing.definition.id} vs {entry.definition.id})')
        code = entry.definition.epsg_code
        if code is not None and code in self._by_epsg:
            raise CatalogError(f'Duplicate EPSG:{code} ({self._by_epsg[code].definition.id} vs {entry.definition.id})')

        self._entries.append(entry)
        for name in entry.names:
            self._by_name[name] = entry
        if code is not None:
            self._by_epsg[code] = entry

    @property
    def datums(self) -> Mapping[str, DatumPreset]:
        return self._datums

    def datum(self, key: str) -> DatumPreset:
        try:
            return self._datums[key]
        except KeyError:
            raise CatalogError(f'Unknown datum {key!r}') from None

    def by_name(self, name: str) -> Optional[ProjectionDefinition]:
        entry = self._by_name.get(normalize_name(name))
        return entry.definition if entry else None

    def by_epsg(self, code: int) -> Optional[ProjectionDefinition]:
        entry = self._by_epsg.get(int(code))
        return entry.definition if entry else None

    def get(self, definition_id: str) -> ProjectionDefinition:
        definition = self.by_name(definition_id)
        if definition is None:
            raise CatalogError(f'No catalog entry named {definition_id!r}')
        return definition

    def names_containing(self, keyword: str) -> List[ProjectionDefinition]:
        key = normalize_name(keyword)
        return [e.definition for e in self._entries if any(key in name for name in e.names)]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and normalize_name(name) in self._by_name

    def __iter__(self) -> Iterator[ProjectionDefinition]:
        return (e.definition for e in self._entries)

    def __len__(self) -> int:
        return len(self._entries)


def _band_entries(datum: DatumPreset, band: BandSeries) -> Iterator[CatalogEntry]:
    three = band.width == 3
    tag = '3_Degree_GK' if three else 'GK'
    alias_tag = '3-degree Gauss-Kruger' if three else 'Gauss-Kruger'

    if band.numbering == 'zone':
        zones = THREE_DEGREE_ZONES if three else SIX_DEGREE_ZONES
        for offset, zone in enumerate(zones):
            cm = zone_to_central_meridian(zone) if three else six_degree_zone_to_central_meridian(zone)
            yield CatalogEntry(
                ProjectionDefinition(
                    id=f'{datum.prj_prefix}_{tag}_Zone_{zone}',
                    transform_spec=build_transform_spec(lon_0=cm, x_0=zone_false_easting(zone), datum=datum),
                    epsg_code=band.first_epsg + offset,
                    datum=datum.key,
                    central_meridian=cm,
                    zone=zone,
                ),
                aliases=(f'{datum.alias_prefix} / {alias_tag} zone {zone}',),
            )
        return

    meridians = STANDARD_CENTRAL_MERIDIANS if three else tuple(six_degree_zone_to_central_meridian(z) for z in SIX_DEGREE_ZONES)
    for offset, cm in enumerate(meridians):
        yield CatalogEntry(
            ProjectionDefinition(
                id=f'{datum.prj_prefix}_{tag}_CM_{cm}E',
                transform_spec=build_transform_spec(lon_0=cm, x_0=500000, datum=datum),
                epsg_code=band.first_epsg + offset,
                datum=datum.key,
                central_meridian=cm,
            ),
            aliases=(f'{datum.alias_prefix} / {alias_tag} CM {cm}E',),
        )


def build_catalog(presets: ProjectionPresets) -> ProjectionCatalog:
    entries: List[CatalogEntry] = []

    for datum in presets.datums.values():
        entries.append(CatalogEntry(
            ProjectionDefinition(
                id=datum.geographic_name,
                transform_spec=geographic_spec(datum),
                epsg_code=datum.geographic_epsg,
                datum=datum.key,
            ),
            aliases=datum.geographic_aliases,
        ))
        for band in datum.bands:
            entries.extend(_band_entries(datum, band))

    if presets.utm is not None:
        utm = presets.utm
        wgs = presets.datums[utm.datum]
        for offset, zone in enumerate(range(utm.first_zone, utm.last_zone + 1)):
            entries.append(CatalogEntry(
                ProjectionDefinition(
                    id=f'{wgs.prj_prefix}_UTM_Zone_{zone}N',
                    transform_spec=f'+proj=utm +zone={zone} {datum_terms(wgs)} +units=m +no_defs',
                    epsg_code=utm.first_epsg + offset,
                    datum=wgs.key,
                    central_meridian=zone * 6 - 183,
                    zone=zone,
                ),
                aliases=(f'{wgs.alias_prefix} / UTM zone {zone}N',),
            ))

    if presets.web_mercator is not None:
        merc = presets.web_mercator
        entries.append(CatalogEntry(
            ProjectionDefinition(
                id=merc.name,
                transform_spec=(
                    '+proj=merc +a=6378137 +b=6378137 +lat_ts=0 +lon_0=0 +x_0=0 +y_0=0 +k=1 '
                    '+units=m +nadgrids=@null +wktext +no_defs'
                ),
                epsg_code=merc.epsg,
                datum='WGS84',
                central_meridian=0,
            ),
            aliases=merc.aliases,
        ))

    catalog = ProjectionCatalog(entries, datums=presets.datums)
    logger.info('Projection catalog built: %d definitions, %d datums', len(catalog), len(presets.datums))
    return catalog
