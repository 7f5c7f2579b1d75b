from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Literal, Optional, Tuple

import yaml


@dataclass(frozen=True)
class EllipsoidPreset:
    ellps: Optional[str] = None
    a: Optional[float] = None
    b: Optional[float] = None


@dataclass(frozen=True)
class BandSeries:
    width: Literal[3, 6]
    numbering: Literal['zone', 'cm']
    first_epsg: int


@dataclass(frozen=True)
class DatumPreset:
    key: str
    prj_prefix: str
    alias_prefix: str
    ellipsoid: EllipsoidPreset
    towgs84: str
    geographic_epsg: int
    geographic_name: str
    geographic_aliases: Tuple[str, ...] = ()
    bands: Tuple[BandSeries, ...] = ()


@dataclass(frozen=True)
class UTMPreset:
    datum: str
    first_zone: int
    last_zone: int
    first_epsg: int


@dataclass(frozen=True)
class WebMercatorPreset:
    epsg: int
    name: str
    aliases: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ProjectionPresets:
    datums: Dict[str, DatumPreset]
    utm: Optional[UTMPreset] = None
    web_mercator: Optional[WebMercatorPreset] = None


def parse_towgs84(s: str) -> Tuple[float, ...]:
    parts = [p.strip() for p in s.split(',')]
    if len(parts) not in (3, 7):
        raise ValueError('towgs84 must contain 3 (dx,dy,dz) or 7 (dx,dy,dz,rx,ry,rz,ds) numbers')
    return tuple(float(x) for x in parts)


def _parse_ellipsoid(datum_key: str, raw: Any) -> EllipsoidPreset:
    if not isinstance(raw, dict):
        raise ValueError(f"Datum presets YAML: datum {datum_key} 'ellipsoid' must be a mapping")
    if raw.get('ellps'):
        return EllipsoidPreset(ellps=str(raw['ellps']))
    if 'a' in raw and 'b' in raw:
        return EllipsoidPreset(a=float(raw['a']), b=float(raw['b']))
    raise ValueError(f"Datum presets YAML: datum {datum_key} ellipsoid needs 'ellps' or both 'a' and 'b'")


def _parse_band(datum_key: str, raw: Any) -> BandSeries:
    if not isinstance(raw, dict):
        raise ValueError(f'Datum presets YAML: datum {datum_key} band entries must be mappings')
    width = int(raw['width'])
    if width not in (3, 6):
        raise ValueError(f'Datum presets YAML: datum {datum_key} band width must be 3 or 6, got {width}')
    numbering = raw['numbering']
    if numbering not in ('zone', 'cm'):
        raise ValueError(f"Datum presets YAML: datum {datum_key} band numbering must be 'zone' or 'cm'")
    return BandSeries(width=width, numbering=numbering, first_epsg=int(raw['first_epsg']))


def _parse_datum(datum_key: str, raw: Any) -> DatumPreset:
    if not isinstance(raw, dict):
        raise ValueError(f'Datum presets YAML: datum {datum_key} must be a mapping')

    towgs84 = ','.join(p.strip() for p in str(raw.get('towgs84', '0,0,0')).split(','))
    parse_towgs84(towgs84)

    geo = raw.get('geographic')
    if not isinstance(geo, dict) or 'epsg' not in geo or 'name' not in geo:
        raise ValueError(f"Datum presets YAML: datum {datum_key} requires 'geographic' with 'epsg' and 'name'")

    return DatumPreset(
        key=datum_key,
        prj_prefix=str(raw.get('prj_prefix', datum_key)),
        alias_prefix=str(raw.get('alias_prefix', datum_key)),
        ellipsoid=_parse_ellipsoid(datum_key, raw.get('ellipsoid')),
        towgs84=towgs84,
        geographic_epsg=int(geo['epsg']),
        geographic_name=str(geo['name']),
        geographic_aliases=tuple(str(a) for a in geo.get('aliases') or ()),
        bands=tuple(_parse_band(datum_key, b) for b in raw.get('bands') or ()),
    )


def load_datum_presets_yaml(path: str | Path) -> ProjectionPresets:
    p = Path(path)
    data = yaml.safe_load(p.read_text(encoding='utf-8'))
    if not isinstance(data, dict) or 'datum' not in data:
        raise ValueError("Datum presets YAML: expected top-level key 'datum'")

    datum = data['datum']
    if not isinstance(datum, dict):
        raise ValueError("Datum presets YAML: 'datum' must be a mapping")

    datums = {str(key).upper(): _parse_datum(str(key).upper(), val) for key, val in datum.items()}

    utm = None
    raw_utm = data.get('utm')
    if raw_utm is not None:
        utm = UTMPreset(
            datum=str(raw_utm.get('datum', 'WGS84')).upper(),
            first_zone=int(raw_utm['first_zone']),
            last_zone=int(raw_utm['last_zone']),
            first_epsg=int(raw_utm['first_epsg']),
        )
        if utm.datum not in datums:
            raise ValueError(f"Datum presets YAML: utm datum {utm.datum} is not defined under 'datum'")
        if not (1 <= utm.first_zone <= utm.last_zone <= 60):
            raise ValueError('Datum presets YAML: utm zones must satisfy 1 <= first_zone <= last_zone <= 60')

    web_mercator = None
    raw_merc = data.get('web_mercator')
    if raw_merc is not None:
        web_mercator = WebMercatorPreset(
            epsg=int(raw_merc['epsg']),
            name=str(raw_merc['name']),
            aliases=tuple(str(a) for a in raw_merc.get('aliases') or ()),
        )

    return ProjectionPresets(datums=datums, utm=utm, web_mercator=web_mercator)
