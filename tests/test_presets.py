# test_presets.py
from __future__ import annotations

from pathlib import Path

import pytest

from zone_app.app.projection.presets import load_datum_presets_yaml, parse_towgs84


def _write_yaml(tmp_path: Path, body: str) -> Path:
    p = tmp_path / "datum_presets.yml"
    p.write_text(body, encoding="utf-8")
    return p


_MINIMAL = """\
datum:
  cgcs2000:
    prj_prefix: CGCS2000
    ellipsoid:
      ellps: GRS80
    towgs84: "0, 0, 0"
    geographic:
      epsg: 4490
      name: GCS_China_Geodetic_Coordinate_System_2000
    bands:
      - {width: 3, numbering: zone, first_epsg: 4513}
"""


def test_minimal_presets_ok(tmp_path: Path):
    presets = load_datum_presets_yaml(_write_yaml(tmp_path, _MINIMAL))

    assert list(presets.datums) == ["CGCS2000"]
    d = presets.datums["CGCS2000"]
    assert d.ellipsoid.ellps == "GRS80"
    assert d.towgs84 == "0,0,0"
    assert d.geographic_epsg == 4490
    assert d.bands[0].width == 3
    assert d.bands[0].numbering == "zone"
    assert presets.utm is None
    assert presets.web_mercator is None


def test_bundled_presets(presets):
    assert set(presets.datums) == {"CGCS2000", "XIAN_1980", "BEIJING_1954", "WGS84"}
    assert presets.datums["XIAN_1980"].ellipsoid.a == 6378140.0
    assert presets.utm.first_epsg == 32643
    assert presets.web_mercator.epsg == 3857


def test_missing_datum_key(tmp_path: Path):
    with pytest.raises(ValueError, match="datum"):
        load_datum_presets_yaml(_write_yaml(tmp_path, "utm: {}\n"))


def test_bad_towgs84(tmp_path: Path):
    with pytest.raises(ValueError, match="towgs84"):
        load_datum_presets_yaml(_write_yaml(tmp_path, _MINIMAL.replace('"0, 0, 0"', '"1,2"')))


def test_bad_band_width(tmp_path: Path):
    with pytest.raises(ValueError, match="width"):
        load_datum_presets_yaml(_write_yaml(tmp_path, _MINIMAL.replace("width: 3", "width: 4")))


def test_utm_unknown_datum(tmp_path: Path):
    body = _MINIMAL + "utm: {datum: WGS84, first_zone: 43, last_zone: 53, first_epsg: 32643}\n"
    with pytest.raises(ValueError, match="utm"):
        load_datum_presets_yaml(_write_yaml(tmp_path, body))


def test_parse_towgs84():
    assert parse_towgs84("12.7,-131.3,-44.7,0,0,0,0") == (12.7, -131.3, -44.7, 0.0, 0.0, 0.0, 0.0)
    with pytest.raises(ValueError):
        parse_towgs84("1,2,3,4")
