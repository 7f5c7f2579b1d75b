# test_matcher.py
from __future__ import annotations

import pytest

from zone_app.app.projection.catalog import ProjectionCatalog
from zone_app.app.projection.matcher import ProjectionMatcher
from zone_app.app.projection.models import MatchType, ProjectionDefinition


def _definition(id_: str) -> ProjectionDefinition:
    return ProjectionDefinition(id=id_, transform_spec="+proj=longlat +ellps=WGS84 +no_defs")


def _small_matcher(presets, *ids: str) -> ProjectionMatcher:
    return ProjectionMatcher(ProjectionCatalog([_definition(i) for i in ids], datums=presets.datums))


_XIAN_TM_WKT = (
    'PROJCS["Custom_TM",'
    'GEOGCS["GCS_Xian_1980",DATUM["D_Xian_1980",SPHEROID["Xian_1980",6378140.0,298.257]],'
    'PRIMEM["Greenwich",0.0],UNIT["Degree",0.0174532925199433]],'
    'PROJECTION["Transverse_Mercator"],'
    'PARAMETER["False_Easting",500000.0],PARAMETER["False_Northing",0.0],'
    'PARAMETER["Central_Meridian",114.0],PARAMETER["Scale_Factor",1.0],'
    'PARAMETER["Latitude_Of_Origin",0.0],UNIT["Meter",1.0]]'
)


@pytest.mark.parametrize("text", [None, "", "   \n\t"])
def test_empty_input(matcher, text):
    assert matcher.detect(text) is None


def test_epsg_token(matcher):
    r = matcher.detect("epsg:4527")
    assert r.match_type == MatchType.EPSG
    assert r.definition.id == "CGCS2000_3_Degree_GK_Zone_39"
    assert r.definition.source_method == MatchType.EPSG
    assert r.central_meridian == 117
    assert r.matched_pattern == "EPSG:4527"


def test_epsg_wins_over_keywords(matcher):
    r = matcher.detect("CGCS2000_3_Degree_GK_CM_117E EPSG:2363")
    assert r.match_type == MatchType.EPSG
    assert r.definition.id == "Xian_1980_3_Degree_GK_Zone_39"


def test_epsg_authority_outermost_first(matcher):
    wkt = 'PROJCS["x",GEOGCS["y",AUTHORITY["EPSG","4490"]],AUTHORITY["EPSG","4548"]]'
    assert matcher.extract_epsg_codes(wkt) == [4548, 4490]
    assert matcher.detect(wkt).definition.id == "CGCS2000_3_Degree_GK_CM_117E"


def test_unknown_epsg_falls_through(matcher):
    r = matcher.detect("EPSG:9999 CGCS2000_3_Degree_GK_CM_117E")
    assert r is not None
    assert r.match_type != MatchType.EPSG


def test_exact_name(matcher):
    r = matcher.detect("CGCS2000_3_Degree_GK_CM_117E")
    assert r.match_type == MatchType.EXACT
    assert r.definition.epsg_code == 4548


def test_exact_from_wkt_name(matcher):
    wkt = 'PROJCS["CGCS2000_3_Degree_GK_Zone_38",GEOGCS["GCS_China_Geodetic_Coordinate_System_2000"]]'
    r = matcher.detect(wkt)
    assert r.match_type == MatchType.EXACT
    assert r.definition.central_meridian == 114


def test_unique_keyword(presets):
    m = _small_matcher(presets, "GCS_Xian_1980", "GCS_WGS_1984")
    r = m.detect("some xian 1980 survey")
    assert r.match_type == MatchType.KEYWORD
    assert r.matched_keyword == "XIAN_1980"
    assert r.definition.id == "GCS_Xian_1980"
    assert r.definition.source_method == MatchType.KEYWORD


def test_ambiguous_keyword_rejected(presets, matcher):
    m = _small_matcher(presets, "CGCS2000_A", "CGCS2000_B")
    assert m.detect("CGCS2000 projected data") is None
    assert matcher.detect("CGCS2000 projected data") is None


def test_structural_six_degree_zone(matcher):
    r = matcher.detect("China 2000 GK Zone 20")
    assert r.match_type == MatchType.REGEX
    assert r.definition.id == "CGCS2000_6_Degree_GK_Zone_20"
    assert r.definition.central_meridian == 117
    assert r.definition.zone == 20
    assert "+x_0=20500000" in r.definition.transform_spec


def test_structural_central_meridian_with_datum(matcher):
    r = matcher.detect("Xian80 GK CM 117E custom")
    assert r.match_type == MatchType.REGEX
    assert r.definition.datum == "XIAN_1980"
    assert r.central_meridian == 117.0
    assert "+lon_0=117 " in r.definition.transform_spec
    assert "+x_0=500000 " in r.definition.transform_spec


def test_structural_explicit_false_easting(matcher):
    r = matcher.detect("Local GK CM 117E FALSE_EASTING=40500000")
    assert r.match_type == MatchType.REGEX
    assert "+x_0=40500000" in r.definition.transform_spec


def test_structural_non_standard_meridian_rejected(matcher):
    assert matcher.detect("Local GK CM 118E") is None
    assert matcher.detect("ZONE 99") is None


def test_parameter_parsing_wkt(matcher):
    r = matcher.detect(_XIAN_TM_WKT)
    assert r.match_type == MatchType.PARAMETER_PARSED
    assert r.definition.id == "PARAMETERS_TMERC_CM_114E_XIAN_1980"
    assert r.definition.datum == "XIAN_1980"
    spec = r.definition.transform_spec
    assert spec.startswith("+proj=tmerc ")
    assert "+lon_0=114 " in spec
    assert "+x_0=500000 " in spec
    assert "+a=6378140 " in spec


def test_parameter_parsing_free_text(matcher):
    r = matcher.detect("central meridian = 117, false easting = 500000")
    assert r.match_type == MatchType.PARAMETER_PARSED
    assert r.definition.datum == "WGS84"
    assert "+ellps=WGS84" in r.definition.transform_spec


def test_parameters_need_easting_or_projection(matcher):
    assert matcher.detect("central meridian = 117") is None


@pytest.mark.parametrize(
    "text",
    [
        'PROJCS[[[["',
        "\x00\x01\x02",
        "EPSG:99999999999999999999",
        'PARAMETER["Central_Meridian",abc]',
        "ZONE_ ZONE_ CM_E",
    ],
)
def test_malformed_never_raises(matcher, text):
    r = matcher.detect(text)
    assert r is None or r.definition.transform_spec
