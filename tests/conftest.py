from __future__ import annotations

from pathlib import Path

import pytest

from zone_app.app.projection.cache import TransformCache
from zone_app.app.projection.catalog import ProjectionCatalog, build_catalog
from zone_app.app.projection.matcher import ProjectionMatcher
from zone_app.app.projection.presets import ProjectionPresets, load_datum_presets_yaml
from zone_app.app.projection.transformer import CoordinateTransformer

BUNDLED_PRESETS = Path(__file__).resolve().parents[1] / 'zone_app' / 'app' / 'projection' / 'DATUM_PRESETS.yaml'


@pytest.fixture(scope='session')
def presets() -> ProjectionPresets:
    return load_datum_presets_yaml(BUNDLED_PRESETS)


@pytest.fixture(scope='session')
def catalog(presets) -> ProjectionCatalog:
    return build_catalog(presets)


@pytest.fixture()
def matcher(catalog) -> ProjectionMatcher:
    return ProjectionMatcher(catalog)


@pytest.fixture()
def transformer(matcher) -> CoordinateTransformer:
    return CoordinateTransformer(matcher, cache=TransformCache())
