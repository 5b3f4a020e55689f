"""Shared pytest fixtures for the parcel analysis test suite."""

from pathlib import Path

import pytest

from foncier_analysis.core.config import AnalysisConfig
from foncier_analysis.models.layer import LAYER_REGISTRY
from foncier_analysis.models.parcel import IncomingPoint
from tests.helpers import PARCEL_ORIGIN, points_from_ring, square, write_layer_file

# ---------------------------------------------------------------------------
# Parcel fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def parcel_ring() -> list[list[float]]:
    """A 100 m x 100 m parcel (1 ha) at the reference origin."""
    return square(*PARCEL_ORIGIN, 100.0)


@pytest.fixture()
def parcel_points(parcel_ring: list[list[float]]) -> list[IncomingPoint]:
    return points_from_ring(parcel_ring)


# ---------------------------------------------------------------------------
# Dataset fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def layers_dir(tmp_path: Path) -> Path:
    """Data directory holding an empty dataset for every registry layer."""
    for definition in LAYER_REGISTRY:
        write_layer_file(tmp_path, definition, [])
    return tmp_path


@pytest.fixture()
def config(layers_dir: Path) -> AnalysisConfig:
    return AnalysisConfig(layers_data_dir=str(layers_dir))
