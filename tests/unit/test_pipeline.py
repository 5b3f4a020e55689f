"""Tests for the parcel analysis pipeline and its HTTP handlers.

Covers:
- Layer loading order (sequential and thread pool)
- End-to-end overlap analysis and report over GeoJSON fixtures
- Error → HTTP status mapping
"""

from __future__ import annotations

import dataclasses
import json
from pathlib import Path

import pytest

from foncier_analysis.activities.load_layers import LayerStore
from foncier_analysis.core.config import AnalysisConfig
from foncier_analysis.core.exceptions import (
    AnalysisError,
    ContractError,
    InsufficientCoordinatesError,
    UnsupportedCRSError,
)
from foncier_analysis.models.layer import LAYER_REGISTRY, get_layer_definition
from foncier_analysis.models.parcel import IncomingPoint
from foncier_analysis.orchestrators.parcel_pipeline import (
    build_reprojector,
    build_store,
    error_status,
    handle_find_overlap,
    handle_parcel_analysis,
    handle_parcel_report,
    load_layers,
    run_overlap_analysis,
    run_parcel_analysis,
)
from tests.helpers import PARCEL_ORIGIN, polygon_feature, square, write_layer_file

X0, Y0 = PARCEL_ORIGIN


@pytest.fixture()
def populated_dir(layers_dir: Path) -> Path:
    """Datasets with a litige hit, an AIF miss and a DPL feature north of the parcel."""
    write_layer_file(
        layers_dir,
        get_layer_definition("litige"),
        [polygon_feature(square(X0 + 50, Y0 + 50, 100.0), {"nom": "Affaire 7"})],
    )
    write_layer_file(
        layers_dir,
        get_layer_definition("aif"),
        [polygon_feature(square(X0 + 5000, Y0 + 5000, 100.0))],
    )
    write_layer_file(
        layers_dir,
        get_layer_definition("dpl"),
        [polygon_feature(square(X0, Y0 + 2000, 500.0))],
    )
    return layers_dir


@pytest.fixture()
def populated_config(populated_dir: Path) -> AnalysisConfig:
    return AnalysisConfig(layers_data_dir=str(populated_dir))


def _body(points: list[IncomingPoint]) -> bytes:
    return json.dumps([p.to_dict() for p in points]).encode("utf-8")


class TestLoadLayers:
    """Every registry layer, in registry order."""

    def test_sequential(self, layers_dir: Path) -> None:
        layers = load_layers(LayerStore(layers_dir))
        assert [layer.id for layer in layers] == [d.id for d in LAYER_REGISTRY]

    def test_thread_pool_keeps_order(self, layers_dir: Path) -> None:
        layers = load_layers(LayerStore(layers_dir), workers=4)
        assert [layer.id for layer in layers] == [d.id for d in LAYER_REGISTRY]

    def test_missing_datasets_degrade(self, tmp_path: Path) -> None:
        with pytest.warns(UserWarning):
            layers = load_layers(LayerStore(tmp_path))
        assert all(layer.is_empty for layer in layers)
        assert len(layers) == len(LAYER_REGISTRY)


class TestRunOverlapAnalysis:
    """Points → ``OverlapResult``."""

    def test_flags_per_layer(
        self, populated_config: AnalysisConfig, parcel_points: list[IncomingPoint]
    ) -> None:
        result = run_overlap_analysis(
            parcel_points, config=populated_config, store=build_store(populated_config)
        )
        assert result.yes_no["litige"] == "OUI"
        assert result.yes_no["aif"] == "NON"
        assert result.yes_no["dpl"] == "OUI"
        assert [m.source_layer_id for m in result.overlaps] == ["dpl", "litige"]

    def test_insufficient_points(self, config: AnalysisConfig) -> None:
        with pytest.raises(InsufficientCoordinatesError):
            run_overlap_analysis(
                [IncomingPoint("0", "0"), IncomingPoint("1", "1")],
                config=config,
                store=build_store(config),
            )


class TestRunParcelAnalysis:
    """Points → ``ParcelReport``."""

    def test_end_to_end(
        self, populated_config: AnalysisConfig, parcel_points: list[IncomingPoint]
    ) -> None:
        report = run_parcel_analysis(
            parcel_points, config=populated_config, store=build_store(populated_config)
        )
        assert report.summary.overall_status == "Litigieux"
        assert report.summary.intersecting_layer_count == 2
        assert report.summary.total_area_ha == pytest.approx(1.0, rel=1e-2)
        litige = next(layer for layer in report.layers if layer.id == "litige")
        assert litige.description == "Affaire 7"
        assert litige.coordinates

    def test_concurrent_loading_same_report(
        self, populated_config: AnalysisConfig, parcel_points: list[IncomingPoint]
    ) -> None:
        pooled = dataclasses.replace(populated_config, layer_load_workers=4)
        sequential = run_parcel_analysis(
            parcel_points, config=populated_config, store=build_store(populated_config)
        )
        concurrent = run_parcel_analysis(
            parcel_points, config=pooled, store=build_store(pooled)
        )
        assert sequential.to_dict() == concurrent.to_dict()


class TestHandlers:
    """HTTP handlers return ``(status_code, body)``."""

    def test_find_overlap(
        self, populated_config: AnalysisConfig, parcel_points: list[IncomingPoint]
    ) -> None:
        status, body = handle_find_overlap(
            _body(parcel_points),
            config=populated_config,
            store=build_store(populated_config),
        )
        assert status == 200
        assert body["yesNoData"]["litige"] == "OUI"
        assert len(body["overlaps"]) == 2

    def test_parcel_analysis(
        self, populated_config: AnalysisConfig, parcel_points: list[IncomingPoint]
    ) -> None:
        status, body = handle_parcel_analysis(
            _body(parcel_points),
            config=populated_config,
            store=build_store(populated_config),
        )
        assert status == 200
        assert body["summary"]["overallStatus"] == "Litigieux"

    def test_parcel_report_from_find_overlap_output(
        self, populated_config: AnalysisConfig, parcel_points: list[IncomingPoint]
    ) -> None:
        _, overlap_body = handle_find_overlap(
            _body(parcel_points),
            config=populated_config,
            store=build_store(populated_config),
        )
        request = {
            "coordinates": [p.to_dict() for p in parcel_points],
            "overlaps": overlap_body["overlaps"],
        }
        status, body = handle_parcel_report(
            json.dumps(request).encode("utf-8"), config=populated_config
        )
        assert status == 200
        assert body["summary"]["overallStatus"] == "Litigieux"
        assert [layer["id"] for layer in body["layers"]] == [d.id for d in LAYER_REGISTRY]

    def test_parcel_report_missing_overlaps(
        self, config: AnalysisConfig, parcel_points: list[IncomingPoint]
    ) -> None:
        request = {"coordinates": [p.to_dict() for p in parcel_points]}
        status, body = handle_parcel_report(json.dumps(request), config=config)
        assert status == 400
        assert body["code"] == "MISSING_ANALYSIS_DATA"
        assert body["category"] == "contract"
        assert body["error"].startswith("Missing analysis data")

    def test_parcel_report_bare_point_list_is_missing_overlaps(
        self, config: AnalysisConfig, parcel_points: list[IncomingPoint]
    ) -> None:
        """A bare list is the coordinates only; it must not double as the overlaps."""
        status, body = handle_parcel_report(_body(parcel_points), config=config)
        assert status == 400
        assert body["code"] == "MISSING_ANALYSIS_DATA"
        assert body["stage"] == "ingress"

    def test_parcel_report_empty_overlaps_is_free(
        self, config: AnalysisConfig, parcel_points: list[IncomingPoint]
    ) -> None:
        request = {"coordinates": [p.to_dict() for p in parcel_points], "overlaps": []}
        status, body = handle_parcel_report(json.dumps(request), config=config)
        assert status == 200
        assert body["summary"]["overallStatus"] == "Libre"

    def test_unsupported_crs(
        self, populated_config: AnalysisConfig, parcel_points: list[IncomingPoint]
    ) -> None:
        bad = dataclasses.replace(populated_config, source_crs="EPSG:999999")
        status, body = handle_parcel_analysis(
            _body(parcel_points), config=bad, store=build_store(bad)
        )
        assert status == 500
        assert body["code"] == "UNSUPPORTED_CRS"
        assert body["category"] == "permanent"
        assert body["stage"] == "reproject"

    def test_invalid_json(self, config: AnalysisConfig) -> None:
        status, body = handle_find_overlap(b"{oops", config=config, store=build_store(config))
        assert status == 400
        assert body["code"] == "INVALID_JSON"

    def test_insufficient_points(self, config: AnalysisConfig) -> None:
        raw = json.dumps([{"X": "0", "Y": "0"}, {"X": "1", "Y": "0"}])
        status, body = handle_parcel_analysis(raw, config=config, store=build_store(config))
        assert status == 400
        assert body["code"] == "INSUFFICIENT_COORDINATES"
        assert body["category"] == "validation"


class TestBuildReprojector:
    """Configured CRS pair → ``CoordinateReprojector``."""

    def test_default_pair(self, config: AnalysisConfig) -> None:
        reprojector = build_reprojector(config)
        assert reprojector.source_crs == "EPSG:32631"
        assert reprojector.target_crs == "EPSG:4326"

    def test_unknown_crs(self, config: AnalysisConfig) -> None:
        bad = dataclasses.replace(config, target_crs="EPSG:999999")
        with pytest.raises(UnsupportedCRSError, match="EPSG:999999"):
            build_reprojector(bad)


class TestErrorStatus:
    """Error category → HTTP status."""

    @pytest.mark.parametrize(
        ("exc", "expected"),
        [
            (ContractError("x"), 400),
            (InsufficientCoordinatesError("x"), 400),
            (UnsupportedCRSError("x"), 500),
            (AnalysisError("x"), 500),
        ],
    )
    def test_mapping(self, exc: AnalysisError, expected: int) -> None:
        assert error_status(exc) == expected
