"""Parcel analysis pipeline.

Coordinates the analysis stages for one request:

1. Normalize coordinates — raw extracted points to a closed parcel ring
2. Load layers — one ``ReferenceLayer`` per registry entry (optionally
   fanned out over a thread pool; results keep registry order)
3. Find overlaps — flat match list plus a per-layer OUI/NON flag
4. Generate report — grouped, reprojected, classified ``ParcelReport``

Each HTTP entrypoint maps to one ``handle_*`` function here, which turns
a raw request body into ``(status_code, body)`` so that the Azure
Functions wiring stays free of business logic. ``AnalysisError``
subclasses are mapped to HTTP status codes by category:

    validation / contract → 400
    anything else         → 500
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, Any

from foncier_analysis.activities.find_overlaps import process_layers
from foncier_analysis.activities.generate_report import generate_parcel_report
from foncier_analysis.activities.load_layers import LayerStore
from foncier_analysis.activities.normalize_coordinates import normalize_coordinates
from foncier_analysis.activities.reproject import CoordinateReprojector
from foncier_analysis.core.exceptions import AnalysisError, UnsupportedCRSError
from foncier_analysis.core.ingress import (
    deserialize_request_body,
    extract_overlap_source,
    overlap_matches_from_payload,
    parse_incoming_points,
)
from foncier_analysis.models.layer import LAYER_REGISTRY

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from foncier_analysis.core.config import AnalysisConfig
    from foncier_analysis.models.feature import ReferenceLayer
    from foncier_analysis.models.layer import LayerDefinition
    from foncier_analysis.models.overlap import OverlapResult
    from foncier_analysis.models.parcel import IncomingPoint
    from foncier_analysis.models.report import ParcelReport

logger = logging.getLogger("foncier_analysis.orchestrators.parcel_pipeline")

_CLIENT_ERROR_CATEGORIES = frozenset({"validation", "contract"})


# ---------------------------------------------------------------------------
# Pipeline stages
# ---------------------------------------------------------------------------


def load_layers(
    store: LayerStore,
    registry: tuple[LayerDefinition, ...] = LAYER_REGISTRY,
    *,
    workers: int = 1,
) -> list[ReferenceLayer]:
    """Load every registry layer through *store*, in registry order."""
    if workers <= 1 or len(registry) <= 1:
        return [store.get(definition) for definition in registry]

    with ThreadPoolExecutor(max_workers=min(workers, len(registry))) as executor:
        return list(executor.map(store.get, registry))


def run_overlap_analysis(
    points: Sequence[IncomingPoint],
    *,
    config: AnalysisConfig,
    store: LayerStore,
    registry: tuple[LayerDefinition, ...] = LAYER_REGISTRY,
) -> OverlapResult:
    """Normalize *points* and test the parcel against every layer.

    Raises:
        InsufficientCoordinatesError: If the boundary has fewer than 3
            distinct points.
    """
    polygon = normalize_coordinates(points, tolerance=config.dedup_tolerance)
    layers = load_layers(store, registry, workers=config.layer_load_workers)
    result = process_layers(polygon, layers)

    logger.info(
        "Overlap analysis completed | vertices=%d | layers=%d | matches=%d | flagged=%s",
        polygon.vertex_count,
        len(layers),
        len(result.overlaps),
        [layer_id for layer_id in result.yes_no if result.layer_flagged(layer_id)],
    )
    return result


def run_parcel_analysis(
    points: Sequence[IncomingPoint],
    *,
    config: AnalysisConfig,
    store: LayerStore,
    registry: tuple[LayerDefinition, ...] = LAYER_REGISTRY,
    reprojector: CoordinateReprojector | None = None,
) -> ParcelReport:
    """Run the full pipeline: points in, parcel report out."""
    polygon = normalize_coordinates(points, tolerance=config.dedup_tolerance)
    layers = load_layers(store, registry, workers=config.layer_load_workers)
    result = process_layers(polygon, layers)
    return generate_parcel_report(
        polygon.to_coordinates(),
        result.overlaps,
        registry=registry,
        reprojector=reprojector or build_reprojector(config),
    )


def build_reprojector(config: AnalysisConfig) -> CoordinateReprojector:
    """Build the reprojector for the configured CRS pair.

    Raises:
        UnsupportedCRSError: If pyproj cannot build the transformation.
    """
    from pyproj.exceptions import CRSError

    try:
        return CoordinateReprojector(
            config.source_crs,
            config.target_crs,
            closure_tolerance=config.closure_tolerance,
        )
    except CRSError as exc:
        msg = f"Cannot reproject {config.source_crs} -> {config.target_crs}: {exc}"
        raise UnsupportedCRSError(msg) from exc


def build_store(config: AnalysisConfig) -> LayerStore:
    return LayerStore(config.layers_data_dir, cache_enabled=config.layer_cache_enabled)


# ---------------------------------------------------------------------------
# HTTP handlers
# ---------------------------------------------------------------------------


def handle_find_overlap(
    raw_body: bytes | str,
    *,
    config: AnalysisConfig,
    store: LayerStore,
) -> tuple[int, dict[str, Any]]:
    """``POST /api/findOverlap``: points in, ``{overlaps, yesNoData}`` out."""

    def _run() -> dict[str, Any]:
        points = parse_incoming_points(deserialize_request_body(raw_body))
        return run_overlap_analysis(points, config=config, store=store).to_dict()

    return _respond("findOverlap", _run)


def handle_parcel_report(
    raw_body: bytes | str,
    *,
    config: AnalysisConfig,
) -> tuple[int, dict[str, Any]]:
    """``POST /api/parcel-report``: ``{coordinates, overlaps}`` in, report out.

    The overlaps were computed upstream; no dataset is loaded here.
    """

    def _run() -> dict[str, Any]:
        body = deserialize_request_body(raw_body)
        points = parse_incoming_points(body)
        polygon = normalize_coordinates(points, tolerance=config.dedup_tolerance)
        overlaps = overlap_matches_from_payload(extract_overlap_source(body))
        report = generate_parcel_report(
            polygon.to_coordinates(),
            overlaps,
            reprojector=build_reprojector(config),
        )
        return report.to_dict()

    return _respond("parcel-report", _run)


def handle_parcel_analysis(
    raw_body: bytes | str,
    *,
    config: AnalysisConfig,
    store: LayerStore,
) -> tuple[int, dict[str, Any]]:
    """``POST /api/parcel-analysis``: points in, report out."""

    def _run() -> dict[str, Any]:
        points = parse_incoming_points(deserialize_request_body(raw_body))
        return run_parcel_analysis(points, config=config, store=store).to_dict()

    return _respond("parcel-analysis", _run)


def error_status(exc: AnalysisError) -> int:
    """HTTP status code for an analysis error."""
    return 400 if exc.category in _CLIENT_ERROR_CATEGORIES else 500


def _respond(route: str, run: Callable[[], dict[str, Any]]) -> tuple[int, dict[str, Any]]:
    try:
        return 200, run()
    except AnalysisError as exc:
        status = error_status(exc)
        log = logger.warning if status < 500 else logger.error
        log(
            "Request failed | route=%s | status=%d | stage=%s | code=%s | error=%s",
            route,
            status,
            exc.stage,
            exc.code,
            exc.message,
        )
        return status, {"error": exc.message, **exc.to_error_dict()}
