"""Parcel report generation activity.

Builds the ``ParcelReport`` from the parcel ring and the flat list of
overlap matches computed upstream. This stage never loads datasets nor
recomputes intersections: it groups the given matches by layer id,
reprojects the geometries for display, and applies the fixed land-tenure
vocabulary and the overall-status precedence:

    Litigieux > Restreint > Domaine Public > Contraintes > Libre

Area is geodesic (``pyproj.Geod`` on the WGS 84 ellipsoid) over the
reprojected ring. When the parcel ring cannot be reprojected, the raw
projected ring is used instead, its planar area (metres) is reported,
and the report is flagged ``geographic=False``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from foncier_analysis.activities.reproject import CoordinateReprojector, to_numeric_ring
from foncier_analysis.core.constants import (
    MIN_RING_POINTS,
    NO_CONSTRAINT_DESCRIPTION,
    NO_CONSTRAINT_STATUS,
    SQ_METRES_PER_HECTARE,
    STATUS_CONSTRAINED,
    STATUS_FREE,
    STATUS_LITIGIOUS,
    STATUS_PUBLIC_DOMAIN,
    STATUS_RESTRICTED,
)
from foncier_analysis.core.exceptions import MissingAnalysisDataError
from foncier_analysis.models.layer import (
    LAYER_REGISTRY,
    PUBLIC_DOMAIN_LAYER_IDS,
    TITLE_DEED_LAYER_IDS,
)
from foncier_analysis.models.report import (
    LayerReport,
    MatchedFeature,
    ParcelReport,
    ParcelSummary,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from foncier_analysis.models.feature import FeatureProperties
    from foncier_analysis.models.layer import LayerDefinition
    from foncier_analysis.models.overlap import OverlapMatch

logger = logging.getLogger("foncier_analysis.activities.generate_report")

Ring = list[tuple[float, float]]

# ---------------------------------------------------------------------------
# Land-tenure vocabulary: layer id -> (status, default description)
# ---------------------------------------------------------------------------

LAYER_STATUS_TEXT: dict[str, tuple[str, str]] = {
    "aif": (
        "Association d'intérêts fonciers",
        "Couverture AIF: périmètre souvent vaste, peut contenir plusieurs villages. "
        "Si votre parcelle est incluse dans un Titre Foncier, elle doit faire l'objet "
        "de morcellement pour obtenir un TF distinct.",
    ),
    "air_proteges": (
        "Zone protégée",
        "Aire protégée *: données à considérer avec prudence — certaines limites "
        "peuvent être imprécises dans nos sources.",
    ),
    "dpl": (
        "Domaine public lagunaire",
        "DPL: périmètre autour des plans d'eau, généralement non constructible.",
    ),
    "dpm": (
        "Domaine public maritime",
        "DPM: périmètre maritime/zone côtière, généralement non constructible.",
    ),
    "tf_demembres": (
        "Titre foncier démembré",
        "Titre foncier démembré: souvent en zone lotie ; champ 'num_tf' contient "
        "le numéro du TF.",
    ),
    "titre_reconstitue": (
        "Titre foncier reconstitué",
        "Titre reconstitué: similaire aux TF démembrés mais souvent sur de grandes "
        "superficies.",
    ),
    "tf_en_cours": (
        "TF en cours",
        "TF en cours: parcelles en cours de morcellement ou confirmation de droits.",
    ),
    "enregistrement_individuel": (
        "Enregistrement individuel",
        "Parcelles enregistrées au cadastre (enregistrement individuel).",
    ),
    "tf_etat": (
        "Titre foncier de l'État",
        "Titres fonciers de l'État: échantillon de TF appartenant à l'État.",
    ),
    "litige": (
        "Zone litigieuse",
        "Zone en litige devant les juridictions.",
    ),
    "restriction": (
        "Zone restreinte",
        "Restriction: certaines entités correspondent à des ZDUP ou PAG; consultez "
        "le champ 'type' et 'désignation' pour plus de détails.",
    ),
}

DEFAULT_MATCH_STATUS = "Intersection détectée"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def generate_parcel_report(
    terrain_ring: Sequence[Sequence[float]],
    overlaps: Sequence[OverlapMatch] | None,
    *,
    registry: tuple[LayerDefinition, ...] = LAYER_REGISTRY,
    reprojector: CoordinateReprojector | None = None,
) -> ParcelReport:
    """Assemble the parcel report.

    Args:
        terrain_ring: Closed parcel ring in the source (projected) CRS.
        overlaps: Every overlap match of the request, across all layers.
            An empty sequence is a valid "no hit" result.
        registry: Layer definitions, in report order.
        reprojector: Converter to WGS 84 (defaults to UTM 31N → EPSG:4326).

    Returns:
        A ``ParcelReport`` with one ``LayerReport`` per registry entry.

    Raises:
        MissingAnalysisDataError: If *overlaps* is ``None``.
    """
    if overlaps is None:
        msg = "Missing analysis data: report generation requires the overlap results"
        raise MissingAnalysisDataError(msg)

    reprojector = reprojector or CoordinateReprojector()

    logger.info("Report generation started | overlaps=%d", len(overlaps))

    terrain, geographic = _terrain_ring(terrain_ring, reprojector)
    area_ha = compute_area_ha(terrain, geographic=geographic)

    grouped = group_matches_by_layer(overlaps, registry)
    layers = [
        _layer_report(definition, grouped[definition.id], reprojector)
        for definition in registry
    ]

    intersecting = sum(1 for layer in layers if layer.intersects)
    overall = classify_overall_status(layers)

    report = ParcelReport(
        terrain_coordinates=terrain,
        layers=layers,
        summary=ParcelSummary(
            total_area_ha=area_ha,
            intersecting_layer_count=intersecting,
            overall_status=overall,
        ),
        geographic=geographic,
    )

    logger.info(
        "Report generated | area=%.4f ha | intersecting_layers=%d | status=%s | geographic=%s",
        area_ha,
        intersecting,
        overall,
        geographic,
    )
    return report


def group_matches_by_layer(
    overlaps: Sequence[OverlapMatch],
    registry: tuple[LayerDefinition, ...] = LAYER_REGISTRY,
) -> dict[str, list[OverlapMatch]]:
    """Group matches by layer id; every registry id gets a (possibly empty) list."""
    grouped: dict[str, list[OverlapMatch]] = {definition.id: [] for definition in registry}
    for match in overlaps:
        bucket = grouped.get(match.source_layer_id)
        if bucket is None:
            logger.warning(
                "Ignoring overlap for unknown layer | layer=%s | feature=%r",
                match.source_layer_id,
                match.feature_id,
            )
            continue
        bucket.append(match)
    return grouped


def classify_overall_status(layers: Sequence[LayerReport]) -> str:
    """Overall parcel status by fixed precedence."""
    hit = {layer.id for layer in layers if layer.intersects}
    if not hit:
        return STATUS_FREE
    if "litige" in hit:
        return STATUS_LITIGIOUS
    if "restriction" in hit:
        return STATUS_RESTRICTED
    if hit & PUBLIC_DOMAIN_LAYER_IDS:
        return STATUS_PUBLIC_DOMAIN
    return STATUS_CONSTRAINED


def compute_area_ha(ring: Ring, *, geographic: bool = True) -> float:
    """Area of *ring* in hectares.

    Geographic rings use the geodesic area on the WGS 84 ellipsoid;
    projected rings use the planar area (coordinates in metres).
    Winding order does not matter.
    """
    if len(ring) < MIN_RING_POINTS:
        return 0.0

    if geographic:
        from pyproj import Geod

        geod = Geod(ellps="WGS84")
        lons = [c[0] for c in ring]
        lats = [c[1] for c in ring]
        area_m2, _perimeter = geod.polygon_area_perimeter(lons, lats)
    else:
        from shapely.geometry import Polygon

        area_m2 = Polygon(ring).area

    return abs(area_m2) / SQ_METRES_PER_HECTARE


def describe_match(layer_id: str, attributes: FeatureProperties) -> str:
    """Feature-specific description for a matched layer, or ``""``.

    ``restriction`` surfaces ``type`` and ``désignation``; title-deed
    layers prefix the land-title number; other layers use ``nom`` or
    ``name``.
    """
    description = ""
    if layer_id == "restriction" and attributes.type:
        description = f"Type: {attributes.type}"
        if attributes.designation:
            description += f" - {attributes.designation}"
    else:
        description = attributes.nom or attributes.name or ""

    if layer_id in TITLE_DEED_LAYER_IDS and attributes.num_tf:
        prefix = f"N° TF: {attributes.num_tf}"
        description = f"{prefix} - {description}" if description else prefix
    return description


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _terrain_ring(
    terrain_ring: Sequence[Sequence[float]],
    reprojector: CoordinateReprojector,
) -> tuple[Ring, bool]:
    converted = reprojector.convert_ring(list(terrain_ring))
    if len(converted) >= MIN_RING_POINTS:
        return converted, True

    logger.warning(
        "Unable to convert terrain coordinates to %s, falling back to raw values | "
        "input_points=%d | converted_points=%d",
        reprojector.target_crs,
        len(terrain_ring),
        len(converted),
    )
    return to_numeric_ring(list(terrain_ring), tolerance=reprojector.closure_tolerance), False


def _layer_report(
    definition: LayerDefinition,
    matches: list[OverlapMatch],
    reprojector: CoordinateReprojector,
) -> LayerReport:
    if not matches:
        return LayerReport(
            id=definition.id,
            name=definition.display_name,
            color=definition.color,
            coordinates=[],
            intersects=False,
            description=NO_CONSTRAINT_DESCRIPTION,
            status=NO_CONSTRAINT_STATUS,
        )

    matched = [_matched_feature(match, reprojector) for match in matches]

    # The first match's geometry is displayed; fall back to any other match
    # that still has a displayable ring.
    coordinates = matched[0].coordinates
    if not coordinates:
        coordinates = next((m.coordinates for m in matched if m.coordinates), [])

    first = matches[0]
    status, default_description = LAYER_STATUS_TEXT.get(
        definition.id, (DEFAULT_MATCH_STATUS, "")
    )
    description = describe_match(definition.id, first.attributes) or default_description

    logger.info(
        "Layer intersects | layer=%s | matches=%d | rings=%d | status=%s",
        definition.id,
        len(matches),
        len(coordinates),
        status,
    )
    return LayerReport(
        id=definition.id,
        name=definition.display_name,
        color=definition.color,
        coordinates=coordinates,
        intersects=True,
        description=description,
        status=status,
        matched_features=matched,
        crs=first.crs.to_dict() if first.crs else None,
    )


def _matched_feature(match: OverlapMatch, reprojector: CoordinateReprojector) -> MatchedFeature:
    # Prefer the original feature geometry over the duplicated coordinate array.
    rings = reprojector.convert_feature(match.source_feature)
    if not rings:
        rings = reprojector.for_crs(match.crs).convert_any(match.raw_coordinates)
    return MatchedFeature(
        document=match.document or match.source_layer_id,
        feature_id=match.feature_id,
        properties=dict(match.properties),
        coordinates=rings,
        crs=match.crs.to_dict() if match.crs else None,
    )

