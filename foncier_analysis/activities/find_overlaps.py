"""Overlap engine.

Decides which features of a reference layer concern the parcel, using
the ``MatchStrategy`` attached to the layer definition:

- ``INTERSECTS`` — shapely ``intersects``: any shared interior or
  boundary point counts, as does containment in either direction.
- ``SOUTH_OF_BOUNDING_BOX`` — the parcel bounding box lies entirely
  south of the feature bounding box (parcel max northing < feature min
  northing). This is the public-domain rule for the lagoon and maritime
  layers: a deliberate simplification of "parcel within the public
  domain buffer zone". Easting is not compared.

Both the parcel and the reference features are tested in their native
(projected) coordinates; nothing is reprojected here.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from foncier_analysis.models.layer import MatchStrategy
from foncier_analysis.models.overlap import OverlapMatch, OverlapResult

if TYPE_CHECKING:
    from collections.abc import Iterable

    from shapely.geometry.base import BaseGeometry

    from foncier_analysis.models.feature import ReferenceFeature, ReferenceLayer
    from foncier_analysis.models.parcel import IncomingPolygon

logger = logging.getLogger("foncier_analysis.activities.find_overlaps")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def find_overlaps(polygon: IncomingPolygon, layer: ReferenceLayer) -> list[OverlapMatch]:
    """Return the features of *layer* that match the parcel.

    Args:
        polygon: Normalized parcel ring.
        layer: Loaded reference layer.

    Returns:
        One ``OverlapMatch`` per matching feature, in file order. Empty
        for an empty layer.
    """
    if layer.is_empty:
        return []

    from shapely.geometry import Polygon

    parcel = Polygon(polygon.ring)
    strategy = layer.definition.strategy

    matches: list[OverlapMatch] = []
    for feature in layer.features:
        geometry = _feature_geometry(feature, layer.id)
        if geometry is None:
            continue
        if _matches(strategy, parcel, geometry, feature, layer.id):
            matches.append(
                OverlapMatch.from_feature(
                    layer.id, feature, document=layer.definition.document_name
                )
            )

    logger.info(
        "Overlap computed | layer=%s | strategy=%s | features=%d | matches=%d",
        layer.id,
        strategy.value,
        len(layer.features),
        len(matches),
    )
    return matches


def process_layers(polygon: IncomingPolygon, layers: Iterable[ReferenceLayer]) -> OverlapResult:
    """Run the overlap engine over every layer.

    Args:
        polygon: Normalized parcel ring.
        layers: Loaded layers, in registry order.

    Returns:
        An ``OverlapResult`` with the flat match list (layer order
        preserved) and an ``"OUI"``/``"NON"`` flag per layer id.
    """
    overlaps: list[OverlapMatch] = []
    yes_no: dict[str, str] = {}
    for layer in layers:
        layer_matches = find_overlaps(polygon, layer)
        yes_no[layer.id] = OverlapResult.flag(bool(layer_matches))
        overlaps.extend(layer_matches)
    return OverlapResult(overlaps=overlaps, yes_no=yes_no)


def intersects(parcel: BaseGeometry, geometry: BaseGeometry) -> bool:
    """Standard polygon/polygon intersects predicate."""
    return bool(parcel.intersects(geometry))


def south_of_bounding_box(parcel: BaseGeometry, geometry: BaseGeometry) -> bool:
    """Whether *parcel*'s bounding box lies entirely south of *geometry*'s.

    Only northings are compared: ``parcel.max_y < geometry.min_y``.
    """
    _, _, _, parcel_max_y = parcel.bounds
    _, feature_min_y, _, _ = geometry.bounds
    return parcel_max_y < feature_min_y


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _matches(
    strategy: MatchStrategy,
    parcel: BaseGeometry,
    geometry: BaseGeometry,
    feature: ReferenceFeature,
    layer_id: str,
) -> bool:
    from shapely.errors import GEOSException

    try:
        match strategy:
            case MatchStrategy.SOUTH_OF_BOUNDING_BOX:
                return south_of_bounding_box(parcel, geometry)
            case MatchStrategy.INTERSECTS:
                return intersects(parcel, geometry)
    except GEOSException as exc:
        logger.warning(
            "Skipping feature with invalid geometry | layer=%s | feature=%r | error=%s",
            layer_id,
            feature.identifier,
            exc,
        )
    return False


def _feature_geometry(feature: ReferenceFeature, layer_id: str) -> BaseGeometry | None:
    """Build a shapely geometry for *feature*, or ``None`` if it is unusable."""
    from shapely.errors import GEOSException
    from shapely.geometry import shape

    try:
        geometry = shape(feature)
    except (GEOSException, TypeError, ValueError, IndexError, AttributeError) as exc:
        logger.warning(
            "Skipping feature with malformed coordinates | layer=%s | feature=%r | error=%s",
            layer_id,
            feature.identifier,
            exc,
        )
        return None
    if geometry.is_empty:
        logger.warning(
            "Skipping feature with empty geometry | layer=%s | feature=%r",
            layer_id,
            feature.identifier,
        )
        return None
    return geometry
