"""Data models for the parcel analysis report.

The ``ParcelReport`` is the final artifact handed to the presentation
and agent layers. Every coordinate in it is ``[longitude, latitude]``
(WGS 84) unless ``geographic`` is ``False``, in which case the terrain
ring holds the raw projected values and should not be drawn on a map.

Wire keys are camelCase to match the front-end contract.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

Ring = list[tuple[float, float]]


def _ring_to_list(ring: Ring) -> list[list[float]]:
    return [[x, y] for x, y in ring]


@dataclass(frozen=True, slots=True)
class MatchedFeature:
    """Traceability entry for one matched feature of a layer.

    Attributes:
        document: Upstream document name of the source dataset.
        feature_id: ``num_tf`` / ``id`` of the feature.
        properties: Feature property bag.
        coordinates: Reprojected rings (may be empty).
        crs: Declared dataset CRS (GeoJSON ``crs`` member), if any.
    """

    document: str
    feature_id: str | int = ""
    properties: dict[str, Any] = field(default_factory=dict)
    coordinates: list[Ring] = field(default_factory=list)
    crs: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "document": self.document,
            "featureId": self.feature_id,
            "properties": dict(self.properties),
            "coordinates": [_ring_to_list(r) for r in self.coordinates],
        }
        if self.crs is not None:
            data["crs"] = self.crs
        return data


@dataclass(frozen=True, slots=True)
class LayerReport:
    """Analysis outcome for one reference layer.

    Attributes:
        id: Layer id (unique, 1:1 with the registry).
        name: Display name.
        color: Display colour.
        coordinates: Reprojected rings of the primary matched feature.
        intersects: Whether at least one feature matched.
        description: Human-readable explanation (French).
        status: Short status label (French).
        matched_features: Every matched feature, or ``None`` when no match.
        crs: Declared CRS of the first match's dataset, if any.
    """

    id: str
    name: str
    color: str
    coordinates: list[Ring] = field(default_factory=list)
    intersects: bool = False
    description: str | None = None
    status: str | None = None
    matched_features: list[MatchedFeature] | None = None
    crs: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "color": self.color,
            "coordinates": [_ring_to_list(r) for r in self.coordinates],
            "intersects": self.intersects,
        }
        if self.description is not None:
            data["description"] = self.description
        if self.status is not None:
            data["status"] = self.status
        if self.matched_features:
            data["matchedFeatures"] = [m.to_dict() for m in self.matched_features]
        if self.crs is not None:
            data["crs"] = self.crs
        return data


@dataclass(frozen=True, slots=True)
class ParcelSummary:
    """Headline figures of the report.

    Attributes:
        total_area_ha: Parcel area in hectares.
        intersecting_layer_count: Number of layers with ``intersects=True``.
        overall_status: Overall classification (``Litigieux`` ... ``Libre``).
    """

    total_area_ha: float = 0.0
    intersecting_layer_count: int = 0
    overall_status: str = "Libre"

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalAreaHectares": self.total_area_ha,
            "intersectingLayerCount": self.intersecting_layer_count,
            "overallStatus": self.overall_status,
        }


@dataclass(frozen=True, slots=True)
class ParcelReport:
    """The complete analysis report for one parcel.

    Attributes:
        terrain_coordinates: Closed parcel ring (WGS 84 unless not ``geographic``).
        layers: One entry per registry layer, in registry order.
        summary: Area, intersecting layer count and overall status.
        geographic: ``False`` when the terrain ring could not be reprojected
            and holds the raw projected coordinates instead.
    """

    terrain_coordinates: Ring = field(default_factory=list)
    layers: list[LayerReport] = field(default_factory=list)
    summary: ParcelSummary = field(default_factory=ParcelSummary)
    geographic: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "terrainCoordinates": _ring_to_list(self.terrain_coordinates),
            "geographic": self.geographic,
            "layers": [layer.to_dict() for layer in self.layers],
            "summary": self.summary.to_dict(),
        }
