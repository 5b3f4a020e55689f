"""Geometry builders shared by the unit tests (UTM zone 31N metres, around Cotonou)."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from foncier_analysis.models.feature import CRSDescriptor, ReferenceFeature, ReferenceLayer
from foncier_analysis.models.layer import get_layer_definition
from foncier_analysis.models.parcel import IncomingPoint

if TYPE_CHECKING:
    from pathlib import Path

    from foncier_analysis.models.layer import LayerDefinition

PARCEL_ORIGIN = (382000.0, 704000.0)
UTM31N_CRS = {"type": "name", "properties": {"name": "urn:ogc:def:crs:EPSG::32631"}}


def square(x0: float, y0: float, size: float) -> list[list[float]]:
    """Closed square ring with its south-west corner at ``(x0, y0)``."""
    return [
        [x0, y0],
        [x0 + size, y0],
        [x0 + size, y0 + size],
        [x0, y0 + size],
        [x0, y0],
    ]


def polygon_feature(
    ring: list[list[float]],
    properties: dict[str, object] | None = None,
    feature_id: object = None,
) -> dict[str, object]:
    """GeoJSON Polygon feature mapping."""
    feature: dict[str, object] = {
        "type": "Feature",
        "geometry": {"type": "Polygon", "coordinates": [ring]},
        "properties": properties or {},
    }
    if feature_id is not None:
        feature["id"] = feature_id
    return feature


def feature_collection(
    features: list[dict[str, object]], crs: dict[str, object] | None = None
) -> dict[str, object]:
    collection: dict[str, object] = {"type": "FeatureCollection", "features": features}
    if crs is not None:
        collection["crs"] = crs
    return collection


def write_layer_file(
    data_dir: Path,
    definition: LayerDefinition,
    features: list[dict[str, object]],
    crs: dict[str, object] | None = UTM31N_CRS,
) -> Path:
    """Write *features* as the dataset file of *definition*."""
    path = data_dir / definition.source_file_name
    path.write_text(json.dumps(feature_collection(features, crs)), encoding="utf-8")
    return path


def make_layer(
    layer_id: str,
    rings: list[list[list[float]]],
    properties: list[dict[str, object]] | None = None,
) -> ReferenceLayer:
    """In-memory ``ReferenceLayer`` with one Polygon feature per ring."""
    crs = CRSDescriptor.from_dict(UTM31N_CRS)
    props = properties or [{} for _ in rings]
    features = tuple(
        ReferenceFeature(
            geometry_type="Polygon",
            coordinates=[ring],
            properties=prop,
            crs=crs,
            feature_id=idx,
        )
        for idx, (ring, prop) in enumerate(zip(rings, props, strict=True))
    )
    return ReferenceLayer(definition=get_layer_definition(layer_id), features=features, crs=crs)


def points_from_ring(ring: list[list[float]]) -> list[IncomingPoint]:
    """Closed ring to extracted-point strings (closure omitted)."""
    return [
        IncomingPoint(x=str(x), y=str(y), bornes=f"B{idx + 1}")
        for idx, (x, y) in enumerate(ring[:-1])
    ]
