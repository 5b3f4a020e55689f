"""Data models for overlap computation results.

An ``OverlapMatch`` records one reference feature found to concern the
parcel. It is produced by the overlap engine (or received from a remote
overlap service) and consumed immediately by the report generator.
``OverlapResult`` is the full output of one overlap pass, matching the
upstream wire shape ``{overlaps: [...], yesNoData: {...}}``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from foncier_analysis.core.constants import OVERLAP_NO, OVERLAP_YES
from foncier_analysis.models.feature import CRSDescriptor, FeatureProperties, ReferenceFeature


@dataclass(frozen=True, slots=True)
class OverlapMatch:
    """One reference feature matched against the parcel.

    Attributes:
        source_layer_id: Registry id of the layer the feature belongs to.
        feature_id: ``num_tf`` / ``id`` of the feature.
        properties: Feature property bag.
        raw_coordinates: Untransformed geometry coordinates.
        source_feature: The original feature, when available.
        crs: CRS declared by the source dataset, if any.
        document: Upstream document name (dataset file stem).
    """

    source_layer_id: str
    feature_id: str | int = ""
    properties: dict[str, Any] = field(default_factory=dict)
    raw_coordinates: list[Any] = field(default_factory=list)
    source_feature: ReferenceFeature | None = None
    crs: CRSDescriptor | None = None
    document: str = ""

    @classmethod
    def from_feature(
        cls,
        layer_id: str,
        feature: ReferenceFeature,
        *,
        document: str = "",
    ) -> OverlapMatch:
        """Build a match record from a matched reference feature."""
        return cls(
            source_layer_id=layer_id,
            feature_id=feature.identifier,
            properties=dict(feature.properties),
            raw_coordinates=feature.coordinates,
            source_feature=feature,
            crs=feature.crs,
            document=document or layer_id,
        )

    @property
    def attributes(self) -> FeatureProperties:
        """Typed view over :attr:`properties`."""
        return FeatureProperties(self.properties)

    def to_dict(self) -> dict[str, Any]:
        """Serialise to the upstream wire shape."""
        data: dict[str, Any] = {
            "sourceLayerId": self.source_layer_id,
            "document": self.document or self.source_layer_id,
            "featureId": self.feature_id,
            "properties": dict(self.properties),
            "coordinates": self.raw_coordinates,
        }
        if self.source_feature is not None:
            data["feature"] = self.source_feature.to_geojson()
        if self.crs is not None:
            data["crs"] = self.crs.to_dict()
        return data

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],
        *,
        source_layer_id: str | None = None,
    ) -> OverlapMatch:
        """Deserialise from the wire shape.

        ``source_layer_id`` overrides whatever layer the payload names;
        ``core.ingress`` resolves it from the upstream ``document``.

        Raises:
            TypeError: If field values have unexpected types.
        """
        properties = data.get("properties") or {}
        if not isinstance(properties, dict):
            msg = f"properties must be a dict, got {type(properties).__name__}"
            raise TypeError(msg)

        coordinates = data.get("coordinates") or []
        if not isinstance(coordinates, list):
            msg = f"coordinates must be a list, got {type(coordinates).__name__}"
            raise TypeError(msg)

        crs = CRSDescriptor.from_dict(data.get("crs"))

        feature_raw = data.get("feature")
        source_feature = None
        if isinstance(feature_raw, dict) and isinstance(feature_raw.get("geometry"), dict):
            source_feature = ReferenceFeature.from_geojson(feature_raw, crs=crs)

        layer_id = source_layer_id or str(data.get("sourceLayerId") or data.get("document") or "")
        feature_id = data.get("featureId")
        if feature_id is None:
            feature_id = ""
        elif not isinstance(feature_id, str | int):
            feature_id = str(feature_id)
        return cls(
            source_layer_id=layer_id,
            feature_id=feature_id,
            properties=dict(properties),
            raw_coordinates=coordinates,
            source_feature=source_feature,
            crs=crs,
            document=str(data.get("document") or layer_id),
        )


@dataclass(frozen=True, slots=True)
class OverlapResult:
    """Result of one overlap pass over every reference layer.

    Attributes:
        overlaps: Every match across all layers, in registry order.
        yes_no: ``"OUI"`` / ``"NON"`` per layer id.
    """

    overlaps: list[OverlapMatch] = field(default_factory=list)
    yes_no: dict[str, str] = field(default_factory=dict)

    def layer_flagged(self, layer_id: str) -> bool:
        return self.yes_no.get(layer_id) == OVERLAP_YES

    def to_dict(self) -> dict[str, Any]:
        return {
            "overlaps": [match.to_dict() for match in self.overlaps],
            "yesNoData": dict(self.yes_no),
        }

    @staticmethod
    def flag(has_overlap: bool) -> str:
        return OVERLAP_YES if has_overlap else OVERLAP_NO
