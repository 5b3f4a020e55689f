"""Data models for reference datasets.

A ``ReferenceFeature`` is one polygonal feature of a regulatory dataset,
with its untransformed coordinates and a free-form property bag. The
known per-layer fields (``num_tf``, ``type``, ``désignation``, ``nom``)
are read through ``FeatureProperties``; every other property is kept as-is.

A ``ReferenceLayer`` is the loaded content of one dataset file.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from foncier_analysis.models.layer import LayerDefinition


@dataclass(frozen=True, slots=True)
class CRSDescriptor:
    """A dataset-declared coordinate reference system (GeoJSON ``crs`` member).

    Attributes:
        type: Descriptor type, usually ``"name"``.
        properties: Descriptor properties, usually ``{"name": "<urn>"}``.
    """

    type: str = "name"
    properties: dict[str, Any] = field(default_factory=dict)

    @property
    def name(self) -> str:
        """The CRS identifier, e.g. ``"urn:ogc:def:crs:EPSG::32631"``."""
        value = self.properties.get("name", "")
        return str(value) if value else ""

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "properties": dict(self.properties)}

    @classmethod
    def from_dict(cls, data: object) -> CRSDescriptor | None:
        """Build a descriptor from a GeoJSON ``crs`` member.

        Returns ``None`` for anything that is not ``{type: str,
        properties: dict}``.
        """
        if not isinstance(data, dict):
            return None
        crs_type = data.get("type")
        properties = data.get("properties")
        if not isinstance(crs_type, str) or not isinstance(properties, dict):
            return None
        return cls(type=crs_type, properties=dict(properties))

    @classmethod
    def from_name(cls, name: str) -> CRSDescriptor:
        """Build a ``name``-type descriptor (e.g. from ``"EPSG:32631"``)."""
        return cls(type="name", properties={"name": name})


@dataclass(frozen=True, slots=True)
class FeatureProperties:
    """Typed accessors for the known per-layer fields of a property bag.

    Values are stripped strings; missing or blank values read as ``None``.
    """

    raw: dict[str, Any] = field(default_factory=dict)

    def text(self, key: str) -> str | None:
        value = self.raw.get(key)
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    @property
    def num_tf(self) -> str | None:
        """Land-title number (title-deed layers)."""
        return self.text("num_tf")

    @property
    def type(self) -> str | None:
        """Restriction type (``restriction`` layer)."""
        return self.text("type")

    @property
    def designation(self) -> str | None:
        """Restriction designation (``désignation`` property)."""
        return self.text("désignation")

    @property
    def nom(self) -> str | None:
        return self.text("nom")

    @property
    def name(self) -> str | None:
        return self.text("name")


@dataclass(frozen=True, slots=True)
class ReferenceFeature:
    """A polygonal feature of a reference dataset.

    Attributes:
        geometry_type: ``"Polygon"`` or ``"MultiPolygon"``.
        coordinates: GeoJSON coordinate array, untransformed.
        properties: Dataset-specific property bag.
        crs: CRS declared by the dataset, if any.
        feature_id: GeoJSON feature ``id`` member or the feature's index.
    """

    geometry_type: str
    coordinates: list[Any] = field(default_factory=list)
    properties: dict[str, Any] = field(default_factory=dict)
    crs: CRSDescriptor | None = None
    feature_id: str | int | None = None

    @property
    def identifier(self) -> str | int:
        """Identifier reported in overlap matches.

        ``num_tf`` first, then the ``id`` property, then the GeoJSON
        feature id.
        """
        for key in ("num_tf", "id"):
            value = self.properties.get(key)
            if value not in (None, "", 0):
                return value  # type: ignore[no-any-return]
        return self.feature_id if self.feature_id is not None else ""

    @property
    def geometry(self) -> dict[str, Any]:
        """GeoJSON geometry mapping (``__geo_interface__`` compatible)."""
        return {"type": self.geometry_type, "coordinates": self.coordinates}

    @property
    def __geo_interface__(self) -> dict[str, Any]:
        return self.geometry

    def to_geojson(self) -> dict[str, Any]:
        """Serialise as a GeoJSON Feature."""
        feature: dict[str, Any] = {
            "type": "Feature",
            "geometry": self.geometry,
            "properties": dict(self.properties),
        }
        if self.feature_id is not None:
            feature["id"] = self.feature_id
        return feature

    @classmethod
    def from_geojson(
        cls,
        data: dict[str, Any],
        *,
        crs: CRSDescriptor | None = None,
        index: int | None = None,
    ) -> ReferenceFeature:
        """Build a feature from a GeoJSON Feature mapping.

        Raises:
            TypeError: If the geometry or properties are not mappings.
        """
        geometry = data.get("geometry") or {}
        if not isinstance(geometry, dict):
            msg = f"geometry must be a dict, got {type(geometry).__name__}"
            raise TypeError(msg)
        properties = data.get("properties") or {}
        if not isinstance(properties, dict):
            msg = f"properties must be a dict, got {type(properties).__name__}"
            raise TypeError(msg)
        coordinates = geometry.get("coordinates") or []
        feature_id = data.get("id", index)
        return cls(
            geometry_type=str(geometry.get("type", "")),
            coordinates=list(coordinates),
            properties=dict(properties),
            crs=crs,
            feature_id=feature_id,
        )


@dataclass(frozen=True, slots=True)
class ReferenceLayer:
    """The loaded content of one reference dataset.

    Attributes:
        definition: Registry entry this dataset belongs to.
        features: Polygonal features, in file order.
        crs: CRS declared by the dataset, if any.
        source_path: File the features were read from.
    """

    definition: LayerDefinition
    features: tuple[ReferenceFeature, ...] = ()
    crs: CRSDescriptor | None = None
    source_path: str = ""

    @property
    def id(self) -> str:
        return self.definition.id

    @property
    def is_empty(self) -> bool:
        return not self.features
