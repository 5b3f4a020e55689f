"""Coordinate reprojection activity.

Converts projected coordinates (UTM zone 31N by default) to geographic
``(longitude, latitude)`` for display, for both the parcel ring and the
geometries of matched reference features.

Conversion is per vertex and best-effort:

- non-numeric, non-finite or out-of-range vertices are dropped from
  their ring rather than aborting the conversion
- a ring whose ends diverge after conversion is re-closed
- rings left with fewer than 4 points are discarded

The source CRS is a constructor parameter; ``for_crs`` returns a
reprojector for a dataset that declares its own CRS.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, Any

from foncier_analysis.core.constants import (
    DEFAULT_SOURCE_CRS,
    DEFAULT_TARGET_CRS,
    MAX_LATITUDE,
    MAX_LONGITUDE,
    MIN_LATITUDE,
    MIN_LONGITUDE,
    MIN_RING_POINTS,
    RING_CLOSURE_TOLERANCE,
)

if TYPE_CHECKING:
    from foncier_analysis.models.feature import CRSDescriptor, ReferenceFeature

logger = logging.getLogger("foncier_analysis.activities.reproject")

Ring = list[tuple[float, float]]


class CoordinateReprojector:
    """Projected → geographic coordinate converter.

    Args:
        source_crs: CRS of the input coordinates (any ``pyproj`` user
            input: ``"EPSG:32631"``, an OGC URN, a proj string).
        target_crs: CRS of the output coordinates.
        closure_tolerance: Rings whose first and last points differ by
            more than this after conversion are re-closed.
    """

    def __init__(
        self,
        source_crs: str = DEFAULT_SOURCE_CRS,
        target_crs: str = DEFAULT_TARGET_CRS,
        *,
        closure_tolerance: float = RING_CLOSURE_TOLERANCE,
    ) -> None:
        from pyproj import Transformer

        self.source_crs = source_crs
        self.target_crs = target_crs
        self.closure_tolerance = closure_tolerance
        self._transformer = Transformer.from_crs(source_crs, target_crs, always_xy=True)
        self._derived: dict[str, CoordinateReprojector] = {}

    def __repr__(self) -> str:
        return f"CoordinateReprojector({self.source_crs!r} -> {self.target_crs!r})"

    # -- CRS selection ------------------------------------------------------

    def for_crs(self, crs: CRSDescriptor | None) -> CoordinateReprojector:
        """Return a reprojector whose source is the dataset-declared *crs*.

        Falls back to ``self`` when *crs* is absent, names the current
        source, or cannot be understood by pyproj.
        """
        name = crs.name if crs is not None else ""
        if not name or name == self.source_crs:
            return self

        derived = self._derived.get(name)
        if derived is not None:
            return derived

        from pyproj.exceptions import CRSError

        try:
            derived = CoordinateReprojector(
                name,
                self.target_crs,
                closure_tolerance=self.closure_tolerance,
            )
        except CRSError as exc:
            logger.warning(
                "Unknown dataset CRS, using configured source | crs=%s | source=%s | error=%s",
                name,
                self.source_crs,
                exc,
            )
            derived = self
        self._derived[name] = derived
        return derived

    # -- conversions --------------------------------------------------------

    def convert_position(self, coord: object) -> tuple[float, float] | None:
        """Convert one ``[x, y, ...]`` position.

        Returns ``None`` when the input is not a numeric pair or the
        result is not a valid longitude/latitude.
        """
        if not isinstance(coord, list | tuple) or len(coord) < 2:
            return None
        try:
            x = float(coord[0])
            y = float(coord[1])
        except (TypeError, ValueError):
            return None
        if not (math.isfinite(x) and math.isfinite(y)):
            return None

        lon, lat = self._transformer.transform(x, y)
        if not (math.isfinite(lon) and math.isfinite(lat)):
            return None
        if not (MIN_LONGITUDE <= lon <= MAX_LONGITUDE and MIN_LATITUDE <= lat <= MAX_LATITUDE):
            return None
        return (lon, lat)

    def convert_ring(self, ring: object) -> Ring:
        """Convert a ring, dropping invalid vertices and re-closing it."""
        if not isinstance(ring, list | tuple):
            return []
        converted: Ring = []
        for coord in ring:
            position = self.convert_position(coord)
            if position is not None:
                converted.append(position)
        return close_ring(converted, tolerance=self.closure_tolerance)

    def convert_geometry(self, geometry_type: str, coordinates: object) -> list[Ring]:
        """Convert Polygon / MultiPolygon coordinates to a flat list of rings.

        Rings with fewer than 4 points after conversion are discarded.
        Other geometry types yield no rings.
        """
        if not isinstance(coordinates, list | tuple):
            return []
        if geometry_type == "Polygon":
            rings = [self.convert_ring(ring) for ring in coordinates]
        elif geometry_type == "MultiPolygon":
            rings = [
                self.convert_ring(ring)
                for polygon in coordinates
                if isinstance(polygon, list | tuple)
                for ring in polygon
            ]
        else:
            return []
        return [ring for ring in rings if len(ring) >= MIN_RING_POINTS]

    def convert_feature(self, feature: ReferenceFeature | None) -> list[Ring]:
        """Convert a reference feature's geometry, honouring its declared CRS."""
        if feature is None:
            return []
        return self.for_crs(feature.crs).convert_geometry(
            feature.geometry_type, feature.coordinates
        )

    def convert_any(self, coordinates: object) -> list[Ring]:
        """Convert a loose coordinate array of unknown nesting depth.

        Depth 4 is read as MultiPolygon, depth 3 as Polygon, depth 2 as a
        single ring.
        """
        match _nesting_depth(coordinates):
            case 4:
                return self.convert_geometry("MultiPolygon", coordinates)
            case 3:
                return self.convert_geometry("Polygon", coordinates)
            case 2:
                ring = self.convert_ring(coordinates)
                return [ring] if len(ring) >= MIN_RING_POINTS else []
            case _:
                return []


# ---------------------------------------------------------------------------
# Ring helpers
# ---------------------------------------------------------------------------


def close_ring(ring: Ring, *, tolerance: float = RING_CLOSURE_TOLERANCE) -> Ring:
    """Append the first point if the ring's ends diverge beyond *tolerance*."""
    if not ring:
        return ring
    first = ring[0]
    last = ring[-1]
    if abs(first[0] - last[0]) > tolerance or abs(first[1] - last[1]) > tolerance:
        return [*ring, (first[0], first[1])]
    return ring


def to_numeric_ring(ring: object, *, tolerance: float = RING_CLOSURE_TOLERANCE) -> Ring:
    """Coerce a raw ring to floats without reprojection, dropping bad vertices."""
    if not isinstance(ring, list | tuple):
        return []
    numeric: Ring = []
    for coord in ring:
        if not isinstance(coord, list | tuple) or len(coord) < 2:
            continue
        try:
            x = float(coord[0])
            y = float(coord[1])
        except (TypeError, ValueError):
            continue
        if math.isfinite(x) and math.isfinite(y):
            numeric.append((x, y))
    return close_ring(numeric, tolerance=tolerance)


def _nesting_depth(value: Any) -> int:
    """Depth of the first-element chain of nested lists (a number is depth 0)."""
    depth = 0
    while isinstance(value, list | tuple):
        if not value:
            return 0
        depth += 1
        value = value[0]
    return depth if isinstance(value, int | float) and not isinstance(value, bool) else 0
