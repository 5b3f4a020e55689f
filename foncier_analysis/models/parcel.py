"""Data models for the incoming parcel boundary.

An ``IncomingPoint`` is one raw vertex exactly as the coordinate
extraction service returns it (numeric strings in UTM zone 31N metres).
An ``IncomingPolygon`` is the cleaned, closed ring built from those
points by the normalizer and handed to the overlap engine.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class IncomingPoint:
    """A raw boundary vertex from the coordinate extraction step.

    Attributes:
        x: Easting as a numeric string (metres).
        y: Northing as a numeric string (metres).
        bornes: Optional boundary-marker label (e.g. ``"P1"``, ``"B12"``).
    """

    x: str
    y: str
    bornes: str = ""

    def to_dict(self) -> dict[str, str]:
        """Serialise to the upstream wire shape (``X``/``Y``/``Bornes``)."""
        data = {"X": self.x, "Y": self.y}
        if self.bornes:
            data["Bornes"] = self.bornes
        return data


@dataclass(frozen=True, slots=True)
class IncomingPolygon:
    """A normalized, closed parcel ring in the source (projected) CRS.

    Attributes:
        ring: Closed ring of ``(x, y)`` tuples, first == last, at least
            4 entries (3 distinct points + closure).
    """

    ring: list[tuple[float, float]] = field(default_factory=list)

    @property
    def vertex_count(self) -> int:
        """Number of distinct vertices (closure excluded)."""
        return max(len(self.ring) - 1, 0)

    def to_coordinates(self) -> list[list[float]]:
        """Return the ring as JSON-friendly ``[[x, y], ...]``."""
        return [[x, y] for x, y in self.ring]
