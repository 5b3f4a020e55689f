"""Coordinate normalization activity.

Turns the raw boundary points returned by the coordinate extraction
service into a valid closed polygon ring:

- numeric coercion of the ``x``/``y`` strings (unparseable or non-finite
  pairs are dropped)
- removal of consecutive duplicates within a small tolerance, so the
  polygon has no zero-length edges
- ring closure (first point appended when the last one differs)

Fewer than 3 distinct points is fatal for the whole analysis.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

from foncier_analysis.core.constants import (
    COORDINATE_DEDUP_TOLERANCE,
    MIN_DISTINCT_POINTS,
)
from foncier_analysis.core.exceptions import InsufficientCoordinatesError
from foncier_analysis.models.parcel import IncomingPolygon

if TYPE_CHECKING:
    from collections.abc import Sequence

    from foncier_analysis.models.parcel import IncomingPoint

logger = logging.getLogger("foncier_analysis.activities.normalize_coordinates")


def normalize_coordinates(
    points: Sequence[IncomingPoint],
    *,
    tolerance: float = COORDINATE_DEDUP_TOLERANCE,
) -> IncomingPolygon:
    """Build a closed parcel ring from raw extracted points.

    Args:
        points: Raw boundary vertices, in boundary order.
        tolerance: Two consecutive points closer than this on both axes
            are considered the same vertex.

    Returns:
        An ``IncomingPolygon`` whose ring has at least 4 entries and
        whose first and last entries are identical.

    Raises:
        InsufficientCoordinatesError: If fewer than 3 distinct points
            remain after parsing and deduplication.
    """
    parsed: list[tuple[float, float]] = []
    for idx, point in enumerate(points):
        coord = parse_point(point.x, point.y)
        if coord is None:
            logger.warning(
                "Dropping unparseable boundary point | index=%d | x=%r | y=%r",
                idx,
                point.x,
                point.y,
            )
            continue
        parsed.append(coord)

    ring: list[tuple[float, float]] = []
    for coord in parsed:
        if ring and _same_point(ring[-1], coord, tolerance):
            continue
        ring.append(coord)

    # An already-closed input repeats its first vertex at the end.
    if len(ring) > 1 and _same_point(ring[0], ring[-1], tolerance):
        ring.pop()

    distinct = len(set(ring))
    if distinct < MIN_DISTINCT_POINTS:
        msg = (
            f"A polygon needs at least {MIN_DISTINCT_POINTS} distinct boundary points, "
            f"got {distinct} (from {len(points)} extracted)"
        )
        raise InsufficientCoordinatesError(msg)

    ring = close_ring(ring)

    logger.info(
        "Parcel boundary normalized | input_points=%d | vertices=%d | ring_points=%d",
        len(points),
        len(ring) - 1,
        len(ring),
    )
    return IncomingPolygon(ring=ring)


def close_ring(ring: list[tuple[float, float]]) -> list[tuple[float, float]]:
    """Return *ring* closed by structural equality (first == last).

    Rings that are already closed, and empty rings, are returned as-is.
    """
    if not ring or ring[0] == ring[-1]:
        return ring
    return [*ring, ring[0]]


def parse_point(x: object, y: object) -> tuple[float, float] | None:
    """Coerce a raw ``(x, y)`` pair to floats.

    Returns ``None`` if either value is not a finite number. Comma
    decimal separators (``"382000,5"``) are accepted.
    """
    try:
        fx = float(str(x).strip().replace(",", "."))
        fy = float(str(y).strip().replace(",", "."))
    except (TypeError, ValueError):
        return None
    if not (math.isfinite(fx) and math.isfinite(fy)):
        return None
    return (fx, fy)



def _same_point(a: tuple[float, float], b: tuple[float, float], tolerance: float) -> bool:
    return abs(a[0] - b[0]) <= tolerance and abs(a[1] - b[1]) <= tolerance
