"""Shared analysis constants — single source of truth.

Centralises CRS codes, numeric tolerances, and the French status labels
shared by the overlap engine, the report generator and the HTTP layer.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Coordinate reference systems
# ---------------------------------------------------------------------------

DEFAULT_SOURCE_CRS: str = "EPSG:32631"
"""UTM zone 31N (WGS 84) — the projection of Beninese topographic documents."""

DEFAULT_TARGET_CRS: str = "EPSG:4326"
"""Geographic WGS 84 (longitude, latitude) used for map display."""

DEFAULT_LAYERS_DATA_DIR: str = "public/data_files"
"""Directory holding one reference dataset file per layer."""

# ---------------------------------------------------------------------------
# Tolerances
# ---------------------------------------------------------------------------

COORDINATE_DEDUP_TOLERANCE: float = 1e-9
"""Consecutive extracted points closer than this are treated as duplicates."""

RING_CLOSURE_TOLERANCE: float = 1e-8
"""Reprojected rings whose ends diverge beyond this are re-closed."""

# ---------------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------------

MIN_DISTINCT_POINTS = 3
MIN_RING_POINTS = 4  # 3 distinct + closure

POLYGONAL_GEOMETRY_TYPES = frozenset({"Polygon", "MultiPolygon"})

SQ_METRES_PER_HECTARE = 10_000.0

# WGS 84 coordinate bounds
MIN_LONGITUDE = -180.0
MAX_LONGITUDE = 180.0
MIN_LATITUDE = -90.0
MAX_LATITUDE = 90.0

# ---------------------------------------------------------------------------
# Overlap flags (upstream ``yesNoData`` wire values)
# ---------------------------------------------------------------------------

OVERLAP_YES = "OUI"
OVERLAP_NO = "NON"

# ---------------------------------------------------------------------------
# Overall parcel status, by decreasing precedence
# ---------------------------------------------------------------------------

STATUS_LITIGIOUS = "Litigieux"
STATUS_RESTRICTED = "Restreint"
STATUS_PUBLIC_DOMAIN = "Domaine Public"
STATUS_CONSTRAINED = "Contraintes"
STATUS_FREE = "Libre"

NO_CONSTRAINT_STATUS = "Aucune contrainte"
NO_CONSTRAINT_DESCRIPTION = "Aucune contrainte détectée pour cette couche selon l'analyse fournie"
