"""Reference layer store.

Loads the regulatory datasets named by the layer registry from static
files. GeoJSON files are read directly so that the optional top-level
``crs`` member is preserved exactly as declared; any other vector format
(Shapefile, GeoPackage, ...) is read through fiona (OGR).

Loading never raises: a missing, unreadable or corrupt dataset is
reported with ``LayerLoadWarning`` and yields an empty layer, so the
analysis degrades one layer at a time. Non-polygonal features are
skipped with ``UnsupportedGeometryWarning``.

``LayerStore`` adds an optional in-memory cache keyed by layer id.
Cached ``ReferenceLayer`` objects are frozen and never mutated after
population.
"""

from __future__ import annotations

import json
import logging
import threading
import warnings
from pathlib import Path
from typing import TYPE_CHECKING, Any

from foncier_analysis.core.constants import POLYGONAL_GEOMETRY_TYPES
from foncier_analysis.core.exceptions import LayerLoadWarning, UnsupportedGeometryWarning
from foncier_analysis.models.feature import CRSDescriptor, ReferenceFeature, ReferenceLayer

if TYPE_CHECKING:
    from foncier_analysis.models.layer import LayerDefinition

logger = logging.getLogger("foncier_analysis.activities.load_layers")

GEOJSON_SUFFIXES = frozenset({".geojson", ".json"})


class LayerFileError(Exception):
    """Internal: a dataset file exists but cannot be interpreted."""


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_layer(definition: LayerDefinition, data_dir: Path | str) -> ReferenceLayer:
    """Load the dataset backing *definition* from *data_dir*.

    Args:
        definition: Registry entry of the layer to load.
        data_dir: Directory containing the dataset files.

    Returns:
        A ``ReferenceLayer``; empty when the file is missing or unreadable.
    """
    path = Path(data_dir) / definition.source_file_name

    if not path.is_file():
        _warn_load(definition, path, "file not found")
        return ReferenceLayer(definition=definition, source_path=str(path))

    try:
        if path.suffix.lower() in GEOJSON_SUFFIXES:
            features, crs = _read_geojson(path)
        else:
            features, crs = _read_with_fiona(path)
    except (OSError, ValueError, LayerFileError) as exc:
        _warn_load(definition, path, str(exc))
        return ReferenceLayer(definition=definition, source_path=str(path))
    except Exception as exc:
        # fiona/OGR raise their own hierarchy; any driver failure is a
        # load failure for this layer only.
        _warn_load(definition, path, f"{type(exc).__name__}: {exc}")
        return ReferenceLayer(definition=definition, source_path=str(path))

    polygonal = _keep_polygonal(features, definition)

    logger.info(
        "Layer loaded | layer=%s | features=%d | skipped=%d | crs=%s | source=%s",
        definition.id,
        len(polygonal),
        len(features) - len(polygonal),
        crs.name if crs else "",
        path.name,
    )
    return ReferenceLayer(
        definition=definition,
        features=tuple(polygonal),
        crs=crs,
        source_path=str(path),
    )


class LayerStore:
    """Loads reference layers, optionally caching them by layer id.

    The datasets are static per deployment, so cached entries are never
    invalidated. Callers receive the same frozen ``ReferenceLayer``
    object on every hit.
    """

    def __init__(self, data_dir: Path | str, *, cache_enabled: bool = True) -> None:
        self.data_dir = Path(data_dir)
        self.cache_enabled = cache_enabled
        self._cache: dict[str, ReferenceLayer] = {}
        self._lock = threading.Lock()

    def get(self, definition: LayerDefinition) -> ReferenceLayer:
        """Return the loaded layer for *definition*."""
        if not self.cache_enabled:
            return load_layer(definition, self.data_dir)

        cached = self._cache.get(definition.id)
        if cached is not None:
            return cached

        layer = load_layer(definition, self.data_dir)
        with self._lock:
            return self._cache.setdefault(definition.id, layer)


# ---------------------------------------------------------------------------
# Readers
# ---------------------------------------------------------------------------


def _read_geojson(path: Path) -> tuple[list[ReferenceFeature], CRSDescriptor | None]:
    """Read a GeoJSON FeatureCollection, keeping its declared ``crs``."""
    try:
        document = json.loads(path.read_text(encoding="utf-8-sig"))
    except json.JSONDecodeError as exc:
        msg = f"not valid JSON: {exc}"
        raise LayerFileError(msg) from exc

    if not isinstance(document, dict) or document.get("type") != "FeatureCollection":
        kind = document.get("type") if isinstance(document, dict) else type(document).__name__
        msg = f"expected a FeatureCollection, got {kind!r}"
        raise LayerFileError(msg)

    crs = CRSDescriptor.from_dict(document.get("crs"))

    raw_features = document.get("features") or []
    if not isinstance(raw_features, list):
        msg = "'features' must be a list"
        raise LayerFileError(msg)

    features: list[ReferenceFeature] = []
    for idx, raw in enumerate(raw_features):
        if not isinstance(raw, dict):
            logger.warning("Skipping malformed feature | source=%s | index=%d", path.name, idx)
            continue
        try:
            features.append(ReferenceFeature.from_geojson(raw, crs=crs, index=idx))
        except TypeError as exc:
            logger.warning(
                "Skipping malformed feature | source=%s | index=%d | error=%s",
                path.name,
                idx,
                exc,
            )
    return features, crs


def _read_with_fiona(path: Path) -> tuple[list[ReferenceFeature], CRSDescriptor | None]:
    """Read any OGR-supported vector dataset through fiona."""
    import fiona

    features: list[ReferenceFeature] = []
    with fiona.open(str(path)) as collection:
        crs = _extract_crs_from_fiona(collection)
        for idx, record in enumerate(collection):
            geometry = record.geometry
            if geometry is None:
                features.append(
                    ReferenceFeature(geometry_type="", crs=crs, feature_id=idx)
                )
                continue
            features.append(
                ReferenceFeature(
                    geometry_type=str(geometry.type),
                    coordinates=_to_lists(geometry.coordinates),
                    properties=dict(record.properties or {}),
                    crs=crs,
                    feature_id=record.id if record.id is not None else idx,
                )
            )
    return features, crs


def _extract_crs_from_fiona(collection: object) -> CRSDescriptor | None:
    """Return the collection CRS as ``EPSG:nnnn``, or ``None`` if unknown."""
    crs = getattr(collection, "crs", None)
    if not crs:
        return None
    epsg = getattr(crs, "to_epsg", lambda: None)()
    if epsg is None:
        return None
    return CRSDescriptor.from_name(f"EPSG:{epsg}")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _keep_polygonal(
    features: list[ReferenceFeature], definition: LayerDefinition
) -> list[ReferenceFeature]:
    kept: list[ReferenceFeature] = []
    for feature in features:
        if feature.geometry_type in POLYGONAL_GEOMETRY_TYPES:
            kept.append(feature)
            continue
        msg = (
            f"Skipping feature {feature.feature_id!r} in layer '{definition.id}' "
            f"with unsupported geometry type {feature.geometry_type or 'None'!r}"
        )
        logger.warning(msg)
        warnings.warn(msg, UnsupportedGeometryWarning, stacklevel=3)
    return kept


def _warn_load(definition: LayerDefinition, path: Path, reason: str) -> None:
    msg = f"Layer '{definition.id}' treated as empty: cannot load {path.name} ({reason})"
    logger.warning(msg)
    warnings.warn(msg, LayerLoadWarning, stacklevel=3)


def _to_lists(value: Any) -> Any:
    """Recursively convert coordinate tuples to lists."""
    if isinstance(value, list | tuple):
        return [_to_lists(v) for v in value]
    return value
