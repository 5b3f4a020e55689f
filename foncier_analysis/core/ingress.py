"""Thin ingress boundary helpers for the HTTP entrypoints.

The coordinate extraction service and older front-end clients send
several payload shapes. This module turns them into the canonical
types the analysis works with, so that ``function_app.py`` contains
only trigger bindings and handoff, and the analysis stages only ever
see ``IncomingPoint`` and ``OverlapMatch`` lists:

- **deserialize_request_body**: bytes/str/dict request body to a JSON value.
- **extract_coordinate_candidates** / **normalize_incoming_points**:
  ``[...]``, ``{coordinates: [...]}`` or ``{raw: [...]}`` holding
  ``[x, y]`` pairs or ``{X|x|lon|lng|longitude, Y|y|lat|latitude}``
  mappings, to ``IncomingPoint`` objects.
- **extract_overlap_source** / **overlap_matches_from_payload**:
  ``[...]`` or ``{overlaps: [...]}`` to ``OverlapMatch`` objects, with
  upstream document names mapped onto registry layer ids.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from foncier_analysis.core.exceptions import ContractError, MissingAnalysisDataError
from foncier_analysis.models.layer import LAYER_REGISTRY, LayerDefinition, resolve_layer_id
from foncier_analysis.models.overlap import OverlapMatch
from foncier_analysis.models.parcel import IncomingPoint

logger = logging.getLogger("foncier_analysis.core.ingress")

_X_KEYS = ("X", "x", "lon", "lng", "longitude", "0", 0)
_Y_KEYS = ("Y", "y", "lat", "latitude", "1", 1)
_LABEL_KEYS = ("Bornes", "bornes")
_DOCUMENT_KEYS = ("sourceLayerId", "document", "fileName")


# ---------------------------------------------------------------------------
# Request body
# ---------------------------------------------------------------------------


def deserialize_request_body(raw: bytes | str | dict[str, Any] | list[Any] | None) -> Any:
    """Normalise an HTTP request body to a parsed JSON value.

    Raises:
        ContractError: If the body is empty, not valid JSON, or of an
            unexpected type.
    """
    if isinstance(raw, dict | list):
        return raw
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8-sig", errors="replace")
    if isinstance(raw, str):
        if not raw.strip():
            msg = "Request body is empty"
            raise ContractError(msg, stage="ingress", code="EMPTY_BODY")
        try:
            return json.loads(raw)
        except (json.JSONDecodeError, ValueError) as exc:
            msg = f"Request body is not valid JSON: {exc}"
            raise ContractError(msg, stage="ingress", code="INVALID_JSON") from exc
    msg = f"Unexpected request body type: {type(raw).__name__}"
    raise ContractError(msg, stage="ingress", code="INVALID_INPUT_TYPE")


# ---------------------------------------------------------------------------
# Incoming coordinates
# ---------------------------------------------------------------------------


def extract_coordinate_candidates(body: Any) -> list[Any]:
    """Return the most likely coordinate array in *body* (``[]`` if none)."""
    if isinstance(body, list):
        return body
    if isinstance(body, dict):
        for key in ("coordinates", "raw"):
            candidate = body.get(key)
            if isinstance(candidate, list):
                return candidate
    return []


def normalize_incoming_points(items: list[Any]) -> list[IncomingPoint]:
    """Convert loose coordinate items to ``IncomingPoint`` objects.

    Items that carry neither an x nor a y value are dropped. Values are
    kept as strings; numeric parsing belongs to the normalizer.
    """
    points: list[IncomingPoint] = []
    for item in items:
        point = _to_point(item)
        if point is not None and (point.x or point.y):
            points.append(point)
    return points


def parse_incoming_points(body: Any) -> list[IncomingPoint]:
    """Extract and normalise boundary points from a request body.

    Raises:
        ContractError: If no coordinate array can be found.
    """
    points = normalize_incoming_points(extract_coordinate_candidates(body))
    if not points:
        msg = "Invalid or missing coordinates array (could not normalize payload)"
        raise ContractError(msg, stage="ingress", code="MISSING_COORDINATES")

    logger.debug(
        "Incoming points normalized | body_type=%s | points=%d | preview=%s",
        type(body).__name__,
        len(points),
        [p.to_dict() for p in points[:3]],
    )
    return points


def _to_point(item: Any) -> IncomingPoint | None:
    if isinstance(item, list | tuple):
        if len(item) < 2:
            return None
        return IncomingPoint(x=_as_text(item[0]), y=_as_text(item[1]))
    if isinstance(item, dict):
        return IncomingPoint(
            x=_as_text(_first_present(item, _X_KEYS)),
            y=_as_text(_first_present(item, _Y_KEYS)),
            bornes=_as_text(_first_present(item, _LABEL_KEYS)),
        )
    return None


def _first_present(item: dict[Any, Any], keys: tuple[Any, ...]) -> Any:
    for key in keys:
        value = item.get(key)
        if value is not None:
            return value
    return None


def _as_text(value: Any) -> str:
    return "" if value is None else str(value)


# ---------------------------------------------------------------------------
# Overlap results
# ---------------------------------------------------------------------------


def extract_overlap_source(payload: Any) -> list[Any]:
    """Return the ``overlaps`` list of a request object.

    An empty list is valid ("computed, no hits"). A bare list body is
    not an overlap source: it is the parcel's coordinate list.

    Raises:
        MissingAnalysisDataError: If *payload* is not an object with an
            ``overlaps`` list.
    """
    if isinstance(payload, dict):
        candidate = payload.get("overlaps")
        if isinstance(candidate, list):
            return candidate
    msg = "Missing analysis data: payload carries no 'overlaps' list"
    raise MissingAnalysisDataError(msg, stage="ingress")


def overlap_matches_from_payload(
    items: list[Any],
    registry: tuple[LayerDefinition, ...] = LAYER_REGISTRY,
) -> list[OverlapMatch]:
    """Convert upstream overlap records to ``OverlapMatch`` objects.

    The layer is taken from ``sourceLayerId``, ``document`` or
    ``fileName`` (first that resolves against *registry*). Records for
    unknown layers are ignored.

    Raises:
        ContractError: If a record is not an object or has malformed fields.
    """
    matches: list[OverlapMatch] = []
    for idx, item in enumerate(items):
        if not isinstance(item, dict):
            msg = f"Overlap record {idx} must be an object, got {type(item).__name__}"
            raise ContractError(msg, stage="ingress", code="INVALID_OVERLAP_RECORD")

        layer_id = _resolve_record_layer(item, registry)
        if layer_id is None:
            logger.info(
                "Ignoring overlap for unregistered document | index=%d | document=%s",
                idx,
                item.get("document") or item.get("fileName") or "",
            )
            continue

        try:
            matches.append(OverlapMatch.from_dict(item, source_layer_id=layer_id))
        except TypeError as exc:
            msg = f"Overlap record {idx} is malformed: {exc}"
            raise ContractError(msg, stage="ingress", code="INVALID_OVERLAP_RECORD") from exc
    return matches


def _resolve_record_layer(
    item: dict[str, Any], registry: tuple[LayerDefinition, ...]
) -> str | None:
    for key in _DOCUMENT_KEYS:
        value = item.get(key)
        if isinstance(value, str):
            layer_id = resolve_layer_id(value, registry)
            if layer_id is not None:
                return layer_id
    return None
