"""Azure Functions entry point — parcel land-tenure analysis.

This module registers the HTTP functions using the Python v2 programming
model.

All business logic lives in the foncier_analysis package. This file is
purely the wiring layer between Azure Functions bindings and application
code.
"""

from __future__ import annotations

import json
import logging

import azure.functions as func

from foncier_analysis.core.config import AnalysisConfig
from foncier_analysis.orchestrators.parcel_pipeline import (
    build_store,
    handle_find_overlap,
    handle_parcel_analysis,
    handle_parcel_report,
)

app = func.FunctionApp(http_auth_level=func.AuthLevel.ANONYMOUS)

logger = logging.getLogger("foncier_analysis.function_app")

# Loaded once per worker; the layer cache lives as long as the worker.
CONFIG = AnalysisConfig.from_env()
STORE = build_store(CONFIG)


def _json_response(status_code: int, body: dict[str, object]) -> func.HttpResponse:
    return func.HttpResponse(
        json.dumps(body, ensure_ascii=False),
        status_code=status_code,
        mimetype="application/json",
        charset="utf-8",
    )


def _internal_error(route: str) -> func.HttpResponse:
    logger.exception("Unhandled error | route=%s", route)
    return _json_response(
        500,
        {"error": "Internal server error", "category": "permanent", "code": "INTERNAL_ERROR"},
    )


# ---------------------------------------------------------------------------
# HTTP: overlap computation
# ---------------------------------------------------------------------------


@app.function_name("find_overlap")
@app.route(route="findOverlap", methods=["POST"])
def find_overlap(req: func.HttpRequest) -> func.HttpResponse:
    """Compute the layer overlaps of a parcel.

    Body: the extracted boundary points (``[{X, Y, Bornes?}]``, or an
    object with a ``coordinates`` array).
    Returns: ``{overlaps: [...], yesNoData: {layer: OUI|NON}}``.
    """
    try:
        status, body = handle_find_overlap(req.get_body(), config=CONFIG, store=STORE)
    except Exception:
        return _internal_error("findOverlap")
    return _json_response(status, body)


# ---------------------------------------------------------------------------
# HTTP: report generation
# ---------------------------------------------------------------------------


@app.function_name("parcel_report")
@app.route(route="parcel-report", methods=["POST"])
def parcel_report(req: func.HttpRequest) -> func.HttpResponse:
    """Build the parcel report from precomputed overlaps.

    Body: ``{coordinates: [...], overlaps: [...]}``.
    """
    try:
        status, body = handle_parcel_report(req.get_body(), config=CONFIG)
    except Exception:
        return _internal_error("parcel-report")
    return _json_response(status, body)


@app.function_name("parcel_analysis")
@app.route(route="parcel-analysis", methods=["POST"])
def parcel_analysis(req: func.HttpRequest) -> func.HttpResponse:
    """Run the whole analysis: boundary points in, parcel report out."""
    try:
        status, body = handle_parcel_analysis(req.get_body(), config=CONFIG, store=STORE)
    except Exception:
        return _internal_error("parcel-analysis")
    return _json_response(status, body)
