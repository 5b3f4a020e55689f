"""Data models and schemas.

Defines the data structures used throughout the analysis:
- IncomingPoint / IncomingPolygon: the parcel boundary
- LayerDefinition / MatchStrategy: the static reference layer registry
- ReferenceFeature / ReferenceLayer: loaded reference datasets
- FeatureProperties: typed view over a feature property bag
- OverlapMatch / OverlapResult: overlap computation output
- ParcelReport / LayerReport: the final analysis report
"""

from foncier_analysis.models.feature import (
    CRSDescriptor,
    FeatureProperties,
    ReferenceFeature,
    ReferenceLayer,
)
from foncier_analysis.models.layer import (
    LAYER_REGISTRY,
    LayerDefinition,
    MatchStrategy,
    get_layer_definition,
    resolve_layer_id,
)
from foncier_analysis.models.overlap import OverlapMatch, OverlapResult
from foncier_analysis.models.parcel import IncomingPoint, IncomingPolygon
from foncier_analysis.models.report import (
    LayerReport,
    MatchedFeature,
    ParcelReport,
    ParcelSummary,
)

__all__ = [
    "LAYER_REGISTRY",
    "CRSDescriptor",
    "FeatureProperties",
    "IncomingPoint",
    "IncomingPolygon",
    "LayerDefinition",
    "LayerReport",
    "MatchStrategy",
    "MatchedFeature",
    "OverlapMatch",
    "OverlapResult",
    "ParcelReport",
    "ParcelSummary",
    "ReferenceFeature",
    "ReferenceLayer",
    "get_layer_definition",
    "resolve_layer_id",
]
