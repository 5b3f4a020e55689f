"""Static registry of the regulatory reference layers.

Each ``LayerDefinition`` names one dataset, the colour used by the map
front-end, and the ``MatchStrategy`` the overlap engine applies to it.
The registry order is the display order of the report and must stay
stable.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from pathlib import PurePath


class MatchStrategy(enum.Enum):
    """How a layer decides that a reference feature concerns the parcel.

    Values:
        INTERSECTS: Standard polygon/polygon intersects predicate.
        SOUTH_OF_BOUNDING_BOX: The parcel bounding box lies entirely south
            of the feature bounding box. Used for the public-domain
            layers as a stand-in for the public-domain buffer zone; it
            ignores longitude on purpose.
    """

    INTERSECTS = "intersects"
    SOUTH_OF_BOUNDING_BOX = "south_of_bounding_box"


@dataclass(frozen=True, slots=True)
class LayerDefinition:
    """One regulatory dataset known to the analysis.

    Attributes:
        id: Stable layer identifier (e.g. ``"litige"``).
        display_name: French label shown in the report.
        color: Hex colour used when drawing the layer.
        source_file_name: Dataset file name inside the data directory.
        strategy: Matching strategy applied by the overlap engine.
    """

    id: str
    display_name: str
    color: str
    source_file_name: str
    strategy: MatchStrategy = MatchStrategy.INTERSECTS

    @property
    def document_name(self) -> str:
        """Dataset file name without extension (the upstream ``document``)."""
        return PurePath(self.source_file_name).stem


LAYER_REGISTRY: tuple[LayerDefinition, ...] = (
    LayerDefinition("aif", "AIF - Association d'Intérêts Fonciers", "#ef4444", "aif.geojson"),
    LayerDefinition("air_proteges", "Aires Protégées", "#10b981", "air_proteges.geojson"),
    LayerDefinition(
        "dpl",
        "Domaine Public Lagunaire",
        "#3b82f6",
        "dpl.geojson",
        MatchStrategy.SOUTH_OF_BOUNDING_BOX,
    ),
    LayerDefinition(
        "dpm",
        "Domaine Public Maritime",
        "#6366f1",
        "dpm.geojson",
        MatchStrategy.SOUTH_OF_BOUNDING_BOX,
    ),
    LayerDefinition(
        "tf_demembres", "Titres Fonciers démembrés", "#efb7c0", "tf_demembres.geojson"
    ),
    LayerDefinition(
        "titre_reconstitue",
        "Titres Fonciers reconstitués",
        "#fca5a5",
        "titre_reconstitue.geojson",
    ),
    LayerDefinition("tf_en_cours", "Titres Fonciers en cours", "#fb923c", "tf_en_cours.geojson"),
    LayerDefinition(
        "enregistrement_individuel",
        "Enregistrements individuels",
        "#60a5fa",
        "enregistrement individuel.geojson",
    ),
    LayerDefinition("tf_etat", "Titres Fonciers de l'État", "#94a3b8", "tf_etat.geojson"),
    LayerDefinition("litige", "Zones Litigieuses", "#f59e0b", "litige.geojson"),
    LayerDefinition("restriction", "Zones de Restriction", "#8b5cf6", "restriction.geojson"),
)

PUBLIC_DOMAIN_LAYER_IDS = frozenset({"dpl", "dpm"})
TITLE_DEED_LAYER_IDS = frozenset({"tf_demembres", "titre_reconstitue", "tf_etat", "tf_en_cours"})


def get_layer_definition(
    layer_id: str,
    registry: tuple[LayerDefinition, ...] = LAYER_REGISTRY,
) -> LayerDefinition:
    """Look up a layer definition by id.

    Raises:
        KeyError: If *layer_id* is not in the registry.
    """
    for definition in registry:
        if definition.id == layer_id:
            return definition
    msg = f"Unknown layer id: {layer_id!r}"
    raise KeyError(msg)


def resolve_layer_id(
    document: str,
    registry: tuple[LayerDefinition, ...] = LAYER_REGISTRY,
) -> str | None:
    """Map an upstream document / file name onto a registry layer id.

    Accepts the layer id itself, the dataset file name, or the file name
    without extension (``"enregistrement individuel"``). Comparison is
    case-insensitive. Returns ``None`` when nothing matches.
    """
    candidate = document.strip().lower()
    if not candidate:
        return None
    stem = PurePath(candidate).stem if candidate.endswith((".geojson", ".json")) else candidate
    for definition in registry:
        names = {
            definition.id.lower(),
            definition.source_file_name.lower(),
            definition.document_name.lower(),
        }
        if candidate in names or stem in names:
            return definition.id
    return None
