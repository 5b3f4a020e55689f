"""Tests for the ingress boundary helpers.

Validates:
- ``deserialize_request_body`` handles bytes, strings, parsed values and bad types
- Coordinate payload shapes normalise to ``IncomingPoint`` objects
- Overlap payloads map upstream document names onto registry layer ids
"""

from __future__ import annotations

import json

import pytest

from foncier_analysis.core.exceptions import ContractError, MissingAnalysisDataError
from foncier_analysis.core.ingress import (
    deserialize_request_body,
    extract_coordinate_candidates,
    extract_overlap_source,
    normalize_incoming_points,
    overlap_matches_from_payload,
    parse_incoming_points,
)
from foncier_analysis.models.parcel import IncomingPoint
from tests.helpers import UTM31N_CRS, polygon_feature, square

# ---------------------------------------------------------------------------
# deserialize_request_body
# ---------------------------------------------------------------------------


class TestDeserializeRequestBody:
    """Normalise a raw HTTP body to a JSON value."""

    def test_bytes_parsed(self) -> None:
        assert deserialize_request_body(b'{"a": 1}') == {"a": 1}

    def test_string_parsed(self) -> None:
        assert deserialize_request_body("[1, 2]") == [1, 2]

    def test_utf8_bom_stripped(self) -> None:
        assert deserialize_request_body(b'\xef\xbb\xbf{"a": 1}') == {"a": 1}

    def test_dict_passthrough(self) -> None:
        payload = {"coordinates": []}
        assert deserialize_request_body(payload) is payload

    def test_invalid_json_raises_contract_error(self) -> None:
        with pytest.raises(ContractError, match="not valid JSON") as exc_info:
            deserialize_request_body("{not-json")
        assert exc_info.value.code == "INVALID_JSON"
        assert exc_info.value.stage == "ingress"

    def test_empty_body(self) -> None:
        with pytest.raises(ContractError) as exc_info:
            deserialize_request_body(b"  ")
        assert exc_info.value.code == "EMPTY_BODY"

    def test_unexpected_type(self) -> None:
        with pytest.raises(ContractError) as exc_info:
            deserialize_request_body(42)  # type: ignore[arg-type]
        assert exc_info.value.code == "INVALID_INPUT_TYPE"


# ---------------------------------------------------------------------------
# Incoming coordinates
# ---------------------------------------------------------------------------


class TestExtractCoordinateCandidates:
    """Locate the coordinate array in a body."""

    def test_bare_list(self) -> None:
        assert extract_coordinate_candidates([[1, 2]]) == [[1, 2]]

    def test_coordinates_key(self) -> None:
        assert extract_coordinate_candidates({"coordinates": [[1, 2]]}) == [[1, 2]]

    def test_raw_key(self) -> None:
        assert extract_coordinate_candidates({"raw": [[1, 2]]}) == [[1, 2]]

    def test_coordinates_preferred_over_raw(self) -> None:
        body = {"coordinates": [[1, 2]], "raw": [[3, 4]]}
        assert extract_coordinate_candidates(body) == [[1, 2]]

    @pytest.mark.parametrize("body", [None, "text", {"coordinates": "x"}, {}])
    def test_nothing_found(self, body: object) -> None:
        assert extract_coordinate_candidates(body) == []


class TestNormalizeIncomingPoints:
    """Loose coordinate items → ``IncomingPoint``."""

    def test_canonical_mapping(self) -> None:
        points = normalize_incoming_points([{"X": "382000", "Y": "704000", "Bornes": "B1"}])
        assert points == [IncomingPoint("382000", "704000", "B1")]

    def test_lower_case_keys(self) -> None:
        points = normalize_incoming_points([{"x": 1, "y": 2, "bornes": "P1"}])
        assert points == [IncomingPoint("1", "2", "P1")]

    @pytest.mark.parametrize(
        "item",
        [
            {"lon": 1, "lat": 2},
            {"lng": 1, "lat": 2},
            {"longitude": 1, "latitude": 2},
            {"0": 1, "1": 2},
        ],
    )
    def test_alternative_keys(self, item: dict[str, object]) -> None:
        assert normalize_incoming_points([item]) == [IncomingPoint("1", "2")]

    def test_pairs(self) -> None:
        points = normalize_incoming_points([[1.5, 2.5], (3, 4)])
        assert points == [IncomingPoint("1.5", "2.5"), IncomingPoint("3", "4")]

    def test_empty_items_dropped(self) -> None:
        points = normalize_incoming_points([{}, [1], None, "x", {"X": "1", "Y": "2"}])
        assert points == [IncomingPoint("1", "2")]

    def test_parse_incoming_points_rejects_empty(self) -> None:
        with pytest.raises(ContractError) as exc_info:
            parse_incoming_points({"coordinates": []})
        assert exc_info.value.code == "MISSING_COORDINATES"
        assert exc_info.value.category == "contract"

    def test_parse_incoming_points(self) -> None:
        body = {"coordinates": [{"X": "1", "Y": "2"}, {"X": "3", "Y": "4"}]}
        assert len(parse_incoming_points(body)) == 2


# ---------------------------------------------------------------------------
# Overlap results
# ---------------------------------------------------------------------------


class TestExtractOverlapSource:
    """Locate the overlap list in a payload."""

    def test_bare_list_is_not_an_overlap_source(self) -> None:
        with pytest.raises(MissingAnalysisDataError):
            extract_overlap_source([{"X": "1", "Y": "2"}])

    def test_overlaps_key(self) -> None:
        payload = {"overlaps": [{"document": "litige"}], "yesNoData": {}}
        assert extract_overlap_source(payload) == [{"document": "litige"}]

    def test_empty_list_is_valid(self) -> None:
        assert extract_overlap_source({"overlaps": []}) == []

    @pytest.mark.parametrize("payload", [None, {}, {"overlaps": None}, {"overlaps": "x"}, 3])
    def test_absent_raises(self, payload: object) -> None:
        with pytest.raises(MissingAnalysisDataError) as exc_info:
            extract_overlap_source(payload)
        assert exc_info.value.code == "MISSING_ANALYSIS_DATA"


class TestOverlapMatchesFromPayload:
    """Upstream overlap records → ``OverlapMatch``."""

    def test_document_resolved_to_layer(self) -> None:
        items = [
            {
                "document": "enregistrement individuel",
                "properties": {"nom": "Parcelle 3"},
                "coordinates": [square(0, 0, 1)],
            }
        ]
        matches = overlap_matches_from_payload(items)
        assert len(matches) == 1
        assert matches[0].source_layer_id == "enregistrement_individuel"
        assert matches[0].document == "enregistrement individuel"
        assert matches[0].properties == {"nom": "Parcelle 3"}

    def test_file_name_with_extension(self) -> None:
        matches = overlap_matches_from_payload([{"fileName": "TF_Etat.geojson"}])
        assert matches[0].source_layer_id == "tf_etat"

    def test_source_layer_id_preferred(self) -> None:
        matches = overlap_matches_from_payload([{"sourceLayerId": "dpl", "document": "dpm"}])
        assert matches[0].source_layer_id == "dpl"

    def test_unknown_document_ignored(self, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level("INFO", logger="foncier_analysis.core.ingress")
        matches = overlap_matches_from_payload([{"document": "cadastre_2010"}])
        assert matches == []
        assert "unregistered document" in caplog.text

    def test_null_feature_id(self) -> None:
        matches = overlap_matches_from_payload([{"document": "litige", "featureId": None}])
        assert matches[0].feature_id == ""

    def test_feature_and_crs_carried(self) -> None:
        item = {
            "document": "litige",
            "feature": polygon_feature(square(0, 0, 1), {"nom": "A"}),
            "crs": UTM31N_CRS,
        }
        match = overlap_matches_from_payload([item])[0]
        assert match.source_feature is not None
        assert match.source_feature.properties == {"nom": "A"}
        assert match.attributes.nom is None
        assert match.crs is not None
        assert match.crs.to_dict() == UTM31N_CRS

    def test_non_object_record(self) -> None:
        with pytest.raises(ContractError) as exc_info:
            overlap_matches_from_payload(["litige"])
        assert exc_info.value.code == "INVALID_OVERLAP_RECORD"

    def test_malformed_properties(self) -> None:
        with pytest.raises(ContractError, match="malformed"):
            overlap_matches_from_payload([{"document": "litige", "properties": [1, 2]}])

    def test_round_trip_of_engine_output(self) -> None:
        payload = json.loads(
            json.dumps(
                {
                    "overlaps": [
                        {
                            "sourceLayerId": "aif",
                            "document": "aif",
                            "featureId": 3,
                            "properties": {},
                            "coordinates": [square(0, 0, 1)],
                        }
                    ],
                    "yesNoData": {"aif": "OUI"},
                }
            )
        )
        matches = overlap_matches_from_payload(extract_overlap_source(payload))
        assert matches[0].feature_id == 3
