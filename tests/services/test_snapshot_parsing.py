"""Tests for proposal snapshot parsing and serialisation."""

import json
from decimal import Decimal

import pytest
import yaml

from fee_kernel.domain.disciplines import Phase
from fee_kernel.exceptions import MalformedSnapshotError
from fee_services import load_snapshot, parse_snapshot, snapshot_to_dict


class TestParseSnapshot:

    def test_canonical_payload(self, snapshot_payload):
        snapshot = parse_snapshot(snapshot_payload)

        assert snapshot.proposal_id == "prop-1"
        structure = snapshot.structure("bldg-a")
        assert structure.design_percentage == Decimal("80")
        space = structure.levels[0].spaces[0]
        assert space.floor_area == Decimal("1000")
        assert space.construction_costs[0].cost_per_sqft == Decimal("50")
        service = snapshot.service("svc-ca")
        assert service.phase is Phase.CONSTRUCTION
        assert service.is_construction_admin

    def test_matches_fixture_snapshot(self, snapshot_payload, worked_snapshot):
        assert parse_snapshot(snapshot_payload) == worked_snapshot

    def test_empty_payload(self):
        snapshot = parse_snapshot({})
        assert snapshot.structures == ()
        assert snapshot.currency == "USD"

    def test_nan_preserved(self, snapshot_payload):
        snapshot_payload["structures"][0]["levels"][0]["spaces"][0]["floor_area"] = float("nan")
        space = parse_snapshot(snapshot_payload).structures[0].levels[0].spaces[0]
        assert space.floor_area.is_nan()

    def test_not_an_object(self):
        with pytest.raises(MalformedSnapshotError) as exc:
            parse_snapshot([1, 2])
        assert exc.value.path == "$"

    def test_missing_id_reports_path(self, snapshot_payload):
        del snapshot_payload["structures"][0]["levels"][0]["id"]
        with pytest.raises(MalformedSnapshotError) as exc:
            parse_snapshot(snapshot_payload)
        assert exc.value.path == "$.structures[0].levels[0].id"
        assert exc.value.code == "MALFORMED_SNAPSHOT"

    def test_list_expected(self, snapshot_payload):
        snapshot_payload["structures"][0]["levels"] = {"id": "x"}
        with pytest.raises(MalformedSnapshotError) as exc:
            parse_snapshot(snapshot_payload)
        assert exc.value.path == "$.structures[0].levels"

    def test_non_numeric_value(self, snapshot_payload):
        snapshot_payload["tracked_services"][0]["min_fee"] = "lots"
        with pytest.raises(MalformedSnapshotError) as exc:
            parse_snapshot(snapshot_payload)
        assert exc.value.path == "$.tracked_services[0]"

    def test_unknown_phase(self, snapshot_payload):
        snapshot_payload["tracked_services"][1]["phase"] = "bidding"
        with pytest.raises(MalformedSnapshotError):
            parse_snapshot(snapshot_payload)

    @pytest.mark.parametrize("value", ["false", 0, "yes"])
    def test_flag_must_be_boolean(self, snapshot_payload, value):
        snapshot_payload["tracked_services"][1]["is_construction_admin"] = value
        with pytest.raises(MalformedSnapshotError) as exc:
            parse_snapshot(snapshot_payload)
        assert exc.value.path == "$.tracked_services[1].is_construction_admin"

    def test_inactive_cost_flag(self, snapshot_payload):
        cost = snapshot_payload["structures"][0]["levels"][0]["spaces"][0]["construction_costs"][0]
        cost["is_active"] = False
        space = parse_snapshot(snapshot_payload).structures[0].levels[0].spaces[0]
        assert space.construction_costs[0].is_active is False

    def test_infinite_value_rejected(self, snapshot_payload):
        snapshot_payload["structures"][0]["levels"][0]["spaces"][0]["floor_area"] = "Infinity"
        with pytest.raises(MalformedSnapshotError) as exc:
            parse_snapshot(snapshot_payload)
        assert exc.value.path == "$.structures[0].levels[0].spaces[0]"

    def test_bad_integer(self, snapshot_payload):
        snapshot_payload["structures"][0]["duplicate_number"] = "second"
        with pytest.raises(MalformedSnapshotError) as exc:
            parse_snapshot(snapshot_payload)
        assert exc.value.path == "$.structures[0].duplicate_number"


class TestSnapshotFiles:

    def test_to_dict_parses_back(self, worked_snapshot):
        data = snapshot_to_dict(worked_snapshot)

        assert data["tracked_services"][0]["min_fee"] == "1000"
        assert data["tracked_services"][1]["phase"] == "construction"
        assert parse_snapshot(data) == worked_snapshot

    def test_load_json(self, tmp_path, snapshot_payload, worked_snapshot):
        path = tmp_path / "proposal.json"
        path.write_text(json.dumps(snapshot_payload))
        assert load_snapshot(path) == worked_snapshot

    def test_load_yaml(self, tmp_path, snapshot_payload, worked_snapshot):
        path = tmp_path / "proposal.yaml"
        path.write_text(yaml.safe_dump(snapshot_payload))
        assert load_snapshot(path) == worked_snapshot

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "proposal.json"
        path.write_text("{not json")
        with pytest.raises(MalformedSnapshotError):
            load_snapshot(path)

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "proposal.yml"
        path.write_text("structures: [unclosed\n")
        with pytest.raises(MalformedSnapshotError) as exc:
            load_snapshot(path)
        assert exc.value.path == "$"

    def test_invalid_utf8(self, tmp_path):
        path = tmp_path / "proposal.yaml"
        path.write_bytes(b"proposal_id: \xff\n")
        with pytest.raises(MalformedSnapshotError):
            load_snapshot(path)
