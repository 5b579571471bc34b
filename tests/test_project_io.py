"""Tests for project file loading and saving."""

import json

import pytest
import yaml

from synth_forge.models import LinkedRule, PatternRule, SchemaError
from synth_forge.project_io import load_project, save_project

PROJECT = {
    "tables": [
        {
            "id": "c",
            "name": "Customers",
            "genSettings": {"mode": "fixed", "fixedCount": 3},
            "columns": [
                {"id": "id", "name": "id", "type": "String",
                 "rule": {"type": "Pattern (ID)", "config": {"pattern": "CUST-###"}}},
            ],
        },
        {
            "id": "o",
            "name": "Orders",
            "genSettings": {"mode": "per_parent", "drivingParentTableId": "c",
                            "minPerParent": 1, "maxPerParent": 2},
            "columns": [{"id": "cid", "name": "customerId", "type": "String"}],
        },
    ],
    "relationships": [
        {"id": "r1", "sourceTableId": "o", "sourceColumnId": "cid",
         "targetTableId": "c", "targetColumnId": "id", "cardinality": "1:N"},
    ],
}


class TestProjectIO:
    """Tests for load_project and save_project."""

    def test_load_yaml_derives_links(self, tmp_path):
        path = tmp_path / "project.yaml"
        path.write_text(yaml.safe_dump(PROJECT))

        schema = load_project(path)

        assert schema.get_table("c").get_column("id").rule == PatternRule("CUST-###")
        assert schema.get_table("o").get_column("cid").rule == LinkedRule("c", "id")

    def test_load_json_without_derivation(self, tmp_path):
        path = tmp_path / "project.json"
        path.write_text(json.dumps(PROJECT))

        schema = load_project(path, derive_links=False)

        assert schema.get_table("o").get_column("cid").rule.kind.value == "copy"

    def test_save_round_trip(self, tmp_path):
        source = tmp_path / "project.yml"
        source.write_text(yaml.safe_dump(PROJECT))
        schema = load_project(source)

        saved = save_project(schema, tmp_path / "copy.json")

        assert load_project(saved) == schema

    def test_invalid_enum_raises_schema_error(self, tmp_path):
        broken = json.loads(json.dumps(PROJECT))
        broken["relationships"][0]["cardinality"] = "2:3"
        path = tmp_path / "broken.json"
        path.write_text(json.dumps(broken))

        with pytest.raises(SchemaError):
            load_project(path)

    def test_non_mapping_raises_schema_error(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- just\n- a list\n")

        with pytest.raises(SchemaError):
            load_project(path)

    def test_invalid_yaml_raises_schema_error(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("tables: [unclosed\n")

        with pytest.raises(SchemaError):
            load_project(path)
