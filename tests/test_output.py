"""Tests for CSV serialization, archive writers and manifests."""

import csv
import io
import json
import zipfile

import pytest

from synth_forge.generator.store import GeneratedStore
from synth_forge.models import (
    Column,
    GenerationMode,
    GenerationSettings,
    ProjectSchema,
    Relationship,
    Table,
)
from synth_forge.output import (
    DirectoryArchiveWriter,
    ZipArchiveWriter,
    build_schema_manifest,
    serialize_table,
    write_schema_manifest,
)
from synth_forge.output.archive import count_csv_rows


class TestSerializer:
    """Tests for serialize_table."""

    @pytest.fixture
    def table(self):
        return Table(id="t", name="Quotes", columns=(Column(id="a", name="id"), Column(id="b", name="text")))

    def test_quotes_doubled(self, table):
        store = GeneratedStore()
        store.put("t", {"a": ["1"], "b": ['He said "hi"']})

        text = serialize_table(table, store)

        assert text == '"id","text"\n"1","He said ""hi"""'

    def test_parses_back(self, table):
        values = ['He said "hi"', "comma, inside", "line\nbreak", ""]
        store = GeneratedStore()
        store.put("t", {"a": [str(i) for i in range(4)], "b": values})

        rows = list(csv.reader(io.StringIO(serialize_table(table, store))))

        assert rows[0] == ["id", "text"]
        assert [r[1] for r in rows[1:]] == values

    def test_no_trailing_newline(self, table):
        store = GeneratedStore()
        store.put("t", {"a": ["1", "2"], "b": ["x", "y"]})

        assert not serialize_table(table, store).endswith("\n")

    def test_header_only_when_empty(self, table):
        store = GeneratedStore()
        store.put("t", {"a": [], "b": []})

        assert serialize_table(table, store) == '"id","text"'

    def test_table_without_columns(self):
        store = GeneratedStore()
        store.put("e", {})

        assert serialize_table(Table(id="e", name="Empty"), store) == ""


class TestZipArchiveWriter:
    """Tests for ZipArchiveWriter."""

    def test_finalize(self):
        writer = ZipArchiveWriter("out.zip")
        writer.write_file("A.csv", '"x"\n"1"')
        writer.write_file("B.csv", '"y"')

        archive = writer.finalize()

        assert archive.name == "out.zip"
        assert archive.files == ["A.csv", "B.csv"]
        with zipfile.ZipFile(io.BytesIO(archive.data)) as zf:
            assert zf.read("A.csv").decode("utf-8") == '"x"\n"1"'

    def test_duplicate_name_overwrites(self):
        writer = ZipArchiveWriter()
        writer.write_file("A.csv", "first")
        writer.write_file("A.csv", "second")

        archive = writer.finalize()

        assert archive.files == ["A.csv"]
        with zipfile.ZipFile(io.BytesIO(archive.data)) as zf:
            assert zf.read("A.csv") == b"second"

    def test_save(self, tmp_path):
        archive = ZipArchiveWriter("data.zip").finalize()

        saved = archive.save(tmp_path)

        assert saved == tmp_path / "data.zip"
        assert saved.read_bytes() == archive.data


class TestDirectoryArchiveWriter:
    """Tests for DirectoryArchiveWriter."""

    def test_writes_files_and_manifest(self, tmp_path):
        writer = DirectoryArchiveWriter(tmp_path / "run", seed=42)
        writer.write_file("A.csv", '"x"\n"1"\n"2"')

        archive = writer.finalize()

        assert archive.location == tmp_path / "run"
        assert (tmp_path / "run" / "A.csv").read_text() == '"x"\n"1"\n"2"'
        manifest = json.loads((tmp_path / "run" / "manifest.json").read_text())
        assert manifest["seed"] == 42
        assert manifest["files"]["A.csv"]["rows"] == 2

    def test_nothing_written_before_finalize(self, tmp_path):
        writer = DirectoryArchiveWriter(tmp_path / "run")
        writer.write_file("A.csv", '"x"\n"1"')

        assert not (tmp_path / "run").exists()

        writer.finalize()

        assert (tmp_path / "run" / "A.csv").exists()

    def test_count_rows_with_embedded_newline(self):
        assert count_csv_rows('"x"\n"a\nb"\n"c"') == 2
        assert count_csv_rows("") == 0


class TestSchemaManifest:
    """Tests for the schema manifest."""

    @pytest.fixture
    def schema(self):
        customers = Table(id="c", name="Customers", columns=(Column(id="id", name="id"),),
                          settings=GenerationSettings(fixed_count=3))
        orders = Table(
            id="o", name="Orders", columns=(Column(id="cid", name="customer_id"),),
            settings=GenerationSettings(mode=GenerationMode.PER_PARENT, driving_parent_table_id="c",
                                        min_per_parent=1, max_per_parent=2),
        )
        return ProjectSchema(tables=(orders, customers), relationships=(Relationship("r1", "o", "cid", "c", "id"),))

    def test_build(self, schema):
        manifest = build_schema_manifest(schema)

        assert list(manifest["tables"]) == ["Customers", "Orders"]
        assert manifest["tables"]["Customers"]["fixed_count"] == 3
        assert manifest["tables"]["Orders"]["driving_parent"] == "Customers"
        assert manifest["tables"]["Orders"]["rows_per_parent"] == [1, 2]
        assert manifest["relationships"][0]["cardinality"] == "1:N"

    def test_write(self, schema, tmp_path):
        path = write_schema_manifest(schema, tmp_path / "manifest.json")

        assert json.loads(path.read_text())["tables"]["Orders"]["columns"][0]["name"] == "customer_id"
