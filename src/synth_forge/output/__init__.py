"""
Output module for serializing generated tables.

Supports:
- Quoted CSV blobs per table
- In-memory zip archives
- Plain output directories with a manifest
- Schema manifest export
"""

from synth_forge.output.archive import (
    Archive,
    ArchiveWriter,
    DirectoryArchiveWriter,
    ZipArchiveWriter,
)
from synth_forge.output.manifest import build_schema_manifest, write_schema_manifest
from synth_forge.output.serializer import csv_file_name, serialize_table

__all__ = [
    "Archive",
    "ArchiveWriter",
    "DirectoryArchiveWriter",
    "ZipArchiveWriter",
    "build_schema_manifest",
    "write_schema_manifest",
    "csv_file_name",
    "serialize_table",
]
