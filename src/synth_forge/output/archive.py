"""
Archive writers collecting the per-table CSV blobs of a run.

Supports:
- In-memory zip archives (the default download container)
- Plain directories with a manifest.json
"""

from __future__ import annotations

import csv
import io
import json
import logging
import zipfile
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

logger = logging.getLogger(__name__)


@dataclass
class Archive:
    """Result of a generation run."""
    name: str
    data: bytes = b""
    files: List[str] = field(default_factory=list)
    location: Optional[Path] = None

    def save(self, path: Union[str, Path]) -> Path:
        """
        Write the archive bytes to disk.

        Args:
            path: Target file, or a directory to place ``name`` in

        Returns:
            Path of the written file
        """
        path = Path(path)
        if path.is_dir():
            path = path / self.name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(self.data)
        logger.info(f"Saved archive to {path}")
        return path


def count_csv_rows(content: str) -> int:
    """Data rows of a CSV blob (header excluded)."""
    if not content:
        return 0
    return max(sum(1 for _ in csv.reader(io.StringIO(content))) - 1, 0)


class ArchiveWriter(ABC):
    """Collects named text blobs and produces an Archive."""

    @abstractmethod
    def write_file(self, name: str, content: str) -> None:
        """Add or overwrite a file."""

    @abstractmethod
    def finalize(self) -> Archive:
        """Close the writer and return the archive."""


class ZipArchiveWriter(ArchiveWriter):
    """Builds a zip archive in memory."""

    def __init__(self, archive_name: str = "synthetic_data.zip"):
        self.archive_name = archive_name
        self._files: Dict[str, str] = {}

    def write_file(self, name: str, content: str) -> None:
        if name in self._files:
            logger.warning(f"Overwriting {name} in {self.archive_name}")
        self._files[name] = content

    def finalize(self) -> Archive:
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for name, content in self._files.items():
                zf.writestr(name, content.encode("utf-8"))

        logger.info(f"Packed {len(self._files)} files into {self.archive_name}")
        return Archive(
            name=self.archive_name,
            data=buffer.getvalue(),
            files=list(self._files.keys()),
        )


class DirectoryArchiveWriter(ArchiveWriter):
    """
    Writes every file into a directory once the run completes.

    Files are held in memory until ``finalize`` so a failed run leaves
    the directory untouched.

    Output Structure:
        <output_dir>/
        ├── <table name>.csv
        ├── ...
        └── manifest.json
    """

    def __init__(self, output_dir: Union[str, Path], seed: Optional[int] = None):
        self.output_dir = Path(output_dir)
        self.seed = seed
        self._files: Dict[str, str] = {}

    def write_file(self, name: str, content: str) -> None:
        if name in self._files:
            logger.warning(f"Overwriting {name} in {self.output_dir}")
        self._files[name] = content

    def finalize(self) -> Archive:
        self.output_dir.mkdir(parents=True, exist_ok=True)

        entries: Dict[str, Dict[str, Any]] = {}
        for name, content in self._files.items():
            path = self.output_dir / name
            data = content.encode("utf-8")
            path.write_bytes(data)
            entries[name] = {"rows": count_csv_rows(content), "bytes": len(data)}
            logger.info(f"Wrote {entries[name]['rows']} rows to {path}")

        manifest = {
            "generated_at": datetime.now().isoformat(),
            "seed": self.seed,
            "files": entries,
        }

        manifest_path = self.output_dir / "manifest.json"
        with open(manifest_path, "w") as f:
            json.dump(manifest, f, indent=2, default=str)

        logger.info(f"Wrote manifest to {manifest_path}")
        return Archive(
            name=self.output_dir.name,
            files=list(self._files.keys()),
            location=self.output_dir,
        )
