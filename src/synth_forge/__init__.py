"""
Synth Forge - Synthetic Relational Dataset Generator

Generates row-level synthetic data for a set of related tables while
keeping foreign keys consistent with the generated parent rows.

Features:
- Dependency-ordered table generation with per-parent row counts
- Pattern, random, reference, linked, date, duration and revision columns
- AI-generated creative columns with per-row context chaining
- Quoted CSV output packed into a zip archive or a directory
"""

__version__ = "0.1.0"

from synth_forge.models import (
    Column,
    GenerationConfig,
    GenerationSettings,
    ProjectSchema,
    ReferenceFile,
    Relationship,
    Table,
)
from synth_forge.generator import Generator, generate
from synth_forge.output import Archive
from synth_forge.project_io import load_project, save_project

__all__ = [
    "Column",
    "GenerationConfig",
    "GenerationSettings",
    "ProjectSchema",
    "ReferenceFile",
    "Relationship",
    "Table",
    "Generator",
    "generate",
    "Archive",
    "load_project",
    "save_project",
]
