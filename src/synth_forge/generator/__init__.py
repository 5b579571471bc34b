"""
Generator module for producing synthetic relational data.

Handles table ordering, row planning, value resolution and FK consistency.
"""

from synth_forge.generator.engine import Generator, generate
from synth_forge.generator.planner import GenerationJob, RowPlanner, TablePlan
from synth_forge.generator.resolver import RowContext, ValueResolver, order_columns
from synth_forge.generator.store import GeneratedStore

__all__ = [
    "Generator",
    "generate",
    "GenerationJob",
    "RowPlanner",
    "TablePlan",
    "RowContext",
    "ValueResolver",
    "order_columns",
    "GeneratedStore",
]
