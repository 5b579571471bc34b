"""
Core data models for the synth_forge package.

Defines the schema snapshot consumed by a generation run: tables, columns,
tagged generation rules, relationships, reference files and the run
configuration. Also hosts the dependency orderer used to sequence tables.
"""

from __future__ import annotations

import logging
import os
from collections import deque
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Tuple, Union

logger = logging.getLogger(__name__)


# Sentinel values written inline when a value cannot be resolved
MISSING_REF = "MISSING_REF"
MISSING_SOURCE_VAL = "MISSING_SOURCE_VAL"
ORPHAN = "ORPHAN"
UNCONFIGURED_LINK = "UNCONFIGURED_LINK"
AI_ERROR_SENTINEL = "Error: Generation Failed"

SENTINELS = frozenset({
    MISSING_REF,
    MISSING_SOURCE_VAL,
    ORPHAN,
    UNCONFIGURED_LINK,
    AI_ERROR_SENTINEL,
})

DEFAULT_REVISION_SCHEMA = "-, A, B, C, D"
DEFAULT_RANDOM_OPTIONS = ("A", "B", "C")


class SynthForgeError(Exception):
    """Base error for synth_forge."""


class SchemaError(SynthForgeError):
    """Raised when a project schema cannot be interpreted."""


class AIDependencyCycleError(SchemaError):
    """Raised when AI columns declare a cyclic dependency chain."""


class ContentServiceError(SynthForgeError):
    """Raised by creative-content services on failure."""


class GeneratedStoreError(SynthForgeError):
    """Raised when the generated store is written twice for one table."""


class DataType(str, Enum):
    """Column data types (serialized with the editor's labels)."""
    STRING = "String"
    TEXT_AREA = "Text Area"
    INTEGER = "Integer"
    REAL = "Real"
    DATE = "Date"
    BOOLEAN = "Boolean"
    DROPDOWN = "Dropdown"
    MULTI_SELECT = "Multi-select"
    REVISION = "Revision"
    DURATION = "Duration"

    @classmethod
    def parse(cls, value: Any) -> DataType:
        if isinstance(value, DataType):
            return value
        text = str(value or "String").strip()
        for member in cls:
            if text.lower() in (member.value.lower(), member.name.lower()):
                return member
        # Legacy projects used "Number"
        if text.lower() == "number":
            return cls.REAL
        raise SchemaError(f"Unknown data type: {value!r}")


class StrategyKind(str, Enum):
    """Generation strategy tags."""
    COPY = "copy"
    PATTERN = "pattern"
    RANDOM = "random"
    REFERENCE = "reference"
    LINKED = "linked"
    RANDOM_RECORD = "random_record"
    AI = "ai"
    DATE = "date"
    DURATION = "duration"
    REVISION = "revision"


# Labels used by the schema editor when it persists projects
_STRATEGY_LABELS = {
    "copy (sample)": StrategyKind.COPY,
    "pattern (id)": StrategyKind.PATTERN,
    "random selection": StrategyKind.RANDOM,
    "reference file": StrategyKind.REFERENCE,
    "linked (from parent)": StrategyKind.LINKED,
    "random record from table": StrategyKind.RANDOM_RECORD,
    "ai creative (gemini)": StrategyKind.AI,
    "date logic": StrategyKind.DATE,
    "calculate duration": StrategyKind.DURATION,
}

# Policy-managed lifecycle columns carry no generator config of their own;
# their values come from the column type (dates) or stay empty
_LIFECYCLE_LABELS = ("lifecycle date", "lifecycle duration")


def parse_strategy_kind(value: Any) -> StrategyKind:
    """Parse a strategy tag from its short name or editor label."""
    if isinstance(value, StrategyKind):
        return value
    text = str(value or "copy").strip().lower()
    if text in _STRATEGY_LABELS:
        return _STRATEGY_LABELS[text]
    if text in _LIFECYCLE_LABELS:
        logger.warning(f"Strategy {value!r} is generated from the column type")
        return StrategyKind.COPY
    try:
        return StrategyKind(text.replace(" ", "_"))
    except ValueError:
        raise SchemaError(f"Unknown generation strategy: {value!r}") from None


class DateMode(str, Enum):
    NOW = "Now"
    COLUMN = "Column"
    BETWEEN = "Between"


class DateOperator(str, Enum):
    BEFORE = "Before"
    ON_BEFORE = "OnBefore"
    AFTER = "After"
    ON_AFTER = "OnAfter"


class DurationUnit(str, Enum):
    HOURS = "Hours"
    DAYS = "Days"
    WEEKS = "Weeks"
    WORKING_DAYS = "Working Days"


class Cardinality(str, Enum):
    ONE_TO_ONE = "1:1"
    ONE_TO_MANY = "1:N"
    MANY_TO_MANY = "N:M"


class GenerationMode(str, Enum):
    FIXED = "fixed"
    PER_PARENT = "per_parent"


def _pick(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first present key (snake_case or camelCase spelling)."""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


# ---------------------------------------------------------------------------
# Generation rules
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CopyRule:
    """Cycle through the column's configured sample values."""
    kind: ClassVar[StrategyKind] = StrategyKind.COPY

    def config_dict(self) -> Dict[str, Any]:
        return {}


@dataclass(frozen=True)
class PatternRule:
    """Identifier pattern: ``UUID``, ``HEX-<n>`` or ``#``-padded counters."""
    kind: ClassVar[StrategyKind] = StrategyKind.PATTERN
    pattern: str = "ID-#"

    def config_dict(self) -> Dict[str, Any]:
        return {"pattern": self.pattern}


@dataclass(frozen=True)
class RandomRule:
    """Uniform selection from a fixed option list."""
    kind: ClassVar[StrategyKind] = StrategyKind.RANDOM
    options: Tuple[str, ...] = ()
    delimiter: str = ","

    def config_dict(self) -> Dict[str, Any]:
        return {"options": list(self.options), "delimiter": self.delimiter}


@dataclass(frozen=True)
class ReferenceRule:
    """Uniform selection from an uploaded reference file."""
    kind: ClassVar[StrategyKind] = StrategyKind.REFERENCE
    reference_file_id: Optional[str] = None

    def config_dict(self) -> Dict[str, Any]:
        return {"referenceFileId": self.reference_file_id}


@dataclass(frozen=True)
class LinkedRule:
    """Foreign key: copy a value from a parent table's generated column."""
    kind: ClassVar[StrategyKind] = StrategyKind.LINKED
    linked_table_id: Optional[str] = None
    linked_column_id: Optional[str] = None

    @property
    def is_configured(self) -> bool:
        return bool(self.linked_table_id and self.linked_column_id)

    def config_dict(self) -> Dict[str, Any]:
        return {"linkedTableId": self.linked_table_id, "linkedColumnId": self.linked_column_id}


@dataclass(frozen=True)
class RandomRecordRule:
    """Independent per-row draw from another table's generated column."""
    kind: ClassVar[StrategyKind] = StrategyKind.RANDOM_RECORD
    linked_table_id: Optional[str] = None
    linked_column_id: Optional[str] = None

    @property
    def is_configured(self) -> bool:
        return bool(self.linked_table_id and self.linked_column_id)

    def config_dict(self) -> Dict[str, Any]:
        return {"linkedTableId": self.linked_table_id, "linkedColumnId": self.linked_column_id}


@dataclass(frozen=True)
class AIRule:
    """Creative content produced by the external content service."""
    kind: ClassVar[StrategyKind] = StrategyKind.AI
    prompt: str = "Generate random values"
    dependency_column_ids: Tuple[str, ...] = ()

    def config_dict(self) -> Dict[str, Any]:
        return {"aiPrompt": self.prompt, "dependentColumnIds": list(self.dependency_column_ids)}


@dataclass(frozen=True)
class DateRule:
    """Date computed as an offset from now or from referenced columns."""
    kind: ClassVar[StrategyKind] = StrategyKind.DATE
    mode: DateMode = DateMode.NOW
    operator: DateOperator = DateOperator.ON_AFTER
    ref_table_1: Optional[str] = None
    ref_column_1: Optional[str] = None
    ref_table_2: Optional[str] = None
    ref_column_2: Optional[str] = None
    min_offset: int = 0
    max_offset: int = 0

    def references(self) -> List[Tuple[Optional[str], str]]:
        """(table id, column id) pairs this rule reads."""
        refs = []
        if self.mode in (DateMode.COLUMN, DateMode.BETWEEN) and self.ref_column_1:
            refs.append((self.ref_table_1, self.ref_column_1))
        if self.mode == DateMode.BETWEEN and self.ref_column_2:
            refs.append((self.ref_table_2, self.ref_column_2))
        return refs

    def config_dict(self) -> Dict[str, Any]:
        return {
            "dateLogic": {
                "mode": self.mode.value,
                "operator": self.operator.value,
                "refTable1": self.ref_table_1,
                "refCol1": self.ref_column_1,
                "refTable2": self.ref_table_2,
                "refCol2": self.ref_column_2,
                "minOffset": self.min_offset,
                "maxOffset": self.max_offset,
            }
        }


@dataclass(frozen=True)
class DurationRule:
    """Elapsed time between a start and an end date column."""
    kind: ClassVar[StrategyKind] = StrategyKind.DURATION
    start_table_id: Optional[str] = None
    start_column_id: Optional[str] = None
    end_table_id: Optional[str] = None
    end_column_id: Optional[str] = None
    unit: DurationUnit = DurationUnit.DAYS

    def config_dict(self) -> Dict[str, Any]:
        return {
            "startTableId": self.start_table_id,
            "startColId": self.start_column_id,
            "endTableId": self.end_table_id,
            "endColId": self.end_column_id,
            "unit": self.unit.value,
        }


@dataclass(frozen=True)
class RevisionRule:
    """Draw a label from the column's revision schema."""
    kind: ClassVar[StrategyKind] = StrategyKind.REVISION

    def config_dict(self) -> Dict[str, Any]:
        return {}


GenerationRule = Union[
    CopyRule,
    PatternRule,
    RandomRule,
    ReferenceRule,
    LinkedRule,
    RandomRecordRule,
    AIRule,
    DateRule,
    DurationRule,
    RevisionRule,
]


def _int_or(value: Any, default: Optional[int]) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def rule_from_dict(data: Optional[Dict[str, Any]]) -> GenerationRule:
    """Build a tagged rule from a ``{"type": ..., "config": {...}}`` mapping."""
    data = data or {}
    kind = parse_strategy_kind(_pick(data, "type", "kind", default="copy"))
    config = data.get("config") or {}

    if kind == StrategyKind.COPY:
        return CopyRule()
    if kind == StrategyKind.PATTERN:
        return PatternRule(pattern=config.get("pattern") or "ID-#")
    if kind == StrategyKind.RANDOM:
        return RandomRule(
            options=tuple(str(o) for o in config.get("options") or ()),
            delimiter=config.get("delimiter") or ",",
        )
    if kind == StrategyKind.REFERENCE:
        return ReferenceRule(reference_file_id=_pick(config, "reference_file_id", "referenceFileId"))
    if kind in (StrategyKind.LINKED, StrategyKind.RANDOM_RECORD):
        cls = LinkedRule if kind == StrategyKind.LINKED else RandomRecordRule
        return cls(
            linked_table_id=_pick(config, "linked_table_id", "linkedTableId"),
            linked_column_id=_pick(config, "linked_column_id", "linkedColumnId"),
        )
    if kind == StrategyKind.AI:
        deps = _pick(config, "dependency_column_ids", "dependentColumnIds", default=[])
        # Older projects stored a single dependent column
        single = config.get("dependentColumnId")
        if single and single not in deps:
            deps = list(deps) + [single]
        return AIRule(
            prompt=_pick(config, "prompt", "aiPrompt", default="Generate random values"),
            dependency_column_ids=tuple(deps),
        )
    if kind == StrategyKind.DATE:
        logic = _pick(config, "date_logic", "dateLogic", default=config)
        return date_rule_from_dict(logic)
    if kind == StrategyKind.DURATION:
        return DurationRule(
            start_table_id=_pick(config, "start_table_id", "startTableId"),
            start_column_id=_pick(config, "start_column_id", "startColId"),
            end_table_id=_pick(config, "end_table_id", "endTableId"),
            end_column_id=_pick(config, "end_column_id", "endColId"),
            unit=DurationUnit(config.get("unit") or DurationUnit.DAYS.value),
        )
    return RevisionRule()


def date_rule_from_dict(logic: Dict[str, Any]) -> DateRule:
    return DateRule(
        mode=DateMode(logic.get("mode") or DateMode.NOW.value),
        operator=DateOperator(logic.get("operator") or DateOperator.ON_AFTER.value),
        ref_table_1=_pick(logic, "ref_table_1", "refTable1"),
        ref_column_1=_pick(logic, "ref_column_1", "refCol1"),
        ref_table_2=_pick(logic, "ref_table_2", "refTable2"),
        ref_column_2=_pick(logic, "ref_column_2", "refCol2"),
        min_offset=_int_or(_pick(logic, "min_offset", "minOffset"), 0),
        max_offset=_int_or(_pick(logic, "max_offset", "maxOffset"), 0),
    )


def rule_to_dict(rule: GenerationRule) -> Dict[str, Any]:
    return {"type": rule.kind.value, "config": rule.config_dict()}


# ---------------------------------------------------------------------------
# Schema objects
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Column:
    """A table column with its generation rule."""
    id: str
    name: str
    data_type: DataType = DataType.STRING
    rule: GenerationRule = field(default_factory=CopyRule)
    sample_values: Tuple[str, ...] = ()
    is_multi_value: bool = False
    revision_schema: Optional[str] = None
    description: Optional[str] = None

    @property
    def multi_value(self) -> bool:
        return self.is_multi_value or self.data_type == DataType.MULTI_SELECT

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "name": self.name,
            "type": self.data_type.value,
            "isMultiValue": self.is_multi_value,
            "sampleValues": list(self.sample_values),
            "rule": rule_to_dict(self.rule),
            "revisionSchema": self.revision_schema,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Column:
        """Create from dictionary."""
        data_type = DataType.parse(_pick(data, "data_type", "type", default="String"))
        rule_data = data.get("rule") or {}
        rule = rule_from_dict(rule_data)
        # Date constraints may be stored on a non-date strategy
        config = rule_data.get("config") or {}
        if data_type == DataType.DATE and rule.kind != StrategyKind.DATE and config.get("dateLogic"):
            rule = date_rule_from_dict(config["dateLogic"])
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", data["id"])),
            data_type=data_type,
            rule=rule,
            sample_values=tuple(str(v) for v in _pick(data, "sample_values", "sampleValues", default=[])),
            is_multi_value=bool(_pick(data, "is_multi_value", "isMultiValue", default=False)),
            revision_schema=_pick(data, "revision_schema", "revisionSchema"),
            description=data.get("description"),
        )


@dataclass(frozen=True)
class GenerationSettings:
    """How many rows a table gets (``fixed_count=None`` uses the run default)."""
    mode: GenerationMode = GenerationMode.FIXED
    fixed_count: Optional[int] = None
    min_per_parent: int = 1
    max_per_parent: int = 5
    driving_parent_table_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mode": self.mode.value,
            "fixedCount": self.fixed_count,
            "minPerParent": self.min_per_parent,
            "maxPerParent": self.max_per_parent,
            "drivingParentTableId": self.driving_parent_table_id,
        }

    @classmethod
    def from_dict(
        cls, data: Optional[Dict[str, Any]], default_count: Optional[int] = None
    ) -> GenerationSettings:
        data = data or {}
        return cls(
            mode=GenerationMode(data.get("mode") or GenerationMode.FIXED.value),
            fixed_count=_int_or(_pick(data, "fixed_count", "fixedCount"), default_count),
            min_per_parent=_int_or(_pick(data, "min_per_parent", "minPerParent"), 1),
            max_per_parent=_int_or(_pick(data, "max_per_parent", "maxPerParent"), 5),
            driving_parent_table_id=_pick(data, "driving_parent_table_id", "drivingParentTableId"),
        )


@dataclass(frozen=True)
class Table:
    """A table in the schema snapshot."""
    id: str
    name: str
    columns: Tuple[Column, ...] = ()
    settings: GenerationSettings = field(default_factory=GenerationSettings)
    description: Optional[str] = None

    @property
    def column_names(self) -> List[str]:
        return [c.name for c in self.columns]

    def get_column(self, column_id: str) -> Optional[Column]:
        """Get column by id."""
        for col in self.columns:
            if col.id == column_id:
                return col
        return None

    def find_column_by_name(self, name: str) -> Optional[Column]:
        """Get column by name (case-insensitive)."""
        name_lower = name.lower()
        for col in self.columns:
            if col.name.lower() == name_lower:
                return col
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "columns": [c.to_dict() for c in self.columns],
            "genSettings": self.settings.to_dict(),
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Table:
        # Legacy projects only carried a rowCount
        default_count = _int_or(data.get("rowCount"), None)
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", data["id"])),
            columns=tuple(Column.from_dict(c) for c in data.get("columns", [])),
            settings=GenerationSettings.from_dict(
                _pick(data, "settings", "genSettings"), default_count=default_count
            ),
            description=data.get("description"),
        )


@dataclass(frozen=True)
class Relationship:
    """A foreign key: source (child) column references target (parent) column."""
    id: str
    source_table_id: str
    source_column_id: str
    target_table_id: str
    target_column_id: str
    cardinality: Cardinality = Cardinality.ONE_TO_MANY

    @property
    def is_self_reference(self) -> bool:
        return self.source_table_id == self.target_table_id

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "sourceTableId": self.source_table_id,
            "sourceColumnId": self.source_column_id,
            "targetTableId": self.target_table_id,
            "targetColumnId": self.target_column_id,
            "cardinality": self.cardinality.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Relationship:
        return cls(
            id=str(data["id"]),
            source_table_id=str(_pick(data, "source_table_id", "sourceTableId")),
            source_column_id=str(_pick(data, "source_column_id", "sourceColumnId")),
            target_table_id=str(_pick(data, "target_table_id", "targetTableId")),
            target_column_id=str(_pick(data, "target_column_id", "targetColumnId")),
            cardinality=Cardinality(data.get("cardinality") or "1:N"),
        )


@dataclass(frozen=True)
class ReferenceFile:
    """A pool of seed values uploaded by the user."""
    id: str
    name: str
    values: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "values": list(self.values)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ReferenceFile:
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", data["id"])),
            values=tuple(str(v) for v in data.get("values", [])),
        )


TYPE_DRIVEN = (DataType.DATE, DataType.DURATION, DataType.REVISION)


def is_ai_column(column: Column) -> bool:
    """AI rules apply unless the column type dictates its own values."""
    return isinstance(column.rule, AIRule) and column.data_type not in TYPE_DRIVEN


def _has_configured_link(column: Column) -> bool:
    rule = column.rule
    return isinstance(rule, (LinkedRule, RandomRecordRule)) and rule.is_configured


def derive_link_rules(
    tables: List[Table],
    relationships: List[Relationship],
) -> List[Table]:
    """
    Rewrite child FK columns of 1:1 and 1:N relationships to Linked rules.

    N:M relationships are left untouched; their FK columns must be
    configured explicitly. Columns that already carry a configured Linked
    or Random Record rule keep it.
    """
    links: Dict[Tuple[str, str], Relationship] = {}
    for rel in relationships:
        if rel.cardinality == Cardinality.MANY_TO_MANY:
            continue
        links[(rel.source_table_id, rel.source_column_id)] = rel

    result = []
    for table in tables:
        columns = []
        changed = False
        for col in table.columns:
            rel = links.get((table.id, col.id))
            if rel is not None and not _has_configured_link(col):
                col = replace(col, rule=LinkedRule(rel.target_table_id, rel.target_column_id))
                changed = True
            columns.append(col)
        result.append(replace(table, columns=tuple(columns)) if changed else table)
    return result


@dataclass(frozen=True)
class ProjectSchema:
    """Immutable snapshot of everything a generation run needs."""
    tables: Tuple[Table, ...] = ()
    relationships: Tuple[Relationship, ...] = ()
    reference_files: Tuple[ReferenceFile, ...] = ()

    def get_table(self, table_id: Optional[str]) -> Optional[Table]:
        """Get table by id."""
        for table in self.tables:
            if table.id == table_id:
                return table
        return None

    def get_reference_file(self, file_id: Optional[str]) -> Optional[ReferenceFile]:
        for ref in self.reference_files:
            if ref.id == file_id:
                return ref
        return None

    def with_derived_links(self) -> ProjectSchema:
        """Return a copy whose 1:1 and 1:N child columns carry Linked rules."""
        tables = derive_link_rules(list(self.tables), list(self.relationships))
        return replace(self, tables=tuple(tables))

    def get_parent_relationships(self, table_id: str) -> List[Relationship]:
        """Relationships where the table is the child (FK) side."""
        return [r for r in self.relationships if r.source_table_id == table_id]

    def find_relationship(self, child_table_id: str, parent_table_id: str) -> Optional[Relationship]:
        """Relationship linking a child table to a given parent table."""
        for rel in self.relationships:
            if rel.source_table_id == child_table_id and rel.target_table_id == parent_table_id:
                return rel
        return None

    def connected_table_ids(self, table_id: str) -> List[str]:
        """Tables sharing a relationship with the given table."""
        connected = []
        for rel in self.relationships:
            if rel.source_table_id == table_id and rel.target_table_id not in connected:
                connected.append(rel.target_table_id)
            if rel.target_table_id == table_id and rel.source_table_id not in connected:
                connected.append(rel.source_table_id)
        return connected

    def _kahn_order(self) -> Tuple[List[str], List[str]]:
        """Return (ordered table ids, ids left over by a cycle)."""
        ids = [t.id for t in self.tables]
        in_degree: Dict[str, int] = {t: 0 for t in ids}
        adj: Dict[str, List[str]] = {t: [] for t in ids}

        for rel in self.relationships:
            parent = rel.target_table_id
            child = rel.source_table_id
            # Self references would otherwise read as cycles
            if parent == child or parent not in adj or child not in adj:
                continue
            adj[parent].append(child)
            in_degree[child] += 1

        queue = deque(t for t in ids if in_degree[t] == 0)
        order: List[str] = []

        while queue:
            node = queue.popleft()
            order.append(node)
            for neighbor in adj[node]:
                in_degree[neighbor] -= 1
                if in_degree[neighbor] == 0:
                    queue.append(neighbor)

        placed = set(order)
        return order, [t for t in ids if t not in placed]

    def generation_order(self) -> List[Table]:
        """
        Order tables so every relationship target precedes its sources.

        Tables left over by a cycle are appended in input order; referential
        integrity is not guaranteed for them.
        """
        order, remaining = self._kahn_order()
        if remaining:
            logger.warning(
                f"Cyclic relationships between {len(remaining)} tables; "
                "referential integrity is not guaranteed for them"
            )
            order.extend(remaining)

        by_id = {t.id: t for t in self.tables}
        return [by_id[t] for t in order]

    def cyclic_table_ids(self) -> List[str]:
        """Tables the dependency orderer cannot place."""
        return self._kahn_order()[1]

    def validate(self) -> List[str]:
        """Return configuration warnings; never raises."""
        warnings: List[str] = []

        for rel in self.relationships:
            source = self.get_table(rel.source_table_id)
            target = self.get_table(rel.target_table_id)
            if source is None or target is None:
                warnings.append(f"Relationship {rel.id} references an unknown table")
                continue
            source_col = source.get_column(rel.source_column_id)
            if target.get_column(rel.target_column_id) is None or source_col is None:
                warnings.append(f"Relationship {rel.id} references an unknown column")
                continue
            if rel.cardinality == Cardinality.MANY_TO_MANY and source_col.rule.kind not in (
                StrategyKind.LINKED, StrategyKind.RANDOM_RECORD
            ):
                warnings.append(
                    f"N:M relationship {rel.id} requires an explicit Linked or Random Record "
                    f"rule on {source.name}.{source_col.name}"
                )

        for table in self.tables:
            settings = table.settings
            if settings.mode == GenerationMode.PER_PARENT:
                parent_id = settings.driving_parent_table_id
                if not parent_id:
                    warnings.append(f"Table {table.name} is per_parent but has no driving parent")
                elif self.find_relationship(table.id, parent_id) is None:
                    warnings.append(
                        f"Table {table.name} has no relationship to its driving parent {parent_id}"
                    )

            for col in table.columns:
                rule = col.rule
                if isinstance(rule, ReferenceRule):
                    ref = self.get_reference_file(rule.reference_file_id)
                    if ref is None or not ref.values:
                        warnings.append(f"{table.name}.{col.name} uses a missing or empty reference file")
                elif isinstance(rule, (LinkedRule, RandomRecordRule)):
                    if not rule.is_configured:
                        warnings.append(f"{table.name}.{col.name} has an unconfigured link")
                        continue
                    linked = self.get_table(rule.linked_table_id)
                    if linked is None or linked.get_column(rule.linked_column_id) is None:
                        warnings.append(f"{table.name}.{col.name} links to an unknown column")

        cyclic = self.cyclic_table_ids()
        if cyclic:
            names = [self.get_table(t).name for t in cyclic]
            warnings.append(f"Cyclic relationships between tables: {', '.join(names)}")

        return warnings

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tables": [t.to_dict() for t in self.tables],
            "relationships": [r.to_dict() for r in self.relationships],
            "referenceFiles": [f.to_dict() for f in self.reference_files],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], derive_links: bool = True) -> ProjectSchema:
        """Create from a project state mapping."""
        # Accept both a bare state and a wrapped project
        state = data.get("state", data)
        tables = [Table.from_dict(t) for t in state.get("tables", [])]
        relationships = [Relationship.from_dict(r) for r in state.get("relationships", [])]
        reference_files = [
            ReferenceFile.from_dict(f)
            for f in _pick(state, "reference_files", "referenceFiles", default=[])
        ]
        if derive_links:
            tables = derive_link_rules(tables, relationships)
        return cls(
            tables=tuple(tables),
            relationships=tuple(relationships),
            reference_files=tuple(reference_files),
        )


@dataclass
class GenerationConfig:
    """Configuration for a generation run."""
    seed: Optional[int] = None
    now: Optional[datetime] = None
    ai_provider: str = "gemini"
    ai_model: str = "gemini-3-flash-preview"
    api_key: Optional[str] = None
    max_concurrent_ai_requests: int = 4
    ai_example_count: int = 5
    default_fixed_count: int = 100
    archive_name: str = "synthetic_data.zip"

    def __post_init__(self):
        if self.now is None:
            self.now = datetime.now(timezone.utc)
        elif self.now.tzinfo is None:
            self.now = self.now.replace(tzinfo=timezone.utc)
        if self.api_key is None:
            self.api_key = os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")
        if self.max_concurrent_ai_requests < 1:
            self.max_concurrent_ai_requests = 1
