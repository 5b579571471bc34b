"""
Quality assessment and reporting for generated data.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Tuple

import pandas as pd

from synth_forge.generator.store import GeneratedStore
from synth_forge.models import SENTINELS, ProjectSchema, Table

logger = logging.getLogger(__name__)


class QualityReporter:
    """
    Generates quality reports for a finished generation run.

    Reports include:
    - Row count consistency across the columns of each table
    - Distinct and sentinel counts per column
    - FK referential integrity per relationship
    """

    def __init__(self, schema: ProjectSchema, store: GeneratedStore):
        """
        Initialize quality reporter.

        Args:
            schema: Project schema the data was generated from
            store: Store holding the generated values
        """
        self.schema = schema
        self.store = store

        self.report: Dict[str, Any] = {
            "generated_at": datetime.now().isoformat(),
            "summary": {},
            "tables": {},
            "referential_integrity": {},
        }

    def generate_report(self) -> Dict[str, Any]:
        """
        Generate comprehensive quality report.

        Returns:
            Report dictionary
        """
        logger.info("Generating quality report...")

        for table in self.schema.tables:
            if self.store.has_table(table.id):
                self.report["tables"][table.name] = self._analyze_table(table)

        self.report["referential_integrity"] = self._check_referential_integrity()
        self.report["summary"] = self._generate_summary()

        return self.report

    def _analyze_table(self, table: Table) -> Dict[str, Any]:
        """Analyze a single table's quality."""
        lengths = {len(self.store.get_column(table.id, c.id) or ()) for c in table.columns}

        report: Dict[str, Any] = {
            "row_count": self.store.row_count(table.id),
            "column_count": len(table.columns),
            "row_counts_consistent": len(lengths) <= 1,
            "columns": {},
        }

        for col in table.columns:
            series = pd.Series(self.store.get_column(table.id, col.id) or (), dtype=object)
            report["columns"][col.name] = self._analyze_column(series, col.rule.kind.value)

        return report

    def _analyze_column(self, series: pd.Series, strategy: str) -> Dict[str, Any]:
        """Analyze a single column's quality."""
        sentinel_counts = series[series.isin(SENTINELS)].value_counts()
        return {
            "strategy": strategy,
            "distinct_count": int(series.nunique()),
            "is_unique": bool(series.nunique() == len(series)),
            "empty_count": int((series == "").sum()),
            "sentinels": {str(k): int(v) for k, v in sentinel_counts.items()},
        }

    def _check_referential_integrity(self) -> Dict[str, Any]:
        """Check FK referential integrity across all relationships."""
        ri_report: Dict[str, Any] = {
            "total_relationships": len(self.schema.relationships),
            "checked_relationships": 0,
            "valid_relationships": 0,
            "violations": [],
        }

        for rel in self.schema.relationships:
            child = self.schema.get_table(rel.source_table_id)
            parent = self.schema.get_table(rel.target_table_id)
            child_values = self.store.get_column(rel.source_table_id, rel.source_column_id)
            parent_values = self.store.get_column(rel.target_table_id, rel.target_column_id)

            if child is None or parent is None or child_values is None or parent_values is None:
                continue

            ri_report["checked_relationships"] += 1
            orphans = set(child_values) - set(parent_values)

            if orphans:
                child_col = child.get_column(rel.source_column_id)
                parent_col = parent.get_column(rel.target_column_id)
                ri_report["violations"].append({
                    "relationship": rel.id,
                    "parent_table": parent.name,
                    "parent_column": parent_col.name,
                    "child_table": child.name,
                    "child_column": child_col.name,
                    "orphan_count": len(orphans),
                    "sample_orphans": sorted(orphans)[:5],
                })
            else:
                ri_report["valid_relationships"] += 1

        ri_report["integrity_score"] = (
            ri_report["valid_relationships"] / max(ri_report["checked_relationships"], 1)
        )

        return ri_report

    def _generate_summary(self) -> Dict[str, Any]:
        """Generate overall quality summary."""
        tables = self.report["tables"]
        summary: Dict[str, Any] = {
            "total_tables": len(tables),
            "total_rows": sum(t["row_count"] for t in tables.values()),
            "referential_integrity_score": self.report["referential_integrity"].get("integrity_score", 1.0),
            "tables_with_issues": [],
        }

        for table_name, table_report in tables.items():
            issues = []

            if not table_report["row_counts_consistent"]:
                issues.append("Columns have different row counts")

            for col_name, col_report in table_report["columns"].items():
                for sentinel, count in col_report["sentinels"].items():
                    issues.append(f"{count} {sentinel} values in {col_name}")

            if issues:
                summary["tables_with_issues"].append({
                    "table": table_name,
                    "issues": issues,
                })

        return summary

    def save(self, output_dir: Path) -> Tuple[Path, Path]:
        """
        Save quality report to files.

        Args:
            output_dir: Output directory

        Returns:
            Tuple of (json_path, markdown_path)
        """
        if not self.report["summary"]:
            self.generate_report()

        report_dir = Path(output_dir) / "report"
        report_dir.mkdir(parents=True, exist_ok=True)

        json_path = report_dir / "quality.json"
        with open(json_path, "w") as f:
            json.dump(self.report, f, indent=2, default=str)

        md_path = report_dir / "quality.md"
        with open(md_path, "w") as f:
            f.write(self._generate_markdown())

        logger.info(f"Quality report saved to {report_dir}")
        return json_path, md_path

    def _generate_markdown(self) -> str:
        """Generate Markdown version of quality report."""
        summary = self.report["summary"]
        lines = [
            "# Data Quality Report",
            "",
            f"Generated: {self.report['generated_at']}",
            "",
            "## Summary",
            "",
            f"- **Total Tables**: {summary['total_tables']}",
            f"- **Total Rows**: {summary['total_rows']:,}",
            f"- **Referential Integrity Score**: {summary['referential_integrity_score']:.2%}",
            "",
        ]

        ri = self.report["referential_integrity"]
        lines.extend([
            "## Referential Integrity",
            "",
            f"- Valid Relationships: {ri['valid_relationships']}/{ri['checked_relationships']}",
        ])

        if ri.get("violations"):
            lines.append("")
            lines.append("### Violations")
            lines.append("")
            for v in ri["violations"]:
                lines.append(
                    f"- **{v['relationship']}**: {v['orphan_count']} orphan values "
                    f"in {v['child_table']}.{v['child_column']}"
                )

        lines.append("")
        lines.append("## Table Details")
        lines.append("")

        for table_name, table_report in self.report["tables"].items():
            lines.append(f"### {table_name}")
            lines.append("")
            lines.append(f"- Rows: {table_report['row_count']:,}")
            lines.append(f"- Columns: {table_report['column_count']}")
            lines.append("")
            lines.append("| Column | Strategy | Distinct | Sentinels |")
            lines.append("|--------|----------|----------|-----------|")

            for col_name, col_report in table_report["columns"].items():
                sentinels = sum(col_report["sentinels"].values())
                lines.append(
                    f"| {col_name} | {col_report['strategy']} | "
                    f"{col_report['distinct_count']:,} | {sentinels:,} |"
                )

            lines.append("")

        return "\n".join(lines)
