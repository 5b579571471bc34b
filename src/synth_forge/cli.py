"""
Command-line interface for synth_forge.

Provides generate, order, validate, info and manifest commands for
project-driven synthetic data generation.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from synth_forge import __version__
from synth_forge.models import GenerationConfig, GenerationMode, SynthForgeError

console = Console()


def setup_logging(verbose: bool = False) -> None:
    """Configure logging with Rich handler."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _load(project: Path):
    from synth_forge.project_io import load_project

    try:
        return load_project(project)
    except SynthForgeError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


project_option = click.option(
    "--project",
    type=click.Path(exists=True, path_type=Path),
    required=True,
    help="Project file (YAML or JSON) with tables, relationships and reference files",
)


@click.group()
@click.version_option(version=__version__, prog_name="synth_forge")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
def cli(verbose: bool) -> None:
    """
    Synth Forge - Synthetic Relational Dataset Generator

    Generate referentially consistent synthetic tables from a project schema.
    """
    setup_logging(verbose)


@cli.command()
@project_option
@click.option(
    "--output",
    type=click.Path(path_type=Path),
    default=None,
    help="Zip archive to write (default: ./synthetic_data.zip)",
)
@click.option(
    "--output_dir",
    type=click.Path(path_type=Path),
    default=None,
    help="Write CSV files and a manifest into this directory instead of a zip",
)
@click.option(
    "--seed",
    type=int,
    default=None,
    help="Random seed for reproducibility",
)
@click.option(
    "--ai_provider",
    type=click.Choice(["gemini", "faker"]),
    default="gemini",
    help="Content service for AI columns",
)
@click.option(
    "--ai_model",
    type=str,
    default="gemini-3-flash-preview",
    help="Gemini model identifier",
)
@click.option(
    "--max_concurrent_ai",
    type=int,
    default=4,
    help="Maximum concurrent AI requests per table",
)
@click.option(
    "--report_dir",
    type=click.Path(path_type=Path),
    default=None,
    help="Directory for the quality report",
)
def generate(
    project: Path,
    output: Optional[Path],
    output_dir: Optional[Path],
    seed: Optional[int],
    ai_provider: str,
    ai_model: str,
    max_concurrent_ai: int,
    report_dir: Optional[Path],
) -> None:
    """
    Generate synthetic data for every table of a project.

    Examples:

        # Generate a zip archive
        synth_forge generate --project project.yaml --output data.zip

        # Reproducible run into a directory, offline AI content
        synth_forge generate --project project.yaml --output_dir out \\
            --seed 42 --ai_provider faker --report_dir out
    """
    from synth_forge.generator import Generator
    from synth_forge.output import DirectoryArchiveWriter
    from synth_forge.utils import QualityReporter

    console.print("[bold blue]Synth Forge Generation[/bold blue]")
    console.print(f"Project: {project}")

    schema = _load(project)
    config = GenerationConfig(
        seed=seed,
        ai_provider=ai_provider,
        ai_model=ai_model,
        max_concurrent_ai_requests=max_concurrent_ai,
    )

    archive_writer = DirectoryArchiveWriter(output_dir, seed=seed) if output_dir else None

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task("Starting...", total=None)

        generator = Generator(
            schema,
            config=config,
            archive_writer=archive_writer,
            on_progress=lambda message: progress.update(task, description=message),
        )

        try:
            archive = asyncio.run(generator.run())
        except SynthForgeError as e:
            console.print(f"[red]Error: {e}[/red]")
            sys.exit(1)

        progress.update(task, completed=True)

    if archive.location is not None:
        console.print(f"\n[green]Files written to: {archive.location}[/green]")
    else:
        saved = archive.save(output or Path(config.archive_name))
        console.print(f"\n[green]Archive saved to: {saved}[/green]")

    reporter = QualityReporter(schema, generator.store)
    report = reporter.generate_report()
    if report_dir:
        reporter.save(report_dir)

    summary = Table(title="Generation Summary")
    summary.add_column("Table", style="cyan")
    summary.add_column("Rows", style="green")
    summary.add_column("Columns", style="green")

    for table_name, table_report in report["tables"].items():
        summary.add_row(
            table_name,
            f"{table_report['row_count']:,}",
            str(table_report["column_count"]),
        )

    console.print(summary)
    console.print(
        f"Referential integrity score: {report['summary']['referential_integrity_score']:.2%}"
    )


@cli.command()
@project_option
def order(project: Path) -> None:
    """Show the order in which tables are generated."""
    schema = _load(project)
    cyclic = set(schema.cyclic_table_ids())

    table = Table(title="Generation Order")
    table.add_column("#", style="cyan")
    table.add_column("Table", style="green")
    table.add_column("Note", style="yellow")

    for position, t in enumerate(schema.generation_order(), start=1):
        note = "cyclic, integrity not guaranteed" if t.id in cyclic else ""
        table.add_row(str(position), t.name, note)

    console.print(table)


@cli.command()
@project_option
def validate(project: Path) -> None:
    """Check a project for configuration gaps."""
    schema = _load(project)
    warnings = schema.validate()

    if not warnings:
        console.print("[green]No configuration issues found[/green]")
        return

    for warning in warnings:
        console.print(f"[yellow]- {warning}[/yellow]")
    console.print(f"\n[red]{len(warnings)} configuration issue(s) found[/red]")
    sys.exit(1)


@cli.command()
@project_option
def info(project: Path) -> None:
    """Display tables, row settings and relationships of a project."""
    schema = _load(project)

    tables = Table(title="Tables")
    tables.add_column("Table", style="cyan")
    tables.add_column("Columns", style="green")
    tables.add_column("Rows", style="green")

    for t in schema.tables:
        settings = t.settings
        if settings.mode == GenerationMode.PER_PARENT:
            parent = schema.get_table(settings.driving_parent_table_id)
            parent_name = parent.name if parent else "?"
            rows = f"{settings.min_per_parent}-{settings.max_per_parent} per {parent_name}"
        else:
            rows = "default" if settings.fixed_count is None else str(settings.fixed_count)
        tables.add_row(t.name, str(len(t.columns)), rows)

    console.print(tables)

    if schema.relationships:
        rels = Table(title="Relationships")
        rels.add_column("Child", style="cyan")
        rels.add_column("Parent", style="green")
        rels.add_column("Cardinality", style="yellow")

        for rel in schema.relationships:
            child = schema.get_table(rel.source_table_id)
            parent = schema.get_table(rel.target_table_id)
            child_col = child.get_column(rel.source_column_id) if child else None
            parent_col = parent.get_column(rel.target_column_id) if parent else None
            rels.add_row(
                f"{child.name if child else rel.source_table_id}.{child_col.name if child_col else '?'}",
                f"{parent.name if parent else rel.target_table_id}.{parent_col.name if parent_col else '?'}",
                rel.cardinality.value,
            )

        console.print(rels)

    if schema.reference_files:
        console.print(f"Reference files: {len(schema.reference_files)}")


@cli.command()
@project_option
@click.option(
    "--output",
    type=click.Path(path_type=Path),
    required=True,
    help="Output JSON file",
)
def manifest(project: Path, output: Path) -> None:
    """Export a JSON manifest describing the project."""
    from synth_forge.output import write_schema_manifest

    schema = _load(project)
    path = write_schema_manifest(schema, output)
    console.print(f"[green]Manifest saved to: {path}[/green]")


if __name__ == "__main__":
    cli()
