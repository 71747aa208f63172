"""``fractionpack analyze DECLARATION``: resolve and classify dependencies.

Prints the resolved closure with each artifact's removability, the
fractions found, and any diagnostics. Optionally writes the application
manifest YAML.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.panel import Panel
from rich.table import Table

from fractionpack.cli.commands.common import console, print_diagnostics, run_analysis


def analyze_cmd(
    declaration: Path = typer.Argument(
        ...,
        help="YAML file declaring the application's dependencies.",
    ),
    repository: Path = typer.Option(
        None,
        "--repository",
        "-r",
        help="Maven-layout local repository (defaults to FRACTIONPACK_LOCAL_REPOSITORY).",
    ),
    autodetect: bool = typer.Option(
        False,
        "--autodetect/--no-autodetect",
        help="Expand incomplete declarations transitively even when presolved.",
    ),
    strategy: str = typer.Option(
        None,
        "--strategy",
        "-s",
        help="Removal strategy, aggressive or precise (defaults to FRACTIONPACK_REMOVE_ALL_PLATFORM_LIBS).",
    ),
    manifest_out: Path = typer.Option(
        None,
        "--manifest-out",
        "-o",
        help="Write the application manifest YAML here.",
    ),
) -> None:
    """Resolve a declaration and show which dependencies the platform provides."""
    manager = run_analysis(declaration, repository, autodetect, strategy)
    removable = manager.removable_dependencies

    table = Table(title="Resolved dependencies")
    table.add_column("Coordinate", style="cyan")
    table.add_column("Scope")
    table.add_column("Removable", justify="center")
    for spec in sorted(manager.dependencies, key=lambda s: s.maven_gav()):
        mark = "[yellow]Yes[/yellow]" if spec in removable else "[green]No[/green]"
        table.add_row(spec.maven_gav(), spec.scope, mark)
    console.print(table)

    console.print(
        Panel(
            "\n".join([
                f"Strategy:     {manager.strategy.mode.value}",
                f"Dependencies: {len(manager.dependencies)}",
                f"Removable:    {len(removable)}",
                f"Fractions:    {len(manager.fraction_manifests)}",
                f"Modules deps: {len(manager.module_dependencies)}",
            ]),
            title="Analysis",
            border_style="blue",
        )
    )
    print_diagnostics(manager.diagnostics)

    if manifest_out is not None:
        manifest_out.parent.mkdir(parents=True, exist_ok=True)
        manifest_out.write_text(manager.application_manifest.to_yaml(), encoding="utf-8")
        console.print(f"Manifest written to [bold]{manifest_out}[/bold]")
