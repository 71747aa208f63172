"""``fractionpack check DECLARATION ARCHIVE``: find removable archive members.

Runs the analysis, then hashes every member of ARCHIVE and reports the
ones byte-identical to a removable dependency, whatever their name.
"""

from __future__ import annotations

import zipfile
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import typer
from rich.table import Table

from fractionpack.cli.commands.common import console, print_diagnostics, run_analysis
from fractionpack.core.archive import iter_entries


def check_cmd(
    declaration: Path = typer.Argument(
        ...,
        help="YAML file declaring the application's dependencies.",
    ),
    archive: Path = typer.Argument(
        ...,
        help="Assembled archive whose members should be checked.",
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
    workers: int = typer.Option(
        4,
        "--workers",
        "-w",
        min=1,
        help="Entries hashed in parallel.",
    ),
) -> None:
    """Report the members of an archive that the platform already provides."""
    try:
        entries = iter_entries(archive)
    except (OSError, zipfile.BadZipFile) as exc:
        console.print(f"[bold red]Cannot open archive:[/bold red] {exc}")
        raise typer.Exit(code=1)

    manager = run_analysis(declaration, repository, autodetect, strategy)
    with ThreadPoolExecutor(max_workers=workers) as pool:
        verdicts = list(pool.map(manager.is_removable, entries))

    removable = [entry.name for entry, verdict in zip(entries, verdicts) if verdict]
    if not removable:
        console.print("[green]No removable members.[/green]")
    else:
        table = Table(title=f"Removable members of {archive.name}")
        table.add_column("Entry", style="yellow")
        for name in removable:
            table.add_row(name)
        console.print(table)
    console.print(f"{len(removable)} of {len(entries)} members removable")
    print_diagnostics(manager.diagnostics)
