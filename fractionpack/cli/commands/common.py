"""Shared plumbing for commands that run a dependency analysis."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from fractionpack.config import PackConfig, config
from fractionpack.core.declarations import DeclarationError, load_declared_dependencies
from fractionpack.core.dependency_manager import DependencyManager
from fractionpack.core.removal import RemovalMode
from fractionpack.core.resolver import LocalRepositoryResolver, ResolutionError
from fractionpack.models.diagnostics import Diagnostic

console = Console()


def run_analysis(
    declaration: Path,
    repository: Path | None,
    autodetect: bool,
    strategy: str | None,
) -> DependencyManager:
    """Load declarations and analyze them, exiting with code 1 on failure."""
    settings: PackConfig = config
    if repository is not None:
        settings = config.model_copy(update={"local_repository": repository})

    if strategy:
        try:
            mode = RemovalMode(strategy.lower())
        except ValueError:
            console.print(
                f"[bold red]Unknown strategy:[/bold red] {strategy} "
                f"(expected {', '.join(m.value for m in RemovalMode)})"
            )
            raise typer.Exit(code=1)
    elif settings.remove_all_platform_libs:
        mode = RemovalMode.AGGRESSIVE
    else:
        mode = RemovalMode.PRECISE

    try:
        declared = load_declared_dependencies(declaration)
    except DeclarationError as exc:
        console.print(f"[bold red]Invalid declaration:[/bold red] {exc}")
        raise typer.Exit(code=1)

    resolver = LocalRepositoryResolver(
        settings.local_repository, platform_group_id=settings.platform_group_id
    )
    manager = DependencyManager(resolver, mode, config=settings)
    try:
        manager.analyze_dependencies(autodetect, declared)
    except ResolutionError as exc:
        console.print(f"[bold red]Resolution failed:[/bold red] {exc}")
        raise typer.Exit(code=1)
    return manager


def print_diagnostics(diagnostics: list[Diagnostic]) -> None:
    if not diagnostics:
        return
    table = Table(title="Diagnostics")
    table.add_column("Severity")
    table.add_column("Code", style="yellow")
    table.add_column("Subject")
    table.add_column("Message", style="dim")
    for diagnostic in diagnostics:
        table.add_row(
            diagnostic.severity.value,
            diagnostic.code.value,
            diagnostic.subject,
            diagnostic.message,
        )
    console.print(table)
