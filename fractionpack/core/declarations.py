"""Loading declared dependencies from a YAML declaration file.

Format::

    presolved: false
    runner: io.thorntail:thorntail-runner:jar:2.7.0.Final
    dependencies:
      - io.thorntail:jaxrs:2.7.0.Final
      - gav: com.example:service-lib:jar:1.4.0
        scope: compile
        transitive:
          - org.slf4j:slf4j-api:jar:1.7.36

Coordinates use the short declaration forms accepted by
``ArtifactSpec.parse``; ``g:a`` leaves the version for the resolver.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from fractionpack.models.artifacts import DEFAULT_SCOPE, ArtifactSpec
from fractionpack.models.declared import DeclaredDependencies


class DeclarationError(ValueError):
    """Raised when a declaration file is missing or malformed."""


def _entry(raw: Any) -> tuple[ArtifactSpec, list[ArtifactSpec]]:
    if isinstance(raw, str):
        return ArtifactSpec.parse(raw), []
    if not isinstance(raw, dict) or "gav" not in raw:
        raise DeclarationError(f"Dependency entry needs a 'gav': {raw!r}")
    spec = ArtifactSpec.parse(str(raw["gav"]), scope=raw.get("scope") or DEFAULT_SCOPE)
    transitive = [ArtifactSpec.parse(str(t)) for t in raw.get("transitive") or []]
    return spec, transitive


def parse_declarations(data: dict[str, Any]) -> DeclaredDependencies:
    """Build ``DeclaredDependencies`` from an already-loaded mapping."""
    declared = DeclaredDependencies()
    try:
        for raw in data.get("dependencies") or []:
            spec, transitive = _entry(raw)
            declared.add(spec, transitive)
        if data.get("runner"):
            declared.mark_runner(ArtifactSpec.parse(str(data["runner"])))
    except DeclarationError:
        raise
    except ValueError as exc:
        raise DeclarationError(str(exc)) from exc
    declared.mark_presolved(bool(data.get("presolved", False)))
    return declared


def load_declared_dependencies(path: str | Path) -> DeclaredDependencies:
    """Read a declaration file. Raises ``DeclarationError`` on bad input."""
    p = Path(path)
    if not p.is_file():
        raise DeclarationError(f"Declaration file not found: {p}")
    try:
        with open(p, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise DeclarationError(f"Invalid YAML in {p}: {exc}") from exc
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise DeclarationError(f"Declaration file {p} must contain a mapping")
    return parse_declarations(data)
