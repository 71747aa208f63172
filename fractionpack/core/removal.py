"""Removable-set strategies.

Two interchangeable strategies decide which resolved artifacts duplicate
what the platform already supplies:

- ``AggressiveRemoval`` removes every fraction artifact and everything any
  artifact or fraction manifest declares as a dependency, minus a
  never-remove whitelist.
- ``PreciseRemoval`` removes every resolved jar that an application-only
  resolution of the direct dependencies, fractions and the runner excluded,
  would not pull in.
  Composite packagings (war, ear, rar ...) are never candidates.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from enum import Enum
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict

from fractionpack.core.resolver import ArtifactResolver
from fractionpack.models.artifacts import ArtifactSpec
from fractionpack.models.declared import DeclaredDependencies
from fractionpack.models.diagnostics import Diagnostic, DiagnosticCode, Severity
from fractionpack.models.manifest import FractionManifest

logger = logging.getLogger(__name__)

JAR = "jar"


class RemovalMode(str, Enum):
    AGGRESSIVE = "aggressive"
    PRECISE = "precise"


class RemovalOutcome(BaseModel):
    """The removable set plus what was noticed while computing it."""

    model_config = ConfigDict(frozen=True)

    removable: frozenset[ArtifactSpec]
    diagnostics: list[Diagnostic] = []


class RemovalAnalysis:
    """Everything a strategy may look at, gathered by the dependency manager.

    Embedded dependency lists are only read on demand, since the precise
    strategy never needs them and reading them opens every archive.
    """

    def __init__(
        self,
        *,
        dependencies: Iterable[ArtifactSpec],
        fraction_artifacts: Iterable[ArtifactSpec],
        fraction_manifests: Iterable[FractionManifest],
        declared: DeclaredDependencies,
        seed: Iterable[ArtifactSpec] = (),
        embedded_dependencies_reader: Callable[[], list[str]] | None = None,
    ) -> None:
        self.dependencies = list(dependencies)
        self.fraction_artifacts = list(fraction_artifacts)
        self.fraction_manifests = list(fraction_manifests)
        self.declared = declared
        self.seed = list(seed)
        self._reader = embedded_dependencies_reader
        self._embedded: list[str] | None = None

    def embedded_maven_dependencies(self) -> list[str]:
        """Coordinate lines from every artifact's embedded dependency list."""
        if self._embedded is None:
            self._embedded = self._reader() if self._reader else []
        return self._embedded


@runtime_checkable
class RemovalStrategy(Protocol):
    mode: RemovalMode

    def compute_removable(self, analysis: RemovalAnalysis) -> RemovalOutcome:
        ...


class AggressiveRemoval:
    """Remove everything fractions touch, except whitelisted coordinates.

    Parameters
    ----------
    whitelist:
        ``g:a:v[:classifier]`` strings (``ArtifactSpec.msc_gav``) that must
        never be removed.
    """

    mode = RemovalMode.AGGRESSIVE

    def __init__(self, whitelist: Iterable[str] = ()) -> None:
        self.whitelist = frozenset(whitelist)

    def compute_removable(self, analysis: RemovalAnalysis) -> RemovalOutcome:
        diagnostics: list[Diagnostic] = []
        lines = list(analysis.embedded_maven_dependencies())
        for manifest in analysis.fraction_manifests:
            lines.extend(manifest.maven_dependencies)

        declared: dict[ArtifactSpec, None] = {}
        for line in dict.fromkeys(lines):
            try:
                declared.setdefault(ArtifactSpec.from_maven_dependency_description(line), None)
            except ValueError as exc:
                logger.warning("Ignoring dependency line %r: %s", line, exc)
                diagnostics.append(
                    Diagnostic(code=DiagnosticCode.MALFORMED_COORDINATE, message=str(exc), subject=line)
                )
        diagnostics.extend(self._type_conflicts(declared))

        removable = set(analysis.seed)
        removable.update(declared)
        removable.update(analysis.fraction_artifacts)
        kept = {spec for spec in removable if spec.msc_gav() in self.whitelist}
        if kept:
            logger.info("Keeping %d whitelisted dependencies", len(kept))
        return RemovalOutcome(removable=frozenset(removable - kept), diagnostics=diagnostics)

    @staticmethod
    def _type_conflicts(specs: Iterable[ArtifactSpec]) -> list[Diagnostic]:
        """Flag coordinates that different sources declare with different packagings.

        Both forms stay in the removable set, so the disagreement is only
        reported at ``Severity.INFO``.
        """
        packagings: dict[str, set[str]] = {}
        for spec in specs:
            gav = f"{spec.group_id}:{spec.artifact_id}:{spec.version}"
            packagings.setdefault(gav, set()).add(spec.packaging)
        conflicts = []
        for gav, types in packagings.items():
            if len(types) > 1:
                logger.info("%s is declared with packagings %s", gav, sorted(types))
                conflicts.append(
                    Diagnostic(
                        code=DiagnosticCode.COORDINATE_TYPE_CONFLICT,
                        message=f"Declared with packagings {', '.join(sorted(types))}",
                        subject=gav,
                        severity=Severity.INFO,
                    )
                )
        return conflicts


class PreciseRemoval:
    """Remove resolved jars the application would not need without the platform.

    Parameters
    ----------
    resolver:
        Used for the application-only re-resolution when declarations are
        not presolved.
    platform_group_id:
        Presolved direct dependencies in this group are treated as platform
        owned and do not protect their closure.
    """

    mode = RemovalMode.PRECISE

    def __init__(self, resolver: ArtifactResolver, platform_group_id: str = "io.thorntail") -> None:
        self.resolver = resolver
        self.platform_group_id = platform_group_id

    @staticmethod
    def _is_bootstrap(spec: ArtifactSpec, bootstrap: set[ArtifactSpec]) -> bool:
        if spec in bootstrap:
            return True
        if spec.is_complete():
            return False
        # An open version matches whichever version was resolved for it
        return any(
            (f.group_id, f.artifact_id, f.packaging, f.classifier)
            == (spec.group_id, spec.artifact_id, spec.packaging, spec.classifier)
            for f in bootstrap
        )

    def compute_removable(self, analysis: RemovalAnalysis) -> RemovalOutcome:
        bootstrap = set(analysis.fraction_artifacts)
        declared = analysis.declared
        runner = declared.runner_dependency()
        # The runner is seeded as removable; its closure protects nothing
        non_bootstrap = [
            s
            for s in declared.direct_dependencies
            if s != runner and not self._is_bootstrap(s, bootstrap)
        ]

        if declared.presolved:
            needed: set[ArtifactSpec] = set()
            for spec in non_bootstrap:
                if spec.group_id == self.platform_group_id:
                    continue
                needed.add(spec)
                needed.update(declared.transient_dependencies_of(spec))
        elif non_bootstrap:
            needed = set(self.resolver.resolve_all_transitively(non_bootstrap, True))
        else:
            needed = set()

        removable = set(analysis.seed)
        removable.update(s for s in analysis.dependencies if s.packaging == JAR)
        return RemovalOutcome(removable=frozenset(removable - needed))


def strategy_for(
    mode: RemovalMode,
    *,
    resolver: ArtifactResolver,
    whitelist: Iterable[str] = (),
    platform_group_id: str = "io.thorntail",
) -> RemovalStrategy:
    """Build the strategy for ``mode``."""
    if mode is RemovalMode.AGGRESSIVE:
        return AggressiveRemoval(whitelist)
    return PreciseRemoval(resolver, platform_group_id)
