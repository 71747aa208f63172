"""Dependency manager: resolution, fraction analysis and removability.

The manager turns a ``DeclaredDependencies`` set into a deduplicated,
resolved closure, finds the platform fractions inside it, decides which
artifacts the platform already supplies, and answers per-entry
removability questions while the package is being assembled.

Analysis is single-threaded and single-pass. Only ``is_removable`` may be
called concurrently; its checksum index is built exactly once.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from fractionpack.config import PackConfig
from fractionpack.core import archive
from fractionpack.core.archive import PackagedEntry
from fractionpack.core.checksum_index import RemovableChecksumIndex
from fractionpack.core.module_analyzer import ModuleAnalyzer, ModuleDescriptorError
from fractionpack.core.removal import (
    RemovalAnalysis,
    RemovalMode,
    RemovalStrategy,
    strategy_for,
)
from fractionpack.core.resolver import ArtifactResolver, ResolutionError
from fractionpack.models.artifacts import ArtifactFilter, ArtifactSpec
from fractionpack.models.declared import DeclaredDependencies
from fractionpack.models.diagnostics import Diagnostic, DiagnosticCode
from fractionpack.models.manifest import ApplicationManifest, FractionManifest

logger = logging.getLogger(__name__)

JAR = "jar"
ZIP_PACKAGINGS = frozenset({"jar", "war", "ear", "rar", "zip"})

BOOTSTRAP_ARTIFACT_ID = "bootstrap"
JBOSS_MODULES_GROUP_ID = "org.jboss.modules"
JBOSS_MODULES_ARTIFACT_ID = "jboss-modules"


class DependencyAnalysisError(RuntimeError):
    """Raised when an analysis step fails outside of resolution."""


class DependencyManager:
    """Resolves declared dependencies and classifies what can be removed.

    Parameters
    ----------
    resolver:
        Turns coordinates into local files.
    strategy:
        A ``RemovalStrategy``, or a ``RemovalMode`` to build one from
        ``config``. Defaults to the mode ``config.remove_all_platform_libs``
        selects.
    config:
        Whitelist, platform group and local repository settings.
    """

    def __init__(
        self,
        resolver: ArtifactResolver,
        strategy: RemovalStrategy | RemovalMode | None = None,
        *,
        config: PackConfig | None = None,
    ) -> None:
        self._config = config or PackConfig()
        self._resolver = resolver
        if strategy is None:
            strategy = (
                RemovalMode.AGGRESSIVE
                if self._config.remove_all_platform_libs
                else RemovalMode.PRECISE
            )
        if isinstance(strategy, RemovalMode):
            strategy = strategy_for(
                strategy,
                resolver=resolver,
                whitelist=self._config.user_dependency_whitelist,
                platform_group_id=self._config.platform_group_id,
            )
        self._strategy = strategy

        self.application_manifest = ApplicationManifest()
        self._dependencies: dict[ArtifactSpec, None] = {}
        self._dependency_map: dict[str, ArtifactSpec] = {}
        self._module_dependencies: dict[ArtifactSpec, None] = {}
        self._fraction_manifests: list[FractionManifest] = []
        self._fraction_artifacts: list[ArtifactSpec] = []
        self._removable: dict[ArtifactSpec, None] = {}
        self._peeled_removable: list[ArtifactSpec] = []
        self._diagnostics: list[Diagnostic] = []
        self._checksum_index = RemovableChecksumIndex(self._removable_members)

    # ------------------------------------------------------------------
    # Outputs
    # ------------------------------------------------------------------

    @property
    def strategy(self) -> RemovalStrategy:
        return self._strategy

    @property
    def dependencies(self) -> set[ArtifactSpec]:
        return set(self._dependencies)

    @property
    def dependency_map(self) -> dict[str, ArtifactSpec]:
        return dict(self._dependency_map)

    @property
    def module_dependencies(self) -> set[ArtifactSpec]:
        return set(self._module_dependencies)

    @property
    def fraction_manifests(self) -> list[FractionManifest]:
        return list(self._fraction_manifests)

    @property
    def removable_dependencies(self) -> set[ArtifactSpec]:
        return set(self._removable)

    @property
    def checksum_index(self) -> RemovableChecksumIndex:
        return self._checksum_index

    @property
    def diagnostics(self) -> list[Diagnostic]:
        """Non-fatal problems recorded so far, checksum failures included."""
        return self._diagnostics + self._checksum_index.diagnostics

    def _record(self, diagnostics: Iterable[Diagnostic]) -> None:
        self._diagnostics.extend(diagnostics)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def find_artifact(
        self,
        group_id: str | None = None,
        artifact_id: str | None = None,
        version: str | None = None,
        packaging: str | None = None,
        classifier: str | None = None,
        include_test_scope: bool = True,
    ) -> ArtifactSpec | None:
        """Return a resolved artifact matching every non-``None`` field.

        When a partial filter matches several artifacts, which one comes
        back is unspecified.
        """
        wanted = ArtifactFilter(
            group_id=group_id,
            artifact_id=artifact_id,
            version=version,
            packaging=packaging,
            classifier=classifier,
            include_test_scope=include_test_scope,
        )
        return next((spec for spec in self._dependencies if wanted.matches(spec)), None)

    def find_bootstrap_jar(self) -> ArtifactSpec | None:
        return self.find_artifact(
            self._config.platform_group_id, BOOTSTRAP_ARTIFACT_ID, None, JAR, None, False
        )

    def find_jboss_modules_jar(self) -> ArtifactSpec | None:
        return self.find_artifact(
            JBOSS_MODULES_GROUP_ID, JBOSS_MODULES_ARTIFACT_ID, None, JAR, None, False
        )

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    def analyze_dependencies(
        self, autodetect: bool, declared: DeclaredDependencies
    ) -> DependencyManager:
        """Resolve, classify and record ``declared``.

        Raises ``ResolutionError`` if any coordinate cannot be resolved; no
        partial result is kept in that case.
        """
        try:
            self.resolve_dependencies(declared, autodetect)
            self.analyze_fraction_manifests()
            # Precise removal may resolve again
            self.analyze_removable_dependencies(declared)
        except ResolutionError:
            self._reset()
            raise
        except OSError as exc:
            self._reset()
            raise ResolutionError(f"Resolution failed: {exc}") from exc

        for spec in self._dependencies:
            if spec not in self._removable:
                self.application_manifest.add_dependency(spec.maven_gav())

        self.analyze_module_dependencies()
        logger.info(
            "Resolved %d dependencies, %d removable, %d fractions",
            len(self._dependencies),
            len(self._removable),
            len(self._fraction_manifests),
        )
        return self

    def _reset(self) -> None:
        self._dependencies.clear()
        self._dependency_map.clear()
        self._removable.clear()
        self._peeled_removable.clear()
        self._fraction_manifests.clear()
        self._fraction_artifacts.clear()
        self._module_dependencies.clear()
        self._checksum_index = RemovableChecksumIndex(self._removable_members)

    def _add_dependencies(self, specs: Iterable[ArtifactSpec]) -> None:
        for spec in specs:
            self._dependencies.setdefault(spec, None)

    def _resolve_transitively(self, specs: list[ArtifactSpec]) -> list[ArtifactSpec]:
        if not specs:
            return []
        return list(self._resolver.resolve_all_transitively(specs, False))

    def _resolve_non_transitively(self, specs: list[ArtifactSpec]) -> list[ArtifactSpec]:
        if not specs:
            return []
        return list(self._resolver.resolve_all_non_transitively(specs))

    def resolve_dependencies(self, declared: DeclaredDependencies, autodetect: bool) -> None:
        """Resolve declared dependencies to local files.

        Starts a new analysis: results and diagnostics of an earlier one are
        discarded, and the application manifest keeps only its asset and
        hollow flag.
        """
        self._reset()
        self._diagnostics.clear()
        self.application_manifest = ApplicationManifest(
            asset=self.application_manifest.asset,
            hollow=self.application_manifest.hollow,
        )

        explicit = declared.direct_dependencies
        runner = declared.runner_dependency()
        if runner is not None:
            explicit = self._filter_out_runner_dependencies(runner, explicit, declared)

        # Complete coordinates are already exact; incomplete ones are expanded
        # unless the declaration is presolved and nothing is autodetected.
        expand = not declared.presolved or autodetect
        complete = [s for s in explicit if declared.is_complete(s)]
        incomplete = [s for s in explicit if not declared.is_complete(s)]

        if expand:
            resolved_incomplete = self._resolve_transitively(incomplete)
        else:
            resolved_incomplete = self._resolve_non_transitively(incomplete)
        resolved_complete = self._resolve_non_transitively(complete)

        self._add_dependencies(resolved_complete)
        self._add_dependencies(resolved_incomplete)

        if not declared.transient_dependencies:
            # Composite packagings (war, ear ...) are opaque, only jars expand
            input_set = explicit
            resolved_transient = self._resolve_transitively(
                [s for s in input_set if s.packaging == JAR]
            )
        else:
            input_set = declared.transient_dependencies
            resolved_transient = self._resolve_non_transitively(
                [s for s in input_set if s.packaging == JAR]
            )
        self._add_dependencies(resolved_transient)

        covered = set(resolved_transient)
        remainder = [s for s in input_set if s not in covered]
        self._add_dependencies(self._resolve_non_transitively(remainder))

        self._dependency_map = {spec.maven_gav(): spec for spec in self._dependencies}

    def _filter_out_runner_dependencies(
        self,
        runner: ArtifactSpec,
        explicit: list[ArtifactSpec],
        declared: DeclaredDependencies,
    ) -> list[ArtifactSpec]:
        """Move the runner and everything it bundles into the removable seed."""
        if runner.file is None:
            runner = self._resolve_non_transitively([runner])[0]
        self._removable.setdefault(runner, None)
        peeled = {runner}
        for spec in declared.transient_dependencies_of(runner):
            self._removable.setdefault(spec, None)
            peeled.add(spec)

        lines = archive.maven_dependencies(runner.file)
        self._record(lines.diagnostics)
        for line in lines.value:
            spec = self._parse_dependency_line(line)
            if spec is not None:
                self._removable.setdefault(spec, None)
                peeled.add(spec)

        logger.debug("Runner %s bundles %d dependencies", runner.maven_gav(), len(peeled) - 1)
        return [s for s in explicit if s not in peeled]

    def _parse_dependency_line(self, line: str) -> ArtifactSpec | None:
        try:
            return ArtifactSpec.from_maven_dependency_description(line)
        except ValueError as exc:
            logger.warning("Ignoring dependency line %r: %s", line, exc)
            self._record([
                Diagnostic(code=DiagnosticCode.MALFORMED_COORDINATE, message=str(exc), subject=line)
            ])
            return None

    def analyze_fraction_manifests(self) -> None:
        """Find fractions, record their manifests and boot-time coordinates."""
        self._fraction_manifests.clear()
        self._fraction_artifacts.clear()

        for spec in self._dependencies:
            if spec.packaging != JAR:
                continue
            fraction = archive.is_fraction_jar(spec.file)
            if fraction:
                self._fraction_artifacts.append(spec)
                result = archive.fraction_manifest(spec.file)
                self._record(result.diagnostics)
                manifest = result.value
                if manifest is not None:
                    self._fraction_manifests.append(manifest)
                    if manifest.module:
                        self.application_manifest.add_bootstrap_module(manifest.module)

            if fraction or archive.is_config_api_modules_jar(spec.file):
                self.application_manifest.add_bootstrap_artifact(spec.maven_gav())

    def _embedded_maven_dependencies(self) -> list[str]:
        lines: list[str] = []
        for spec in self._dependencies:
            if spec.packaging not in ZIP_PACKAGINGS:
                continue
            result = archive.maven_dependencies(spec.file)
            self._record(result.diagnostics)
            lines.extend(result.value)
        return lines

    def analyze_removable_dependencies(self, declared: DeclaredDependencies) -> None:
        """Compute the removable set with the configured strategy.

        The result is restricted to resolved artifacts, so it always holds
        the resolved instances (with their files) and stays a subset of
        ``dependencies``. Removable runner artifacts outside the closure are
        still matched by ``is_removable``.
        """
        analysis = RemovalAnalysis(
            dependencies=self._dependencies,
            fraction_artifacts=self._fraction_artifacts,
            fraction_manifests=self._fraction_manifests,
            declared=declared,
            seed=self._removable,
            embedded_dependencies_reader=self._embedded_maven_dependencies,
        )
        outcome = self._strategy.compute_removable(analysis)
        self._record(outcome.diagnostics)

        self._removable = {
            spec: None for spec in self._dependencies if spec in outcome.removable
        }
        # Peeled runner artifacts are outside the closure but may still be
        # packaged, so the checksum index keeps the ones that have a file
        self._peeled_removable = [
            spec
            for spec in analysis.seed
            if spec.file is not None
            and spec in outcome.removable
            and spec not in self._removable
        ]
        self._checksum_index = RemovableChecksumIndex(self._removable_members)
        logger.debug(
            "%s removal marked %d of %d dependencies",
            self._strategy.mode.value,
            len(self._removable),
            len(self._dependencies),
        )

    def analyze_module_dependencies(self) -> None:
        """Collect artifacts named by module descriptors inside resolved jars."""
        for spec in list(self._dependencies):
            if spec.packaging != JAR:
                continue
            result = archive.find_module_xmls(spec.file)
            self._record(result.diagnostics)
            for name, data in result.value:
                try:
                    analyzer = ModuleAnalyzer(data, self._config.local_repository)
                except ModuleDescriptorError as exc:
                    logger.warning("Skipping %s in %s: %s", name, spec.file, exc)
                    self._record([
                        Diagnostic(
                            code=DiagnosticCode.MALFORMED_DESCRIPTOR,
                            message=str(exc),
                            subject=f"{spec.file}!/{name}",
                        )
                    ])
                    continue
                self._add_module_dependencies(analyzer)

    def add_additional_module(self, module: Path) -> None:
        """Analyze a ``module.xml`` that lives outside the resolved artifacts."""
        try:
            analyzer = ModuleAnalyzer(Path(module), self._config.local_repository)
        except (ModuleDescriptorError, OSError) as exc:
            raise DependencyAnalysisError(f"Cannot analyze module {module}: {exc}") from exc
        self._add_module_dependencies(analyzer)

    def _add_module_dependencies(self, analyzer: ModuleAnalyzer) -> None:
        # Artifacts missing from the local repository may still have been
        # resolved elsewhere (e.g. a build tool's own cache).
        for spec in analyzer.dependencies:
            if spec.file is None:
                spec = self._dependency_map.get(spec.maven_gav(), spec)
            self._module_dependencies.setdefault(spec, None)

    # ------------------------------------------------------------------
    # Packaging queries
    # ------------------------------------------------------------------

    def _removable_members(self) -> list[ArtifactSpec]:
        return list(self._removable) + self._peeled_removable

    def is_removable(self, entry: PackagedEntry) -> bool:
        """True if ``entry`` is byte-identical to a removable artifact.

        Safe to call from several threads at once.
        """
        return self._checksum_index.contains_entry(entry)

    def set_project_asset(self, name: str) -> None:
        """Record the application's own archive unless the manifest is hollow."""
        if not self.application_manifest.hollow:
            self.application_manifest.set_asset(name)
