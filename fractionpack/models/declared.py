"""Declared dependency set, the input to dependency analysis."""

from __future__ import annotations

from collections.abc import Iterable

from fractionpack.models.artifacts import ArtifactSpec

RUNNER_ARTIFACT_ID = "thorntail-runner"


class DeclaredDependencies:
    """Direct dependencies plus, optionally, their already-computed closure.

    Direct dependencies keep declaration order. Each direct dependency may
    carry its own declared transitive dependencies; when the whole closure
    was computed upstream the set is marked *presolved* and only needs to be
    materialized to local files.
    """

    def __init__(self) -> None:
        self._direct: dict[ArtifactSpec, None] = {}
        self._transient: dict[ArtifactSpec, dict[ArtifactSpec, None]] = {}
        self._presolved = False
        self._runner: ArtifactSpec | None = None

    def add(
        self, direct: ArtifactSpec, transitive: Iterable[ArtifactSpec] = ()
    ) -> DeclaredDependencies:
        """Declare ``direct`` and (additionally) its transitive dependencies."""
        self._direct.setdefault(direct, None)
        bucket = self._transient.setdefault(direct, {})
        for spec in transitive:
            bucket.setdefault(spec, None)
        return self

    def mark_presolved(self, presolved: bool = True) -> DeclaredDependencies:
        self._presolved = presolved
        return self

    def mark_runner(self, runner: ArtifactSpec) -> DeclaredDependencies:
        """Mark a direct dependency as the self-contained runner artifact."""
        self.add(runner)
        self._runner = runner
        return self

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def presolved(self) -> bool:
        return self._presolved

    @property
    def direct_dependencies(self) -> list[ArtifactSpec]:
        return list(self._direct)

    @property
    def transient_dependencies(self) -> list[ArtifactSpec]:
        """Ordered union of every declared transitive dependency."""
        merged: dict[ArtifactSpec, None] = {}
        for bucket in self._transient.values():
            merged.update(bucket)
        return list(merged)

    def transient_dependencies_of(self, spec: ArtifactSpec) -> list[ArtifactSpec]:
        return list(self._transient.get(spec, {}))

    def runner_dependency(self) -> ArtifactSpec | None:
        """Return the marked runner, else a direct ``thorntail-runner`` dependency."""
        if self._runner is not None:
            return self._runner
        for spec in self._direct:
            if spec.artifact_id == RUNNER_ARTIFACT_ID:
                return spec
        return None

    @staticmethod
    def is_complete(spec: ArtifactSpec) -> bool:
        return spec.is_complete()

    def __len__(self) -> int:
        return len(self._direct)
