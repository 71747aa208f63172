"""Adversarial tests: nothing is removed that should be kept.

These tests verify that:
1. Malformed coordinate strings are rejected, never half-parsed
2. Whitelisted coordinates survive aggressive removal from every source
3. Unreadable entries are kept, even under concurrent queries
4. The removable set never reaches outside the resolved dependencies
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest

from fractionpack.core.checksum_index import RemovableChecksumIndex
from fractionpack.core.dependency_manager import DependencyManager
from fractionpack.core.removal import AggressiveRemoval, RemovalAnalysis, RemovalMode
from fractionpack.models.artifacts import ArtifactSpec
from fractionpack.models.declared import DeclaredDependencies
from fractionpack.models.diagnostics import DiagnosticCode


class TestCoordinateFuzz:
    @pytest.mark.parametrize(
        "text",
        ["", ":", "::::", "g::jar:1", ":a:jar:1", "g:a:jar:1:compile:extra:more", "g"],
    )
    def test_dependency_description_rejected(self, text):
        with pytest.raises(ValueError):
            ArtifactSpec.from_maven_dependency_description(text)

    @pytest.mark.parametrize("text", ["", "${}", "${g:a}", "g:a:1:c:extra", "::1"])
    def test_msc_gav_rejected(self, text):
        with pytest.raises(ValueError):
            ArtifactSpec.from_msc_gav(text)

    @pytest.mark.parametrize("text", ["", "g", "g:a:t:c:v:extra", ":a"])
    def test_declaration_rejected(self, text):
        with pytest.raises(ValueError):
            ArtifactSpec.parse(text)


class TestWhitelist:
    def test_whitelisted_from_every_source(self):
        keep = ArtifactSpec.parse("org.keep:lib:1")
        analysis = RemovalAnalysis(
            dependencies=[keep],
            fraction_artifacts=[keep],
            fraction_manifests=[],
            declared=DeclaredDependencies(),
            seed=[keep],
            embedded_dependencies_reader=lambda: ["org.keep:lib:jar:1:compile"],
        )
        outcome = AggressiveRemoval({"org.keep:lib:1"}).compute_removable(analysis)
        assert keep not in outcome.removable

    def test_whitelist_is_exact(self):
        analysis = RemovalAnalysis(
            dependencies=[],
            fraction_artifacts=[],
            fraction_manifests=[],
            declared=DeclaredDependencies(),
            embedded_dependencies_reader=lambda: ["org.keep:lib:jar:1.0:compile"],
        )
        # A prefix or a different version does not protect anything
        outcome = AggressiveRemoval({"org.keep:lib:1", "org.keep:li:1.0"}).compute_removable(analysis)
        assert outcome.removable == {ArtifactSpec.parse("org.keep:lib:1.0")}


class TestFailOpen:
    def test_concurrent_failures_all_kept(self, make_artifact):
        class Exploding:
            def __init__(self, n: int) -> None:
                self.name = f"entry-{n}.jar"

            def open_stream(self):
                raise PermissionError("denied")

        index = RemovableChecksumIndex(lambda: [make_artifact("g:a:1")])
        with ThreadPoolExecutor(max_workers=8) as pool:
            verdicts = list(pool.map(index.contains_entry, [Exploding(n) for n in range(32)]))
        assert verdicts == [False] * 32
        assert len(index.diagnostics) == 32
        assert {d.code for d in index.diagnostics} == {DiagnosticCode.ENTRY_CHECKSUM_FAILED}
        assert index.build_count == 1

    def test_removable_subset_of_dependencies(self, make_resolver, pack_config, make_artifact, fraction_entries):
        fraction = make_artifact(
            "io.thorntail:cdi:1",
            fraction_entries(maven_dependencies=["org.never:resolved:jar:1:compile"]),
        )
        manager = DependencyManager(make_resolver([fraction]), RemovalMode.AGGRESSIVE, config=pack_config)
        manager.analyze_dependencies(False, DeclaredDependencies().add(ArtifactSpec.parse("io.thorntail:cdi:1")))
        assert manager.removable_dependencies == {fraction}
        assert manager.removable_dependencies <= manager.dependencies
