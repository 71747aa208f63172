"""Shared test fixtures for fractionpack."""

from __future__ import annotations

import struct
import zipfile
from collections import deque
from collections.abc import Callable, Iterable
from pathlib import Path

import pytest
import yaml

from fractionpack.config import PackConfig
from fractionpack.core.archive import FRACTION_MANIFEST_LOCATION, MAVEN_DEPENDENCIES_LOCATION
from fractionpack.core.resolver import ResolutionError
from fractionpack.models.artifacts import ArtifactSpec

PLATFORM_GROUP = "io.thorntail"


class FakeResolver:
    """In-memory resolver over a fixed universe of resolved artifacts.

    ``edges`` maps ``"group:artifact"`` to the ``"group:artifact"`` keys it
    depends on. Every call is recorded in ``calls`` as
    ``(kind, specs, application_only)``.
    """

    def __init__(
        self,
        artifacts: Iterable[ArtifactSpec],
        edges: dict[str, list[str]] | None = None,
    ) -> None:
        self._artifacts = {(a.group_id, a.artifact_id): a for a in artifacts}
        self._edges = edges or {}
        self.calls: list[tuple[str, list[ArtifactSpec], bool | None]] = []

    def _resolve_one(self, spec: ArtifactSpec) -> ArtifactSpec:
        found = self._artifacts.get((spec.group_id, spec.artifact_id))
        if found is None or (spec.version and spec.version != found.version):
            raise ResolutionError(f"Unable to resolve {spec.maven_gav()}", [spec])
        return found

    def resolve_all_non_transitively(self, specs: Iterable[ArtifactSpec]) -> list[ArtifactSpec]:
        specs = list(specs)
        self.calls.append(("non_transitive", specs, None))
        return list(dict.fromkeys(self._resolve_one(s) for s in specs))

    def resolve_all_transitively(
        self, specs: Iterable[ArtifactSpec], application_only: bool
    ) -> list[ArtifactSpec]:
        specs = list(specs)
        self.calls.append(("transitive", specs, application_only))
        result: dict[ArtifactSpec, None] = {}
        queue = deque(self._resolve_one(s) for s in specs)
        while queue:
            current = queue.popleft()
            if current in result:
                continue
            result[current] = None
            for key in self._edges.get(f"{current.group_id}:{current.artifact_id}", []):
                dependency = self._artifacts[tuple(key.split(":"))]
                if application_only and dependency.group_id == PLATFORM_GROUP:
                    continue
                queue.append(dependency)
        return list(result)

    def kinds(self) -> list[str]:
        return [kind for kind, _, _ in self.calls]


@pytest.fixture
def pack_config(tmp_path: Path) -> PackConfig:
    """Config pointing at an empty local repository, precise mode, no whitelist."""
    return PackConfig(
        local_repository=tmp_path / "m2",
        remove_all_platform_libs=False,
        user_dependencies="",
    )


@pytest.fixture
def make_jar(tmp_path: Path) -> Callable[..., Path]:
    """Factory fixture: write a jar with the given entries, unique content per name."""

    def _factory(name: str, entries: dict[str, str | bytes] | None = None) -> Path:
        path = tmp_path / "jars" / name
        path.parent.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(path, "w") as jar:
            jar.writestr("META-INF/MANIFEST.MF", f"Manifest-Version: 1.0\nName: {name}\n")
            for entry, data in (entries or {}).items():
                jar.writestr(entry, data)
        return path

    return _factory


@pytest.fixture
def make_corrupt_jar(tmp_path: Path) -> Callable[..., Path]:
    """Factory fixture: a jar whose deflated ``member`` cannot be inflated.

    ``text`` is padded with comment lines so the compressed data is long
    enough to damage. Eight bytes in the middle of it are flipped, so listing
    the jar still works but reading the member fails.
    """

    def _factory(name: str, member: str, text: str = "") -> Path:
        path = tmp_path / "corrupt" / name
        path.parent.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as jar:
            jar.writestr(member, text + filler())
        with zipfile.ZipFile(path) as jar:
            info = jar.getinfo(member)
        raw = bytearray(path.read_bytes())
        name_length, extra_length = struct.unpack_from("<HH", raw, info.header_offset + 26)
        start = info.header_offset + 30 + name_length + extra_length + info.compress_size // 2 - 4
        for offset in range(start, start + 8):
            raw[offset] ^= 0xFF
        path.write_bytes(bytes(raw))
        return path

    return _factory


def filler(lines: int = 400) -> str:
    """Loosely repetitive text that still deflates to a few kilobytes."""
    return "".join(f"# filler {i} {i * 7919 % 1009}\n" for i in range(lines))


@pytest.fixture
def make_artifact(make_jar: Callable[..., Path]) -> Callable[..., ArtifactSpec]:
    """Factory fixture: a resolved jar artifact for ``group:artifact:version``."""

    def _factory(
        gav: str,
        entries: dict[str, str | bytes] | None = None,
        **overrides,
    ) -> ArtifactSpec:
        spec = ArtifactSpec.parse(gav)
        file_name = f"{spec.group_id}.{spec.artifact_id}-{spec.version}.{spec.packaging}"
        jar = make_jar(file_name, entries)
        return spec.model_copy(update={"file": jar, **overrides})

    return _factory


@pytest.fixture
def fraction_entries() -> Callable[..., dict[str, str]]:
    """Factory fixture: entries that mark a jar as a platform fraction."""

    def _factory(
        name: str = "fraction",
        module: str | None = None,
        maven_dependencies: Iterable[str] = (),
        embedded: Iterable[str] = (),
    ) -> dict[str, str]:
        manifest = {
            "name": name,
            "groupId": PLATFORM_GROUP,
            "artifactId": name,
            "version": "1.0.0",
            "maven-dependencies": list(maven_dependencies),
        }
        if module:
            manifest["module"] = module
        entries = {FRACTION_MANIFEST_LOCATION: yaml.safe_dump(manifest)}
        embedded = list(embedded)
        if embedded:
            entries[MAVEN_DEPENDENCIES_LOCATION] = "\n".join(embedded) + "\n"
        return entries

    return _factory


def module_xml(name: str, *artifacts: str) -> str:
    resources = "\n".join(f'        <artifact name="${{{gav}}}"/>' for gav in artifacts)
    return (
        f'<module xmlns="urn:jboss:module:1.3" name="{name}">\n'
        f"    <resources>\n{resources}\n    </resources>\n"
        f"</module>\n"
    )


@pytest.fixture
def make_module_xml() -> Callable[..., str]:
    """Factory fixture: a module.xml naming the given ``g:a:v`` artifacts."""
    return module_xml


@pytest.fixture
def make_resolver() -> Callable[..., FakeResolver]:
    """Factory fixture: a ``FakeResolver`` over the given artifacts and edges."""
    return FakeResolver


POM_TEMPLATE = """<?xml version="1.0"?>
<project xmlns="http://maven.apache.org/POM/4.0.0">
  <modelVersion>4.0.0</modelVersion>
  <dependencies>
{dependencies}
  </dependencies>
</project>
"""


@pytest.fixture
def install_artifact(pack_config: PackConfig) -> Callable[..., ArtifactSpec]:
    """Factory fixture: install a jar and its POM into the local repository.

    ``dependencies`` are ``group:artifact:version`` strings written to the POM.
    """

    def _factory(
        gav: str,
        entries: dict[str, str | bytes] | None = None,
        dependencies: Iterable[str] = (),
    ) -> ArtifactSpec:
        spec = ArtifactSpec.parse(gav)
        jar = pack_config.local_repository / spec.repository_path()
        jar.parent.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(jar, "w") as archive:
            archive.writestr("META-INF/MANIFEST.MF", f"Manifest-Version: 1.0\nName: {gav}\n")
            for entry, data in (entries or {}).items():
                archive.writestr(entry, data)
        blocks = []
        for dependency in dependencies:
            group_id, artifact_id, version = dependency.split(":")
            blocks.append(
                "    <dependency>"
                f"<groupId>{group_id}</groupId><artifactId>{artifact_id}</artifactId>"
                f"<version>{version}</version></dependency>"
            )
        pom = jar.with_name(f"{spec.artifact_id}-{spec.version}.pom")
        pom.write_text(POM_TEMPLATE.format(dependencies="\n".join(blocks)), encoding="utf-8")
        return spec.with_file(jar)

    return _factory
