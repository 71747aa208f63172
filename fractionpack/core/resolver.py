"""Resolver port and a local Maven-layout repository implementation.

The dependency manager only ever talks to the ``ArtifactResolver``
protocol. Resolvers accept incomplete coordinates, complete them, and
return resolved copies that carry a local ``file``. Any coordinate that
cannot be resolved fails the whole call with one ``ResolutionError``.
"""

from __future__ import annotations

import logging
import re
import xml.etree.ElementTree as ET
from collections import deque
from collections.abc import Iterable
from pathlib import Path
from typing import Protocol, runtime_checkable

from fractionpack.core.hasher import read_sha1_sidecar
from fractionpack.models.artifacts import DEFAULT_SCOPE, ArtifactSpec

logger = logging.getLogger(__name__)

# Scopes that never reach the packaged application
NON_TRANSITIVE_SCOPES = frozenset({"test", "provided", "system", "import"})

_PROPERTY = re.compile(r"\$\{([^}]+)\}")


class ResolutionError(RuntimeError):
    """Raised when one or more coordinates cannot be resolved."""

    def __init__(self, message: str, specs: Iterable[ArtifactSpec] = ()) -> None:
        super().__init__(message)
        self.specs = list(specs)


@runtime_checkable
class ArtifactResolver(Protocol):
    """Turns coordinates into locally available artifacts."""

    def resolve_all_transitively(
        self, specs: Iterable[ArtifactSpec], application_only: bool
    ) -> list[ArtifactSpec]:
        """Resolve ``specs`` and their dependency closure.

        With ``application_only`` the pass estimates what the application
        needs on its own, without expanding into the platform.
        """
        ...

    def resolve_all_non_transitively(
        self, specs: Iterable[ArtifactSpec]
    ) -> list[ArtifactSpec]:
        """Resolve exactly ``specs`` to local files."""
        ...


def _version_key(version: str) -> tuple:
    """Order versions numerically where possible (``1.10`` after ``1.9``)."""
    key = []
    for token in re.split(r"[.\-]", version):
        if token.isdigit():
            key.append((1, int(token), ""))
        else:
            key.append((0, 0, token))
    return tuple(key)


class LocalRepositoryResolver:
    """Resolves coordinates against a Maven-layout directory.

    Transitive resolution walks ``<dependencies>`` of each artifact's POM
    breadth-first; the first version met for a group/artifact/classifier
    wins, as in Maven's nearest-wins mediation.

    Parameters
    ----------
    repository:
        Root of the Maven-layout directory.
    platform_group_id:
        Coordinates in this group are not expanded during application-only
        passes.
    """

    def __init__(self, repository: Path, *, platform_group_id: str = "io.thorntail") -> None:
        self.repository = Path(repository)
        self.platform_group_id = platform_group_id

    # ------------------------------------------------------------------
    # Port
    # ------------------------------------------------------------------

    def resolve_all_non_transitively(
        self, specs: Iterable[ArtifactSpec]
    ) -> list[ArtifactSpec]:
        resolved: dict[ArtifactSpec, None] = {}
        missing: list[ArtifactSpec] = []
        for spec in specs:
            result = self.resolve(spec)
            if result is None:
                missing.append(spec)
            else:
                resolved.setdefault(result, None)
        if missing:
            raise ResolutionError(
                "Unable to resolve: " + ", ".join(s.maven_gav() for s in missing),
                missing,
            )
        return list(resolved)

    def resolve_all_transitively(
        self, specs: Iterable[ArtifactSpec], application_only: bool
    ) -> list[ArtifactSpec]:
        roots = list(specs)
        resolved = self.resolve_all_non_transitively(roots)
        result: dict[ArtifactSpec, None] = dict.fromkeys(resolved)
        seen = {self._mediation_key(s) for s in resolved}
        queue = deque(resolved)

        while queue:
            current = queue.popleft()
            for dependency in self._pom_dependencies(current):
                key = self._mediation_key(dependency)
                if key in seen:
                    continue
                seen.add(key)
                if application_only and dependency.group_id == self.platform_group_id:
                    logger.debug("Application-only pass skips %s", dependency.maven_gav())
                    continue
                found = self.resolve(dependency)
                if found is None:
                    raise ResolutionError(
                        f"Unable to resolve {dependency.maven_gav()} "
                        f"(required by {current.maven_gav()})",
                        [dependency],
                    )
                result.setdefault(found, None)
                queue.append(found)

        return list(result)

    # ------------------------------------------------------------------
    # Single coordinates
    # ------------------------------------------------------------------

    def resolve(self, spec: ArtifactSpec) -> ArtifactSpec | None:
        """Resolve one coordinate, completing a missing version; ``None`` if absent."""
        if not (spec.group_id and spec.artifact_id):
            return None
        if not spec.version:
            version = self.latest_version(spec.group_id, spec.artifact_id)
            if version is None:
                return None
            spec = spec.model_copy(update={"version": version})

        path = self.repository / spec.repository_path()
        if not path.is_file():
            logger.debug("%s not found at %s", spec.maven_gav(), path)
            return None
        return spec.with_file(path, read_sha1_sidecar(path))

    def latest_version(self, group_id: str, artifact_id: str) -> str | None:
        base = self.repository.joinpath(*group_id.split("."), artifact_id)
        if not base.is_dir():
            return None
        versions = [d.name for d in base.iterdir() if d.is_dir() and not d.name.startswith(".")]
        if not versions:
            return None
        return max(versions, key=_version_key)

    # ------------------------------------------------------------------
    # POM reading
    # ------------------------------------------------------------------

    @staticmethod
    def _mediation_key(spec: ArtifactSpec) -> tuple[str, str, str, str | None]:
        return (spec.group_id, spec.artifact_id, spec.packaging, spec.classifier)

    def _pom_path(self, spec: ArtifactSpec) -> Path:
        pom = spec.model_copy(update={"packaging": "pom", "classifier": None})
        return self.repository / pom.repository_path()

    def _pom_dependencies(self, spec: ArtifactSpec) -> list[ArtifactSpec]:
        pom_path = self._pom_path(spec)
        if not pom_path.is_file():
            return []
        try:
            root = ET.parse(pom_path).getroot()
        except ET.ParseError as exc:
            logger.warning("Ignoring malformed POM %s: %s", pom_path, exc)
            return []

        ns = root.tag[: root.tag.index("}") + 1] if root.tag.startswith("{") else ""
        properties = {
            "project.version": spec.version or "",
            "project.groupId": spec.group_id,
            "version": spec.version or "",
        }
        props = root.find(f"{ns}properties")
        if props is not None:
            for prop in props:
                properties[prop.tag.removeprefix(ns)] = (prop.text or "").strip()

        def text(element: ET.Element, tag: str) -> str | None:
            child = element.find(f"{ns}{tag}")
            if child is None or child.text is None:
                return None
            value = _PROPERTY.sub(lambda m: properties.get(m.group(1), m.group(0)), child.text.strip())
            return value or None

        dependencies = []
        block = root.find(f"{ns}dependencies")
        if block is None:
            return []
        for element in block.findall(f"{ns}dependency"):
            scope = text(element, "scope") or DEFAULT_SCOPE
            if scope in NON_TRANSITIVE_SCOPES or text(element, "optional") == "true":
                continue
            group_id, artifact_id = text(element, "groupId"), text(element, "artifactId")
            if not group_id or not artifact_id:
                continue
            dependencies.append(
                ArtifactSpec(
                    group_id=group_id,
                    artifact_id=artifact_id,
                    version=text(element, "version"),
                    packaging=text(element, "type") or "jar",
                    classifier=text(element, "classifier"),
                    scope=scope,
                )
            )
        return dependencies
