"""Module descriptor analysis.

Platform fractions ship JBoss-modules descriptors (``module.xml``) whose
``<resources>`` name Maven artifacts::

    <module xmlns="urn:jboss:module:1.3" name="org.example">
        <resources>
            <artifact name="${org.example:example-core:1.0.0}"/>
        </resources>
    </module>

The analyzer turns each ``<artifact>`` into an ``ArtifactSpec`` and attaches
the file when it is present in a Maven-layout local repository. Artifacts
not found there come back unresolved; the dependency manager then tries to
match them against what it resolved itself.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from pathlib import Path

from fractionpack.models.artifacts import ArtifactSpec

logger = logging.getLogger(__name__)


class ModuleDescriptorError(ValueError):
    """Raised when a module descriptor cannot be parsed."""


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


class ModuleAnalyzer:
    """Extracts artifact dependencies from a single ``module.xml``.

    Parameters
    ----------
    source:
        Path to a descriptor on disk, or its raw bytes.
    local_repository:
        Maven-layout directory searched for artifact files. ``None`` disables
        the lookup and every dependency comes back unresolved.
    """

    def __init__(self, source: Path | bytes, local_repository: Path | None = None) -> None:
        self._local_repository = Path(local_repository) if local_repository else None
        try:
            if isinstance(source, bytes):
                root = ET.fromstring(source)
            else:
                root = ET.parse(source).getroot()
        except ET.ParseError as exc:
            raise ModuleDescriptorError(f"Malformed module descriptor: {exc}") from exc

        if _local_name(root.tag) != "module":
            raise ModuleDescriptorError(
                f"Expected a <module> root element, found <{_local_name(root.tag)}>"
            )
        self.name = root.get("name", "")
        self.slot = root.get("slot", "main")
        self._dependencies = self._collect(root)

    def _collect(self, root: ET.Element) -> list[ArtifactSpec]:
        found: dict[ArtifactSpec, None] = {}
        for resources in root:
            if _local_name(resources.tag) != "resources":
                continue
            for element in resources:
                if _local_name(element.tag) != "artifact":
                    continue
                gav = element.get("name", "")
                try:
                    spec = ArtifactSpec.from_msc_gav(gav)
                except ValueError:
                    logger.warning("Ignoring artifact %r in module %s", gav, self.name)
                    continue
                found.setdefault(self._locate(spec), None)
        return list(found)

    def _locate(self, spec: ArtifactSpec) -> ArtifactSpec:
        if self._local_repository is None or not spec.is_complete():
            return spec
        candidate = self._local_repository / spec.repository_path()
        if candidate.is_file():
            return spec.with_file(candidate)
        logger.debug("%s not in %s", spec.msc_gav(), self._local_repository)
        return spec

    @property
    def dependencies(self) -> list[ArtifactSpec]:
        return list(self._dependencies)
