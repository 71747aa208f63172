"""Artifact coordinate models.

An ``ArtifactSpec`` is identified by its coordinate alone
(group, artifact, version, packaging, classifier, scope). The resolved
``file`` and the precomputed ``sha1sum`` are locality data and never take
part in equality or hashing, so a declared coordinate and its resolved
counterpart compare equal.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, field_validator

DEFAULT_PACKAGING = "jar"
DEFAULT_SCOPE = "compile"
TEST_SCOPE = "test"


def _strip_expression(text: str) -> str:
    """Unwrap a ``${...}`` expression as written in module descriptors."""
    text = text.strip()
    if text.startswith("${") and text.endswith("}"):
        return text[2:-1].strip()
    return text


def _split(text: str, allowed: tuple[int, ...], form: str) -> list[str]:
    parts = [p.strip() for p in text.strip().split(":")]
    if len(parts) not in allowed or not all(parts[:2]):
        raise ValueError(f"Malformed coordinate {text!r}, expected {form}")
    return parts


class ArtifactSpec(BaseModel):
    """A dependency coordinate, optionally resolved to a local file."""

    model_config = ConfigDict(frozen=True)

    group_id: str
    artifact_id: str
    version: str | None = None
    packaging: str = DEFAULT_PACKAGING
    classifier: str | None = None
    scope: str = DEFAULT_SCOPE
    file: Path | None = None
    sha1sum: str | None = None

    @field_validator("version", "classifier", "sha1sum", mode="before")
    @classmethod
    def _blank_is_none(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("packaging", mode="before")
    @classmethod
    def _default_packaging(cls, value: object) -> object:
        return value or DEFAULT_PACKAGING

    @field_validator("scope", mode="before")
    @classmethod
    def _default_scope(cls, value: object) -> object:
        return value or DEFAULT_SCOPE

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    def identity(self) -> tuple[str, str, str | None, str, str | None, str]:
        """Return the fields that define equality."""
        return (
            self.group_id,
            self.artifact_id,
            self.version,
            self.packaging,
            self.classifier,
            self.scope,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ArtifactSpec):
            return NotImplemented
        return self.identity() == other.identity()

    def __hash__(self) -> int:
        return hash(self.identity())

    def __str__(self) -> str:
        return self.maven_description()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def is_complete(self) -> bool:
        """True when group, artifact and version are all non-empty."""
        return bool(self.group_id and self.artifact_id and self.version)

    def is_resolved(self) -> bool:
        return self.file is not None

    def with_file(self, file: Path, sha1sum: str | None = None) -> ArtifactSpec:
        """Return a resolved copy pointing at ``file``."""
        return self.model_copy(update={"file": Path(file), "sha1sum": sha1sum or self.sha1sum})

    # ------------------------------------------------------------------
    # Canonical strings
    # ------------------------------------------------------------------

    def maven_gav(self) -> str:
        """``group:artifact:packaging[:classifier]:version``"""
        parts = [self.group_id, self.artifact_id, self.packaging]
        if self.classifier:
            parts.append(self.classifier)
        parts.append(self.version or "")
        return ":".join(parts)

    def msc_gav(self) -> str:
        """``group:artifact:version[:classifier]``, the module-system form."""
        gav = f"{self.group_id}:{self.artifact_id}:{self.version or ''}"
        if self.classifier:
            gav += f":{self.classifier}"
        return gav

    def maven_description(self) -> str:
        """``group:artifact:packaging[:classifier]:version:scope``"""
        return f"{self.maven_gav()}:{self.scope}"

    def repository_path(self) -> Path:
        """Relative path of the artifact file in a Maven-layout repository."""
        if not self.is_complete():
            raise ValueError(f"Cannot locate incomplete coordinate {self.maven_gav()!r}")
        file_name = f"{self.artifact_id}-{self.version}"
        if self.classifier:
            file_name += f"-{self.classifier}"
        file_name += f".{self.packaging}"
        return Path(*self.group_id.split("."), self.artifact_id, self.version, file_name)

    # ------------------------------------------------------------------
    # Parsers
    # ------------------------------------------------------------------

    @classmethod
    def from_maven_dependency_description(cls, description: str) -> ArtifactSpec:
        """Parse ``g:a:t:v``, ``g:a:t:v:scope`` or ``g:a:t:c:v:scope``.

        This is the line format of embedded ``maven-dependencies.txt`` files
        and of fraction manifest dependency lists.
        """
        parts = _split(description, (4, 5, 6), "g:a:type[:classifier]:version[:scope]")
        if len(parts) == 6:
            group_id, artifact_id, packaging, classifier, version, scope = parts
        elif len(parts) == 5:
            group_id, artifact_id, packaging, version, scope = parts
            classifier = None
        else:
            group_id, artifact_id, packaging, version = parts
            classifier, scope = None, DEFAULT_SCOPE
        return cls(
            group_id=group_id,
            artifact_id=artifact_id,
            version=version,
            packaging=packaging,
            classifier=classifier,
            scope=scope,
        )

    @classmethod
    def from_msc_gav(cls, gav: str) -> ArtifactSpec:
        """Parse ``g:a:v`` or ``g:a:v:classifier``, optionally inside ``${...}``."""
        parts = _split(_strip_expression(gav), (3, 4), "g:a:version[:classifier]")
        classifier = parts[3] if len(parts) == 4 else None
        return cls(
            group_id=parts[0],
            artifact_id=parts[1],
            version=parts[2],
            classifier=classifier,
        )

    @classmethod
    def from_maven_gav(cls, gav: str) -> ArtifactSpec:
        """Parse ``g:a:t:v`` or ``g:a:t:c:v`` (the ``maven_gav()`` form)."""
        parts = _split(gav, (4, 5), "g:a:type[:classifier]:version")
        if len(parts) == 5:
            group_id, artifact_id, packaging, classifier, version = parts
        else:
            group_id, artifact_id, packaging, version = parts
            classifier = None
        return cls(
            group_id=group_id,
            artifact_id=artifact_id,
            version=version,
            packaging=packaging,
            classifier=classifier,
        )

    @classmethod
    def parse(cls, text: str, *, scope: str = DEFAULT_SCOPE) -> ArtifactSpec:
        """Parse a declaration: ``g:a``, ``g:a:v``, ``g:a:t:v`` or ``g:a:t:c:v``.

        The two-part form leaves the version open for the resolver to complete.
        """
        parts = _split(text, (2, 3, 4, 5), "g:a[:type[:classifier]]:version")
        if len(parts) == 2:
            return cls(group_id=parts[0], artifact_id=parts[1], scope=scope)
        if len(parts) == 3:
            return cls(group_id=parts[0], artifact_id=parts[1], version=parts[2], scope=scope)
        return cls.from_maven_gav(text).model_copy(update={"scope": scope})


class ArtifactFilter(BaseModel):
    """A coordinate filter where every unset field matches anything."""

    model_config = ConfigDict(frozen=True)

    group_id: str | None = None
    artifact_id: str | None = None
    version: str | None = None
    packaging: str | None = None
    classifier: str | None = None
    include_test_scope: bool = True

    def matches(self, spec: ArtifactSpec) -> bool:
        for field in ("group_id", "artifact_id", "version", "packaging", "classifier"):
            expected = getattr(self, field)
            if expected is not None and expected != getattr(spec, field):
                return False
        if not self.include_test_scope and spec.scope == TEST_SCOPE:
            return False
        return True
