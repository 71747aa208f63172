"""Fraction and application manifest models.

A *fraction manifest* is the YAML document a platform-supplied artifact
carries at ``META-INF/fraction-manifest.yaml``. The *application manifest*
is the output sink that records what the packaged application needs at
boot time; it is written out as YAML and never read back by the analysis.
"""

from __future__ import annotations

from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator


class FractionManifest(BaseModel):
    """Parsed ``fraction-manifest.yaml`` of a platform fraction."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    name: str = ""
    module: str | None = None
    group_id: str = Field(default="", alias="groupId")
    artifact_id: str = Field(default="", alias="artifactId")
    version: str = ""
    stability: str | int | None = None
    dependencies: list[str] = Field(default_factory=list)
    maven_dependencies: list[str] = Field(default_factory=list, alias="maven-dependencies")

    @field_validator("dependencies", "maven_dependencies", mode="before")
    @classmethod
    def _none_is_empty(cls, value: Any) -> Any:
        return value or []

    @classmethod
    def from_yaml(cls, text: str | bytes) -> FractionManifest:
        """Parse manifest YAML.

        Raises ``yaml.YAMLError`` or ``pydantic.ValidationError`` on bad input,
        and ``ValueError`` when the document is not a mapping.
        """
        data = yaml.safe_load(text)
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError("Fraction manifest must be a YAML mapping")
        return cls.model_validate(data)


class ApplicationManifest(BaseModel):
    """Boot-time manifest of the packaged application.

    All lists are insertion-ordered and free of duplicates.
    """

    model_config = ConfigDict(populate_by_name=True)

    asset: str | None = None
    hollow: bool = False
    dependencies: list[str] = Field(default_factory=list)
    bootstrap_modules: list[str] = Field(default_factory=list, alias="bootstrap-modules")
    bootstrap_artifacts: list[str] = Field(default_factory=list, alias="bootstrap-artifacts")

    @staticmethod
    def _append_unique(target: list[str], value: str) -> None:
        if value not in target:
            target.append(value)

    def add_dependency(self, coordinate: str) -> None:
        self._append_unique(self.dependencies, coordinate)

    def add_bootstrap_module(self, name: str) -> None:
        self._append_unique(self.bootstrap_modules, name)

    def add_bootstrap_artifact(self, coordinate: str) -> None:
        self._append_unique(self.bootstrap_artifacts, coordinate)

    def set_asset(self, name: str) -> None:
        self.asset = name

    def to_yaml(self) -> str:
        """Serialize with the hyphenated keys the runtime expects."""
        data = self.model_dump(by_alias=True, exclude_none=True)
        return yaml.safe_dump(data, sort_keys=False, default_flow_style=False)
