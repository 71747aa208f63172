"""Tests for loading declaration files."""

from __future__ import annotations

from pathlib import Path

import pytest

from fractionpack.core.declarations import (
    DeclarationError,
    load_declared_dependencies,
    parse_declarations,
)
from fractionpack.models.artifacts import ArtifactSpec

DECLARATION = """\
presolved: true
runner: io.thorntail:thorntail-runner:jar:2.7.0
dependencies:
  - io.thorntail:jaxrs:2.7.0
  - gav: com.example:service-lib:jar:1.4.0
    scope: runtime
    transitive:
      - org.slf4j:slf4j-api:jar:1.7.36
  - org.acme:open-version
"""


class TestLoad:
    def test_full_declaration(self, tmp_path: Path):
        path = tmp_path / "deps.yaml"
        path.write_text(DECLARATION, encoding="utf-8")
        declared = load_declared_dependencies(path)

        assert declared.presolved is True
        assert [s.artifact_id for s in declared.direct_dependencies] == [
            "jaxrs", "service-lib", "open-version", "thorntail-runner",
        ]
        service = declared.direct_dependencies[1]
        assert service.scope == "runtime"
        assert declared.transient_dependencies_of(service) == [ArtifactSpec.parse("org.slf4j:slf4j-api:jar:1.7.36")]
        assert declared.runner_dependency().artifact_id == "thorntail-runner"
        assert not declared.is_complete(declared.direct_dependencies[2])

    def test_empty_file(self, tmp_path: Path):
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        declared = load_declared_dependencies(path)
        assert len(declared) == 0
        assert declared.presolved is False

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(DeclarationError, match="not found"):
            load_declared_dependencies(tmp_path / "nope.yaml")

    def test_invalid_yaml(self, tmp_path: Path):
        path = tmp_path / "bad.yaml"
        path.write_text("dependencies: [unclosed", encoding="utf-8")
        with pytest.raises(DeclarationError, match="Invalid YAML"):
            load_declared_dependencies(path)

    def test_not_a_mapping(self, tmp_path: Path):
        path = tmp_path / "list.yaml"
        path.write_text("- g:a:1\n", encoding="utf-8")
        with pytest.raises(DeclarationError, match="mapping"):
            load_declared_dependencies(path)


class TestParse:
    def test_entry_without_gav(self):
        with pytest.raises(DeclarationError, match="gav"):
            parse_declarations({"dependencies": [{"scope": "compile"}]})

    def test_malformed_coordinate(self):
        with pytest.raises(DeclarationError):
            parse_declarations({"dependencies": ["just-a-name"]})
