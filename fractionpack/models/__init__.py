"""fractionpack data models, Pydantic v2 where the value is immutable."""

from fractionpack.models.artifacts import ArtifactFilter, ArtifactSpec
from fractionpack.models.declared import DeclaredDependencies
from fractionpack.models.diagnostics import (
    Diagnostic,
    DiagnosticCode,
    InspectionResult,
    Severity,
)
from fractionpack.models.manifest import ApplicationManifest, FractionManifest

__all__ = [
    # artifacts
    "ArtifactSpec",
    "ArtifactFilter",
    # declarations
    "DeclaredDependencies",
    # diagnostics
    "Diagnostic",
    "DiagnosticCode",
    "InspectionResult",
    "Severity",
    # manifests
    "ApplicationManifest",
    "FractionManifest",
]
