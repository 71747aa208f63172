"""Structured non-fatal diagnostics.

Inspection helpers never swallow failures silently: they return an
``InspectionResult`` holding a fallback value plus the diagnostics that
explain why the fallback was used. The dependency manager aggregates these
so callers can assert on them instead of parsing log output.
"""

from __future__ import annotations

from enum import Enum
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict

T = TypeVar("T")


class Severity(str, Enum):
    """How much a diagnostic matters to the packaging outcome."""

    INFO = "info"
    WARNING = "warning"


class DiagnosticCode(str, Enum):
    UNREADABLE_ARCHIVE = "unreadable_archive"
    MALFORMED_DESCRIPTOR = "malformed_descriptor"
    MALFORMED_COORDINATE = "malformed_coordinate"
    CHECKSUM_FAILED = "checksum_failed"
    ENTRY_CHECKSUM_FAILED = "entry_checksum_failed"
    COORDINATE_TYPE_CONFLICT = "coordinate_type_conflict"


class Diagnostic(BaseModel):
    """A single non-fatal problem recorded during analysis."""

    model_config = ConfigDict(frozen=True)

    code: DiagnosticCode
    message: str
    subject: str = ""  # file path or coordinate the problem is about
    severity: Severity = Severity.WARNING


class InspectionResult(BaseModel, Generic[T]):
    """A value read from an archive, plus anything that went wrong reading it."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    value: T
    diagnostics: list[Diagnostic] = []

    @property
    def ok(self) -> bool:
        return not self.diagnostics
