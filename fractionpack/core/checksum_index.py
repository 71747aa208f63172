"""Lazily built checksum index over removable artifacts.

Packaged entries are matched against removable artifacts by content, so a
byte-identical copy stored under another name is still recognized. The
index is built once, on first query, and may be queried concurrently.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable

from fractionpack.core.archive import ARCHIVE_READ_ERRORS, PackagedEntry
from fractionpack.core.hasher import sha1_file, sha1_stream
from fractionpack.models.artifacts import ArtifactSpec
from fractionpack.models.diagnostics import Diagnostic, DiagnosticCode

logger = logging.getLogger(__name__)


class RemovableChecksumIndex:
    """SHA-1 digests of every removable artifact.

    Parameters
    ----------
    members:
        Called once, at build time, to obtain the removable artifacts.
    """

    def __init__(self, members: Callable[[], Iterable[ArtifactSpec]]) -> None:
        self._members = members
        self._checksums: frozenset[str] | None = None
        self._lock = threading.Lock()
        self._diagnostics: list[Diagnostic] = []
        self.build_count = 0

    @property
    def checksums(self) -> frozenset[str]:
        checksums = self._checksums
        if checksums is not None:
            return checksums
        with self._lock:
            if self._checksums is None:
                self._checksums = self._build()
            return self._checksums

    @property
    def built(self) -> bool:
        return self._checksums is not None

    @property
    def diagnostics(self) -> list[Diagnostic]:
        with self._lock:
            return list(self._diagnostics)

    def _build(self) -> frozenset[str]:
        # Runs under self._lock
        self.build_count += 1
        checksums = set()
        for spec in self._members():
            digest = self._checksum(spec)
            if digest is not None:
                checksums.add(digest)
        logger.debug("Built removable checksum index with %d entries", len(checksums))
        return frozenset(checksums)

    def _checksum(self, spec: ArtifactSpec) -> str | None:
        if spec.sha1sum:
            return spec.sha1sum.lower()
        if spec.file is None:
            logger.debug("No file for removable %s, not indexed", spec.maven_gav())
            return None
        try:
            return sha1_file(spec.file)
        except OSError as exc:
            logger.warning("Cannot checksum %s: %s", spec.file, exc)
            self._diagnostics.append(
                Diagnostic(
                    code=DiagnosticCode.CHECKSUM_FAILED,
                    message=str(exc),
                    subject=spec.maven_gav(),
                )
            )
            return None

    def contains_entry(self, entry: PackagedEntry) -> bool:
        """True if ``entry``'s content matches a removable artifact.

        Failing to read the entry answers ``False``: nothing is removed on error.
        """
        checksums = self.checksums
        try:
            stream = entry.open_stream()
            if stream is None:
                return False
            with stream:
                digest = sha1_stream(stream)
        except ARCHIVE_READ_ERRORS as exc:
            logger.warning("Cannot checksum entry %s: %s", entry.name, exc)
            with self._lock:
                self._diagnostics.append(
                    Diagnostic(
                        code=DiagnosticCode.ENTRY_CHECKSUM_FAILED,
                        message=str(exc),
                        subject=entry.name,
                    )
                )
            return False
        return digest in checksums
