"""Archive inspection: marker files, embedded descriptors and packaged entries.

Every archive is opened in a ``with`` block so the handle is released on
every exit path, parse errors included. A missing file yields the empty
value without complaint; an unreadable archive or malformed descriptor
yields the empty value plus a WARNING diagnostic.
"""

from __future__ import annotations

import io
import logging
import zipfile
import zlib
from collections.abc import Callable
from pathlib import Path
from typing import BinaryIO, Protocol, TypeVar, runtime_checkable

import yaml
from pydantic import ValidationError

from fractionpack.models.diagnostics import (
    Diagnostic,
    DiagnosticCode,
    InspectionResult,
)
from fractionpack.models.manifest import FractionManifest

logger = logging.getLogger(__name__)

T = TypeVar("T")

FRACTION_MANIFEST_LOCATION = "META-INF/fraction-manifest.yaml"
MODULES_CONF_LOCATION = "wildfly-swarm-modules.conf"
MAVEN_DEPENDENCIES_LOCATION = "META-INF/maven-dependencies.txt"
MODULES_PREFIX = "modules/"
MODULE_XML_NAME = "module.xml"

# Raised by zipfile for unreadable archives and members: corrupt compressed
# data, truncated members, encrypted members, unsupported compression
ARCHIVE_READ_ERRORS = (
    zipfile.BadZipFile,
    OSError,
    zlib.error,
    EOFError,
    RuntimeError,
    NotImplementedError,
)


def _inspect(
    file: Path | None,
    what: str,
    reader: Callable[[zipfile.ZipFile], T],
    default: T,
) -> InspectionResult[T]:
    if file is None or not Path(file).is_file():
        return InspectionResult(value=default)
    try:
        with zipfile.ZipFile(file) as jar:
            return InspectionResult(value=reader(jar))
    except ARCHIVE_READ_ERRORS as exc:
        code = DiagnosticCode.UNREADABLE_ARCHIVE
        error = exc
    except (yaml.YAMLError, ValidationError, UnicodeDecodeError, ValueError) as exc:
        code = DiagnosticCode.MALFORMED_DESCRIPTOR
        error = exc
    logger.warning("Skipping %s of %s: %s", what, file, error)
    return InspectionResult(
        value=default,
        diagnostics=[
            Diagnostic(code=code, message=f"Cannot read {what}: {error}", subject=str(file))
        ],
    )


def _has_entry(jar: zipfile.ZipFile, name: str) -> bool:
    try:
        jar.getinfo(name)
    except KeyError:
        return False
    return True


def has_entry(file: Path | None, name: str) -> InspectionResult[bool]:
    """Test whether the archive contains an entry called ``name``."""
    return _inspect(file, name, lambda jar: _has_entry(jar, name), False)


def is_fraction_jar(file: Path | None) -> bool:
    """True if the archive carries a fraction manifest marker."""
    return has_entry(file, FRACTION_MANIFEST_LOCATION).value


def is_config_api_modules_jar(file: Path | None) -> bool:
    """True if the archive carries a platform modules configuration marker."""
    return has_entry(file, MODULES_CONF_LOCATION).value


def fraction_manifest(file: Path | None) -> InspectionResult[FractionManifest | None]:
    """Parse the embedded fraction manifest, or ``None`` if there is none."""

    def read(jar: zipfile.ZipFile) -> FractionManifest | None:
        if not _has_entry(jar, FRACTION_MANIFEST_LOCATION):
            return None
        with jar.open(FRACTION_MANIFEST_LOCATION) as stream:
            return FractionManifest.from_yaml(stream.read())

    return _inspect(file, FRACTION_MANIFEST_LOCATION, read, None)


def maven_dependencies(file: Path | None) -> InspectionResult[list[str]]:
    """Read the embedded dependency list, one coordinate per non-blank line."""

    def read(jar: zipfile.ZipFile) -> list[str]:
        if not _has_entry(jar, MAVEN_DEPENDENCIES_LOCATION):
            return []
        with jar.open(MAVEN_DEPENDENCIES_LOCATION) as stream:
            text = io.TextIOWrapper(stream, encoding="utf-8")
            return [line.strip() for line in text if line.strip()]

    return _inspect(file, MAVEN_DEPENDENCIES_LOCATION, read, [])


def find_module_xmls(file: Path | None) -> InspectionResult[list[tuple[str, bytes]]]:
    """Return ``(entry name, contents)`` for every ``modules/**/module.xml``."""

    def read(jar: zipfile.ZipFile) -> list[tuple[str, bytes]]:
        found = []
        for name in jar.namelist():
            if name.startswith(MODULES_PREFIX) and name.rsplit("/", 1)[-1] == MODULE_XML_NAME:
                found.append((name, jar.read(name)))
        return found

    return _inspect(file, "module descriptors", read, [])


# ---------------------------------------------------------------------------
# Packaged entries
# ---------------------------------------------------------------------------


@runtime_checkable
class PackagedEntry(Protocol):
    """A piece of content headed for the packaged archive.

    ``open_stream`` returns ``None`` when the entry has no content
    (a directory node), which is never removable.
    """

    name: str

    def open_stream(self) -> BinaryIO | None:
        ...


class FileEntry:
    """An entry backed by a file on disk."""

    def __init__(self, path: Path, name: str | None = None) -> None:
        self.path = Path(path)
        self.name = name or self.path.name

    def open_stream(self) -> BinaryIO | None:
        if self.path.is_dir():
            return None
        return open(self.path, "rb")


class ZipMemberEntry:
    """An entry stored inside another archive, e.g. ``WEB-INF/lib/foo.jar``."""

    def __init__(self, archive: Path, name: str) -> None:
        self.archive = Path(archive)
        self.name = name

    def open_stream(self) -> BinaryIO | None:
        if self.name.endswith("/"):
            return None
        with zipfile.ZipFile(self.archive) as outer:
            try:
                data = outer.read(self.name)
            except KeyError:
                return None
        return io.BytesIO(data)


def iter_entries(archive: Path) -> list[ZipMemberEntry]:
    """List the file members of ``archive`` as packaged entries."""
    with zipfile.ZipFile(archive) as outer:
        names = [name for name in outer.namelist() if not name.endswith("/")]
    return [ZipMemberEntry(archive, name) for name in names]
