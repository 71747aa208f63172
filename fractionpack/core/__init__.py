"""Resolution and removability engine."""

from fractionpack.core.checksum_index import RemovableChecksumIndex
from fractionpack.core.dependency_manager import DependencyAnalysisError, DependencyManager
from fractionpack.core.removal import (
    AggressiveRemoval,
    PreciseRemoval,
    RemovalMode,
    RemovalStrategy,
)
from fractionpack.core.resolver import (
    ArtifactResolver,
    LocalRepositoryResolver,
    ResolutionError,
)

__all__ = [
    "DependencyManager",
    "DependencyAnalysisError",
    "ArtifactResolver",
    "LocalRepositoryResolver",
    "ResolutionError",
    "RemovalMode",
    "RemovalStrategy",
    "AggressiveRemoval",
    "PreciseRemoval",
    "RemovableChecksumIndex",
]
