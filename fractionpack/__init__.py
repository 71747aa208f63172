"""fractionpack: package an application with its dependency closure, minus
whatever the runtime platform already provides.

The engine resolves declared dependencies into a deduplicated closure,
detects platform fractions by their embedded markers, computes a
removable set (aggressive or precise), and answers checksum-based
removability questions for entries of the package being assembled.
"""

__version__ = "0.3.0"
__description__ = (
    "Dependency closure resolution and platform-fraction removal for hollow packaging"
)

from fractionpack.core.dependency_manager import DependencyManager
from fractionpack.core.resolver import LocalRepositoryResolver, ResolutionError
from fractionpack.models.artifacts import ArtifactSpec
from fractionpack.models.declared import DeclaredDependencies

__all__ = [
    "DependencyManager",
    "DeclaredDependencies",
    "ArtifactSpec",
    "LocalRepositoryResolver",
    "ResolutionError",
    "__version__",
]
