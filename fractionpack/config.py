"""Runtime configuration, env-driven.

Reads from a .env file and FRACTIONPACK_* environment variables.
"""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class PackConfig(BaseSettings):
    """Packaging configuration with environment variable overrides.

    Examples
    --------
    Keep two libraries even when aggressive removal would strip them::

        export FRACTIONPACK_REMOVE_ALL_PLATFORM_LIBS=true
        export FRACTIONPACK_USER_DEPENDENCIES=com.acme:util:1.2,org.foo:bar:3.0
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="FRACTIONPACK_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = "INFO"

    # Maven-layout directory searched by the local resolver and module analyzer
    local_repository: Path = Path.home() / ".m2" / "repository"

    # Removal strategy: aggressive when true, precise otherwise
    remove_all_platform_libs: bool = False

    # Comma-separated g:a:v[:classifier] coordinates that are never removed
    user_dependencies: str = ""

    # Coordinate namespace owned by the runtime platform
    platform_group_id: str = "io.thorntail"

    @property
    def user_dependency_whitelist(self) -> set[str]:
        """Parsed never-remove whitelist."""
        return {
            entry.strip()
            for entry in self.user_dependencies.split(",")
            if entry.strip()
        }


# Module-level singleton: import as `from fractionpack.config import config`
config = PackConfig()
