"""
stackup configuration settings using Pydantic.

Every value can be overridden from the environment with the STACKUP_
prefix (for example STACKUP_PROJECT_ROOT or STACKUP_HEALTH_TIMEOUT).
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from stackup.core.selection import Service

# Working directory of each service group, relative to the project root
SERVICE_DIRS: dict[Service, tuple[str, ...]] = {
    Service.N8N: ("n8n",),
    Service.SUPABASE: ("supabase",),
    Service.NPM: ("proxy", "npm"),
    Service.CLOUDFLARED: ("proxy", "cloudflared"),
    Service.PORTAINER: ("portainer",),
}

ENV_FILE_NAME = ".env"


def resolve_project_root(start: Path) -> Path:
    """
    Resolve the stack's project root from a starting directory.

    When started from the repository's scripts/manage directory the
    root is two levels up; otherwise the directory itself is the root.
    """
    start = start.resolve()
    if start.parts[-2:] == ("scripts", "manage"):
        return start.parent.parent
    return start


class StackSettings(BaseSettings):
    """
    Main stackup settings.

    Timings are in seconds; memory thresholds in megabytes.
    """

    model_config = SettingsConfigDict(
        env_prefix="STACKUP_",
        extra="ignore",
    )

    project_root: Path | None = Field(
        default=None,
        description="Root of the stack checkout (defaults to the current directory)",
    )
    network_name: str = Field(
        default="n8n-stack-network",
        min_length=1,
        description="Shared docker network the service groups attach to",
    )
    health_timeout: int = Field(
        default=60,
        ge=2,
        le=3600,
        description="Seconds to wait for a container to report healthy",
    )
    health_poll_interval: int = Field(
        default=2,
        ge=1,
        le=60,
        description="Seconds between health status polls",
    )
    phase_delay: float = Field(
        default=8.0,
        ge=0.0,
        le=300.0,
        description="Settle time before Supabase phases 2 to 4",
    )
    final_phase_delay: float = Field(
        default=5.0,
        ge=0.0,
        le=300.0,
        description="Settle time before the Supabase catch-all phase",
    )
    pacing_delay: float = Field(
        default=2.0,
        ge=0.0,
        le=60.0,
        description="Pause before each independently started service group",
    )
    command_timeout: float = Field(
        default=10.0,
        ge=1.0,
        le=300.0,
        description="Timeout for short probe commands (docker info, versions)",
    )
    low_memory_ram_mb: int = Field(
        default=1500,
        ge=0,
        description="RAM below which the host counts as low-memory",
    )
    low_memory_swap_mb: int = Field(
        default=1024,
        ge=0,
        description="Swap below which a low-RAM host triggers the warning",
    )

    @model_validator(mode="after")
    def resolve_root(self) -> StackSettings:
        """Fill in the project root when it was not configured."""
        if self.project_root is None:
            self.project_root = resolve_project_root(Path.cwd())
        else:
            self.project_root = self.project_root.expanduser().resolve()
        return self

    @property
    def root(self) -> Path:
        assert self.project_root is not None
        return self.project_root

    def service_dir(self, service: Service) -> Path:
        """Get the compose working directory of a service group."""
        return self.root.joinpath(*SERVICE_DIRS[service])

    def env_file(self, service: Service) -> Path:
        """Get the key=value configuration file of a service group."""
        return self.service_dir(service) / ENV_FILE_NAME
