"""
stackup Setup Package.

This module handles environment checking and the docker/compose commands
used to bring the stack up.
"""

from stackup.setup.checker import (
    ComponentCheck,
    ComponentStatus,
    EngineInfo,
    MemoryCheck,
    SetupChecker,
)
from stackup.setup.docker_manager import ComposeDialect, ContainerInfo, DockerManager

__all__ = [
    "ComponentCheck",
    "ComponentStatus",
    "ComposeDialect",
    "ContainerInfo",
    "DockerManager",
    "EngineInfo",
    "MemoryCheck",
    "SetupChecker",
]
