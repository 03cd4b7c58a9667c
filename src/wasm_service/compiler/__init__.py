"""Compile request dispatch and output resolution."""

from .artifacts import (
    COMPANION_OUTPUT_FILENAME,
    PRIMARY_OUTPUT_FILENAME,
    BuildArtifacts,
    resolve_bindings,
)
from .dispatcher import CompilationDispatcher
from .services import RemoteCompilerService, ServiceClient, create_compiler_service

__all__ = [
    "BuildArtifacts",
    "COMPANION_OUTPUT_FILENAME",
    "CompilationDispatcher",
    "PRIMARY_OUTPUT_FILENAME",
    "RemoteCompilerService",
    "ServiceClient",
    "create_compiler_service",
    "resolve_bindings",
]
