"""Client-side orchestration for remote wasm compilation and local post-processing."""

from __future__ import annotations

from typing import TYPE_CHECKING

from wasm_service.errors import (
    AssemblyError,
    CapabilityLoadError,
    CompilationError,
    ConfigurationError,
    EngineError,
    ProjectLoadError,
    ServiceRequestError,
    UnsupportedTargetError,
    WasmServiceError,
)
from wasm_service.types import FileType, Language, ServiceType

if TYPE_CHECKING:
    from wasm_service.api import StudioService
    from wasm_service.config import ServiceConfig

__version__ = "0.1.0"


def create_service(config: ServiceConfig | None = None) -> StudioService:
    """Create a :class:`~wasm_service.api.StudioService` with default engines.

    Parameters
    ----------
    config : ServiceConfig | None, default=None
        Service configuration. ``load_config()`` is used when omitted, so
        ``WASM_SERVICE_*`` environment variables apply.
    """
    from .api import StudioService
    from .config import load_config

    return StudioService(config or load_config())


__all__ = [
    "AssemblyError",
    "CapabilityLoadError",
    "CompilationError",
    "ConfigurationError",
    "EngineError",
    "FileType",
    "Language",
    "ProjectLoadError",
    "ServiceRequestError",
    "ServiceType",
    "UnsupportedTargetError",
    "WasmServiceError",
    "create_service",
]
