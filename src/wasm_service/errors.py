"""Exception hierarchy for compile, engine and project operations."""

from __future__ import annotations


class WasmServiceError(Exception):
    """Base error for all wasm_service failures."""


class UnsupportedTargetError(WasmServiceError):
    """Requested compile target (or language pair) is not supported."""


class CompilationError(WasmServiceError):
    """Compiler backend reported a failed build.

    Parameters
    ----------
    console : str
        Backend console output, surfaced verbatim as the message.
    """

    def __init__(self, console: str) -> None:
        super().__init__(console)
        self.console = console


class ServiceRequestError(WasmServiceError):
    """Backend request failed at the transport or payload level."""


class ConfigurationError(WasmServiceError):
    """Unknown capability or invalid service configuration."""


class CapabilityLoadError(WasmServiceError):
    """Engine could not be located, imported or probed."""


class EngineError(WasmServiceError):
    """Loaded engine failed while transforming an artifact."""


class AssemblyError(EngineError):
    """Text module failed to parse or validate."""


class ProjectLoadError(WasmServiceError):
    """Project template content could not be fetched or parsed."""
