"""Engine capabilities and their registry."""

from .base import (
    BINARYEN,
    MARKDOWN,
    WABT,
    CapabilityState,
    Engine,
    MarkdownRenderer,
    WasmOptimizer,
    WasmToolkit,
)
from .registry import CapabilityRegistry, create_default_registry

__all__ = [
    "BINARYEN",
    "CapabilityRegistry",
    "CapabilityState",
    "Engine",
    "MARKDOWN",
    "MarkdownRenderer",
    "WABT",
    "WasmOptimizer",
    "WasmToolkit",
    "create_default_registry",
]
