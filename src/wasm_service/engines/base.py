"""Engine protocols and capability identifiers."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Protocol, runtime_checkable

WABT = "wabt"
BINARYEN = "binaryen"
MARKDOWN = "markdown"


class CapabilityState(str, Enum):
    """Load state of a registered capability."""

    UNLOADED = "unloaded"
    LOADING = "loading"
    READY = "ready"


@runtime_checkable
class Engine(Protocol):
    """Loaded engine instance."""

    name: str


@runtime_checkable
class WasmToolkit(Engine, Protocol):
    """Disassemble binary modules and assemble text modules (wabt)."""

    def read_wasm_to_text(
        self,
        data: bytes,
        *,
        read_debug_names: bool = True,
        generate_names: bool = True,
        fold_exprs: bool = False,
        inline_export: bool = True,
    ) -> str:
        """Disassemble ``data`` into the text format.

        Parameters
        ----------
        data : bytes
            Binary module.
        read_debug_names : bool, default=True
            Keep names from the module's ``name`` section.
        generate_names : bool, default=True
            Synthesize names for unnamed items and use them instead of
            positional indices.
        fold_exprs : bool, default=False
            Emit folded (s-expression) instruction layout.
        inline_export : bool, default=True
            Write exports inline on the exported item.
        """

    def parse_wat_to_binary(self, text: str, *, debug_names: bool = True) -> bytes:
        """Parse, resolve names, validate and encode a text module.

        Raises
        ------
        AssemblyError
            If the text does not parse or the module fails validation.
        """


@runtime_checkable
class WasmOptimizer(Engine, Protocol):
    """Read binary modules and emit alternate textual forms (binaryen)."""

    def emit_text(self, data: bytes) -> str:
        """Return the binaryen text rendering of ``data``."""

    def emit_asmjs(self, data: bytes) -> str:
        """Return an asm.js translation of ``data``."""


@runtime_checkable
class MarkdownRenderer(Engine, Protocol):
    """Render markdown documents to HTML."""

    def make_html(self, source: str) -> str:
        """Render ``source`` to an HTML fragment."""


EngineLoader = Callable[[], Awaitable[Engine]]
