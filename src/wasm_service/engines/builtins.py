"""Built-in engines: wabt and binaryen command-line tools, Python-Markdown."""

from __future__ import annotations

import asyncio
import importlib
import logging
import shutil
import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path
from tempfile import TemporaryDirectory
from types import ModuleType
from typing import TypeVar

from wasm_service.errors import AssemblyError, CapabilityLoadError, EngineError

logger = logging.getLogger(__name__)

WABT_TOOLS = ("wasm2wat", "wat2wasm")
BINARYEN_TOOLS = ("wasm-dis", "wasm2js")
MARKDOWN_EXTENSIONS = ("tables", "fenced_code", "sane_lists")

ToolEngineT = TypeVar("ToolEngineT", bound="_CommandLineEngine")


def _locate_tools(tools: Sequence[str], tool_dir: Path | None) -> dict[str, Path]:
    """Resolve tool executables in ``tool_dir`` first, then on ``PATH``."""
    found: dict[str, Path] = {}
    missing: list[str] = []
    for tool in tools:
        resolved = None
        if tool_dir is not None:
            resolved = shutil.which(tool, path=str(tool_dir))
        resolved = resolved or shutil.which(tool)
        if resolved is None:
            missing.append(tool)
        else:
            found[tool] = Path(resolved)
    if missing:
        raise CapabilityLoadError(f"Missing executables: {', '.join(missing)}")
    return found


def _probe(executable: Path) -> str:
    """Run ``--version`` and return the reported version string."""
    try:
        result = subprocess.run(
            [str(executable), "--version"],
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as exc:
        raise CapabilityLoadError(f"Unable to execute {executable}: {exc}") from exc
    if result.returncode != 0:
        raise CapabilityLoadError(
            f"{executable} --version exited with {result.returncode}: "
            f"{result.stderr.strip()}"
        )
    return result.stdout.strip()


def _run_tool(argv: Sequence[str]) -> subprocess.CompletedProcess[bytes]:
    try:
        return subprocess.run(list(argv), capture_output=True, check=False)
    except OSError as exc:
        raise EngineError(f"Unable to execute {argv[0]}: {exc}") from exc


def _diagnostic(result: subprocess.CompletedProcess[bytes]) -> str:
    return result.stderr.decode("utf-8", errors="replace").strip()


class _CommandLineEngine:
    """Engine backed by a set of located executables."""

    name = ""
    binary_input_name = "module.wasm"

    def __init__(self, tools: Mapping[str, Path], version: str = "") -> None:
        self.tools = dict(tools)
        self.version = version

    def _text_from_binary(self, tool: str, data: bytes, flags: Sequence[str] = ()) -> str:
        with TemporaryDirectory(prefix=f"{self.name}-") as tmp:
            input_path = Path(tmp) / self.binary_input_name
            input_path.write_bytes(data)
            result = _run_tool([str(self.tools[tool]), str(input_path), *flags])
        if result.returncode != 0:
            raise EngineError(f"{tool} failed: {_diagnostic(result)}")
        return result.stdout.decode("utf-8")


class WabtEngine(_CommandLineEngine):
    """WebAssembly Binary Toolkit (``wasm2wat`` / ``wat2wasm``)."""

    name = "Wabt"

    def read_wasm_to_text(
        self,
        data: bytes,
        *,
        read_debug_names: bool = True,
        generate_names: bool = True,
        fold_exprs: bool = False,
        inline_export: bool = True,
    ) -> str:
        flags: list[str] = []
        if not read_debug_names:
            flags.append("--no-debug-names")
        if generate_names:
            flags.append("--generate-names")
        if fold_exprs:
            flags.append("--fold-exprs")
        if inline_export:
            flags.append("--inline-exports")
        return self._text_from_binary("wasm2wat", data, flags)

    def parse_wat_to_binary(self, text: str, *, debug_names: bool = True) -> bytes:
        with TemporaryDirectory(prefix="wabt-") as tmp:
            input_path = Path(tmp) / "module.wat"
            output_path = Path(tmp) / "module.wasm"
            input_path.write_text(text, encoding="utf-8")
            argv = [str(self.tools["wat2wasm"]), str(input_path), "-o", str(output_path)]
            if debug_names:
                argv.append("--debug-names")
            result = _run_tool(argv)
            if result.returncode != 0:
                raise AssemblyError(_diagnostic(result) or "wat2wasm rejected the module")
            return output_path.read_bytes()


class BinaryenEngine(_CommandLineEngine):
    """Binaryen optimizer toolchain (``wasm-dis`` / ``wasm2js``)."""

    name = "Binaryen"

    def emit_text(self, data: bytes) -> str:
        return self._text_from_binary("wasm-dis", data)

    def emit_asmjs(self, data: bytes) -> str:
        return self._text_from_binary("wasm2js", data)


class MarkdownEngine:
    """Python-Markdown renderer with a GitHub-like extension set."""

    name = "Markdown"

    def __init__(self, module: ModuleType) -> None:
        self._module = module

    def make_html(self, source: str) -> str:
        return self._module.markdown(
            source,
            extensions=list(MARKDOWN_EXTENSIONS),
            output_format="html",
        )


async def _load_command_line(
    engine_cls: type[ToolEngineT],
    tools: Sequence[str],
    tool_dir: Path | None,
) -> ToolEngineT:
    located = await asyncio.to_thread(_locate_tools, tools, tool_dir)
    version = await asyncio.to_thread(_probe, located[tools[0]])
    logger.debug("%s tools %s (version %s)", engine_cls.name, located, version)
    return engine_cls(located, version=version)


async def load_wabt(tool_dir: Path | None = None) -> WabtEngine:
    """Locate and probe the wabt tools."""
    return await _load_command_line(WabtEngine, WABT_TOOLS, tool_dir)


async def load_binaryen(tool_dir: Path | None = None) -> BinaryenEngine:
    """Locate and probe the binaryen tools."""
    return await _load_command_line(BinaryenEngine, BINARYEN_TOOLS, tool_dir)


def _import_markdown() -> ModuleType:
    return importlib.import_module("markdown")


async def load_markdown() -> MarkdownEngine:
    """Import Python-Markdown on first use."""
    try:
        module = await asyncio.to_thread(_import_markdown)
    except ModuleNotFoundError as exc:
        raise CapabilityLoadError(
            "Python-Markdown is not installed. Install extra: .[markdown]"
        ) from exc
    return MarkdownEngine(module)
