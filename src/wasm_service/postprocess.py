"""Post-processing of build artifacts through the registered engines.

Every ``*_with_*`` operation ensures its capability, transforms the source
file's content and writes the result into a new sibling file named after the
source plus a fixed suffix. The source file is never modified.
"""

from __future__ import annotations

from wasm_service.engines.base import (
    BINARYEN,
    MARKDOWN,
    WABT,
    MarkdownRenderer,
    WasmOptimizer,
    WasmToolkit,
)
from wasm_service.engines.registry import CapabilityRegistry
from wasm_service.errors import EngineError
from wasm_service.model import File
from wasm_service.types import FileData, FileType

WAT_SUFFIX = ".wat"
WASM_SUFFIX = ".wasm"
ASMJS_SUFFIX = ".asm.js"


def _as_bytes(file: File) -> bytes:
    data = file.get_data()
    if isinstance(data, str):
        raise EngineError(f"{file.name} does not hold a binary module.")
    return data


def _as_text(file: File) -> str:
    data = file.get_data()
    if isinstance(data, bytes):
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise EngineError(f"{file.name} does not hold UTF-8 text.") from exc
    return data


def _emit_sibling(
    source: File,
    suffix: str,
    file_type: FileType,
    verb: str,
    engine_name: str,
    data: FileData,
) -> File:
    if source.parent is None:
        raise EngineError(f"{source.name} is not attached to a directory.")
    output = source.parent.new_file(source.name + suffix, file_type)
    output.description = f"{verb} from {source.name} using {engine_name}."
    output.set_data(data)
    return output


async def disassemble_wasm(registry: CapabilityRegistry, data: bytes) -> str:
    """Disassemble a binary module into readable text.

    Debug names are read and synthesized names applied, so identifiers are
    names rather than indices; expressions stay unfolded and exports inline.
    """
    wabt = await registry.get(WABT, WasmToolkit)
    return wabt.read_wasm_to_text(
        data,
        read_debug_names=True,
        generate_names=True,
        fold_exprs=False,
        inline_export=True,
    )


async def disassemble_wasm_with_wabt(registry: CapabilityRegistry, file: File) -> File:
    result = await disassemble_wasm(registry, _as_bytes(file))
    return _emit_sibling(file, WAT_SUFFIX, FileType.WAT, "Disassembled", "Wabt", result)


async def assemble_wat(registry: CapabilityRegistry, wat: str) -> bytes:
    """Assemble text into a validated binary module that keeps debug names.

    Raises
    ------
    AssemblyError
        If parsing, name resolution or validation fails.
    """
    wabt = await registry.get(WABT, WasmToolkit)
    return wabt.parse_wat_to_binary(wat, debug_names=True)


async def assemble_wat_with_wabt(registry: CapabilityRegistry, file: File) -> File:
    result = await assemble_wat(registry, _as_text(file))
    return _emit_sibling(file, WASM_SUFFIX, FileType.WASM, "Assembled", "Wabt", result)


async def disassemble_wasm_with_binaryen(
    registry: CapabilityRegistry, file: File
) -> File:
    binaryen = await registry.get(BINARYEN, WasmOptimizer)
    result = binaryen.emit_text(_as_bytes(file))
    return _emit_sibling(
        file, WAT_SUFFIX, FileType.WAT, "Disassembled", "Binaryen", result
    )


async def convert_wasm_to_asm_with_binaryen(
    registry: CapabilityRegistry, file: File
) -> File:
    """Translate a binary module into asm.js alongside the source file."""
    binaryen = await registry.get(BINARYEN, WasmOptimizer)
    result = binaryen.emit_asmjs(_as_bytes(file))
    return _emit_sibling(
        file, ASMJS_SUFFIX, FileType.JAVASCRIPT, "Converted", "Binaryen", result
    )


async def compile_markdown_to_html(registry: CapabilityRegistry, src: str) -> str:
    """Render markdown to HTML with tables enabled; the tree is left untouched."""
    renderer = await registry.get(MARKDOWN, MarkdownRenderer)
    return renderer.make_html(src)
