#!/usr/bin/env python3
"""
wasm_service.cli.cli

Typer-based CLI for compiling sources remotely and post-processing modules.

Engines are optional: wabt and binaryen are located on ``PATH`` (or through
``WASM_SERVICE_WABT_DIR`` / ``WASM_SERVICE_BINARYEN_DIR``), Python-Markdown
comes with the ``markdown`` extra.

Examples
--------
Compile a Rust file and write ``a.wasm`` (plus ``wasm_bindgen.js``):

    wasm-studio compile src/main.rs --language rust --output-dir build

Disassemble and reassemble:

    wasm-studio disassemble build/a.wasm
    wasm-studio assemble build/a.wasm.wat
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
import traceback
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, TypeVar

import typer

from wasm_service.errors import WasmServiceError
from wasm_service.types import FileData, FileType, Language

if TYPE_CHECKING:
    from wasm_service.api import StudioService
    from wasm_service.model import File

app = typer.Typer(
    name="wasm-studio",
    help="Compile sources to WebAssembly and post-process the resulting modules.",
    no_args_is_help=True,
)

CONFIG_HELP = "JSON config file (serviceUrl / rustc / clang endpoints)."
T = TypeVar("T")


# -----------------------------
# Dependency checks / utilities
# -----------------------------
@dataclass(frozen=True)
class MissingDep:
    """Represent a missing optional dependency."""

    import_name: str
    extra_name: str
    purpose: str


def _is_importable(module: str) -> bool:
    """Check whether a module can be resolved."""
    try:
        import importlib.util

        return importlib.util.find_spec(module) is not None
    except (ImportError, ValueError):
        return False


def _require_deps(missing: Sequence[MissingDep]) -> None:
    """Raise a Typer error if any required deps are missing."""
    not_found = [d for d in missing if not _is_importable(d.import_name)]
    if not not_found:
        return

    extras = sorted({d.extra_name for d in not_found})
    details = "\n".join(
        f"- Missing '{d.import_name}' ({d.purpose}). Install extra: .[{d.extra_name}]"
        for d in not_found
    )
    msg = (
        "Missing optional dependencies for this command.\n\n"
        f"{details}\n\n"
        "Install with pip:\n"
        f'  pip install "wasm-studio-service[{",".join(extras)}]"\n'
    )
    raise typer.BadParameter(msg)


def _print_error(exc: Exception, debug: bool) -> int:
    """Print a user-friendly error and return the process exit code."""
    typer.echo(f"[red]✗ {type(exc).__name__}:[/red] {exc}", err=True)
    if debug:
        typer.echo("\n[dim]Traceback:[/dim]", err=True)
        typer.echo("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)), err=True)
    return 1


def _run(ctx: typer.Context, action: Callable[[], Awaitable[T]]) -> T:
    """Run an async action, mapping service errors to a clean exit."""
    debug: bool = bool(ctx.obj.get("debug", False))
    try:
        return asyncio.run(action())
    except WasmServiceError as exc:
        raise typer.Exit(code=_print_error(exc, debug))
    except Exception as exc:
        logging.getLogger(__name__).exception("unexpected CLI failure")
        raise typer.Exit(code=_print_error(exc, debug))


def _service(ctx: typer.Context) -> StudioService:
    from wasm_service.api import StudioService

    return StudioService(ctx.obj["config"])


def _attach_local_file(path: Path, file_type: FileType, binary: bool) -> File:
    """Wrap a local file in a one-entry project so siblings can be emitted."""
    from wasm_service.model import File, Project

    project = Project(path.parent.name)
    data: FileData = path.read_bytes() if binary else path.read_text(encoding="utf-8")
    return project.add_file(File(path.name, file_type, data))


def _write_output(directory: Path, name: str, data: FileData) -> Path:
    target = directory / name
    target.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(data, bytes):
        target.write_bytes(data)
    else:
        target.write_text(data, encoding="utf-8")
    return target


# -----------------------------
# Global options
# -----------------------------
@app.callback()
def _main(
    ctx: typer.Context,
    debug: bool = typer.Option(False, "--debug", help="Show full tracebacks and debug logs."),
    config_path: Path | None = typer.Option(
        None, "--config", exists=True, readable=True, help=CONFIG_HELP
    ),
) -> None:
    """Initialize shared CLI state."""
    from wasm_service.config import load_config

    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        config = load_config(config_path)
    except WasmServiceError as exc:
        raise typer.Exit(code=_print_error(exc, debug))
    ctx.obj = {"debug": debug, "config": config}


# -----------------------------
# Commands
# -----------------------------
@app.command("compile")
def compile_cmd(
    ctx: typer.Context,
    sources: list[Path] = typer.Argument(
        ..., exists=True, readable=True, dir_okay=False, help="Source files to compile."
    ),
    language: Language = typer.Option(
        ..., "--language", "-l", help="Source language (rust, c, cpp, wat)."
    ),
    target: str = typer.Option("wasm", "--target", help="Compile target."),
    options: str = typer.Option("", "--options", help="Compiler flags passed verbatim."),
    output_dir: Path = typer.Option(Path("."), "--output-dir", help="Directory for outputs."),
    all_outputs: bool = typer.Option(
        False, "--all-outputs", help="Write every backend output, not only a.wasm/wasm_bindgen.js."
    ),
) -> None:
    """Compile SOURCES on the remote backend and write the results."""
    from wasm_service.compiler.artifacts import (
        COMPANION_OUTPUT_FILENAME,
        PRIMARY_OUTPUT_FILENAME,
        resolve_bindings,
    )
    from wasm_service.model import File, Project

    project = Project("cli")
    files = [
        project.add_file(File(path.name, language.value, path.read_text(encoding="utf-8")))
        for path in sources
    ]
    outputs = _run(
        ctx, lambda: _service(ctx).compile_files(files, language, target, options)
    )
    if all_outputs:
        for name, data in outputs.items():
            typer.echo(f"[green]✓ Saved:[/green] {_write_output(output_dir, name, data)}")
        return

    artifacts = resolve_bindings(outputs)
    if artifacts.wasm is None:
        typer.echo(f"[red]✗ Backend produced no {PRIMARY_OUTPUT_FILENAME}.[/red]", err=True)
        raise typer.Exit(code=1)
    typer.echo(
        f"[green]✓ Saved:[/green] {_write_output(output_dir, PRIMARY_OUTPUT_FILENAME, artifacts.wasm)}"
    )
    if artifacts.wasm_bindgen_js is not None:
        saved = _write_output(output_dir, COMPANION_OUTPUT_FILENAME, artifacts.wasm_bindgen_js)
        typer.echo(f"[green]✓ Saved:[/green] {saved}")


@app.command("disassemble")
def disassemble_cmd(
    ctx: typer.Context,
    module_path: Path = typer.Argument(..., exists=True, readable=True, help="Path to a .wasm module."),
    engine: str = typer.Option("wabt", "--engine", help="Disassembler engine: wabt or binaryen."),
) -> None:
    """Disassemble a binary module into <module>.wat."""
    if engine not in {"wabt", "binaryen"}:
        raise typer.BadParameter("engine must be one of: wabt, binaryen")
    file = _attach_local_file(module_path, FileType.WASM, binary=True)
    service = _service(ctx)
    if engine == "wabt":
        output = _run(ctx, lambda: service.disassemble_wasm_with_wabt(file))
    else:
        output = _run(ctx, lambda: service.disassemble_wasm_with_binaryen(file))
    typer.echo(f"[green]✓ Saved:[/green] {_write_output(module_path.parent, output.name, output.data)}")


@app.command("assemble")
def assemble_cmd(
    ctx: typer.Context,
    text_path: Path = typer.Argument(..., exists=True, readable=True, help="Path to a .wat module."),
) -> None:
    """Assemble a text module into <module>.wasm."""
    file = _attach_local_file(text_path, FileType.WAT, binary=False)
    output = _run(ctx, lambda: _service(ctx).assemble_wat_with_wabt(file))
    typer.echo(f"[green]✓ Saved:[/green] {_write_output(text_path.parent, output.name, output.data)}")


@app.command("to-asmjs")
def to_asmjs_cmd(
    ctx: typer.Context,
    module_path: Path = typer.Argument(..., exists=True, readable=True, help="Path to a .wasm module."),
) -> None:
    """Convert a binary module into <module>.asm.js with binaryen."""
    file = _attach_local_file(module_path, FileType.WASM, binary=True)
    output = _run(ctx, lambda: _service(ctx).convert_wasm_to_asm_with_binaryen(file))
    typer.echo(f"[green]✓ Saved:[/green] {_write_output(module_path.parent, output.name, output.data)}")


@app.command("markdown")
def markdown_cmd(
    ctx: typer.Context,
    source_path: Path = typer.Argument(..., exists=True, readable=True, help="Markdown document."),
    output_path: Path | None = typer.Option(
        None, "--output", "-o", help="Write HTML here instead of stdout."
    ),
) -> None:
    """Render a markdown document to HTML."""
    _require_deps([MissingDep("markdown", "markdown", "Markdown rendering")])
    source = source_path.read_text(encoding="utf-8")
    html = _run(ctx, lambda: _service(ctx).compile_markdown_to_html(source))
    if output_path is None:
        typer.echo(html)
        return
    output_path.write_text(html, encoding="utf-8")
    typer.echo(f"[green]✓ Saved:[/green] {output_path}")


@app.command("load-project")
def load_project_cmd(
    ctx: typer.Context,
    template_path: Path = typer.Argument(..., exists=True, readable=True, help="Template JSON file."),
    base_path: str | None = typer.Option(
        None, "--base-path", help="Location (directory or URL) holding template file content."
    ),
    output_dir: Path | None = typer.Option(
        None, "--output-dir", help="Materialize the project tree into this directory."
    ),
) -> None:
    """Load a project template and list (or materialize) its files."""
    from wasm_service.model import Directory, Project

    try:
        tree = json.loads(template_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise typer.BadParameter(f"{template_path} is not valid JSON: {exc}") from exc
    project = Project()
    _run(ctx, lambda: _service(ctx).load_project(tree, project, base_path=base_path))

    typer.echo(f"Project: {project.name}")
    for node in project.walk():
        if isinstance(node, Directory):
            typer.echo(f"  {node.get_path()}/")
            continue
        typer.echo(f"  {node.get_path()} ({node.type!s})")
        if output_dir is not None:
            _write_output(output_dir, node.get_path(), node.data)
    if output_dir is not None:
        typer.echo(f"[green]✓ Saved:[/green] {output_dir}")


@app.command("doctor")
def doctor_cmd(ctx: typer.Context) -> None:
    """Print Python version and the load state of every engine."""
    from wasm_service.engines.registry import create_default_registry

    typer.echo(f"Python: {sys.version.split()[0]}")
    registry = create_default_registry(ctx.obj["config"])

    async def _probe_all() -> dict[str, str]:
        report: dict[str, str] = {}
        for name in registry.names():
            try:
                await registry.ensure(name)
            except WasmServiceError as exc:
                report[name] = f"<unavailable: {exc}>"
            else:
                report[name] = registry.state(name).value
        return report

    for name, status in asyncio.run(_probe_all()).items():
        typer.echo(f"{name}: {status}")


def main() -> None:
    """Console script entrypoint."""
    app()


if __name__ == "__main__":
    main()
