"""Unit tests for CLI command behavior."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from wasm_service.cli import cli as cli_module
from wasm_service.errors import AssemblyError, CompilationError
from wasm_service.model import File, Project
from wasm_service.types import FileData, FileType, Language

runner = CliRunner()
MODULE = b"\0asm\x01\0\0\0"


class _FakeService:
    """Stand-in for StudioService recording the calls it receives."""

    def __init__(self, outputs: dict[str, FileData] | None = None) -> None:
        self.outputs = outputs or {}
        self.calls: list[tuple[str, object]] = []

    async def compile_files(
        self, files: list[File], source: Language, target: str, options: str
    ) -> dict[str, FileData]:
        self.calls.append(("compile", ([f.get_path() for f in files], source, target, options)))
        if not self.outputs:
            raise CompilationError("error[E0425]: cannot find value `x` in this scope")
        return self.outputs

    async def disassemble_wasm_with_wabt(self, file: File) -> File:
        self.calls.append(("wabt", file.name))
        assert file.parent is not None
        output = file.parent.new_file(file.name + ".wat", FileType.WAT)
        output.set_data("(module)")
        return output

    async def assemble_wat_with_wabt(self, file: File) -> File:
        raise AssemblyError("error: unexpected token")

    async def compile_markdown_to_html(self, src: str) -> str:
        return f"<p>{src.strip()}</p>"

    async def load_project(
        self, tree: dict[str, object], project: Project, *, base_path: str | None = None
    ) -> dict[str, object]:
        self.calls.append(("load_project", base_path))
        project.name = str(tree["name"])
        project.new_directory("src").new_file("main.rs", "rust").set_data("fn main() {}")
        return tree


def _use_service(monkeypatch: pytest.MonkeyPatch, service: _FakeService) -> None:
    monkeypatch.setattr(cli_module, "_service", lambda ctx: service)


def test_help_shows_commands() -> None:
    """Ensure top-level help lists the compile and post-processing commands."""
    result = runner.invoke(cli_module.app, ["--help"])
    assert result.exit_code == 0
    for command in ("compile", "disassemble", "assemble", "to-asmjs", "markdown", "doctor"):
        assert command in result.output


def test_compile_writes_primary_and_companion(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Write a.wasm and wasm_bindgen.js from the backend outputs."""
    source = tmp_path / "main.rs"
    source.write_text("fn main() {}", encoding="utf-8")
    service = _FakeService({"a.wasm": MODULE, "wasm_bindgen.js": "export {};", "log.txt": "x"})
    _use_service(monkeypatch, service)

    result = runner.invoke(
        cli_module.app,
        ["compile", str(source), "-l", "rust", "--options", "-O", "--output-dir", str(tmp_path / "out")],
    )

    assert result.exit_code == 0, result.output
    assert (tmp_path / "out" / "a.wasm").read_bytes() == MODULE
    assert (tmp_path / "out" / "wasm_bindgen.js").read_text(encoding="utf-8") == "export {};"
    assert not (tmp_path / "out" / "log.txt").exists()
    assert service.calls == [("compile", (["main.rs"], Language.RUST, "wasm", "-O"))]


def test_compile_all_outputs(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Write every backend output when requested."""
    source = tmp_path / "main.c"
    source.write_text("int main() { return 0; }", encoding="utf-8")
    _use_service(monkeypatch, _FakeService({"a.wasm": MODULE, "log.txt": "ok"}))

    result = runner.invoke(
        cli_module.app,
        ["compile", str(source), "-l", "c", "--all-outputs", "--output-dir", str(tmp_path)],
    )

    assert result.exit_code == 0, result.output
    assert (tmp_path / "log.txt").read_text(encoding="utf-8") == "ok"


def test_compile_failure_surfaces_console(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Exit non-zero and print the compiler diagnostics."""
    source = tmp_path / "main.rs"
    source.write_text("fn main() { x }", encoding="utf-8")
    _use_service(monkeypatch, _FakeService())

    result = runner.invoke(cli_module.app, ["compile", str(source), "-l", "rust"])

    assert result.exit_code == 1
    assert "CompilationError" in result.output
    assert "cannot find value `x`" in result.output


def test_compile_without_primary_output_fails(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Fail when the backend returns no a.wasm."""
    source = tmp_path / "main.rs"
    source.write_text("fn main() {}", encoding="utf-8")
    _use_service(monkeypatch, _FakeService({"log.txt": "warning"}))

    result = runner.invoke(
        cli_module.app, ["compile", str(source), "-l", "rust", "--output-dir", str(tmp_path)]
    )

    assert result.exit_code == 1
    assert "a.wasm" in result.output


def test_disassemble_writes_sibling(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Save the .wat output next to the module."""
    module = tmp_path / "a.wasm"
    module.write_bytes(MODULE)
    service = _FakeService()
    _use_service(monkeypatch, service)

    result = runner.invoke(cli_module.app, ["disassemble", str(module)])

    assert result.exit_code == 0, result.output
    assert (tmp_path / "a.wasm.wat").read_text(encoding="utf-8") == "(module)"
    assert service.calls == [("wabt", "a.wasm")]


def test_disassemble_rejects_unknown_engine(tmp_path: Path) -> None:
    """Reject engines other than wabt and binaryen."""
    module = tmp_path / "a.wasm"
    module.write_bytes(MODULE)
    result = runner.invoke(cli_module.app, ["disassemble", str(module), "--engine", "v8"])
    assert result.exit_code != 0


def test_assemble_failure_exits_cleanly(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Report assembly errors without a traceback unless --debug is set."""
    text = tmp_path / "bad.wat"
    text.write_text("(module", encoding="utf-8")
    _use_service(monkeypatch, _FakeService())

    result = runner.invoke(cli_module.app, ["assemble", str(text)])

    assert result.exit_code == 1
    assert "AssemblyError" in result.output
    assert "Traceback" not in result.output
    assert not (tmp_path / "bad.wat.wasm").exists()


def test_markdown_missing_deps(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Ensure a missing markdown extra surfaces a user-facing CLI error."""
    doc = tmp_path / "README.md"
    doc.write_text("# Title", encoding="utf-8")
    monkeypatch.setattr(cli_module, "_is_importable", lambda name: name != "markdown")

    result = runner.invoke(cli_module.app, ["markdown", str(doc)])

    assert result.exit_code != 0
    assert "Missing optional dependencies" in result.output


def test_markdown_writes_output(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Write rendered HTML to the requested path."""
    doc = tmp_path / "README.md"
    doc.write_text("hello\n", encoding="utf-8")
    monkeypatch.setattr(cli_module, "_is_importable", lambda name: True)
    _use_service(monkeypatch, _FakeService())

    result = runner.invoke(cli_module.app, ["markdown", str(doc), "-o", str(tmp_path / "out.html")])

    assert result.exit_code == 0, result.output
    assert (tmp_path / "out.html").read_text(encoding="utf-8") == "<p>hello</p>"


def test_load_project_lists_and_materializes(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """List the loaded tree and write its files to disk."""
    template = tmp_path / "project.json"
    template.write_text(json.dumps({"name": "Hello", "children": []}), encoding="utf-8")
    service = _FakeService()
    _use_service(monkeypatch, service)

    result = runner.invoke(
        cli_module.app,
        [
            "load-project",
            str(template),
            "--base-path",
            "templates/hello",
            "--output-dir",
            str(tmp_path / "tree"),
        ],
    )

    assert result.exit_code == 0, result.output
    assert "Project: Hello" in result.output
    assert "src/main.rs (rust)" in result.output
    assert (tmp_path / "tree" / "src" / "main.rs").read_text(encoding="utf-8") == "fn main() {}"
    assert service.calls == [("load_project", "templates/hello")]


def test_load_project_rejects_invalid_json(tmp_path: Path) -> None:
    """Reject template files that are not JSON."""
    template = tmp_path / "project.json"
    template.write_text("{not json", encoding="utf-8")
    result = runner.invoke(cli_module.app, ["load-project", str(template)])
    assert result.exit_code != 0


def test_invalid_config_file_exits(tmp_path: Path) -> None:
    """Exit with an error when the config file is malformed."""
    config = tmp_path / "config.json"
    config.write_text("[]", encoding="utf-8")
    result = runner.invoke(cli_module.app, ["--config", str(config), "doctor"])
    assert result.exit_code == 1
    assert "ConfigurationError" in result.output


def test_doctor_reports_engine_state(monkeypatch: pytest.MonkeyPatch) -> None:
    """Print every registered engine with its load state."""
    from wasm_service.engines import registry as registry_module
    from wasm_service.engines.registry import CapabilityRegistry
    from wasm_service.errors import CapabilityLoadError

    class _Renderer:
        name = "Markdown"

        def make_html(self, source: str) -> str:
            return source

    async def load_renderer() -> _Renderer:
        return _Renderer()

    async def load_missing() -> _Renderer:
        raise CapabilityLoadError("Missing executables: wasm2wat")

    def fake_registry(config: object = None) -> CapabilityRegistry:
        registry = CapabilityRegistry()
        registry.register("wabt", load_missing)
        registry.register("markdown", load_renderer)
        return registry

    monkeypatch.setattr(registry_module, "create_default_registry", fake_registry)

    result = runner.invoke(cli_module.app, ["doctor"])

    assert result.exit_code == 0, result.output
    assert "Python:" in result.output
    assert "wabt: <unavailable:" in result.output
    assert "markdown: ready" in result.output
