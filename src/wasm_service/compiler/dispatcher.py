"""Compilation dispatch: request envelope, backend call and result validation."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Protocol, TypeAlias

import httpx
from pydantic import ValidationError

from wasm_service.compiler.artifacts import BuildArtifacts, resolve_bindings
from wasm_service.compiler.services import create_compiler_service
from wasm_service.config import ServiceConfig
from wasm_service.errors import CompilationError, UnsupportedTargetError, WasmServiceError
from wasm_service.schemas import CompileRequestPayload, SourceFilePayload
from wasm_service.types import FileData, Language

logger = logging.getLogger(__name__)

SUPPORTED_TARGET = Language.WASM


class SourceFile(Protocol):
    """Tree file accepted as compile input."""

    @property
    def data(self) -> FileData: ...

    def get_path(self) -> str: ...


CompileInput: TypeAlias = Iterable[SourceFile] | Mapping[str, FileData]


def _as_text(path: str, data: FileData) -> str:
    if isinstance(data, bytes):
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise WasmServiceError(f"Source file '{path}' is not UTF-8 text.") from exc
    return data


def build_compile_request(files: CompileInput, options: str = "") -> CompileRequestPayload:
    """Build the request envelope from tree files or a path -> content mapping."""
    if isinstance(files, Mapping):
        entries = list(files.items())
    else:
        entries = [(file.get_path(), file.data) for file in files]
    try:
        return CompileRequestPayload(
            files={
                path: SourceFilePayload(content=_as_text(path, data))
                for path, data in entries
            },
            options=options,
        )
    except ValidationError as exc:
        raise WasmServiceError(f"Invalid compile request: {exc}") from exc


def check_target(target: Language | str) -> Language:
    """Reject every target except wasm before any I/O takes place."""
    try:
        resolved = Language(target)
    except ValueError:
        resolved = None
    if resolved is not SUPPORTED_TARGET:
        raise UnsupportedTargetError(
            f'Only wasm target is supported, but "{target!s}" was found'
        )
    return resolved


class CompilationDispatcher:
    """Send compile requests to the backend configured for a language pair.

    Parameters
    ----------
    config : ServiceConfig
        Endpoint configuration.
    client : httpx.AsyncClient | None, default=None
        Shared HTTP client; a short-lived client is opened per request when
        omitted.
    """

    def __init__(
        self,
        config: ServiceConfig,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config
        self.client = client

    async def compile_files(
        self,
        files: CompileInput,
        source: Language | str,
        target: Language | str,
        options: str = "",
    ) -> dict[str, FileData]:
        """Compile ``files`` and return every output that carries content.

        Returns
        -------
        dict[str, str | bytes]
            Output name to content; declared outputs without content are
            dropped.

        Raises
        ------
        UnsupportedTargetError
            If ``target`` is not wasm or no backend serves the pair.
        CompilationError
            If the backend reports failure; the message is its console text.
        """
        check_target(target)
        service = create_compiler_service(source, target, self.config, self.client)
        request = build_compile_request(files, options)
        logger.debug(
            "compiling %d file(s) %s -> %s via %s",
            len(request.files),
            source,
            target,
            service.url,
        )
        result = await service.compile(request)
        if not result.success:
            raise CompilationError(result.console)

        outputs = {
            name: item.content
            for name, item in (result.items or {}).items()
            if item.content
        }
        logger.debug("backend produced outputs: %s", sorted(outputs))
        return outputs

    async def compile_file_with_bindings(
        self,
        file: SourceFile,
        source: Language | str,
        target: Language | str,
        options: str = "",
    ) -> BuildArtifacts:
        """Compile a single file and label its primary and companion outputs."""
        check_target(target)
        outputs = await self.compile_files([file], source, target, options)
        return resolve_bindings(outputs)

    async def compile_file(
        self,
        file: SourceFile,
        source: Language | str,
        target: Language | str,
        options: str = "",
    ) -> FileData | None:
        """Compile a single file and return only its primary module."""
        artifacts = await self.compile_file_with_bindings(file, source, target, options)
        return artifacts.wasm
