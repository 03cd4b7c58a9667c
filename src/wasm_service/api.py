"""Public service facade owning one capability registry and one dispatcher."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import httpx

from wasm_service import postprocess
from wasm_service.compiler.artifacts import BuildArtifacts
from wasm_service.compiler.dispatcher import CompilationDispatcher, CompileInput, SourceFile
from wasm_service.compiler.services import ServiceClient
from wasm_service.config import ServiceConfig
from wasm_service.engines.registry import CapabilityRegistry, create_default_registry
from wasm_service.model import File, Project
from wasm_service.project import ContentFetcher, load_project
from wasm_service.schemas import ServiceResponse
from wasm_service.types import FileData, Language, ServiceType


class StudioService:
    """Compile, post-process and load projects against one configuration.

    Parameters
    ----------
    config : ServiceConfig | None, default=None
        Endpoints and tool locations; defaults apply when omitted.
    registry : CapabilityRegistry | None, default=None
        Engine registry; ``create_default_registry(config)`` when omitted.
    client : httpx.AsyncClient | None, default=None
        Shared HTTP client for backend calls.
    """

    def __init__(
        self,
        config: ServiceConfig | None = None,
        *,
        registry: CapabilityRegistry | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config or ServiceConfig()
        self.registry = registry or create_default_registry(self.config)
        self.dispatcher = CompilationDispatcher(self.config, client)
        self.service_client = ServiceClient(self.config, client)
        self.client = client

    async def compile_files(
        self,
        files: CompileInput,
        source: Language | str,
        target: Language | str = Language.WASM,
        options: str = "",
    ) -> dict[str, FileData]:
        return await self.dispatcher.compile_files(files, source, target, options)

    async def compile_file_with_bindings(
        self,
        file: SourceFile,
        source: Language | str,
        target: Language | str = Language.WASM,
        options: str = "",
    ) -> BuildArtifacts:
        return await self.dispatcher.compile_file_with_bindings(
            file, source, target, options
        )

    async def compile_file(
        self,
        file: SourceFile,
        source: Language | str,
        target: Language | str = Language.WASM,
        options: str = "",
    ) -> FileData | None:
        return await self.dispatcher.compile_file(file, source, target, options)

    async def send_request_json(
        self, content: Mapping[str, object], to: ServiceType | str
    ) -> ServiceResponse:
        return await self.service_client.send_request_json(content, to)

    async def send_request(self, content: str, to: ServiceType | str) -> ServiceResponse:
        return await self.service_client.send_request(content, to)

    async def disassemble_wasm(self, data: bytes) -> str:
        return await postprocess.disassemble_wasm(self.registry, data)

    async def disassemble_wasm_with_wabt(self, file: File) -> File:
        return await postprocess.disassemble_wasm_with_wabt(self.registry, file)

    async def assemble_wat(self, wat: str) -> bytes:
        return await postprocess.assemble_wat(self.registry, wat)

    async def assemble_wat_with_wabt(self, file: File) -> File:
        return await postprocess.assemble_wat_with_wabt(self.registry, file)

    async def disassemble_wasm_with_binaryen(self, file: File) -> File:
        return await postprocess.disassemble_wasm_with_binaryen(self.registry, file)

    async def convert_wasm_to_asm_with_binaryen(self, file: File) -> File:
        return await postprocess.convert_wasm_to_asm_with_binaryen(self.registry, file)

    async def compile_markdown_to_html(self, src: str) -> str:
        return await postprocess.compile_markdown_to_html(self.registry, src)

    async def load_project(
        self,
        tree: Mapping[str, Any],
        project: Project,
        *,
        base_path: str | None = None,
        fetcher: ContentFetcher | None = None,
    ) -> Mapping[str, Any]:
        return await load_project(
            tree,
            project,
            base_path=base_path,
            fetcher=fetcher,
            config=self.config,
            client=self.client,
        )
