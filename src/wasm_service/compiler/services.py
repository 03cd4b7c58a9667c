"""Compiler backend lookup and HTTP transport."""

from __future__ import annotations

import base64
import binascii
import logging
import zlib
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from wasm_service.config import ServiceConfig
from wasm_service.errors import (
    ConfigurationError,
    ServiceRequestError,
    UnsupportedTargetError,
)
from wasm_service.schemas import (
    CompileItem,
    CompileRequestPayload,
    CompileResponse,
    ServiceResponse,
)
from wasm_service.types import Language, ServiceType

logger = logging.getLogger(__name__)

ReplyT = TypeVar("ReplyT", bound=BaseModel)

JSON_CONTENT_TYPE = "application/json"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
BINARY_OUTPUT_SUFFIXES = (".wasm",)

# (source, target) -> name of the ServiceConfig field holding the endpoint.
BACKENDS: Mapping[tuple[Language, Language], str] = {
    (Language.RUST, Language.WASM): "rustc_url",
    (Language.C, Language.WASM): "clang_url",
    (Language.CPP, Language.WASM): "clang_url",
    (Language.WAT, Language.WASM): "service_url",
}


@asynccontextmanager
async def client_scope(
    client: httpx.AsyncClient | None,
    config: ServiceConfig,
) -> AsyncIterator[httpx.AsyncClient]:
    """Yield the shared client, or a short-lived one when none was injected."""
    if client is not None:
        yield client
        return
    async with httpx.AsyncClient(timeout=httpx.Timeout(config.http_timeout)) as owned:
        yield owned


async def _post(
    client: httpx.AsyncClient,
    url: str,
    model: type[ReplyT],
    **kwargs: object,
) -> ReplyT:
    """POST to ``url`` and validate the JSON reply against ``model``."""
    logger.debug("POST %s", url)
    try:
        response = await client.post(url, **kwargs)  # type: ignore[arg-type]
        response.raise_for_status()
        payload = response.json()
    except httpx.HTTPStatusError as exc:
        raise ServiceRequestError(
            f"{url} answered HTTP {exc.response.status_code}"
        ) from exc
    except httpx.HTTPError as exc:
        raise ServiceRequestError(f"Request to {url} failed: {exc}") from exc
    except ValueError as exc:
        raise ServiceRequestError(f"{url} returned invalid JSON: {exc}") from exc
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise ServiceRequestError(f"Unexpected reply from {url}: {exc}") from exc


def _looks_like_zlib(data: bytes) -> bool:
    return (
        len(data) >= 2
        and data[0] & 0x0F == 8
        and (data[0] << 8 | data[1]) % 31 == 0
    )


def decode_binary_content(name: str, content: str) -> bytes:
    """Decode a base64 (optionally zlib-compressed) binary output."""
    try:
        data = base64.b64decode(content, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ServiceRequestError(f"Output '{name}' is not valid base64: {exc}") from exc
    if _looks_like_zlib(data):
        try:
            return zlib.decompress(data)
        except zlib.error as exc:
            raise ServiceRequestError(
                f"Output '{name}' carries a corrupt zlib stream: {exc}"
            ) from exc
    return data


def _decode_items(response: CompileResponse) -> CompileResponse:
    if not response.items:
        return response
    decoded: dict[str, CompileItem] = {}
    for name, item in response.items.items():
        content = item.content
        if isinstance(content, str) and content and name.endswith(BINARY_OUTPUT_SUFFIXES):
            content = decode_binary_content(name, content)
        decoded[name] = CompileItem(content=content)
    return response.model_copy(update={"items": decoded})


@dataclass(frozen=True)
class RemoteCompilerService:
    """Compiler backend reachable at ``url``."""

    url: str
    config: ServiceConfig
    client: httpx.AsyncClient | None = None

    async def compile(self, request: CompileRequestPayload) -> CompileResponse:
        """Submit ``request`` and return the backend reply with binaries decoded."""
        async with client_scope(self.client, self.config) as client:
            reply = await _post(
                client,
                self.url,
                CompileResponse,
                json=request.model_dump(mode="json"),
                headers={"Content-Type": JSON_CONTENT_TYPE},
            )
        return _decode_items(reply)


def create_compiler_service(
    source: Language | str,
    target: Language | str,
    config: ServiceConfig,
    client: httpx.AsyncClient | None = None,
) -> RemoteCompilerService:
    """Look up the backend serving a (source, target) language pair.

    Raises
    ------
    UnsupportedTargetError
        If no backend is configured for the pair.
    """
    try:
        key = (Language(source), Language(target))
        field = BACKENDS[key]
    except (ValueError, KeyError) as exc:
        raise UnsupportedTargetError(
            f"No compiler backend for {source!s} -> {target!s}"
        ) from exc
    return RemoteCompilerService(url=getattr(config, field), config=config, client=client)


class ServiceClient:
    """Generic request/response exchange with the rustc and service endpoints."""

    def __init__(
        self,
        config: ServiceConfig,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config
        self.client = client

    def url_for(self, to: ServiceType | str) -> str:
        """Return the endpoint for ``to``.

        Raises
        ------
        ConfigurationError
            If ``to`` names no known service.
        """
        try:
            service = ServiceType(to)
        except ValueError as exc:
            raise ConfigurationError(f"Unknown service type: {to!r}") from exc
        if service is ServiceType.RUSTC:
            return self.config.rustc_url
        return self.config.service_url

    async def send_request_json(
        self, content: Mapping[str, object], to: ServiceType | str
    ) -> ServiceResponse:
        """POST ``content`` as JSON to the selected endpoint."""
        url = self.url_for(to)
        async with client_scope(self.client, self.config) as client:
            reply = await _post(
                client,
                url,
                ServiceResponse,
                json=dict(content),
                headers={"Content-Type": JSON_CONTENT_TYPE},
            )
        return reply

    async def send_request(self, content: str, to: ServiceType | str) -> ServiceResponse:
        """POST a raw form-encoded body to the selected endpoint."""
        url = self.url_for(to)
        async with client_scope(self.client, self.config) as client:
            reply = await _post(
                client,
                url,
                ServiceResponse,
                content=content,
                headers={"Content-Type": FORM_CONTENT_TYPE},
            )
        return reply
