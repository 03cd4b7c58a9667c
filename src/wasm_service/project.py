"""Build a project tree from a JSON template description."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Protocol

import httpx
from pydantic import ValidationError

from wasm_service.compiler.services import client_scope
from wasm_service.config import ServiceConfig
from wasm_service.errors import ProjectLoadError
from wasm_service.model import Directory, File, Project
from wasm_service.schemas import ProjectNodeSpec, ProjectTemplateSpec
from wasm_service.types import FileType

logger = logging.getLogger(__name__)


class ContentFetcher(Protocol):
    """Fetch text content for a template file."""

    async def fetch(self, location: str) -> str:
        """Return the content stored at ``location``."""


class HttpFetcher:
    """Fetch template files over HTTP(S) through one shared client."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self.client = client

    async def fetch(self, location: str) -> str:
        try:
            response = await self.client.get(location)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise ProjectLoadError(f"Unable to fetch {location}: {exc}") from exc
        return response.text


class FileSystemFetcher:
    """Read template files from the local filesystem off the event loop."""

    async def fetch(self, location: str) -> str:
        try:
            return await asyncio.to_thread(Path(location).read_text, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise ProjectLoadError(f"Unable to read {location}: {exc}") from exc


def _is_url(base_path: str) -> bool:
    return base_path.startswith(("http://", "https://"))


@asynccontextmanager
async def default_fetcher(
    base_path: str,
    config: ServiceConfig,
    client: httpx.AsyncClient | None = None,
) -> AsyncIterator[ContentFetcher]:
    """Yield an HTTP fetcher for URL bases and a filesystem fetcher otherwise.

    The HTTP fetcher reuses ``client`` when given; otherwise one client with
    ``config.http_timeout`` serves every fetch of the load and is closed after.
    """
    if not _is_url(base_path):
        yield FileSystemFetcher()
        return
    async with client_scope(client, config) as shared:
        yield HttpFetcher(shared)


def _join(base_path: str, name: str) -> str:
    return f"{base_path.rstrip('/')}/{name}"


async def _deserialize_file(
    node: ProjectNodeSpec, base_path: str, fetcher: ContentFetcher
) -> File:
    file = File(node.name, node.type or FileType.UNKNOWN)
    file.description = node.description
    if node.has_inline_data():
        file.set_data(node.data or "")
    elif node.has_null_data():
        file.set_data("")
    else:
        location = _join(base_path, node.name)
        logger.debug("fetching template content %s", location)
        file.set_data(await fetcher.fetch(location))
    return file


async def _deserialize(
    node: ProjectNodeSpec, base_path: str, fetcher: ContentFetcher
) -> File:
    if node.children is None:
        return await _deserialize_file(node, base_path, fetcher)
    directory = Directory(node.name)
    for child in await _deserialize_children(
        node.children, _join(base_path, node.name), fetcher
    ):
        directory.add_file(child)
    return directory


async def _deserialize_children(
    nodes: list[ProjectNodeSpec], base_path: str, fetcher: ContentFetcher
) -> list[File]:
    # gather returns results in argument order whatever the completion order.
    return list(
        await asyncio.gather(*(_deserialize(node, base_path, fetcher) for node in nodes))
    )


async def load_project(
    tree: Mapping[str, Any],
    project: Project,
    *,
    base_path: str | None = None,
    fetcher: ContentFetcher | None = None,
    config: ServiceConfig | None = None,
    client: httpx.AsyncClient | None = None,
) -> Mapping[str, Any]:
    """Populate ``project`` from a template tree.

    Parameters
    ----------
    tree : Mapping[str, Any]
        Parsed template JSON: ``{name, directory?, children: [node, ...]}``.
    project : Project
        Project receiving the name and top-level children.
    base_path : str | None, default=None
        Location that file content is fetched from. Defaults to
        ``<config.templates_base>/<tree["directory"]>``.
    fetcher : ContentFetcher | None, default=None
        Content source; chosen from ``base_path`` when omitted.
    config : ServiceConfig | None, default=None
        Supplies ``templates_base`` and the HTTP timeout.
    client : httpx.AsyncClient | None, default=None
        Shared HTTP client for URL bases; one client is opened for the whole
        load when omitted.

    Returns
    -------
    Mapping[str, Any]
        ``tree``, unchanged.

    Raises
    ------
    ProjectLoadError
        If the tree is malformed or content cannot be fetched.
    """
    try:
        template = ProjectTemplateSpec.model_validate(tree)
    except ValidationError as exc:
        raise ProjectLoadError(f"Invalid project template: {exc}") from exc

    config = config or ServiceConfig()
    if base_path is None:
        base_path = _join(config.templates_base, template.directory or template.name)

    if fetcher is not None:
        children = await _deserialize_children(template.children, base_path, fetcher)
    else:
        async with default_fetcher(base_path, config, client) as chosen:
            children = await _deserialize_children(template.children, base_path, chosen)
    project.name = template.name
    for child in children:
        project.add_file(child)
    logger.info("loaded project %s with %d top-level entries", project.name, len(children))
    return tree
