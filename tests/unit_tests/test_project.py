"""Unit tests for project template deserialization."""

from __future__ import annotations

import asyncio
import random
from pathlib import Path
from typing import Any

import httpx
import pytest

from wasm_service.config import ServiceConfig
from wasm_service.errors import ProjectLoadError
from wasm_service.model import Directory, File, Project
from wasm_service.project import (
    FileSystemFetcher,
    HttpFetcher,
    default_fetcher,
    load_project,
)


class _RecordingFetcher:
    """Fetcher that returns the location and completes in random order."""

    def __init__(self) -> None:
        self.locations: list[str] = []

    async def fetch(self, location: str) -> str:
        self.locations.append(location)
        await asyncio.sleep(random.random() / 100)
        return f"content of {location}"


@pytest.mark.asyncio
async def test_inline_file_and_empty_directory() -> None:
    """Build a file with inline data followed by an empty directory."""
    tree = {"name": "root", "children": [{"name": "a.txt", "data": "hi"}, {"name": "b", "children": []}]}
    project = Project()

    returned = await load_project(tree, project, fetcher=_RecordingFetcher())

    assert returned is tree
    assert project.name == "root"
    first, second = project.children
    assert isinstance(first, File) and not isinstance(first, Directory)
    assert first.name == "a.txt"
    assert first.data == "hi"
    assert isinstance(second, Directory)
    assert second.name == "b"
    assert second.children == []


@pytest.mark.asyncio
async def test_null_data_is_empty_and_absent_data_is_fetched() -> None:
    """Keep explicit null distinct from omitted or empty data fields."""
    tree = {
        "name": "Empty C Project",
        "directory": "empty_c",
        "children": [
            {"name": "README.md", "type": "markdown", "description": "Read me"},
            {"name": "scratch.c", "type": "c", "data": None},
            {"name": "blank.txt", "data": ""},
        ],
    }
    fetcher = _RecordingFetcher()
    project = Project()

    await load_project(tree, project, fetcher=fetcher, config=ServiceConfig(templates_base="templates"))

    readme, scratch, blank = project.children
    assert sorted(fetcher.locations) == [
        "templates/empty_c/README.md",
        "templates/empty_c/blank.txt",
    ]
    assert readme.data == "content of templates/empty_c/README.md"
    assert readme.type == "markdown"
    assert readme.description == "Read me"
    assert scratch.data == ""
    assert scratch.type == "c"
    assert blank.data == "content of templates/empty_c/blank.txt"


@pytest.mark.asyncio
async def test_nested_paths_and_order_survive_concurrent_fetches() -> None:
    """Attach children in input order regardless of fetch completion order."""
    names = [f"file{i}.rs" for i in range(20)]
    tree = {
        "name": "Rust",
        "children": [{"name": "src", "children": [{"name": n} for n in names]}],
    }
    fetcher = _RecordingFetcher()
    project = Project()

    await load_project(tree, project, base_path="https://host.test/templates/rust", fetcher=fetcher)

    (src,) = project.children
    assert isinstance(src, Directory)
    assert [child.name for child in src.children] == names
    assert src.children[3].data == "content of https://host.test/templates/rust/src/file3.rs"
    assert sorted(fetcher.locations) == sorted(
        f"https://host.test/templates/rust/src/{n}" for n in names
    )


@pytest.mark.asyncio
async def test_invalid_tree_raises_project_load_error() -> None:
    """Reject templates whose nodes lack a name."""
    with pytest.raises(ProjectLoadError, match="Invalid project template"):
        await load_project({"name": "x", "children": [{"data": "y"}]}, Project())


@pytest.mark.asyncio
async def test_filesystem_fetcher_reads_base_path(tmp_path: Path) -> None:
    """Read content from the template directory on disk."""
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "main.c").write_text("int main() { return 0; }", encoding="utf-8")
    tree = {"name": "C", "children": [{"name": "src", "children": [{"name": "main.c", "type": "c"}]}]}
    project = Project()

    await load_project(tree, project, base_path=str(tmp_path))

    main = project.get_file("src/main.c")
    assert main is not None
    assert main.data == "int main() { return 0; }"
    assert main.get_path() == "src/main.c"


@pytest.mark.asyncio
async def test_filesystem_fetcher_missing_file(tmp_path: Path) -> None:
    """Wrap missing template files in ProjectLoadError."""
    with pytest.raises(ProjectLoadError, match="Unable to read"):
        await FileSystemFetcher().fetch(str(tmp_path / "missing.txt"))


@pytest.mark.asyncio
async def test_http_fetcher_success_and_failure() -> None:
    """Return response text and wrap HTTP failures."""

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("ok.txt"):
            return httpx.Response(200, text="hello")
        return httpx.Response(404)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        fetcher = HttpFetcher(client)
        assert await fetcher.fetch("https://host.test/ok.txt") == "hello"
        with pytest.raises(ProjectLoadError, match="Unable to fetch"):
            await fetcher.fetch("https://host.test/missing.txt")


@pytest.mark.asyncio
async def test_default_fetcher_selection() -> None:
    """Use HTTP for URL bases and the filesystem otherwise."""
    config = ServiceConfig()
    async with httpx.AsyncClient() as client:
        async with default_fetcher("https://host.test/templates", config, client) as fetcher:
            assert isinstance(fetcher, HttpFetcher)
            assert fetcher.client is client
    async with default_fetcher("templates/rust", config) as fetcher:
        assert isinstance(fetcher, FileSystemFetcher)


@pytest.mark.asyncio
async def test_url_base_fetches_through_injected_client() -> None:
    """Send every template fetch through the caller's client."""
    requested: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requested.append(request.url.path)
        return httpx.Response(200, text=request.url.path)

    tree = {"name": "Web", "children": [{"name": "a.js"}, {"name": "b.js"}, {"name": "c.js"}]}
    project = Project()
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        await load_project(tree, project, base_path="https://host.test/web", client=client)

    assert sorted(requested) == ["/web/a.js", "/web/b.js", "/web/c.js"]
    assert [child.data for child in project.children] == ["/web/a.js", "/web/b.js", "/web/c.js"]


@pytest.mark.asyncio
async def test_url_base_opens_one_client_with_configured_timeout(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Share one owned client across the load and apply the HTTP timeout."""
    real_client = httpx.AsyncClient
    created: list[httpx.AsyncClient] = []

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="x")

    def make_client(**kwargs: Any) -> httpx.AsyncClient:
        client = real_client(transport=httpx.MockTransport(handler), **kwargs)
        created.append(client)
        return client

    monkeypatch.setattr(httpx, "AsyncClient", make_client)
    tree = {"name": "Web", "children": [{"name": f"f{i}.js"} for i in range(5)]}

    await load_project(
        tree,
        Project(),
        base_path="https://host.test/web",
        config=ServiceConfig(http_timeout=12.5),
    )

    assert len(created) == 1
    assert created[0].timeout == httpx.Timeout(12.5)
    assert created[0].is_closed
