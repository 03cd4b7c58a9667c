"""Shared enums and type aliases."""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import TypeAlias


class Language(str, Enum):
    """Source and target languages understood by compiler backends."""

    C = "c"
    CPP = "cpp"
    RUST = "rust"
    WAT = "wat"
    WASM = "wasm"
    X86 = "x86"
    JAVASCRIPT = "javascript"
    TYPESCRIPT = "typescript"
    MARKDOWN = "markdown"


class FileType(str, Enum):
    """Type tags carried by project files."""

    C = "c"
    CPP = "cpp"
    RUST = "rust"
    WAT = "wat"
    WASM = "wasm"
    JAVASCRIPT = "javascript"
    TYPESCRIPT = "typescript"
    HTML = "html"
    CSS = "css"
    JSON = "json"
    MARKDOWN = "markdown"
    TOML = "toml"
    UNKNOWN = "unknown"


class ServiceType(str, Enum):
    """Generic service endpoints addressed by ``send_request*``."""

    RUSTC = "rustc"
    SERVICE = "service"


FileData: TypeAlias = str | bytes
OutputMap: TypeAlias = Mapping[str, FileData]
