"""Pydantic schemas for compile, service and project-template payloads."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class SourceFilePayload(BaseModel):
    """Single source file entry of a compile request."""

    model_config = ConfigDict(extra="forbid")

    content: str


class CompileRequestPayload(BaseModel):
    """Compile request envelope posted to a compiler backend."""

    model_config = ConfigDict(extra="forbid")

    files: dict[str, SourceFilePayload]
    options: str = ""

    @field_validator("files")
    @classmethod
    def _validate_paths(
        cls, value: dict[str, SourceFilePayload]
    ) -> dict[str, SourceFilePayload]:
        if not value:
            raise ValueError("files must contain at least one source file.")
        if any(not path.strip() for path in value):
            raise ValueError("file paths cannot be empty.")
        return value


class CompileItem(BaseModel):
    """Named compile output; ``content`` is absent for declared-but-empty outputs."""

    model_config = ConfigDict(extra="ignore")

    content: str | bytes | None = None


class CompileResponse(BaseModel):
    """Compiler backend reply.

    ``items`` is only read from successful replies, and ``output`` is carried
    through without interpretation.
    """

    model_config = ConfigDict(extra="ignore")

    success: bool
    console: str = ""
    items: dict[str, CompileItem] | None = None
    output: Any = None

    @model_validator(mode="before")
    @classmethod
    def _relax_failed_reply(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if data.get("console") is None:
            data["console"] = ""
        if data.get("success") is False:
            data.pop("items", None)
        return data


class ServiceTask(BaseModel):
    """Per-file task entry of a generic service reply."""

    model_config = ConfigDict(extra="ignore")

    file: str = ""
    name: str = ""
    output: str = ""
    console: str = ""
    success: bool = False


class ServiceResponse(BaseModel):
    """Generic service reply returned by ``send_request*``."""

    model_config = ConfigDict(extra="ignore")

    success: bool
    tasks: list[ServiceTask] = Field(default_factory=list)
    output: str = ""


class ProjectNodeSpec(BaseModel):
    """Node of a project template tree.

    A node is a directory iff ``children`` is present. ``data`` keeps the
    difference between an explicit ``null`` (empty file) and an omitted or
    empty field (content fetched from the template base path); use
    :meth:`has_null_data` and :meth:`has_inline_data` rather than testing
    ``data`` directly.
    """

    model_config = ConfigDict(extra="ignore")

    name: str
    children: list[ProjectNodeSpec] | None = None
    type: str | None = None
    data: str | None = None
    description: str | None = None

    @field_validator("name")
    @classmethod
    def _validate_name(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("node name cannot be empty.")
        if "/" in value:
            raise ValueError(f"node name cannot contain '/': {value!r}")
        return value

    @property
    def is_directory(self) -> bool:
        return self.children is not None

    def has_inline_data(self) -> bool:
        return bool(self.data)

    def has_null_data(self) -> bool:
        return "data" in self.model_fields_set and self.data is None


class ProjectTemplateSpec(BaseModel):
    """Root of a project template description."""

    model_config = ConfigDict(extra="ignore")

    name: str
    directory: str | None = None
    description: str | None = None
    children: list[ProjectNodeSpec] = Field(default_factory=list)
