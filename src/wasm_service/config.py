"""Service configuration loaded from an optional JSON file and the environment."""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from wasm_service.errors import ConfigurationError

logger = logging.getLogger(__name__)

ENV_PREFIX = "WASM_SERVICE_"

# Keys used by the browser-side config.json, mapped to field names.
_FILE_KEY_ALIASES = {
    "serviceUrl": "service_url",
    "rustc": "rustc_url",
    "clang": "clang_url",
    "templates": "templates_base",
}


class ServiceConfig(BaseModel):
    """Endpoints and engine locations used by the service."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    service_url: str = "http://localhost:7071/api/service"
    rustc_url: str = "http://localhost:7071/api/rustc"
    clang_url: str = "http://localhost:7071/api/clang"
    templates_base: str = "templates"
    wabt_dir: Path | None = None
    binaryen_dir: Path | None = None
    http_timeout: float | None = Field(default=None, gt=0.0)


def _from_file(path: Path) -> dict[str, object]:
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"Unable to read config file {path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigurationError(f"Config file {path} must contain a JSON object.")
    return {_FILE_KEY_ALIASES.get(key, key): value for key, value in raw.items()}


def _from_env(env: Mapping[str, str]) -> dict[str, object]:
    values: dict[str, object] = {}
    for name in ServiceConfig.model_fields:
        raw = env.get(f"{ENV_PREFIX}{name.upper()}")
        if raw is not None and raw.strip():
            values[name] = raw.strip()
    return values


def load_config(
    path: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> ServiceConfig:
    """Build configuration from defaults, a JSON file and environment overrides.

    Parameters
    ----------
    path : Path | None, default=None
        Optional JSON config file. Accepts both field names and the
        ``serviceUrl``/``rustc``/``clang`` keys.
    env : Mapping[str, str] | None, default=None
        Environment mapping; defaults to ``os.environ``. Variables are named
        ``WASM_SERVICE_<FIELD>``.

    Returns
    -------
    ServiceConfig
        Validated configuration.

    Raises
    ------
    ConfigurationError
        If the file cannot be read or values fail validation.
    """
    values: dict[str, object] = {}
    if path is not None:
        values.update(_from_file(path))
    values.update(_from_env(os.environ if env is None else env))
    try:
        config = ServiceConfig.model_validate(values)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid service configuration: {exc}") from exc
    logger.debug("loaded service config: %s", config)
    return config
