"""Capability registry: load each engine once and share it."""

from __future__ import annotations

import asyncio
import logging
from typing import TypeVar

from wasm_service.config import ServiceConfig
from wasm_service.engines.base import (
    BINARYEN,
    MARKDOWN,
    WABT,
    CapabilityState,
    Engine,
    EngineLoader,
)
from wasm_service.errors import CapabilityLoadError, ConfigurationError

logger = logging.getLogger(__name__)

EngineT = TypeVar("EngineT", bound=Engine)


class CapabilityRegistry:
    """Registry of engine loaders and the engines they produced.

    Each capability is loaded at most once. Concurrent :meth:`ensure` calls
    for a capability that is still loading await the same in-flight task; a
    failed load is forgotten so the next call retries it.
    """

    def __init__(self) -> None:
        self._loaders: dict[str, EngineLoader] = {}
        self._loads: dict[str, asyncio.Task[Engine]] = {}
        self._engines: dict[str, Engine] = {}

    def register(self, capability_id: str, loader: EngineLoader) -> None:
        """Register ``loader`` under ``capability_id``.

        Raises
        ------
        ConfigurationError
            If the id is empty or the capability is already loaded.
        """
        key = capability_id.strip()
        if not key:
            raise ConfigurationError("Capability id must be a non-empty string.")
        if key in self._engines or key in self._loads:
            raise ConfigurationError(
                f"Capability '{key}' is already loading or loaded."
            )
        self._loaders[key] = loader

    def names(self) -> list[str]:
        return sorted(self._loaders)

    def state(self, capability_id: str) -> CapabilityState:
        self._require_known(capability_id)
        if capability_id in self._engines:
            return CapabilityState.READY
        if capability_id in self._loads:
            return CapabilityState.LOADING
        return CapabilityState.UNLOADED

    def is_ready(self, capability_id: str) -> bool:
        return capability_id in self._engines

    async def ensure(self, capability_id: str) -> None:
        """Make ``capability_id`` ready, loading it on first use.

        Raises
        ------
        ConfigurationError
            If the capability id is not registered.
        CapabilityLoadError
            If the loader fails; the capability stays unloaded.
        """
        self._require_known(capability_id)
        if capability_id in self._engines:
            return
        task = self._loads.get(capability_id)
        if task is None:
            task = asyncio.ensure_future(self._load(capability_id))
            self._loads[capability_id] = task
            # A task cancelled before its first step never reaches _load's cleanup.
            task.add_done_callback(lambda done: self._forget(capability_id, done))
        # Waiters may be cancelled; the shared load keeps running.
        await asyncio.shield(task)

    def engine(self, capability_id: str) -> Engine:
        """Return the loaded engine for ``capability_id``.

        Raises
        ------
        CapabilityLoadError
            If the capability has not been loaded yet.
        """
        self._require_known(capability_id)
        try:
            return self._engines[capability_id]
        except KeyError as exc:
            raise CapabilityLoadError(
                f"Capability '{capability_id}' is not loaded."
            ) from exc

    async def get(self, capability_id: str, kind: type[EngineT]) -> EngineT:
        """Ensure ``capability_id`` and return its engine as ``kind``.

        Raises
        ------
        ConfigurationError
            If the loaded engine does not implement ``kind``.
        """
        await self.ensure(capability_id)
        engine = self.engine(capability_id)
        if not isinstance(engine, kind):
            raise ConfigurationError(
                f"Capability '{capability_id}' does not provide {kind.__name__}."
            )
        return engine

    def _forget(self, capability_id: str, task: asyncio.Task[Engine]) -> None:
        if self._loads.get(capability_id) is task:
            del self._loads[capability_id]

    def _require_known(self, capability_id: str) -> None:
        if capability_id not in self._loaders:
            raise ConfigurationError(
                f"Unknown capability '{capability_id}'. "
                f"Available capabilities: {', '.join(self.names())}"
            )

    async def _load(self, capability_id: str) -> Engine:
        logger.info("loading capability %s", capability_id)
        try:
            engine = await self._loaders[capability_id]()
        except CapabilityLoadError:
            raise
        except Exception as exc:
            raise CapabilityLoadError(
                f"Failed to load capability '{capability_id}': {exc}"
            ) from exc
        else:
            self._engines[capability_id] = engine
        finally:
            # Cancelled or failed loads go back to unloaded.
            self._loads.pop(capability_id, None)
        logger.info("capability %s ready (%s)", capability_id, engine.name)
        return engine


def create_default_registry(config: ServiceConfig | None = None) -> CapabilityRegistry:
    """Create a registry with the wabt, binaryen and markdown engines.

    Parameters
    ----------
    config : ServiceConfig | None, default=None
        Supplies optional tool directories; defaults are used when omitted.
    """
    from wasm_service.engines.builtins import (
        load_binaryen,
        load_markdown,
        load_wabt,
    )

    config = config or ServiceConfig()
    registry = CapabilityRegistry()
    registry.register(WABT, lambda: load_wabt(config.wabt_dir))
    registry.register(BINARYEN, lambda: load_binaryen(config.binaryen_dir))
    registry.register(MARKDOWN, load_markdown)
    return registry
