"""Map raw compiler outputs onto the primary module and its glue script."""

from __future__ import annotations

from dataclasses import dataclass

from wasm_service.types import FileData, OutputMap

PRIMARY_OUTPUT_FILENAME = "a.wasm"
COMPANION_OUTPUT_FILENAME = "wasm_bindgen.js"


@dataclass(frozen=True)
class BuildArtifacts:
    """Semantically labeled compile outputs.

    Parameters
    ----------
    wasm : str | bytes | None
        Primary binary module, ``None`` when the backend produced none.
    wasm_bindgen_js : str | bytes | None
        Companion bindings script, only present for wasm-bindgen builds.
    """

    wasm: FileData | None = None
    wasm_bindgen_js: FileData | None = None

    @property
    def has_primary(self) -> bool:
        return self.wasm is not None


def resolve_bindings(outputs: OutputMap) -> BuildArtifacts:
    """Pick the conventionally named primary and companion outputs.

    Entries under other names are ignored; a missing primary is not an error.
    """
    return BuildArtifacts(
        wasm=outputs.get(PRIMARY_OUTPUT_FILENAME),
        wasm_bindgen_js=outputs.get(COMPANION_OUTPUT_FILENAME) or None,
    )
