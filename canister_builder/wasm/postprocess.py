"""Post-build processing of canister wasm modules.

Two in-place steps, applied after a successful compile:

1. shrink: drop debug/naming custom sections (and optionally run an external
   ``wasm-opt`` first);
2. embed: store the candid interface as the ``icp:public candid:service``
   custom section.

The processed module overwrites the original file, so the output path never
changes whether or not post-processing ran.
"""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path

from canister_builder.errors import ArtifactError
from canister_builder.wasm.module import (
    WasmFormatError,
    custom_section,
    encode_module,
    parse_module,
)

CANDID_SERVICE_SECTION = "icp:public candid:service"

_STRIPPED_SECTIONS = {"name", "producers", "sourceMappingURL", "external_debug_info"}


def _is_strippable(name: str | None) -> bool:
    if name is None:
        return False
    return name in _STRIPPED_SECTIONS or name.startswith(".debug")


def _read_module(path: Path, canister: str | None) -> bytes:
    try:
        return path.read_bytes()
    except OSError as e:
        raise ArtifactError(f"Could not read the WASM module {path}: {e}", canister) from e


def _write_module(path: Path, data: bytes, canister: str | None) -> None:
    try:
        path.write_bytes(data)
    except OSError as e:
        raise ArtifactError(f"Could not write the WASM module {path}: {e}", canister) from e


def shrink_bytes(data: bytes) -> bytes:
    sections = parse_module(data)
    kept = [s for s in sections if not _is_strippable(s.custom_name)]
    return encode_module(kept)


def run_wasm_opt(path: Path, level: str, canister: str | None = None) -> None:
    tool = shutil.which("wasm-opt")
    if tool is None:
        raise ArtifactError("wasm-opt was requested but is not on PATH", canister)
    cmd = [tool, f"-{level.lstrip('-')}", str(path), "-o", str(path)]
    proc = subprocess.run(cmd, check=False)
    if proc.returncode != 0:
        raise ArtifactError(f"wasm-opt exited with code {proc.returncode}", canister)


def shrink(path: Path, wasm_opt: str | None = None, canister: str | None = None) -> None:
    """Size-optimize the module at *path* in place."""
    if wasm_opt:
        run_wasm_opt(path, wasm_opt, canister)
    data = _read_module(path, canister)
    try:
        shrunk = shrink_bytes(data)
    except WasmFormatError as e:
        raise ArtifactError(f"Invalid WASM module {path}: {e}", canister) from e
    if shrunk != data:
        _write_module(path, shrunk, canister)


def embed_bytes(data: bytes, section_name: str, content: bytes) -> bytes:
    sections = [s for s in parse_module(data) if s.custom_name != section_name]
    sections.append(custom_section(section_name, content))
    return encode_module(sections)


def add_candid_service_metadata(
    wasm_path: Path, idl_path: Path, canister: str | None = None
) -> None:
    """Embed the candid file at *idl_path* into the module at *wasm_path*."""
    if not idl_path.is_file():
        raise ArtifactError(f"Candid file: {idl_path} doesn't exist.", canister)
    candid = idl_path.read_bytes()
    data = _read_module(wasm_path, canister)
    try:
        embedded = embed_bytes(data, CANDID_SERVICE_SECTION, candid)
    except WasmFormatError as e:
        raise ArtifactError(f"Invalid WASM module {wasm_path}: {e}", canister) from e
    _write_module(wasm_path, embedded, canister)


def postprocess(
    wasm_path: Path,
    idl_path: Path,
    wasm_opt: str | None = None,
    canister: str | None = None,
) -> None:
    shrink(wasm_path, wasm_opt=wasm_opt, canister=canister)
    add_candid_service_metadata(wasm_path, idl_path, canister=canister)


def read_metadata(wasm_path: Path, name: str) -> bytes | None:
    """Return the content of custom section *name*, or None when absent.

    Short names such as ``candid:service`` also match the ``icp:public`` and
    ``icp:private`` prefixed forms.
    """
    sections = parse_module(wasm_path.read_bytes())
    candidates = {name, f"icp:public {name}", f"icp:private {name}"}
    for s in sections:
        if s.custom_name in candidates:
            return s.custom_content
    return None
