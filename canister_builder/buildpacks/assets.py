"""Assets buildpack.

No compiler is involved. The declared sources are copied into
``<build_root>/<name>/assets`` with a stable layout:
- a directory source contributes its files at their paths relative to it
- a file source lands at the bundle root under its own name
- entries are processed in sorted order; a later source overwrites an earlier
  entry with the same relative path

``assets.manifest.json`` lists every bundled file with its SHA-256. The
module is the asset-storage wasm the builder was created with (an empty module
when none is given), and the candid file is the fixed asset-storage service.
"""

from __future__ import annotations

import json
import shutil
from pathlib import Path

from canister_builder.buildpacks.base import dependency_ids, existing_idl
from canister_builder.digest import sha256
from canister_builder.errors import ArtifactError
from canister_builder.logging import canister_logger
from canister_builder.types import BuildConfig, BuildOutput, CanisterDescriptor, FileArtifact
from canister_builder.wasm.module import WASM_MAGIC, WASM_VERSION
from canister_builder.wasm.postprocess import postprocess

ASSET_STORAGE_DID = """\
type BatchId = nat;
type ChunkId = nat;
type Key = text;

service : {
  get : (record { key : Key; accept_encodings : vec text }) -> (record {
    content : blob;
    content_type : text;
    content_encoding : text;
    sha256 : opt blob;
  }) query;
  list : (record {}) -> (vec record { key : Key; content_type : text }) query;
  create_batch : (record {}) -> (record { batch_id : BatchId });
  create_chunk : (record { batch_id : BatchId; content : blob }) -> (record { chunk_id : ChunkId });
  commit_batch : (record { batch_id : BatchId; operations : vec reserved }) -> ();
}
"""


def _collect(root: Path, sources: list[Path], canister: str) -> dict[str, Path]:
    entries: dict[str, Path] = {}
    for source in sources:
        src = source if source.is_absolute() else root / source
        if src.is_file():
            entries[src.name] = src
        elif src.is_dir():
            for fp in sorted(p for p in src.rglob("*") if p.is_file()):
                entries[fp.relative_to(src).as_posix()] = fp
        else:
            raise ArtifactError(f"Asset source {src} does not exist.", canister)
    return entries


class AssetsBuilder:
    def __init__(self, storage_wasm: Path | None = None) -> None:
        self.storage_wasm = storage_wasm

    def supports(self, info: CanisterDescriptor) -> bool:
        return info.type_name == "assets"

    def get_dependencies(self, pool, info: CanisterDescriptor) -> list[str]:
        return dependency_ids(pool, info)

    def bundle_dir(self, info: CanisterDescriptor, config: BuildConfig) -> Path:
        return config.get_build_root() / info.name / "assets"

    def build(self, pool, info: CanisterDescriptor, config: BuildConfig) -> BuildOutput:
        log = canister_logger(config.logger, info.name)
        entries = _collect(config.project_root, list(info.type_specific.source), info.name)

        dest = self.bundle_dir(info, config)
        if dest.exists():
            shutil.rmtree(dest)
        dest.mkdir(parents=True)
        manifest: dict[str, str] = {}
        for rel in sorted(entries):
            target = dest / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(entries[rel], target)
            manifest[rel] = sha256(target)
        (dest.parent / "assets.manifest.json").write_text(
            json.dumps(manifest, indent=2, sort_keys=True), encoding="utf-8"
        )
        log.info("Bundled %d asset file(s) into %s", len(manifest), dest)

        wasm_path = info.output_wasm_path
        idl_path = info.output_idl_path
        wasm_path.parent.mkdir(parents=True, exist_ok=True)
        idl_path.parent.mkdir(parents=True, exist_ok=True)
        if self.storage_wasm is not None:
            shutil.copyfile(self.storage_wasm, wasm_path)
        else:
            wasm_path.write_bytes(WASM_MAGIC + WASM_VERSION)
        idl_path.write_text(ASSET_STORAGE_DID, encoding="utf-8")

        postprocess(wasm_path, idl_path, wasm_opt=config.wasm_opt, canister=info.name)
        return BuildOutput(
            canister_id=pool.get_canister_id(info.name),
            wasm=FileArtifact(wasm_path),
            idl=FileArtifact(idl_path),
        )

    def generate_idl(self, pool, info: CanisterDescriptor, config: BuildConfig) -> Path:
        return existing_idl(info)
