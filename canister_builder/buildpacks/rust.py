"""Rust buildpack.

Compiles one cargo package to ``wasm32-unknown-unknown`` in release mode:
- dependencies' identifiers are exported as ``CANISTER_ID_<NAME>``
- the candid file is the one declared in the project (not generated)
- the produced module is shrunk and gets the candid embedded in place
"""

from __future__ import annotations

from pathlib import Path

from canister_builder.buildpacks.base import dependency_ids, existing_idl, run_tool
from canister_builder.environment import environment_variables
from canister_builder.errors import ArtifactError
from canister_builder.logging import canister_logger
from canister_builder.types import BuildConfig, BuildOutput, CanisterDescriptor, FileArtifact
from canister_builder.wasm.postprocess import postprocess

WASM_TARGET = "wasm32-unknown-unknown"


class RustBuilder:
    def supports(self, info: CanisterDescriptor) -> bool:
        return info.type_name == "rust"

    def get_dependencies(self, pool, info: CanisterDescriptor) -> list[str]:
        return dependency_ids(pool, info)

    def build(self, pool, info: CanisterDescriptor, config: BuildConfig) -> BuildOutput:
        log = canister_logger(config.logger, info.name)
        package = info.type_specific.package
        canister_id = pool.get_canister_id(info.name)

        cmd = ["cargo", "build", "--target", WASM_TARGET, "--release", "-p", package]
        env = environment_variables(pool, info, config.network_name)
        run_tool(cmd, canister=info.name, cwd=config.project_root, env=env, logger=log)

        wasm_path = info.output_wasm_path
        if not wasm_path.is_file():
            raise ArtifactError(f"cargo did not produce {wasm_path}", info.name)

        log.info("Optimizing WASM module.")
        postprocess(wasm_path, info.output_idl_path, wasm_opt=config.wasm_opt, canister=info.name)

        return BuildOutput(
            canister_id=canister_id,
            wasm=FileArtifact(wasm_path),
            idl=FileArtifact(info.output_idl_path),
        )

    def generate_idl(self, pool, info: CanisterDescriptor, config: BuildConfig) -> Path:
        return existing_idl(info)
