"""Custom buildpack: run the user's build commands, trust the declared outputs.

Each entry of ``build`` is split shell-style and executed (no shell) from the
project root, in order, stopping at the first failure. The ``wasm`` and
``candid`` paths from the project file are taken as the outputs.
"""

from __future__ import annotations

import shlex
from pathlib import Path

from canister_builder.buildpacks.base import dependency_ids, existing_idl, run_tool
from canister_builder.environment import environment_variables
from canister_builder.logging import canister_logger
from canister_builder.types import BuildConfig, BuildOutput, CanisterDescriptor, FileArtifact
from canister_builder.wasm.postprocess import postprocess


class CustomBuilder:
    def supports(self, info: CanisterDescriptor) -> bool:
        return info.type_name == "custom"

    def get_dependencies(self, pool, info: CanisterDescriptor) -> list[str]:
        return dependency_ids(pool, info)

    def build(self, pool, info: CanisterDescriptor, config: BuildConfig) -> BuildOutput:
        log = canister_logger(config.logger, info.name)
        env = environment_variables(pool, info, config.network_name)

        for command in info.type_specific.build:
            cmd = shlex.split(command)
            if not cmd:
                continue
            run_tool(cmd, canister=info.name, cwd=config.project_root, env=env, logger=log)

        postprocess(
            info.output_wasm_path,
            info.output_idl_path,
            wasm_opt=config.wasm_opt,
            canister=info.name,
        )
        return BuildOutput(
            canister_id=pool.get_canister_id(info.name),
            wasm=FileArtifact(info.output_wasm_path),
            idl=FileArtifact(info.output_idl_path),
        )

    def generate_idl(self, pool, info: CanisterDescriptor, config: BuildConfig) -> Path:
        return existing_idl(info)
