"""Motoko buildpack.

``moc`` synthesizes the candid interface itself, so a build is two compiler
runs: one emitting the ``.did`` file and one emitting the wasm module. Each
dependency is made importable as ``canister:<name>`` through ``--actor-alias``
and its recorded candid file is staged in an ``idl/`` directory keyed by
identifier (``--actor-idl``).
"""

from __future__ import annotations

import shutil
from pathlib import Path

from canister_builder.buildpacks.base import dependency_ids, existing_idl, run_tool
from canister_builder.environment import environment_variables
from canister_builder.errors import ArtifactError, MissingBuildOutputError
from canister_builder.logging import canister_logger
from canister_builder.types import BuildConfig, BuildOutput, CanisterDescriptor, FileArtifact
from canister_builder.wasm.postprocess import postprocess


def _stage_dependency_idls(pool, info: CanisterDescriptor, idl_dir: Path) -> list[str]:
    """Copy dependency candid files into *idl_dir*; return the alias args."""
    idl_dir.mkdir(parents=True, exist_ok=True)
    args: list[str] = []
    for dep, canister_id in zip(info.dependencies, dependency_ids(pool, info)):
        output = pool.get_build_output(dep)
        if output is None:
            raise MissingBuildOutputError(info.name, dep)
        target = idl_dir / f"{canister_id}.did"
        if isinstance(output.idl, FileArtifact):
            shutil.copyfile(output.idl.path, target)
        else:
            target.write_bytes(output.idl.data)
        args += ["--actor-alias", dep, canister_id]
    return args


class MotokoBuilder:
    def supports(self, info: CanisterDescriptor) -> bool:
        return info.type_name == "motoko"

    def get_dependencies(self, pool, info: CanisterDescriptor) -> list[str]:
        return dependency_ids(pool, info)

    def build(self, pool, info: CanisterDescriptor, config: BuildConfig) -> BuildOutput:
        log = canister_logger(config.logger, info.name)
        main = config.project_root / info.type_specific.main
        wasm_path = info.output_wasm_path
        idl_path = info.output_idl_path
        wasm_path.parent.mkdir(parents=True, exist_ok=True)
        idl_path.parent.mkdir(parents=True, exist_ok=True)

        env = environment_variables(pool, info, config.network_name)
        idl_dir = config.get_build_root() / "idl"
        aliases = _stage_dependency_idls(pool, info, idl_dir)
        common = ["--actor-idl", str(idl_dir), *aliases]

        log.info("Generating candid interface.")
        run_tool(
            ["moc", str(main), "--idl", "-o", str(idl_path), *common],
            canister=info.name,
            cwd=config.project_root,
            env=env,
            logger=log,
        )
        run_tool(
            ["moc", str(main), "-c", "-o", str(wasm_path), *common],
            canister=info.name,
            cwd=config.project_root,
            env=env,
            logger=log,
        )
        if not wasm_path.is_file():
            raise ArtifactError(f"moc did not produce {wasm_path}", info.name)

        postprocess(wasm_path, idl_path, wasm_opt=config.wasm_opt, canister=info.name)
        return BuildOutput(
            canister_id=pool.get_canister_id(info.name),
            wasm=FileArtifact(wasm_path),
            idl=FileArtifact(idl_path),
        )

    def generate_idl(self, pool, info: CanisterDescriptor, config: BuildConfig) -> Path:
        # moc writes the .did during build; this only confirms it is there.
        return existing_idl(info)
