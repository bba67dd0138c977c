"""Builder API and dispatcher.

This module defines the typed contract every canister builder implements, the
helpers they share (dependency lookup, running an external tool) and the
registry the pool dispatches through. The pool never looks at a canister's
type tag itself; it asks each registered builder whether it ``supports`` the
descriptor.
"""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from canister_builder.errors import (
    ArtifactError,
    BuildToolError,
    MissingIdentifierError,
    UnknownDependencyError,
    UnsupportedCanisterTypeError,
)
from canister_builder.types import BuildConfig, BuildOutput, CanisterDescriptor

if TYPE_CHECKING:
    from canister_builder.core import CanisterPool


class CanisterBuilder(Protocol):
    def supports(self, info: CanisterDescriptor) -> bool: ...

    def get_dependencies(self, pool: CanisterPool, info: CanisterDescriptor) -> list[str]: ...

    def build(
        self, pool: CanisterPool, info: CanisterDescriptor, config: BuildConfig
    ) -> BuildOutput: ...

    def generate_idl(
        self, pool: CanisterPool, info: CanisterDescriptor, config: BuildConfig
    ) -> Path: ...


def dependency_ids(pool: CanisterPool, info: CanisterDescriptor) -> list[str]:
    """Resolve *info*'s dependency names to identifiers, in declared order."""
    ids: list[str] = []
    for name in info.dependencies:
        if pool.get_canister(name) is None:
            raise UnknownDependencyError(info.name, name)
        canister_id = pool.get_canister_id(name)
        if canister_id is None:
            raise MissingIdentifierError(info.name, name)
        ids.append(canister_id)
    return ids


def existing_idl(info: CanisterDescriptor) -> Path:
    if info.output_idl_path.exists():
        return info.output_idl_path
    raise ArtifactError(f"Candid file: {info.output_idl_path} doesn't exist.", info.name)


def run_tool(
    cmd: list[str],
    *,
    canister: str,
    cwd: Path,
    env: Mapping[str, str],
    logger: logging.LoggerAdapter,
) -> None:
    """Run *cmd* with *env* layered over the inherited environment.

    stdout/stderr go straight to the caller's terminal.
    """
    full_env = os.environ.copy()
    full_env.update(env)
    logger.info("Executing: %s", " ".join(cmd))
    try:
        proc = subprocess.run(cmd, cwd=cwd, env=full_env, check=False)
    except OSError as e:
        raise BuildToolError(canister, cmd, str(e)) from e
    if proc.returncode != 0:
        raise BuildToolError(canister, cmd, f"exited with code {proc.returncode}")


def default_builders() -> list[CanisterBuilder]:
    from .assets import AssetsBuilder
    from .custom import CustomBuilder
    from .motoko import MotokoBuilder
    from .rust import RustBuilder

    return [RustBuilder(), MotokoBuilder(), AssetsBuilder(), CustomBuilder()]


def select_builder(
    builders: Iterable[CanisterBuilder], info: CanisterDescriptor
) -> CanisterBuilder:
    for builder in builders:
        if builder.supports(info):
            return builder
    raise UnsupportedCanisterTypeError(info.name, info.type_name)
