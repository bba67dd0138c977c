"""Build-time environment handed to external tools.

A canister learns its dependencies' identifiers only through these variables.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from canister_builder.errors import MissingBuildOutputError, MissingIdentifierError
from canister_builder.types import CanisterDescriptor, FileArtifact

if TYPE_CHECKING:
    from canister_builder.core import CanisterPool

_NON_ALNUM = re.compile(r"[^A-Za-z0-9]")


def env_suffix(canister_name: str) -> str:
    """``my-lib`` -> ``MY_LIB``."""
    return _NON_ALNUM.sub("_", canister_name).upper()


def canister_id_var(canister_name: str) -> str:
    return f"CANISTER_ID_{env_suffix(canister_name)}"


def candid_path_var(canister_name: str) -> str:
    return f"CANISTER_CANDID_PATH_{env_suffix(canister_name)}"


def environment_variables(
    pool: CanisterPool, info: CanisterDescriptor, network_name: str
) -> dict[str, str]:
    """Variables for building *info*: one id (and candid path) per dependency.

    Every dependency must already have an identifier and a recorded build
    output in *pool*; anything else means the build order was violated.
    """
    env = {"DFX_NETWORK": network_name}
    for dep in info.dependencies:
        canister_id = pool.get_canister_id(dep)
        if canister_id is None:
            raise MissingIdentifierError(info.name, dep)
        output = pool.get_build_output(dep)
        if output is None:
            raise MissingBuildOutputError(info.name, dep)
        env[canister_id_var(dep)] = canister_id
        if isinstance(output.idl, FileArtifact):
            env[candid_path_var(dep)] = str(output.idl.path)
    return env
