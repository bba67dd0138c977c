"""Shared models: canister descriptors, build context and build outputs."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RustProperties(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["rust"] = "rust"
    package: str
    candid: Path


class MotokoProperties(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["motoko"] = "motoko"
    main: Path


class AssetsProperties(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["assets"] = "assets"
    source: list[Path] = Field(default_factory=list)


class CustomProperties(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["custom"] = "custom"
    build: list[str] = Field(default_factory=list)
    wasm: Path
    candid: Path

    @field_validator("build", mode="before")
    @classmethod
    def _one_or_many(cls, v):
        # "build": "make" and "build": ["make a", "make b"] are both accepted
        if isinstance(v, str):
            return [v]
        return v


CanisterTypeProperties = Annotated[
    Union[RustProperties, MotokoProperties, AssetsProperties, CustomProperties],
    Field(discriminator="type"),
]


class CanisterDescriptor(BaseModel):
    """Immutable per-canister metadata resolved from the project file.

    Attributes
    ----------
    name: str
        Unique key within the project.
    dependencies: list[str]
        Names of canisters this one needs at compile time (unresolved).
    type_specific: CanisterTypeProperties
        Variant payload selected by its ``type`` tag.
    output_wasm_path / output_idl_path: Path
        Where the build leaves the module and interface description.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    dependencies: list[str] = Field(default_factory=list)
    type_specific: CanisterTypeProperties
    output_wasm_path: Path
    output_idl_path: Path

    @property
    def type_name(self) -> str:
        return self.type_specific.type


# --- Build outputs ----------------------------------------------------------


@dataclass(frozen=True)
class FileArtifact:
    path: Path


@dataclass(frozen=True)
class InMemoryArtifact:
    data: bytes


Artifact = Union[FileArtifact, InMemoryArtifact]


@dataclass(frozen=True)
class BuildOutput:
    canister_id: str
    wasm: Artifact
    idl: Artifact


@dataclass
class BuildConfig:
    """Per-invocation context handed to every builder call."""

    network_name: str = "local"
    project_root: Path = field(default_factory=Path.cwd)
    build_root: Path | None = None
    wasm_opt: str | None = None
    logger: logging.Logger | None = None

    def get_build_root(self) -> Path:
        if self.build_root is not None:
            return self.build_root
        return self.project_root / ".dfx" / self.network_name / "canisters"
