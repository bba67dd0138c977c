"""Project file loading: JSON → validated canister descriptors.

The output path convention lives here, not in the build core:
- rust: ``target/wasm32-unknown-unknown/release/<package>.wasm`` under the
  project root, candid as declared
- motoko and assets: ``<build_root>/<name>/<name>.wasm`` and ``.did``
- custom: the declared ``wasm`` and ``candid`` paths
"""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from canister_builder.errors import ConfigurationError
from canister_builder.types import CanisterDescriptor, CanisterTypeProperties
from canister_builder.validator import validate_canister_ids, validate_project

DEFAULT_PROJECT_FILE = "dfx.json"
DEFAULT_IDS_FILE = "canister_ids.json"

_TYPE_FIELDS = ("type", "package", "candid", "main", "source", "wasm", "build")

_properties_adapter = TypeAdapter(CanisterTypeProperties)


def _read_json(path: Path) -> dict:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ConfigurationError(f"Cannot find {path}.") from e
    except OSError as e:
        raise ConfigurationError(f"Cannot read {path}: {e}") from e
    except UnicodeDecodeError as e:
        raise ConfigurationError(f"{path} is not UTF-8: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"{path} is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a JSON object.")
    return data


def default_build_root(root: Path, network: str) -> Path:
    return root / ".dfx" / network / "canisters"


def _output_paths(
    name: str, props, root: Path, build_root: Path
) -> tuple[Path, Path]:
    if props.type == "rust":
        crate = props.package.replace("-", "_")
        wasm = root / "target" / "wasm32-unknown-unknown" / "release" / f"{crate}.wasm"
        return wasm, root / props.candid
    if props.type == "custom":
        return root / props.wasm, root / props.candid
    out = build_root / name
    return out / f"{name}.wasm", out / f"{name}.did"


def parse_canisters(data: dict, root: Path, build_root: Path) -> list[CanisterDescriptor]:
    """Build descriptors from an already-loaded project mapping."""
    validate_project(data)
    descriptors: list[CanisterDescriptor] = []
    for name, raw in data["canisters"].items():
        fields = {k: raw[k] for k in _TYPE_FIELDS if k in raw}
        fields.setdefault("type", "motoko")
        try:
            props = _properties_adapter.validate_python(fields)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid canister declaration: {e}", canister=name) from e
        wasm, idl = _output_paths(name, props, root, build_root)
        descriptors.append(
            CanisterDescriptor(
                name=name,
                dependencies=list(raw.get("dependencies", [])),
                type_specific=props,
                output_wasm_path=wasm,
                output_idl_path=idl,
            )
        )
    return descriptors


def load_project(
    path: Path, network: str = "local", build_root: Path | None = None
) -> list[CanisterDescriptor]:
    path = path.resolve()
    root = path.parent
    return parse_canisters(
        _read_json(path), root, build_root or default_build_root(root, network)
    )


def load_canister_ids(path: Path, network: str) -> dict[str, str]:
    """Identifiers assigned on *network*, keyed by canister name.

    A missing file means nothing has been assigned yet.
    """
    if not path.exists():
        return {}
    data = _read_json(path)
    validate_canister_ids(data)
    return {name: by_network[network] for name, by_network in data.items() if network in by_network}
