"""Schema validation for project files and identifier files."""

from __future__ import annotations

import json
from importlib import resources

from jsonschema import Draft202012Validator
from jsonschema.exceptions import ValidationError

from canister_builder.errors import ConfigurationError

# --- Schema loaders ---------------------------------------------------------


def _load_schema(package: str, resource_name: str) -> dict:
    with resources.files(package).joinpath(resource_name).open("r", encoding="utf-8") as f:
        return json.load(f)


def _project_schema() -> dict:
    return _load_schema("canister_builder.schema", "project.schema.json")


def _canister_ids_schema() -> dict:
    return _load_schema("canister_builder.schema", "canister_ids.schema.json")


def _validate(schema: dict, data: dict, what: str) -> None:
    try:
        Draft202012Validator(schema).validate(data)
    except ValidationError as e:
        where = "/".join(str(p) for p in e.absolute_path) or "<root>"
        raise ConfigurationError(f"Invalid {what} at {where}: {e.message}") from e


# --- Public validators ------------------------------------------------------


def validate_project(data: dict) -> None:
    if not data.get("canisters"):
        raise ConfigurationError("No canisters in the configuration file.")
    _validate(_project_schema(), data, "project file")


def validate_canister_ids(data: dict) -> None:
    _validate(_canister_ids_schema(), data, "canister ids file")
