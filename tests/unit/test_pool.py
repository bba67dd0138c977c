from __future__ import annotations

from pathlib import Path

import pytest

from canister_builder.core import CanisterPool, failures
from canister_builder.environment import environment_variables
from canister_builder.errors import (
    ArtifactError,
    BuildToolError,
    CycleError,
    DuplicateCanisterError,
    MissingBuildOutputError,
    MissingIdentifierError,
    PreconditionError,
    UnknownDependencyError,
    UnsupportedCanisterTypeError,
)
from canister_builder.types import (
    BuildConfig,
    BuildOutput,
    CanisterDescriptor,
    CustomProperties,
    FileArtifact,
    InMemoryArtifact,
    MotokoProperties,
)


def _canister(tmp_path: Path, name: str, *deps: str) -> CanisterDescriptor:
    return CanisterDescriptor(
        name=name,
        dependencies=list(deps),
        type_specific=MotokoProperties(main=Path("main.mo")),
        output_wasm_path=tmp_path / f"{name}.wasm",
        output_idl_path=tmp_path / f"{name}.did",
    )


class RecordingBuilder:
    """Stands in for a real toolchain: records calls, can be told to fail."""

    def __init__(self, fail: set[str] | None = None) -> None:
        self.fail = fail or set()
        self.built: list[str] = []
        self.envs: dict[str, dict[str, str]] = {}

    def supports(self, info):
        return info.type_name == "motoko"

    def get_dependencies(self, pool, info):
        from canister_builder.buildpacks.base import dependency_ids

        return dependency_ids(pool, info)

    def build(self, pool, info, config):
        self.envs[info.name] = environment_variables(pool, info, config.network_name)
        self.built.append(info.name)
        if info.name in self.fail:
            raise BuildToolError(info.name, ["moc", str(info.type_specific.main)], "exited with code 1")
        info.output_idl_path.write_text(f"service {info.name} : {{}}\n", encoding="utf-8")
        return BuildOutput(
            canister_id=pool.get_canister_id(info.name),
            wasm=InMemoryArtifact(b"\x00asm\x01\x00\x00\x00"),
            idl=FileArtifact(info.output_idl_path),
        )

    def generate_idl(self, pool, info, config):
        return info.output_idl_path


def _config(tmp_path: Path) -> BuildConfig:
    return BuildConfig(network_name="local", project_root=tmp_path)


def test_dependencies_are_built_first_and_injected(tmp_path: Path) -> None:
    builder = RecordingBuilder()
    pool = CanisterPool(
        [_canister(tmp_path, "foo", "bar"), _canister(tmp_path, "bar")],
        {"foo": "aaaaa-aa", "bar": "xyz123"},
        builders=[builder],
    )

    results = pool.build("foo", _config(tmp_path))

    assert builder.built == ["bar", "foo"]
    assert list(results) == ["bar", "foo"]
    assert not failures(results)
    assert builder.envs["foo"]["CANISTER_ID_BAR"] == "xyz123"
    assert builder.envs["foo"]["CANISTER_CANDID_PATH_BAR"] == str(tmp_path / "bar.did")
    assert builder.envs["foo"]["DFX_NETWORK"] == "local"
    assert pool.get_build_output("bar") is results["bar"]


def test_fail_fast_stops_after_first_failure(tmp_path: Path) -> None:
    builder = RecordingBuilder(fail={"B"})
    pool = CanisterPool(
        [_canister(tmp_path, "A"), _canister(tmp_path, "B"), _canister(tmp_path, "C")],
        {"A": "id-a", "B": "id-b", "C": "id-c"},
        builders=[builder],
    )

    results = pool.build(None, _config(tmp_path))

    assert isinstance(results["A"], BuildOutput)
    assert isinstance(results["B"], BuildToolError)
    assert results["B"].canister == "B"
    assert "C" not in results
    assert builder.built == ["A", "B"]
    assert pool.get_build_output("A") is not None
    assert pool.get_build_output("B") is None


def test_cycle_aborts_before_any_build(tmp_path: Path) -> None:
    builder = RecordingBuilder()
    pool = CanisterPool(
        [_canister(tmp_path, "A", "B"), _canister(tmp_path, "B", "A")],
        {"A": "id-a", "B": "id-b"},
        builders=[builder],
    )
    with pytest.raises(CycleError) as info:
        pool.build(None, _config(tmp_path))
    assert {"A", "B"} <= set(info.value.path)
    assert builder.built == []
    assert list(tmp_path.iterdir()) == []


def test_unknown_dependency_aborts_before_any_build(tmp_path: Path) -> None:
    builder = RecordingBuilder()
    pool = CanisterPool(
        [_canister(tmp_path, "ok"), _canister(tmp_path, "app", "nope")],
        {"ok": "1", "app": "2"},
        builders=[builder],
    )
    with pytest.raises(UnknownDependencyError):
        pool.build(None, _config(tmp_path))
    assert builder.built == []


def test_duplicate_names_are_rejected(tmp_path: Path) -> None:
    with pytest.raises(DuplicateCanisterError):
        CanisterPool([_canister(tmp_path, "x"), _canister(tmp_path, "x")], {})


def test_canister_without_identifier_fails_as_precondition(tmp_path: Path) -> None:
    builder = RecordingBuilder()
    pool = CanisterPool([_canister(tmp_path, "solo")], {}, builders=[builder])
    results = pool.build("solo", _config(tmp_path))
    assert isinstance(results["solo"], PreconditionError)
    assert builder.built == []


def test_dependency_without_identifier(tmp_path: Path) -> None:
    pool = CanisterPool(
        [_canister(tmp_path, "app", "lib"), _canister(tmp_path, "lib")],
        {"app": "1"},
        builders=[RecordingBuilder()],
    )
    results = pool.build("app", _config(tmp_path))
    # lib itself has no id, so the run stops there
    assert isinstance(results["lib"], PreconditionError)
    assert "app" not in results

    with pytest.raises(MissingIdentifierError):
        pool.builders[0].get_dependencies(pool, pool.get_canister("app"))


def test_environment_requires_recorded_output(tmp_path: Path) -> None:
    pool = CanisterPool(
        [_canister(tmp_path, "app", "lib"), _canister(tmp_path, "lib")],
        {"app": "1", "lib": "2"},
        builders=[RecordingBuilder()],
    )
    with pytest.raises(MissingBuildOutputError):
        environment_variables(pool, pool.get_canister("app"), "local")


def test_unsupported_type_is_reported_for_that_canister(tmp_path: Path) -> None:
    custom = CanisterDescriptor(
        name="c",
        type_specific=CustomProperties(build=["true"], wasm=Path("c.wasm"), candid=Path("c.did")),
        output_wasm_path=tmp_path / "c.wasm",
        output_idl_path=tmp_path / "c.did",
    )
    pool = CanisterPool([custom], {"c": "id"}, builders=[RecordingBuilder()])
    results = pool.build("c", _config(tmp_path))
    assert isinstance(results["c"], UnsupportedCanisterTypeError)


def test_os_errors_become_artifact_errors(tmp_path: Path) -> None:
    class Exploding(RecordingBuilder):
        def build(self, pool, info, config):
            raise PermissionError("read-only file system")

    pool = CanisterPool([_canister(tmp_path, "x")], {"x": "1"}, builders=[Exploding()])
    results = pool.build("x", _config(tmp_path))
    assert isinstance(results["x"], ArtifactError)
    assert results["x"].canister == "x"


def test_generate_idl_dispatches_to_builder(tmp_path: Path) -> None:
    pool = CanisterPool([_canister(tmp_path, "x")], {"x": "1"}, builders=[RecordingBuilder()])
    assert pool.generate_idl("x", _config(tmp_path)) == tmp_path / "x.did"


def test_malformed_module_comes_back_as_a_value(tmp_path: Path) -> None:
    # A custom canister with no commands: its declared outputs are used as-is.
    def custom(name: str, wasm: bytes, *deps: str) -> CanisterDescriptor:
        (tmp_path / f"{name}.wasm").write_bytes(wasm)
        (tmp_path / f"{name}.did").write_text("service : {}\n", encoding="utf-8")
        return CanisterDescriptor(
            name=name,
            dependencies=list(deps),
            type_specific=CustomProperties(
                build=[], wasm=Path(f"{name}.wasm"), candid=Path(f"{name}.did")
            ),
            output_wasm_path=tmp_path / f"{name}.wasm",
            output_idl_path=tmp_path / f"{name}.did",
        )

    header = b"\x00asm\x01\x00\x00\x00"
    bad_name_section = b"\x00\x03\x02\xff\xfe"
    pool = CanisterPool(
        [custom("good", header), custom("bad", header + bad_name_section, "good")],
        {"good": "1", "bad": "2"},
    )

    results = pool.build("bad", _config(tmp_path))

    assert isinstance(results["good"], BuildOutput)
    assert isinstance(results["bad"], ArtifactError)
    assert results["bad"].canister == "bad"
