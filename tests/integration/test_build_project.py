from __future__ import annotations

import json
import shlex
import sys
import textwrap
from pathlib import Path

import pytest
from typer.testing import CliRunner

from canister_builder.cli import app
from canister_builder.wasm.module import parse_module
from canister_builder.wasm.postprocess import read_metadata

MAKE_SCRIPT = textwrap.dedent(
    """
    import json
    import os
    import sys
    from pathlib import Path

    name = sys.argv[1]
    if name == "broken":
        sys.exit(3)
    out = Path("out")
    out.mkdir(exist_ok=True)
    # header + a "name" custom section the post-processor should strip
    (out / f"{name}.wasm").write_bytes(b"\\x00asm\\x01\\x00\\x00\\x00\\x00\\x07\\x04name\\x01\\x02")
    (out / f"{name}.did").write_text("service : { " + name + " : () -> () }\\n")
    seen = {k: v for k, v in os.environ.items() if k.startswith(("CANISTER_", "DFX_"))}
    (out / f"{name}.env.json").write_text(json.dumps(seen, sort_keys=True))
    """
)


def _custom(name: str, *deps: str) -> dict:
    return {
        "type": "custom",
        "build": f"{shlex.quote(sys.executable)} make.py {name}",
        "wasm": f"out/{name}.wasm",
        "candid": f"out/{name}.did",
        "dependencies": list(deps),
    }


def _write_project(root: Path, canisters: dict, ids: dict) -> Path:
    root.mkdir(parents=True, exist_ok=True)
    (root / "make.py").write_text(MAKE_SCRIPT, encoding="utf-8")
    (root / "dfx.json").write_text(json.dumps({"canisters": canisters}), encoding="utf-8")
    (root / "canister_ids.json").write_text(json.dumps(ids), encoding="utf-8")
    return root / "dfx.json"


@pytest.mark.timeout(60)
def test_cli_builds_app_after_lib(tmp_path: Path) -> None:
    project = _write_project(
        tmp_path / "proj",
        {"app": _custom("app", "lib"), "lib": _custom("lib"), "other": _custom("other")},
        {"lib": {"local": "xyz123"}, "app": {"local": "abc456"}, "other": {"local": "o"}},
    )
    out = project.resolve().parent / "out"

    result = CliRunner().invoke(app, ["build", "app", "--project", str(project)])
    assert result.exit_code == 0, result.output

    env = json.loads((out / "app.env.json").read_text(encoding="utf-8"))
    assert env["CANISTER_ID_LIB"] == "xyz123"
    assert env["CANISTER_CANDID_PATH_LIB"] == str(out / "lib.did")
    assert env["DFX_NETWORK"] == "local"
    assert not (out / "other.wasm").exists()

    for name in ("lib", "app"):
        wasm = out / f"{name}.wasm"
        assert "name" not in [s.custom_name for s in parse_module(wasm.read_bytes())]
        assert read_metadata(wasm, "candid:service") == (out / f"{name}.did").read_bytes()

    shown = CliRunner().invoke(app, ["metadata", str(out / "app.wasm")])
    assert shown.exit_code == 0, shown.output
    assert "service : { app : () -> () }" in shown.output


@pytest.mark.timeout(60)
def test_cli_rebuild_is_idempotent(tmp_path: Path) -> None:
    project = _write_project(tmp_path / "proj", {"lib": _custom("lib")}, {"lib": {"local": "x"}})
    wasm = project.parent / "out" / "lib.wasm"

    assert CliRunner().invoke(app, ["build", "--project", str(project)]).exit_code == 0
    first = wasm.read_bytes()
    assert CliRunner().invoke(app, ["build", "--project", str(project)]).exit_code == 0
    assert wasm.read_bytes() == first


@pytest.mark.timeout(60)
def test_cli_failing_script_exits_non_zero_and_keeps_earlier_artifacts(tmp_path: Path) -> None:
    project = _write_project(
        tmp_path / "proj",
        {"lib": _custom("lib"), "broken": _custom("broken", "lib"), "last": _custom("last", "broken")},
        {"lib": {"local": "1"}, "broken": {"local": "2"}, "last": {"local": "3"}},
    )
    out = project.resolve().parent / "out"

    result = CliRunner().invoke(app, ["build", "--project", str(project)])

    assert result.exit_code == 1
    assert "broken" in result.output
    assert (out / "lib.wasm").exists()
    assert not (out / "last.wasm").exists()


def test_cli_cycle_is_reported_without_building(tmp_path: Path) -> None:
    project = _write_project(
        tmp_path / "proj",
        {"a": _custom("a", "b"), "b": _custom("b", "a")},
        {"a": {"local": "1"}, "b": {"local": "2"}},
    )
    result = CliRunner().invoke(app, ["build", "--project", str(project)])
    assert result.exit_code == 1
    assert "a -> b -> a" in result.output
    assert not (project.parent / "out").exists()


def test_cli_deps_prints_build_order(tmp_path: Path) -> None:
    project = _write_project(
        tmp_path / "proj",
        {"app": _custom("app", "api"), "api": _custom("api", "lib"), "lib": _custom("lib")},
        {},
    )
    result = CliRunner().invoke(app, ["deps", "app", "--project", str(project)])
    assert result.exit_code == 0, result.output
    assert result.output.split() == ["lib", "api", "app"]
