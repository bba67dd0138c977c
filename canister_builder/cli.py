"""canister-builder CLI.

Commands:
- build [CANISTER]   build one canister (plus dependencies) or all of them
- deps [CANISTER]    print the resolved build order
- metadata WASM      print a custom section embedded in a built module
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich import print as rprint
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from canister_builder.config import (
    DEFAULT_IDS_FILE,
    DEFAULT_PROJECT_FILE,
    load_canister_ids,
    load_project,
)
from canister_builder.core import CanisterPool, failures
from canister_builder.digest import artifact_sha256
from canister_builder.errors import CanisterBuildError
from canister_builder.logging import get_logger
from canister_builder.types import BuildConfig, FileArtifact
from canister_builder.wasm.module import WasmFormatError
from canister_builder.wasm.postprocess import read_metadata

app = typer.Typer(add_completion=False, help="Build canisters in dependency order")
console = Console()


def _fail(err: object) -> None:
    rprint(f"[red]Error:[/red] {escape(str(err))}")
    raise typer.Exit(code=1)


@app.command()
def build(
    canister: str | None = typer.Argument(None, help="Canister to build (default: all)"),
    project: str = typer.Option(DEFAULT_PROJECT_FILE, "--project", help="Project file"),
    network: str = typer.Option(
        "local", "--network", envvar="DFX_NETWORK", help="Target network name"
    ),
    ids: str | None = typer.Option(
        None, "--ids", help="canister_ids.json (default: next to the project file)"
    ),
    build_root: str | None = typer.Option(None, "--build-root", help="Output directory"),
    wasm_opt: str | None = typer.Option(
        None, "--wasm-opt", help="Run wasm-opt at this level first (e.g. Oz)"
    ),
) -> None:
    project_path = Path(project).resolve()
    ids_path = Path(ids) if ids else project_path.parent / DEFAULT_IDS_FILE
    out = Path(build_root).resolve() if build_root else None

    try:
        canisters = load_project(project_path, network=network, build_root=out)
        pool = CanisterPool(canisters, load_canister_ids(ids_path, network))
        config = BuildConfig(
            network_name=network,
            project_root=project_path.parent,
            build_root=out,
            wasm_opt=wasm_opt,
            logger=get_logger(),
        )
        results = pool.build(canister, config)
    except CanisterBuildError as e:
        _fail(e)

    table = Table(title=f"Build Summary ({network})")
    table.add_column("Canister", style="cyan")
    table.add_column("Status")
    table.add_column("WASM")
    table.add_column("SHA-256")
    for name, result in results.items():
        if isinstance(result, CanisterBuildError):
            table.add_row(name, "[red]failed[/red]", "", "")
            continue
        where = str(result.wasm.path) if isinstance(result.wasm, FileArtifact) else "<memory>"
        table.add_row(name, "[green]built[/green]", where, artifact_sha256(result.wasm) or "")
    console.print(table)

    failed = failures(results)
    if failed:
        for err in failed.values():
            rprint(f"[red]{escape(str(err))}[/red]")
        raise typer.Exit(code=1)
    rprint(f"[green]Built {len(results)} canister(s).[/green]")


@app.command()
def deps(
    canister: str | None = typer.Argument(None, help="Canister (default: all)"),
    project: str = typer.Option(DEFAULT_PROJECT_FILE, "--project", help="Project file"),
) -> None:
    try:
        pool = CanisterPool(load_project(Path(project)))
        order = pool.build_order(canister)
    except CanisterBuildError as e:
        _fail(e)
    for name in order:
        print(name)


@app.command()
def metadata(
    wasm: str = typer.Argument(..., help="Path to a built wasm module"),
    section: str = typer.Argument("candid:service", help="Metadata section name"),
) -> None:
    try:
        content = read_metadata(Path(wasm), section)
    except (OSError, WasmFormatError) as e:
        _fail(e)
    if content is None:
        _fail(f"No metadata section '{section}' in {wasm}")
    print(content.decode("utf-8", errors="replace"))


if __name__ == "__main__":
    app()
