"""Dependency resolution: required canister set, build order and cycle checks."""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from canister_builder.errors import CycleError, UnknownCanisterError, UnknownDependencyError
from canister_builder.types import CanisterDescriptor


def _visit(
    canisters: Mapping[str, CanisterDescriptor],
    root: str,
    visited: set[str],
    order: list[str],
) -> None:
    """Post-order walk from *root* with an explicit stack (no recursion limit)."""
    if root in visited:
        return
    path = [root]
    on_path = {root}
    pending = [iter(canisters[root].dependencies)]
    while pending:
        name = path[-1]
        dep = next(pending[-1], None)
        if dep is None:
            pending.pop()
            on_path.discard(path.pop())
            visited.add(name)
            order.append(name)
            continue
        if dep not in canisters:
            raise UnknownDependencyError(name, dep)
        if dep in on_path:
            raise CycleError(path[path.index(dep) :] + [dep])
        if dep in visited:
            # Shared dependency, already emitted.
            continue
        path.append(dep)
        on_path.add(dep)
        pending.append(iter(canisters[dep].dependencies))


def resolve(
    canisters: Iterable[CanisterDescriptor],
    focus: str | Iterable[str] | None = None,
) -> list[str]:
    """Return the canisters to build, dependencies first.

    Parameters
    ----------
    canisters: Iterable[CanisterDescriptor]
        Every canister in the project, in declaration order.
    focus: str | Iterable[str] | None
        One name or several names to build. ``None`` means all canisters.

    Returns
    -------
    list[str]
        The transitive closure of *focus*, ordered so that each canister comes
        after everything it depends on. Independent canisters keep declaration
        order.

    Raises
    ------
    UnknownCanisterError
        A focus name is not declared.
    UnknownDependencyError
        A canister lists a dependency that is not declared.
    CycleError
        The dependency graph has a cycle; ``path`` runs from the repeated name
        back to itself.
    """
    table = {c.name: c for c in canisters}

    if focus is None:
        roots = list(table)
    elif isinstance(focus, str):
        roots = [focus]
    else:
        roots = list(focus)

    for root in roots:
        if root not in table:
            raise UnknownCanisterError(root)

    visited: set[str] = set()
    order: list[str] = []
    for root in roots:
        _visit(table, root, visited, order)
    return order
