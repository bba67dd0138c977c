"""Build orchestration: resolve → dispatch to builder → postprocess → record."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from pathlib import Path

from canister_builder.buildpacks.base import CanisterBuilder, default_builders, select_builder
from canister_builder.errors import (
    ArtifactError,
    CanisterBuildError,
    DuplicateCanisterError,
    PreconditionError,
)
from canister_builder.logging import canister_logger, get_logger
from canister_builder.resolver import resolve
from canister_builder.types import BuildConfig, BuildOutput, CanisterDescriptor

BuildResults = dict[str, BuildOutput | CanisterBuildError]


class CanisterPool:
    """All canisters of one project, their identifiers and their build outputs.

    Constructed once per command from a parsed project and the identifiers
    assigned on the target network. Build outputs are recorded as each
    canister finishes so later canisters can read their dependencies' results.
    """

    def __init__(
        self,
        canisters: Iterable[CanisterDescriptor],
        canister_ids: Mapping[str, str] | None = None,
        builders: list[CanisterBuilder] | None = None,
    ) -> None:
        self._canisters: dict[str, CanisterDescriptor] = {}
        for info in canisters:
            if info.name in self._canisters:
                raise DuplicateCanisterError(info.name)
            self._canisters[info.name] = info
        self._ids: dict[str, str] = dict(canister_ids or {})
        self._outputs: dict[str, BuildOutput] = {}
        self.builders = builders if builders is not None else default_builders()

    # --- lookups -----------------------------------------------------------

    @property
    def canisters(self) -> list[CanisterDescriptor]:
        return list(self._canisters.values())

    def get_canister(self, name: str) -> CanisterDescriptor | None:
        return self._canisters.get(name)

    def get_canister_id(self, name: str) -> str | None:
        return self._ids.get(name)

    def get_build_output(self, name: str) -> BuildOutput | None:
        return self._outputs.get(name)

    def build_order(self, targets: str | Iterable[str] | None = None) -> list[str]:
        return resolve(self._canisters.values(), targets)

    def get_builder(self, info: CanisterDescriptor) -> CanisterBuilder:
        return select_builder(self.builders, info)

    def generate_idl(self, name: str, config: BuildConfig) -> Path:
        info = self._canisters[name]
        return self.get_builder(info).generate_idl(self, info, config)

    # --- building ----------------------------------------------------------

    def _build_one(self, info: CanisterDescriptor, config: BuildConfig) -> BuildOutput:
        if self.get_canister_id(info.name) is None:
            raise PreconditionError(
                f"Canister '{info.name}' has no assigned identifier.", canister=info.name
            )
        builder = self.get_builder(info)
        # Fails early when a dependency is undeclared or has no identifier.
        builder.get_dependencies(self, info)
        return builder.build(self, info, config)

    def build(
        self,
        targets: str | Iterable[str] | None = None,
        config: BuildConfig | None = None,
    ) -> BuildResults:
        """Build *targets* (all canisters when None) and their dependencies.

        Resolution errors (unknown names, cycles) are raised before anything
        is built. After that, the first failing canister stops the run: the
        result holds outputs for canisters built so far, the error for the
        failing one, and nothing for canisters that were not attempted.
        Artifacts already written stay on disk.
        """
        config = config or BuildConfig()
        if config.logger is None:
            config.logger = get_logger()

        order = self.build_order(targets)
        config.logger.info(
            "Build order: %s", ", ".join(order), extra={"network": config.network_name}
        )

        results: BuildResults = {}
        for name in order:
            log = canister_logger(config.logger, name)
            log.info("Building canister '%s'.", name)
            try:
                output = self._build_one(self._canisters[name], config)
            except CanisterBuildError as e:
                if e.canister is None:
                    e.canister = name
                log.error("Build failed: %s", e.message)
                results[name] = e
                return results
            except OSError as e:
                err = ArtifactError(str(e), canister=name)
                log.error("Build failed: %s", err.message)
                results[name] = err
                return results
            self._outputs[name] = output
            results[name] = output
        return results


def failures(results: BuildResults) -> dict[str, CanisterBuildError]:
    return {k: v for k, v in results.items() if isinstance(v, CanisterBuildError)}
