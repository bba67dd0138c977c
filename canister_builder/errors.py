"""Error taxonomy for canister builds.

Every error knows the canister it was raised for (when there is one), so the
pool can key failures by name and the CLI can print them without parsing.
"""

from __future__ import annotations


class CanisterBuildError(Exception):
    """Base class for everything the build core raises or returns."""

    def __init__(self, message: str, canister: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.canister = canister

    def __str__(self) -> str:
        if self.canister:
            return f"[{self.canister}] {self.message}"
        return self.message


# --- Configuration ----------------------------------------------------------


class ConfigurationError(CanisterBuildError):
    """The project declaration is unusable (reported before any build starts)."""


class UnknownCanisterError(ConfigurationError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Canister '{name}' not found.", canister=name)
        self.name = name


class UnknownDependencyError(ConfigurationError):
    def __init__(self, canister: str, dependency: str) -> None:
        super().__init__(
            f"A canister with the name '{dependency}' was not found in the current project "
            f"(required by '{canister}').",
            canister=canister,
        )
        self.dependency = dependency


class DuplicateCanisterError(ConfigurationError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Canister '{name}' is declared more than once.", canister=name)


class UnsupportedCanisterTypeError(ConfigurationError):
    def __init__(self, canister: str, type_name: str) -> None:
        super().__init__(f"No builder supports canister type '{type_name}'.", canister=canister)
        self.type_name = type_name


class CycleError(CanisterBuildError):
    def __init__(self, path: list[str]) -> None:
        super().__init__(f"Circular canister dependencies: {' -> '.join(path)}")
        self.path = list(path)


# --- Build time -------------------------------------------------------------


class BuildToolError(CanisterBuildError):
    """External compiler or script failed."""

    def __init__(self, canister: str, command: list[str], detail: str) -> None:
        super().__init__(f"'{' '.join(command)}' failed: {detail}", canister=canister)
        self.command = list(command)
        self.detail = detail


class ArtifactError(CanisterBuildError):
    """A wasm module or interface file could not be read, written or embedded."""


class PreconditionError(CanisterBuildError):
    """Orchestration invariant violated: a dependency was not prepared first."""


class MissingIdentifierError(PreconditionError):
    def __init__(self, canister: str, dependency: str) -> None:
        super().__init__(
            f"Canister '{dependency}' has no assigned identifier (required by '{canister}').",
            canister=canister,
        )
        self.dependency = dependency


class MissingBuildOutputError(PreconditionError):
    def __init__(self, canister: str, dependency: str) -> None:
        super().__init__(
            f"Canister '{dependency}' has not been built yet (required by '{canister}').",
            canister=canister,
        )
        self.dependency = dependency
