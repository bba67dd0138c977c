"""SHA-256 helpers for build artifacts (summary output, asset manifests)."""

from __future__ import annotations

import hashlib
from pathlib import Path

from canister_builder.types import Artifact, FileArtifact


def sha256(path: Path) -> str:
    """Return the hex SHA-256 of *path*."""
    h = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(1024 * 1024), b""):
            h.update(chunk)
    return h.hexdigest()


def artifact_sha256(artifact: Artifact) -> str | None:
    """Digest of a build artifact; None when a file artifact is missing on disk."""
    if isinstance(artifact, FileArtifact):
        if not artifact.path.is_file():
            return None
        return sha256(artifact.path)
    return hashlib.sha256(artifact.data).hexdigest()
