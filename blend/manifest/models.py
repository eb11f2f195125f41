"""Manifest data models — dependency records, hooks and the manifest."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Dependency:
    """One vendored fragment of an upstream repository."""

    repo: str
    """Repository locator, optionally suffixed with ``#branch``."""

    hash: str
    """Upstream revision the local copy was last synchronized with."""

    remote_path: str
    """Path of the fragment inside the upstream repository."""

    local_path: str
    """Path of the fragment inside the working tree. Unique per manifest."""

    @property
    def url(self) -> str:
        return split_locator(self.repo)[0]

    @property
    def branch(self) -> str | None:
        return split_locator(self.repo)[1]


@dataclass(frozen=True)
class Hooks:
    """Shell commands run around install and uninstall."""

    preinstall: str | None = None
    postinstall: str | None = None
    preuninstall: str | None = None
    postuninstall: str | None = None

    NAMES = ("preinstall", "postinstall", "preuninstall", "postuninstall")


@dataclass(frozen=True)
class Manifest:
    """The full content of a ``blend.yml`` file."""

    name: str | None = None
    description: str | None = None
    hooks: Hooks | None = None
    dependencies: list[Dependency] = field(default_factory=list)

    def find(self, local_path: str) -> Dependency | None:
        """Return the record tracked at ``local_path``, if any."""
        wanted = normalize_local_path(local_path)
        for dep in self.dependencies:
            if normalize_local_path(dep.local_path) == wanted:
                return dep
        return None

    def with_dependencies(self, dependencies: list[Dependency]) -> Manifest:
        return replace(self, dependencies=list(dependencies))


def add_dependency_if_absent(manifest: Manifest, dependency: Dependency) -> Manifest:
    """Append ``dependency`` unless its local path is already tracked.

    When it is, ``manifest`` is returned unchanged and a notice is logged.
    """
    if manifest.find(dependency.local_path) is not None:
        logger.warning(
            "Dependency with local path %s already exists. Dependency not added.",
            dependency.local_path,
        )
        return manifest
    return manifest.with_dependencies([*manifest.dependencies, dependency])


def split_locator(repo: str) -> tuple[str, str | None]:
    """Split ``<url>#<branch>`` into its URL and optional branch."""
    url, sep, branch = repo.partition("#")
    if not sep or not branch:
        return url, None
    return url, branch


def normalize_local_path(path: str) -> str:
    """Normalize a working-tree relative path for identity comparisons."""
    parts = [p for p in path.replace("\\", "/").split("/") if p not in ("", ".")]
    return "/".join(parts)
