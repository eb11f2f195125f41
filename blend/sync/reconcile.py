"""Reconciliation — classify a vendored dependency against its upstream.

A dependency is compared to the content recorded at its baseline revision by
round-tripping: the upstream checkout is moved to the baseline, the local
copy is written over the fragment, and git is asked whether anything changed.
The checkout is always restored afterwards so other dependencies sharing the
same cached clone see a clean tree.

Classifications:
1. Untracked — no manifest record for the path
2. Missing — a record exists but nothing is on disk
3. Diverged — local content differs from the baseline
4. Clean — local content matches the baseline

Diverged and Clean also report whether upstream moved past the baseline.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from blend.errors import PathNotFoundUpstream
from blend.manifest.models import Dependency, Manifest, normalize_local_path
from blend.manifest.store import ManifestStore
from blend.sync.cache import RepositoryCache
from blend.utils.fs import copy_path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Untracked:
    local_path: str


@dataclass(frozen=True)
class Missing:
    dependency: Dependency


@dataclass(frozen=True)
class Diverged:
    dependency: Dependency
    upstream_advanced: bool
    tip: str


@dataclass(frozen=True)
class Clean:
    dependency: Dependency
    upstream_advanced: bool
    tip: str


Classification = Union[Untracked, Missing, Diverged, Clean]


def upstream_path(checkout: Path, remote_path: str, repo: str = "") -> Path:
    """Resolve ``remote_path`` inside ``checkout``.

    Raises:
        PathNotFoundUpstream: If the path is empty or escapes the checkout.
    """
    normalized = normalize_local_path(remote_path)
    target = (checkout / normalized).resolve()
    root = checkout.resolve()
    if not normalized or target == root or root not in target.parents:
        raise PathNotFoundUpstream(remote_path, repo)
    return checkout / normalized


class Reconciler:
    """Computes the sync classification of dependencies in a working tree."""

    def __init__(self, store: ManifestStore, cache: RepositoryCache):
        self.store = store
        self.cache = cache
        self.access = cache.access

    @property
    def root(self) -> Path:
        return self.store.root

    def classify(self, local_path: str, manifest: Manifest | None = None) -> Classification:
        """Classify the dependency tracked at ``local_path``.

        Args:
            local_path: Working-tree relative path of the dependency.
            manifest: Manifest to look the record up in. Read from disk when omitted.

        Raises:
            RevisionNotFound: If the recorded baseline no longer exists upstream.
        """
        if manifest is None:
            manifest = self.store.read()

        dep = manifest.find(local_path)
        if dep is None:
            return Untracked(local_path)

        local = self.root / dep.local_path
        if not (local.exists() or local.is_symlink()):
            return Missing(dep)

        checkout = self.cache.resolve(dep.repo)

        tip = self.access.latest_revision(checkout)
        upstream_advanced = tip != dep.hash and self.access.is_ancestor(dep.hash, tip, checkout)

        branch = dep.branch or self.access.default_branch(checkout)
        try:
            self.access.checkout(checkout, dep.hash)
            target = upstream_path(checkout, dep.remote_path, dep.repo)
            copy_path(local, target)
            local_changes = self.access.has_working_tree_changes(target)
        finally:
            self.access.reset_hard(checkout, branch)

        logger.debug(
            "%s: local_changes=%s upstream_advanced=%s (baseline %s, tip %s)",
            dep.local_path,
            local_changes,
            upstream_advanced,
            dep.hash[:12],
            tip[:12],
        )

        if local_changes:
            return Diverged(dep, upstream_advanced, tip)
        return Clean(dep, upstream_advanced, tip)
