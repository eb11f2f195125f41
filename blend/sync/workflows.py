"""Command workflows — add, update, commit and remove vendored dependencies.

A ``Workspace`` is one command invocation against one working tree. It owns
the repository cache for that invocation, so use it as a context manager::

    with Workspace(".") as ws:
        ws.add("https://example.com/lib.git#main", "src/util.py", "vendor/util.py")
        ws.update()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path

from blend.errors import (
    BlendError,
    EmptyCommitMessage,
    NewerRemoteVersionExists,
    NoDependenciesFound,
    NoLocalChanges,
    NotADependency,
    PathAlreadyExists,
    PathMissing,
    PathNotFound,
    PathNotFoundUpstream,
)
from blend.hooks import HookRunner
from blend.manifest.models import Dependency, Manifest, add_dependency_if_absent
from blend.manifest.store import ManifestStore, read_package_metadata
from blend.sync.cache import RepositoryCache
from blend.sync.reconcile import Clean, Diverged, Missing, Reconciler, Untracked, upstream_path
from blend.utils.fs import copy_path, remove_path
from blend.utils.git_ops import GitRepositoryAccess, RepositoryAccess

logger = logging.getLogger(__name__)


class UpdateStatus(Enum):
    """What ``update`` did with a single dependency."""

    UP_TO_DATE = "up_to_date"
    UPDATED = "updated"
    RESTORED = "restored"  # Local copy was missing and got re-materialized
    LOCAL_CHANGES = "local_changes"  # Needs 'blend commit'
    CONFLICT = "conflict"  # Local changes and a newer remote version


@dataclass
class UpdateResult:
    """Outcome of updating one dependency."""

    dependency: Dependency
    status: UpdateStatus
    previous_hash: str = ""


class Workspace:
    """A working tree with a ``blend.yml`` manifest."""

    def __init__(
        self,
        root: str | Path | None = None,
        access: RepositoryAccess | None = None,
        hook_timeout: int = HookRunner.DEFAULT_TIMEOUT,
    ):
        self.root = Path(root) if root else Path.cwd()
        self.store = ManifestStore(self.root)
        self.cache = RepositoryCache(access or GitRepositoryAccess())
        self.access = self.cache.access
        self.reconciler = Reconciler(self.store, self.cache)
        self.hooks = HookRunner(self.root, timeout=hook_timeout)

    def __enter__(self) -> "Workspace":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        """Release the invocation's cached checkouts."""
        self.cache.clear()

    # ── add ──────────────────────────────────────────────────────────

    def add(
        self,
        repo: str,
        remote_path: str,
        local_path: str | None = None,
        record: bool = True,
    ) -> Dependency:
        """Vendor ``remote_path`` of ``repo`` into ``local_path``.

        Args:
            repo: Repository locator, optionally suffixed with ``#branch``.
            remote_path: Path inside the repository.
            local_path: Destination in the working tree. Defaults to ``remote_path``.
            record: Append the dependency to the manifest and run the install
                hooks. With ``False`` only the content is copied.

        Raises:
            PathAlreadyExists: If ``local_path`` is already occupied. Checked
                before any hook runs or anything is cloned.
            RepositoryUnreachable: If ``repo`` cannot be cloned.
            PathNotFoundUpstream: If ``remote_path`` does not exist upstream.
        """
        local_path = local_path or remote_path
        if self._exists(local_path):
            raise PathAlreadyExists(local_path)
        if not record:
            return self._materialize(repo, remote_path, local_path)

        manifest = self.store.read()
        self.hooks.run(manifest.hooks, "preinstall", "add")
        dependency = self._materialize(repo, remote_path, local_path)
        self.store.write(add_dependency_if_absent(manifest, dependency))
        self.hooks.run(manifest.hooks, "postinstall", "add")
        return dependency

    def _materialize(self, repo: str, remote_path: str, local_path: str) -> Dependency:
        """Copy ``remote_path`` at the upstream tip into ``local_path``."""
        checkout = self.cache.resolve(repo)
        revision = self.access.latest_revision(checkout)
        self._copy_from_upstream(checkout, repo, remote_path, local_path)
        logger.info("Copied %s:%s@%s to %s", repo, remote_path, revision[:12], local_path)
        return Dependency(repo=repo, hash=revision, remote_path=remote_path, local_path=local_path)

    def _copy_from_upstream(self, checkout: Path, repo: str, remote_path: str, local_path: str) -> None:
        """Copy ``remote_path`` as currently checked out into ``local_path``."""
        source = upstream_path(checkout, remote_path, repo)
        if not (source.exists() or source.is_symlink()):
            raise PathNotFoundUpstream(remote_path, repo)

        metadata = read_package_metadata(source)
        if metadata is not None and metadata.name:
            logger.info(
                "Package %s%s",
                metadata.name,
                f": {metadata.description}" if metadata.description else "",
            )

        copy_path(source, self.root / local_path)

    def _restore(self, dep: Dependency) -> None:
        """Re-materialize a missing dependency at its recorded baseline."""
        checkout = self.cache.resolve(dep.repo)
        branch = dep.branch or self.access.default_branch(checkout)
        try:
            self.access.checkout(checkout, dep.hash)
            self._copy_from_upstream(checkout, dep.repo, dep.remote_path, dep.local_path)
        finally:
            self.access.reset_hard(checkout, branch)
        logger.info("Restored %s at %s", dep.local_path, dep.hash[:12])

    # ── update ───────────────────────────────────────────────────────

    def update(self) -> list[UpdateResult]:
        """Bring every dependency up to date, in manifest order.

        Dependencies with local changes (with or without a newer remote
        version) are reported and left untouched. No record is ever dropped.

        Raises:
            NoDependenciesFound: If the manifest tracks nothing.
        """
        manifest = self.store.read()
        if not manifest.dependencies:
            raise NoDependenciesFound(str(self.store.path))

        self.hooks.run(manifest.hooks, "preinstall", "update")

        # Sequential on purpose: dependencies sharing a locator share one
        # cached checkout, which classification mutates and restores.
        results: list[UpdateResult] = []
        for i, dep in enumerate(manifest.dependencies):
            current = manifest.with_dependencies(
                [r.dependency for r in results] + manifest.dependencies[i:]
            )
            try:
                results.append(self._update_one(dep, current))
            except BlendError:
                # Keep what earlier dependencies already pulled.
                if results:
                    self.store.write(current)
                raise

        self.store.write(manifest.with_dependencies([r.dependency for r in results]))
        self.hooks.run(manifest.hooks, "postinstall", "update")
        return results

    def _update_one(self, dep: Dependency, manifest: Manifest) -> UpdateResult:
        state = self.reconciler.classify(dep.local_path, manifest)

        if isinstance(state, Untracked):
            raise NotADependency(dep.local_path)

        if isinstance(state, Missing):
            self._restore(dep)
            return UpdateResult(dep, UpdateStatus.RESTORED, dep.hash)

        if isinstance(state, Diverged):
            if state.upstream_advanced:
                logger.warning(
                    "Conflict: %s has local changes and a newer remote version. "
                    "Resolve the conflict manually.",
                    dep.local_path,
                )
                return UpdateResult(dep, UpdateStatus.CONFLICT, dep.hash)
            logger.warning(
                "%s has local changes, commit them with 'blend commit'", dep.local_path
            )
            return UpdateResult(dep, UpdateStatus.LOCAL_CHANGES, dep.hash)

        if not state.upstream_advanced:
            logger.info("%s is up to date", dep.local_path)
            return UpdateResult(dep, UpdateStatus.UP_TO_DATE, dep.hash)

        checkout = self.cache.resolve(dep.repo)
        source = upstream_path(checkout, dep.remote_path, dep.repo)
        if not (source.exists() or source.is_symlink()):
            raise PathNotFoundUpstream(dep.remote_path, dep.repo)
        copy_path(source, self.root / dep.local_path)
        logger.info("Updated %s from %s to %s", dep.local_path, dep.hash[:12], state.tip[:12])
        return UpdateResult(replace(dep, hash=state.tip), UpdateStatus.UPDATED, dep.hash)

    # ── commit ───────────────────────────────────────────────────────

    def commit(self, local_path: str, message: str) -> Dependency:
        """Push local edits of a dependency upstream and advance its baseline.

        Only a dependency with local changes and no newer remote version can
        be committed.

        Raises:
            EmptyCommitMessage: If ``message`` is empty.
            NotADependency: If ``local_path`` is not tracked.
            PathMissing: If the dependency is not on disk.
            NewerRemoteVersionExists: If upstream moved past the baseline.
            NoLocalChanges: If the local copy matches the baseline.
        """
        if not message or not message.strip():
            raise EmptyCommitMessage()

        manifest = self.store.read()
        state = self.reconciler.classify(local_path, manifest)

        if isinstance(state, Untracked):
            raise NotADependency(local_path)
        if isinstance(state, Missing):
            raise PathMissing(local_path)
        if isinstance(state, Diverged) and state.upstream_advanced:
            raise NewerRemoteVersionExists(local_path, state.dependency.hash, state.tip)
        if isinstance(state, Clean):
            raise NoLocalChanges(local_path)

        dep = state.dependency
        checkout = self.cache.resolve(dep.repo)
        copy_path(self.root / dep.local_path, upstream_path(checkout, dep.remote_path, dep.repo))
        self.access.commit_and_push(checkout, message)
        revision = self.access.latest_revision(checkout)

        committed = replace(dep, hash=revision)
        self.store.write(
            manifest.with_dependencies(
                [committed if d is dep else d for d in manifest.dependencies]
            )
        )
        logger.info("Committed %s as %s", dep.local_path, revision[:12])
        return committed

    # ── remove ───────────────────────────────────────────────────────

    def remove(self, local_path: str) -> Dependency:
        """Delete a dependency's content and its manifest record.

        Raises:
            NotADependency: If ``local_path`` is not tracked.
            PathNotFound: If the tracked path does not exist on disk.
        """
        manifest = self.store.read()
        dep = manifest.find(local_path)
        if dep is None:
            raise NotADependency(local_path)
        if not self._exists(dep.local_path):
            raise PathNotFound(local_path)

        self.hooks.run(manifest.hooks, "preuninstall", "remove")
        remove_path(self.root / dep.local_path)
        self.store.write(
            manifest.with_dependencies([d for d in manifest.dependencies if d is not dep])
        )
        self.hooks.run(manifest.hooks, "postuninstall", "remove")
        logger.info("Removed %s", dep.local_path)
        return dep

    def _exists(self, local_path: str) -> bool:
        path = self.root / local_path
        return path.exists() or path.is_symlink()
