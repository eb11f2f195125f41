"""Tests for dependency classification."""

from dataclasses import replace

import pytest
from git import Repo

from blend.errors import GitFailed, PathNotFoundUpstream, RevisionNotFound
from blend.sync.reconcile import Clean, Diverged, Missing, Untracked, upstream_path

from conftest import track


def _checkout_is_clean(ws, repo: str, branch: str = "main") -> bool:
    repo = Repo(ws.cache.resolve(repo))
    return repo.active_branch.name == branch and not repo.is_dirty(untracked_files=True)


def test_untracked(workspace, upstream):
    track(workspace, upstream, ("test.txt", "test.txt"))
    assert workspace.reconciler.classify("other.txt") == Untracked("other.txt")


def test_missing(workspace, upstream, workdir):
    track(workspace, upstream, ("test.txt", "test.txt"))
    (workdir / "test.txt").unlink()

    state = workspace.reconciler.classify("test.txt")
    assert isinstance(state, Missing)
    assert state.dependency.local_path == "test.txt"
    # Missing is decided without touching the upstream
    assert len(workspace.cache) == 0


def test_clean(workspace, upstream):
    track(workspace, upstream, ("test.txt", "test.txt"))

    state = workspace.reconciler.classify("test.txt")
    assert state == Clean(state.dependency, upstream_advanced=False, tip=upstream.head)
    assert _checkout_is_clean(workspace, upstream.url)


def test_diverged(workspace, upstream, workdir):
    track(workspace, upstream, ("test.txt", "test.txt"))
    (workdir / "test.txt").write_text("test2")

    state = workspace.reconciler.classify("test.txt")
    assert isinstance(state, Diverged)
    assert not state.upstream_advanced
    assert _checkout_is_clean(workspace, upstream.url)


def test_clean_with_upstream_advanced(workspace, upstream):
    track(workspace, upstream, ("test.txt", "test.txt"))
    tip = upstream.commit({"test.txt": "test2"})

    state = workspace.reconciler.classify("test.txt")
    assert isinstance(state, Clean)
    assert state.upstream_advanced
    assert state.tip == tip


def test_diverged_with_upstream_advanced(workspace, upstream, workdir):
    track(workspace, upstream, ("test.txt", "test.txt"))
    upstream.commit({"test.txt": "test3"})
    (workdir / "test.txt").write_text("test2")

    state = workspace.reconciler.classify("test.txt")
    assert isinstance(state, Diverged)
    assert state.upstream_advanced
    assert _checkout_is_clean(workspace, upstream.url)


def test_local_matches_baseline_not_tip(workspace, upstream, workdir):
    """Unchanged content compares against the recorded revision, not the tip."""
    track(workspace, upstream, ("test.txt", "test.txt"))
    upstream.commit({"test.txt": "test2"})
    assert (workdir / "test.txt").read_text() == "test"

    state = workspace.reconciler.classify("test.txt")
    assert isinstance(state, Clean)


def test_unrelated_baseline_is_not_reported_as_advanced(workspace, upstream, workdir):
    side = upstream.branch("side", {"side.txt": "side"})
    track(workspace, upstream, ("test.txt", "test.txt"), hash=side)

    state = workspace.reconciler.classify("test.txt")
    assert isinstance(state, Clean)
    assert not state.upstream_advanced


def test_unknown_baseline_raises(workspace, upstream, workdir):
    track(workspace, upstream, ("test.txt", "test.txt"), hash="xxx")

    with pytest.raises(RevisionNotFound) as exc_info:
        workspace.reconciler.classify("test.txt")
    assert exc_info.value.revision == "xxx"
    assert _checkout_is_clean(workspace, upstream.url)


def test_checkout_is_restored_when_comparison_fails(workspace, upstream, workdir, monkeypatch):
    first = upstream.head
    upstream.commit({"other.txt": "other"})
    track(workspace, upstream, ("test.txt", "test.txt"), ("other.txt", "other.txt"))
    # The first dependency's baseline predates the second's
    manifest = workspace.store.read()
    workspace.store.write(
        manifest.with_dependencies(
            [replace(manifest.dependencies[0], hash=first), manifest.dependencies[1]]
        )
    )
    (workdir / "test.txt").write_text("edited")

    def broken(path):
        raise GitFailed("diff", str(path.parent), "broken")

    monkeypatch.setattr(workspace.access, "has_working_tree_changes", broken)
    with pytest.raises(GitFailed):
        workspace.reconciler.classify("test.txt")
    monkeypatch.undo()

    assert _checkout_is_clean(workspace, upstream.url)
    assert isinstance(workspace.reconciler.classify("other.txt"), Clean)
    assert len(workspace.cache) == 1


def test_directory_dependency(workspace, upstream, workdir):
    upstream.commit({"lib/a.txt": "a", "lib/b.txt": "b"})
    track(workspace, upstream, ("lib", "vendor/lib"))
    assert isinstance(workspace.reconciler.classify("vendor/lib"), Clean)

    (workdir / "vendor" / "lib" / "b.txt").unlink()
    assert isinstance(workspace.reconciler.classify("vendor/lib"), Diverged)

    (workdir / "vendor" / "lib" / "b.txt").write_text("b")
    (workdir / "vendor" / "lib" / "c.txt").write_text("c")
    assert isinstance(workspace.reconciler.classify("vendor/lib"), Diverged)
    assert _checkout_is_clean(workspace, upstream.url)


def test_shared_checkout_is_reused_between_dependencies(workspace, upstream, workdir):
    upstream.commit({"other.txt": "other"})
    track(workspace, upstream, ("test.txt", "test.txt"), ("other.txt", "other.txt"))
    (workdir / "test.txt").write_text("edited")

    assert isinstance(workspace.reconciler.classify("test.txt"), Diverged)
    assert isinstance(workspace.reconciler.classify("other.txt"), Clean)
    assert len(workspace.cache) == 1


def test_upstream_path_rejects_escapes(tmp_path):
    with pytest.raises(PathNotFoundUpstream):
        upstream_path(tmp_path, "../outside")
    with pytest.raises(PathNotFoundUpstream):
        upstream_path(tmp_path, ".")
    assert upstream_path(tmp_path, "./lib/a.txt") == tmp_path / "lib" / "a.txt"
