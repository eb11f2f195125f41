"""Tests for the per-invocation repository cache."""

import gc
from pathlib import Path

import pytest
from git import Repo

from blend.errors import RepositoryUnreachable, RevisionNotFound
from blend.sync.cache import RepositoryCache
from blend.utils.git_ops import GitRepositoryAccess


class CountingAccess(GitRepositoryAccess):
    """Git access that records every clone."""

    def __init__(self):
        self.clones: list[str] = []

    def clone(self, url: str, destination: Path) -> Path:
        self.clones.append(url)
        return super().clone(url, destination)


def test_resolve_clones_once_per_locator(upstream):
    access = CountingAccess()
    with RepositoryCache(access) as cache:
        first = cache.resolve(upstream.url)
        second = cache.resolve(upstream.url)

        assert first == second
        assert (first / "test.txt").read_text() == "test"
        assert access.clones == [upstream.url]
        assert len(cache) == 1


def test_branch_suffix_is_a_separate_entry(upstream):
    upstream.branch("feature", {"test.txt": "feature"})
    access = CountingAccess()
    with RepositoryCache(access) as cache:
        default = cache.resolve(upstream.url)
        feature = cache.resolve(f"{upstream.url}#feature")

        assert default != feature
        assert (default / "test.txt").read_text() == "test"
        assert (feature / "test.txt").read_text() == "feature"
        assert Repo(feature).active_branch.name == "feature"
        # The branch is stripped before cloning
        assert access.clones == [upstream.url, upstream.url]
        assert f"{upstream.url}#feature" in cache


def test_clear_forgets_entries_and_deletes_checkouts(upstream):
    access = CountingAccess()
    cache = RepositoryCache(access)
    checkout = cache.resolve(upstream.url)

    cache.clear()

    assert len(cache) == 0
    assert not checkout.exists()
    cache.resolve(upstream.url)
    assert len(access.clones) == 2
    cache.clear()


def test_context_manager_cleans_up(upstream):
    with RepositoryCache(GitRepositoryAccess()) as cache:
        checkout = cache.resolve(upstream.url)
        assert checkout.exists()
    assert not checkout.exists()


def test_collected_cache_deletes_its_checkouts(upstream):
    cache = RepositoryCache(GitRepositoryAccess())
    checkout = cache.resolve(upstream.url)

    del cache
    gc.collect()

    assert not checkout.exists()


def test_unreachable_repository(tmp_path):
    with RepositoryCache(GitRepositoryAccess()) as cache:
        with pytest.raises(RepositoryUnreachable) as exc_info:
            cache.resolve(str(tmp_path / "does-not-exist"))
        assert exc_info.value.repo == str(tmp_path / "does-not-exist")
        assert len(cache) == 0


def test_unknown_branch(upstream):
    with RepositoryCache(GitRepositoryAccess()) as cache:
        with pytest.raises(RevisionNotFound) as exc_info:
            cache.resolve(f"{upstream.url}#no-such-branch")
        assert exc_info.value.revision == "no-such-branch"
        assert len(cache) == 0
