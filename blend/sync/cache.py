"""Repository cache — one upstream checkout per locator and invocation.

Reconciling or copying a dependency needs a live checkout of its upstream.
The cache clones each distinct locator once and hands the same checkout to
every later caller, so N dependencies on one repository cost one clone.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
import weakref
from pathlib import Path

from blend.manifest.models import split_locator
from blend.utils.git_ops import RepositoryAccess

logger = logging.getLogger(__name__)


class RepositoryCache:
    """Memoizes cloned checkouts keyed by the exact locator string.

    ``url#a`` and ``url#b`` are distinct entries. Use as a context manager so
    the temporary clones are deleted when the invocation ends::

        with RepositoryCache(access) as cache:
            checkout = cache.resolve("https://example.com/lib.git#main")
    """

    TEMP_PREFIX = "blend_"

    def __init__(self, access: RepositoryAccess):
        self.access = access
        self._entries: dict[str, Path] = {}
        # Deletes leftover checkouts when the cache is collected or at exit.
        weakref.finalize(self, _remove_checkouts, self._entries)

    def __enter__(self) -> "RepositoryCache":
        return self

    def __exit__(self, *exc) -> None:
        self.clear()

    def __contains__(self, repo: str) -> bool:
        return repo in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def resolve(self, repo: str) -> Path:
        """Return the checkout for ``repo``, cloning it on first use.

        Raises:
            RepositoryUnreachable: If the repository cannot be cloned.
            RevisionNotFound: If the locator's branch does not exist.
        """
        cached = self._entries.get(repo)
        if cached is not None:
            logger.debug("Repository cache hit: %s -> %s", repo, cached)
            return cached

        url, branch = split_locator(repo)
        checkout = Path(tempfile.mkdtemp(prefix=self.TEMP_PREFIX))
        try:
            self.access.clone(url, checkout)
            if branch:
                self.access.checkout(checkout, branch)
        except Exception:
            shutil.rmtree(checkout, ignore_errors=True)
            raise

        logger.debug("Cloned %s into %s", repo, checkout)
        self._entries[repo] = checkout
        return checkout

    def clear(self) -> None:
        """Forget every entry and delete the checkouts."""
        _remove_checkouts(self._entries)


def _remove_checkouts(entries: dict[str, Path]) -> None:
    for checkout in entries.values():
        shutil.rmtree(checkout, ignore_errors=True)
    entries.clear()
