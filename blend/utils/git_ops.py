"""Git operations — the repository access port and its git-backed implementation.

Every operation maps to ``git`` invocations made through GitPython's command
wrapper. The processes are tracked in the process registry, and git failures
are translated into blend errors.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from pathlib import Path

from git import Git, GitCommandError
from git.compat import safe_decode
from git.util import remove_password_if_present

from blend.errors import (
    DefaultBranchUnknown,
    GitFailed,
    NothingToCommit,
    PushFailed,
    RepositoryUnreachable,
    RevisionNotFound,
)
from blend.utils import processes

logger = logging.getLogger(__name__)

_HEAD_BRANCH = re.compile(r"HEAD branch: (.+)")


class RepositoryAccess(ABC):
    """Operations the reconciliation engine needs from a versioned store."""

    @abstractmethod
    def clone(self, url: str, destination: Path) -> Path:
        """Clone ``url`` into ``destination`` and return the checkout path."""
        raise NotImplementedError

    @abstractmethod
    def checkout(self, checkout_path: Path, ref: str) -> None:
        """Check out a revision or branch."""
        raise NotImplementedError

    @abstractmethod
    def latest_revision(self, checkout_path: Path) -> str:
        """Return the revision ``HEAD`` points at."""
        raise NotImplementedError

    @abstractmethod
    def is_ancestor(self, ancestor: str, descendant: str, checkout_path: Path) -> bool:
        """True if ``ancestor`` is an ancestor of ``descendant``."""
        raise NotImplementedError

    @abstractmethod
    def has_working_tree_changes(self, path: Path) -> bool:
        """True if ``path`` is untracked or differs from the index."""
        raise NotImplementedError

    @abstractmethod
    def default_branch(self, checkout_path: Path) -> str:
        raise NotImplementedError

    @abstractmethod
    def commit_and_push(self, checkout_path: Path, message: str | None = None) -> None:
        """Stage everything, commit and push to the configured upstream."""
        raise NotImplementedError

    @abstractmethod
    def reset_hard(self, checkout_path: Path, branch: str | None = None) -> None:
        """Discard working-tree changes, optionally returning to ``branch``."""
        raise NotImplementedError


class TrackedGit(Git):
    """``Git`` whose child processes live in the process registry.

    Each command is started as a process, registered with
    :mod:`blend.utils.processes` while it runs and released once it exits.
    Output and errors come back the way ``Git.execute`` returns them.
    """

    def execute(self, command, **kwargs):
        if kwargs.get("as_process") or kwargs.get("output_stream") is not None:
            return super().execute(command, **kwargs)

        with_extended_output = kwargs.pop("with_extended_output", False)
        with_exceptions = kwargs.pop("with_exceptions", True)
        stdout_as_string = kwargs.pop("stdout_as_string", True)
        strip_newline = kwargs.pop("strip_newline_in_stdout", True)

        handle = super().execute(command, as_process=True, **kwargs)
        proc = processes.track(handle.proc)
        try:
            stdout, stderr = proc.communicate()
        finally:
            processes.release(proc)

        stdout = stdout or b""
        stderr = stderr or b""
        if strip_newline and stdout.endswith(b"\n"):
            stdout = stdout[:-1]
        if stderr.endswith(b"\n"):
            stderr = stderr[:-1]

        if with_exceptions and proc.returncode != 0:
            raise GitCommandError(
                remove_password_if_present(command), proc.returncode, stderr, stdout
            )

        if stdout_as_string:
            stdout = safe_decode(stdout)
        if with_extended_output:
            return (proc.returncode, stdout, safe_decode(stderr))
        return stdout


class GitRepositoryAccess(RepositoryAccess):
    """``RepositoryAccess`` implemented with the ``git`` command line."""

    def clone(self, url: str, destination: Path) -> Path:
        logger.debug("git clone %s %s", url, destination)
        try:
            TrackedGit().clone("--", url, str(destination))
        except GitCommandError as e:
            raise RepositoryUnreachable(url, _output(e)) from e
        return destination

    def checkout(self, checkout_path: Path, ref: str) -> None:
        logger.debug("git checkout %s (in %s)", ref, checkout_path)
        try:
            TrackedGit(checkout_path).checkout(ref)
        except GitCommandError as e:
            raise RevisionNotFound(ref, str(checkout_path)) from e

    def latest_revision(self, checkout_path: Path) -> str:
        try:
            return TrackedGit(checkout_path).rev_parse("HEAD").strip()
        except GitCommandError as e:
            raise GitFailed("rev-parse HEAD", str(checkout_path), _output(e)) from e

    def is_ancestor(self, ancestor: str, descendant: str, checkout_path: Path) -> bool:
        # Exits 1 for "not an ancestor" and 128 for unknown revisions; both mean no.
        try:
            TrackedGit(checkout_path).merge_base("--is-ancestor", ancestor, descendant)
        except GitCommandError:
            return False
        return True

    def has_working_tree_changes(self, path: Path) -> bool:
        git = TrackedGit(path.parent)
        try:
            untracked = git.ls_files("--others", "--exclude-standard", path.name)
        except GitCommandError as e:
            raise GitFailed("ls-files", str(path.parent), _output(e)) from e
        if untracked.strip():
            return True
        try:
            git.diff("-s", "--exit-code", "--", path.name)
        except GitCommandError as e:
            if e.status == 1:
                return True
            raise GitFailed("diff", str(path.parent), _output(e)) from e
        return False

    def default_branch(self, checkout_path: Path) -> str:
        try:
            info = TrackedGit(checkout_path).remote("show", "origin")
        except GitCommandError as e:
            raise DefaultBranchUnknown(str(checkout_path)) from e
        match = _HEAD_BRANCH.search(info)
        if not match or match.group(1).strip() == "(unknown)":
            raise DefaultBranchUnknown(str(checkout_path))
        return match.group(1).strip()

    def commit_and_push(self, checkout_path: Path, message: str | None = None) -> None:
        git = TrackedGit(checkout_path)
        try:
            git.add(".")
        except GitCommandError as e:
            raise GitFailed("add", str(checkout_path), _output(e)) from e
        try:
            if message:
                git.commit("-m", message)
            else:
                # Lets git open the configured editor.
                git.commit()
        except GitCommandError as e:
            if "nothing to commit" in _output(e):
                raise NothingToCommit(str(checkout_path)) from e
            raise GitFailed("commit", str(checkout_path), _output(e)) from e
        logger.debug("git push (in %s)", checkout_path)
        try:
            git.push()
        except GitCommandError as e:
            raise PushFailed(str(checkout_path), _output(e)) from e

    def reset_hard(self, checkout_path: Path, branch: str | None = None) -> None:
        git = TrackedGit(checkout_path)
        try:
            if branch is None:
                git.reset("--hard")
            else:
                git.reset("--hard", branch)
                git.checkout(branch)
            # reset leaves untracked files from a probing copy behind
            git.clean("-fd")
        except GitCommandError as e:
            raise GitFailed("reset --hard", str(checkout_path), _output(e)) from e


def _output(error: GitCommandError) -> str:
    """Return whatever git printed before failing."""
    parts = [error.stdout, error.stderr]
    return "\n".join(str(p).strip() for p in parts if p)
