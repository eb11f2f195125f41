"""Error taxonomy for blend.

Every failure a command can end with is one ``ErrorKind``. Each kind has a
matching ``BlendError`` subclass carrying the structured details (paths,
revisions, repositories); the CLI formats ``str(error)`` for the user.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(Enum):
    """Closed set of failure kinds."""

    REPOSITORY_UNREACHABLE = "repository_unreachable"
    REVISION_NOT_FOUND = "revision_not_found"
    DEFAULT_BRANCH_UNKNOWN = "default_branch_unknown"
    PATH_NOT_FOUND_UPSTREAM = "path_not_found_upstream"
    PATH_ALREADY_EXISTS = "path_already_exists"
    PATH_NOT_FOUND = "path_not_found"
    PATH_MISSING = "path_missing"
    NOT_A_DEPENDENCY = "not_a_dependency"
    NO_LOCAL_CHANGES = "no_local_changes"
    NEWER_REMOTE_VERSION_EXISTS = "newer_remote_version_exists"
    NOTHING_TO_COMMIT = "nothing_to_commit"
    PUSH_FAILED = "push_failed"
    GIT_FAILED = "git_failed"
    EMPTY_COMMIT_MESSAGE = "empty_commit_message"
    NO_DEPENDENCIES_FOUND = "no_dependencies_found"
    MALFORMED_MANIFEST = "malformed_manifest"
    HOOK_FAILED = "hook_failed"


class BlendError(Exception):
    """Base class for all errors that abort a blend command."""

    kind: ErrorKind

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# --- Repository access ---


class RepositoryUnreachable(BlendError):
    kind = ErrorKind.REPOSITORY_UNREACHABLE

    def __init__(self, repo: str, detail: str = ""):
        self.repo = repo
        self.detail = detail
        super().__init__(f"Unable to access repository {repo}")


class RevisionNotFound(BlendError):
    kind = ErrorKind.REVISION_NOT_FOUND

    def __init__(self, revision: str, checkout_path: str = ""):
        self.revision = revision
        self.checkout_path = checkout_path
        super().__init__(f"Revision {revision} does not exist in the repository")


class DefaultBranchUnknown(BlendError):
    kind = ErrorKind.DEFAULT_BRANCH_UNKNOWN

    def __init__(self, checkout_path: str):
        self.checkout_path = checkout_path
        super().__init__(f"Unable to find default branch of {checkout_path}")


class NothingToCommit(BlendError):
    kind = ErrorKind.NOTHING_TO_COMMIT

    def __init__(self, checkout_path: str):
        self.checkout_path = checkout_path
        super().__init__("Nothing to commit")


class PushFailed(BlendError):
    kind = ErrorKind.PUSH_FAILED

    def __init__(self, checkout_path: str, detail: str = ""):
        self.checkout_path = checkout_path
        self.detail = detail
        message = "Failed to push changes upstream"
        if detail:
            message += f":\n{detail}"
        super().__init__(message)


class GitFailed(BlendError):
    """A git command failed in a way no other kind describes."""

    kind = ErrorKind.GIT_FAILED

    def __init__(self, command: str, checkout_path: str = "", detail: str = ""):
        self.command = command
        self.checkout_path = checkout_path
        self.detail = detail
        message = f"git {command} failed"
        if checkout_path:
            message += f" in {checkout_path}"
        if detail:
            message += f":\n{detail}"
        super().__init__(message)


# --- Paths and dependencies ---


class PathNotFoundUpstream(BlendError):
    kind = ErrorKind.PATH_NOT_FOUND_UPSTREAM

    def __init__(self, remote_path: str, repo: str):
        self.remote_path = remote_path
        self.repo = repo
        super().__init__(f"Path {remote_path} does not exist in the repository {repo}")


class PathAlreadyExists(BlendError):
    kind = ErrorKind.PATH_ALREADY_EXISTS

    def __init__(self, local_path: str):
        self.local_path = local_path
        super().__init__(f"Path {local_path} already exists")


class PathNotFound(BlendError):
    kind = ErrorKind.PATH_NOT_FOUND

    def __init__(self, local_path: str):
        self.local_path = local_path
        super().__init__(f"Path {local_path} does not exist")


class PathMissing(BlendError):
    kind = ErrorKind.PATH_MISSING

    def __init__(self, local_path: str):
        self.local_path = local_path
        super().__init__(f"Dependency {local_path} does not exist, run 'blend update' first")


class NotADependency(BlendError):
    kind = ErrorKind.NOT_A_DEPENDENCY

    def __init__(self, local_path: str):
        self.local_path = local_path
        super().__init__(f"{local_path} is not a dependency")


class NoLocalChanges(BlendError):
    kind = ErrorKind.NO_LOCAL_CHANGES

    def __init__(self, local_path: str):
        self.local_path = local_path
        super().__init__(f"Dependency {local_path} has no changes")


class NewerRemoteVersionExists(BlendError):
    kind = ErrorKind.NEWER_REMOTE_VERSION_EXISTS

    def __init__(self, local_path: str, baseline: str = "", tip: str = ""):
        self.local_path = local_path
        self.baseline = baseline
        self.tip = tip
        super().__init__(
            f"Dependency {local_path} has a newer remote version. "
            "Resolve the conflict manually before committing."
        )


# --- Input and state validation ---


class EmptyCommitMessage(BlendError):
    kind = ErrorKind.EMPTY_COMMIT_MESSAGE

    def __init__(self):
        super().__init__("Please provide a commit message")


class NoDependenciesFound(BlendError):
    kind = ErrorKind.NO_DEPENDENCIES_FOUND

    def __init__(self, manifest_path: str = ""):
        self.manifest_path = manifest_path
        super().__init__("No dependencies found")


class MalformedManifest(BlendError):
    kind = ErrorKind.MALFORMED_MANIFEST

    def __init__(self, issues: list[str], source: str = ""):
        self.issues = issues
        self.source = source
        where = f" {source}" if source else ""
        super().__init__(f"Malformed manifest{where}:\n" + "\n".join(f"  - {i}" for i in issues))


class HookFailed(BlendError):
    kind = ErrorKind.HOOK_FAILED

    def __init__(self, hook: str, command: str, exit_code: int, stderr: str = ""):
        self.hook = hook
        self.command = command
        self.exit_code = exit_code
        self.stderr = stderr
        message = f"Hook '{hook}' ({command}) exited with code {exit_code}"
        if stderr:
            message += f":\n{stderr.strip()}"
        super().__init__(message)
