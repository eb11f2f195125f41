"""Shared fixtures: throwaway upstream repositories and working trees."""

from pathlib import Path

import pytest
from git import Repo

from blend.manifest.models import Dependency, Manifest
from blend.manifest.store import ManifestStore
from blend.sync.workflows import Workspace
from blend.utils.fs import copy_path


class Upstream:
    """A non-bare git repository on ``main`` that accepts pushes."""

    def __init__(self, path: Path):
        self.path = path
        self.repo = Repo.init(path)
        self.repo.git.symbolic_ref("HEAD", "refs/heads/main")
        self.repo.git.config("receive.denyCurrentBranch", "ignore")

    @property
    def url(self) -> str:
        return str(self.path)

    @property
    def head(self) -> str:
        return self.repo.git.rev_parse("HEAD")

    def commit(self, files: dict[str, str], message: str = "update") -> str:
        for name, content in files.items():
            target = self.path / name
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content)
        self.repo.git.add(".")
        self.repo.git.commit("-m", message)
        return self.head

    def branch(self, name: str, files: dict[str, str]) -> str:
        """Commit ``files`` on a new branch and return to ``main``."""
        self.repo.git.checkout("-b", name)
        revision = self.commit(files, f"commit on {name}")
        self.repo.git.checkout("main")
        return revision

    def show(self, revision: str, path: str) -> str:
        return self.repo.git.show(f"{revision}:{path}")


@pytest.fixture(autouse=True)
def git_identity(monkeypatch, tmp_path_factory):
    """Isolate git from the user's configuration."""
    config = tmp_path_factory.mktemp("gitconfig") / "config"
    config.write_text("[init]\n\tdefaultBranch = main\n[commit]\n\tgpgsign = false\n")
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(config))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_TERMINAL_PROMPT", "0")
    for prefix in ("GIT_AUTHOR", "GIT_COMMITTER"):
        monkeypatch.setenv(f"{prefix}_NAME", "Test User")
        monkeypatch.setenv(f"{prefix}_EMAIL", "test@example.com")


@pytest.fixture
def upstream(tmp_path) -> Upstream:
    repo = Upstream(tmp_path / "upstream")
    repo.commit({"test.txt": "test"}, "initial commit")
    return repo


@pytest.fixture
def workdir(tmp_path) -> Path:
    path = tmp_path / "work"
    path.mkdir()
    return path


@pytest.fixture
def workspace(workdir):
    with Workspace(workdir) as ws:
        yield ws


def track(ws: Workspace, upstream: Upstream, *paths: tuple[str, str], hash: str = "") -> Manifest:
    """Record ``(remote_path, local_path)`` pairs at ``hash`` and copy them in.

    Content always comes from the upstream head, whatever ``hash`` says. The
    repository cache is left untouched, as a fresh invocation would find it.
    """
    manifest = Manifest(
        dependencies=[
            Dependency(
                repo=upstream.url,
                hash=hash or upstream.head,
                remote_path=remote,
                local_path=local,
            )
            for remote, local in paths
        ]
    )
    ws.store.write(manifest)
    # Pushes move the upstream branch without touching its working tree
    upstream.repo.git.reset("--hard")
    for remote, local in paths:
        copy_path(upstream.path / remote, ws.root / local)
    return manifest


def read_manifest(root: Path) -> Manifest:
    return ManifestStore(root).read()
