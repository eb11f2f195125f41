"""Manifest store — YAML (de)serialization and persistence of ``blend.yml``.

The on-disk schema uses camelCase keys::

    name: my-project            # optional
    description: ...            # optional
    hooks:                      # optional
      postinstall: make build
    dependencies:
      - repo: https://example.com/lib.git#main
        hash: 3f2a...
        remotePath: src/util.py
        localPath: vendor/util.py
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

import yaml

from blend.errors import MalformedManifest
from blend.manifest.models import Dependency, Hooks, Manifest

logger = logging.getLogger(__name__)

_DEPENDENCY_FIELDS = {
    "repo": "repo",
    "hash": "hash",
    "remotePath": "remote_path",
    "localPath": "local_path",
}

_BLOCK_COMMENT = re.compile(r"/\*(.*?)\*/", re.DOTALL)


def parse_manifest(text: str, source: str = "") -> Manifest:
    """Parse manifest YAML into a ``Manifest``.

    Raises:
        MalformedManifest: If the text is not YAML or does not match the schema.
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise MalformedManifest([f"invalid YAML: {e}"], source) from e

    if data is None:
        return Manifest()

    issues = _validate(data)
    if issues:
        raise MalformedManifest(issues, source)

    hooks_data = data.get("hooks")
    hooks = Hooks(**{k: hooks_data.get(k) for k in Hooks.NAMES}) if hooks_data is not None else None

    return Manifest(
        name=data.get("name"),
        description=data.get("description"),
        hooks=hooks,
        dependencies=[
            Dependency(**{attr: entry[key] for key, attr in _DEPENDENCY_FIELDS.items()})
            for entry in data.get("dependencies") or []
        ],
    )


def serialize_manifest(manifest: Manifest) -> str:
    """Render a ``Manifest`` as YAML. Absent optional fields are omitted."""
    data: dict = {}
    if manifest.name is not None:
        data["name"] = manifest.name
    if manifest.description is not None:
        data["description"] = manifest.description
    if manifest.hooks is not None:
        data["hooks"] = {
            k: getattr(manifest.hooks, k)
            for k in Hooks.NAMES
            if getattr(manifest.hooks, k) is not None
        }
    data["dependencies"] = [
        {key: getattr(dep, attr) for key, attr in _DEPENDENCY_FIELDS.items()}
        for dep in manifest.dependencies
    ]
    return yaml.safe_dump(data, sort_keys=False, default_flow_style=False, allow_unicode=True)


def _validate(data) -> list[str]:
    """Structural checks for a parsed manifest document."""
    if not isinstance(data, dict):
        return [f"/: expected a mapping, got {type(data).__name__}"]

    issues: list[str] = []

    for key in ("name", "description"):
        value = data.get(key)
        if value is not None and not isinstance(value, str):
            issues.append(f"/{key}: expected a string, got {type(value).__name__}")

    hooks = data.get("hooks")
    if hooks is not None:
        if not isinstance(hooks, dict):
            issues.append(f"/hooks: expected a mapping, got {type(hooks).__name__}")
        else:
            for key, value in hooks.items():
                if key not in Hooks.NAMES:
                    issues.append(f"/hooks: unknown hook '{key}'")
                elif value is not None and not isinstance(value, str):
                    issues.append(f"/hooks/{key}: expected a string, got {type(value).__name__}")

    deps = data.get("dependencies")
    if deps is None:
        return issues
    if not isinstance(deps, list):
        issues.append(f"/dependencies: expected a list, got {type(deps).__name__}")
        return issues

    for i, entry in enumerate(deps):
        if not isinstance(entry, dict):
            issues.append(f"/dependencies[{i}]: expected a mapping, got {type(entry).__name__}")
            continue
        for key in _DEPENDENCY_FIELDS:
            if key not in entry:
                issues.append(f"/dependencies[{i}]: missing required property '{key}'")
            elif not isinstance(entry[key], str):
                issues.append(
                    f"/dependencies[{i}].{key}: expected a string, got {type(entry[key]).__name__}"
                )

    return issues


class ManifestStore:
    """Reads and writes the manifest at the root of a working tree."""

    MANIFEST_FILE = "blend.yml"

    def __init__(self, root: str | Path):
        self.root = Path(root)
        self.path = self.root / self.MANIFEST_FILE

    def read(self) -> Manifest:
        """Load the manifest. A missing file reads as an empty manifest."""
        if not self.path.exists():
            return Manifest()
        return parse_manifest(self.path.read_text(encoding="utf-8"), str(self.path))

    def write(self, manifest: Manifest) -> None:
        self.path.write_text(serialize_manifest(manifest), encoding="utf-8")
        logger.info("Wrote %s (%d dependencies)", self.path, len(manifest.dependencies))


def read_package_metadata(path: str | Path) -> Manifest | None:
    """Read the metadata a vendored fragment carries about itself.

    A directory may ship its own ``blend.yml``; a single file may embed the
    same YAML in its first ``/* ... */`` block comment. Returns ``None`` when
    neither is present or the metadata does not parse.
    """
    path = Path(path)
    if path.is_dir():
        candidate = path / ManifestStore.MANIFEST_FILE
        if not candidate.is_file():
            return None
        text = candidate.read_text(encoding="utf-8")
    elif path.is_file():
        try:
            content = path.read_text(encoding="utf-8")
        except UnicodeDecodeError:
            return None
        match = _BLOCK_COMMENT.search(content)
        if not match:
            return None
        text = match.group(1).strip()
    else:
        return None

    try:
        return parse_manifest(text, str(path))
    except MalformedManifest as e:
        logger.debug("Ignoring package metadata in %s: %s", path, e)
        return None
