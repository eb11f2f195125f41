"""Manifest — the ``blend.yml`` record of vendored dependencies.

This package provides:
- Models: dependency records, lifecycle hooks and the manifest itself
- Store: YAML parsing/serialization and load/save against the working tree
"""

from blend.manifest.models import Dependency, Hooks, Manifest, add_dependency_if_absent
from blend.manifest.store import ManifestStore, parse_manifest, serialize_manifest

__all__ = [
    "Dependency",
    "Hooks",
    "Manifest",
    "ManifestStore",
    "add_dependency_if_absent",
    "parse_manifest",
    "serialize_manifest",
]
