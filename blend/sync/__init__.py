"""Bidirectional sync — keeping vendored fragments and their upstreams aligned.

This package provides the primitives for:
- Repository cache: one upstream checkout per locator per command invocation
- Reconciliation: classifying a dependency against its recorded baseline
- Workflows: the add / update / commit / remove commands built on top
"""
