"""blend — vendor fragments of other git repositories into a working tree.

Dependencies are tracked in ``blend.yml`` with the upstream revision they
were last synchronized at, so local edits and upstream changes can be told
apart and reconciled safely.
"""

__version__ = "0.3.0"
