"""
Sparse-patch merging for partial updates.

An update loads the current entity, overlays only the fields the caller
actually supplied, re-validates the merged record and writes it in one
commit.  "Supplied" means present with a non-``None`` value.
"""

from typing import Any, Dict, Iterable, Mapping, Optional


def merge_patch(
    current: Mapping[str, Any],
    patch: Mapping[str, Any],
    fields: Optional[Iterable[str]] = None,
) -> Dict[str, Any]:
    """
    Return ``current`` overlaid with every non-``None`` value from ``patch``.

    ``fields`` limits both inputs to the named keys; keys outside it are
    dropped from the result.
    """
    keys = list(fields) if fields is not None else list(current.keys() | patch.keys())
    merged: Dict[str, Any] = {}
    for key in keys:
        value = patch.get(key)
        merged[key] = value if value is not None else current.get(key)
    return merged
