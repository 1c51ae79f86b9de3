"""JSON payload helpers."""
import copy
from typing import Any, Dict, Optional


def merge_json_objects(
    target: Optional[Dict[str, Any]],
    source: Optional[Dict[str, Any]],
) -> Optional[Dict[str, Any]]:
    """
    Deep-merge ``source`` into a copy of ``target``.

    Nested objects are merged key by key; lists and scalars from ``source``
    replace the stored value. Keys absent from ``source`` are preserved.
    Neither argument is mutated.

    Args:
        target: Stored payload
        source: Requested changes

    Returns:
        Merged payload, or None when both sides are None
    """
    if source is None:
        return copy.deepcopy(target)
    if target is None:
        return copy.deepcopy(source)

    merged = copy.deepcopy(target)
    for key, value in source.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_json_objects(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged
