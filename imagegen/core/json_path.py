"""Path-addressed access into decoded JSON trees.

Path syntax:
    Dotted segments with optional bracketed indices, for example
    `predictions[2].bytesBase64Encoded`. Bracket indices are normalized to plain
    segments (`predictions.2.bytesBase64Encoded`) before traversal.

Traversal rules:
    - A purely numeric segment indexes a list.
    - Any segment keys a mapping (numeric segments included, as strings).
    - Anything else (scalars, out-of-range indices, missing keys) counts as a
      missing segment.

Best-effort contract:
    `get_value_at_path` returns the default instead of raising, and
    `set_value_at_path` silently does nothing when an intermediate segment is
    missing. Callers rely on both behaviors; neither is an error path.
"""

import re

_INDEX_PATTERN = re.compile(r"\[(\d+)\]")
_MISSING = object()


def split_path(path: str) -> list:
    """Normalize bracket indices and split `path` into segments."""
    return _INDEX_PATTERN.sub(r".\1", path).split(".")


def _step(current, segment):
    if isinstance(current, dict):
        return current.get(segment, _MISSING)
    if isinstance(current, list) and segment.isdigit():
        index = int(segment)
        if index < len(current):
            return current[index]
    return _MISSING


def get_value_at_path(root, path: str, default=None):
    """Return the value at `path` inside `root`, or `default` when absent.

    Args:
        root: Decoded JSON tree (mappings and lists).
        path: Dotted/bracket path string.
        default: Value returned when any segment is missing.

    Returns:
        The addressed value. `root` is never modified.
    """
    current = root
    for segment in split_path(path):
        current = _step(current, segment)
        if current is _MISSING:
            return default
    return current


def set_value_at_path(root, path: str, value) -> None:
    """Assign `value` at `path` inside `root`, mutating it in place.

    Every segment but the last must already exist. If one is missing the call
    is a no-op: no intermediate structure is created. A list target whose
    index is out of range is left untouched as well.
    """
    segments = split_path(path)
    current = root
    for segment in segments[:-1]:
        current = _step(current, segment)
        if current is _MISSING:
            return

    last = segments[-1]
    if isinstance(current, dict):
        current[last] = value
    elif isinstance(current, list) and last.isdigit() and int(last) < len(current):
        current[int(last)] = value
