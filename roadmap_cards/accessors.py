from __future__ import annotations

from typing import Any, Iterable, Optional

from .paths import split_path


def get_value_by_path(data: Any, path: str, default: Any = None) -> Any:
    """Retrieve a value from a nested card record using a dot path.

    List segments may be addressed by index ('Results.0.Value'). A dict key
    that itself contains unescaped dots ('Version 1.0') is matched greedily.
    Missing keys yield `default`.
    """
    keys = split_path(path)
    if not keys:
        return data if data is not None else default

    val = data
    i = 0
    while i < len(keys):
        key = keys[i]

        if isinstance(val, dict):
            if key in val:
                val = val[key]
                i += 1
                continue
            # Fallback for unescaped dotted keys.
            matched = False
            candidate = key
            for j in range(i + 1, len(keys)):
                candidate = candidate + '.' + keys[j]
                if candidate in val:
                    val = val[candidate]
                    i = j + 1
                    matched = True
                    break
            if not matched:
                return default

        elif isinstance(val, list):
            if not key.isdigit() or int(key) >= len(val):
                return default
            val = val[int(key)]
            i += 1
        else:
            return default

        if val is None:
            return default

    return val


def first_value(data: Any, paths: Iterable[str], default: Any = None) -> Any:
    """Return the first non-empty value found along `paths`."""
    for path in paths:
        val = get_value_by_path(data, path)
        if not is_empty(val):
            return val
    return default


def set_value_by_path(data: Any, path: str, value: Any):
    """Set a value in a nested dict by dot path (dict-only traversal)."""
    if path in (None, '', 'root'):
        return value

    if not isinstance(data, dict):
        return value

    parts = split_path(path)
    current = data
    for part in parts[:-1]:
        nxt = current.get(part)
        if not isinstance(nxt, dict):
            nxt = {}
            current[part] = nxt
        current = nxt
    current[parts[-1]] = value
    return data


def delete_value_by_path(data: Any, path: str) -> Optional[Any]:
    parts = split_path(path)
    current = data
    for part in parts[:-1]:
        if not isinstance(current, dict):
            return None
        current = current.get(part)
    if isinstance(current, dict):
        return current.pop(parts[-1], None)
    return None


def is_empty(value: Any) -> bool:
    return value is None or value == '' or value == [] or value == {}
