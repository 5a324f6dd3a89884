from __future__ import annotations

from typing import Iterable, List

ROOT = 'root'


def escape_path_segment(segment: str) -> str:
    """Escape a single property name for dot-path representation.

    ROADMAP property names contain spaces and hyphens but may also contain
    dots ('Version 1.0'), so dots are escaped as '\\.' and backslashes as '\\\\'.
    """
    if not isinstance(segment, str):
        segment = str(segment)
    return segment.replace('\\', '\\\\').replace('.', '\\.')


def split_path(path: str) -> List[str]:
    """Split a dot path on unescaped '.' and unescape each segment."""
    if path is None:
        return []
    if not isinstance(path, str):
        path = str(path)

    parts: List[str] = []
    buf: List[str] = []
    escaping = False

    for ch in path:
        if escaping:
            buf.append(ch)
            escaping = False
        elif ch == '\\':
            escaping = True
        elif ch == '.':
            parts.append(''.join(buf))
            buf = []
        else:
            buf.append(ch)

    if escaping:
        # Trailing backslash; treat as literal.
        buf.append('\\')

    parts.append(''.join(buf))
    return [p for p in parts if p != '']


def join_path(parts: Iterable) -> str:
    return '.'.join(escape_path_segment(p) for p in parts)


def child_path(parent: str, name: str) -> str:
    escaped = escape_path_segment(name)
    return f"{parent}.{escaped}" if parent else escaped


def display_path(parts: Iterable) -> str:
    """Render a path the way validation messages show it, e.g. 'root.Results.0.Value'."""
    tail = join_path(parts)
    return f"{ROOT}.{tail}" if tail else ROOT
