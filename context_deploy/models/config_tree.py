"""Value kinds and path addressing for schema-less configuration trees

A configuration tree is built from plain JSON values: ``dict`` with string
keys, ``list``, ``str``, ``int``/``float``, ``bool`` and ``None``. The helpers
here give every value an explicit kind so comparisons never rely on Python's
loose equality (``True == 1``, ``0 == False``).

Paths are dotted strings with optional list indices, e.g. ``editor.rulers[1]``.
Dots, brackets and backslashes inside keys are backslash-escaped, so the key
``http.proxy`` under ``settings`` is addressed as ``settings.http\\.proxy``.
"""

import re
from enum import Enum
from typing import Any, Iterator, List, Tuple, Union

PathPart = Union[str, int]

_SPECIAL_PATTERN = re.compile(r"[\\.\[\]]")


class ValueKind(Enum):
    OBJECT = "object"
    ARRAY = "array"
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    NULL = "null"


def kind_of(value: Any) -> ValueKind:
    """Get the kind of a configuration value

    Raises:
        TypeError: If the value is not a JSON-compatible value
    """
    if value is None:
        return ValueKind.NULL
    # bool must be checked before int
    if isinstance(value, bool):
        return ValueKind.BOOLEAN
    if isinstance(value, (int, float)):
        return ValueKind.NUMBER
    if isinstance(value, str):
        return ValueKind.STRING
    if isinstance(value, dict):
        return ValueKind.OBJECT
    if isinstance(value, (list, tuple)):
        return ValueKind.ARRAY
    raise TypeError(f"Unsupported configuration value type: {type(value).__name__}")


def is_object(value: Any) -> bool:
    return isinstance(value, dict)


def is_array(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def values_equal(left: Any, right: Any) -> bool:
    """Recursive structural equality

    Objects compare key-wise regardless of insertion order, arrays compare
    element-wise in order, scalars must share both kind and value.
    """
    left_kind = kind_of(left)
    if left_kind != kind_of(right):
        return False

    if left_kind == ValueKind.OBJECT:
        if left.keys() != right.keys():
            return False
        return all(values_equal(left[key], right[key]) for key in left)

    if left_kind == ValueKind.ARRAY:
        if len(left) != len(right):
            return False
        return all(values_equal(a, b) for a, b in zip(left, right))

    return left == right


def escape_key(key: str) -> str:
    """Escape path syntax inside an object key, ``http.proxy`` -> ``http\\.proxy``"""
    return _SPECIAL_PATTERN.sub(r"\\\g<0>", key)


def join_path(parent: str, key: PathPart) -> str:
    """Append a key or list index to a dotted path"""
    if isinstance(key, int):
        return f"{parent}[{key}]"
    key = escape_key(key)
    return f"{parent}.{key}" if parent else key


def parse_path(path: str) -> List[PathPart]:
    r"""Split a dotted path into keys and list indices

    Backslash-escaped characters belong to the key, so keys containing dots
    or brackets survive a ``join_path``/``parse_path`` round trip.

    >>> parse_path("editor.rulers[1]")
    ['editor', 'rulers', 1]
    >>> parse_path("settings.http\\.proxy")
    ['settings', 'http.proxy']

    Raises:
        ValueError: On an unterminated or non-numeric index
    """
    parts: List[PathPart] = []
    key: List[str] = []
    i = 0

    def flush():
        if key:
            parts.append("".join(key))
            key.clear()

    while i < len(path):
        char = path[i]
        if char == "\\" and i + 1 < len(path):
            key.append(path[i + 1])
            i += 2
        elif char == ".":
            flush()
            i += 1
        elif char == "[":
            end = path.find("]", i)
            index = path[i + 1:end] if end != -1 else ""
            if not index.isdigit():
                raise ValueError(f"Invalid list index in path: {path}")
            flush()
            parts.append(int(index))
            i = end + 1
        else:
            key.append(char)
            i += 1

    flush()
    return parts


def get_at_path(tree: Any, path: str, default: Any = None) -> Any:
    """Read the value at a dotted path"""
    current = tree
    for part in parse_path(path):
        if isinstance(part, int):
            if not is_array(current) or part >= len(current):
                return default
            current = current[part]
        else:
            if not is_object(current) or part not in current:
                return default
            current = current[part]
    return current


def set_at_path(tree: dict, path: str, value: Any) -> None:
    """Set a value at a dotted path, creating intermediate objects

    Existing non-container values along the way are replaced by objects.
    List indices must address an existing element.
    """
    parts = parse_path(path)
    if not parts:
        raise ValueError("Cannot set a value at an empty path")

    current = tree
    for part, next_part in zip(parts, parts[1:]):
        if isinstance(part, int):
            if not isinstance(next_part, int) and not is_object(current[part]):
                current[part] = {}
            current = current[part]
            continue
        child = current.get(part)
        wants_array = isinstance(next_part, int)
        if wants_array and not is_array(child):
            raise KeyError(f"Path {path} indexes into a non-array at '{part}'")
        if not wants_array and not is_object(child):
            child = {}
            current[part] = child
        current = child

    last = parts[-1]
    current[last] = value


def delete_at_path(tree: dict, path: str) -> bool:
    """Delete the key at a dotted path

    Returns:
        True if something was removed
    """
    parts = parse_path(path)
    if not parts:
        return False

    current = tree
    for part in parts[:-1]:
        if isinstance(part, int):
            if not is_array(current) or part >= len(current):
                return False
        elif not is_object(current) or part not in current:
            return False
        current = current[part]

    last = parts[-1]
    if isinstance(last, int):
        if is_array(current) and last < len(current):
            del current[last]
            return True
        return False

    if is_object(current) and last in current:
        del current[last]
        return True
    return False


def iter_leaves(tree: Any, path: str = "") -> Iterator[Tuple[str, Any]]:
    """Yield ``(path, value)`` for every scalar in a tree, depth first"""
    if is_object(tree):
        for key, value in tree.items():
            yield from iter_leaves(value, join_path(path, key))
    elif is_array(tree):
        for index, value in enumerate(tree):
            yield from iter_leaves(value, join_path(path, index))
    else:
        yield path, tree
