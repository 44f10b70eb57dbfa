"""Replay a delta-encoded JSON Lines log into a single document.

Each line is an operation object:

* ``kind`` 0 initializes the document with the snapshot in ``v``;
* ``kind`` 1 sets ``v`` at the key path ``k``;
* ``kind`` 2 appends the items of the list ``v`` to the array at ``k``.

Operations are applied strictly in order. Anything the replay cannot apply is
skipped rather than raised, so a partially written log still yields the best
available document.
"""

from __future__ import annotations

from typing import Any, Union

from ._common import load_json, non_blank_lines

INIT, SET, APPEND = 0, 1, 2

Key = Union[str, int]


def _child(container: Any, key: Key) -> Any:
    if isinstance(container, dict) and isinstance(key, str):
        return container.get(key)
    if isinstance(container, list) and isinstance(key, int) and not isinstance(key, bool):
        return container[key] if 0 <= key < len(container) else None
    return None


def resolve_parent(container: Any, keys: list[Key]) -> tuple[Any, Key] | None:
    """Return ``(parent, last_key)`` for *keys*, or ``None`` if unreachable."""
    if not keys or not isinstance(container, (dict, list)):
        return None
    if len(keys) == 1:
        return container, keys[0]
    return resolve_parent(_child(container, keys[0]), keys[1:])


def _set(container: Any, key: Key, value: Any) -> None:
    if isinstance(container, dict) and isinstance(key, str):
        container[key] = value
    elif isinstance(container, list) and isinstance(key, int) and not isinstance(key, bool):
        if 0 <= key < len(container):
            container[key] = value
        elif key == len(container):
            container.append(value)


def _key_path(op: dict[str, Any]) -> list[Key] | None:
    keys = op.get("k")
    if not isinstance(keys, list) or not keys:
        return None
    if not all(isinstance(k, (str, int)) and not isinstance(k, bool) for k in keys):
        return None
    return keys


def apply_op(root: dict[str, Any], op: dict[str, Any]) -> None:
    """Apply a single set/append operation to *root* in place."""
    keys = _key_path(op)
    if keys is None:
        return
    slot = resolve_parent(root, keys)
    if slot is None:
        return
    container, key = slot
    kind = op.get("kind")
    if kind == SET:
        _set(container, key, op.get("v"))
    elif kind == APPEND:
        items = op.get("v")
        target = _child(container, key)
        if isinstance(items, list) and isinstance(target, list):
            target.extend(items)


def reconstruct(content: str) -> dict[str, Any]:
    """Replay *content* and return the resulting document (``{}`` if never initialized)."""
    root: dict[str, Any] | None = None
    for line in non_blank_lines(content):
        op = load_json(line)
        if not isinstance(op, dict):
            continue
        if op.get("kind") == INIT:
            if isinstance(op.get("v"), dict):
                root = op["v"]
        elif root is not None:
            apply_op(root, op)
    return root if root is not None else {}
