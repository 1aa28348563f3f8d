"""Hierarchical, path-addressed context store.

A :class:`Context` supplies placeholder values to statement templates.  Keys
are addressed with dotted paths (``filter.WHERE.id``); integer segments index
into sequences.  Copies duplicate the container tree (mappings and lists)
while leaf objects, nested statements included, are shared.
"""
from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

PATH_SEPARATOR = "."

_MISSING = object()


def _copy_tree(value: Any) -> Any:
    if isinstance(value, Context):
        return _copy_tree(value._data)
    if isinstance(value, Mapping):
        return {key: _copy_tree(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_copy_tree(item) for item in value]
    return value


def _split(path: str | None) -> list[str]:
    if not path:
        return []
    return [segment for segment in str(path).split(PATH_SEPARATOR) if segment != ""]


def _step(node: Any, segment: str) -> Any:
    if isinstance(node, Context):
        node = node._data
    if isinstance(node, Mapping):
        return node.get(segment, _MISSING)
    if isinstance(node, Sequence) and not isinstance(node, (str, bytes)):
        try:
            return node[int(segment)]
        except (ValueError, IndexError):
            return _MISSING
    return _MISSING


def lookup(data: Context | Mapping[str, Any] | None, path: str | None, default: Any = None) -> Any:
    """Resolve ``path`` against a context or plain mapping without copying.

    Args:
        data: The context tree to search.
        path: Dotted path; empty returns ``data`` itself.
        default: Returned when any segment is missing.
    """
    if data is None:
        return default
    node: Any = data
    for segment in _split(path):
        node = _step(node, segment)
        if node is _MISSING:
            return default
    return node


def _merge_into(target: dict[str, Any], source: Mapping[str, Any]) -> None:
    for key, value in source.items():
        if isinstance(value, Context):
            value = value._data
        current = target.get(key)
        if isinstance(value, Mapping) and isinstance(current, dict):
            _merge_into(current, value)
        else:
            target[key] = _copy_tree(value)


class Context:
    """Mutable hierarchical mapping with dotted-path access.

    Args:
        data: Initial tree; its containers are copied.
    """

    def __init__(self, data: Context | Mapping[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = {}
        if data is not None:
            self.merge(data)

    def get(self, path: str | None = None, default: Any = None) -> Any:
        """Return the value at ``path`` or ``default`` when it is missing."""
        return lookup(self._data, path, default)

    def set(self, path: str, value: Any) -> Context:
        """Store ``value`` at ``path``, creating intermediate mappings."""
        segments = _split(path)
        if not segments:
            raise KeyError("Context path must not be empty")
        node = self._data
        for segment in segments[:-1]:
            child = node.get(segment)
            if not isinstance(child, dict):
                child = node[segment] = {}
            node = child
        node[segments[-1]] = _copy_tree(value)
        return self

    def merge(self, data: Context | Mapping[str, Any] | None, path: str | None = None) -> Context:
        """Deep-merge ``data`` into the tree (at ``path`` when given).

        Nested mappings merge recursively; any other value replaces what was
        there.  Incoming values win on collision.
        """
        if data is None:
            return self
        if isinstance(data, Context):
            data = data._data
        if not isinstance(data, Mapping):
            raise TypeError(f"Cannot merge {type(data).__name__} into a context")
        if not path:
            _merge_into(self._data, data)
            return self
        node = self.get(path)
        if not isinstance(node, dict):
            self.set(path, {})
            node = self.get(path)
        _merge_into(node, data)
        return self

    def unset(self, path: str | None = None) -> Context:
        """Remove the subtree at ``path``; an empty path clears everything."""
        segments = _split(path)
        if not segments:
            self._data.clear()
            return self
        parent = lookup(self._data, PATH_SEPARATOR.join(segments[:-1]))
        if isinstance(parent, dict):
            parent.pop(segments[-1], None)
        return self

    def clone(self) -> Context:
        return Context(self)

    def to_dict(self) -> dict[str, Any]:
        return _copy_tree(self._data)

    def __contains__(self, path: object) -> bool:
        return isinstance(path, str) and lookup(self._data, path, _MISSING) is not _MISSING

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Context):
            return self._data == other._data
        if isinstance(other, Mapping):
            return self._data == dict(other)
        return NotImplemented

    def __repr__(self) -> str:
        return f"Context({self._data!r})"
