"""Immutable radix tree for longest-prefix lookups.

Inserting into a Tree returns a new Tree; the original is left untouched.
Only the nodes on the path to the inserted key are copied, the rest are
shared between versions. A published tree can therefore be read from any
number of threads without locking, and a reload can build a new tree
while the old one keeps serving.

Example:
    tree = Tree()
    tree, _, _ = tree.insert("moc.elpmaxe", None)
    tree.longest_prefix("moc.elpmaxe.sda")  # ("moc.elpmaxe", None, True)
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any

_EMPTY: Mapping[str, "_Node"] = MappingProxyType({})


@dataclass(frozen=True)
class _Leaf:
    key: str
    value: Any


@dataclass(frozen=True, eq=False)
class _Node:
    # Edge label leading into this node from its parent
    prefix: str = ""
    leaf: _Leaf | None = None
    # First character of the child's prefix -> child
    edges: Mapping[str, _Node] = field(default_factory=lambda: _EMPTY)

    def with_edge(self, child: _Node) -> _Node:
        edges = dict(self.edges)
        edges[child.prefix[0]] = child
        return replace(self, edges=MappingProxyType(edges))


def _common_prefix_len(a: str, b: str) -> int:
    n = min(len(a), len(b))
    i = 0
    while i < n and a[i] == b[i]:
        i += 1
    return i


def _insert(node: _Node, search: str, leaf: _Leaf) -> tuple[_Node, _Leaf | None]:
    """Return a copy of ``node`` with ``leaf`` stored under ``search``.

    The second element is the leaf that was replaced, if any.
    """
    if not search:
        return replace(node, leaf=leaf), node.leaf

    child = node.edges.get(search[0])
    if child is None:
        return node.with_edge(_Node(prefix=search, leaf=leaf)), None

    common = _common_prefix_len(search, child.prefix)
    if common == len(child.prefix):
        new_child, old = _insert(child, search[common:], leaf)
        return node.with_edge(new_child), old

    # Split the edge at the divergence point
    split = _Node(prefix=search[:common])
    split = split.with_edge(replace(child, prefix=child.prefix[common:]))
    rest = search[common:]
    if rest:
        split = split.with_edge(_Node(prefix=rest, leaf=leaf))
    else:
        split = replace(split, leaf=leaf)
    return node.with_edge(split), None


class Tree:
    """Persistent radix tree mapping string keys to values."""

    __slots__ = ("_root", "_size")

    def __init__(self, _root: _Node | None = None, _size: int = 0):
        self._root = _root if _root is not None else _Node()
        self._size = _size

    def insert(self, key: str, value: Any = None) -> tuple[Tree, Any, bool]:
        """Insert or replace ``key``.

        Returns:
            (new_tree, old_value, updated) where ``updated`` is True when
            the key already existed and its value was replaced.
        """
        root, old = _insert(self._root, key, _Leaf(key, value))
        if old is None:
            return Tree(root, self._size + 1), None, False
        return Tree(root, self._size), old.value, True

    def _find(self, key: str) -> _Leaf | None:
        node = self._root
        search = key
        while True:
            if not search:
                return node.leaf
            child = node.edges.get(search[0])
            if child is None or not search.startswith(child.prefix):
                return None
            search = search[len(child.prefix):]
            node = child

    def get(self, key: str, default: Any = None) -> Any:
        leaf = self._find(key)
        return default if leaf is None else leaf.value

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self._find(key) is not None

    def longest_prefix(self, key: str) -> tuple[str, Any, bool]:
        """Find the longest stored key that is a prefix of ``key``.

        Returns:
            (matched_key, value, found). When nothing matches the result
            is ``("", None, False)``.
        """
        last: _Leaf | None = None
        node = self._root
        search = key
        while True:
            if node.leaf is not None:
                last = node.leaf
            if not search:
                break
            child = node.edges.get(search[0])
            if child is None or not search.startswith(child.prefix):
                break
            search = search[len(child.prefix):]
            node = child
        if last is None:
            return "", None, False
        return last.key, last.value, True

    def items(self) -> Iterator[tuple[str, Any]]:
        """Iterate over ``(key, value)`` pairs in key order."""
        stack = [self._root]
        while stack:
            node = stack.pop()
            if node.leaf is not None:
                yield node.leaf.key, node.leaf.value
            stack.extend(node.edges[c] for c in sorted(node.edges, reverse=True))

    def keys(self) -> list[str]:
        return [k for k, _ in self.items()]

    def __len__(self) -> int:
        return self._size

    def __iter__(self) -> Iterator[str]:
        return (k for k, _ in self.items())

    def __repr__(self) -> str:
        return f"Tree(size={self._size})"
