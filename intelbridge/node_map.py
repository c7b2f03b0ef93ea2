"""Identity-keyed weak mapping for document nodes.

bs4 tags compare and hash by content, so two distinct nodes rendering the
same markup collide in an ordinary dict or ``WeakKeyDictionary``. This
map keys on object identity instead and drops an entry as soon as its
node is garbage collected, so bookkeeping never outlives the node.
"""

from __future__ import annotations

import weakref
from typing import Any, Dict, Generic, Iterator, Optional, Tuple, TypeVar

V = TypeVar("V")

_MISSING = object()


class NodeMap(Generic[V]):
    """Mapping from node identity to a value, held weakly on the node."""

    def __init__(self) -> None:
        self._entries: Dict[int, Tuple[weakref.ref, V]] = {}

    def _make_ref(self, node: Any, key: int) -> weakref.ref:
        self_ref = weakref.ref(self)

        def _on_collect(ref: weakref.ref, key: int = key) -> None:
            owner = self_ref()
            if owner is None:
                return
            entry = owner._entries.get(key)
            if entry is not None and entry[0] is ref:
                del owner._entries[key]

        return weakref.ref(node, _on_collect)

    def _lookup(self, node: Any) -> Optional[Tuple[weakref.ref, V]]:
        entry = self._entries.get(id(node))
        if entry is None or entry[0]() is not node:
            return None
        return entry

    def __setitem__(self, node: Any, value: V) -> None:
        key = id(node)
        entry = self._lookup(node)
        ref = entry[0] if entry is not None else self._make_ref(node, key)
        self._entries[key] = (ref, value)

    def __getitem__(self, node: Any) -> V:
        entry = self._lookup(node)
        if entry is None:
            raise KeyError(node)
        return entry[1]

    def __delitem__(self, node: Any) -> None:
        if self._lookup(node) is None:
            raise KeyError(node)
        del self._entries[id(node)]

    def __contains__(self, node: Any) -> bool:
        return self._lookup(node) is not None

    def __len__(self) -> int:
        return sum(1 for ref, _ in self._entries.values() if ref() is not None)

    def get(self, node: Any, default: Any = None) -> Any:
        entry = self._lookup(node)
        return default if entry is None else entry[1]

    def pop(self, node: Any, default: Any = _MISSING) -> Any:
        entry = self._lookup(node)
        if entry is None:
            if default is _MISSING:
                raise KeyError(node)
            return default
        del self._entries[id(node)]
        return entry[1]

    def nodes(self) -> Iterator[Any]:
        """Iterate over the live nodes currently held."""
        for ref, _ in list(self._entries.values()):
            node = ref()
            if node is not None:
                yield node

    def clear(self) -> None:
        self._entries.clear()
