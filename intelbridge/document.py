"""Live document model.

:class:`LiveDocument` wraps a BeautifulSoup tree that a third-party
renderer keeps mutating. Every mutation goes through the document so that
subscribed observers receive a :class:`MutationRecord`, the way a
browser's mutation observer would report it. Click listeners registered
on a node fire on :meth:`LiveDocument.click` and bubble to ancestors.

Nodes are bs4 ``Tag`` objects. Their identity is the Python object; bs4
equality is content based, so node bookkeeping here uses
:class:`~intelbridge.node_map.NodeMap`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from bs4 import BeautifulSoup, Tag

from intelbridge.node_map import NodeMap

log = logging.getLogger("intelbridge.document")


class MutationKind(str, Enum):
    CHILD_LIST = "childList"
    ATTRIBUTES = "attributes"
    CHARACTER_DATA = "characterData"


@dataclass(frozen=True)
class MutationRecord:
    """One change under the document root."""
    kind: MutationKind
    target: Any
    added: Tuple[Any, ...] = ()
    removed: Tuple[Any, ...] = ()
    attribute: Optional[str] = None


MutationCallback = Callable[[MutationRecord], None]
Listener = Callable[[Tag], Any]

NodeRef = Union[Tag, str]


class LiveDocument:
    """A mutable HTML document with mutation notifications and click listeners."""

    def __init__(self, html: str = "", features: str = "lxml") -> None:
        self.features = features
        self.soup = BeautifulSoup(html or "<html><body></body></html>",
                                  features=features)
        if self.soup.body is None:
            root = self.soup.html or self.soup
            root.append(self.soup.new_tag("body"))
        self._observers: List[MutationCallback] = []
        self._listeners: NodeMap[Dict[str, List[Listener]]] = NodeMap()

    @classmethod
    def from_file(cls, path: str, features: str = "lxml") -> "LiveDocument":
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            return cls(f.read(), features=features)

    @property
    def body(self) -> Tag:
        return self.soup.body

    def html(self) -> str:
        return str(self.soup)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def select(self, selector: str) -> List[Tag]:
        return self.soup.select(selector)

    def select_one(self, selector: str) -> Optional[Tag]:
        return self.soup.select_one(selector)

    def _resolve(self, ref: NodeRef) -> Tag:
        if isinstance(ref, str):
            node = self.select_one(ref)
            if node is None:
                raise LookupError(f"No node matches selector {ref!r}")
            return node
        return ref

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def subscribe(self, callback: MutationCallback) -> Callable[[], None]:
        """Register *callback* for mutation records.

        Returns:
            a callable that removes the subscription
        """
        self._observers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._observers:
                self._observers.remove(callback)

        return _unsubscribe

    def _notify(self, record: MutationRecord) -> None:
        for cb in list(self._observers):
            try:
                cb(record)
            except Exception as e:
                log.error("Mutation observer error: %s", e)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def new_tag(self, name: str, attrs: Optional[Dict[str, Any]] = None,
                string: Optional[str] = None) -> Tag:
        tag = self.soup.new_tag(name, attrs=attrs or {})
        if string is not None:
            tag.string = string
        return tag

    def _fragment(self, html: str) -> List[Any]:
        fragment = BeautifulSoup(html, "html.parser")
        return list(fragment.contents)

    def append(self, parent: NodeRef, node: Tag) -> Tag:
        parent = self._resolve(parent)
        parent.append(node)
        self._notify(MutationRecord(MutationKind.CHILD_LIST, parent, added=(node,)))
        return node

    def append_html(self, parent: NodeRef, html: str) -> List[Any]:
        """Parse *html* and append the resulting nodes to *parent*."""
        parent = self._resolve(parent)
        nodes = self._fragment(html)
        for node in nodes:
            parent.append(node)
        self._notify(MutationRecord(MutationKind.CHILD_LIST, parent, added=tuple(nodes)))
        return nodes

    def insert_after(self, anchor: NodeRef, node: Tag) -> Tag:
        anchor = self._resolve(anchor)
        anchor.insert_after(node)
        self._notify(MutationRecord(MutationKind.CHILD_LIST, anchor.parent, added=(node,)))
        return node

    def replace_html(self, node: NodeRef, html: str) -> List[Any]:
        """Replace *node* with freshly parsed nodes (new identities)."""
        node = self._resolve(node)
        parent = node.parent
        nodes = self._fragment(html)
        for new in nodes:
            node.insert_before(new)
        node.extract()
        self._listeners.pop(node, None)
        self._notify(MutationRecord(MutationKind.CHILD_LIST, parent,
                                    added=tuple(nodes), removed=(node,)))
        return nodes

    def remove(self, node: NodeRef) -> Tag:
        node = self._resolve(node)
        parent = node.parent
        node.extract()
        self._listeners.pop(node, None)
        self._notify(MutationRecord(MutationKind.CHILD_LIST, parent, removed=(node,)))
        return node

    def set_text(self, node: NodeRef, text: str) -> Tag:
        """Change the text of *node* in place (same identity)."""
        node = self._resolve(node)
        node.string = text
        self._notify(MutationRecord(MutationKind.CHARACTER_DATA, node))
        return node

    def set_attribute(self, node: NodeRef, name: str, value: Any) -> Tag:
        node = self._resolve(node)
        node[name] = value
        self._notify(MutationRecord(MutationKind.ATTRIBUTES, node, attribute=name))
        return node

    def add_class(self, node: NodeRef, css_class: str) -> Tag:
        node = self._resolve(node)
        classes = node.get("class") or []
        if isinstance(classes, str):
            classes = classes.split()
        classes = list(classes)
        if css_class not in classes:
            classes.append(css_class)
            self.set_attribute(node, "class", classes)
        return node

    # ------------------------------------------------------------------
    # User activation
    # ------------------------------------------------------------------

    def add_listener(self, node: Tag, handler: Listener,
                     event: str = "click") -> None:
        handlers = self._listeners.get(node)
        if handlers is None:
            handlers = {}
            self._listeners[node] = handlers
        handlers.setdefault(event, []).append(handler)

    def has_listener(self, node: Tag, event: str = "click") -> bool:
        handlers = self._listeners.get(node)
        return bool(handlers and handlers.get(event))

    def click(self, node: NodeRef, event: str = "click") -> List[Any]:
        """Activate *node*: run its listeners, then its ancestors' listeners.

        Returns:
            list of handler return values, innermost first
        """
        node = self._resolve(node)
        results: List[Any] = []
        current: Optional[Tag] = node
        while current is not None:
            handlers = self._listeners.get(current)
            if handlers:
                for handler in list(handlers.get(event, [])):
                    results.append(handler(node))
            current = current.parent
        return results
