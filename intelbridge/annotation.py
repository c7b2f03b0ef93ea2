"""Annotation renderer and the singleton detail overlay.

The renderer attaches one small inline indicator to the message container
of a node that produced entities. Activating the indicator opens the
detail overlay, which lists every entity with its kind label, raw value
and lookup links.

Only one overlay element exists at a time: every ``open_*`` / ``show_*``
call disposes of the previous overlay before attaching the new one.
Everything is built from bs4 nodes, so entity values and metadata are
escaped by the serializer rather than spliced into markup.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Mapping, Optional, Sequence

from bs4 import Tag

from intelbridge.actions import COPY_LABEL, ActionLink, action_links
from intelbridge.constants import (
    BRIDGE_ATTR,
    DEFAULT_CONTAINER_SELECTOR,
    DEFAULT_PREVIEW_LIMIT,
    DEFAULT_PREVIEW_VALUE_WIDTH,
    INDICATOR_CLASS,
    OVERLAY_ID,
)
from intelbridge.document import LiveDocument
from intelbridge.entities import ExtractedEntity

log = logging.getLogger("intelbridge.annotation")


def truncate_value(value: Any, width: int = DEFAULT_PREVIEW_VALUE_WIDTH) -> str:
    text = str(value)
    if len(text) > width:
        return text[:width] + "..."
    return text


def metadata_preview(metadata: Mapping[str, Any],
                     limit: int = DEFAULT_PREVIEW_LIMIT,
                     width: int = DEFAULT_PREVIEW_VALUE_WIDTH) -> List[tuple]:
    """First *limit* key/value pairs of *metadata*, values truncated."""
    preview = []
    for key, value in metadata.items():
        if len(preview) >= limit:
            break
        preview.append((str(key), truncate_value(value, width)))
    return preview


class OverlaySurface:
    """The single on-screen panel presenting extraction or analysis results."""

    def __init__(self, document: LiveDocument) -> None:
        self.document = document
        self._element: Optional[Tag] = None

    @property
    def element(self) -> Optional[Tag]:
        return self._element

    @property
    def is_open(self) -> bool:
        return self._element is not None and self._element.parent is not None

    def close(self) -> None:
        if self._element is not None and self._element.parent is not None:
            self.document.remove(self._element)
        self._element = None

    def _attach(self, title: str, state: str, body: Iterable[Tag]) -> Tag:
        self.close()
        for stray in self.document.select(f"#{OVERLAY_ID}"):
            self.document.remove(stray)

        doc = self.document
        overlay = doc.new_tag("div", {"id": OVERLAY_ID, BRIDGE_ATTR: "overlay"})
        card = doc.new_tag("div", {"class": ["bridge-card", state]})
        header = doc.new_tag("div", {"class": "bridge-header"})
        header.append(doc.new_tag("span", {"class": "bridge-title"}, string=title))
        close_button = doc.new_tag("button", {"class": "bridge-close"}, string="×")
        header.append(close_button)
        card.append(header)

        content = doc.new_tag("div", {"class": "bridge-content"})
        for part in body:
            content.append(part)
        card.append(content)
        overlay.append(card)

        doc.add_listener(close_button, lambda _node: self.close())
        doc.append(doc.body, overlay)
        self._element = overlay
        return overlay

    def _links(self, links: Sequence[ActionLink]) -> Tag:
        doc = self.document
        box = doc.new_tag("div", {"class": "bridge-actions"})
        for link in links:
            attrs = {"class": "bridge-link", "href": link.href,
                     "target": "_blank", "rel": "noopener noreferrer"}
            if link.label == COPY_LABEL:
                attrs["data-action"] = "copy"
            box.append(doc.new_tag("a", attrs, string=link.label))
        return box

    def open_entities(self, entities: Sequence[ExtractedEntity]) -> Tag:
        """Show the entity list with per-kind action links."""
        doc = self.document
        rows = []
        for entity in entities:
            row = doc.new_tag("div", {"class": "entity-row",
                                      "data-kind": entity.kind.value})
            row.append(doc.new_tag("span", {"class": "entity-kind"},
                                   string=entity.kind.label))
            row.append(doc.new_tag("span", {"class": "entity-value"},
                                   string=entity.value))
            row.append(self._links(action_links(entity)))
            rows.append(row)
        return self._attach("INTELLIGENCE FOUND", "active", rows)

    def show_message(self, message: str, error: bool = False) -> Tag:
        """Show a loading card, or a terminal error card with *message* verbatim."""
        paragraph = self.document.new_tag("div", {"class": "bridge-message"},
                                          string=message)
        title = "ANALYSIS FAILED" if error else "ARCHITECT BRIDGE"
        return self._attach(title, "error" if error else "loading", [paragraph])

    def show_metadata(self, metadata: Mapping[str, Any],
                      links: Sequence[ActionLink] = (),
                      limit: int = DEFAULT_PREVIEW_LIMIT,
                      width: int = DEFAULT_PREVIEW_VALUE_WIDTH) -> Tag:
        doc = self.document
        parts = []
        for key, value in metadata_preview(metadata, limit, width):
            row = doc.new_tag("div", {"class": "metadata-row"})
            row.append(doc.new_tag("span", {"class": "metadata-key"}, string=key))
            row.append(doc.new_tag("span", {"class": "metadata-value"}, string=value))
            parts.append(row)
        if links:
            parts.append(self._links(links))
        parts.append(doc.new_tag("div", {"class": "bridge-footer"},
                                 string="Open the dashboard for the full report"))
        return self._attach("METADATA EXTRACTED", "active", parts)


class AnnotationRenderer:
    """Attaches inline indicators next to nodes that produced entities."""

    def __init__(self, document: LiveDocument, overlay: Optional[OverlaySurface] = None,
                 container_selector: str = DEFAULT_CONTAINER_SELECTOR) -> None:
        self.document = document
        self.overlay = overlay or OverlaySurface(document)
        self.container_selector = container_selector

    def container_for(self, node: Tag) -> Optional[Tag]:
        return node.css.closest(self.container_selector)

    @staticmethod
    def existing_indicator(container: Tag) -> Optional[Tag]:
        return container.find(attrs={BRIDGE_ATTR: "indicator"}, recursive=False)

    def annotate(self, node: Tag, entities: Sequence[ExtractedEntity]) -> Optional[Tag]:
        """Attach an indicator for *entities* to *node*'s container.

        Returns:
            the indicator (new or already present), or None when *node* has
            no container to attach to
        """
        if not entities:
            return None

        container = self.container_for(node)
        if container is None:
            log.debug("No container matching %r for node, skipping annotation",
                      self.container_selector)
            return None

        existing = self.existing_indicator(container)
        if existing is not None:
            return existing

        snapshot = tuple(entities)
        indicator = self.document.new_tag(
            "span",
            {
                "class": INDICATOR_CLASS,
                BRIDGE_ATTR: "indicator",
                "title": f"{len(snapshot)} entities found",
                "role": "button",
            },
            string=f"\U0001F50D {len(snapshot)}",
        )
        self.document.add_listener(
            indicator, lambda _node: self.overlay.open_entities(snapshot))
        self.document.append(container, indicator)
        log.debug("Attached indicator for %d entities", len(snapshot))
        return indicator
