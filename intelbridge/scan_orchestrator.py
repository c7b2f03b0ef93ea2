"""Scan orchestrator.

One scan pass walks the candidate nodes currently in the document:

1. Text pass - every node matching the text selector that has not been
   seen before is flattened to text and run through the extractor; nodes
   with entities get an inline indicator. Every visited node is marked,
   with or without entities, so it is never handed to the extractor again.
2. Media pass - every unseen media element (blob-backed image) gets a
   visual marker and a click affordance that starts a media analysis.
   Images declared at least ``min_media_size`` pixels in both dimensions
   also get an inline "Analyze" button right away.

A node without a container to attach to is skipped silently; an error on
one node is logged and the pass moves on to the next candidate. Elements
inserted by the bridge itself are never candidates.
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from bs4 import Tag

from intelbridge.annotation import AnnotationRenderer
from intelbridge.constants import (
    BRIDGE_ATTR,
    DEFAULT_MEDIA_SELECTOR,
    DEFAULT_MIN_MEDIA_SIZE,
    DEFAULT_TEXT_SELECTOR,
    MEDIA_BUTTON_CLASS,
    MEDIA_MARK_CLASS,
)
from intelbridge.document import LiveDocument
from intelbridge.extractor import EntityExtractor
from intelbridge.scan_state import ScanRecord, ScanStateTracker

log = logging.getLogger("intelbridge.scan_orchestrator")

_STYLE_SIZE = re.compile(r"(width|height)\s*:\s*(\d+)(?:\.\d+)?px", re.IGNORECASE)


@dataclass
class ScanSummary:
    """Counters for one scan pass."""
    text_candidates: int = 0
    text_scanned: int = 0
    annotated: int = 0
    unanchored: int = 0
    entities: int = 0
    media_candidates: int = 0
    media_marked: int = 0
    affordances: int = 0
    skipped: int = 0
    errors: int = 0
    duration: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["duration"] = round(self.duration, 4)
        return d


def declared_size(node: Tag) -> tuple:
    """Width and height declared on *node* (attributes, then inline style)."""
    size = {"width": 0, "height": 0}
    for match in _STYLE_SIZE.finditer(str(node.get("style") or "")):
        size[match.group(1).lower()] = int(match.group(2))
    for dim in ("width", "height"):
        raw = str(node.get(dim) or "").strip()
        digits = re.match(r"\d+", raw)
        if digits:
            size[dim] = int(digits.group(0))
    return size["width"], size["height"]


class ScanOrchestrator:
    """Drives one text + media pass over the live document."""

    def __init__(self, document: LiveDocument, extractor: EntityExtractor,
                 tracker: ScanStateTracker, renderer: AnnotationRenderer,
                 dispatcher=None,
                 text_selector: str = DEFAULT_TEXT_SELECTOR,
                 media_selector: str = DEFAULT_MEDIA_SELECTOR,
                 min_media_size: int = DEFAULT_MIN_MEDIA_SIZE) -> None:
        self.document = document
        self.extractor = extractor
        self.tracker = tracker
        self.renderer = renderer
        self.dispatcher = dispatcher
        self.text_selector = text_selector
        self.media_selector = media_selector
        self.min_media_size = min_media_size
        self.passes = 0
        self.last_summary: Optional[ScanSummary] = None

    @staticmethod
    def is_bridge_owned(node: Tag) -> bool:
        if node.get(BRIDGE_ATTR) is not None:
            return True
        return node.find_parent(attrs={BRIDGE_ATTR: True}) is not None

    def scan(self) -> ScanSummary:
        """Run one full pass and return its counters."""
        started = time.monotonic()
        summary = ScanSummary()
        self._scan_text(summary)
        self._scan_media(summary)
        summary.duration = time.monotonic() - started

        self.passes += 1
        self.last_summary = summary
        if summary.text_scanned or summary.media_marked or summary.errors:
            log.info(
                "Scan pass %d: %d text node(s), %d annotated, %d media, %d error(s)",
                self.passes, summary.text_scanned, summary.annotated,
                summary.media_marked, summary.errors,
                extra={"node_count": summary.text_candidates + summary.media_candidates},
            )
        return summary

    # ------------------------------------------------------------------
    # Text
    # ------------------------------------------------------------------

    def _scan_text(self, summary: ScanSummary) -> None:
        for node in self.document.select(self.text_selector):
            if self.is_bridge_owned(node):
                continue
            summary.text_candidates += 1
            if self.tracker.is_marked(node):
                summary.skipped += 1
                continue

            record = ScanRecord.SCANNED_EMPTY
            try:
                entities = self.extractor.extract(node.get_text())
                summary.text_scanned += 1
                if entities:
                    record = ScanRecord.SCANNED_WITH_ENTITIES
                    summary.entities += len(entities)
                    if self.renderer.annotate(node, entities) is None:
                        summary.unanchored += 1
                    else:
                        summary.annotated += 1
            except Exception as e:
                summary.errors += 1
                log.error("Failed to scan text node: %s", e, exc_info=True)
            finally:
                self.tracker.mark(node, record)

    # ------------------------------------------------------------------
    # Media
    # ------------------------------------------------------------------

    def _scan_media(self, summary: ScanSummary) -> None:
        for node in self.document.select(self.media_selector):
            if self.is_bridge_owned(node):
                continue
            summary.media_candidates += 1
            if self.tracker.is_marked(node):
                summary.skipped += 1
                continue

            try:
                self.document.add_class(node, MEDIA_MARK_CLASS)
                self.document.add_listener(node, self.activate_media)
                if self.is_large(node):
                    self._attach_button(node)
                    summary.affordances += 1
                summary.media_marked += 1
            except Exception as e:
                summary.errors += 1
                log.error("Failed to mark media node: %s", e, exc_info=True)
            finally:
                self.tracker.mark(node, ScanRecord.SCANNED_EMPTY)

    def is_large(self, node: Tag) -> bool:
        width, height = declared_size(node)
        return width >= self.min_media_size and height >= self.min_media_size

    def _attach_button(self, node: Tag) -> Tag:
        button = self.document.new_tag(
            "button",
            {"class": MEDIA_BUTTON_CLASS, BRIDGE_ATTR: "analyze", "type": "button"},
            string="Analyze",
        )
        self.document.add_listener(button, lambda _target, img=node: self.activate_media(img))
        self.document.insert_after(node, button)
        return button

    def activate_media(self, node: Tag):
        """Start a media analysis for *node*; returns the task, if any."""
        if self.dispatcher is None:
            log.debug("No media dispatcher configured, ignoring activation")
            return None
        try:
            return self.dispatcher.start(node)
        except Exception as e:
            log.error("Could not start media analysis: %s", e, exc_info=True)
            return None
