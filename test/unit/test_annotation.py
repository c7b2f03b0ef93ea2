"""Tests for intelbridge.annotation."""
from __future__ import annotations

import unittest

from intelbridge.actions import ActionLink
from intelbridge.annotation import (
    AnnotationRenderer,
    OverlaySurface,
    metadata_preview,
    truncate_value,
)
from intelbridge.constants import BRIDGE_ATTR, INDICATOR_CLASS, OVERLAY_ID
from intelbridge.document import LiveDocument
from intelbridge.entities import EmailEntity, PhoneEntity, UrlEntity

MESSAGE = (
    '<div class="copyable-text">'
    '<span class="selectable-text"><span>text</span></span>'
    '</div>'
    '<span class="selectable-text orphan">no container</span>'
)


class TestPreviewHelpers(unittest.TestCase):

    def test_truncate_value(self):
        self.assertEqual(truncate_value("short"), "short")
        self.assertEqual(truncate_value("x" * 30), "x" * 30)
        self.assertEqual(truncate_value("x" * 31), "x" * 30 + "...")
        self.assertEqual(truncate_value(12345, width=3), "123...")

    def test_metadata_preview_limits(self):
        metadata = {f"Key{i}": "v" * 40 for i in range(15)}
        preview = metadata_preview(metadata)
        self.assertEqual(len(preview), 10)
        self.assertEqual(preview[0], ("Key0", "v" * 30 + "..."))
        self.assertEqual([k for k, _ in preview], [f"Key{i}" for i in range(10)])


class TestOverlaySurface(unittest.TestCase):

    def setUp(self):
        self.doc = LiveDocument()
        self.overlay = OverlaySurface(self.doc)

    def test_single_overlay_reflects_latest_call(self):
        self.overlay.open_entities([EmailEntity("first@a.com", 0)])
        self.overlay.open_entities([EmailEntity("second@b.com", 0)])

        overlays = self.doc.select(f"#{OVERLAY_ID}")
        self.assertEqual(len(overlays), 1)
        values = [n.get_text() for n in overlays[0].select(".entity-value")]
        self.assertEqual(values, ["second@b.com"])

    def test_stray_overlay_removed(self):
        self.doc.append_html(self.doc.body, f'<div id="{OVERLAY_ID}">stale</div>')
        self.overlay.show_message("Analyzing...")
        self.assertEqual(len(self.doc.select(f"#{OVERLAY_ID}")), 1)
        self.assertNotIn("stale", self.doc.html())

    def test_entity_rows(self):
        element = self.overlay.open_entities([
            PhoneEntity("+1 (555) 123-4567", 0),
            UrlEntity("example.com", 30),
        ])
        rows = element.select(".entity-row")
        self.assertEqual([r["data-kind"] for r in rows], ["phone", "url"])
        self.assertEqual(rows[0].select_one(".entity-kind").get_text(), "Phone Number")
        hrefs = [a["href"] for a in rows[0].select("a.bridge-link")]
        self.assertIn("https://wa.me/15551234567", hrefs)
        self.assertEqual(element[BRIDGE_ATTR], "overlay")

    def test_values_are_escaped(self):
        self.overlay.open_entities([EmailEntity("<script>x</script>@a.com", 0)])
        html = self.doc.html()
        self.assertNotIn("<script>", html)
        self.assertIn("&lt;script&gt;", html)

    def test_copy_links_marked(self):
        element = self.overlay.open_entities([EmailEntity("a@b.com", 0)])
        link = element.select_one("a.bridge-link")
        self.assertEqual(link["data-action"], "copy")

    def test_close_button(self):
        self.overlay.show_message("hello")
        self.assertTrue(self.overlay.is_open)
        self.doc.click(self.doc.select_one(f"#{OVERLAY_ID} .bridge-close"))
        self.assertFalse(self.overlay.is_open)
        self.assertIsNone(self.doc.select_one(f"#{OVERLAY_ID}"))

    def test_error_message_verbatim(self):
        element = self.overlay.show_message("File too large", error=True)
        self.assertEqual(element.select_one(".bridge-title").get_text(), "ANALYSIS FAILED")
        self.assertEqual(element.select_one(".bridge-message").get_text(), "File too large")
        self.assertIn("error", element.select_one(".bridge-card")["class"])

    def test_show_metadata(self):
        metadata = {"Make": "Canon", "Model": "EOS"}
        links = [ActionLink("Google Lens", "https://lens.example")]
        element = self.overlay.show_metadata(metadata, links)
        keys = [n.get_text() for n in element.select(".metadata-key")]
        self.assertEqual(keys, ["Make", "Model"])
        self.assertEqual(element.select_one("a.bridge-link")["href"], "https://lens.example")
        self.assertEqual(element.select_one(".bridge-title").get_text(), "METADATA EXTRACTED")


class TestAnnotationRenderer(unittest.TestCase):

    def setUp(self):
        self.doc = LiveDocument(MESSAGE)
        self.renderer = AnnotationRenderer(self.doc)
        self.node = self.doc.select_one("span.selectable-text")
        self.entities = [PhoneEntity("+1 (555) 123-4567", 0), EmailEntity("a@b.com", 20)]

    def test_annotate_attaches_indicator_to_container(self):
        indicator = self.renderer.annotate(self.node, self.entities)
        container = self.doc.select_one(".copyable-text")
        self.assertIs(indicator.parent, container)
        self.assertIn(INDICATOR_CLASS, indicator["class"])
        self.assertEqual(indicator["title"], "2 entities found")
        self.assertIn("2", indicator.get_text())

    def test_annotate_is_idempotent_per_container(self):
        first = self.renderer.annotate(self.node, self.entities)
        second = self.renderer.annotate(self.node, self.entities)
        self.assertIs(first, second)
        self.assertEqual(len(self.doc.select(f".{INDICATOR_CLASS}")), 1)

    def test_no_container_is_silent(self):
        orphan = self.doc.select_one("span.orphan")
        self.assertIsNone(self.renderer.annotate(orphan, self.entities))
        self.assertEqual(self.doc.select(f".{INDICATOR_CLASS}"), [])

    def test_empty_entities(self):
        self.assertIsNone(self.renderer.annotate(self.node, []))

    def test_indicator_opens_overlay(self):
        indicator = self.renderer.annotate(self.node, self.entities)
        self.assertFalse(self.renderer.overlay.is_open)
        self.doc.click(indicator)
        self.assertTrue(self.renderer.overlay.is_open)
        rows = self.doc.select(f"#{OVERLAY_ID} .entity-row")
        self.assertEqual(len(rows), 2)

    def test_indicator_keeps_its_snapshot(self):
        entities = list(self.entities)
        indicator = self.renderer.annotate(self.node, entities)
        entities.clear()
        self.doc.click(indicator)
        self.assertEqual(len(self.doc.select(f"#{OVERLAY_ID} .entity-row")), 2)


if __name__ == "__main__":
    unittest.main()
