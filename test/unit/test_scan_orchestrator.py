"""Tests for intelbridge.scan_orchestrator."""
from unittest.mock import MagicMock

import pytest

from intelbridge.annotation import AnnotationRenderer
from intelbridge.constants import INDICATOR_CLASS, MEDIA_BUTTON_CLASS, MEDIA_MARK_CLASS
from intelbridge.document import LiveDocument
from intelbridge.extractor import EntityExtractor
from intelbridge.scan_orchestrator import ScanOrchestrator, declared_size
from intelbridge.scan_state import ScanRecord, ScanStateTracker


def _orchestrator(doc, extractor=None, dispatcher=None, **kwargs):
    return ScanOrchestrator(
        doc,
        extractor or EntityExtractor(),
        ScanStateTracker(),
        AnnotationRenderer(doc),
        dispatcher=dispatcher,
        **kwargs,
    )


def _indicators(doc):
    return doc.select(f".{INDICATOR_CLASS}")


class TestTextPass:

    def test_annotates_message_with_entities(self, chat_document):
        orch = _orchestrator(chat_document)
        summary = orch.scan()

        assert summary.text_candidates == 2
        assert summary.text_scanned == 2
        assert summary.annotated == 1
        assert summary.entities == 2
        indicators = _indicators(chat_document)
        assert len(indicators) == 1
        assert indicators[0]["title"] == "2 entities found"

    def test_every_scanned_node_is_marked(self, chat_document):
        orch = _orchestrator(chat_document)
        orch.scan()
        nodes = chat_document.select("span.selectable-text")
        assert [orch.tracker.record(n) for n in nodes] == [
            ScanRecord.SCANNED_WITH_ENTITIES,
            ScanRecord.SCANNED_EMPTY,
        ]

    def test_rescan_is_idempotent(self, chat_document):
        orch = _orchestrator(chat_document)
        orch.scan()
        before = chat_document.html()
        summary = orch.scan()
        assert chat_document.html() == before
        assert summary.text_scanned == 0
        assert summary.skipped == 2
        assert len(_indicators(chat_document)) == 1

    def test_marked_nodes_never_reach_extractor(self, chat_document):
        extractor = MagicMock(wraps=EntityExtractor())
        orch = _orchestrator(chat_document, extractor=extractor)
        orch.scan()
        orch.scan()
        orch.scan()
        assert extractor.extract.call_count == 2

    def test_new_message_scanned(self, chat_document, make_message):
        orch = _orchestrator(chat_document)
        orch.scan()
        chat_document.append_html("#chat", make_message("my site is example.org"))
        summary = orch.scan()
        assert summary.text_scanned == 1
        assert summary.annotated == 1
        assert len(_indicators(chat_document)) == 2

    def test_replaced_node_is_rescanned(self, chat_document):
        orch = _orchestrator(chat_document)
        orch.scan()
        quiet = chat_document.select("span.selectable-text")[1]
        chat_document.replace_html(
            quiet, '<span class="selectable-text"><span>mail z@w.io</span></span>')
        summary = orch.scan()
        assert summary.text_scanned == 1
        assert len(_indicators(chat_document)) == 2

    def test_in_place_edit_not_rescanned(self, chat_document):
        orch = _orchestrator(chat_document)
        orch.scan()
        quiet = chat_document.select("span.selectable-text")[1]
        chat_document.set_text(quiet, "now with a@b.com")
        summary = orch.scan()
        assert summary.text_scanned == 0
        assert len(_indicators(chat_document)) == 1

    def test_node_without_container(self):
        doc = LiveDocument('<span class="selectable-text">mail a@b.com</span>')
        orch = _orchestrator(doc)
        summary = orch.scan()
        assert summary.unanchored == 1
        assert summary.annotated == 0
        assert summary.errors == 0
        assert _indicators(doc) == []
        assert orch.tracker.is_marked(doc.select_one("span.selectable-text"))

    def test_zero_candidates(self):
        doc = LiveDocument("<div>nothing to see</div>")
        summary = _orchestrator(doc).scan()
        assert summary.text_candidates == 0
        assert summary.media_candidates == 0

    def test_error_on_one_node_does_not_stop_pass(self, chat_document, make_message):
        chat_document.append_html("#chat", make_message("other@example.com"))
        real = EntityExtractor()
        calls = []

        def extract(text):
            calls.append(text)
            if len(calls) == 1:
                raise RuntimeError("extractor failure")
            return real.extract(text)

        extractor = MagicMock()
        extractor.extract.side_effect = extract
        orch = _orchestrator(chat_document, extractor=extractor)

        summary = orch.scan()

        assert summary.errors == 1
        assert summary.text_scanned == 2
        assert summary.annotated == 1
        # the failing node is marked too
        first = chat_document.select("span.selectable-text")[0]
        assert orch.tracker.is_marked(first)

    def test_bridge_elements_are_not_candidates(self, chat_document):
        orch = _orchestrator(chat_document)
        orch.scan()
        orch.renderer.overlay.open_entities(
            orch.extractor.extract("+1 (555) 123-4567"))
        chat_document.append_html(
            "#intelbridge-overlay",
            '<span class="selectable-text">a@b.com</span>')
        summary = orch.scan()
        assert summary.text_candidates == 2


MEDIA_HTML = """
<div id="chat">
  <div class="copyable-text">
    <img id="big" src="blob:null/big" width="300" height="200">
    <img id="small" src="blob:null/small" style="width: 40px; height: 40px">
    <img id="remote" src="https://cdn.example.com/x.jpg" width="400" height="400">
  </div>
</div>
"""


class TestMediaPass:

    def test_marks_blob_media_only(self):
        doc = LiveDocument(MEDIA_HTML)
        summary = _orchestrator(doc).scan()
        assert summary.media_candidates == 2
        assert summary.media_marked == 2
        assert MEDIA_MARK_CLASS in doc.select_one("#big")["class"]
        assert MEDIA_MARK_CLASS in doc.select_one("#small")["class"]
        assert doc.select_one("#remote").get("class") is None

    def test_button_only_for_large_media(self):
        doc = LiveDocument(MEDIA_HTML)
        summary = _orchestrator(doc).scan()
        assert summary.affordances == 1
        buttons = doc.select(f"button.{MEDIA_BUTTON_CLASS}")
        assert len(buttons) == 1
        assert buttons[0].find_previous_sibling("img")["id"] == "big"

    def test_media_marked_once(self):
        doc = LiveDocument(MEDIA_HTML)
        orch = _orchestrator(doc)
        orch.scan()
        summary = orch.scan()
        assert summary.media_marked == 0
        assert len(doc.select(f"button.{MEDIA_BUTTON_CLASS}")) == 1

    def test_click_starts_analysis(self):
        doc = LiveDocument(MEDIA_HTML)
        dispatcher = MagicMock()
        dispatcher.start.return_value = "task"
        _orchestrator(doc, dispatcher=dispatcher).scan()

        small = doc.select_one("#small")
        assert doc.click(small) == ["task"]
        dispatcher.start.assert_called_once_with(small)

    def test_button_starts_analysis_of_its_image(self):
        doc = LiveDocument(MEDIA_HTML)
        dispatcher = MagicMock()
        _orchestrator(doc, dispatcher=dispatcher).scan()
        doc.click(f"button.{MEDIA_BUTTON_CLASS}")
        dispatcher.start.assert_called_once_with(doc.select_one("#big"))

    def test_activation_error_contained(self):
        doc = LiveDocument(MEDIA_HTML)
        dispatcher = MagicMock()
        dispatcher.start.side_effect = RuntimeError("no loop")
        _orchestrator(doc, dispatcher=dispatcher).scan()
        assert doc.click("#small") == [None]

    def test_no_dispatcher(self):
        doc = LiveDocument(MEDIA_HTML)
        orch = _orchestrator(doc)
        orch.scan()
        assert orch.activate_media(doc.select_one("#big")) is None

    def test_custom_min_size(self):
        doc = LiveDocument(MEDIA_HTML)
        summary = _orchestrator(doc, min_media_size=30).scan()
        assert summary.affordances == 2


class TestDeclaredSize:

    @pytest.mark.parametrize("html,expected", [
        ('<img width="300" height="200">', (300, 200)),
        ('<img style="width:120px;height: 80.5px">', (120, 80)),
        ('<img width="250px" style="height:90px">', (250, 90)),
        ('<img>', (0, 0)),
    ])
    def test_declared_size(self, html, expected):
        doc = LiveDocument(html)
        assert declared_size(doc.select_one("img")) == expected


class TestSummary:

    def test_to_dict(self, chat_document):
        orch = _orchestrator(chat_document)
        d = orch.scan().to_dict()
        assert d["annotated"] == 1
        assert orch.passes == 1
        assert orch.last_summary.annotated == 1
