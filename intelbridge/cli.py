#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# -------------------------------------------------------------------------------
# Name:         cli
# Purpose:      Command line entry point for intelbridge
#
# Created:      2026-10-18
# Licence:      MIT
# -------------------------------------------------------------------------------

"""
intelbridge command line.

Runs the bridge pipeline outside a live session:

- ``extract TEXT``  print the entities found in a piece of text
- ``scan FILE``     run one scan pass over an HTML snapshot
- ``analyze FILE``  send a local media file to the metadata service
- ``version``       show client and metadata service versions
"""

import argparse
import asyncio
import json
import logging
import mimetypes
import sys
from typing import Any, Dict, List, Optional

from intelbridge.__version__ import __version__
from intelbridge.actions import action_links
from intelbridge.annotation import OverlaySurface
from intelbridge.app_config import BridgeConfig
from intelbridge.blob_store import BlobStore
from intelbridge.bridge import IntelBridge
from intelbridge.document import LiveDocument
from intelbridge.errors import MetadataServiceError
from intelbridge.extractor import EntityExtractor
from intelbridge.media_analysis import MediaAnalysisDispatcher
from intelbridge.metadata_client import MetadataClient
from intelbridge.scan_state import ScanRecord
from intelbridge.structured_logging import setup_logging


class IntelBridgeCli:
    """Parses arguments, builds the configuration and runs one command."""

    def __init__(self, stdout=None) -> None:
        self.log = logging.getLogger("intelbridge.cli")
        self.stdout = stdout or sys.stdout
        self.config: Optional[BridgeConfig] = None

    def create_argument_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            prog="intelbridge",
            description=f"intelbridge {__version__}: entity extraction and media metadata analysis",
        )
        parser.add_argument("-d", "--debug", action='store_true',
                            help="Enable debug output.")
        parser.add_argument("-q", action='store_true',
                            help="Only log warnings and errors.")
        parser.add_argument("--config", metavar="FILE",
                            help="JSON configuration file.")
        parser.add_argument("--json-logs", action='store_true',
                            help="Emit structured JSON logs.")

        sub = parser.add_subparsers(dest="command", metavar="COMMAND")

        p_extract = sub.add_parser("extract", help="Extract entities from text.")
        p_extract.add_argument("text", help="Text to scan; '-' reads stdin.")
        p_extract.add_argument("--links", action='store_true',
                               help="Include lookup links for each entity.")
        p_extract.add_argument("--json", action='store_true',
                               help="Print JSON instead of a table.")

        p_scan = sub.add_parser("scan", help="Run one scan pass over an HTML snapshot.")
        p_scan.add_argument("file", help="HTML file.")
        p_scan.add_argument("--json", action='store_true',
                            help="Print JSON instead of a table.")

        p_analyze = sub.add_parser("analyze", help="Extract metadata from a media file.")
        p_analyze.add_argument("file", help="Media file.")
        p_analyze.add_argument("--json", action='store_true',
                               help="Print JSON instead of a table.")

        sub.add_parser("version", help="Show client and metadata service versions.")
        return parser

    def run(self, args: Optional[List[str]] = None) -> int:
        """Main entry point. Returns the process exit code."""
        parser = self.create_argument_parser()
        parsed_args = parser.parse_args(args)

        if not parsed_args.command:
            parser.print_help(self.stdout)
            return 2

        try:
            self.config = self._load_config(parsed_args)
        except (OSError, ValueError) as e:
            print(f"Could not load configuration: {e}", file=sys.stderr)
            return 2

        errors = self.config.validate()
        if errors:
            for err in errors:
                print(f"Invalid configuration: {err}", file=sys.stderr)
            return 2

        setup_logging(self.config)
        self.log.debug("Configuration: %s", self.config.summary())

        handler = getattr(self, f"handle_{parsed_args.command}")
        try:
            return handler(parsed_args)
        except OSError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        except KeyboardInterrupt:
            self.log.info("Interrupted by user")
            return 130

    def _load_config(self, parsed_args) -> BridgeConfig:
        if parsed_args.config:
            config = BridgeConfig.from_file(parsed_args.config)
        else:
            config = BridgeConfig()
        config.apply_env_overrides()

        if parsed_args.q:
            config.logging.level = "WARNING"
        # debug overrides quiet
        if parsed_args.debug:
            config.logging.level = "DEBUG"
        if parsed_args.json_logs:
            config.logging.json_output = True
        return config

    def _emit(self, text: str = "") -> None:
        print(text, file=self.stdout)

    def _emit_json(self, data: Any) -> None:
        self._emit(json.dumps(data, indent=2, ensure_ascii=False))

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def handle_extract(self, args) -> int:
        text = sys.stdin.read() if args.text == "-" else args.text
        entities = EntityExtractor().extract(text)

        if args.json:
            rows = []
            for entity in entities:
                row: Dict[str, Any] = entity.to_dict()
                if args.links:
                    row["links"] = [link.to_dict() for link in action_links(entity)]
                rows.append(row)
            self._emit_json(rows)
            return 0

        if not entities:
            self._emit("No entities found.")
            return 0
        for entity in entities:
            self._emit(f"{entity.kind.label:<16} {entity.value}")
            if args.links:
                for link in action_links(entity):
                    self._emit(f"{'':<16}   {link.label}: {link.href}")
        return 0

    def handle_scan(self, args) -> int:
        return asyncio.run(self._scan(args))

    async def _scan(self, args) -> int:
        document = LiveDocument.from_file(args.file)
        async with IntelBridge(document, self.config) as bridge:
            summary = bridge.orchestrator.scan()

        found = []
        for node in document.select(self.config.scan.text_selector):
            if bridge.tracker.record(node) is ScanRecord.SCANNED_WITH_ENTITIES:
                found.extend(bridge.extractor.extract(node.get_text()))

        if args.json:
            self._emit_json({
                "summary": summary.to_dict(),
                "entities": [e.to_dict() for e in found],
            })
            return 0

        self._emit(f"Text nodes scanned: {summary.text_scanned}")
        self._emit(f"Annotated:          {summary.annotated}")
        self._emit(f"Media marked:       {summary.media_marked}")
        self._emit(f"Errors:             {summary.errors}")
        for entity in found:
            self._emit(f"{entity.kind.label:<16} {entity.value}")
        return 0

    def handle_analyze(self, args) -> int:
        return asyncio.run(self._analyze(args))

    async def _analyze(self, args) -> int:
        with open(args.file, "rb") as f:
            data = f.read()
        content_type = mimetypes.guess_type(args.file)[0] or "application/octet-stream"

        document = LiveDocument()
        store = BlobStore()
        img = document.new_tag("img", {"src": store.create_object_url(data, content_type)})
        document.append(document.body, img)

        cfg = self.config
        async with MetadataClient(cfg.service.base_url, timeout=cfg.service.timeout) as client:
            dispatcher = MediaAnalysisDispatcher(
                store, client, OverlaySurface(document),
                preview_limit=cfg.overlay.preview_limit,
                value_width=cfg.overlay.value_width,
                placeholder_url=cfg.overlay.placeholder_url,
                upload_filename=cfg.service.upload_filename,
            )
            outcome = await dispatcher.analyze(img)

        if args.json:
            self._emit_json(outcome.to_dict())
        elif outcome.ok:
            for key, value in outcome.preview:
                self._emit(f"{key:<24} {value}")
            for link in outcome.links:
                self._emit(f"{link.label}: {link.href}")
        else:
            self._emit(f"Analysis failed: {outcome.error}")
        return 0 if outcome.ok else 1

    def handle_version(self, args) -> int:
        self._emit(f"intelbridge {__version__}")
        try:
            service_version = asyncio.run(self._service_version())
        except MetadataServiceError as e:
            self._emit(f"Metadata service: unavailable ({e})")
            return 1
        self._emit(f"Metadata service {service_version}")
        return 0

    async def _service_version(self) -> str:
        cfg = self.config
        async with MetadataClient(cfg.service.base_url, timeout=cfg.service.timeout) as client:
            return await client.version()


def main():
    """Console script entry point."""
    sys.exit(IntelBridgeCli().run())


if __name__ == '__main__':
    main()
