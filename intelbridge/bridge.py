"""Bridge wiring.

:class:`IntelBridge` assembles the pipeline over one live document:

- an initial scan pass when started,
- a debounced re-scan on every document change,
- click-driven media analysis against the metadata service.

Usage::

    async with IntelBridge(document, config) as bridge:
        bridge.start()
        ...

The debounce timer runs on the event loop (``loop.call_later``) unless a
scheduler is passed explicitly.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

from intelbridge.annotation import AnnotationRenderer, OverlaySurface
from intelbridge.app_config import BridgeConfig
from intelbridge.blob_store import BlobStore
from intelbridge.document import LiveDocument
from intelbridge.extractor import EntityExtractor
from intelbridge.media_analysis import MediaAnalysisDispatcher
from intelbridge.metadata_client import MetadataClient
from intelbridge.mutation_watcher import MutationWatcher, Scheduler
from intelbridge.patterns import PatternLibrary
from intelbridge.scan_orchestrator import ScanOrchestrator, ScanSummary
from intelbridge.scan_state import ScanStateTracker

log = logging.getLogger("intelbridge.bridge")


class IntelBridge:
    """Entity extraction and media analysis bound to one live document."""

    def __init__(self, document: LiveDocument,
                 config: Optional[BridgeConfig] = None,
                 blob_store: Optional[BlobStore] = None,
                 client: Optional[MetadataClient] = None,
                 library: Optional[PatternLibrary] = None) -> None:
        self.document = document
        self.config = config or BridgeConfig()
        cfg = self.config

        self.blob_store = blob_store or BlobStore()
        self.client = client or MetadataClient(cfg.service.base_url,
                                               timeout=cfg.service.timeout)
        self.extractor = EntityExtractor(library)
        self.tracker = ScanStateTracker()
        self.overlay = OverlaySurface(document)
        self.renderer = AnnotationRenderer(document, self.overlay,
                                           cfg.scan.container_selector)
        self.dispatcher = MediaAnalysisDispatcher(
            self.blob_store, self.client, self.overlay,
            preview_limit=cfg.overlay.preview_limit,
            value_width=cfg.overlay.value_width,
            placeholder_url=cfg.overlay.placeholder_url,
            upload_filename=cfg.service.upload_filename,
        )
        self.orchestrator = ScanOrchestrator(
            document, self.extractor, self.tracker, self.renderer,
            dispatcher=self.dispatcher,
            text_selector=cfg.scan.text_selector,
            media_selector=cfg.scan.media_selector,
            min_media_size=cfg.scan.min_media_size,
        )
        self.watcher: Optional[MutationWatcher] = None

    async def __aenter__(self) -> "IntelBridge":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    @property
    def running(self) -> bool:
        return self.watcher is not None

    def start(self, scheduler: Optional[Scheduler] = None) -> ScanSummary:
        """Run the initial scan and start watching the document.

        Args:
            scheduler: timer source for the debounce; defaults to the
                running event loop

        Returns:
            the initial pass summary
        """
        if self.watcher is not None:
            raise RuntimeError("IntelBridge already started")
        if scheduler is None:
            scheduler = asyncio.get_running_loop()

        summary = self.orchestrator.scan()
        self.watcher = MutationWatcher(self.orchestrator.scan, scheduler,
                                       self.config.scan.debounce_seconds)
        self.watcher.attach(self.document)
        log.info("Bridge started, watching document (debounce %.2fs)",
                 self.config.scan.debounce_seconds)
        return summary

    def stop(self) -> None:
        if self.watcher is not None:
            self.watcher.cancel()
            self.watcher = None
            log.info("Bridge stopped")

    async def close(self) -> None:
        """Stop watching, cancel running analyses and close the HTTP client."""
        self.stop()
        for node in self.dispatcher.in_flight_nodes():
            task = self.dispatcher.in_flight(node)
            if task is not None:
                task.cancel()
        await self.client.close()

    def stats(self) -> Dict[str, Any]:
        last = self.orchestrator.last_summary
        return {
            "running": self.running,
            "passes": self.orchestrator.passes,
            "marked_nodes": len(self.tracker),
            "notifications": self.watcher.notifications if self.watcher else 0,
            "analyses": len(self.dispatcher.outcomes),
            "last_pass": last.to_dict() if last else None,
        }
