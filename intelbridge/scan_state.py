"""Per-node scan bookkeeping.

Records whether a document node has already been classified so that
repeated scan passes never hand the same node to the extractor twice.

Usage::

    from intelbridge.scan_state import ScanRecord, ScanStateTracker

    tracker = ScanStateTracker()
    if not tracker.is_marked(node):
        ...
        tracker.mark(node, ScanRecord.SCANNED_EMPTY)

The association is keyed on node identity. A node the renderer replaces
with a fresh instance carrying the same text is unscanned; a node whose
text is edited in place after marking is *not* scanned again.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from intelbridge.node_map import NodeMap

log = logging.getLogger("intelbridge.scan_state")


class ScanRecord(Enum):
    """Scan state of a single node."""
    UNSCANNED = "UNSCANNED"
    SCANNED_EMPTY = "SCANNED_EMPTY"
    SCANNED_WITH_ENTITIES = "SCANNED_WITH_ENTITIES"

    @property
    def is_scanned(self) -> bool:
        return self is not ScanRecord.UNSCANNED


class ScanStateTracker:
    """Identity-keyed, weakly held node -> :class:`ScanRecord` association."""

    def __init__(self) -> None:
        self._records: NodeMap[ScanRecord] = NodeMap()

    def is_marked(self, node: Any) -> bool:
        return node in self._records

    def record(self, node: Any) -> ScanRecord:
        return self._records.get(node, ScanRecord.UNSCANNED)

    def mark(self, node: Any,
             record: ScanRecord = ScanRecord.SCANNED_EMPTY) -> bool:
        """Mark *node* as scanned.

        Returns:
            bool: True if the node moved from unscanned to scanned, False if
            it was already marked (the first record is kept).
        """
        if not record.is_scanned:
            raise ValueError("mark() needs a scanned record")
        if node in self._records:
            return False
        self._records[node] = record
        return True

    def __len__(self) -> int:
        return len(self._records)
