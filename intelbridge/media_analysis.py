"""Media analysis dispatcher.

User-triggered branch of the bridge: resolve a media element's blob
reference, upload the bytes to the metadata service and render the
result in the detail overlay.

Every invocation runs a small state machine::

    IDLE -> FETCHING_BLOB -> UPLOADING -> AWAITING_RESULT -> SUCCESS
                 |               |               |
                 +---------------+---------------+--> FAILED

Once an invocation enters FETCHING_BLOB it always ends in exactly one of
SUCCESS or FAILED. Starting a new analysis for a node that still has one
in flight cancels the older task; the older invocation ends FAILED with a
"superseded" reason and leaves the overlay to the newer one.

Usage::

    dispatcher = MediaAnalysisDispatcher(blob_store, client, overlay)
    task = dispatcher.start(img_node)
    outcome = await task
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Deque, Dict, List, Optional, Tuple

from bs4 import Tag

from intelbridge.actions import ActionLink, gps_link, reverse_image_links
from intelbridge.annotation import OverlaySurface, metadata_preview
from intelbridge.blob_store import BlobStore
from intelbridge.constants import (
    DEFAULT_PREVIEW_LIMIT,
    DEFAULT_PREVIEW_VALUE_WIDTH,
    DEFAULT_UPLOAD_FILENAME,
    PLACEHOLDER_PUBLIC_URL,
)
from intelbridge.errors import (
    BlobResolutionError,
    InvalidTransitionError,
    MetadataServiceError,
)
from intelbridge.metadata_client import MetadataClient, MetadataResult
from intelbridge.node_map import NodeMap

log = logging.getLogger("intelbridge.media_analysis")

LOADING_MESSAGE = "Analyzing encrypted media buffer..."
SUPERSEDED_REASON = "superseded by a newer analysis of the same media"


class AnalysisState(Enum):
    """Possible analysis states."""
    IDLE = "IDLE"
    FETCHING_BLOB = "FETCHING_BLOB"
    UPLOADING = "UPLOADING"
    AWAITING_RESULT = "AWAITING_RESULT"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (AnalysisState.SUCCESS, AnalysisState.FAILED)


VALID_TRANSITIONS: Dict[AnalysisState, set] = {
    AnalysisState.IDLE: {AnalysisState.FETCHING_BLOB, AnalysisState.FAILED},
    AnalysisState.FETCHING_BLOB: {AnalysisState.UPLOADING, AnalysisState.FAILED},
    AnalysisState.UPLOADING: {AnalysisState.AWAITING_RESULT, AnalysisState.FAILED},
    AnalysisState.AWAITING_RESULT: {AnalysisState.SUCCESS, AnalysisState.FAILED},
    AnalysisState.SUCCESS: set(),  # terminal
    AnalysisState.FAILED: set(),   # terminal
}


@dataclass
class StateTransition:
    """Record of a state transition."""
    from_state: AnalysisState
    to_state: AnalysisState
    timestamp: float
    reason: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from": self.from_state.value,
            "to": self.to_state.value,
            "timestamp": self.timestamp,
            "reason": self.reason,
        }


# Callback type: (old_state, new_state, source) -> None
TransitionCallback = Callable[[AnalysisState, AnalysisState, str], None]


class AnalysisStateMachine:
    """State machine for one analysis invocation."""

    def __init__(self, source: str) -> None:
        self.source = source
        self._state = AnalysisState.IDLE
        self._history: List[StateTransition] = []
        self._callbacks: List[TransitionCallback] = []

    @property
    def state(self) -> AnalysisState:
        return self._state

    @property
    def is_terminal(self) -> bool:
        return self._state.is_terminal

    @property
    def history(self) -> List[StateTransition]:
        return list(self._history)

    def transition(self, to_state: AnalysisState, reason: str = "") -> AnalysisState:
        """Move to *to_state*.

        Raises:
            InvalidTransitionError: the transition is not in VALID_TRANSITIONS
        """
        old_state = self._state
        if to_state not in VALID_TRANSITIONS.get(old_state, set()):
            raise InvalidTransitionError(old_state, to_state)

        self._state = to_state
        self._history.append(StateTransition(old_state, to_state, time.time(), reason))
        log.debug("Analysis %s: %s -> %s%s", self.source, old_state.value,
                  to_state.value, f" ({reason})" if reason else "")

        for cb in self._callbacks:
            try:
                cb(old_state, to_state, self.source)
            except Exception as e:
                log.error("Callback error during transition: %s", e)
        return to_state

    def fail(self, reason: str) -> bool:
        """Move to FAILED unless already terminal. Returns True if it moved."""
        if self._state.is_terminal:
            return False
        self.transition(AnalysisState.FAILED, reason)
        return True

    def on_transition(self, callback: TransitionCallback) -> None:
        self._callbacks.append(callback)


@dataclass
class AnalysisOutcome:
    """Terminal result of one analysis invocation."""
    source: str
    state: AnalysisState
    metadata: Optional[MetadataResult] = None
    preview: List[Tuple[str, str]] = field(default_factory=list)
    links: List[ActionLink] = field(default_factory=list)
    error: Optional[str] = None
    history: List[StateTransition] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.state is AnalysisState.SUCCESS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "state": self.state.value,
            "error": self.error,
            "preview": [list(p) for p in self.preview],
            "links": [link.to_dict() for link in self.links],
            "history": [h.to_dict() for h in self.history],
        }


class MediaAnalysisDispatcher:
    """Runs media analyses on user request and renders their results."""

    def __init__(self, blob_store: BlobStore, client: MetadataClient,
                 overlay: OverlaySurface,
                 preview_limit: int = DEFAULT_PREVIEW_LIMIT,
                 value_width: int = DEFAULT_PREVIEW_VALUE_WIDTH,
                 placeholder_url: str = PLACEHOLDER_PUBLIC_URL,
                 upload_filename: str = DEFAULT_UPLOAD_FILENAME,
                 history_size: int = 50) -> None:
        self.blob_store = blob_store
        self.client = client
        self.overlay = overlay
        self.preview_limit = preview_limit
        self.value_width = value_width
        self.placeholder_url = placeholder_url
        self.upload_filename = upload_filename
        self._inflight: NodeMap[asyncio.Task] = NodeMap()
        self.outcomes: Deque[AnalysisOutcome] = deque(maxlen=history_size)

    def in_flight(self, node: Tag) -> Optional[asyncio.Task]:
        task = self._inflight.get(node)
        if task is None or task.done():
            return None
        return task

    def in_flight_nodes(self) -> List[Tag]:
        return [node for node in self._inflight.nodes() if self.in_flight(node) is not None]

    def start(self, node: Tag) -> asyncio.Task:
        """Schedule an analysis of *node*, superseding one still running for it."""
        previous = self.in_flight(node)
        if previous is not None:
            log.info("Superseding in-flight analysis of %s", node.get("src"))
            previous.cancel()

        task = asyncio.ensure_future(self.analyze(node))
        self._inflight[node] = task

        def _done(t: asyncio.Task) -> None:
            if self._inflight.get(node) is t:
                self._inflight.pop(node, None)

        task.add_done_callback(_done)
        return task

    def _links_for(self, metadata: MetadataResult) -> List[ActionLink]:
        # The bytes are never published, so reverse search points at a
        # placeholder URL.
        links = reverse_image_links(self.placeholder_url)
        location = gps_link(metadata)
        if location is not None:
            links.append(location)
        return links

    async def analyze(self, node: Tag) -> AnalysisOutcome:
        """Run one analysis of *node* to a terminal state."""
        source = str(node.get("src") or "")
        machine = AnalysisStateMachine(source)
        outcome = AnalysisOutcome(source=source, state=AnalysisState.IDLE)

        self.overlay.show_message(LOADING_MESSAGE)
        try:
            machine.transition(AnalysisState.FETCHING_BLOB)
            blob = await self.blob_store.fetch(source)

            machine.transition(AnalysisState.UPLOADING)
            request = self.client.extract(blob.data, self.upload_filename,
                                          blob.content_type)

            machine.transition(AnalysisState.AWAITING_RESULT)
            metadata = await request

            outcome.metadata = metadata
            outcome.preview = metadata_preview(metadata, self.preview_limit,
                                               self.value_width)
            outcome.links = self._links_for(metadata)
            self.overlay.show_metadata(metadata, outcome.links,
                                       self.preview_limit, self.value_width)
            machine.transition(AnalysisState.SUCCESS)
            log.info("Media analysis of %s succeeded (%d keys)", source, len(metadata),
                     extra={"analysis_state": machine.state.value})

        except asyncio.CancelledError:
            machine.fail(SUPERSEDED_REASON)
            outcome.error = SUPERSEDED_REASON
            self._finish(outcome, machine)
            raise

        except (BlobResolutionError, MetadataServiceError) as e:
            self._fail(outcome, machine, str(e))

        except Exception as e:
            log.error("Unexpected media analysis failure: %s", e, exc_info=True)
            self._fail(outcome, machine, str(e))

        self._finish(outcome, machine)
        return outcome

    def _fail(self, outcome: AnalysisOutcome, machine: AnalysisStateMachine,
              message: str) -> None:
        machine.fail(message)
        outcome.error = message
        self.overlay.show_message(message, error=True)
        log.warning("Media analysis of %s failed: %s", outcome.source, message,
                    extra={"analysis_state": machine.state.value})

    def _finish(self, outcome: AnalysisOutcome, machine: AnalysisStateMachine) -> None:
        outcome.state = machine.state
        outcome.history = machine.history
        self.outcomes.append(outcome)
