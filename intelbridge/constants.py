"""Centralized constants for intelbridge.

Default selectors, timings and limits shared by the scan pipeline, the
annotation layer and the configuration defaults. Import from here instead
of hardcoding values.
"""

# ---------------------------------------------------------------------------
# Host document contract (structural selectors)
# ---------------------------------------------------------------------------
DEFAULT_TEXT_SELECTOR: str = "span.selectable-text"
"""Message text leaf nodes rendered by the conversation view."""

DEFAULT_MEDIA_SELECTOR: str = 'img[src^="blob:"]'
"""Media elements backed by an ephemeral in-memory blob reference."""

DEFAULT_CONTAINER_SELECTOR: str = ".copyable-text"
"""Message container that receives the inline indicator."""

# ---------------------------------------------------------------------------
# Timing
# ---------------------------------------------------------------------------
DEFAULT_DEBOUNCE_SECONDS: float = 0.5
"""Quiet time after the last mutation before a re-scan fires."""

DEFAULT_REQUEST_TIMEOUT: float = 60.0
"""Total timeout for one metadata service request."""

# ---------------------------------------------------------------------------
# Media
# ---------------------------------------------------------------------------
DEFAULT_MIN_MEDIA_SIZE: int = 100
"""Declared width/height (px) from which the analyze button is shown on first render."""

DEFAULT_UPLOAD_FILENAME: str = "whatsapp_media.jpg"
"""Filename attached to the multipart upload."""

# ---------------------------------------------------------------------------
# Overlay
# ---------------------------------------------------------------------------
DEFAULT_PREVIEW_LIMIT: int = 10
"""Number of metadata key/value pairs shown in the preview card."""

DEFAULT_PREVIEW_VALUE_WIDTH: int = 30
"""Characters of each metadata value shown before truncation."""

PLACEHOLDER_PUBLIC_URL: str = "https://example.com/uploaded-media.jpg"
"""Stand-in public URL for reverse image search links."""

# ---------------------------------------------------------------------------
# Default service URLs
# ---------------------------------------------------------------------------
DEFAULT_METADATA_BASE_URL: str = "http://localhost:3001"
"""Base URL of the metadata extraction service."""

METADATA_PATH: str = "/api/metadata"
VERSION_PATH: str = "/api/version"

# ---------------------------------------------------------------------------
# Markup owned by the bridge
# ---------------------------------------------------------------------------
INDICATOR_CLASS: str = "intelbridge-indicator"
OVERLAY_ID: str = "intelbridge-overlay"
MEDIA_MARK_CLASS: str = "intelbridge-media"
MEDIA_BUTTON_CLASS: str = "intelbridge-analyze"
BRIDGE_ATTR: str = "data-intelbridge"
"""Attribute carried by every element the bridge inserts."""
