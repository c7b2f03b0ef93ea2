"""intelbridge - real-time entity extraction and media metadata analysis.

This package contains:
- Entity extraction (phone numbers, email addresses, crypto addresses, URLs)
- Debounced scanning of a live, externally mutated document
- Inline annotation and the detail overlay
- Media metadata analysis against an extraction service
"""

from .__version__ import __version__
from .app_config import BridgeConfig
from .bridge import IntelBridge
from .document import LiveDocument
from .entities import EntityKind
from .extractor import EntityExtractor, extract_entities

__license__ = "MIT"

__all__ = [
    '__version__',
    'BridgeConfig',
    'EntityExtractor',
    'EntityKind',
    'IntelBridge',
    'LiveDocument',
    'extract_entities',
]
