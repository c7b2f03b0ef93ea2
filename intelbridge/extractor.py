"""Entity extractor.

Runs every rule of a :class:`~intelbridge.patterns.PatternLibrary` over a
plain-text string. Results come back in kind order (the library order),
then in match order within each kind. Overlapping matches of different
kinds are kept as independent entities; nothing is deduplicated.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from intelbridge.entities import ExtractedEntity, make_entity
from intelbridge.patterns import PatternLibrary

log = logging.getLogger("intelbridge.extractor")


class EntityExtractor:
    """Classifies text into typed entities using a pattern library."""

    def __init__(self, library: Optional[PatternLibrary] = None) -> None:
        self.library = library if library is not None else PatternLibrary.default()

    def extract(self, text: str) -> List[ExtractedEntity]:
        """Return every entity found in *text*.

        Args:
            text: flattened text content; no truncation is applied

        Returns:
            list of entities; empty for empty, whitespace-only or non-str input
        """
        if not isinstance(text, str) or not text.strip():
            return []

        found: List[ExtractedEntity] = []
        for rule in self.library:
            for value, offset in rule.finditer(text):
                found.append(make_entity(rule.kind, value, offset))

        if found:
            log.debug("Extracted %d entities from %d chars", len(found), len(text))
        return found


_default_extractor: Optional[EntityExtractor] = None


def extract_entities(text: str) -> List[ExtractedEntity]:
    """Extract entities from *text* with the built-in pattern library."""
    global _default_extractor
    if _default_extractor is None:
        _default_extractor = EntityExtractor()
    return _default_extractor.extract(text)
