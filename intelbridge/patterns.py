"""Pattern library: the fixed, ordered table of entity matching rules.

The library is an immutable value. Build it once (``PatternLibrary.default()``)
and pass it to whatever needs it; tests can hand in a reduced rule set
with ``PatternLibrary.only(...)``.

Each rule follows global-regex semantics: it yields every non-overlapping
match left to right together with the match start offset.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator, Optional, Pattern, Tuple

from intelbridge.entities import EntityKind

# International dialing format: "+" or "00", a non-zero digit, then
# 7-32 digits/separators, always ending on a digit.
PHONE_REGEX = r"(?:\+|00)[1-9][0-9 \-().]{6,31}[0-9]"

# A match starts at the beginning of a local-part run, never inside one.
EMAIL_REGEX = r"(?<![a-zA-Z0-9._%+\-])[a-zA-Z0-9._%+\-]+@[a-zA-Z0-9.\-]+\.[a-zA-Z]{2,}"

# EVM (0x + 40 hex) or legacy Bitcoin base58 (no 0, O, I, l).
CRYPTO_REGEX = (
    r"\b(?:0x[a-fA-F0-9]{40}|[13][a-km-zA-HJ-NP-Z1-9]{25,34})\b"
)

# Optional scheme / www., dotted host, optional port, optional tail.
# A host glued to "@" or another word character is part of something
# else (an email address, a longer token) and is not a URL.
URL_REGEX = (
    r"(?<![@\w.\-/])"
    r"(?:https?://)?(?:www\.)?"
    r"(?:[a-zA-Z0-9](?:[a-zA-Z0-9\-]{0,61}[a-zA-Z0-9])?\.)+"
    r"[a-zA-Z]{2,24}"
    r"(?::[0-9]{1,5})?"
    r"(?:[/?#][\-a-zA-Z0-9()@:%_+.~#?&/=]*)?"
    r"(?![@\w])"
)


@dataclass(frozen=True)
class MatchRule:
    """One entity kind and the compiled expression that finds it."""
    kind: EntityKind
    pattern: Pattern[str]

    @classmethod
    def compile(cls, kind: EntityKind, expression: str,
                flags: int = 0) -> "MatchRule":
        return cls(kind=EntityKind(kind), pattern=re.compile(expression, flags))

    def finditer(self, text: str) -> Iterator[Tuple[str, int]]:
        """Yield ``(value, offset)`` for every match in *text*."""
        for match in self.pattern.finditer(text):
            yield match.group(0), match.start()


@dataclass(frozen=True)
class PatternLibrary:
    """Ordered, immutable collection of :class:`MatchRule`."""
    rules: Tuple[MatchRule, ...]

    def __post_init__(self) -> None:
        rules = tuple(self.rules)
        kinds = [r.kind for r in rules]
        if len(kinds) != len(set(kinds)):
            raise ValueError(f"Duplicate entity kinds in pattern library: {kinds}")
        object.__setattr__(self, "rules", rules)

    def __iter__(self) -> Iterator[MatchRule]:
        return iter(self.rules)

    def __len__(self) -> int:
        return len(self.rules)

    @property
    def kinds(self) -> Tuple[EntityKind, ...]:
        return tuple(r.kind for r in self.rules)

    def get(self, kind: EntityKind) -> Optional[MatchRule]:
        for rule in self.rules:
            if rule.kind == kind:
                return rule
        return None

    def only(self, *kinds: EntityKind) -> "PatternLibrary":
        """Return a library restricted to *kinds*, keeping the original order."""
        wanted = {EntityKind(k) for k in kinds}
        return PatternLibrary(tuple(r for r in self.rules if r.kind in wanted))

    def with_rule(self, rule: MatchRule) -> "PatternLibrary":
        """Return a library with *rule* replacing (or appended after) its kind."""
        if self.get(rule.kind) is None:
            return PatternLibrary(self.rules + (rule,))
        return PatternLibrary(tuple(
            rule if r.kind == rule.kind else r for r in self.rules
        ))

    @classmethod
    def default(cls) -> "PatternLibrary":
        return DEFAULT_LIBRARY


DEFAULT_LIBRARY = PatternLibrary((
    MatchRule.compile(EntityKind.PHONE, PHONE_REGEX),
    MatchRule.compile(EntityKind.EMAIL, EMAIL_REGEX),
    MatchRule.compile(EntityKind.CRYPTO, CRYPTO_REGEX),
    MatchRule.compile(EntityKind.URL, URL_REGEX, re.IGNORECASE),
))
