"""Entity kinds and the extracted entity tagged union.

Every entity variant is a frozen dataclass whose ``kind`` is fixed at the
class level, so code that dispatches on the kind can rely on
``ENTITY_TYPES`` covering every :class:`EntityKind` member.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Dict, Type, Union


class EntityKind(str, Enum):
    """Closed set of entity kinds the pattern library can produce."""
    PHONE = "phone"
    EMAIL = "email"
    CRYPTO = "crypto"
    URL = "url"

    @property
    def label(self) -> str:
        """Human-readable label used in the detail overlay."""
        return _LABELS[self]


_LABELS: Dict[EntityKind, str] = {
    EntityKind.PHONE: "Phone Number",
    EntityKind.EMAIL: "Email Address",
    EntityKind.CRYPTO: "Crypto Address",
    EntityKind.URL: "URL / Domain",
}


@dataclass(frozen=True)
class _EntityBase:
    value: str
    offset: int

    kind: ClassVar[EntityKind]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "value": self.value,
            "offset": self.offset,
        }


@dataclass(frozen=True)
class PhoneEntity(_EntityBase):
    """International phone number."""
    kind: ClassVar[EntityKind] = EntityKind.PHONE

    @property
    def digits(self) -> str:
        """The number with every non-digit character removed."""
        return "".join(ch for ch in self.value if ch.isdigit())


@dataclass(frozen=True)
class EmailEntity(_EntityBase):
    """Email address."""
    kind: ClassVar[EntityKind] = EntityKind.EMAIL


@dataclass(frozen=True)
class CryptoEntity(_EntityBase):
    """EVM-style or legacy Bitcoin-style address."""
    kind: ClassVar[EntityKind] = EntityKind.CRYPTO

    @property
    def is_evm(self) -> bool:
        return self.value.lower().startswith("0x")


@dataclass(frozen=True)
class UrlEntity(_EntityBase):
    """URL or bare domain."""
    kind: ClassVar[EntityKind] = EntityKind.URL


ExtractedEntity = Union[PhoneEntity, EmailEntity, CryptoEntity, UrlEntity]

ENTITY_TYPES: Dict[EntityKind, Type[_EntityBase]] = {
    EntityKind.PHONE: PhoneEntity,
    EntityKind.EMAIL: EmailEntity,
    EntityKind.CRYPTO: CryptoEntity,
    EntityKind.URL: UrlEntity,
}

if set(ENTITY_TYPES) != set(EntityKind):
    raise RuntimeError("every EntityKind needs an entity variant")


def make_entity(kind: EntityKind, value: str, offset: int) -> ExtractedEntity:
    """Build the entity variant for *kind*."""
    return ENTITY_TYPES[EntityKind(kind)](value=value, offset=offset)
