"""Action-link templates.

Pure functions from an entity (or a media URL) to the third-party lookup
links offered in the detail overlay. Links are rebuilt on every call and
never cached; every value is percent-encoded before it lands in a URL.
"""

from __future__ import annotations

import re
import urllib.parse
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional

from intelbridge.entities import (
    EntityKind,
    ExtractedEntity,
    PhoneEntity,
    UrlEntity,
)


@dataclass(frozen=True)
class ActionLink:
    label: str
    href: str

    def to_dict(self) -> Dict[str, str]:
        return {"label": self.label, "href": self.href}


COPY_LABEL = "Copy"


def _q(value: str) -> str:
    return urllib.parse.quote(value, safe="")


def clean_domain(value: str) -> str:
    """Strip scheme, ``www.`` and anything after the host."""
    host = re.sub(r"^(?:https?://)?(?:www\.)?", "", value, flags=re.IGNORECASE)
    return re.split(r"[/?#]", host, maxsplit=1)[0]


def phone_links(entity: PhoneEntity) -> List[ActionLink]:
    digits = _q(entity.digits)
    return [
        ActionLink("WhatsApp Direct", f"https://wa.me/{digits}"),
        ActionLink("TrueCaller", f"https://www.truecaller.com/search/global/{digits}"),
        ActionLink("Sync.me", f"https://sync.me/search/?number={digits}"),
    ]


def url_links(entity: UrlEntity) -> List[ActionLink]:
    domain = _q(clean_domain(entity.value))
    return [
        ActionLink("Whois", f"https://who.is/whois/{domain}"),
        ActionLink("VirusTotal", f"https://www.virustotal.com/gui/domain/{domain}"),
        ActionLink("UrlScan", f"https://urlscan.io/search/#{domain}"),
    ]


def copy_links(entity: ExtractedEntity) -> List[ActionLink]:
    """Placeholder action for kinds without lookup providers."""
    return [ActionLink(COPY_LABEL, f"copy:{_q(entity.value)}")]


_TEMPLATES: Dict[EntityKind, Callable[[Any], List[ActionLink]]] = {
    EntityKind.PHONE: phone_links,
    EntityKind.EMAIL: copy_links,
    EntityKind.CRYPTO: copy_links,
    EntityKind.URL: url_links,
}

if set(_TEMPLATES) != set(EntityKind):
    raise RuntimeError("every EntityKind needs an action-link template")


def action_links(entity: ExtractedEntity) -> List[ActionLink]:
    """Return the lookup links for *entity*."""
    return _TEMPLATES[entity.kind](entity)


def reverse_image_links(image_url: str) -> List[ActionLink]:
    """Reverse image search links for a publicly reachable image URL."""
    encoded = _q(image_url)
    return [
        ActionLink("Google Lens", f"https://lens.google.com/uploadbyurl?url={encoded}"),
        ActionLink("Yandex", f"https://yandex.com/images/search?rpt=imageview&url={encoded}"),
        ActionLink(
            "Bing",
            "https://www.bing.com/images/search?view=detailv2&iss=sbi"
            f"&form=SBIHMP&sbisrc=UrlPaste&q=imgurl:{encoded}",
        ),
    ]


def gps_link(metadata: Mapping[str, Any]) -> Optional[ActionLink]:
    """Map link for GPS coordinates in a metadata result, if present.

    Coordinates must be numeric. They may already be signed; a
    ``GPSLatitudeRef`` of "S" or ``GPSLongitudeRef`` of "W" forces the
    southern or western hemisphere.
    """
    lat = metadata.get("GPSLatitude")
    lon = metadata.get("GPSLongitude")
    if isinstance(lat, bool) or isinstance(lon, bool):
        return None
    if not isinstance(lat, (int, float)) or not isinstance(lon, (int, float)):
        return None

    if metadata.get("GPSLatitudeRef") == "S":
        lat = -abs(lat)
    if metadata.get("GPSLongitudeRef") == "W":
        lon = -abs(lon)
    return ActionLink(f"Map ({lat:.6f}, {lon:.6f})",
                      f"https://www.google.com/maps?q={lat},{lon}")
