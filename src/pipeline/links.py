"""
Link classification for storefront anchors.

Every check is substring containment on the trimmed, lowercased href rather
than host parsing, so tracking parameters, mobile subdomains and scheme-less
variants still classify. Share/intent links are recognized first and never
reach the platform checks.
"""
from __future__ import annotations

from enum import Enum
from typing import Tuple
from urllib.parse import unquote


class LinkKind(str, Enum):
    INSTAGRAM = "instagram"
    FACEBOOK = "facebook"
    PINTEREST = "pinterest"
    TIKTOK = "tiktok"
    BEHANCE = "behance"
    TWITTER = "twitter"
    YOUTUBE = "youtube"
    MAILTO = "mailto"
    SHARE = "share"
    HTTP = "http"
    UNRECOGNIZED = "unrecognized"


SHARE_MARKERS = (
    "pinterest.com/pin/create/",
    "twitter.com/intent/",
    "x.com/intent/",
    "facebook.com/sharer",
    "facebook.com/share.php",
    "/share?",
    "addthis.com",
)

# Checked in order; the first platform whose marker is contained wins
PLATFORM_MARKERS: Tuple[Tuple[LinkKind, Tuple[str, ...]], ...] = (
    (LinkKind.INSTAGRAM, ("instagram.com",)),
    (LinkKind.FACEBOOK, ("facebook.com",)),
    (LinkKind.PINTEREST, ("pinterest.com",)),
    (LinkKind.TIKTOK, ("tiktok.com",)),
    (LinkKind.BEHANCE, ("behance.net",)),
    (LinkKind.TWITTER, ("twitter.com", "x.com")),
    (LinkKind.YOUTUBE, ("youtube.com", "youtu.be")),
)

PLATFORM_KINDS = tuple(kind for kind, _ in PLATFORM_MARKERS)

# Broader list used to keep social profiles out of the website slot,
# including platforms that have no field of their own
SOCIAL_MARKERS = (
    "facebook.com",
    "instagram.com",
    "pinterest.com",
    "tiktok.com",
    "twitter.com",
    "x.com",
    "behance.net",
    "dribbble.com",
    "youtube.com",
    "youtu.be",
)

_MAILTO = "mailto:"


def is_share_link(lower_href: str) -> bool:
    return any(marker in lower_href for marker in SHARE_MARKERS)


def is_social_link(lower_href: str) -> bool:
    return any(marker in lower_href for marker in SOCIAL_MARKERS)


def is_http_link(lower_href: str) -> bool:
    return lower_href.startswith(("http://", "https://"))


def classify_link(href: str) -> LinkKind:
    """Classify a single href. Fixed precedence, first match wins:
    share/intent -> social platform -> mailto -> http(s) -> unrecognized.
    """
    lower = (href or "").strip().lower()
    if not lower:
        return LinkKind.UNRECOGNIZED
    if is_share_link(lower):
        return LinkKind.SHARE
    for kind, markers in PLATFORM_MARKERS:
        if any(m in lower for m in markers):
            return kind
    if lower.startswith(_MAILTO):
        return LinkKind.MAILTO
    if is_http_link(lower):
        return LinkKind.HTTP
    return LinkKind.UNRECOGNIZED


def mailto_address(href: str) -> str:
    """Address part of a mailto href: prefix removed, ?params dropped, %-escapes decoded."""
    s = (href or "").strip()
    if s.lower().startswith(_MAILTO):
        s = s[len(_MAILTO):]
    s = s.split("?", 1)[0]
    return unquote(s).strip()
