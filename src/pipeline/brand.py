"""
Marketplace ownership checks.

Storefront pages carry the marketplace's own header/footer links (its
Instagram, its help desk, its sister sites) next to the seller's links. These
helpers tell the two apart. Structural checks parse the URL; a URL that does
not parse is treated as "not the marketplace's" so the caller keeps going.
"""
from __future__ import annotations

import re
from typing import Iterable, List, Optional
from urllib.parse import urlsplit, SplitResult

from src.schemas import KNOWN_MIRROR_DOMAINS


_NON_ALNUM_RE = re.compile(r"[^a-z0-9]")

HELPDESK_SUFFIXES = ("freshdesk.com", "zendesk.com")
YOUTUBE_HOST = "youtube.com"
YOUTU_BE_HOST = "youtu.be"


def _normalize(s: str) -> str:
    return _NON_ALNUM_RE.sub("", (s or "").lower())


def _strip_www(host: str) -> str:
    return host[4:] if host.startswith("www.") else host


def _parse_absolute(href: str) -> Optional[SplitResult]:
    """Split an absolute URL; None when it has no scheme/host or cannot be parsed."""
    try:
        parts = urlsplit((href or "").strip())
        if not parts.scheme or not parts.hostname:
            return None
        return parts
    except ValueError:
        return None


def brand_slug(brand_domain: str) -> Optional[str]:
    """'https://www.Design-Bundles.net' -> 'designbundles'. None when nothing is left."""
    domain = (brand_domain or "").strip().lower()
    domain = re.sub(r"^https?://", "", domain)
    if domain.startswith("www."):
        domain = domain[4:]
    first_label = domain.split(".", 1)[0]
    slug = _normalize(first_label)
    return slug or None


def _path_segments(path: str) -> List[str]:
    return [seg for seg in (path or "").split("/") if seg]


def _youtube_channel_name(segments: List[str]) -> Optional[str]:
    first = segments[0]
    if first.startswith("@"):
        return first[1:] or None
    if first in ("c", "user") and len(segments) > 1:
        return segments[1]
    # /channel/<id>, /watch, /shorts/...: no brand signal
    return None


def is_marketplace_owned_profile(href: str, slug: Optional[str]) -> bool:
    """True when a social profile link points at the marketplace's own account.

    The account name (first path segment; handle or /c/, /user/ name on
    YouTube) must equal the brand slug exactly after normalization.
    """
    if not slug:
        return False
    normalized_brand = _normalize(slug)
    if not normalized_brand:
        return False

    parts = _parse_absolute(href)
    if parts is None:
        return False
    host = _strip_www(parts.hostname or "")
    segments = _path_segments(parts.path)
    if not segments:
        return False

    if host == YOUTU_BE_HOST:
        # short links point at single videos
        return False
    if host == YOUTUBE_HOST or host.endswith("." + YOUTUBE_HOST):
        name = _youtube_channel_name(segments)
        if not name:
            return False
        return _normalize(name) == normalized_brand

    return _normalize(segments[0]) == normalized_brand


def is_ignored_website_domain(
    href: str,
    base_domain: str,
    slug: Optional[str],
    mirror_domains: Iterable[str] = KNOWN_MIRROR_DOMAINS,
) -> bool:
    """True when an external link belongs to the marketplace rather than the seller.

    Covers the marketplace domain and its subdomains, known mirror domains, and
    helpdesk tenants (freshdesk/zendesk) named after the marketplace. Fails open:
    an unparseable href is not ignored.
    """
    parts = _parse_absolute(href)
    if parts is None:
        return False
    host = _strip_www(parts.hostname or "")
    base = _strip_www((base_domain or "").strip().lower())
    mirrors = [_strip_www(d.strip().lower()) for d in mirror_domains if d and d.strip()]

    if base and (host == base or host.endswith("." + base)):
        return True

    if host in mirrors:
        return True

    if host.endswith(HELPDESK_SUFFIXES):
        owner_marks = [m.split(".", 1)[0] for m in mirrors]
        if slug:
            owner_marks.append(slug.lower())
        if any(mark and mark in host for mark in owner_marks):
            return True

    return False
