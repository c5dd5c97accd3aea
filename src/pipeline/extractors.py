"""
Contact Extraction Logic - Storefront links and text to a ShopContact

Consumes the raw anchors and visible text harvested from one storefront page
and decides which links are the seller's own channels. Pure functions: no I/O,
no logging, and no exceptions for any input shape, so one malformed anchor can
never abort a batch of thousands of pages.

Precedence rules:
- first qualifying link in document order wins each field
- an explicit mailto: always beats an address scraped from text
- marketplace-owned profiles and share/intent links are dropped outright
"""
from __future__ import annotations

import re
from typing import Dict, FrozenSet, Iterable, Optional, Sequence

from src.schemas import KNOWN_MIRROR_DOMAINS, ShopContact
from .brand import brand_slug, is_ignored_website_domain, is_marketplace_owned_profile
from .links import (
    LinkKind,
    PLATFORM_KINDS,
    classify_link,
    is_social_link,
    mailto_address,
)


EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")

ALL_PLATFORMS: FrozenSet[LinkKind] = frozenset(PLATFORM_KINDS)


def extract_email(text: Optional[str]) -> Optional[str]:
    """First email-looking token in free text, or None."""
    if not text:
        return None
    m = EMAIL_PATTERN.search(text)
    return m.group(0) if m else None


def aggregate_contacts(
    links: Iterable[str],
    text: Optional[str],
    shop_url: str,
    brand_domain: str,
    *,
    platforms: Iterable[LinkKind] = ALL_PLATFORMS,
    mirror_domains: Sequence[str] = KNOWN_MIRROR_DOMAINS,
) -> ShopContact:
    """
    Build the contact record for one storefront.

    Args:
        links: Raw hrefs in document order (may hold blanks, duplicates, relative forms)
        text: Visible page text, used for the email fallback
        shop_url: Storefront URL, stored as original_shop_link
        brand_domain: Marketplace domain, e.g. "designbundles.net"
        platforms: Social platforms to fill; links to the others are dropped
        mirror_domains: Sister sites never accepted as the seller's website

    Returns:
        ShopContact with at most one value per field
    """
    domain_lower = (brand_domain or "").strip().lower()
    slug = brand_slug(domain_lower)
    tracked = frozenset(platforms)

    found: Dict[str, str] = {}

    for raw in links or ():
        if not raw:
            continue
        href = str(raw).strip()
        if not href:
            continue

        kind = classify_link(href)
        if kind in (LinkKind.UNRECOGNIZED, LinkKind.SHARE):
            continue

        if kind in ALL_PLATFORMS:
            if kind not in tracked:
                continue
            if is_marketplace_owned_profile(href, slug):
                continue
            found.setdefault(kind.value, href)
            continue

        if kind is LinkKind.MAILTO:
            address = mailto_address(href)
            if address:
                found.setdefault("email", address)
            continue

        # LinkKind.HTTP: website candidate
        lower = href.lower()
        if domain_lower and domain_lower in lower:
            continue
        if is_social_link(lower):
            continue
        if is_ignored_website_domain(href, domain_lower, slug, mirror_domains):
            continue
        found.setdefault("website", href)

    if "email" not in found:
        text_email = extract_email(text)
        if text_email:
            found["email"] = text_email

    return ShopContact(original_shop_link=shop_url or "", **found)


class ContactExtractor:
    """
    Aggregator bound to one marketplace.

    Site adapters hold one instance each so brand domain, tracked platforms and
    mirror domains are configured once per site instead of per call.
    """

    def __init__(
        self,
        brand_domain: str,
        *,
        platforms: Iterable[LinkKind] = ALL_PLATFORMS,
        mirror_domains: Sequence[str] = KNOWN_MIRROR_DOMAINS,
    ):
        self.brand_domain = brand_domain
        self.platforms = frozenset(platforms)
        self.mirror_domains = tuple(mirror_domains)

    @property
    def brand_slug(self) -> Optional[str]:
        return brand_slug(self.brand_domain)

    def extract(self, links: Iterable[str], text: Optional[str], shop_url: str) -> ShopContact:
        return aggregate_contacts(
            links,
            text,
            shop_url,
            self.brand_domain,
            platforms=self.platforms,
            mirror_domains=self.mirror_domains,
        )
