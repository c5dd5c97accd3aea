from __future__ import annotations

import re
from typing import List, Optional

from playwright.sync_api import Page

from .base import SiteAdapter


LISTING_SELECTOR = (
    'a.hit-info-container__company-name, '
    'a[href*="dispatch=companies.products&company_id="]'
)

READ_LISTING_JS = """
(anchors) => anchors.map((a) => a.href || "").filter(Boolean)
"""

_SHOPS_PREFIX = re.compile(r"^\s*Shops\s*::\s*", re.IGNORECASE)


def products_url(url: str) -> str:
    """Company 'view' pages carry no storefront links; the products view does."""
    return url.replace("dispatch=companies.view", "dispatch=companies.products")


class GoImagineAdapter(SiteAdapter):
    """goimagine.com (CS-Cart storefronts addressed by company_id)."""

    key = "goimagine"
    name_selectors = ("h1", ".ty-company-title", ".ty-mainbox-title__text")
    settle_ms = 1500
    category_attempts = 1

    def storefront_url(self, url: str) -> str:
        return products_url(url)

    def clean_name(self, name: str, title: Optional[str]) -> str:
        raw = name
        if not raw and title:
            brand = re.escape(self.config.brand_domain)
            raw = re.sub(rf"-\s*{brand}\s*$", "", title, flags=re.IGNORECASE)
        return _SHOPS_PREFIX.sub("", raw or "").strip()

    def read_listing(self, page: Page) -> List[str]:
        self._await_selector(page, LISTING_SELECTOR)
        return page.eval_on_selector_all(LISTING_SELECTOR, READ_LISTING_JS)

    def store_url_from_listing(self, href: str) -> Optional[str]:
        # listing anchors already point at the storefront
        return href or None
