from __future__ import annotations

from typing import List, Optional

from playwright.sync_api import Page
from playwright.sync_api import Error as PlaywrightError

from .base import SiteAdapter


LISTING_SELECTOR = "div.product-box[data-product-url]"

READ_LISTING_JS = """
(nodes) => nodes.map((n) => n.getAttribute("data-product-url") || "").filter(Boolean)
"""


class DesignBundlesAdapter(SiteAdapter):
    """designbundles.net: storefront lives at /<store-slug>, products below it."""

    key = "designbundles"
    name_selectors = (".stores-page__name", "h1")
    settle_ms = 500
    category_attempts = 3
    category_wait_ms = 3000
    stop_on_empty_page = False

    def read_listing(self, page: Page) -> List[str]:
        self._await_selector(page, LISTING_SELECTOR)
        return page.eval_on_selector_all(LISTING_SELECTOR, READ_LISTING_JS)

    def store_url_from_listing(self, href: str) -> Optional[str]:
        store = super().store_url_from_listing(href)
        # Plus products sit under a shared /plusstore/ path
        if store is None or store.rsplit("/", 1)[-1].lower() == "plusstore":
            return None
        return store

    def is_end_of_category(self, page: Page) -> bool:
        # past the last page the site serves its 404 template
        try:
            return page.query_selector("h1.error_h1") is not None
        except PlaywrightError:
            return False
