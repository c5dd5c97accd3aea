from __future__ import annotations

import re
import sys
from typing import Dict, List, Optional
from urllib.parse import urljoin

from playwright.sync_api import Page
from playwright.sync_api import Error as PlaywrightError

from src.schemas import ShopContact
from ..fetchers.playwright import goto
from .base import SiteAdapter


LISTING_SELECTOR = "div.c-product-box"

READ_LISTING_JS = """
(boxes) => {
  const out = [];
  for (const box of boxes) {
    const dataUrl = box.getAttribute("data-product-url");
    if (dataUrl) { out.push(dataUrl); continue; }
    const a = box.querySelector('a[href*="/product/"]');
    if (a && a.href) out.push(a.href);
  }
  return out;
}
"""

DESIGNER_LINK_SELECTOR = 'a[href*="/designer/"]'

END_OF_CATEGORY_TEXT = "no products were found"

_WS = re.compile(r"\s+")


class CreativeFabricaAdapter(SiteAdapter):
    """creativefabrica.com: listings are products; each links to its /designer/<slug>/ page."""

    key = "creativefabrica"
    name_selectors = ("h1", ".designer-header h1", ".row.row--designer-header h1")
    settle_ms = 500
    category_attempts = 3
    category_wait_ms = 2000
    category_timeout_ms = 40000
    page_pause_ms = 300
    stop_on_empty_page = False
    product_attempts = 2
    product_timeout_ms = 30000
    product_retry_ms = 700

    def category_page_url(self, category_url: str, page_number: int) -> str:
        base = category_url.rstrip("/")
        if page_number <= 1:
            return f"{base}/"
        return f"{base}/page/{page_number}/"

    def clean_name(self, name: str, title: Optional[str]) -> str:
        return _WS.sub(" ", name or title or "").strip()

    def finalize(self, contact: ShopContact) -> ShopContact:
        # support@ addresses of the marketplace itself show up in every footer
        email = (contact.email or "").strip().lower()
        domain = email.split("@")[-1] if "@" in email else ""
        host = self.config.brand_domain
        if domain and host and (domain == host or domain.endswith("." + host)):
            return contact.model_copy(update={"email": None})
        return contact

    def read_listing(self, page: Page) -> List[str]:
        self._await_selector(page, LISTING_SELECTOR)
        return page.eval_on_selector_all(LISTING_SELECTOR, READ_LISTING_JS)

    def is_end_of_category(self, page: Page) -> bool:
        try:
            text = page.evaluate("() => (document.body && document.body.innerText) || ''")
        except PlaywrightError:
            return False
        return END_OF_CATEGORY_TEXT in (text or "").lower()

    def designer_url(self, page: Page, product_url: str) -> Optional[str]:
        """The designer profile linked from a product page, or None."""
        for attempt in range(1, self.product_attempts + 1):
            try:
                goto(page, product_url, timeout_ms=self.product_timeout_ms)
            except PlaywrightError as e:
                print(f"  ⚠️  [{self.key}] product goto failed (attempt {attempt}): {e}", file=sys.stderr)
            try:
                href = page.eval_on_selector(DESIGNER_LINK_SELECTOR, "(a) => a.href || ''")
            except PlaywrightError:
                href = ""
            if href:
                return urljoin(self.config.base_url + "/", href)
            if attempt < self.product_attempts:
                self._wait(page, self.product_retry_ms)
        return None

    def resolve_shop_urls(self, page: Page, listing_urls: List[str]) -> List[str]:
        designers: Dict[str, None] = {}
        total = len(listing_urls)
        for i, product_url in enumerate(listing_urls, 1):
            if i == 1 or i % 50 == 0 or i == total:
                print(f"  [{self.key}] product->designer {i}/{total}")
            designer = self.designer_url(page, product_url)
            if designer:
                designers[designer] = None
        print(f"  [{self.key}] designers found: {len(designers)}")
        return list(designers)
