from __future__ import annotations

import sys
from typing import List

from playwright.sync_api import Page
from playwright.sync_api import Error as PlaywrightError

from .base import SiteAdapter


LISTING_SELECTOR = 'div.sp-product-card[data-test="sp-product-card"][data-url]'

READ_LISTING_JS = """
(cards) => cards.map((c) => c.getAttribute("data-url") || "").filter(Boolean)
"""

# Contacts on a Creative Market profile only render under the About tab
CLICK_ABOUT_TAB_JS = """
() => {
  const spans = Array.from(
    document.querySelectorAll(".profile-page-tabs .sp-tabs__heading span.tab-head-content")
  );
  const about = spans.find((el) => (el.textContent || "").trim().toLowerCase() === "about");
  if (!about) return false;
  const target = about.closest("li") || about;
  target.click();
  return true;
}
"""

# Category listings never paginate past this page
ABSOLUTE_MAX_PAGE = 277


class CreativeMarketAdapter(SiteAdapter):
    key = "creativemarket"
    name_selectors = ("h1.sp-h4", ".user-header-info h1", "h1")
    settle_ms = 1000
    about_tab_wait_ms = 800
    hard_page_cap = ABSOLUTE_MAX_PAGE
    category_attempts = 1

    def prepare(self, page: Page) -> None:
        try:
            clicked = page.evaluate(CLICK_ABOUT_TAB_JS)
        except PlaywrightError as e:
            print(f"    ⚠️  [{self.key}] could not open the About tab on {page.url}: {e}", file=sys.stderr)
            return
        if clicked:
            page.wait_for_timeout(self.about_tab_wait_ms)

    def read_listing(self, page: Page) -> List[str]:
        self._await_selector(page, LISTING_SELECTOR)
        return page.eval_on_selector_all(LISTING_SELECTOR, READ_LISTING_JS)
