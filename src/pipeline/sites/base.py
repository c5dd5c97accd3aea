"""
Site adapter base.

An adapter knows one marketplace's page structure: how a storefront names
itself, what has to be clicked before its links are readable, and how category
listings paginate and point back to storefronts. Contact extraction itself is
shared (ContactExtractor); adapters only feed it links and text.
"""
from __future__ import annotations

import re
import sys
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple
from urllib.parse import urljoin, urlsplit

from playwright.sync_api import Page
from playwright.sync_api import Error as PlaywrightError

from src.schemas import ShopContact, SiteConfig
from ..challenge import page_challenge
from ..extractors import ContactExtractor
from ..fetchers.playwright import goto, snapshot_storefront
from ..fetchers.static import StaticFetcher, read_static_page


_RANGE_RE = re.compile(r"^\s*(\d+)\s*-\s*(\d+)\s*$")

# Category walk without an explicit range or max_category_pages stops here
DEFAULT_PAGE_LIMIT = 200


def parse_page_range(raw: str) -> Tuple[int, int]:
    """'1-2000' -> (1, 2000). Raises ValueError on malformed or inverted ranges."""
    m = _RANGE_RE.match(raw or "")
    if not m:
        raise ValueError(f'invalid page range "{raw}": expected "start-end", e.g. "1-2000"')
    start, end = int(m.group(1)), int(m.group(2))
    if start < 1 or end < start:
        raise ValueError(f'invalid page range "{raw}": need start >= 1 and end >= start')
    return start, end


def split_range(start: int, end: int, parts: int) -> List[Tuple[int, int]]:
    """Contiguous chunks covering start..end; fewer than `parts` when the range is short."""
    if parts < 1:
        raise ValueError("parts must be >= 1")
    total = end - start + 1
    if total <= 0:
        return []
    chunk = -(-total // parts)
    out: List[Tuple[int, int]] = []
    current = start
    while current <= end:
        chunk_end = min(current + chunk - 1, end)
        out.append((current, chunk_end))
        current = chunk_end + 1
    return out


@dataclass(frozen=True)
class ShopResult:
    """Outcome of one storefront visit."""
    url: str
    name: str = ""
    contact: Optional[ShopContact] = None
    error: Optional[str] = None
    method: str = "browser"
    found: List[str] = field(default_factory=list)

    @property
    def key(self) -> str:
        return self.name or self.url


class SiteAdapter:
    key: str = "base"
    name_selectors: Sequence[str] = ("h1",)
    settle_ms: int = 500
    nav_timeout_ms: int = 60000

    # category walking
    category_attempts: int = 3
    category_wait_ms: int = 3000
    category_timeout_ms: int = 60000
    hard_page_cap: Optional[int] = None
    # False: an empty page after all attempts is skipped, True: it ends the category
    stop_on_empty_page: bool = True
    page_pause_ms: int = 500

    def __init__(self, config: SiteConfig, extractor: Optional[ContactExtractor] = None):
        self.config = config
        self.extractor = extractor or ContactExtractor(
            config.brand_domain, mirror_domains=config.mirror_domains
        )

    # ---- storefronts -------------------------------------------------

    def storefront_url(self, url: str) -> str:
        return url

    def prepare(self, page: Page) -> None:
        """Hook run after navigation, before links are read."""

    def clean_name(self, name: str, title: Optional[str]) -> str:
        return (name or title or "").strip()

    def finalize(self, contact: ShopContact) -> ShopContact:
        """Site-specific cleanup of an extracted record."""
        return contact

    def scrape_shop(self, page: Page, url: str) -> ShopResult:
        effective = self.storefront_url(url)
        snap = snapshot_storefront(
            page,
            effective,
            name_selectors=self.name_selectors,
            settle_ms=self.settle_ms,
            timeout_ms=self.nav_timeout_ms,
            prepare=self.prepare,
        )
        if snap.error:
            return ShopResult(url=effective, error=snap.error)
        name = self.clean_name(snap.name, snap.page_title)
        contact = self.finalize(self.extractor.extract(snap.links, snap.text, effective))
        return ShopResult(url=effective, name=name, contact=contact, found=contact.found_fields())

    def scrape_shop_static(self, fetcher: StaticFetcher, url: str) -> ShopResult:
        effective = self.storefront_url(url)
        res = fetcher.fetch(effective)
        if res.blocked_by_robots:
            return ShopResult(url=effective, error="blocked by robots.txt", method="static")
        if res.error:
            return ShopResult(url=effective, error=res.error, method="static")
        if res.status_code >= 400 or res.html is None:
            return ShopResult(
                url=effective,
                error=f"HTTP {res.status_code} ({res.mime or 'no content-type'})",
                method="static",
            )
        page = read_static_page(res.html, res.url, self.name_selectors)
        name = self.clean_name(page.name, page.title)
        contact = self.finalize(self.extractor.extract(page.links, page.text, effective))
        return ShopResult(
            url=effective, name=name, contact=contact, method="static", found=contact.found_fields()
        )

    # ---- categories --------------------------------------------------

    def category_page_url(self, category_url: str, page_number: int) -> str:
        if page_number <= 1:
            return category_url
        sep = "&" if "?" in category_url else "?"
        return f"{category_url}{sep}page={page_number}"

    def read_listing(self, page: Page) -> List[str]:
        """Raw hrefs of the listing cards on a category page."""
        raise NotImplementedError

    def store_url_from_listing(self, href: str) -> Optional[str]:
        """Storefront for a listing card: origin plus the first path segment."""
        parts = urlsplit(href)
        if not parts.scheme or not parts.netloc:
            return None
        segments = [s for s in parts.path.split("/") if s]
        if not segments:
            return None
        return f"{parts.scheme}://{parts.netloc}/{segments[0]}"

    def resolve_shop_urls(self, page: Page, listing_urls: List[str]) -> List[str]:
        out: Dict[str, None] = {}
        for href in listing_urls:
            store = self.store_url_from_listing(href)
            if store:
                out[store] = None
        return list(out)

    def is_end_of_category(self, page: Page) -> bool:
        return False

    def page_bounds(self) -> Tuple[int, int]:
        """(start, end) pages of each root category; end < start means nothing to walk."""
        if self.config.category_range:
            start, end = parse_page_range(self.config.category_range)
        else:
            start, end = 1, self.config.max_category_pages or DEFAULT_PAGE_LIMIT
        if self.hard_page_cap is not None:
            end = min(end, self.hard_page_cap)
        return start, end

    def _await_selector(self, page: Page, selector: str, timeout_ms: int = 8000) -> None:
        # cards render late on some pages; a miss just means an empty listing
        try:
            page.wait_for_selector(selector, timeout=timeout_ms)
        except PlaywrightError:
            pass

    def _wait(self, page: Page, ms: int) -> None:
        try:
            page.wait_for_timeout(ms)
        except PlaywrightError:
            time.sleep(ms / 1000.0)

    def _load_listing_page(self, page: Page, url: str, page_number: int) -> Tuple[List[str], bool]:
        """Listing hrefs for one category page and whether the category ended."""
        hrefs: List[str] = []
        for attempt in range(1, self.category_attempts + 1):
            wait_ms = self.category_wait_ms * (2 ** (attempt - 1))
            try:
                goto(page, url, timeout_ms=self.category_timeout_ms)
            except PlaywrightError as e:
                print(f"  ⚠️  [{self.key}] goto failed (page {page_number}, attempt {attempt}): {e}", file=sys.stderr)

            decision = page_challenge(page)
            if decision.blocked:
                print(
                    f"  🛑 [{self.key}] challenged page={page_number} reasons={decision.reasons}; backing off {wait_ms}ms",
                    file=sys.stderr,
                )
                self._wait(page, wait_ms)
                continue

            if self.is_end_of_category(page):
                print(f"  [{self.key}] end of category at page {page_number}")
                return [], True

            try:
                hrefs = self.read_listing(page)
            except PlaywrightError as e:
                print(f"  ⚠️  [{self.key}] listing read failed on page {page_number}: {e}", file=sys.stderr)
                hrefs = []
            print(f"  [{self.key}] page {page_number}, attempt {attempt}: {len(hrefs)} listings")
            if hrefs:
                break
            if attempt < self.category_attempts:
                self._wait(page, wait_ms)
        return hrefs, False

    def collect_listing_range(self, page: Page, category_url: str, start: int, end: int) -> List[str]:
        """Absolute listing URLs from pages start..end (inclusive) of one category."""
        found: Dict[str, None] = {}
        for page_number in range(start, end + 1):
            url = self.category_page_url(category_url, page_number)
            print(f"  [{self.key}] category page {page_number}: {url}")
            hrefs, ended = self._load_listing_page(page, url, page_number)
            if ended:
                break
            if not hrefs:
                if self.stop_on_empty_page:
                    print(f"  [{self.key}] page {page_number} has no listings; stopping")
                    break
                print(f"  [{self.key}] page {page_number} has no listings; skipping")
                continue
            for href in hrefs:
                found[urljoin(category_url, href)] = None
            if self.page_pause_ms > 0:
                self._wait(page, self.page_pause_ms)
        return list(found)
