"""
Crawl Orchestrator - storefront URLs in, {shop name: ShopContact} out

Runs a fixed pool of worker threads over a shared queue of storefront URLs.
Every worker owns its fetcher: a Playwright BrowserSession (the sync API is
bound to the thread that started it) or an httpx StaticFetcher. Failures on
one storefront are logged and recorded; they never stop the batch.

Category crawling uses the same pattern: the page range of every root
category is split into contiguous chunks, one per category worker.
"""
from __future__ import annotations

import queue
import sys
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from src.ops_logger import OpsLogger
from src.schemas import FetchMode, ShopContact
from .fetchers.playwright import BrowserSession
from .fetchers.static import StaticFetcher
from .sites.base import ShopResult, SiteAdapter, split_range
from .state import ResultStore, VisitedSet, dedupe_preserving_order


@dataclass
class CrawlStats:
    queued: int = 0
    scraped: int = 0
    kept: int = 0
    skipped_empty: int = 0
    errors: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def bump(self, name: str, n: int = 1) -> None:
        with self._lock:
            setattr(self, name, getattr(self, name) + n)

    def as_dict(self) -> Dict[str, int]:
        return {
            "queued": self.queued,
            "scraped": self.scraped,
            "kept": self.kept,
            "skipped_empty": self.skipped_empty,
            "errors": self.errors,
        }


class ShopCrawler:
    def __init__(
        self,
        adapter: SiteAdapter,
        *,
        ops_logger: Optional[OpsLogger] = None,
        headless: bool = True,
        respect_robots: bool = True,
        session_factory: Optional[Callable[[], BrowserSession]] = None,
        fetcher_factory: Optional[Callable[[], StaticFetcher]] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.adapter = adapter
        self.config = adapter.config
        self.ops_logger = ops_logger
        self.session_factory = session_factory or (lambda: BrowserSession(headless=headless))
        self.fetcher_factory = fetcher_factory or (lambda: StaticFetcher(respect_robots=respect_robots))
        self._sleep = sleep
        self.stats = CrawlStats()

    @property
    def tag(self) -> str:
        return f"[{self.config.key}]"

    # ---- storefronts -------------------------------------------------

    def scrape_shops(self, urls: Iterable[str]) -> Dict[str, ShopContact]:
        """Scrape every storefront once; returns records keyed by shop name (URL when unnamed)."""
        unique = dedupe_preserving_order(urls)
        store = ResultStore()
        if not unique:
            return store.snapshot()

        work: "queue.Queue[str]" = queue.Queue()
        for url in unique:
            work.put(url)
        self.stats.queued = len(unique)

        workers = min(self.config.concurrency, len(unique))
        print(f"{self.tag} {len(unique)} storefronts, {workers} worker(s), mode={self.config.fetch_mode.value}")
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix=f"{self.config.key}-shop") as pool:
            futures = [pool.submit(self._shop_worker, i, work, store) for i in range(workers)]
            for fut in futures:
                fut.result()

        if store.replaced:
            print(f"{self.tag} {store.replaced} record(s) replaced by a later storefront with the same name")
        return store.snapshot()

    def _shop_worker(self, index: int, work: "queue.Queue[str]", store: ResultStore) -> None:
        if index > 0 and self.config.worker_stagger_ms > 0:
            self._sleep(self.config.worker_stagger_ms * index / 1000.0)

        try:
            if self.config.fetch_mode == FetchMode.STATIC:
                with self.fetcher_factory() as fetcher:
                    self._drain(work, store, lambda url: self.adapter.scrape_shop_static(fetcher, url))
            else:
                with self.session_factory() as session:
                    page = session.new_page()
                    self._drain(work, store, lambda url: self.adapter.scrape_shop(page, url))
        except Exception as e:
            # remaining URLs stay queued for the other workers
            self.stats.bump("errors")
            print(f"  ⚠️  {self.tag} worker {index} stopped: {type(e).__name__}: {e}", file=sys.stderr)

    def _drain(self, work: "queue.Queue[str]", store: ResultStore, scrape: Callable[[str], ShopResult]) -> None:
        while True:
            try:
                url = work.get_nowait()
            except queue.Empty:
                return
            self.process_shop(url, scrape, store)
            if self.config.shop_delay_ms > 0:
                self._sleep(self.config.shop_delay_ms / 1000.0)

    def process_shop(self, url: str, scrape: Callable[[str], ShopResult], store: ResultStore) -> Optional[ShopResult]:
        """Scrape one storefront and apply the keep-empty policy."""
        print(f"➡️  {self.tag} Processing: {url}")
        t0 = time.perf_counter()
        try:
            result = scrape(url)
        except Exception as e:  # one broken storefront must not stop the batch
            result = ShopResult(url=url, error=f"{type(e).__name__}: {e}")
        duration = time.perf_counter() - t0
        self.stats.bump("scraped")

        kept = False
        if result.error or result.contact is None:
            self.stats.bump("errors")
            print(f"  ⚠️  {self.tag} Skipped: {url}: {result.error or 'no record'}", file=sys.stderr)
        elif result.contact.has_contacts() or self.config.keep_empty_shops:
            store.put(result.key, result.contact)
            self.stats.bump("kept")
            kept = True
            if result.found:
                print(f"  ✅ {result.key}: {', '.join(result.found)}")
            else:
                print(f"  ℹ️  {result.key}: no contacts (kept)")
        else:
            self.stats.bump("skipped_empty")
            print(f"  ℹ️  No contacts found on {url}")

        self._emit(
            {
                "site": self.config.key,
                "url": result.url,
                "method": result.method,
                "shop_name": result.name,
                "found": list(result.found),
                "kept": kept,
                "duration_s": round(duration, 4),
                "error": result.error,
            }
        )
        return result

    def _emit(self, record: Dict) -> None:
        if self.ops_logger is not None:
            self.ops_logger.emit(record)

    # ---- categories --------------------------------------------------

    def category_chunks(self) -> List[Tuple[int, int]]:
        start, end = self.adapter.page_bounds()
        if end < start:
            return []
        parts = max(1, min(self.config.category_workers, end - start + 1))
        return split_range(start, end, parts)

    def collect_category_shops(self) -> List[str]:
        """Storefront URLs found by walking every root category."""
        seen = VisitedSet()
        shops: List[str] = []
        chunks = self.category_chunks()
        span = f"{chunks[0][0]}-{chunks[-1][1]}" if chunks else "none"
        for category_url in self.config.root_categories:
            print(f"{self.tag} category {category_url}: pages {span}, {len(chunks)} worker(s)")
            if not chunks:
                continue
            with ThreadPoolExecutor(max_workers=len(chunks), thread_name_prefix=f"{self.config.key}-cat") as pool:
                futures = [
                    pool.submit(self._category_worker, i, category_url, start, end)
                    for i, (start, end) in enumerate(chunks)
                ]
                for fut in futures:
                    for url in fut.result():
                        if seen.add_if_new(url):
                            shops.append(url)
            print(f"{self.tag} storefronts so far: {len(shops)}")
        return shops

    def _category_worker(self, index: int, category_url: str, start: int, end: int) -> List[str]:
        if index > 0 and self.config.worker_stagger_ms > 0:
            self._sleep(self.config.worker_stagger_ms * index / 1000.0)
        try:
            with self.session_factory() as session:
                page = session.new_page()
                listings = self.adapter.collect_listing_range(page, category_url, start, end)
                print(f"  {self.tag} pages {start}-{end}: {len(listings)} listings")
                return self.adapter.resolve_shop_urls(page, listings)
        except Exception as e:
            self.stats.bump("errors")
            print(f"  ⚠️  {self.tag} pages {start}-{end} of {category_url} failed: {type(e).__name__}: {e}", file=sys.stderr)
            return []
