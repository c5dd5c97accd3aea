from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from playwright.sync_api import sync_playwright, Browser, BrowserContext, Page, Playwright
from playwright.sync_api import Error as PlaywrightError


DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

LAUNCH_ARGS = [
    '--disable-dev-shm-usage',     # Prevent /dev/shm issues in containers
    '--disable-gpu',                # Disable GPU for headless
    '--disable-extensions',         # No browser extensions
    '--disable-plugins',            # No plugins
    '--no-first-run',               # Skip first run setup
    '--disable-default-apps',       # No default apps
    '--disable-background-timer-throttling',  # Consistent timing
]  # Note: no --no-sandbox (sandbox stays enabled)

# Resolved hrefs (a.href, document order), visible text, first non-empty name match
READ_STOREFRONT_JS = """
(nameSelectors) => {
  const anchors = Array.from(document.querySelectorAll("a"));
  const links = anchors.map((a) => a.href || "");
  const text = (document.body && document.body.innerText) || "";
  let name = "";
  for (const sel of nameSelectors) {
    const el = document.querySelector(sel);
    const value = el ? (el.textContent || "").trim() : "";
    if (value) { name = value; break; }
  }
  return { links, text, name };
}
"""


@dataclass(frozen=True)
class StorefrontSnapshot:
    url: str
    status_code: int
    links: List[str] = field(default_factory=list)
    text: str = ""
    name: str = ""
    page_title: str | None = None
    error: str | None = None


class BrowserSession:
    """One headless Chromium with a single context, owned by one worker thread.

    The sync Playwright API is bound to the thread that started it, so every
    worker opens its own session instead of sharing tabs across threads.
    """

    def __init__(
        self,
        *,
        headless: bool = True,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout_ms: int = 60000,
    ) -> None:
        self.headless = headless
        self.user_agent = user_agent
        self.timeout_ms = timeout_ms
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None

    def start(self) -> "BrowserSession":
        self._playwright = sync_playwright().start()
        try:
            self._browser = self._playwright.chromium.launch(headless=self.headless, args=LAUNCH_ARGS)
            self._context = self._browser.new_context(user_agent=self.user_agent)
        except Exception:
            # __exit__ never runs when __enter__ fails; stop the driver here
            self.close()
            raise
        return self

    def new_page(self) -> Page:
        if self._context is None:
            self.start()
        page = self._context.new_page()
        page.set_default_navigation_timeout(self.timeout_ms)
        return page

    def close(self) -> None:
        for closer in (self._context, self._browser):
            if closer is None:
                continue
            try:
                closer.close()
            except PlaywrightError:
                pass
        if self._playwright is not None:
            self._playwright.stop()
        self._context = self._browser = self._playwright = None

    def __enter__(self) -> "BrowserSession":
        return self.start()

    def __exit__(self, *exc) -> None:
        self.close()


def goto(page: Page, url: str, timeout_ms: int = 60000) -> int:
    """Navigate and return the HTTP status (0 when no response was received)."""
    response = page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)
    return response.status if response else 0


def snapshot_storefront(
    page: Page,
    url: str,
    *,
    name_selectors: Sequence[str] = ("h1",),
    settle_ms: int = 500,
    timeout_ms: int = 60000,
    prepare: Optional[Callable[[Page], None]] = None,
) -> StorefrontSnapshot:
    """Open a storefront and read its anchors, text and shop name.

    Never raises for navigation or page errors; they come back in `error`.
    """
    try:
        status_code = goto(page, url, timeout_ms=timeout_ms)
        if settle_ms > 0:
            page.wait_for_timeout(settle_ms)
        if prepare is not None:
            prepare(page)
        data = page.evaluate(READ_STOREFRONT_JS, list(name_selectors)) or {}
        title = page.title()
        return StorefrontSnapshot(
            url=url,
            status_code=status_code,
            links=[str(h or "") for h in data.get("links") or []],
            text=str(data.get("text") or ""),
            name=str(data.get("name") or "").strip(),
            page_title=title,
        )
    except PlaywrightError as e:
        return StorefrontSnapshot(url=url, status_code=0, error=str(e))
