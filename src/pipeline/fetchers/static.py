from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Sequence
from urllib.parse import urljoin, urlparse
from urllib import robotparser

import httpx
from selectolax.parser import HTMLParser


DEFAULT_UA = "ShopScout-StaticFetcher/0.1 (+https://example.com)"

_TEXT_MIMES = ("text/", "application/xml", "application/json", "application/rss+xml")


@dataclass(frozen=True)
class FetchResult:
    url: str
    status_code: int
    mime: str | None
    content_length: int
    html: str | None
    headers: dict[str, str]
    blocked_by_robots: bool = False
    text: str | None = None  # decoded body for any textual MIME (sitemaps, url lists)
    error: str | None = None


@dataclass(frozen=True)
class StaticPage:
    """Anchors and visible text read from plain HTML (no JavaScript)."""
    url: str
    links: List[str] = field(default_factory=list)
    text: str = ""
    title: str = ""
    name: str = ""


class StaticFetcher:
    """Plain HTTP fetcher with optional robots.txt enforcement.

    - Uses httpx for network IO
    - Parses robots.txt using urllib.robotparser
    - Does NOT execute JavaScript; storefronts that render client-side need
      the Playwright session instead
    """

    def __init__(
        self,
        *,
        timeout_s: float = 12.0,
        user_agent: str = DEFAULT_UA,
        respect_robots: bool = True,
    ) -> None:
        self.timeout_s = timeout_s
        self.user_agent = user_agent
        self.respect_robots = respect_robots
        self._client = httpx.Client(timeout=self.timeout_s, headers={"User-Agent": self.user_agent})
        # scheme://netloc -> parsed robots.txt (None = no usable robots, allow all)
        self._robots: dict[str, robotparser.RobotFileParser | None] = {}

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "StaticFetcher":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def _robots_for(self, origin: str) -> robotparser.RobotFileParser | None:
        if origin in self._robots:
            return self._robots[origin]
        rp = None
        try:
            resp = self._client.get(f"{origin}/robots.txt")
        except httpx.HTTPError:
            # unreachable robots.txt: allow
            resp = None
        if resp is not None and resp.status_code < 400:
            rp = robotparser.RobotFileParser()
            rp.parse(resp.text.splitlines())
        self._robots[origin] = rp
        return rp

    def _robots_allows(self, url: str) -> bool:
        if not self.respect_robots:
            return True
        parsed = urlparse(url)
        rp = self._robots_for(f"{parsed.scheme}://{parsed.netloc}")
        if rp is None:
            return True
        return rp.can_fetch(self.user_agent, url) and rp.can_fetch("*", url)

    def fetch(self, url: str) -> FetchResult:
        if not self._robots_allows(url):
            return FetchResult(
                url=url,
                status_code=0,
                mime=None,
                content_length=0,
                html=None,
                headers={},
                blocked_by_robots=True,
            )
        try:
            resp = self._client.get(url, follow_redirects=True)
        except httpx.HTTPError as e:
            return FetchResult(url=url, status_code=0, mime=None, content_length=0, html=None, headers={}, error=str(e))
        mime = resp.headers.get("Content-Type")
        mime_main = None
        if mime:
            mime_main = mime.split(";")[0].strip().lower()
        html_text = None
        if mime_main == "text/html":
            html_text = resp.text
        body_text = None
        if mime_main is None or mime_main.startswith(_TEXT_MIMES):
            body_text = resp.text
        return FetchResult(
            url=str(resp.request.url),
            status_code=resp.status_code,
            mime=mime_main,
            content_length=len(resp.content or b""),
            html=html_text,
            headers={k: v for k, v in resp.headers.items()},
            text=body_text,
        )


def read_static_page(html: str, base_url: str, name_selectors: Sequence[str] = ("h1",)) -> StaticPage:
    """Collect resolved anchor hrefs (document order), body text and the shop name from HTML."""
    parser = HTMLParser(html or "")
    links: List[str] = []
    for a in parser.css("a"):
        href = a.attrs.get("href") if a.attrs else None
        if not href:
            links.append("")
            continue
        href = href.strip()
        if href.lower().startswith(("mailto:", "tel:", "javascript:")):
            links.append(href)
            continue
        try:
            links.append(urljoin(base_url, href))
        except ValueError:
            links.append(href)
    for tag in parser.css("script, style, noscript"):
        tag.decompose()
    body = parser.body
    text = body.text(separator="\n", strip=True) if body is not None else ""
    title_node = parser.css_first("title")
    title = title_node.text(strip=True) if title_node is not None else ""
    name = ""
    for sel in name_selectors:
        node = parser.css_first(sel)
        if node is not None and node.text(strip=True):
            name = node.text(strip=True)
            break
    return StaticPage(url=base_url, links=links, text=text, title=title, name=name)
