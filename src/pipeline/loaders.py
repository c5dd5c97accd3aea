"""
Seller list loaders.

A site's storefront URLs can come from a pre-fetched list instead of a
category crawl: a JSON urlset export, an XML sitemap, or a plain text list.
The source may be a local path or an http(s) URL.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import List

from selectolax.parser import HTMLParser

from src.errors import LoaderError
from src.schemas import SellersSource, SellersSourceType, SiteConfig
from .fetchers.static import StaticFetcher


def load_from_json_urlset(raw: str) -> List[str]:
    """{"urlset": {"url": [{"loc": "..."}, ...]}} -> locs, blanks dropped."""
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise LoaderError(f"invalid JSON urlset: {e}") from e
    urlset = data.get("urlset") if isinstance(data, dict) else None
    entries = urlset.get("url") if isinstance(urlset, dict) else None
    if isinstance(entries, dict):
        # single-entry exports collapse the list
        entries = [entries]
    if not isinstance(entries, list):
        return []
    urls: List[str] = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        loc = str(entry.get("loc") or "").strip()
        if loc:
            urls.append(loc)
    return urls


def load_from_txt_list(raw: str) -> List[str]:
    urls: List[str] = []
    for line in raw.splitlines():
        s = line.strip()
        if not s or s.startswith("#"):
            continue
        urls.append(s)
    return urls


def load_from_xml_sitemap(raw: str, base_url: str) -> List[str]:
    """<loc> values under the site's base URL. Entities are decoded by the parser."""
    parser = HTMLParser(raw)
    urls: List[str] = []
    for node in parser.css("loc"):
        loc = (node.text() or "").strip()
        if not loc:
            continue
        if loc.startswith(base_url):
            urls.append(loc)
    return urls


def read_source_text(source: SellersSource, *, base_dir: Path | None = None, timeout_s: float = 30.0) -> str:
    location = source.path
    if location.startswith(("http://", "https://")):
        with StaticFetcher(timeout_s=timeout_s, respect_robots=False) as fetcher:
            res = fetcher.fetch(location)
        if res.error or res.status_code >= 400 or res.text is None:
            reason = res.error or f"HTTP {res.status_code}"
            raise LoaderError(f"cannot download seller list {location}: {reason}", source=location)
        return res.text

    path = Path(location)
    if not path.is_absolute() and base_dir is not None:
        path = base_dir / path
    if not path.exists() or not path.is_file():
        raise LoaderError(f"seller list not found: {path}", source=str(path))
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise LoaderError(f"cannot read seller list {path}: {e}", source=str(path)) from e


def parse_sellers(raw: str, source_type: SellersSourceType, base_url: str) -> List[str]:
    if source_type == SellersSourceType.JSON_URLSET:
        return load_from_json_urlset(raw)
    if source_type == SellersSourceType.XML_SITEMAP:
        return load_from_xml_sitemap(raw, base_url)
    if source_type == SellersSourceType.TXT_LIST:
        return load_from_txt_list(raw)
    raise LoaderError(f"unknown sellers source type: {source_type!r}")


def load_shop_urls(config: SiteConfig, *, base_dir: Path | None = None) -> List[str]:
    """Storefront URLs listed by the site's sellers_source."""
    if config.sellers_source is None:
        raise LoaderError(f"site '{config.key}' has no sellers_source configured")
    raw = read_source_text(config.sellers_source, base_dir=base_dir)
    return parse_sellers(raw, config.sellers_source.type, config.base_url)
