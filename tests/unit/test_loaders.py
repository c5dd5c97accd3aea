from __future__ import annotations

import json

import httpx
import pytest

from src.errors import LoaderError
from src.pipeline.fetchers.static import StaticFetcher
from src.pipeline.loaders import (
    load_from_json_urlset,
    load_from_txt_list,
    load_from_xml_sitemap,
    load_shop_urls,
    parse_sellers,
)
from src.schemas import SellersSourceType, SiteConfig


SITEMAP = """<?xml version="1.0" encoding="UTF-8"?>
<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
  <url><loc>https://goimagine.com/index.php?dispatch=companies.view&amp;company_id=12</loc></url>
  <url><loc> https://goimagine.com/jane-shop </loc></url>
  <url><loc>https://cdn.goimagine.com/logo.png</loc></url>
  <url><loc></loc></url>
</urlset>
"""


def test_json_urlset():
    raw = json.dumps({"urlset": {"url": [{"loc": "https://a/1"}, {"loc": "  "}, {"loc": "https://a/2"}, {}]}})
    assert load_from_json_urlset(raw) == ["https://a/1", "https://a/2"]


def test_json_urlset_single_entry_and_missing_keys():
    assert load_from_json_urlset(json.dumps({"urlset": {"url": {"loc": "https://a/1"}}})) == ["https://a/1"]
    assert load_from_json_urlset(json.dumps({"other": 1})) == []


def test_json_urlset_invalid_json():
    with pytest.raises(LoaderError):
        load_from_json_urlset("{not json")


def test_xml_sitemap_filters_by_base_url_and_decodes_entities():
    urls = load_from_xml_sitemap(SITEMAP, "https://goimagine.com")
    assert urls == [
        "https://goimagine.com/index.php?dispatch=companies.view&company_id=12",
        "https://goimagine.com/jane-shop",
    ]


def test_txt_list_drops_blanks_and_comments():
    raw = "# sellers\nhttps://a/1\n\n   \n  https://a/2  \n#https://a/3\n"
    assert load_from_txt_list(raw) == ["https://a/1", "https://a/2"]


def test_parse_sellers_dispatch_and_unknown_type():
    assert parse_sellers("https://a/1\n", SellersSourceType.TXT_LIST, "https://a") == ["https://a/1"]
    with pytest.raises(LoaderError):
        parse_sellers("", "csv", "https://a")


def _config(path: str, type_: str) -> SiteConfig:
    return SiteConfig(key="goimagine", base_url="https://goimagine.com", sellers_source={"path": path, "type": type_})


def test_load_shop_urls_resolves_relative_to_base_dir(tmp_path):
    (tmp_path / "data").mkdir()
    (tmp_path / "data" / "goimagine.xml").write_text(SITEMAP, encoding="utf-8")
    urls = load_shop_urls(_config("data/goimagine.xml", "xml-sitemap"), base_dir=tmp_path)
    assert len(urls) == 2


def test_load_shop_urls_missing_file(tmp_path):
    with pytest.raises(LoaderError) as ei:
        load_shop_urls(_config("nope.txt", "txt-list"), base_dir=tmp_path)
    assert "nope.txt" in str(ei.value)


def test_load_shop_urls_without_source():
    cfg = SiteConfig(key="x", base_url="https://x.example")
    with pytest.raises(LoaderError):
        load_shop_urls(cfg)


class _MockTransport(httpx.BaseTransport):
    def __init__(self, routes: dict[str, tuple[int, dict[str, str], bytes]]):
        self.routes = routes

    def handle_request(self, request: httpx.Request) -> httpx.Response:  # type: ignore[override]
        status, headers, body = self.routes.get(str(request.url), (404, {"Content-Type": "text/plain"}, b"Not Found"))
        return httpx.Response(status, headers=headers, content=body, request=request)


def _patch_fetcher(monkeypatch, routes):
    real_init = StaticFetcher.__init__

    def _init(self, **kwargs):
        real_init(self, **kwargs)
        self._client = httpx.Client(transport=_MockTransport(routes))

    monkeypatch.setattr(StaticFetcher, "__init__", _init)


def test_remote_txt_list(monkeypatch):
    _patch_fetcher(monkeypatch, {
        "https://lists.example/sellers.txt": (200, {"Content-Type": "text/plain"}, b"https://goimagine.com/a\n# x\n"),
    })
    urls = load_shop_urls(_config("https://lists.example/sellers.txt", "txt-list"))
    assert urls == ["https://goimagine.com/a"]


def test_remote_source_http_error(monkeypatch):
    _patch_fetcher(monkeypatch, {})
    with pytest.raises(LoaderError, match="HTTP 404"):
        load_shop_urls(_config("https://lists.example/missing.txt", "txt-list"))
