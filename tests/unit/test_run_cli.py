from __future__ import annotations

import json
from pathlib import Path

import pytest

from shopscout import run as run_cli
from src.errors import ConfigError
from src.schemas import ShopContact


CONFIG = """
sites:
  goimagine:
    base_url: ${SHOPSCOUT_TEST_GI_URL:-https://goimagine.com}
    sellers_source:
      path: sellers.txt
      type: txt-list
    keep_empty_shops: true
    output_file: goimagine-shops.json
  creativefabrica:
    base_url: https://www.creativefabrica.com
    root_categories:
      - https://www.creativefabrica.com/fonts/
    category_range: "1-4"
"""


@pytest.fixture()
def config_dir(tmp_path: Path) -> Path:
    (tmp_path / "sites.yaml").write_text(CONFIG, encoding="utf-8")
    (tmp_path / "sellers.txt").write_text(
        "# goimagine sellers\nhttps://goimagine.com/a\nhttps://goimagine.com/b\n\nhttps://goimagine.com/c\n",
        encoding="utf-8",
    )
    return tmp_path


def test_expand_env(monkeypatch):
    monkeypatch.setenv("SHOPSCOUT_TEST_HOST", "example.org")
    monkeypatch.delenv("SHOPSCOUT_TEST_MISSING", raising=False)
    data = {"a": "https://${SHOPSCOUT_TEST_HOST}/x", "b": ["${SHOPSCOUT_TEST_MISSING:-fallback}"], "c": 3}
    assert run_cli.expand_env(data) == {"a": "https://example.org/x", "b": ["fallback"], "c": 3}
    with pytest.raises(ConfigError):
        run_cli.expand_env("${SHOPSCOUT_TEST_MISSING}")


def test_load_sites_config(config_dir, monkeypatch):
    monkeypatch.setenv("SHOPSCOUT_TEST_GI_URL", "https://staging.goimagine.com")
    sites = run_cli.load_sites_config(config_dir / "sites.yaml")
    assert set(sites) == {"goimagine", "creativefabrica"}
    assert sites["goimagine"].base_url == "https://staging.goimagine.com"
    assert sites["goimagine"].brand_domain == "staging.goimagine.com"
    assert sites["creativefabrica"].output_file == "creativefabrica-shops.json"


@pytest.mark.parametrize(
    "content",
    [
        "sites: [unclosed",
        "other: 1\n",
        "sites:\n  x:\n    base_url: ftp://nope\n",
        "sites:\n  x: just-a-string\n",
    ],
)
def test_load_sites_config_errors(tmp_path, content):
    path = tmp_path / "bad.yaml"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(ConfigError):
        run_cli.load_sites_config(path)


def test_exit_1_when_config_missing(tmp_path, capsys):
    code = run_cli.main(["--config", str(tmp_path / "nope.yaml"), "--site", "goimagine", "--out", str(tmp_path / "out")])
    assert code == 1
    assert "Config error" in capsys.readouterr().err


def test_exit_1_for_unknown_site(config_dir):
    code = run_cli.main(["-c", str(config_dir / "sites.yaml"), "--site", "etsy", "--out", str(config_dir / "out")])
    assert code == 1


def test_exit_1_for_invalid_override(config_dir):
    code = run_cli.main([
        "-c", str(config_dir / "sites.yaml"), "--site", "goimagine", "--out", str(config_dir / "out"),
        "--concurrency", "0",
    ])
    assert code == 1


def test_exit_1_when_categories_requested_in_static_mode(config_dir):
    code = run_cli.main([
        "-c", str(config_dir / "sites.yaml"), "--site", "creativefabrica", "--out", str(config_dir / "out"),
        "--fetch-mode", "static",
    ])
    assert code == 1


def test_exit_2_when_seller_list_missing(config_dir, capsys):
    (config_dir / "sellers.txt").unlink()
    code = run_cli.main(["-c", str(config_dir / "sites.yaml"), "--site", "goimagine", "--out", str(config_dir / "out")])
    assert code == 2
    assert "Input error" in capsys.readouterr().err


def test_dry_run(config_dir, capsys):
    code = run_cli.main([
        "-c", str(config_dir / "sites.yaml"), "--site", "goimagine", "--out", str(config_dir / "out"),
        "--dry-run", "--limit", "2",
    ])
    out = capsys.readouterr().out
    assert code == 0
    assert "Dry-run validation passed" in out
    assert "Storefronts to process: 2" in out
    assert not (config_dir / "out" / "goimagine-shops.json").exists()


def test_dry_run_categories(config_dir, capsys):
    code = run_cli.main(["-c", str(config_dir / "sites.yaml"), "--site", "creativefabrica", "--out", str(config_dir / "out"), "--dry-run"])
    assert code == 0
    assert "Source: categories" in capsys.readouterr().out


class _FakeCrawler:
    instances: list = []

    def __init__(self, adapter, **kwargs):
        self.adapter = adapter
        self.kwargs = kwargs
        self.urls = None
        _FakeCrawler.instances.append(self)

        class _Stats:
            def as_dict(self_inner):
                return {"queued": 3, "scraped": 3, "kept": 2, "skipped_empty": 0, "errors": 1}

        self.stats = _Stats()

    def scrape_shops(self, urls):
        self.urls = list(urls)
        return {
            "Shop A": ShopContact(original_shop_link="https://goimagine.com/a", email="a@example.com"),
            "Shöp B": ShopContact(original_shop_link="https://goimagine.com/b"),
        }


def test_full_run_writes_json_csv_and_ops(config_dir, monkeypatch):
    _FakeCrawler.instances = []
    monkeypatch.setattr(run_cli, "ShopCrawler", _FakeCrawler)
    out = config_dir / "out"
    code = run_cli.main([
        "-c", str(config_dir / "sites.yaml"), "--site", "goimagine", "--out", str(out),
        "--csv", "--ops-log", str(out / "ops.jsonl"), "--drop-empty", "--limit", "2",
    ])
    assert code == 0

    crawler = _FakeCrawler.instances[0]
    assert crawler.urls == ["https://goimagine.com/a", "https://goimagine.com/b"]
    assert crawler.adapter.config.keep_empty_shops is False
    assert crawler.kwargs["headless"] is True

    raw = (out / "goimagine-shops.json").read_text(encoding="utf-8")
    assert "Shöp B" in raw
    data = json.loads(raw)
    assert list(data) == ["Shop A", "Shöp B"]
    assert data["Shop A"]["email"] == "a@example.com"
    assert data["Shöp B"]["instagram"] is None

    csv_text = (out / "goimagine-shops.csv").read_text(encoding="utf-8")
    assert csv_text.splitlines()[0].startswith("name,instagram,")

    summary = json.loads((out / "ops.jsonl").read_text(encoding="utf-8").splitlines()[-1])
    assert summary["summary"] is True
    assert summary["counts"]["errors"] == 1


def test_processing_error_exit_3(config_dir, monkeypatch):
    class _Broken(_FakeCrawler):
        def scrape_shops(self, urls):
            raise RuntimeError("browser failed to launch")

    monkeypatch.setattr(run_cli, "ShopCrawler", _Broken)
    code = run_cli.main(["-c", str(config_dir / "sites.yaml"), "--site", "goimagine", "--out", str(config_dir / "out")])
    assert code == 3
