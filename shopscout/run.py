"""
Marketplace Shop Contacts - CLI Runner

Usage:
  python -m shopscout.run \
    --config config/sites.example.yaml \
    --site designbundles \
    --out ./out

Walk root categories instead of the seller list:
  python -m shopscout.run -c config/sites.example.yaml --site creativefabrica --out ./out --source categories

Dry run (validate only):
  python -m shopscout.run -c config/sites.example.yaml --site goimagine --out ./out --dry-run

Exit codes:
  0 - success
  1 - config error (file missing, invalid YAML, unknown site, invalid values)
  2 - input error (seller list missing or unreadable)
  3 - processing error (runtime failures, export failures)
"""
from __future__ import annotations

import argparse
import os
import platform
import re
import sys
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

import psutil
import yaml
from pydantic import ValidationError

from src.errors import ConfigError, LoaderError
from src.ops_logger import OpsLogger, ops_json_enabled
from src.pipeline.crawl import ShopCrawler
from src.pipeline.export import ShopExporter
from src.pipeline.loaders import load_shop_urls
from src.pipeline.sites import SiteAdapter, adapter_for, parse_page_range
from src.schemas import FetchMode, SiteConfig


SOURCE_SELLERS = "sellers"
SOURCE_CATEGORIES = "categories"

_ENV_REF = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)(?::-([^}]*))?\}")


def expand_env(value: Any, path: Optional[Path] = None) -> Any:
    """Replace ${VAR} / ${VAR:-default} in every string of a decoded YAML tree."""
    if isinstance(value, dict):
        return {k: expand_env(v, path) for k, v in value.items()}
    if isinstance(value, list):
        return [expand_env(v, path) for v in value]
    if not isinstance(value, str):
        return value

    def _sub(m: re.Match) -> str:
        name, default = m.group(1), m.group(2)
        env = os.environ.get(name)
        if env:
            return env
        if default is not None:
            return default
        raise ConfigError(f"environment variable {name} is not set", path=str(path) if path else None)

    return _ENV_REF.sub(_sub, value)


def load_sites_config(config_path: Path) -> Dict[str, SiteConfig]:
    """Read the sites YAML into {key: SiteConfig}. Raises ConfigError."""
    if not config_path.exists() or not config_path.is_file():
        raise ConfigError(f"file not found: {config_path}", path=str(config_path))
    try:
        with config_path.open("r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML in {config_path}: {e}", path=str(config_path)) from e

    sites = raw.get("sites") if isinstance(raw, dict) else None
    if not isinstance(sites, dict) or not sites:
        raise ConfigError(f"{config_path}: expected a non-empty 'sites' mapping", path=str(config_path))

    out: Dict[str, SiteConfig] = {}
    for key, body in sites.items():
        if not isinstance(body, dict):
            raise ConfigError(f"{config_path}: site '{key}' must be a mapping", path=str(config_path))
        data = expand_env({**body, "key": body.get("key", key)}, config_path)
        try:
            site = SiteConfig.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"{config_path}: site '{key}': {e}", path=str(config_path)) from e
        out[site.key] = site
    return out


def apply_overrides(config: SiteConfig, args: argparse.Namespace) -> SiteConfig:
    overrides: Dict[str, Any] = {}
    if args.concurrency is not None:
        overrides["concurrency"] = args.concurrency
    if args.keep_empty is not None:
        overrides["keep_empty_shops"] = args.keep_empty
    if args.fetch_mode is not None:
        overrides["fetch_mode"] = args.fetch_mode
    if not overrides:
        return config
    try:
        return SiteConfig.model_validate({**config.model_dump(), **overrides})
    except ValidationError as e:
        raise ConfigError(f"invalid override for site '{config.key}': {e}") from e


def resolve_source(config: SiteConfig, adapter: SiteAdapter, requested: Optional[str]) -> str:
    source = requested or (SOURCE_SELLERS if config.sellers_source else SOURCE_CATEGORIES)
    if source == SOURCE_SELLERS:
        if config.sellers_source is None:
            raise ConfigError(f"site '{config.key}' has no sellers_source")
        return source
    if not config.root_categories:
        raise ConfigError(f"site '{config.key}' has no root_categories to walk")
    if config.fetch_mode == FetchMode.STATIC:
        raise ConfigError("category walking needs --fetch-mode browser")
    if type(adapter).read_listing is SiteAdapter.read_listing:
        raise ConfigError(f"no category walker for site '{config.key}'")
    if config.category_range:
        try:
            parse_page_range(config.category_range)
        except ValueError as e:
            raise ConfigError(str(e)) from e
    return source


def ensure_out_dir(out_dir: Path) -> None:
    try:
        out_dir.mkdir(parents=True, exist_ok=True)
        test_file = out_dir / ".write_test"
        test_file.write_text("ok", encoding="utf-8")
        test_file.unlink(missing_ok=True)
    except OSError as e:
        print(f"Output error: cannot write to {out_dir}: {e}", file=sys.stderr)
        sys.exit(3)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="shopscout.run", description="Collect public seller contacts from a marketplace")
    parser.add_argument("--config", "-c", required=True, help="Path to sites YAML file")
    parser.add_argument("--site", "-s", required=True, help="Site key from the config (e.g. designbundles)")
    parser.add_argument("--out", "-o", required=True, help="Output directory")
    parser.add_argument("--source", choices=[SOURCE_SELLERS, SOURCE_CATEGORIES], default=None,
                        help="Where storefront URLs come from (default: sellers when configured, else categories)")
    parser.add_argument("--concurrency", type=int, default=None, help="Storefront workers (overrides config)")
    keep = parser.add_mutually_exclusive_group()
    keep.add_argument("--keep-empty", dest="keep_empty", action="store_true", default=None,
                      help="Keep shops with no contacts (record holds only original_shop_link)")
    keep.add_argument("--drop-empty", dest="keep_empty", action="store_false",
                      help="Drop shops with no contacts")
    parser.add_argument("--fetch-mode", choices=[m.value for m in FetchMode], default=None,
                        help="browser (Playwright) or static (httpx, no JavaScript)")
    parser.add_argument("--limit", type=int, default=None, help="Process only the first N storefronts")
    parser.add_argument("--csv", action="store_true", help="Also write a CSV next to the JSON")
    parser.add_argument("--dry-run", action="store_true", help="Validate config and inputs and exit")
    parser.add_argument("--ignore-robots", action="store_true", help="Static mode: do not consult robots.txt")
    parser.add_argument("--headful", action="store_true", help="Show the browser window")
    parser.add_argument("--ops-log", default=None, help="Path to ops JSONL log file (default: <out>/ops.log)")
    parser.add_argument("--ops-stdout", action="store_true", help="Also mirror ops JSON to stdout")
    return parser


def _summary_record(site: str, stats: Dict[str, int], wall_s: float) -> Dict[str, Any]:
    cpu_pct = None
    rss_mb = None
    try:
        p = psutil.Process()
        with p.oneshot():
            rss_mb = round(p.memory_info().rss / (1024 * 1024), 1)
            cpu_pct = round(p.cpu_percent(interval=None), 1)
    except psutil.Error:
        pass
    return {
        "summary": True,
        "site": site,
        "counts": stats,
        "durations": {"wall_s": round(wall_s, 2)},
        "resources": {"cpu_pct": cpu_pct, "rss_mb": rss_mb},
        "python": f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}",
        "host": {"platform": platform.system(), "release": platform.release(), "machine": platform.machine()},
    }


def main(argv: list[str] | None = None) -> int:
    if sys.version_info < (3, 11):
        cur = f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}"
        print(f"Python 3.11+ required. Current: {cur}.", file=sys.stderr)
        return 1

    args = build_parser().parse_args(argv)

    config_path = Path(args.config)
    out_dir = Path(args.out)

    try:
        sites = load_sites_config(config_path)
        if args.site.lower() not in sites:
            raise ConfigError(f"unknown site '{args.site}'. Configured: {', '.join(sorted(sites))}")
        config = apply_overrides(sites[args.site.lower()], args)
        adapter = adapter_for(config)
        source = resolve_source(config, adapter, args.source)
    except ConfigError as e:
        print(f"Config error: {e}", file=sys.stderr)
        return 1

    urls: List[str] = []
    if source == SOURCE_SELLERS:
        try:
            urls = load_shop_urls(config, base_dir=config_path.parent)
        except LoaderError as e:
            print(f"Input error: {e}", file=sys.stderr)
            return 2
        if args.limit is not None:
            urls = urls[: max(0, args.limit)]

    ensure_out_dir(out_dir)

    if args.dry_run:
        print("✅ Dry-run validation passed")
        print(f" - Config: {config_path}")
        print(f" - Site: {config.key} ({config.base_url}, brand domain {config.brand_domain})")
        print(f" - Source: {source}")
        if source == SOURCE_SELLERS:
            print(f" - Storefronts to process: {len(urls)}")
        else:
            print(f" - Root categories: {len(config.root_categories)}")
        print(f" - Output: {out_dir / config.output_file}")
        return 0

    ops_logger = None
    if args.ops_log or args.ops_stdout or ops_json_enabled():
        ops_log_path = Path(args.ops_log) if args.ops_log else (out_dir / "ops.log")
        ops_logger = OpsLogger(ops_log_path, also_stdout=args.ops_stdout)

    crawler = ShopCrawler(
        adapter,
        ops_logger=ops_logger,
        headless=not args.headful,
        respect_robots=not args.ignore_robots,
    )

    print(f"==== {config.key}: {source} -> {out_dir / config.output_file} ====")
    print(f"Python: {sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}")
    proc_start = time.perf_counter()
    try:
        if source == SOURCE_CATEGORIES:
            urls = crawler.collect_category_shops()
            if args.limit is not None:
                urls = urls[: max(0, args.limit)]
        records = crawler.scrape_shops(urls)
    except Exception as e:
        print(f"Processing error: {type(e).__name__}: {e}", file=sys.stderr)
        return 3

    if not records:
        print(f"[{config.key}] No shops kept; writing an empty snapshot.", file=sys.stderr)

    try:
        exporter = ShopExporter(output_dir=out_dir)
        exporter.to_json(records, config.output_file)
        if args.csv:
            exporter.to_csv(records, Path(config.output_file).with_suffix(".csv").name)
    except OSError as e:
        print(f"Export error: {e}", file=sys.stderr)
        return 3

    wall_s = max(0.0, time.perf_counter() - proc_start)
    stats = crawler.stats.as_dict()
    if ops_logger:
        ops_logger.emit(_summary_record(config.key, stats, wall_s))

    print("🏁 Done.")
    print(f"   Storefronts processed: {stats['scraped']}")
    print(f"   Shops written: {len(records)} (empty skipped: {stats['skipped_empty']}, errors: {stats['errors']})")
    print(f"   Wall time: {wall_s:.1f}s")
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
