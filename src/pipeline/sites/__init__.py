from __future__ import annotations

from typing import Dict, Type

from src.schemas import SiteConfig
from .base import ShopResult, SiteAdapter, parse_page_range, split_range
from .creativefabrica import CreativeFabricaAdapter
from .creativemarket import CreativeMarketAdapter
from .designbundles import DesignBundlesAdapter
from .goimagine import GoImagineAdapter


ADAPTERS: Dict[str, Type[SiteAdapter]] = {
    DesignBundlesAdapter.key: DesignBundlesAdapter,
    CreativeMarketAdapter.key: CreativeMarketAdapter,
    GoImagineAdapter.key: GoImagineAdapter,
    CreativeFabricaAdapter.key: CreativeFabricaAdapter,
}


def adapter_for(config: SiteConfig) -> SiteAdapter:
    """Adapter registered under config.key; unknown keys get the generic one."""
    cls = ADAPTERS.get(config.key, SiteAdapter)
    return cls(config)


__all__ = [
    "ADAPTERS",
    "ShopResult",
    "SiteAdapter",
    "adapter_for",
    "parse_page_range",
    "split_range",
]
