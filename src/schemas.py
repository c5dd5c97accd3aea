"""
Marketplace Shop Contacts - Pydantic Data Schemas

Core data models for storefront contact records and per-site configuration.
ShopContact is the unit written to the JSON snapshot; SiteConfig describes one
marketplace and is loaded from the YAML sites file.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# Fields of ShopContact that hold a contact channel (everything except the origin link)
CONTACT_FIELDS = (
    "instagram",
    "facebook",
    "pinterest",
    "tiktok",
    "behance",
    "twitter",
    "youtube",
    "website",
    "email",
)

# Design Bundles family: storefront pages link to these sister sites everywhere
KNOWN_MIRROR_DOMAINS = (
    "fontbundles.net",
    "monogrammaker.com",
    "imagineanything.ai",
    "dtfprinter.com",
)


def normalize_domain(value: str) -> str:
    """Reduce 'https://www.Example.com/path' to 'example.com'."""
    d = (value or "").strip().lower()
    d = re.sub(r"^[a-z][a-z0-9+.-]*://", "", d)
    d = d.split("/", 1)[0]
    if d.startswith("www."):
        d = d[4:]
    return d


class ShopContact(BaseModel):
    """
    Public contact channels found on one storefront.

    Every channel is optional (None = not found). original_shop_link is the
    storefront URL that produced the record and is always present. Records are
    immutable once built.
    """
    model_config = ConfigDict(frozen=True)

    instagram: Optional[str] = None
    facebook: Optional[str] = None
    pinterest: Optional[str] = None
    tiktok: Optional[str] = None
    behance: Optional[str] = None
    twitter: Optional[str] = None
    youtube: Optional[str] = None
    website: Optional[str] = None
    email: Optional[str] = None
    original_shop_link: str = Field(
        ...,
        description="Storefront URL this record was extracted from"
    )

    def has_contacts(self) -> bool:
        """True when at least one contact channel was found."""
        return any(getattr(self, name) for name in CONTACT_FIELDS)

    def found_fields(self) -> List[str]:
        return [name for name in CONTACT_FIELDS if getattr(self, name)]


class NamedShopContact(ShopContact):
    """ShopContact carrying the shop display name (element of merged exports)."""
    name: str

    @classmethod
    def from_contact(cls, name: str, contact: ShopContact) -> "NamedShopContact":
        return cls(name=name, **contact.model_dump())

    def to_record(self) -> dict:
        """Dump with 'name' as the first key."""
        data = self.model_dump()
        return {"name": data.pop("name"), **data}


class SellersSourceType(str, Enum):
    """Formats of seller (storefront) list files."""
    JSON_URLSET = "json-urlset"
    XML_SITEMAP = "xml-sitemap"
    TXT_LIST = "txt-list"


class FetchMode(str, Enum):
    BROWSER = "browser"
    STATIC = "static"


class SellersSource(BaseModel):
    path: str = Field(..., description="Local file path or http(s) URL of the seller list")
    type: SellersSourceType

    @field_validator("path")
    @classmethod
    def validate_path(cls, v):
        if not v or not v.strip():
            raise ValueError("sellers_source.path cannot be empty")
        return v.strip()


class SiteConfig(BaseModel):
    """
    One marketplace definition.

    brand_domain drives both the same-domain check and the brand slug used to
    recognize the marketplace's own social accounts.
    """
    key: str
    base_url: str
    brand_domain: str = ""
    mirror_domains: List[str] = Field(default_factory=lambda: list(KNOWN_MIRROR_DOMAINS))

    sellers_source: Optional[SellersSource] = None
    root_categories: List[str] = Field(default_factory=list)
    max_category_pages: Optional[int] = None  # None = no limit
    category_range: Optional[str] = None  # "start-end", sharded across category workers
    category_workers: int = 1

    output_file: str = ""
    concurrency: int = 1
    keep_empty_shops: bool = False
    fetch_mode: FetchMode = FetchMode.BROWSER
    shop_delay_ms: int = 500
    worker_stagger_ms: int = 300

    @field_validator("key")
    @classmethod
    def validate_key(cls, v):
        if not v or not v.strip():
            raise ValueError("key cannot be empty")
        return v.strip().lower()

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v):
        v = (v or "").strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError("base_url must be a valid HTTP/HTTPS URL")
        return v.rstrip("/")

    @field_validator("mirror_domains")
    @classmethod
    def validate_mirror_domains(cls, v):
        return [d for d in (normalize_domain(x) for x in v) if d]

    @field_validator("max_category_pages")
    @classmethod
    def validate_max_pages(cls, v):
        if v is not None and v < 1:
            raise ValueError("max_category_pages must be >= 1 (omit for no limit)")
        return v

    @field_validator("concurrency", "category_workers")
    @classmethod
    def validate_workers(cls, v):
        if v < 1:
            raise ValueError("worker counts must be >= 1")
        return v

    @field_validator("shop_delay_ms", "worker_stagger_ms")
    @classmethod
    def validate_delays(cls, v):
        if v < 0:
            raise ValueError("delays cannot be negative")
        return v

    @model_validator(mode="after")
    def fill_defaults(self) -> "SiteConfig":
        # brand domain defaults to the base URL host
        self.brand_domain = normalize_domain(self.brand_domain or self.base_url)
        if not self.output_file:
            self.output_file = f"{self.key}-shops.json"
        return self
