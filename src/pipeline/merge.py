"""
Multi-run merge of shop contact snapshots.

Each run writes a mapping {shop name: ShopContact}. Runs over overlapping
seller lists (or re-runs after timeouts) produce partial records for the same
shop; merging fills the gaps field by field. Everything here is pure; file
reading lives in shopscout.merge.
"""
from __future__ import annotations

from typing import Dict, Iterable, List, Mapping, Optional

from src.schemas import CONTACT_FIELDS, NamedShopContact, ShopContact


PREFER_EXISTING = "existing"
PREFER_INCOMING = "incoming"


def _is_empty(value: Optional[str]) -> bool:
    return value is None or value.strip() == ""


def merge_records(existing: ShopContact, incoming: ShopContact, *, prefer: str = PREFER_EXISTING) -> ShopContact:
    """Combine two records for the same shop.

    Empty fields are filled from the other record. When both have a value,
    `prefer` decides: "existing" keeps the first-seen value, "incoming" lets the
    newer record win. original_shop_link keeps the first non-empty value.
    """
    if prefer not in (PREFER_EXISTING, PREFER_INCOMING):
        raise ValueError(f"prefer must be '{PREFER_EXISTING}' or '{PREFER_INCOMING}', got {prefer!r}")

    primary, fallback = (existing, incoming) if prefer == PREFER_EXISTING else (incoming, existing)
    merged: Dict[str, Optional[str]] = {}
    for name in CONTACT_FIELDS:
        value = getattr(primary, name)
        if _is_empty(value):
            value = getattr(fallback, name)
        merged[name] = None if _is_empty(value) else value

    origin = existing.original_shop_link
    if _is_empty(origin):
        origin = incoming.original_shop_link
    return ShopContact(original_shop_link=origin, **merged)


def normalize_record(record: ShopContact) -> ShopContact:
    """Blank contact fields become None, as they do in merged records."""
    blanks = {}
    for name in CONTACT_FIELDS:
        value = getattr(record, name)
        if value is not None and _is_empty(value):
            blanks[name] = None
    return record.model_copy(update=blanks) if blanks else record


def merge_mappings(
    mappings: Iterable[Mapping[str, ShopContact]],
    *,
    prefer: str = PREFER_EXISTING,
) -> Dict[str, ShopContact]:
    """Fold an ordered sequence of {name: record} mappings into one.

    Insertion order follows the first appearance of each shop name.
    """
    result: Dict[str, ShopContact] = {}
    for mapping in mappings:
        for name, record in mapping.items():
            prev = result.get(name)
            result[name] = normalize_record(record) if prev is None else merge_records(prev, record, prefer=prefer)
    return result


def to_named_list(merged: Mapping[str, ShopContact]) -> List[NamedShopContact]:
    return [NamedShopContact.from_contact(name, record) for name, record in merged.items()]


def parse_mapping(data: object, source: str = "<input>") -> Dict[str, ShopContact]:
    """Validate a decoded JSON snapshot into {name: ShopContact}.

    Raises ValueError when the payload is not an object of records.
    """
    if not isinstance(data, dict):
        raise ValueError(f'{source} does not contain an object of the form {{"Shop Name": {{...}}}}')
    out: Dict[str, ShopContact] = {}
    for name, raw in data.items():
        if not isinstance(raw, dict):
            raise ValueError(f"{source}: entry {name!r} is not an object")
        payload = dict(raw)
        # older snapshots predate some fields; extra keys are ignored
        payload.setdefault("original_shop_link", "")
        payload.pop("name", None)
        out[str(name)] = ShopContact.model_validate(payload)
    return out
