"""
Export Pipeline - JSON/CSV snapshots of shop contacts

A crawl run produces a mapping {shop name: ShopContact}. It is written as a
pretty-printed JSON object (UTF-8, non-ASCII kept as is) and, on request, as a
flat CSV with one row per shop. Merged multi-run results are written as a JSON
array of named records.
"""

import csv
import json
from pathlib import Path
from typing import List, Mapping, Optional, Union

from ..schemas import CONTACT_FIELDS, NamedShopContact, ShopContact


CSV_COLUMNS = ["name", *CONTACT_FIELDS, "original_shop_link"]


def mapping_to_json_obj(records: Mapping[str, ShopContact]) -> dict:
    return {name: record.model_dump() for name, record in records.items()}


class ShopExporter:
    """
    Writes crawl results under one output directory.
    """

    def __init__(self, output_dir: Union[str, Path] = "output"):
        """
        Initialize Shop Exporter.

        Args:
            output_dir: Directory for output files (created if doesn't exist)
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def _target(self, filename: str) -> Path:
        path = Path(filename)
        return path if path.is_absolute() else self.output_dir / path

    def to_json(self, records: Mapping[str, ShopContact], filename: str) -> Path:
        """
        Export the {shop name: record} mapping as a JSON object.

        Args:
            records: Records keyed by shop display name (or URL)
            filename: Output filename, relative to output_dir unless absolute

        Returns:
            Path to created JSON file
        """
        json_path = self._target(filename)
        json_path.parent.mkdir(parents=True, exist_ok=True)
        with open(json_path, "w", encoding="utf-8") as f:
            json.dump(mapping_to_json_obj(records), f, indent=2, ensure_ascii=False)
        print(f"💾 JSON exported: {json_path} ({len(records)} shops)")
        return json_path

    def to_csv(self, records: Mapping[str, ShopContact], filename: Optional[str] = None) -> Path:
        """Flat CSV twin of to_json: one row per shop, name first, empty cells for missing fields."""
        if filename is None:
            filename = "shops.csv"
        csv_path = self._target(filename)
        csv_path.parent.mkdir(parents=True, exist_ok=True)
        with open(csv_path, "w", newline="", encoding="utf-8") as csvfile:
            writer = csv.DictWriter(csvfile, fieldnames=CSV_COLUMNS)
            writer.writeheader()
            for name, record in records.items():
                row = {k: ("" if v is None else v) for k, v in record.model_dump().items()}
                row["name"] = name
                writer.writerow(row)
        print(f"💾 CSV exported: {csv_path} ({len(records)} shops)")
        return csv_path

    def to_merged_json(self, records: List[NamedShopContact], filename: str) -> Path:
        json_path = self._target(filename)
        json_path.parent.mkdir(parents=True, exist_ok=True)
        with open(json_path, "w", encoding="utf-8") as f:
            json.dump([r.to_record() for r in records], f, indent=2, ensure_ascii=False)
        print(f"💾 Merged JSON exported: {json_path} ({len(records)} shops)")
        return json_path
