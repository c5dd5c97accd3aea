"""
Merge shop snapshots from several runs into one list.

Usage:
  python -m shopscout.merge --input ./out ./old-runs/designbundles-shops.json --out merged.json

Every input is a JSON object {"Shop Name": {...record...}} as written by
shopscout.run. Directories contribute all their *.json files (sorted by
name). Records for the same shop are combined field by field; by default
the first non-empty value seen wins, --prefer-latest lets later files win.

Exit codes:
  0 - success
  2 - no JSON inputs found
  3 - output could not be written
"""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Dict, List

from pydantic import ValidationError

from src.pipeline.export import ShopExporter
from src.pipeline.merge import PREFER_EXISTING, PREFER_INCOMING, merge_mappings, parse_mapping, to_named_list
from src.schemas import ShopContact


def collect_inputs(inputs: List[str]) -> List[Path]:
    files: List[Path] = []
    for raw in inputs:
        p = Path(raw)
        if p.is_dir():
            files.extend(sorted(x for x in p.iterdir() if x.is_file() and x.suffix.lower() == ".json"))
        elif p.is_file() and p.suffix.lower() == ".json":
            files.append(p)
        else:
            print(f"⚠️  Not a JSON file or directory, skipped: {p}", file=sys.stderr)
    seen = set()
    unique: List[Path] = []
    for f in files:
        key = f.resolve()
        if key not in seen:
            seen.add(key)
            unique.append(f)
    return unique


def read_snapshot(path: Path) -> Dict[str, ShopContact] | None:
    """Parsed mapping, or None (with a message) when the file cannot be used."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError) as e:
        print(f"⚠️  Cannot read {path}: {e}", file=sys.stderr)
        return None
    except json.JSONDecodeError as e:
        print(f"⚠️  Invalid JSON in {path}: {e}", file=sys.stderr)
        return None
    try:
        return parse_mapping(data, source=str(path))
    except (ValueError, ValidationError) as e:
        print(f"⚠️  Skipped {path}: {e}", file=sys.stderr)
        return None


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="shopscout.merge", description="Merge shop contact snapshots")
    parser.add_argument("--input", "-i", nargs="+", required=True, help="JSON files and/or directories of JSON files")
    parser.add_argument("--out", "-o", required=True, help="Merged JSON output file")
    parser.add_argument("--prefer-latest", action="store_true",
                        help="When two runs disagree, keep the value from the later file")
    args = parser.parse_args(argv)

    out_path = Path(args.out)
    files = [f for f in collect_inputs(args.input) if f.resolve() != out_path.resolve()]
    if not files:
        print("Input error: no JSON files found", file=sys.stderr)
        return 2

    mappings = []
    for path in files:
        snapshot = read_snapshot(path)
        if snapshot is None:
            continue
        print(f"📄 {path}: {len(snapshot)} shops")
        mappings.append(snapshot)

    prefer = PREFER_INCOMING if args.prefer_latest else PREFER_EXISTING
    merged = merge_mappings(mappings, prefer=prefer)

    try:
        exporter = ShopExporter(output_dir=out_path.parent)
        exporter.to_merged_json(to_named_list(merged), out_path.name)
    except OSError as e:
        print(f"Export error: {e}", file=sys.stderr)
        return 3

    print(f"🏁 Merged {len(files)} file(s), {len(mappings)} usable, into {len(merged)} shops")
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
