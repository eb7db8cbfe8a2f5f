# fetch_missing_descriptions.py
# -------------------------------------------------------------------
# Second pass for descriptions that were attempted but came back empty
# (key present, value ""). Entries that never had the key are left to
# enrich_entries.py. Works in place on bundledb.json and
# showcase-data.json after backing each one up.
# -------------------------------------------------------------------

import sys
import argparse
from typing import Callable, Dict, List

from bundle_config import DATASETS, describe, load_config
from db_processor import (
    EMPTY,
    FieldName,
    field_state,
    fill_field,
    make_backup,
    read_records,
    save_json,
)
from fetchers import bound_fetchers

# (label, type, field, input field) for bundledb.json
BUNDLE_TARGETS = [
    ("Blog posts (description)", "blog post", "description", "Link"),
    ("Blog posts (AuthorSiteDescription)", "blog post", "AuthorSiteDescription", "AuthorSite"),
    ("Sites (description)", "site", "description", "Link"),
]


def _empty_in(records: List[Dict], type_filter, field, input_field) -> List[Dict]:
    return [
        r
        for r in records
        if (type_filter is None or r.get("Type") == type_filter)
        and not r.get("Skip")
        and field_state(r, field) == EMPTY
        and r.get(input_field)
    ]


def process_bundledb(cfg, fetch: Callable) -> List[Dict]:
    print(f"\n📚 Processing {cfg.db_path}...\n")
    raw, db = read_records(cfg.db_path)
    print(f"Total entries: {len(db)}")
    make_backup(raw, cfg.db_path, cfg.db_backup_dir)
    print("✓ Backup created\n")

    results = []
    for label, type_filter, field, input_field in BUNDLE_TARGETS:
        items = _empty_in(db, type_filter, field, input_field)
        print(f"{label}: {len(items)} empty")
        counts = fill_field(items, field, fetch, FieldName(input_field)) if items else {"success": 0}
        results.append({"label": label, "total": len(items), "success": counts["success"]})

    save_json(cfg.db_path, db)
    print(f"\n✓ {cfg.db_path} updated")
    return results


def process_showcase(cfg, fetch: Callable) -> List[Dict]:
    print(f"\n🖼️  Processing {cfg.showcase_path}...\n")
    raw, showcase = read_records(cfg.showcase_path)
    print(f"Total entries: {len(showcase)}")
    make_backup(raw, cfg.showcase_path, cfg.showcase_backup_dir)
    print("✓ Backup created\n")

    items = _empty_in(showcase, None, "description", "link")
    print(f"Showcase entries: {len(items)} empty")
    counts = fill_field(items, "description", fetch, FieldName("link")) if items else {"success": 0}

    save_json(cfg.showcase_path, showcase)
    print(f"\n✓ {cfg.showcase_path} updated")
    return [{"label": "Showcase entries", "total": len(items), "success": counts["success"]}]


def print_summary(results: List[Dict]):
    print("\n=== Summary ===")
    for r in results:
        print(f"  {r['label']:38} {r['success']}/{r['total']}")
    total = sum(r["total"] for r in results)
    done = sum(r["success"] for r in results)
    print(f"\n  Total: {done}/{total} descriptions found and updated")


def run(cfg, skip_showcase: bool = False, fetch: Callable = None) -> List[Dict]:
    fetch = fetch or bound_fetchers(cfg)["description"]
    results = process_bundledb(cfg, fetch)
    if not skip_showcase:
        results += process_showcase(cfg, fetch)
    print_summary(results)
    return results


def main(argv=None) -> int:
    p = argparse.ArgumentParser(description="Refill descriptions that were fetched empty.")
    p.add_argument("--dataset", choices=DATASETS)
    p.add_argument("--skip-showcase", action="store_true")
    args = p.parse_args(argv)

    try:
        cfg = load_config(args.dataset)
        print(f"Using {describe(cfg)}")
        run(cfg, skip_showcase=args.skip_showcase)
    except (OSError, ValueError) as e:
        print(f"\n✗ Fatal error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
