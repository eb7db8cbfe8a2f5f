# db_processor.py
# -------------------------------------------------------------------
# Generic batch runner: apply one fetcher to every eligible record of a
# type, back up the source first, write the result to a separate file.
# -------------------------------------------------------------------

import os
import json
import datetime as dt
from typing import Any, Callable, Dict, List, NamedTuple

RUNS_FEED = "runs.json"
RUNS_KEPT = 200

# field states: key absent / present but empty / has a value
UNSET = "unset"
EMPTY = "empty"
VALUE = "value"


# ---------- input derivation ----------
class FieldName(NamedTuple):
    name: str


class Derive(NamedTuple):
    fn: Callable[[Dict], Any]


def resolve_input(source, record: Dict):
    """Fetcher input for a record: a value, or a list spread as arguments."""
    if isinstance(source, FieldName):
        return record.get(source.name)
    if isinstance(source, Derive):
        return source.fn(record)
    raise TypeError(f"input must be FieldName or Derive, got {type(source).__name__}")


def _call(fetch, value):
    if isinstance(value, (list, tuple)):
        return fetch(*value)
    return fetch(value)


def field_state(record: Dict, field: str) -> str:
    if field not in record:
        return UNSET
    v = record[field]
    if v is None or v is False or v == "" or v == {} or v == []:
        return EMPTY
    return VALUE


# ---------- light helpers ----------
def _now_display() -> str:
    return dt.datetime.now().strftime("%Y-%m-%d %H:%M:%S")


def _now_iso() -> str:
    return dt.datetime.utcnow().replace(microsecond=0).isoformat() + "Z"


def backup_timestamp(now: dt.datetime = None) -> str:
    return (now or dt.datetime.now()).strftime("%Y-%m-%d--%H%M%S")


def load_json(path: str, default):
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError):
        return default


def save_json(path: str, data):
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)


def read_records(path: str):
    """(raw bytes, parsed list). Errors propagate: a bad source is fatal."""
    with open(path, "rb") as f:
        raw = f.read()
    records = json.loads(raw.decode("utf-8"))
    if not isinstance(records, list):
        raise ValueError(f"{path} does not hold a JSON array")
    return raw, records


def make_backup(raw: bytes, source_path: str, backup_dir: str) -> str:
    """Byte copy of the source as <basename>-<YYYY-MM-DD--HHMMSS>.json."""
    os.makedirs(backup_dir, exist_ok=True)
    base = os.path.splitext(os.path.basename(source_path))[0]
    backup_path = os.path.join(backup_dir, f"{base}-{backup_timestamp()}.json")
    with open(backup_path, "wb") as f:
        f.write(raw)
    return backup_path


def backup_file(source_path: str, backup_dir: str) -> str:
    with open(source_path, "rb") as f:
        raw = f.read()
    return make_backup(raw, source_path, backup_dir)


# ---------- runs feed ----------
def append_run(log_dir: str, summary: Dict):
    path = os.path.join(log_dir, RUNS_FEED)
    feed = load_json(path, [])
    if not isinstance(feed, list):
        feed = []
    feed.append(summary)
    if len(feed) > RUNS_KEPT:
        feed = feed[-RUNS_KEPT:]
    try:
        os.makedirs(log_dir, exist_ok=True)
        save_json(path, feed)
    except OSError as e:
        print(f"[warn] could not update {path}: {e}")


def load_runs(log_dir: str) -> List[Dict]:
    runs = load_json(os.path.join(log_dir, RUNS_FEED), [])
    if not isinstance(runs, list):
        return []
    runs.sort(key=lambda x: x.get("ts", ""), reverse=True)
    return runs


# ---------- per-record loop ----------
def _preview(result) -> str:
    text = result if isinstance(result, str) else json.dumps(result)
    return text if len(text) <= 50 else text[:50] + "..."


def _label(value) -> str:
    if isinstance(value, (list, tuple)):
        return str(value[0]) if value else ""
    return str(value)


def fill_field(items: List[Dict], field: str, fetch: Callable, input_of) -> Dict[str, int]:
    """
    Fetch and set `field` on each item in order. A truthy result is assigned,
    a falsy one skipped, an exception counted as failed.
    """
    counts = {"processed": len(items), "success": 0, "skipped": 0, "failed": 0}
    for i, item in enumerate(items, 1):
        progress = f"[{i}/{len(items)}]"
        value = item.get("Link", "")
        try:
            value = resolve_input(input_of, item)
            result = _call(fetch, value)
        except Exception as e:
            counts["failed"] += 1
            print(f"{progress} {_label(value)} ... ✗ Error: {e}")
            continue
        if result:
            item[field] = result
            counts["success"] += 1
            print(f"{progress} {_label(value)} ... ✓ {_preview(result)}")
        else:
            counts["skipped"] += 1
            print(f"{progress} {_label(value)} ... ○ no {field} found")
    return counts


def is_eligible(record: Dict, type_filter: str, field: str, input_of, skip_existing=True) -> bool:
    if record.get("Skip"):
        return False
    if record.get("Type") != type_filter:
        return False
    if skip_existing and field_state(record, field) == VALUE:
        return False
    value = resolve_input(input_of, record)
    if isinstance(value, (list, tuple)):
        return bool(value) and bool(value[0])
    return bool(value)


# ---------- main entry ----------
def process_db_entries(
    cfg,
    type_filter: str,
    property_to_add: str,
    fetch_function: Callable,
    input_property,
    output_filename: str,
    skip_existing: bool = True,
    script_name: str = "Database Processor",
) -> Dict[str, int]:
    """
    Run fetch_function over eligible `type_filter` records of cfg.db_path,
    setting `property_to_add`. The whole array is written to
    <db_dir>/<output_filename>; the source is only backed up, never rewritten.

    Returns {processed, success, skipped, failed}.
    """
    output_path = os.path.join(cfg.db_dir, output_filename)
    if os.path.abspath(output_path) == os.path.abspath(cfg.db_path):
        raise ValueError("output file must differ from the source database")

    print(f"\n=== {script_name} ===\n")
    print(f"Started at: {_now_display()}\n")

    try:
        print(f"Reading {cfg.db_path}...")
        raw, db = read_records(cfg.db_path)
        print(f"Total entries in database: {len(db)}\n")

        backup_path = make_backup(raw, cfg.db_path, cfg.db_backup_dir)
        print(f"Backup created: {os.path.basename(backup_path)}\n")
    except (OSError, ValueError) as e:
        print(f"\n❌ Fatal error: {e}")
        raise

    items = [
        r
        for r in db
        if is_eligible(r, type_filter, property_to_add, input_property, skip_existing)
    ]
    print(f'{type_filter} entries without "{property_to_add}": {len(items)}')

    if not items:
        print(f'\nNo items to process. All {type_filter} entries already have "{property_to_add}".\n')
        counts = {"processed": 0, "success": 0, "skipped": 0, "failed": 0}
    else:
        print(f"Starting {property_to_add} fetch...\n")
        counts = fill_field(items, property_to_add, fetch_function, input_property)

    try:
        print("\nWriting updated database...")
        save_json(output_path, db)
        print(f"Output saved to: {output_filename}\n")
    except OSError as e:
        print(f"\n❌ Fatal error: {e}")
        raise

    print("=== Summary ===")
    print(f"Processed: {counts['processed']} items")
    print(f"{property_to_add} added: {counts['success']}")
    print(f"Skipped (nothing found): {counts['skipped']}")
    print(f"Failed: {counts['failed']}")
    print(f"\nCompleted at: {_now_display()}\n")

    append_run(
        cfg.log_dir,
        {
            "ts": _now_iso(),
            "script": script_name,
            "type": type_filter,
            "field": property_to_add,
            "output": output_filename,
            **counts,
        },
    )
    return counts
