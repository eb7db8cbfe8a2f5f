# retry_failures.py
# -------------------------------------------------------------------
# Re-probe every key held in the failure caches and report which ones
# answer again. With --clear-recovered, recovered keys are dropped so
# the next enrichment run tries them right away.
# -------------------------------------------------------------------

import os
import sys
import argparse
from typing import Dict, List

import requests

import failure_cache
from bundle_config import DATASETS, load_config
from fetchers import UA
from url_utils import is_http_url

REPORT_NAME = "failure-retries.txt"


def probe(url: str, timeout: int = 5) -> Dict:
    try:
        r = requests.head(url, headers=UA, timeout=timeout, allow_redirects=True)
        return {"url": url, "success": r.ok, "status": r.status_code}
    except requests.RequestException as e:
        return {"url": url, "success": False, "error": str(e)}


def _why(result: Dict) -> str:
    if result.get("status"):
        return str(result["status"])
    return result.get("error") or "fetch failed"


def write_report(path: str, still_failing: List[Dict], recovered: List[Dict]):
    lines = [f"STILL FAILING ({len(still_failing)} URLs)", "=" * 60, ""]
    lines += [f"{r['cache']}: {r['url']} - {_why(r)}" for r in still_failing]
    lines += ["", "", f"NOW SUCCEEDING ({len(recovered)} URLs)", "=" * 60, ""]
    lines += [f"{r['cache']}: {r['url']} - {r['status']}" for r in recovered]
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write("\n".join(lines) + "\n")


def retry(cfg, names: List[str], clear_recovered: bool = False):
    still_failing, recovered = [], []
    for name in names:
        cache = failure_cache.for_name(name, cfg.log_dir)
        keys = sorted(cache.entries)
        print(f"\n[{name}] {len(keys)} cached failures")
        for i, key in enumerate(keys, 1):
            if not is_http_url(key):
                still_failing.append({"cache": name, "url": key, "error": "not a URL"})
                print(f"[{i}/{len(keys)}] {key} ... ✗ not a URL")
                continue
            result = {**probe(key), "cache": name}
            if result["success"]:
                recovered.append(result)
                print(f"[{i}/{len(keys)}] {key} ... ✓ {result['status']}")
                if clear_recovered:
                    cache.clear(key)
            else:
                still_failing.append(result)
                print(f"[{i}/{len(keys)}] {key} ... ✗ {_why(result)}")

    report = os.path.join(cfg.log_dir, REPORT_NAME)
    write_report(report, still_failing, recovered)

    print("\n" + "=" * 60)
    print(f"Still failing: {len(still_failing)}")
    print(f"Now succeeding: {len(recovered)}" + (" (cleared)" if clear_recovered else ""))
    print(f"Results written to: {report}")
    return still_failing, recovered


def main(argv=None) -> int:
    p = argparse.ArgumentParser()
    p.add_argument("--cache", choices=sorted(failure_cache.CACHE_FILES), action="append")
    p.add_argument("--clear-recovered", action="store_true")
    p.add_argument("--dataset", choices=DATASETS)
    args = p.parse_args(argv)

    cfg = load_config(args.dataset)
    retry(cfg, args.cache or sorted(failure_cache.CACHE_FILES), args.clear_recovered)
    return 0


if __name__ == "__main__":
    sys.exit(main())
