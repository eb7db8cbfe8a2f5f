# lookup.py
# Try a single fetcher against one or more URLs and print what comes back.
#   python lookup.py title https://www.11ty.dev/
import sys
import json
import argparse

from bundle_config import DATASETS, load_config
from fetchers import bound_fetchers

FETCHERS = ("title", "description", "favicon", "rss", "social", "github", "leaderboard")


def main(argv=None) -> int:
    p = argparse.ArgumentParser()
    p.add_argument("fetcher", choices=FETCHERS)
    p.add_argument("urls", nargs="+")
    p.add_argument("--dataset", choices=DATASETS)
    args = p.parse_args(argv)

    cfg = load_config(args.dataset)
    fetch = bound_fetchers(cfg)[args.fetcher]

    found = 0
    for url in args.urls:
        result = fetch(url)
        if result:
            found += 1
        shown = json.dumps(result, indent=2) if isinstance(result, dict) else repr(result)
        print(f"{url}\n  -> {shown}")
    # non-zero when nothing was found, handy in shell loops
    return 0 if found else 2


if __name__ == "__main__":
    sys.exit(main())
