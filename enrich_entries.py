# enrich_entries.py
# Run one batch enrichment job over the bundle database, e.g.
#   python enrich_entries.py site-descriptions --dataset production
import sys
import argparse
from typing import Dict, NamedTuple

from bundle_config import DATASETS, describe, load_config
from db_processor import Derive, FieldName, process_db_entries
from fetchers import bound_fetchers


class Job(NamedTuple):
    type_filter: str
    field: str
    fetcher: str
    input_property: object
    output: str
    name: str


def _author_site_or_link(item):
    return item.get("AuthorSite") or item.get("Link")


JOBS: Dict[str, Job] = {
    "post-descriptions": Job(
        "blog post", "description", "description", FieldName("Link"),
        "bundledb-with-post-descriptions.json", "Blog Post Description Fetcher",
    ),
    "author-descriptions": Job(
        "blog post", "AuthorSiteDescription", "description", FieldName("AuthorSite"),
        "bundledb-with-author-descriptions.json", "Author Site Description Fetcher",
    ),
    "site-descriptions": Job(
        "site", "description", "description", FieldName("Link"),
        "bundledb-with-site-descriptions.json", "Site Description Fetcher",
    ),
    "release-descriptions": Job(
        "release", "description", "description", FieldName("Link"),
        "bundledb-with-release-descriptions.json", "Release Description Fetcher",
    ),
    "starter-descriptions": Job(
        "starter", "description", "github", FieldName("Link"),
        "bundledb-with-starter-descriptions.json", "Starter Description Fetcher",
    ),
    "post-favicons": Job(
        "blog post", "favicon", "favicon",
        Derive(lambda item: [_author_site_or_link(item), "post"]),
        "bundledb-with-post-favicons.json", "Blog Post Favicon Fetcher",
    ),
    "site-favicons": Job(
        "site", "favicon", "favicon",
        Derive(lambda item: [item.get("Link"), "site"]),
        "bundledb-with-site-favicons.json", "Site Favicon Fetcher",
    ),
    "rss-links": Job(
        "blog post", "rssLink", "rss", Derive(_author_site_or_link),
        "bundledb-with-rsslinks.json", "Blog Post RSS Link Fetcher",
    ),
    "social-links": Job(
        "blog post", "socialLinks", "social", Derive(_author_site_or_link),
        "bundledb-with-sociallinks.json", "Blog Post Social Link Fetcher",
    ),
    "site-leaderboards": Job(
        "site", "leaderboardLink", "leaderboard", FieldName("Link"),
        "bundledb-with-leaderboards.json", "Site Leaderboard Link Checker",
    ),
}


def run_job(job_name: str, cfg, force: bool = False, fetchers=None) -> Dict[str, int]:
    job = JOBS[job_name]
    fetchers = fetchers or bound_fetchers(cfg)
    return process_db_entries(
        cfg,
        type_filter=job.type_filter,
        property_to_add=job.field,
        fetch_function=fetchers[job.fetcher],
        input_property=job.input_property,
        output_filename=job.output,
        skip_existing=not force,
        script_name=job.name,
    )


def main(argv=None) -> int:
    p = argparse.ArgumentParser(description="Fill one field across the bundle database.")
    p.add_argument("job", nargs="?", choices=sorted(JOBS), help="job to run")
    p.add_argument("--dataset", choices=DATASETS, help="defaults to $BUNDLE_DATASET or development")
    p.add_argument("--force", action="store_true", help="refetch even when the field has a value")
    p.add_argument("--list", action="store_true", help="list jobs and exit")
    args = p.parse_args(argv)

    if args.list or not args.job:
        for name in sorted(JOBS):
            job = JOBS[name]
            print(f"{name:22} {job.type_filter:10} -> {job.field:22} {job.output}")
        return 0

    try:
        cfg = load_config(args.dataset)
        print(f"Using {describe(cfg)}")
        run_job(args.job, cfg, force=args.force)
    except (OSError, ValueError) as e:
        print(f"[error] {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
