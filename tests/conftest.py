"""
Pytest fixtures for the bundle database tools
"""
import os
import sys
import json

import pytest

# Add repo root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import requests  # noqa: E402

import details_cache  # noqa: E402
import failure_cache  # noqa: E402
from bundle_config import Config  # noqa: E402


def _network_disabled(*args, **kwargs):
    raise RuntimeError("network access is disabled in tests")


@pytest.fixture(autouse=True)
def isolated(tmp_path, monkeypatch):
    """Run every test in its own directory with no real HTTP."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(requests, "get", _network_disabled)
    monkeypatch.setattr(requests, "head", _network_disabled)
    monkeypatch.setattr(details_cache, "DB", str(tmp_path / ".cache" / "details.db"))
    for var in ("BUNDLE_DATASET", "BUNDLE_DEV_DIR", "BUNDLE_PROD_DIR", "BUNDLE_LOG_DIR", "GITHUB_TOKEN"):
        monkeypatch.delenv(var, raising=False)
    failure_cache.forget_open_caches()
    yield
    failure_cache.forget_open_caches()


@pytest.fixture
def cfg(tmp_path):
    db_dir = tmp_path / "devdata"
    db_dir.mkdir()
    return Config(
        dataset="development",
        db_dir=str(db_dir),
        db_path=str(db_dir / "bundledb.json"),
        db_backup_dir=str(db_dir / "bundledb-backups"),
        showcase_path=str(db_dir / "showcase-data.json"),
        showcase_backup_dir=str(db_dir / "showcase-data-backups"),
        log_dir=str(tmp_path / "log"),
        cache_db=str(tmp_path / ".cache" / "details.db"),
        favicon_dir=str(tmp_path / "favicons"),
    )


@pytest.fixture
def write_db(cfg):
    def _write(records, path=None):
        path = path or cfg.db_path
        with open(path, "w", encoding="utf-8") as f:
            json.dump(records, f, indent=2)
        return path

    return _write


@pytest.fixture
def read_json():
    def _read(path):
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

    return _read


@pytest.fixture
def sample_records():
    return [
        {
            "Issue": 12,
            "Type": "blog post",
            "Title": "Building a blog with 11ty",
            "Link": "https://alice.example/posts/blog-with-11ty/",
            "Date": "2024-05-01",
            "Author": "Alice",
            "AuthorSite": "https://alice.example",
            "description": "",
        },
        {
            "Issue": 12,
            "Type": "site",
            "Title": "Alice's site",
            "Link": "https://alice.example",
        },
        {
            "Issue": 13,
            "Type": "site",
            "Title": "Skipped site",
            "Link": "https://skip.example",
            "Skip": True,
        },
        {
            "Issue": 13,
            "Type": "release",
            "Title": "Eleventy v3.0.0",
            "Link": "https://github.com/11ty/eleventy/releases/tag/v3.0.0",
            "description": "Already described",
        },
        {
            "Issue": "",
            "Type": "starter",
            "Title": "Eleventy base blog",
            "Link": "https://github.com/11ty/eleventy-base-blog",
        },
    ]
