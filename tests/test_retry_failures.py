import json
from unittest.mock import MagicMock

import requests

import failure_cache
import retry_failures


def _seed(cfg, name, entries):
    cache = failure_cache.for_name(name, cfg.log_dir)
    cache.entries.update(entries)
    return cache


def _fake_head(ok_urls):
    def head(url, **kwargs):
        if url in ok_urls:
            return MagicMock(ok=True, status_code=200)
        if url.startswith("https://down"):
            raise requests.ConnectionError("refused")
        return MagicMock(ok=False, status_code=404)

    return head


def test_retry_reports_and_clears(cfg, monkeypatch):
    cache = _seed(
        cfg,
        "title",
        {
            "https://back.example": "2026-01-01",
            "https://gone.example": "2026-01-01",
            "https://down.example": "2026-01-01",
        },
    )
    monkeypatch.setattr(retry_failures.requests, "head", _fake_head({"https://back.example"}))

    still, recovered = retry_failures.retry(cfg, ["title"], clear_recovered=True)

    assert [r["url"] for r in recovered] == ["https://back.example"]
    assert sorted(r["url"] for r in still) == ["https://down.example", "https://gone.example"]
    assert "https://back.example" not in cache
    with open(cache.path) as f:
        assert "https://back.example" not in json.load(f)

    report = open(f"{cfg.log_dir}/failure-retries.txt").read()
    assert "STILL FAILING (2 URLs)" in report
    assert "NOW SUCCEEDING (1 URLs)" in report
    assert "title: https://gone.example - 404" in report
    assert "title: https://down.example - refused" in report


def test_retry_without_clear_keeps_entries(cfg, monkeypatch):
    cache = _seed(cfg, "github-description", {"https://github.com/a/b": "2026-01-01"})
    monkeypatch.setattr(retry_failures.requests, "head", _fake_head({"https://github.com/a/b"}))

    retry_failures.retry(cfg, ["github-description"])

    assert "https://github.com/a/b" in cache


def test_non_url_keys_are_reported(cfg):
    _seed(cfg, "description", {"owner/repo": "2026-01-01"})
    still, recovered = retry_failures.retry(cfg, ["description"])
    assert still[0]["error"] == "not a URL"
    assert recovered == []
