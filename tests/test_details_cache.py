import details_cache


def test_put_then_get(tmp_path):
    db = str(tmp_path / "c.db")
    details_cache.put("title-https://a.example", "A title", db)
    assert details_cache.get("title-https://a.example", 60, db) == "A title"


def test_missing_key_is_none(tmp_path):
    assert details_cache.get("nope", 60, str(tmp_path / "c.db")) is None


def test_expired_value_is_none(tmp_path, monkeypatch):
    db = str(tmp_path / "c.db")
    monkeypatch.setattr(details_cache.time, "time", lambda: 1_000.0)
    details_cache.put("k", "v", db)
    monkeypatch.setattr(details_cache.time, "time", lambda: 1_000.0 + 61)
    assert details_cache.get("k", 60, db) is None


def test_empty_value_is_distinct_from_missing(tmp_path):
    db = str(tmp_path / "c.db")
    details_cache.put("leaderboardlink-v2-a-example", "", db)
    assert details_cache.get("leaderboardlink-v2-a-example", 60, db) == ""


def test_delete(tmp_path):
    db = str(tmp_path / "c.db")
    details_cache.put("k", "v", db)
    details_cache.delete("k", db)
    assert details_cache.get("k", 60, db) is None


def test_default_db_is_used(tmp_path):
    details_cache.put("k", "v")
    assert details_cache.get("k", 60) == "v"
    assert (tmp_path / ".cache" / "details.db").exists()
