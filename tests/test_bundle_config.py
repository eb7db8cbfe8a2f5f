import json
import os

import pytest

from bundle_config import describe, load_config


def test_defaults_to_development(tmp_path):
    cfg = load_config(settings_path=str(tmp_path / "none.json"))
    assert cfg.dataset == "development"
    assert cfg.db_path == os.path.join("devdata", "bundledb.json")
    assert cfg.db_backup_dir == os.path.join("devdata", "bundledb-backups")
    assert cfg.showcase_path == os.path.join("devdata", "showcase-data.json")
    assert cfg.log_dir == "log"


def test_dataset_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("BUNDLE_DATASET", "production")
    monkeypatch.setenv("BUNDLE_PROD_DIR", "/data/bundle")
    cfg = load_config(settings_path=str(tmp_path / "none.json"))
    assert cfg.dataset == "production"
    assert cfg.db_path == os.path.join("/data/bundle", "bundledb.json")
    assert describe(cfg).startswith("Production dataset")


def test_argument_wins_over_env(monkeypatch, tmp_path):
    monkeypatch.setenv("BUNDLE_DATASET", "production")
    assert load_config("development", str(tmp_path / "none.json")).dataset == "development"


def test_settings_file(tmp_path):
    path = tmp_path / "dbtools.json"
    path.write_text(json.dumps({"production": {"db_dir": "/srv/db"}, "log_dir": "/var/log/bundle", "favicon_dir": "/srv/fav"}))
    cfg = load_config("production", str(path))
    assert cfg.db_dir == "/srv/db"
    assert cfg.log_dir == "/var/log/bundle"
    assert cfg.favicon_dir == "/srv/fav"


def test_unknown_dataset(tmp_path):
    with pytest.raises(ValueError):
        load_config("staging", str(tmp_path / "none.json"))


def test_broken_settings_file(tmp_path):
    path = tmp_path / "dbtools.json"
    path.write_text("{nope")
    with pytest.raises(ValueError):
        load_config(settings_path=str(path))
