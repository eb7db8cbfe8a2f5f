# bundle_config.py
# -------------------------------------------------------------------
# Resolve which dataset (production / development) a run works on and
# where its files live. Built once per run and passed around.
# -------------------------------------------------------------------

import os
import json
from typing import Dict, NamedTuple, Optional

DATASETS = ("production", "development")
DEFAULT_DATASET = "development"
SETTINGS_PATH = "dbtools.json"

DEFAULT_DIRS = {
    "production": "../11tybundledb",
    "development": "devdata",
}
ENV_DIRS = {
    "production": "BUNDLE_PROD_DIR",
    "development": "BUNDLE_DEV_DIR",
}


class Config(NamedTuple):
    dataset: str
    db_dir: str
    db_path: str
    db_backup_dir: str
    showcase_path: str
    showcase_backup_dir: str
    log_dir: str
    cache_db: str
    favicon_dir: str


def _load_settings(path: str) -> Dict:
    # missing file is fine, a broken one is not
    if not os.path.exists(path):
        return {}
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def load_config(
    dataset: Optional[str] = None, settings_path: str = SETTINGS_PATH
) -> Config:
    dataset = dataset or os.getenv("BUNDLE_DATASET") or DEFAULT_DATASET
    if dataset not in DATASETS:
        raise ValueError(
            f"unknown dataset {dataset!r} (expected one of {', '.join(DATASETS)})"
        )

    S = _load_settings(settings_path)
    db_dir = (
        os.getenv(ENV_DIRS[dataset])
        or (S.get(dataset) or {}).get("db_dir")
        or DEFAULT_DIRS[dataset]
    )
    log_dir = os.getenv("BUNDLE_LOG_DIR") or S.get("log_dir") or "log"

    return Config(
        dataset=dataset,
        db_dir=db_dir,
        db_path=os.path.join(db_dir, "bundledb.json"),
        db_backup_dir=os.path.join(db_dir, "bundledb-backups"),
        showcase_path=os.path.join(db_dir, "showcase-data.json"),
        showcase_backup_dir=os.path.join(db_dir, "showcase-data-backups"),
        log_dir=log_dir,
        cache_db=S.get("cache_db") or os.path.join(".cache", "details.db"),
        favicon_dir=S.get("favicon_dir") or "favicons",
    )


def describe(cfg: Config) -> str:
    name = "Production" if cfg.dataset == "production" else "Development"
    return f"{name} dataset ({cfg.db_path})"
