# details_cache.py
# Positive-result cache (title-<url>, leaderboardlink-v2-<slug>, ...) with
# a max age checked on read.
import os
import sqlite3
import time
from typing import Optional

DB = os.path.join(".cache", "details.db")


def _init(db: str):
    parent = os.path.dirname(db)
    if parent:
        os.makedirs(parent, exist_ok=True)
    conn = sqlite3.connect(db)
    c = conn.cursor()
    c.execute(
        """CREATE TABLE IF NOT EXISTS details(
        key TEXT PRIMARY KEY,
        value TEXT,
        saved_at REAL
    )"""
    )
    conn.commit()
    conn.close()


def get(key: str, max_age: float, db: Optional[str] = None) -> Optional[str]:
    """Cached value if saved less than max_age seconds ago, else None."""
    db = db or DB
    _init(db)
    conn = sqlite3.connect(db)
    c = conn.cursor()
    c.execute("SELECT value, saved_at FROM details WHERE key=?", (key,))
    row = c.fetchone()
    conn.close()
    if not row:
        return None
    value, saved_at = row
    if time.time() - (saved_at or 0) >= max_age:
        return None
    return value if value is not None else ""


def put(key: str, value: str, db: Optional[str] = None):
    db = db or DB
    _init(db)
    conn = sqlite3.connect(db)
    c = conn.cursor()
    c.execute(
        """INSERT OR REPLACE INTO details(key, value, saved_at)
                 VALUES(?,?,?)""",
        (key, value or "", time.time()),
    )
    conn.commit()
    conn.close()


def delete(key: str, db: Optional[str] = None):
    db = db or DB
    _init(db)
    conn = sqlite3.connect(db)
    c = conn.cursor()
    c.execute("DELETE FROM details WHERE key=?", (key,))
    conn.commit()
    conn.close()
