# storage/repos.py
#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import json
import logging
from typing import Any, Callable, Dict, List, Optional

from storage.db import Database

logger = logging.getLogger(__name__)

# logical buckets and their defaults
BUCKETS: Dict[str, Callable[[], Any]] = {
    "settings": dict,
    "tasks": lambda: {"items": [], "selected_id": None},
    "categories": list,
    "log": list,
    "pomodoro": lambda: 0,
    "timer": dict,
    "schedule": lambda: {"start_time": None, "breaks": []},
    "lifetime": dict,
    "profile": dict,
}


class AppStateRepo:
    def __init__(self, db: Database):
        self.db = db

    def get(self, key: str) -> Optional[str]:
        row = self.db.conn.execute(
            "SELECT value FROM app_state WHERE key=?",
            (key,),
        ).fetchone()
        return row["value"] if row else None

    def set(self, key: str, value: str) -> None:
        self.db.conn.execute(
            """
            INSERT INTO app_state(key, value) VALUES(?, ?)
            ON CONFLICT(key) DO UPDATE SET value=excluded.value
            """,
            (key, value),
        )
        self.db.conn.commit()

    def delete(self, key: str) -> None:
        self.db.conn.execute("DELETE FROM app_state WHERE key=?", (key,))
        self.db.conn.commit()

    def keys(self) -> List[str]:
        rows = self.db.conn.execute("SELECT key FROM app_state").fetchall()
        return [r["key"] for r in rows]


class StateStore:
    """
    JSON buckets on top of the key-value table.
    A missing, unreadable or wrongly-typed bucket loads as its default.
    """

    def __init__(self, db: Database):
        self.repo = AppStateRepo(db)

    @staticmethod
    def default(bucket: str) -> Any:
        if bucket not in BUCKETS:
            raise KeyError(f"Unknown bucket: {bucket}")
        return BUCKETS[bucket]()

    def load(self, bucket: str) -> Any:
        fallback = self.default(bucket)
        raw = self.repo.get(bucket)
        if raw is None:
            return fallback
        try:
            value = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Bucket %r is corrupt, using defaults", bucket)
            return fallback
        if isinstance(value, bool) or not isinstance(value, type(fallback)):
            logger.warning("Bucket %r has an unexpected shape, using defaults", bucket)
            return fallback
        return value

    def save(self, bucket: str, value: Any) -> None:
        self.default(bucket)
        self.repo.set(bucket, json.dumps(value))

    def clear(self) -> None:
        for key in self.repo.keys():
            self.repo.delete(key)
