#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import logging
import sqlite3

logger = logging.getLogger(__name__)

# bumped whenever a bucket changes shape in a way older data cannot load
SCHEMA_VERSION = 1


class Database:
    """
    One sqlite file holding every persisted bucket as a JSON document in
    the app_state key/value table. ":memory:" works for tests.
    """

    def __init__(self, db_path: str = "breakbank.db"):
        self.db_path = db_path
        self.conn = sqlite3.connect(self.db_path)
        self.conn.row_factory = sqlite3.Row

    def __enter__(self) -> "Database":
        self.init_schema()
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def _table_exists(self, name: str) -> bool:
        r = self.conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?",
            (name,),
        ).fetchone()
        return bool(r)

    def schema_version(self) -> int:
        return int(self.conn.execute("PRAGMA user_version;").fetchone()[0])

    def init_schema(self):
        fresh = not self._table_exists("app_state")
        self.conn.execute(
            "CREATE TABLE IF NOT EXISTS app_state (key TEXT PRIMARY KEY, value TEXT);"
        )

        version = self.schema_version()
        if fresh:
            logger.info("Created state store at %s", self.db_path)
        elif version > SCHEMA_VERSION:
            logger.warning(
                "%s was written by a newer version (%d > %d)",
                self.db_path,
                version,
                SCHEMA_VERSION,
            )
        if version < SCHEMA_VERSION:
            self.conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION};")
        self.conn.commit()

    def close(self):
        try:
            self.conn.close()
        except sqlite3.Error:
            logger.warning("Closing %s failed", self.db_path, exc_info=True)
