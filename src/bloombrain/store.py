"""SQLite-backed local key-value store and the progress ledger built on it."""

from __future__ import annotations

import json
import logging
import sqlite3
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, List, Optional, Union

from .schemas import AgeBand, SessionLogEntry


logger = logging.getLogger(__name__)

SEEDS_KEY = "bloombrain_seeds"
HISTORY_KEY = "bloombrain_history"
AGE_KEY = "bloombrain_age"

DEFAULT_SEEDS = 2
DEFAULT_AGE = AgeBand.MIDDLE
HISTORY_LIMIT = 20


class LocalStore:
    """Named string values with get/set/append, one row per key."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._init()

    def _init(self) -> None:
        with self._connect() as conn:
            conn.executescript(
                """
                PRAGMA journal_mode=WAL;
                CREATE TABLE IF NOT EXISTS kv (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at INTEGER NOT NULL
                );
                """
            )

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.path, isolation_level=None)
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        with self._connect() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")

    @staticmethod
    def _read(conn: sqlite3.Connection, key: str) -> Optional[str]:
        row = conn.execute("SELECT value FROM kv WHERE key=?", (key,)).fetchone()
        return None if row is None else str(row[0])

    @staticmethod
    def _write(conn: sqlite3.Connection, key: str, value: str) -> None:
        conn.execute(
            """
            INSERT INTO kv(key,value,updated_at) VALUES(?,?,?)
            ON CONFLICT(key) DO UPDATE SET
                value=excluded.value,
                updated_at=excluded.updated_at
            """,
            (key, value, int(time.time())),
        )

    # key-value helpers -----------------------------------------------

    def get(self, key: str) -> Optional[str]:
        with self._connect() as conn:
            return self._read(conn, key)

    def set(self, key: str, value: str) -> None:
        with self._transaction() as conn:
            self._write(conn, key, value)

    def append(self, key: str, item: Any, limit: Optional[int] = None) -> List[Any]:
        """Append ``item`` to the JSON array under ``key``, keeping the newest ``limit``."""

        with self._transaction() as conn:
            items = _decode_list(key, self._read(conn, key))
            items.append(item)
            if limit is not None:
                items = items[-limit:] if limit > 0 else []
            self._write(conn, key, json.dumps(items, ensure_ascii=False, separators=(",", ":")))
        return items

    def increment(self, key: str, default: int = 0, step: int = 1) -> int:
        with self._transaction() as conn:
            value = _decode_int(key, self._read(conn, key), default) + step
            self._write(conn, key, str(value))
        return value

    def delete(self, key: str) -> None:
        with self._transaction() as conn:
            conn.execute("DELETE FROM kv WHERE key=?", (key,))


def _decode_list(key: str, raw: Optional[str]) -> List[Any]:
    if raw is None:
        return []
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Discarding unreadable value stored under %s", key)
        return []
    if not isinstance(value, list):
        logger.warning("Expected a list under %s, found %s", key, type(value).__name__)
        return []
    return value


def _decode_int(key: str, raw: Optional[str], default: int) -> int:
    if raw is None:
        return default
    try:
        return int(raw.strip())
    except ValueError:
        logger.warning("Discarding non-integer value stored under %s", key)
        return default


class ProgressLedger:
    """Seeds, session history and age band: the only durable engine state."""

    def __init__(self, store: LocalStore, history_limit: int = HISTORY_LIMIT) -> None:
        self.store = store
        self.history_limit = history_limit

    def seeds(self) -> int:
        return _decode_int(SEEDS_KEY, self.store.get(SEEDS_KEY), DEFAULT_SEEDS)

    def add_seed(self) -> int:
        return self.store.increment(SEEDS_KEY, default=DEFAULT_SEEDS)

    def history(self) -> List[SessionLogEntry]:
        """Logged sessions in chronological order (oldest first)."""

        entries: List[SessionLogEntry] = []
        for payload in _decode_list(HISTORY_KEY, self.store.get(HISTORY_KEY)):
            try:
                entries.append(SessionLogEntry.from_payload(payload))
            except (KeyError, TypeError, ValueError, AttributeError):
                logger.warning("Skipping malformed session log entry: %r", payload)
        return entries

    def log_session(self, entry: SessionLogEntry) -> None:
        self.store.append(HISTORY_KEY, entry.to_payload(), limit=self.history_limit)

    def age_group(self) -> AgeBand:
        raw = self.store.get(AGE_KEY)
        if raw is None:
            return DEFAULT_AGE
        try:
            return AgeBand(raw)
        except ValueError:
            logger.warning("Ignoring unknown age band %r", raw)
            return DEFAULT_AGE

    def set_age_group(self, age_group: Union[AgeBand, str]) -> AgeBand:
        band = AgeBand(age_group)
        self.store.set(AGE_KEY, band.value)
        return band


__all__ = [
    "AGE_KEY",
    "DEFAULT_AGE",
    "DEFAULT_SEEDS",
    "HISTORY_KEY",
    "HISTORY_LIMIT",
    "LocalStore",
    "ProgressLedger",
    "SEEDS_KEY",
]
