"""SQLite helpers for the persistence layer."""
from __future__ import annotations

import os
import sqlite3
from contextlib import contextmanager
from typing import Iterator

from config.settings import settings


@contextmanager
def get_conn(*, immediate: bool = False) -> Iterator[sqlite3.Connection]:
    """Yield a SQLite connection that commits on success and rolls back on error.

    ``immediate`` takes the write lock up front so read-check-write sequences
    on one record are serialized across processes.
    """

    directory = os.path.dirname(settings.DB_PATH) or "."
    os.makedirs(directory, exist_ok=True)
    conn = sqlite3.connect(settings.DB_PATH, timeout=30.0)
    conn.row_factory = sqlite3.Row
    try:
        if immediate:
            conn.execute("BEGIN IMMEDIATE")
        yield conn
        conn.commit()
    except BaseException:
        conn.rollback()
        raise
    finally:
        conn.close()
